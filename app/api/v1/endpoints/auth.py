from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, Optional
import logging

from app.schemas.user import User, UserLogin, Token, TokenRefresh
from app.core import security
from app.core.config import settings
from app.sheets.columns import MasterColumn
from app.sheets.errors import SheetReadError
from app.sheets.reader import SheetReader
from app.api.deps import get_current_user, get_sheet_reader

logger = logging.getLogger(__name__)

router = APIRouter()


def authenticate_user(reader: SheetReader, username: str, password: str) -> Optional[User]:
    """
    Look the pair up in the Master sheet: username in column A, password in
    column B, display name in column C and role in column D.
    """
    for row in reader.fetch_table(settings.MASTER_SHEET_NAME):
        if row.text(MasterColumn.USERNAME) != username:
            continue
        if not security.verify_password(password, row.text(MasterColumn.PASSWORD)):
            continue
        role = row.text(MasterColumn.ROLE).lower() or "user"
        return User(username=username, name=row.text(MasterColumn.NAME), role=role)
    logger.warning(f"Failed login attempt for username: {username}")
    return None


def issue_tokens(user: User) -> dict:
    claims = {"role": user.role, "name": user.name}
    access_token = security.create_access_token(
        subject=user.username,
        claims=claims,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh_token = security.create_refresh_token(
        subject=user.username,
        claims=claims,
        expires_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }


@router.post("/login", response_model=Token)
def login(
    *,
    reader: SheetReader = Depends(get_sheet_reader),
    login_data: UserLogin
) -> Any:
    """
    Login with the username and password from the Master sheet to get access and refresh tokens
    """
    try:
        user = authenticate_user(reader, login_data.username, login_data.password)
    except SheetReadError as e:
        logger.error(f"Error reading Master sheet during login: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to connect to server. Please try again."
        )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info(f"User {user.username} logged in with role {user.role}")
    return issue_tokens(user)


@router.post("/refresh", response_model=Token)
def refresh_token(*, token_data: TokenRefresh) -> Any:
    """
    Refresh access token using refresh token
    """
    payload = security.verify_token(token_data.refresh_token, is_refresh=True)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username: str = payload.get("sub")
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = User(username=username, name=payload.get("name"), role=payload.get("role") or "user")
    return issue_tokens(user)


@router.get("/me", response_model=User)
def get_me(current_user: User = Depends(get_current_user)) -> Any:
    """
    Get current user information.
    """
    return current_user
