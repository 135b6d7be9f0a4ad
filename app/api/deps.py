from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List
from app.db.database import SessionLocal
from app.schemas.user import User
from app.sheets.reader import SheetReader
from app.sheets.writer import SheetWriter
from app.core import security


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_sheet_reader() -> SheetReader:
    return SheetReader()


def get_sheet_writer() -> SheetWriter:
    return SheetWriter()


security_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> User:
    """
    Get the current authenticated user from the JWT access token.
    """
    token = credentials.credentials if credentials else None
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token. Please provide a Bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = security.verify_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token. Please login again.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username: str = payload.get("sub")
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload. Please login again.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return User(username=username, name=payload.get("name"), role=payload.get("role") or "user")


def require_role(allowed_roles: List[str]):
    """
    Dependency factory to check if user has required role.
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(allowed_roles)}. Your role: {current_user.role}"
            )
        return current_user
    return role_checker


# Common role dependencies
get_any_user = require_role(["user", "admin"])
get_admin = require_role(["admin"])
