from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
import hashlib
import hmac
import binascii
from jose import jwt
from app.core.config import settings, SERVER_INSTANCE_ID

# PBKDF2 configuration
PBKDF2_ITERATIONS = 100000
HASH_LENGTH = 64


def _encode(subject: str, claims: Optional[Dict[str, Any]], expire: datetime, secret_key: str, token_type: str) -> str:
    to_encode = dict(claims or {})
    to_encode.update({
        "exp": int(expire.timestamp()),
        "sub": str(subject),
        "type": token_type,
        "instance_id": SERVER_INSTANCE_ID  # Include server instance ID to invalidate tokens on restart
    })
    return jwt.encode(to_encode, secret_key, algorithm=settings.ALGORITHM)


def create_access_token(subject: str, claims: Optional[Dict[str, Any]] = None, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    return _encode(subject, claims, expire, settings.SECRET_KEY, "access")


def create_refresh_token(subject: str, claims: Optional[Dict[str, Any]] = None, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a refresh token with longer expiration time.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(subject, claims, expire, settings.REFRESH_SECRET_KEY, "refresh")


def hash_password(password: str, salt: bytes) -> Tuple[bytes, bytes]:
    """
    Hash a password using PBKDF2 with SHA-256.
    Returns a tuple of (hash, salt).
    """
    dk = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt,
        PBKDF2_ITERATIONS,
        dklen=HASH_LENGTH
    )
    return dk, salt


def verify_password(plain_password: str, stored_password: str) -> bool:
    """
    Verify a password against the value kept in the Master sheet.

    A value in the format salt:hash (both hex-encoded, hash of HASH_LENGTH
    bytes) is checked with PBKDF2. Anything else, including plain-text
    passwords that merely contain a colon, is compared in constant time.
    """
    if not stored_password:
        return False
    hashed = _split_hashed(stored_password)
    if hashed is not None:
        salt, stored_hash_bytes = hashed
        new_hash, _ = hash_password(plain_password, salt)
        return hmac.compare_digest(new_hash, stored_hash_bytes)
    return hmac.compare_digest(plain_password.encode('utf-8'), stored_password.encode('utf-8'))


def _split_hashed(stored_password: str) -> Optional[Tuple[bytes, bytes]]:
    if stored_password.count(':') != 1:
        return None
    salt_hex, hash_hex = stored_password.split(':')
    try:
        salt = binascii.unhexlify(salt_hex)
        stored_hash_bytes = binascii.unhexlify(hash_hex)
    except (ValueError, binascii.Error):
        return None
    if not salt or len(stored_hash_bytes) != HASH_LENGTH:
        return None
    return salt, stored_hash_bytes


def verify_token(token: str, is_refresh: bool = False) -> Optional[dict]:
    """
    Verify and decode a JWT token.
    Returns the decoded token payload if valid, None otherwise.

    Args:
        token: The JWT token to verify
        is_refresh: If True, uses REFRESH_SECRET_KEY, otherwise uses SECRET_KEY
    """
    try:
        secret_key = settings.REFRESH_SECRET_KEY if is_refresh else settings.SECRET_KEY
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.JWTError:
        # Other JWT errors (invalid signature, malformed token, etc.)
        return None

    # Token was issued by a different server instance (server was restarted)
    if payload.get("instance_id") != SERVER_INSTANCE_ID:
        return None

    expected_type = "refresh" if is_refresh else "access"
    if payload.get("type") != expected_type:
        return None

    return payload
