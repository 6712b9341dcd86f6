from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from typing import Optional, Dict, Any
import logging
import secrets

from loancrm.core.config import Settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8
OTP_DIGITS = 6


# Validates that a password meets minimum length requirements
def is_valid_password(password: Optional[str]) -> bool:
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


# Hashes a password using bcrypt after validating its length
def hash_password(password: str) -> str:
    if not is_valid_password(password):
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    try:
        return pwd_context.hash(password)
    except Exception as e:
        raise ValueError("Failed to hash password") from e


# Verifies a plain password against its hashed version
def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(password, hashed_password)
    except Exception as e:
        logger.warning("Password verification error: %s", e)
        return False


# Creates a signed JWT access token with configurable expiration time
def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    if not settings.JWT_SECRET_KEY:
        raise ValueError("JWT_SECRET_KEY is not configured")
    try:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    except Exception as e:
        raise ValueError("Failed to create access token") from e


# Decodes and validates a JWT token (signature and expiry) returning its payload
def decode_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    if not settings.JWT_SECRET_KEY:
        return None
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


# Generates a numeric one-time passcode
def generate_otp(digits: int = OTP_DIGITS) -> str:
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))
