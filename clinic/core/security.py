from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel
import secrets
from enum import Enum

from .config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer header is optional; the session cookie is the fallback
security = HTTPBearer(auto_error=False)

class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"
    STAFF = "staff"

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def generate_password_reset_token() -> str:
    """Opaque URL-safe token mailed to the user for a password reset."""
    return secrets.token_urlsafe(32)

def generate_employee_id() -> str:
    return f"EMP-{secrets.token_hex(4).upper()}"

def _sign(claims: dict, lifetime: timedelta, token_type: str) -> str:
    payload = dict(claims, exp=datetime.utcnow() + lifetime, token_type=token_type)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def create_access_token(claims: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``claims`` as an access token; defaults to the session lifetime."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _sign(claims, lifetime, "access")

def create_profile_token(user_id: int) -> str:
    """Short-lived token that only allows completing the profile of ``user_id``."""
    lifetime = timedelta(minutes=settings.PROFILE_TOKEN_EXPIRE_MINUTES)
    return _sign({"sub": str(user_id)}, lifetime, "profile")

def verify_token(token: str) -> Optional[TokenPayload]:
    """Decode a token, returning None when the signature or expiry is bad."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    return TokenPayload(**payload)

def create_session_token(user_id: int, email: str, role: UserRole) -> Token:
    """Issue the token handed out at login, also stored in the session cookie."""
    # python-jose only accepts string subjects
    claims = {"sub": str(user_id), "email": email, "role": UserRole(role).value}
    return Token(
        access_token=create_access_token(claims),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
