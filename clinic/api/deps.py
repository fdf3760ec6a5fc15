from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload
)
from ..models.user import User
from ..services.pagination import PageParams

async def get_current_user_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify the JWT from the Authorization header or session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise AuthenticationError("Not authenticated")

    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if not token_payload.sub or not token_payload.sub.isdigit():
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == int(token_payload.sub)).first()
    if not user:
        raise AuthenticationError("User not found")

    if user.is_banned:
        raise AuthenticationError("User account is banned")

    return user

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires specific user roles."""
    def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        # OAuth accounts have no role profile until complete-profile
        if not current_user.profile_complete:
            raise AuthorizationError("Profile is incomplete")
        return current_user

    return role_checker

get_admin_user = require_role([UserRole.ADMIN])
get_doctor_user = require_role([UserRole.DOCTOR])
get_patient_user = require_role([UserRole.PATIENT])
get_staff_user = require_role([UserRole.STAFF])

def pagination_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> PageParams:
    """Standard ``page``/``limit`` query parameters."""
    return PageParams(page=page, limit=limit)

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Basic rate limiting for unauthenticated entry points."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, 3600, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_PER_HOUR:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
