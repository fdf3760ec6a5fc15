from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.orm import Session

from ...core.config import settings
from ...core.database import get_db
from ...core.security import Token, create_profile_token
from ...api.deps import get_current_user, rate_limit_check
from ...models.user import User
from ...services.auth_service import AuthService
from ...services.email_service import EmailService, deliver_safely, get_email_service
from ...services.oauth_service import GoogleVerifier, get_google_verifier
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse, GoogleLogin,
    GoogleSignup, GoogleSignupResponse, CompleteProfile, PasswordReset,
    PasswordResetConfirm, ChangePassword,
)
from ...schemas.common import MessageResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

def _set_session_cookie(response: Response, token: Token) -> None:
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token.access_token,
        max_age=token.expires_in,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )

def _token_response(response: Response, user: User, token: Token) -> TokenResponse:
    _set_session_cookie(response, token)
    return TokenResponse(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in,
        user=UserResponse.model_validate(user),
    )

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient, doctor or staff member."""
    user = AuthService(db).register_user(user_data)
    background_tasks.add_task(deliver_safely, email_service.send_welcome_email, user.email, user.name)
    return UserResponse.model_validate(user)

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
):
    """Authenticate user and set the session cookie."""
    user, token = AuthService(db).authenticate_user(login_data)
    return _token_response(response, user, token)

@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(
        key=settings.COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )
    return {"message": "Successfully logged out"}

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserResponse.model_validate(current_user)

@router.post("/google-login", response_model=TokenResponse)
async def google_login(
    payload: GoogleLogin,
    response: Response,
    db: Session = Depends(get_db),
    verifier: GoogleVerifier = Depends(get_google_verifier),
):
    """Sign in an existing user with a Google ID token."""
    identity = await verifier.verify(payload.token)
    user, token = AuthService(db).google_login(identity)
    return _token_response(response, user, token)

@router.post("/google-signup", response_model=GoogleSignupResponse)
async def google_signup(
    payload: GoogleSignup,
    response: Response,
    db: Session = Depends(get_db),
    verifier: GoogleVerifier = Depends(get_google_verifier),
):
    """Create a Google account; new users must complete their profile first."""
    identity = await verifier.verify(payload.token)
    user, token = AuthService(db).google_signup(identity, payload.role)

    if token is None:
        return GoogleSignupResponse(
            user=UserResponse.model_validate(user),
            requires_additional_info=True,
            profile_token=create_profile_token(user.id),
        )

    _set_session_cookie(response, token)
    return GoogleSignupResponse(
        user=UserResponse.model_validate(user),
        access_token=token.access_token,
    )

@router.post("/complete-profile", response_model=TokenResponse)
async def complete_profile(
    payload: CompleteProfile,
    response: Response,
    db: Session = Depends(get_db),
):
    """Fill in role-specific details for an OAuth account."""
    user, token = AuthService(db).complete_profile(payload)
    return _token_response(response, user, token)

@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change user password."""
    AuthService(db).change_password(
        current_user, password_data.current_password, password_data.new_password
    )
    return {"message": "Password changed successfully"}

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    reset_data: PasswordReset,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    _: None = Depends(rate_limit_check)
):
    """Request password reset."""
    result = AuthService(db).request_password_reset(reset_data.email)
    if result is not None:
        user, reset_token = result
        background_tasks.add_task(
            deliver_safely, email_service.send_password_reset_email, user.email, reset_token
        )

    return {"message": "If the email exists, a password reset link has been sent"}

@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    reset_data: PasswordResetConfirm,
    db: Session = Depends(get_db)
):
    """Reset password using reset token."""
    AuthService(db).reset_password(reset_data)
    return {"message": "Password reset successfully"}
