from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

from ..models import User, Doctor, Patient, Staff
from ..core.config import settings
from ..core.exceptions import ConflictError, InvalidInputError, NotFoundError
from ..core.security import (
    verify_password, verify_token, get_password_hash, create_session_token,
    generate_password_reset_token, generate_employee_id,
    AuthenticationError, Token, UserRole,
)
from ..schemas.auth import (
    UserLogin, UserRegister, CompleteProfile, PasswordResetConfirm,
    RoleProfileFields,
)
from .oauth_service import GoogleIdentity

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> User:
        """Register a new user together with its role profile."""
        existing_user = self.db.query(User).filter(
            User.email == user_data.email.lower()
        ).first()

        if existing_user:
            raise ConflictError("User already exists")

        new_user = User(
            name=user_data.name,
            email=user_data.email.lower(),
            password_hash=get_password_hash(user_data.password),
            role=UserRole(user_data.role),
            is_banned=False,
            profile_complete=True,
        )
        self.db.add(new_user)
        self._attach_profile(new_user, UserRole(user_data.role), user_data)

        self.db.commit()
        self.db.refresh(new_user)

        logger.info("Registered %s user %s", new_user.role.value, new_user.id)
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> Tuple[User, Token]:
        """Check credentials and issue a session token."""
        user = self.db.query(User).filter(
            User.email == login_data.email.lower()
        ).first()

        if not user or not user.password_hash or not verify_password(
            login_data.password, user.password_hash
        ):
            raise AuthenticationError("Invalid email or password")

        return user, self._start_session(user)

    def google_signup(self, identity: GoogleIdentity, role: str) -> Tuple[User, Optional[Token]]:
        """Create (or find) a Google user.

        A token is issued only once the profile is complete; until then the
        caller has to go through ``complete_profile``.
        """
        user = self.db.query(User).filter(User.email == identity.email.lower()).first()

        if not user:
            user = User(
                name=identity.name,
                email=identity.email.lower(),
                role=UserRole(role),
                oauth_provider="google",
                oauth_id=identity.sub,
                is_banned=False,
                profile_complete=False,
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            logger.info("Created Google user %s pending profile completion", user.id)
            return user, None

        if not user.oauth_provider:
            # Link OAuth account to existing user
            user.oauth_provider = "google"
            user.oauth_id = identity.sub
            self.db.commit()

        if not user.profile_complete:
            return user, None

        return user, self._start_session(user)

    def google_login(self, identity: GoogleIdentity) -> Tuple[User, Token]:
        user = self.db.query(User).filter(User.email == identity.email.lower()).first()
        if not user:
            raise NotFoundError("User not found")
        return user, self._start_session(user)

    def complete_profile(self, data: CompleteProfile) -> Tuple[User, Token]:
        """Attach the role profile to the user named by ``data.profile_token``."""
        claims = verify_token(data.profile_token)
        if not claims or claims.token_type != "profile" or not (claims.sub or "").isdigit():
            raise AuthenticationError("Invalid or expired profile token")

        user = self.db.query(User).filter(User.id == int(claims.sub)).first()
        if not user:
            raise NotFoundError("User not found")
        if user.profile_complete:
            raise ConflictError("Profile already completed")

        role = UserRole(data.role)
        user.role = role
        self._attach_profile(user, role, data)
        user.profile_complete = True
        self.db.commit()
        self.db.refresh(user)

        return user, self._start_session(user)

    def request_password_reset(self, email: str) -> Optional[Tuple[User, str]]:
        """Generate password reset token."""
        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user:
            # Don't reveal if email exists
            return None

        reset_token = generate_password_reset_token()
        user.password_reset_token = reset_token
        user.password_reset_expires = datetime.utcnow() + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        self.db.commit()

        return user, reset_token

    def reset_password(self, reset_data: PasswordResetConfirm) -> None:
        """Reset password using reset token."""
        user = self.db.query(User).filter(
            User.password_reset_token == reset_data.token,
            User.password_reset_expires > datetime.utcnow()
        ).first()

        if not user:
            raise InvalidInputError("Invalid or expired reset token")

        user.password_hash = get_password_hash(reset_data.new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        self.db.commit()

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not user.password_hash or not verify_password(current_password, user.password_hash):
            raise InvalidInputError("Current password is incorrect")

        user.password_hash = get_password_hash(new_password)
        self.db.commit()

    def _start_session(self, user: User) -> Token:
        if user.is_banned:
            raise AuthenticationError("Account is banned")

        user.last_login = datetime.utcnow()
        self.db.commit()

        return create_session_token(user.id, user.email, user.role)

    def _attach_profile(self, user: User, role: UserRole, fields: RoleProfileFields) -> None:
        """Create the role-specific payload row for ``user``."""
        if role == UserRole.DOCTOR:
            user.doctor = Doctor(
                specialty=fields.specialty or "General Practice",
                qualifications=fields.qualifications or [],
                experience=fields.experience or 0,
                registration_number=fields.registration_number,
                consultation_fee=fields.consultation_fee or 0.0,
            )
        elif role == UserRole.PATIENT:
            user.patient = Patient(
                date_of_birth=fields.date_of_birth,
                gender=fields.gender,
            )
        elif role == UserRole.STAFF:
            employee_id = fields.employee_id or generate_employee_id()
            taken = self.db.query(Staff).filter(Staff.employee_id == employee_id).first()
            if taken:
                raise ConflictError("Employee ID already in use")
            user.staff = Staff(
                department=fields.department,
                position=fields.position,
                employee_id=employee_id,
            )
