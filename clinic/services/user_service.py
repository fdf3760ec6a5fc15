from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..models import User
from ..core.exceptions import InvalidInputError, NotFoundError
from ..core.security import AuthorizationError, UserRole
from ..schemas.common import Page
from ..schemas.user import (
    AdminUserResponse, DoctorProfileUpdate, PatientProfileUpdate,
    StaffProfileUpdate,
)
from .pagination import PageParams, paginate

logger = logging.getLogger(__name__)

# Never listed or managed through the admin user screens
PRIVILEGED_ROLES = (UserRole.ADMIN,)

class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def _require_profile(self, user: User):
        profile = user.profile
        if profile is None:
            raise NotFoundError(f"{user.role.value.capitalize()} profile not found")
        return profile

    def update_patient_profile(self, user: User, data: PatientProfileUpdate) -> User:
        profile = self._require_profile(user)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name"):
            user.name = changes["name"]
        if "date_of_birth" in changes:
            profile.date_of_birth = changes["date_of_birth"]
        if "gender" in changes:
            profile.gender = changes["gender"]

        self.db.commit()
        self.db.refresh(user)
        return user

    def update_doctor_profile(self, user: User, data: DoctorProfileUpdate) -> User:
        profile = self._require_profile(user)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name"):
            user.name = changes["name"]
        if "profile_picture" in changes:
            user.profile_picture = changes["profile_picture"]
        for field in ("specialty", "qualifications", "experience", "consultation_fee"):
            if changes.get(field) is not None:
                setattr(profile, field, changes[field])

        self.db.commit()
        self.db.refresh(user)
        return user

    def update_staff_profile(self, user: User, data: StaffProfileUpdate) -> User:
        profile = self._require_profile(user)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name"):
            user.name = changes["name"]
        for field in ("department", "position"):
            if changes.get(field) is not None:
                setattr(profile, field, changes[field])

        self.db.commit()
        self.db.refresh(user)
        return user

    def list_users(self, params: PageParams, role: Optional[str] = None) -> Page[AdminUserResponse]:
        """Active, non-admin users, newest first."""
        query = self.db.query(User).filter(
            User.role.notin_(PRIVILEGED_ROLES),
            User.is_banned.is_(False),
        )
        if role and role != "all":
            try:
                query = query.filter(User.role == UserRole(role))
            except ValueError:
                raise InvalidInputError(f"Unknown role '{role}'")

        query = query.order_by(User.created_at.desc(), User.id.desc())
        return paginate(query, params, AdminUserResponse.model_validate)

    def set_banned(self, user_id: int, banned: bool) -> User:
        user = self.get_user(user_id)
        if user.role in PRIVILEGED_ROLES:
            raise AuthorizationError("Administrator accounts cannot be banned or activated")
        user.is_banned = banned
        self.db.commit()
        self.db.refresh(user)

        logger.info("User %s %s", user.id, "banned" if banned else "activated")
        return user
