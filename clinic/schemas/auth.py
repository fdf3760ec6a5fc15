from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import List, Literal, Optional
from datetime import datetime

from ..core.security import UserRole
from ..models.staff import Department

RegistrableRole = Literal["patient", "doctor", "staff"]


class RoleProfileFields(BaseModel):
    """Role-specific fields accepted at registration and profile completion."""

    # Doctor
    specialty: Optional[str] = Field(None, max_length=100)
    qualifications: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    registration_number: Optional[str] = Field(None, max_length=50)
    consultation_fee: Optional[float] = Field(None, ge=0)

    # Patient
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = Field(None, max_length=20)

    # Staff
    department: Optional[Department] = None
    position: Optional[str] = Field(None, max_length=100)
    employee_id: Optional[str] = Field(None, max_length=50)


class UserRegister(RoleProfileFields):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    role: RegistrableRole = "patient"

    @model_validator(mode="after")
    def check_staff_fields(self):
        if self.role == "staff":
            if not self.department:
                raise ValueError("Department is required for staff")
            if not self.position:
                raise ValueError("Position is required for staff")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class GoogleLogin(BaseModel):
    token: str = Field(..., min_length=1)


class GoogleSignup(GoogleLogin):
    role: RegistrableRole


class CompleteProfile(RoleProfileFields):
    profile_token: str
    role: RegistrableRole

    @model_validator(mode="after")
    def check_staff_fields(self):
        if self.role == "staff" and not (self.department and self.position):
            raise ValueError("Department and position are required for staff")
        return self


class PasswordReset(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6, max_length=72)


class ChangePassword(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=72)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    role: UserRole
    is_banned: bool
    profile_complete: bool
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class GoogleSignupResponse(BaseModel):
    user: UserResponse
    requires_additional_info: bool = False
    access_token: Optional[str] = None
    profile_token: Optional[str] = None
