from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from ..core.security import UserRole
from ..models.staff import Department


class DoctorResponse(BaseModel):
    """Doctor as listed in the public directory."""
    id: int
    name: str
    email: EmailStr
    specialty: str
    qualifications: List[str] = []
    experience: int = 0
    consultation_fee: float = 0
    rating: float = 0
    total_ratings: int = 0
    profile_picture: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "DoctorResponse":
        doctor = user.doctor
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            specialty=doctor.specialty,
            qualifications=doctor.qualifications or [],
            experience=doctor.experience or 0,
            consultation_fee=doctor.consultation_fee or 0,
            rating=doctor.rating or 0,
            total_ratings=doctor.total_ratings or 0,
            profile_picture=user.profile_picture,
        )


class DoctorProfileResponse(DoctorResponse):
    """The doctor's own view, with registration details."""
    registration_number: Optional[str] = None
    profile_complete: bool = True

    @classmethod
    def from_user(cls, user) -> "DoctorProfileResponse":
        return cls(
            **DoctorResponse.from_user(user).model_dump(),
            registration_number=user.doctor.registration_number,
            profile_complete=user.profile_complete,
        )


class PatientProfileResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "PatientProfileResponse":
        patient = user.patient
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            date_of_birth=patient.date_of_birth if patient else None,
            gender=patient.gender if patient else None,
        )


class StaffProfileResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    department: Department
    position: str
    employee_id: str
    date_of_joining: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "StaffProfileResponse":
        staff = user.staff
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            department=staff.department,
            position=staff.position,
            employee_id=staff.employee_id,
            date_of_joining=staff.date_of_joining,
        )


class PatientProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = Field(None, max_length=20)


class DoctorProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    specialty: Optional[str] = Field(None, min_length=1, max_length=100)
    qualifications: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    profile_picture: Optional[str] = Field(None, max_length=512)


class StaffProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[Department] = None
    position: Optional[str] = Field(None, min_length=1, max_length=100)


class AdminUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    role: UserRole
    is_banned: bool
    created_at: Optional[datetime] = None


class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr


class HistoryEntry(BaseModel):
    id: int
    type: str
    date: datetime
    description: str
    doctor_name: Optional[str] = None
    illness_type: Optional[str] = None
    image_url: Optional[str] = None
