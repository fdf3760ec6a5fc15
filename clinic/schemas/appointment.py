from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional
from datetime import datetime, timezone

from ..models.appointment import AppointmentStatus, PaymentStatus


def to_naive_utc(value: datetime) -> datetime:
    """Store every timestamp as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class AppointmentCreate(BaseModel):
    doctor_id: int
    date_time: datetime
    issues: str = Field("", max_length=2000)

    @field_validator("date_time")
    @classmethod
    def normalize_date_time(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class PaymentConfirmation(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)
    status: str = "succeeded"


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    # Clinical notes; omitted keeps the stored value
    notes: Optional[str] = Field(None, max_length=2000)


class ScheduleRequest(BaseModel):
    slot: str = Field(..., min_length=1, description="Time of day, e.g. '2:30 PM'")


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    patient_name: Optional[str] = None
    date_time: datetime
    issues: str
    notes: Optional[str] = None
    status: AppointmentStatus
    payment_status: PaymentStatus
    payment_intent_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_appointment(cls, appointment) -> "AppointmentResponse":
        doctor = appointment.doctor
        return cls(
            id=appointment.id,
            doctor_id=appointment.doctor_id,
            patient_id=appointment.patient_id,
            doctor_name=doctor.name if doctor else None,
            doctor_specialty=doctor.doctor.specialty if doctor and doctor.doctor else None,
            patient_name=appointment.patient.name if appointment.patient else None,
            date_time=appointment.date_time,
            issues=appointment.issues or "",
            notes=appointment.notes,
            status=appointment.status,
            payment_status=appointment.payment_status,
            payment_intent_id=appointment.payment_intent_id,
            created_at=appointment.created_at,
        )


class BookingResponse(BaseModel):
    appointment: AppointmentResponse
    client_secret: Optional[str] = None


AppointmentBucket = Literal["upcoming", "past"]
