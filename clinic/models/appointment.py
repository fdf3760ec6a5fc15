from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    RESCHEDULED = "Rescheduled"
    CONFIRMED = "Confirmed"

class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    REFUNDED = "Refunded"

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Both sides reference the shared users table
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Appointment details
    date_time = Column(DateTime, nullable=False, index=True)
    issues = Column(Text, nullable=False, default="")
    notes = Column(Text, nullable=True)
    status = Column(
        SQLEnum(AppointmentStatus, values_callable=_enum_values),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )

    # Payment tracking
    payment_status = Column(
        SQLEnum(PaymentStatus, values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_intent_id = Column(String(255), nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.date_time}')>"
