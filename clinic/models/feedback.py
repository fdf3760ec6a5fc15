from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Boolean, Text,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ..core.database import Base

class SpamStatus(str, enum.Enum):
    PENDING = "Pending"
    RESOLVED = "Resolved"
    DISMISSED = "Dismissed"

class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    is_moderated = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])
    appointment = relationship("Appointment")

    def __repr__(self):
        return f"<Feedback(id={self.id}, doctor_id={self.doctor_id}, rating={self.rating})>"

class SpamFeedback(Base):
    __tablename__ = "spam_feedback"
    __table_args__ = (
        UniqueConstraint("feedback_id", name="uq_spam_feedback_feedback_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    feedback_id = Column(Integer, ForeignKey("feedback.id"), nullable=False)
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    reason = Column(String(500), nullable=False)
    status = Column(
        SQLEnum(SpamStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SpamStatus.PENDING,
        index=True,
    )
    resolution = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    feedback = relationship("Feedback")
    reporter = relationship("User")

    def __repr__(self):
        return f"<SpamFeedback(id={self.id}, feedback_id={self.feedback_id}, status='{self.status}')>"
