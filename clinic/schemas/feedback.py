from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ..models.feedback import SpamStatus


class FeedbackCreate(BaseModel):
    doctor_id: int
    appointment_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class FeedbackResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    appointment_id: int
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    is_moderated: bool
    created_at: datetime

    @classmethod
    def from_feedback(cls, feedback) -> "FeedbackResponse":
        return cls(
            id=feedback.id,
            doctor_id=feedback.doctor_id,
            patient_id=feedback.patient_id,
            appointment_id=feedback.appointment_id,
            doctor_name=feedback.doctor.name if feedback.doctor else None,
            patient_name=feedback.patient.name if feedback.patient else None,
            rating=feedback.rating,
            comment=feedback.comment,
            is_moderated=feedback.is_moderated,
            created_at=feedback.created_at,
        )


class ModerateFeedback(BaseModel):
    is_moderated: bool


class SpamReportCreate(BaseModel):
    feedback_id: int
    reason: str = Field(..., min_length=1, max_length=500)


class SpamReportResolve(BaseModel):
    status: SpamStatus
    resolution: Optional[str] = Field(None, max_length=2000)


class SpamReportResponse(BaseModel):
    id: int
    feedback_id: int
    reported_by: int
    reporter_name: Optional[str] = None
    reason: str
    status: SpamStatus
    resolution: Optional[str] = None
    feedback: Optional[FeedbackResponse] = None
    created_at: datetime

    @classmethod
    def from_report(cls, report) -> "SpamReportResponse":
        return cls(
            id=report.id,
            feedback_id=report.feedback_id,
            reported_by=report.reported_by,
            reporter_name=report.reporter.name if report.reporter else None,
            reason=report.reason,
            status=report.status,
            resolution=report.resolution,
            feedback=FeedbackResponse.from_feedback(report.feedback) if report.feedback else None,
            created_at=report.created_at,
        )
