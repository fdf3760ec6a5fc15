from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from typing import Optional
import logging

from ..models import User, Doctor, Appointment, Feedback, SpamFeedback, SpamStatus
from ..core.exceptions import (
    AuthorizationError, ConflictError, InvalidInputError, NotFoundError,
)
from ..core.security import UserRole
from ..schemas.common import Page
from ..schemas.feedback import (
    FeedbackCreate, FeedbackResponse, SpamReportCreate, SpamReportResolve,
    SpamReportResponse,
)
from .pagination import PageParams, paginate

logger = logging.getLogger(__name__)

# Reports in these states hide their feedback from the admin feed
HIDING_SPAM_STATUSES = (SpamStatus.PENDING, SpamStatus.RESOLVED)

class FeedbackService:
    def __init__(self, db: Session):
        self.db = db

    def _feedback_query(self):
        return self.db.query(Feedback).options(
            joinedload(Feedback.doctor),
            joinedload(Feedback.patient),
        )

    def _report_query(self):
        return self.db.query(SpamFeedback).options(
            joinedload(SpamFeedback.feedback).joinedload(Feedback.doctor),
            joinedload(SpamFeedback.feedback).joinedload(Feedback.patient),
            joinedload(SpamFeedback.reporter),
        )

    def get_feedback(self, feedback_id: int) -> Feedback:
        feedback = self._feedback_query().filter(Feedback.id == feedback_id).first()
        if not feedback:
            raise NotFoundError("Feedback not found")
        return feedback

    def submit_feedback(self, patient: User, data: FeedbackCreate) -> Feedback:
        """Store a rating and fold it into the doctor's running average."""
        doctor = (
            self.db.query(User)
            .filter(User.id == data.doctor_id, User.role == UserRole.DOCTOR)
            .first()
        )
        if not doctor:
            raise NotFoundError("Doctor not found")

        appointment = self.db.query(Appointment).filter(Appointment.id == data.appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        if appointment.patient_id != patient.id:
            raise AuthorizationError("Appointment belongs to another patient")
        if appointment.doctor_id != doctor.id:
            raise InvalidInputError("Appointment is not with this doctor")

        feedback = Feedback(
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_id=appointment.id,
            rating=data.rating,
            comment=data.comment,
        )
        self.db.add(feedback)

        try:
            self.db.flush()
            self._record_rating(doctor.id, data.rating)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Patient %s rated doctor %s with %s", patient.id, doctor.id, data.rating)
        return self.get_feedback(feedback.id)

    def _record_rating(self, doctor_id: int, rating: int) -> None:
        """Single UPDATE statement so concurrent submissions never lose a rating.

        Every SET expression reads the pre-update row, so the new average is
        computed from the same ``total_ratings`` that gets incremented.
        """
        updated = (
            self.db.query(Doctor)
            .filter(Doctor.user_id == doctor_id)
            .update(
                {
                    Doctor.rating: (Doctor.rating * Doctor.total_ratings + rating)
                    / (Doctor.total_ratings + 1.0),
                    Doctor.total_ratings: Doctor.total_ratings + 1,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            raise NotFoundError("Doctor profile not found")

    def list_feedback(
        self,
        params: PageParams,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
    ) -> Page[FeedbackResponse]:
        query = self._feedback_query()
        if doctor_id is not None:
            query = query.filter(Feedback.doctor_id == doctor_id)
        if patient_id is not None:
            query = query.filter(Feedback.patient_id == patient_id)

        query = query.order_by(Feedback.created_at.desc(), Feedback.id.desc())
        return paginate(query, params, FeedbackResponse.from_feedback)

    def list_admin_feed(self, params: PageParams) -> Page[FeedbackResponse]:
        """All feedback except items under a Pending or Resolved spam report."""
        hidden_ids = [
            feedback_id
            for (feedback_id,) in self.db.query(SpamFeedback.feedback_id)
            .filter(SpamFeedback.status.in_(HIDING_SPAM_STATUSES))
            .all()
        ]

        query = self._feedback_query()
        if hidden_ids:
            query = query.filter(Feedback.id.notin_(hidden_ids))

        query = query.order_by(Feedback.created_at.desc(), Feedback.id.desc())
        return paginate(query, params, FeedbackResponse.from_feedback)

    def moderate_feedback(self, feedback_id: int, is_moderated: bool) -> Feedback:
        feedback = self.get_feedback(feedback_id)
        feedback.is_moderated = is_moderated
        self.db.commit()
        self.db.refresh(feedback)
        return feedback

    def report_spam(self, reporter: User, data: SpamReportCreate) -> SpamFeedback:
        """File a spam report; the unique constraint on feedback_id is authoritative."""
        self.get_feedback(data.feedback_id)

        # Fast path only; two racing reports still collide on the constraint
        if self._existing_report(data.feedback_id):
            raise ConflictError("This feedback has already been reported")

        report = SpamFeedback(
            feedback_id=data.feedback_id,
            reported_by=reporter.id,
            reason=data.reason,
            status=SpamStatus.PENDING,
        )
        self.db.add(report)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("This feedback has already been reported")

        logger.info("User %s reported feedback %s as spam", reporter.id, data.feedback_id)
        return self.get_report(report.id)

    def _existing_report(self, feedback_id: int) -> Optional[SpamFeedback]:
        return self.db.query(SpamFeedback).filter(
            SpamFeedback.feedback_id == feedback_id
        ).first()

    def get_report(self, report_id: int) -> SpamFeedback:
        report = self._report_query().filter(SpamFeedback.id == report_id).first()
        if not report:
            raise NotFoundError("Spam report not found")
        return report

    def resolve_report(self, report_id: int, data: SpamReportResolve) -> SpamFeedback:
        report = self.get_report(report_id)
        report.status = data.status
        report.resolution = data.resolution
        self.db.commit()
        return self.get_report(report.id)

    def list_reports(self, params: PageParams) -> Page[SpamReportResponse]:
        query = self._report_query().order_by(SpamFeedback.created_at.desc(), SpamFeedback.id.desc())
        return paginate(query, params, SpamReportResponse.from_report)
