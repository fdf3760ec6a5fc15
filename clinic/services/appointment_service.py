from sqlalchemy.orm import Session, joinedload
from datetime import datetime
from typing import Optional
import logging

from ..models import User, Doctor, Appointment, AppointmentStatus, PaymentStatus
from ..core.exceptions import AuthorizationError, InvalidInputError, NotFoundError
from ..core.security import UserRole
from ..schemas.appointment import AppointmentCreate, AppointmentResponse, PaymentConfirmation
from ..schemas.common import Page
from .pagination import PageParams, paginate
from .scheduling import apply_slot

logger = logging.getLogger(__name__)

# Appointments in these states never count as upcoming
CLOSED_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.doctor).joinedload(User.doctor),
            joinedload(Appointment.patient),
        )

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self._query().filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def get_doctor(self, doctor_id: int) -> User:
        doctor = (
            self.db.query(User)
            .join(Doctor, Doctor.user_id == User.id)
            .filter(User.id == doctor_id, User.role == UserRole.DOCTOR)
            .first()
        )
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def book_appointment(self, patient: User, data: AppointmentCreate) -> Appointment:
        """Create a Pending appointment; the payment intent is attached afterwards."""
        doctor = self.get_doctor(data.doctor_id)

        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            date_time=data.date_time,
            issues=data.issues or "",
            status=AppointmentStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
        )
        self.db.add(appointment)
        self.db.commit()

        logger.info("Patient %s booked appointment %s with doctor %s", patient.id, appointment.id, doctor.id)
        return self.get_appointment(appointment.id)

    def attach_payment_intent(self, appointment: Appointment, payment_intent_id: str) -> Appointment:
        appointment.payment_intent_id = payment_intent_id
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def confirm_payment(self, patient: User, appointment_id: int, confirmation: PaymentConfirmation) -> Appointment:
        appointment = self.get_appointment(appointment_id)

        if appointment.patient_id != patient.id:
            raise AuthorizationError("Unauthorized")

        if confirmation.status.lower() != "succeeded":
            raise InvalidInputError(f"Payment has not succeeded (status: {confirmation.status})")

        appointment.payment_status = PaymentStatus.PAID
        appointment.status = AppointmentStatus.PENDING
        appointment.payment_intent_id = confirmation.payment_intent_id
        self.db.commit()
        self.db.refresh(appointment)

        logger.info("Payment confirmed for appointment %s", appointment.id)
        return appointment

    def schedule_appointment(self, appointment_id: int, slot: str) -> Appointment:
        """Move the appointment to ``slot`` on its existing date and mark it Scheduled."""
        appointment = self.get_appointment(appointment_id)

        appointment.date_time = apply_slot(appointment.date_time, slot)
        appointment.status = AppointmentStatus.SCHEDULED
        self.db.commit()
        self.db.refresh(appointment)

        return appointment

    def update_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        doctor: Optional[User] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Set any enumerated status; no transition rules are enforced.

        When ``doctor`` is given only that doctor's appointments are visible.
        """
        appointment = self.get_appointment(appointment_id)
        if doctor is not None and appointment.doctor_id != doctor.id:
            raise NotFoundError("Appointment not found")

        appointment.status = status
        if notes is not None:
            appointment.notes = notes
        self.db.commit()
        self.db.refresh(appointment)

        return appointment

    def list_appointments(
        self,
        params: PageParams,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Page[AppointmentResponse]:
        """List appointments by owner and by temporal bucket or exact status."""
        now = now or datetime.utcnow()
        query = self._query()

        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)

        if status == "upcoming":
            query = query.filter(
                Appointment.date_time >= now,
                Appointment.status.notin_(CLOSED_STATUSES),
            )
        elif status == "past":
            query = query.filter(Appointment.date_time < now)
        elif status:
            try:
                query = query.filter(Appointment.status == AppointmentStatus(status))
            except ValueError:
                raise InvalidInputError(f"Unknown appointment status '{status}'")

        query = query.order_by(Appointment.date_time.asc(), Appointment.id.asc())
        return paginate(query, params, AppointmentResponse.from_appointment)
