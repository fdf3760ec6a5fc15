from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload
from datetime import datetime
from typing import List, Optional

from ..models import (
    User, Doctor, Appointment, AppointmentStatus, Prescription, Feedback,
    SpamFeedback, SpamStatus,
)
from ..core.exceptions import NotFoundError
from ..core.security import UserRole
from ..schemas.common import Page, StatValue
from ..schemas.stats import AdminDashboard, DoctorStats, PatientStats, StaffStats
from ..schemas.user import DoctorResponse, HistoryEntry, PatientSummary
from .pagination import PageParams, paginate


def _stat(value) -> StatValue:
    # Trend is reserved for a historical comparison and stays 0
    return StatValue(value=value or 0, trend=0)


class DirectoryService:
    """Read-only search and aggregate queries across roles."""

    def __init__(self, db: Session):
        self.db = db

    # Doctors

    def search_doctors(
        self,
        params: PageParams,
        specialty: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Page[DoctorResponse]:
        query = (
            self.db.query(User)
            .join(Doctor, Doctor.user_id == User.id)
            .options(joinedload(User.doctor))
            .filter(User.role == UserRole.DOCTOR, User.is_banned.is_(False))
        )
        if specialty:
            query = query.filter(Doctor.specialty.ilike(f"%{specialty}%"))
        if name:
            query = query.filter(User.name.ilike(f"%{name}%"))

        query = query.order_by(User.name.asc(), User.id.asc())
        return paginate(query, params, DoctorResponse.from_user)

    def get_doctor(self, doctor_id: int) -> User:
        doctor = (
            self.db.query(User)
            .join(Doctor, Doctor.user_id == User.id)
            .options(joinedload(User.doctor))
            .filter(User.id == doctor_id, User.role == UserRole.DOCTOR)
            .first()
        )
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    # Patients

    def search_patients(self, params: PageParams, name: Optional[str] = None) -> Page[PatientSummary]:
        query = self.db.query(User).filter(User.role == UserRole.PATIENT)
        if name:
            query = query.filter(User.name.ilike(f"%{name}%"))

        query = query.order_by(User.name.asc(), User.id.asc())
        return paginate(query, params, PatientSummary.model_validate)

    def doctor_patients(self, doctor: User, params: PageParams, search: Optional[str] = None) -> Page[PatientSummary]:
        """Distinct patients who have at least one appointment with ``doctor``."""
        patient_ids = select(Appointment.patient_id).where(
            Appointment.doctor_id == doctor.id
        ).distinct()

        query = self.db.query(User).filter(User.id.in_(patient_ids))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        query = query.order_by(User.name.asc(), User.id.asc())
        return paginate(query, params, PatientSummary.model_validate)

    def patient_history(self, doctor: User, patient_id: int) -> List[HistoryEntry]:
        """The doctor's appointments with a patient plus that patient's prescriptions."""
        patient = self.db.query(User).filter(
            User.id == patient_id, User.role == UserRole.PATIENT
        ).first()
        if not patient:
            raise NotFoundError("Patient not found")

        appointments = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor.id,
            Appointment.patient_id == patient_id,
        ).all()
        prescriptions = self.db.query(Prescription).filter(
            Prescription.patient_id == patient_id
        ).all()

        history = [
            HistoryEntry(
                id=appointment.id,
                type="appointment",
                date=appointment.date_time,
                description=f"Appointment - {appointment.status.value} - "
                            f"{appointment.issues or 'No issues specified'}",
            )
            for appointment in appointments
        ]
        history.extend(
            HistoryEntry(
                id=prescription.id,
                type="prescription",
                date=prescription.created_at,
                description=f"Prescription - {prescription.illness_type}",
                doctor_name=prescription.doctor_name,
                illness_type=prescription.illness_type,
                image_url=prescription.image_url,
            )
            for prescription in prescriptions
        )
        history.sort(key=lambda entry: entry.date, reverse=True)
        return history

    # Stats

    def doctor_stats(self, doctor: User) -> DoctorStats:
        total_appointments = self.db.query(func.count(Appointment.id)).filter(
            Appointment.doctor_id == doctor.id
        ).scalar()
        total_patients = self.db.query(func.count(func.distinct(Appointment.patient_id))).filter(
            Appointment.doctor_id == doctor.id
        ).scalar()
        # Prescriptions name their doctor in free text only
        total_prescriptions = self.db.query(func.count(Prescription.id)).filter(
            func.lower(Prescription.doctor_name) == doctor.name.lower()
        ).scalar()
        rating = doctor.doctor.rating if doctor.doctor else 0

        return DoctorStats(
            appointments=_stat(total_appointments),
            patients=_stat(total_patients),
            prescriptions=_stat(total_prescriptions),
            rating=_stat(rating),
        )

    def patient_stats(self, patient: User, now: Optional[datetime] = None) -> PatientStats:
        now = now or datetime.utcnow()
        total_appointments = self.db.query(func.count(Appointment.id)).filter(
            Appointment.patient_id == patient.id
        ).scalar()
        upcoming = self.db.query(func.count(Appointment.id)).filter(
            Appointment.patient_id == patient.id,
            Appointment.date_time >= now,
        ).scalar()
        prescriptions = self.db.query(func.count(Prescription.id)).filter(
            Prescription.patient_id == patient.id
        ).scalar()

        return PatientStats(
            appointments=_stat(total_appointments),
            upcoming_visits=_stat(upcoming),
            prescriptions=_stat(prescriptions),
        )

    def staff_stats(self) -> StaffStats:
        total_appointments = self.db.query(func.count(Appointment.id)).scalar()
        pending = self.db.query(func.count(Appointment.id)).filter(
            Appointment.status == AppointmentStatus.PENDING
        ).scalar()
        prescriptions = self.db.query(func.count(Prescription.id)).scalar()
        patients = self.db.query(func.count(User.id)).filter(User.role == UserRole.PATIENT).scalar()

        return StaffStats(
            appointments=_stat(total_appointments),
            pending_appointments=_stat(pending),
            prescriptions=_stat(prescriptions),
            patients=_stat(patients),
        )

    def admin_dashboard(self) -> AdminDashboard:
        def count_users(role: Optional[UserRole] = None) -> int:
            query = self.db.query(func.count(User.id))
            if role is not None:
                query = query.filter(User.role == role)
            return query.scalar()

        return AdminDashboard(
            user_count=count_users(),
            doctor_count=count_users(UserRole.DOCTOR),
            patient_count=count_users(UserRole.PATIENT),
            feedback_count=self.db.query(func.count(Feedback.id)).scalar(),
            spam_feedback_count=self.db.query(func.count(SpamFeedback.id)).filter(
                SpamFeedback.status == SpamStatus.PENDING
            ).scalar(),
        )
