from pydantic import BaseModel

from .common import StatValue


class DoctorStats(BaseModel):
    appointments: StatValue
    patients: StatValue
    prescriptions: StatValue
    rating: StatValue


class PatientStats(BaseModel):
    appointments: StatValue
    upcoming_visits: StatValue
    prescriptions: StatValue


class StaffStats(BaseModel):
    appointments: StatValue
    pending_appointments: StatValue
    prescriptions: StatValue
    patients: StatValue


class AdminDashboard(BaseModel):
    user_count: int
    doctor_count: int
    patient_count: int
    feedback_count: int
    spam_feedback_count: int
