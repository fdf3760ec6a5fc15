from .user import User
from .doctor import Doctor
from .patient import Patient
from .staff import Staff, Department
from .appointment import Appointment, AppointmentStatus, PaymentStatus
from .prescription import Prescription
from .feedback import Feedback, SpamFeedback, SpamStatus

__all__ = [
    "User",
    "Doctor",
    "Patient",
    "Staff",
    "Department",
    "Appointment",
    "AppointmentStatus",
    "PaymentStatus",
    "Prescription",
    "Feedback",
    "SpamFeedback",
    "SpamStatus",
]
