from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ...core.database import get_db
from ...api.deps import get_patient_user, pagination_params
from ...models.user import User
from ...services.appointment_service import AppointmentService
from ...services.directory_service import DirectoryService
from ...services.email_service import EmailService, deliver_safely, get_email_service
from ...services.feedback_service import FeedbackService
from ...services.pagination import PageParams
from ...services.payment_service import (
    PaymentError, PaymentService, get_payment_service, to_minor_units,
)
from ...services.prescription_service import PrescriptionService
from ...services.user_service import UserService
from ...schemas.appointment import (
    AppointmentBucket, AppointmentCreate, AppointmentResponse, BookingResponse,
    PaymentConfirmation,
)
from ...schemas.common import Page
from ...schemas.feedback import FeedbackCreate, FeedbackResponse
from ...schemas.prescription import PrescriptionResponse
from ...schemas.stats import PatientStats
from ...schemas.user import DoctorResponse, PatientProfileResponse, PatientProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patient", tags=["Patient"])

@router.get("/profile", response_model=PatientProfileResponse)
async def get_profile(current_user: User = Depends(get_patient_user)):
    return PatientProfileResponse.from_user(current_user)

@router.patch("/profile", response_model=PatientProfileResponse)
async def update_profile(
    payload: PatientProfileUpdate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_patient_profile(current_user, payload)
    return PatientProfileResponse.from_user(user)

@router.get("/doctors", response_model=Page[DoctorResponse])
async def search_doctors(
    specialty: Optional[str] = None,
    name: Optional[str] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    """Search doctors by specialty and/or name (case-insensitive substring)."""
    return DirectoryService(db).search_doctors(params, specialty=specialty, name=name)

@router.get("/doctors/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: int,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    return DoctorResponse.from_user(DirectoryService(db).get_doctor(doctor_id))

@router.post("/appointments", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    payload: AppointmentCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
    payment_service: PaymentService = Depends(get_payment_service),
    email_service: EmailService = Depends(get_email_service),
):
    """Book an appointment and open a payment intent for the consultation fee."""
    service = AppointmentService(db)
    appointment = service.book_appointment(current_user, payload)

    client_secret = None
    amount = to_minor_units(appointment.doctor.doctor.consultation_fee)
    if amount > 0:
        try:
            intent = await payment_service.create_payment_intent(amount)
        except PaymentError:
            logger.exception("Could not create payment intent for appointment %s", appointment.id)
        else:
            appointment = service.attach_payment_intent(appointment, intent.id)
            client_secret = intent.client_secret
    else:
        logger.info("Doctor %s charges no fee, skipping payment intent", appointment.doctor_id)

    background_tasks.add_task(
        deliver_safely,
        email_service.send_new_appointment_notification,
        current_user.email,
        appointment.doctor.name,
        appointment.date_time,
    )

    return BookingResponse(
        appointment=AppointmentResponse.from_appointment(appointment),
        client_secret=client_secret,
    )

@router.get("/appointments", response_model=Page[AppointmentResponse])
async def list_appointments(
    status: Optional[AppointmentBucket] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    return AppointmentService(db).list_appointments(params, patient_id=current_user.id, status=status)

@router.patch("/appointments/{appointment_id}/payment", response_model=AppointmentResponse)
async def confirm_payment(
    appointment_id: int,
    payload: PaymentConfirmation,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    """Mark the appointment as paid once the provider confirmed the charge."""
    appointment = AppointmentService(db).confirm_payment(current_user, appointment_id, payload)
    return AppointmentResponse.from_appointment(appointment)

@router.post("/feedback", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    payload: FeedbackCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    feedback = FeedbackService(db).submit_feedback(current_user, payload)
    return FeedbackResponse.from_feedback(feedback)

@router.get("/feedback", response_model=Page[FeedbackResponse])
async def list_feedback(
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    return FeedbackService(db).list_feedback(params, patient_id=current_user.id)

@router.get("/prescriptions", response_model=Page[PrescriptionResponse])
async def list_prescriptions(
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    """The patient's medical records, newest first."""
    return PrescriptionService(db).list_prescriptions(params, patient_id=current_user.id)

@router.get("/stats", response_model=PatientStats)
async def get_stats(
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
):
    return DirectoryService(db).patient_stats(current_user)
