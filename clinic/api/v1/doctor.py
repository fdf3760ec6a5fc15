from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_doctor_user, pagination_params
from ...models.user import User
from ...services.appointment_service import AppointmentService
from ...services.directory_service import DirectoryService
from ...services.email_service import EmailService, deliver_safely, get_email_service
from ...services.feedback_service import FeedbackService
from ...services.pagination import PageParams
from ...services.user_service import UserService
from ...schemas.appointment import AppointmentBucket, AppointmentResponse, AppointmentStatusUpdate
from ...schemas.common import Page
from ...schemas.feedback import FeedbackResponse
from ...schemas.stats import DoctorStats
from ...schemas.user import (
    DoctorProfileResponse, DoctorProfileUpdate, HistoryEntry, PatientSummary,
)

router = APIRouter(prefix="/doctor", tags=["Doctor"])

@router.get("/profile", response_model=DoctorProfileResponse)
async def get_profile(current_user: User = Depends(get_doctor_user)):
    return DoctorProfileResponse.from_user(current_user)

@router.patch("/profile", response_model=DoctorProfileResponse)
async def update_profile(
    payload: DoctorProfileUpdate,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_doctor_profile(current_user, payload)
    return DoctorProfileResponse.from_user(user)

@router.get("/appointments", response_model=Page[AppointmentResponse])
async def list_appointments(
    status: Optional[AppointmentBucket] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
):
    """The doctor's own appointments, optionally only upcoming or past ones."""
    return AppointmentService(db).list_appointments(params, doctor_id=current_user.id, status=status)

@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Change the status of one of the doctor's appointments and notify the patient."""
    appointment = AppointmentService(db).update_status(
        appointment_id, payload.status, doctor=current_user, notes=payload.notes
    )
    background_tasks.add_task(
        deliver_safely,
        email_service.send_appointment_update,
        appointment.patient.email,
        appointment.status.value,
    )
    return AppointmentResponse.from_appointment(appointment)

@router.get("/stats", response_model=DoctorStats)
async def get_stats(
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
):
    return DirectoryService(db).doctor_stats(current_user)

@router.get("/patients", response_model=Page[PatientSummary])
async def list_patients(
    search: Optional[str] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
):
    """Patients who have booked with this doctor."""
    return DirectoryService(db).doctor_patients(current_user, params, search=search)

@router.get("/patients/{patient_id}/history", response_model=List[HistoryEntry])
async def patient_history(
    patient_id: int,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
):
    return DirectoryService(db).patient_history(current_user, patient_id)

@router.get("/feedback", response_model=Page[FeedbackResponse])
async def list_feedback(
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db),
):
    return FeedbackService(db).list_feedback(params, doctor_id=current_user.id)
