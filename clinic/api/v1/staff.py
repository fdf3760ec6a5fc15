from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_staff_user, pagination_params
from ...models.user import User
from ...services.appointment_service import AppointmentService
from ...services.directory_service import DirectoryService
from ...services.email_service import EmailService, deliver_safely, get_email_service
from ...services.pagination import PageParams
from ...services.prescription_service import PrescriptionService
from ...services.user_service import UserService
from ...schemas.appointment import AppointmentResponse, AppointmentStatusUpdate, ScheduleRequest
from ...schemas.common import MessageResponse, Page
from ...schemas.prescription import PrescriptionCreate, PrescriptionResponse, PrescriptionUpdate
from ...schemas.stats import StaffStats
from ...schemas.user import PatientSummary, StaffProfileResponse, StaffProfileUpdate

router = APIRouter(prefix="/staff", tags=["Staff"])

@router.get("/profile", response_model=StaffProfileResponse)
async def get_profile(current_user: User = Depends(get_staff_user)):
    return StaffProfileResponse.from_user(current_user)

@router.patch("/profile", response_model=StaffProfileResponse)
async def update_profile(
    payload: StaffProfileUpdate,
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_staff_profile(current_user, payload)
    return StaffProfileResponse.from_user(user)

@router.get("/appointments", response_model=Page[AppointmentResponse])
async def list_appointments(
    status: Optional[str] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    """All appointments, optionally filtered by status or by upcoming/past."""
    return AppointmentService(db).list_appointments(params, status=status)

@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    appointment = AppointmentService(db).update_status(
        appointment_id, payload.status, notes=payload.notes
    )
    return AppointmentResponse.from_appointment(appointment)

@router.patch("/appointments/{appointment_id}/schedule", response_model=AppointmentResponse)
async def schedule_appointment(
    appointment_id: int,
    payload: ScheduleRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Pin the appointment to a time slot ("h:mm AM|PM") on its booked date."""
    appointment = AppointmentService(db).schedule_appointment(appointment_id, payload.slot)
    background_tasks.add_task(
        deliver_safely,
        email_service.send_appointment_confirmation,
        appointment.patient.email,
        appointment.doctor.name,
        appointment.date_time,
    )
    return AppointmentResponse.from_appointment(appointment)

@router.post("/prescriptions", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_prescription(
    payload: PrescriptionCreate,
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    prescription = PrescriptionService(db).create_prescription(payload)
    return PrescriptionResponse.from_prescription(prescription)

@router.get("/prescriptions", response_model=Page[PrescriptionResponse])
async def list_prescriptions(
    patient_id: Optional[int] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    return PrescriptionService(db).list_prescriptions(params, patient_id=patient_id)

@router.patch("/prescriptions/{prescription_id}", response_model=PrescriptionResponse)
async def update_prescription(
    prescription_id: int,
    payload: PrescriptionUpdate,
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    prescription = PrescriptionService(db).update_prescription(prescription_id, payload)
    return PrescriptionResponse.from_prescription(prescription)

@router.delete("/prescriptions/{prescription_id}", response_model=MessageResponse)
async def delete_prescription(
    prescription_id: int,
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    PrescriptionService(db).delete_prescription(prescription_id)
    return {"message": "Prescription deleted successfully"}

@router.get("/patients", response_model=Page[PatientSummary])
async def search_patients(
    name: Optional[str] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    return DirectoryService(db).search_patients(params, name=name)

@router.get("/stats", response_model=StaffStats)
async def get_stats(
    current_user: User = Depends(get_staff_user),
    db: Session = Depends(get_db),
):
    return DirectoryService(db).staff_stats()
