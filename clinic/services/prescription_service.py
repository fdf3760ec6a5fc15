from sqlalchemy.orm import Session, joinedload
from typing import Optional
import logging

from ..models import User, Prescription
from ..core.exceptions import NotFoundError
from ..core.security import UserRole
from ..schemas.common import Page
from ..schemas.prescription import PrescriptionCreate, PrescriptionResponse, PrescriptionUpdate
from .pagination import PageParams, paginate

logger = logging.getLogger(__name__)

class PrescriptionService:
    def __init__(self, db: Session):
        self.db = db

    def get_prescription(self, prescription_id: int) -> Prescription:
        prescription = (
            self.db.query(Prescription)
            .options(joinedload(Prescription.patient))
            .filter(Prescription.id == prescription_id)
            .first()
        )
        if not prescription:
            raise NotFoundError("Prescription not found")
        return prescription

    def create_prescription(self, data: PrescriptionCreate) -> Prescription:
        patient = self.db.query(User).filter(
            User.id == data.patient_id, User.role == UserRole.PATIENT
        ).first()
        if not patient:
            raise NotFoundError("Patient not found")

        prescription = Prescription(
            patient_id=patient.id,
            doctor_name=data.doctor_name,
            illness_type=data.illness_type,
            image_url=data.image_url,
        )
        self.db.add(prescription)
        self.db.commit()

        logger.info("Prescription %s recorded for patient %s", prescription.id, patient.id)
        return self.get_prescription(prescription.id)

    def update_prescription(self, prescription_id: int, data: PrescriptionUpdate) -> Prescription:
        prescription = self.get_prescription(prescription_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(prescription, field, value)

        self.db.commit()
        return self.get_prescription(prescription.id)

    def delete_prescription(self, prescription_id: int) -> None:
        prescription = self.get_prescription(prescription_id)
        self.db.delete(prescription)
        self.db.commit()
        logger.info("Prescription %s deleted", prescription_id)

    def list_prescriptions(self, params: PageParams, patient_id: Optional[int] = None) -> Page[PrescriptionResponse]:
        query = self.db.query(Prescription).options(joinedload(Prescription.patient))
        if patient_id is not None:
            query = query.filter(Prescription.patient_id == patient_id)

        query = query.order_by(Prescription.created_at.desc(), Prescription.id.desc())
        return paginate(query, params, PrescriptionResponse.from_prescription)
