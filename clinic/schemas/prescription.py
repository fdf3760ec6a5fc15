from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class PrescriptionCreate(BaseModel):
    patient_id: int
    doctor_name: str = Field(..., min_length=1, max_length=255)
    illness_type: str = Field(..., min_length=1, max_length=255)
    image_url: Optional[str] = Field(None, max_length=512)


class PrescriptionUpdate(BaseModel):
    doctor_name: Optional[str] = Field(None, min_length=1, max_length=255)
    illness_type: Optional[str] = Field(None, min_length=1, max_length=255)
    image_url: Optional[str] = Field(None, max_length=512)


class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: Optional[str] = None
    doctor_name: str
    illness_type: str
    image_url: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_prescription(cls, prescription) -> "PrescriptionResponse":
        response = cls.model_validate(prescription)
        if prescription.patient is not None:
            response.patient_name = prescription.patient.name
        return response
