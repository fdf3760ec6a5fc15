from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from ..core.database import Base

class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Free text, not a reference to a doctor account
    doctor_name = Column(String(255), nullable=False)
    illness_type = Column(String(255), nullable=False)
    image_url = Column(String(512), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    patient = relationship("User")

    def __repr__(self):
        return f"<Prescription(id={self.id}, patient_id={self.patient_id}, illness='{self.illness_type}')>"
