from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Float, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Professional information
    specialty = Column(String(100), nullable=False, index=True)
    qualifications = Column(JSON, nullable=False, default=list)
    experience = Column(Integer, nullable=False, default=0)
    registration_number = Column(String(50), nullable=True)
    consultation_fee = Column(Float, nullable=False, default=0.0)

    # Aggregate rating, updated atomically on every feedback submission
    rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")

    def __repr__(self):
        return f"<Doctor(id={self.id}, user_id={self.user_id}, specialty='{self.specialty}')>"
