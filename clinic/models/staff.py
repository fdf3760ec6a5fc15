from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class Department(str, enum.Enum):
    RECEPTION = "Reception"
    PHARMACY = "Pharmacy"
    LAB = "Lab"
    NURSING = "Nursing"
    ADMINISTRATION = "Administration"

class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    department = Column(SQLEnum(Department, values_callable=lambda e: [m.value for m in e]), nullable=False)
    position = Column(String(100), nullable=False)
    employee_id = Column(String(50), unique=True, nullable=False)
    date_of_joining = Column(DateTime, server_default=func.now())

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="staff")

    def __repr__(self):
        return f"<Staff(id={self.id}, employee_id='{self.employee_id}', department='{self.department}')>"
