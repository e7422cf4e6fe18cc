from enum import Enum
from typing import Dict, Optional, Union

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from livestock360.core.database import Base, utcnow

DUE_SOON_DAYS = 7


class RecordType(str, Enum):
    VACCINATION = "Vaccination"
    TREATMENT = "Treatment"
    CHECKUP = "Checkup"
    DEWORMING = "Deworming"
    SURGERY = "Surgery"
    OTHER = "Other"


class RecordStatus(str, Enum):
    COMPLETED = "Completed"
    SCHEDULED = "Scheduled"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class HealthRecord(Base):
    __tablename__ = 'health_records'
    __table_args__ = (
        Index('ix_health_records_animal_date', 'animal_id', 'date'),
        Index('ix_health_records_user_due', 'user_id', 'next_due_date'),
        Index('ix_health_records_due_status', 'next_due_date', 'status'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    animal_id = Column(Uuid, ForeignKey('animals.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = Column(String(20), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    description = Column(String(2000))
    date = Column(Date, nullable=False, default=lambda: utcnow().date(), index=True)
    next_due_date = Column(Date, index=True)
    veterinarian = Column(String(200))
    cost = Column(Float)
    medicine = Column(String(300))
    dosage = Column(String(300))
    photo = Column(String(1000))
    status = Column(String(20), nullable=False, default=RecordStatus.COMPLETED.value, index=True)
    notes = Column(String(1000))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    animal = relationship('Animal', back_populates='health_records')

    @property
    def days_until_due(self) -> Optional[Dict[str, Union[int, bool]]]:
        if not self.next_due_date:
            return None

        days = (self.next_due_date - utcnow().date()).days
        return {
            "days": days,
            "is_overdue": days < 0,
            "is_due_today": days == 0,
            "is_due_soon": 0 < days <= DUE_SOON_DAYS,
        }

    @property
    def is_overdue(self) -> bool:
        if not self.next_due_date:
            return False
        return utcnow().date() > self.next_due_date and self.status == RecordStatus.SCHEDULED.value

    def __repr__(self):
        return f"<HealthRecord animal={self.animal_id} type={self.type}>"
