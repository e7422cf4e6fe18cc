from enum import Enum
from typing import Dict, Optional

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from livestock360.core.database import Base, utcnow


class AnimalType(str, Enum):
    COW = "Cow"
    BUFFALO = "Buffalo"
    GOAT = "Goat"
    SHEEP = "Sheep"
    CAMEL = "Camel"
    OTHER = "Other"


class AnimalGender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class AnimalStatus(str, Enum):
    HEALTHY = "Healthy"
    ATTENTION = "Attention"
    CRITICAL = "Critical"
    UNKNOWN = "Unknown"


class Animal(Base):
    __tablename__ = 'animals'
    __table_args__ = (
        Index('ix_animals_user_type', 'user_id', 'type'),
        Index('ix_animals_user_status', 'user_id', 'status'),
        Index('ix_animals_user_active', 'user_id', 'is_active'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    tag_number = Column(String(100), nullable=False, index=True)
    name = Column(String(200))
    type = Column(String(20), nullable=False, index=True)
    breed = Column(String(200))
    gender = Column(String(10), nullable=False)
    birth_date = Column(Date, nullable=False, index=True)
    weight = Column(Float)
    photo = Column(String(1000))
    status = Column(String(20), nullable=False, default=AnimalStatus.UNKNOWN.value, index=True)
    notes = Column(String(1000))
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_checkup_date = Column(Date)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    owner = relationship('User', back_populates='animals')
    health_records = relationship('HealthRecord', back_populates='animal', cascade='all, delete-orphan')

    @property
    def age(self) -> Optional[Dict[str, int]]:
        """Age in whole years and months, ignoring the day of month."""
        if not self.birth_date:
            return None

        today = utcnow().date()
        years = today.year - self.birth_date.year
        months = today.month - self.birth_date.month
        if months < 0:
            years -= 1
            months += 12

        return {
            "years": years,
            "months": months,
            "total_months": years * 12 + months,
        }

    def __repr__(self):
        return f"<Animal {self.tag_number}>"
