from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from livestock360.models.animal import AnimalGender, AnimalStatus, AnimalType
from livestock360.schemas.response import CamelModel, Pagination


class AnimalAge(CamelModel):
    years: int
    months: int
    total_months: int


class AnimalBase(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    tag_number: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = Field(None, max_length=200)
    type: AnimalType
    breed: Optional[str] = Field(None, max_length=200)
    gender: AnimalGender
    birth_date: date
    weight: Optional[float] = Field(None, ge=0)
    photo: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)


class AnimalCreate(AnimalBase):
    status: AnimalStatus = Field(AnimalStatus.HEALTHY, validate_default=True)


class AnimalUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    tag_number: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, max_length=200)
    type: Optional[AnimalType] = None
    breed: Optional[str] = Field(None, max_length=200)
    gender: Optional[AnimalGender] = None
    birth_date: Optional[date] = None
    weight: Optional[float] = Field(None, ge=0)
    photo: Optional[str] = Field(None, max_length=1000)
    status: Optional[AnimalStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AnimalSummary(CamelModel):
    """Subset of animal fields embedded in health records and dashboards."""

    id: UUID
    tag_number: str
    name: Optional[str] = None
    type: AnimalType
    photo: Optional[str] = None
    status: AnimalStatus


class AnimalResponse(AnimalBase):
    id: UUID
    user_id: UUID
    status: AnimalStatus
    is_active: bool
    last_checkup_date: Optional[date] = None
    age: Optional[AnimalAge] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AnimalPagination(Pagination):
    total_animals: int


class AnimalListResponse(CamelModel):
    animals: List[AnimalResponse]
    pagination: AnimalPagination


class RecentAnimal(AnimalSummary):
    created_at: Optional[datetime] = None


class AnimalStats(CamelModel):
    total_animals: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    recently_added: List[RecentAnimal]
