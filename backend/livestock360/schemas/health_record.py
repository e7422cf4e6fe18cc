import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from livestock360.models.health_record import RecordStatus, RecordType
from livestock360.schemas.animal import AnimalSummary
from livestock360.schemas.response import CamelModel, Pagination


class DaysUntilDue(CamelModel):
    days: int
    is_overdue: bool
    is_due_today: bool
    is_due_soon: bool


class HealthRecordBase(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: RecordType
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=2000)
    date: Optional[dt.date] = None
    next_due_date: Optional[dt.date] = None
    veterinarian: Optional[str] = Field(None, max_length=200)
    cost: Optional[float] = Field(None, ge=0)
    medicine: Optional[str] = Field(None, max_length=300)
    dosage: Optional[str] = Field(None, max_length=300)
    photo: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)


class HealthRecordCreate(HealthRecordBase):
    animal_id: UUID
    status: Optional[RecordStatus] = None


class HealthRecordUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[RecordType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=2000)
    date: Optional[dt.date] = None
    next_due_date: Optional[dt.date] = None
    veterinarian: Optional[str] = Field(None, max_length=200)
    cost: Optional[float] = Field(None, ge=0)
    medicine: Optional[str] = Field(None, max_length=300)
    dosage: Optional[str] = Field(None, max_length=300)
    photo: Optional[str] = Field(None, max_length=1000)
    status: Optional[RecordStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)


class HealthRecordResponse(HealthRecordBase):
    id: UUID
    animal_id: UUID
    user_id: UUID
    date: dt.date
    status: RecordStatus
    animal: Optional[AnimalSummary] = None
    days_until_due: Optional[DaysUntilDue] = None
    is_overdue: bool = False
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class RecordPagination(Pagination):
    total_records: int


class HealthRecordListResponse(CamelModel):
    records: List[HealthRecordResponse]
    pagination: RecordPagination


class AnimalHealthSummary(CamelModel):
    total_records: int
    last_checkup: Optional[dt.date] = None
    next_vaccination: Optional[dt.date] = None


class AnimalHealthHistory(CamelModel):
    animal: AnimalSummary
    records: List[HealthRecordResponse]
    summary: AnimalHealthSummary


class UpcomingCounts(CamelModel):
    due_today: int
    due_this_week: int
    due_this_month: int
    overdue: int


class UpcomingRecords(CamelModel):
    upcoming: List[HealthRecordResponse]
    overdue: List[HealthRecordResponse]
    counts: UpcomingCounts
