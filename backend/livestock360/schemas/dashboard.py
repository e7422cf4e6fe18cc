from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from livestock360.models.health_record import RecordType
from livestock360.schemas.animal import AnimalSummary
from livestock360.schemas.response import CamelModel


class AnimalCounts(CamelModel):
    total: int
    healthy: int = 0
    need_attention: int = 0
    critical: int = 0
    unknown: int = 0


class UpcomingVaccination(CamelModel):
    id: UUID
    animal: Optional[AnimalSummary] = None
    type: RecordType
    title: str
    due_date: Optional[date] = None
    days_until: int = 0
    status: Optional[str] = None


class Alerts(CamelModel):
    overdue_count: int
    needs_attention_count: int


class Activity(CamelModel):
    type: Literal["animal_added", "health_record_added"]
    data: Dict[str, Any]
    timestamp: Optional[datetime] = None


class HealthStatistics(CamelModel):
    total_health_records: int
    records_this_month: int


class DashboardOverview(CamelModel):
    animals: AnimalCounts
    upcoming_vaccinations: List[UpcomingVaccination]
    alerts: Alerts
    recent_activity: List[Activity]
    statistics: HealthStatistics
    needs_attention: List[AnimalSummary]
