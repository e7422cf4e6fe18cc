"""Dashboard aggregation endpoint."""
import logging
from datetime import datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from livestock360.api import deps
from livestock360.core.database import get_db, utcnow
from livestock360.models.animal import Animal, AnimalStatus
from livestock360.models.health_record import HealthRecord, RecordStatus, RecordType
from livestock360.models.user import User
from livestock360.schemas.animal import AnimalSummary
from livestock360.schemas.dashboard import (
    Activity,
    Alerts,
    AnimalCounts,
    DashboardOverview,
    HealthStatistics,
    UpcomingVaccination,
)
from livestock360.schemas.response import ApiResponse, ok

router = APIRouter()
logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 30
UPCOMING_LIMIT = 5
RECENT_LIMIT = 5
ACTIVITY_LIMIT = 10
NEEDS_ATTENTION_LIMIT = 3

STATUS_COUNT_FIELDS = {
    AnimalStatus.HEALTHY.value: "healthy",
    AnimalStatus.ATTENTION.value: "need_attention",
    AnimalStatus.CRITICAL.value: "critical",
    AnimalStatus.UNKNOWN.value: "unknown",
}


@router.get("/overview", response_model=ApiResponse[DashboardOverview])
async def get_dashboard_overview(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[DashboardOverview]:
    """
    Everything the home screen shows in one round trip.

    Returns:
        ApiResponse[DashboardOverview]: herd counts by status, vaccinations
        due in the next 30 days, overdue and attention alerts, the ten most
        recent additions, record statistics and up to three animals that
        need attention.
    """
    today = utcnow().date()
    active_animals = (Animal.user_id == current_user.id, Animal.is_active.is_(True))

    # 1. Animal statistics
    total_result = await db.execute(select(func.count()).select_from(Animal).where(*active_animals))
    status_result = await db.execute(
        select(Animal.status, func.count()).where(*active_animals).group_by(Animal.status)
    )
    counts = AnimalCounts(total=total_result.scalar() or 0)
    for animal_status, count in status_result.all():
        field = STATUS_COUNT_FIELDS.get(animal_status)
        if field:
            setattr(counts, field, count)

    # 2. Vaccinations due in the next month
    upcoming_result = await db.execute(
        select(HealthRecord)
        .options(selectinload(HealthRecord.animal))
        .where(
            HealthRecord.user_id == current_user.id,
            HealthRecord.status == RecordStatus.SCHEDULED.value,
            HealthRecord.type == RecordType.VACCINATION.value,
            HealthRecord.next_due_date >= today,
            HealthRecord.next_due_date <= today + timedelta(days=UPCOMING_WINDOW_DAYS)
        )
        .order_by(HealthRecord.next_due_date.asc())
        .limit(UPCOMING_LIMIT)
    )
    upcoming = [
        UpcomingVaccination(
            id=record.id,
            animal=AnimalSummary.model_validate(record.animal) if record.animal else None,
            type=record.type,
            title=record.title,
            due_date=record.next_due_date,
            days_until=(record.next_due_date - today).days if record.next_due_date else 0,
            status=record.animal.status if record.animal else None
        )
        for record in upcoming_result.scalars().all()
    ]

    # 3. Overdue items
    overdue_result = await db.execute(
        select(func.count()).select_from(HealthRecord).where(
            HealthRecord.user_id == current_user.id,
            HealthRecord.status == RecordStatus.SCHEDULED.value,
            HealthRecord.next_due_date < today
        )
    )

    # 4. Recent activity across animals and health records
    recent_animals = await db.execute(
        select(Animal).where(*active_animals).order_by(Animal.created_at.desc()).limit(RECENT_LIMIT)
    )
    recent_records = await db.execute(
        select(HealthRecord)
        .options(selectinload(HealthRecord.animal))
        .where(HealthRecord.user_id == current_user.id)
        .order_by(HealthRecord.created_at.desc())
        .limit(RECENT_LIMIT)
    )
    activity = [
        Activity(
            type="animal_added",
            data={
                "tagNumber": animal.tag_number,
                "name": animal.name,
                "animalType": animal.type,
                "photo": animal.photo,
            },
            timestamp=animal.created_at
        )
        for animal in recent_animals.scalars().all()
    ] + [
        Activity(
            type="health_record_added",
            data={
                "recordType": record.type,
                "title": record.title,
                "animal": {
                    "tagNumber": record.animal.tag_number,
                    "name": record.animal.name,
                } if record.animal else None,
            },
            timestamp=record.created_at
        )
        for record in recent_records.scalars().all()
    ]
    activity.sort(key=lambda item: item.timestamp.timestamp() if item.timestamp else 0, reverse=True)

    # 5. Health statistics
    total_records_result = await db.execute(
        select(func.count()).select_from(HealthRecord).where(HealthRecord.user_id == current_user.id)
    )
    month_start = datetime.combine(today.replace(day=1), time.min, tzinfo=timezone.utc)
    month_records_result = await db.execute(
        select(func.count()).select_from(HealthRecord).where(
            HealthRecord.user_id == current_user.id,
            HealthRecord.created_at >= month_start
        )
    )

    # 6. Animals needing attention
    attention_result = await db.execute(
        select(Animal)
        .where(
            *active_animals,
            Animal.status.in_([AnimalStatus.ATTENTION.value, AnimalStatus.CRITICAL.value])
        )
        .order_by(Animal.created_at.desc())
        .limit(NEEDS_ATTENTION_LIMIT)
    )

    logger.info("Dashboard overview built for user %s", current_user.user_name)
    return ok(
        DashboardOverview(
            animals=counts,
            upcoming_vaccinations=upcoming,
            alerts=Alerts(
                overdue_count=overdue_result.scalar() or 0,
                needs_attention_count=counts.need_attention + counts.critical
            ),
            recent_activity=activity[:ACTIVITY_LIMIT],
            statistics=HealthStatistics(
                total_health_records=total_records_result.scalar() or 0,
                records_this_month=month_records_result.scalar() or 0
            ),
            needs_attention=[AnimalSummary.model_validate(a) for a in attention_result.scalars().all()]
        ),
        "Dashboard data fetched successfully"
    )
