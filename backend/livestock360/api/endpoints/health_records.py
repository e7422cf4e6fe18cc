"""Health record endpoints: treatments, vaccinations and their schedule."""
import logging
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from livestock360.api import deps
from livestock360.api.endpoints.animals import get_owned_animal
from livestock360.core.database import get_db, utcnow
from livestock360.models.health_record import HealthRecord, RecordStatus, RecordType
from livestock360.models.user import User
from livestock360.schemas.animal import AnimalSummary
from livestock360.schemas.health_record import (
    AnimalHealthHistory,
    AnimalHealthSummary,
    HealthRecordCreate,
    HealthRecordListResponse,
    HealthRecordResponse,
    HealthRecordUpdate,
    UpcomingCounts,
    UpcomingRecords,
)
from livestock360.schemas.response import ApiResponse, ok, paginate

router = APIRouter()
logger = logging.getLogger(__name__)

DEFAULT_VACCINATION_INTERVAL_DAYS = 30
WEEK_DAYS = 7


def _owned_records(user: User):
    return (
        select(HealthRecord)
        .options(selectinload(HealthRecord.animal))
        .where(HealthRecord.user_id == user.id)
    )


async def _load_record(db: AsyncSession, record_id: UUID, user: User) -> Optional[HealthRecord]:
    result = await db.execute(
        _owned_records(user)
        .where(HealthRecord.id == record_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _parse_date_param(value: Optional[str], name: str) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name}"
        )


def _schedule(record_type: str, record_status: Optional[str], next_due: Optional[date]):
    """
    Default status and next due date for a new record.

    Vaccinations are Scheduled unless told otherwise, and a scheduled
    vaccination always has a due date; completed ones have none. Everything
    else defaults to Completed.
    """
    if record_type == RecordType.VACCINATION.value:
        if not record_status:
            record_status = RecordStatus.SCHEDULED.value
        if record_status == RecordStatus.SCHEDULED.value and not next_due:
            next_due = utcnow().date() + timedelta(days=DEFAULT_VACCINATION_INTERVAL_DAYS)
        if record_status == RecordStatus.COMPLETED.value:
            next_due = None
    elif not record_status:
        record_status = RecordStatus.COMPLETED.value
    return record_status, next_due


@router.get("/upcoming", response_model=ApiResponse[UpcomingRecords])
async def get_upcoming_records(
    days: int = Query(30, ge=0, le=365, description="Look-ahead window in days"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[UpcomingRecords]:
    """Scheduled records due within the window, plus everything already overdue."""
    today = utcnow().date()
    horizon = today + timedelta(days=days)
    scheduled = _owned_records(current_user).where(
        HealthRecord.status == RecordStatus.SCHEDULED.value
    )

    upcoming_result = await db.execute(
        scheduled
        .where(HealthRecord.next_due_date >= today, HealthRecord.next_due_date <= horizon)
        .order_by(HealthRecord.next_due_date.asc())
    )
    upcoming = upcoming_result.scalars().all()

    overdue_result = await db.execute(
        scheduled
        .where(HealthRecord.next_due_date < today)
        .order_by(HealthRecord.next_due_date.asc())
    )
    overdue = overdue_result.scalars().all()

    week_end = today + timedelta(days=WEEK_DAYS)
    counts = UpcomingCounts(
        due_today=sum(1 for r in upcoming if r.next_due_date == today),
        due_this_week=sum(1 for r in upcoming if r.next_due_date <= week_end),
        due_this_month=len(upcoming),
        overdue=len(overdue)
    )

    return ok(
        UpcomingRecords(
            upcoming=[HealthRecordResponse.model_validate(r) for r in upcoming],
            overdue=[HealthRecordResponse.model_validate(r) for r in overdue],
            counts=counts
        ),
        "Upcoming records fetched successfully"
    )


@router.get("/animal/{animal_id}", response_model=ApiResponse[AnimalHealthHistory])
async def get_records_by_animal(
    animal_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[AnimalHealthHistory]:
    """Full history of one animal, newest first, with a short summary."""
    animal = await get_owned_animal(db, deps.parse_uuid(animal_id, "Animal not found"), current_user)
    if not animal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Animal not found")

    result = await db.execute(
        _owned_records(current_user)
        .where(HealthRecord.animal_id == animal.id)
        .order_by(HealthRecord.date.desc(), HealthRecord.created_at.desc())
    )
    records = result.scalars().all()

    last_checkup = next(
        (r.date for r in records if r.type == RecordType.CHECKUP.value),
        None
    )
    due_vaccinations = [
        r.next_due_date for r in records
        if r.type == RecordType.VACCINATION.value
        and r.status == RecordStatus.SCHEDULED.value
        and r.next_due_date
    ]

    return ok(
        AnimalHealthHistory(
            animal=AnimalSummary.model_validate(animal),
            records=[HealthRecordResponse.model_validate(r) for r in records],
            summary=AnimalHealthSummary(
                total_records=len(records),
                last_checkup=last_checkup,
                next_vaccination=min(due_vaccinations) if due_vaccinations else None
            )
        ),
        "Animal health records fetched successfully"
    )


@router.post("", response_model=ApiResponse[HealthRecordResponse], status_code=status.HTTP_201_CREATED)
async def create_health_record(
    record_data: HealthRecordCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[HealthRecordResponse]:
    """
    Add a health record for one of the user's animals.

    The animal's last checkup date moves to the record date.

    Raises:
        HTTPException: 404 if the animal is unknown, inactive or not owned.
    """
    animal = await get_owned_animal(db, record_data.animal_id, current_user)
    if not animal:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Animal not found or no permission"
        )

    data = record_data.model_dump(exclude={"animal_id", "status", "next_due_date"})
    record_status, next_due = _schedule(data["type"], record_data.status, record_data.next_due_date)
    data["date"] = data.get("date") or utcnow().date()

    record = HealthRecord(
        animal_id=animal.id,
        user_id=current_user.id,
        status=record_status,
        next_due_date=next_due,
        **data
    )
    db.add(record)
    animal.last_checkup_date = record.date
    await db.commit()

    logger.info("Health record %s added for animal %s", record.id, animal.tag_number)
    record = await _load_record(db, record.id, current_user)
    return ok(HealthRecordResponse.model_validate(record), "Health record added successfully", status.HTTP_201_CREATED)


@router.get("", response_model=ApiResponse[HealthRecordListResponse])
async def list_health_records(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    animal_id: Optional[UUID] = Query(None, alias="animalId"),
    type: Optional[RecordType] = Query(None),
    status_filter: Optional[RecordStatus] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
) -> ApiResponse[HealthRecordListResponse]:
    """List health records, newest first, with filters and pagination."""
    start = _parse_date_param(start_date, "startDate")
    end = _parse_date_param(end_date, "endDate")

    filters = [HealthRecord.user_id == current_user.id]
    if animal_id:
        filters.append(HealthRecord.animal_id == animal_id)
    if type:
        filters.append(HealthRecord.type == type.value)
    if status_filter:
        filters.append(HealthRecord.status == status_filter.value)
    if start:
        filters.append(HealthRecord.date >= start)
    if end:
        filters.append(HealthRecord.date <= end)

    total_result = await db.execute(select(func.count()).select_from(HealthRecord).where(*filters))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(HealthRecord)
        .options(selectinload(HealthRecord.animal))
        .where(*filters)
        .order_by(HealthRecord.date.desc(), HealthRecord.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    records = [HealthRecordResponse.model_validate(r) for r in result.scalars().all()]

    return ok(
        HealthRecordListResponse(
            records=records,
            pagination={**paginate(total, page, limit), "total_records": total}
        ),
        "Health records fetched successfully"
    )


@router.get("/{record_id}", response_model=ApiResponse[HealthRecordResponse])
async def get_health_record(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[HealthRecordResponse]:
    record = await _load_record(db, deps.parse_uuid(record_id, "Health record not found"), current_user)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Health record not found")

    return ok(HealthRecordResponse.model_validate(record), "Health record fetched successfully")


@router.put("/{record_id}", response_model=ApiResponse[HealthRecordResponse])
async def update_health_record(
    record_id: str,
    record_data: HealthRecordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[HealthRecordResponse]:
    """Partially update a record; an explicit null clears optional fields."""
    record_uuid = deps.parse_uuid(record_id, "Health record not found")
    record = await _load_record(db, record_uuid, current_user)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Health record not found")

    update_data = record_data.model_dump(exclude_unset=True)
    for field in ("type", "title", "date", "status"):
        if field in update_data and update_data[field] is None:
            del update_data[field]

    for field, value in update_data.items():
        setattr(record, field, value)

    await db.commit()

    logger.info("Health record %s updated", record_id)
    record = await _load_record(db, record_uuid, current_user)
    return ok(HealthRecordResponse.model_validate(record), "Health record updated successfully")


@router.delete("/{record_id}", response_model=ApiResponse[dict])
async def delete_health_record(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[dict]:
    record = await _load_record(db, deps.parse_uuid(record_id, "Health record not found"), current_user)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Health record not found")

    await db.delete(record)
    await db.commit()

    logger.info("Health record %s deleted", record_id)
    return ok({}, "Health record deleted successfully")
