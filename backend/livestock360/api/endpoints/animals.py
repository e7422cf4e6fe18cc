"""Animal CRUD and statistics endpoints."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from livestock360.api import deps
from livestock360.core.database import get_db
from livestock360.models.animal import Animal, AnimalStatus, AnimalType
from livestock360.models.user import User
from livestock360.schemas.animal import (
    AnimalCreate,
    AnimalListResponse,
    AnimalResponse,
    AnimalStats,
    AnimalUpdate,
    RecentAnimal,
)
from livestock360.schemas.response import ApiResponse, ok, paginate

router = APIRouter()
logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "recent": (Animal.created_at.desc(),),
    "oldest": (Animal.created_at.asc(),),
    "name": (Animal.name.asc(), Animal.tag_number.asc()),
    "tagNumber": (Animal.tag_number.asc(),),
}


async def get_owned_animal(db: AsyncSession, animal_id: UUID, user: User) -> Optional[Animal]:
    """Active animal with this id belonging to the user, or None."""
    result = await db.execute(
        select(Animal).where(
            Animal.id == animal_id,
            Animal.user_id == user.id,
            Animal.is_active.is_(True)
        )
    )
    return result.scalar_one_or_none()


async def _tag_taken(db: AsyncSession, user: User, tag_number: str, exclude_id: Optional[UUID] = None) -> bool:
    query = select(Animal.id).where(
        Animal.user_id == user.id,
        Animal.tag_number == tag_number,
        Animal.is_active.is_(True)
    )
    if exclude_id is not None:
        query = query.where(Animal.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.first() is not None


@router.get("/stats", response_model=ApiResponse[AnimalStats])
async def get_animal_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[AnimalStats]:
    """Herd totals by type and status plus the five most recently added animals."""
    active = (Animal.user_id == current_user.id, Animal.is_active.is_(True))

    total_result = await db.execute(select(func.count()).select_from(Animal).where(*active))
    total = total_result.scalar() or 0

    by_type = await db.execute(
        select(Animal.type, func.count()).where(*active).group_by(Animal.type)
    )
    by_status = await db.execute(
        select(Animal.status, func.count()).where(*active).group_by(Animal.status)
    )
    recent = await db.execute(
        select(Animal).where(*active).order_by(Animal.created_at.desc()).limit(5)
    )

    return ok(
        AnimalStats(
            total_animals=total,
            by_type={animal_type: count for animal_type, count in by_type.all()},
            by_status={animal_status: count for animal_status, count in by_status.all()},
            recently_added=[RecentAnimal.model_validate(a) for a in recent.scalars().all()]
        ),
        "Statistics fetched successfully"
    )


@router.post("", response_model=ApiResponse[AnimalResponse], status_code=status.HTTP_201_CREATED)
async def create_animal(
    animal_data: AnimalCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[AnimalResponse]:
    """
    Add an animal to the current user's herd.

    Raises:
        HTTPException: 409 if an active animal already carries the tag number.
    """
    logger.info("Creating animal '%s' for user %s", animal_data.tag_number, current_user.user_name)

    if await _tag_taken(db, current_user, animal_data.tag_number):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An animal with this tag number already exists"
        )

    animal = Animal(user_id=current_user.id, **animal_data.model_dump())
    db.add(animal)
    await db.commit()
    await db.refresh(animal)

    logger.info("Animal created with ID: %s", animal.id)
    return ok(AnimalResponse.model_validate(animal), "Animal added successfully", status.HTTP_201_CREATED)


@router.get("", response_model=ApiResponse[AnimalListResponse])
async def list_animals(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    type: Optional[AnimalType] = Query(None, description="Filter by animal type"),
    status_filter: Optional[AnimalStatus] = Query(None, alias="status", description="Filter by health status"),
    search: Optional[str] = Query(None, description="Search in tag numbers and names"),
    sort: str = Query("recent", description="recent, oldest, name or tagNumber"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
) -> ApiResponse[AnimalListResponse]:
    """List active animals with filters, search, sorting and pagination."""
    logger.info("Listing animals - page: %d, limit: %d", page, limit)

    filters = [Animal.user_id == current_user.id, Animal.is_active.is_(True)]
    if type:
        filters.append(Animal.type == type.value)
    if status_filter:
        filters.append(Animal.status == status_filter.value)
    if search:
        search_pattern = f"%{search}%"
        filters.append(or_(
            Animal.tag_number.ilike(search_pattern),
            Animal.name.ilike(search_pattern)
        ))

    total_result = await db.execute(select(func.count()).select_from(Animal).where(*filters))
    total = total_result.scalar() or 0

    order_by = SORT_ORDERS.get(sort, SORT_ORDERS["recent"])
    result = await db.execute(
        select(Animal)
        .where(*filters)
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    animals = [AnimalResponse.model_validate(a) for a in result.scalars().all()]

    return ok(
        AnimalListResponse(
            animals=animals,
            pagination={**paginate(total, page, limit), "total_animals": total}
        ),
        "Animals fetched successfully"
    )


@router.get("/{animal_id}", response_model=ApiResponse[AnimalResponse])
async def get_animal(
    animal_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[AnimalResponse]:
    animal = await get_owned_animal(db, deps.parse_uuid(animal_id, "Animal not found"), current_user)
    if not animal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Animal not found")

    return ok(AnimalResponse.model_validate(animal), "Animal fetched successfully")


@router.put("/{animal_id}", response_model=ApiResponse[AnimalResponse])
async def update_animal(
    animal_id: str,
    animal_data: AnimalUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[AnimalResponse]:
    """
    Partially update an animal; only fields present in the body change.

    Raises:
        HTTPException: 404 if not found, 409 if the new tag number is taken.
    """
    logger.info("Updating animal %s", animal_id)

    animal = await get_owned_animal(db, deps.parse_uuid(animal_id, "Animal not found"), current_user)
    if not animal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Animal not found")

    update_data = animal_data.model_dump(exclude_unset=True)

    new_tag = update_data.get("tag_number")
    if new_tag and new_tag != animal.tag_number:
        if await _tag_taken(db, current_user, new_tag, exclude_id=animal.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Another animal with this tag number already exists"
            )

    # Required columns cannot be cleared by an explicit null
    for field in ("tag_number", "type", "gender", "birth_date", "status"):
        if field in update_data and update_data[field] is None:
            del update_data[field]

    for field, value in update_data.items():
        setattr(animal, field, value)

    await db.commit()
    await db.refresh(animal)

    logger.info("Animal %s updated, status: %s", animal_id, animal.status)
    return ok(AnimalResponse.model_validate(animal), "Animal updated successfully")


@router.delete("/{animal_id}", response_model=ApiResponse[dict])
async def delete_animal(
    animal_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[dict]:
    """Soft delete: the animal is deactivated, its history is kept."""
    logger.info("Deleting animal %s", animal_id)

    animal = await get_owned_animal(db, deps.parse_uuid(animal_id, "Animal not found"), current_user)
    if not animal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Animal not found")

    animal.is_active = False
    await db.commit()

    logger.info("Animal %s deleted", animal_id)
    return ok({}, "Animal deleted successfully")
