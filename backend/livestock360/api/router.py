from fastapi import APIRouter

from livestock360.api.endpoints import animals, auth, dashboard, health_records

router = APIRouter()

router.include_router(auth.router, prefix="/v1/users", tags=["authentication"])
router.include_router(animals.router, prefix="/v1/animals", tags=["animals"])
router.include_router(health_records.router, prefix="/v1/health-records", tags=["health records"])
router.include_router(dashboard.router, prefix="/v1/dashboard", tags=["dashboard"])
