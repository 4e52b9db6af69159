from fastapi import APIRouter

from casefeed.api.v1.activities import router as activities_router
from casefeed.api.v1.health import router as health_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["Health"])
v1_router.include_router(activities_router, tags=["Activities"])
