"""
Main API router
"""

from fastapi import APIRouter

from api.endpoints import health, upload

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)

api_router.include_router(
    upload.router,
    prefix="/uploads",
    tags=["uploads"]
)
