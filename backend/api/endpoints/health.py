"""
Health check endpoints
"""

from fastapi import APIRouter

from core.config import settings
from models.response import ResponseEnvelope
from services.json_codec import write_json

router = APIRouter()


@router.get("")
async def health_check():
    """Report that the API is up"""
    return write_json(
        200,
        ResponseEnvelope(
            message="healthy",
            data={"environment": settings.ENVIRONMENT, "debug": settings.DEBUG},
        ),
    )
