"""
IngestKit API
Demo FastAPI application wiring the upload and JSON helpers to routes
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from core.config import settings
from core.middleware import RequestIDMiddleware, AccessLogMiddleware
from api.router import api_router
from utils.file_utils import ensure_directory

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events"""
    logger.info(f"Starting {settings.PROJECT_NAME} API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Upload directory: {ensure_directory(settings.UPLOAD_DIR).resolve()}")

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME} API...")


# Create FastAPI application
app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Safe multipart uploads and strict JSON helpers",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware added last runs first, so the request ID exists before logging
app.add_middleware(AccessLogMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)
