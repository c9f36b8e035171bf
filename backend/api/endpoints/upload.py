"""
File upload and download endpoints
"""

from typing import Optional

from fastapi import APIRouter, Request

from core.config import settings
from models.response import ResponseEnvelope
from services.json_codec import write_json
from services.storage import download_static_file
from services.upload_pipeline import process_single_upload, process_upload
from utils.error_handlers import handle_errors
from utils.file_utils import ensure_directory

router = APIRouter()


@router.post("")
@handle_errors(fallback_message="Upload failed")
async def upload_files(request: Request, rename: Optional[bool] = None):
    """
    Upload any number of files under the configured form field.

    - Sniffs each file's real type and checks it against the allow-list
    - Stops at the first rejected file; files stored before it are kept
    """
    destination = ensure_directory(settings.UPLOAD_DIR)
    uploaded = await process_upload(
        request,
        destination,
        settings.RENAME_UPLOADS if rename is None else rename,
        settings.upload_config(),
    )
    return write_json(
        201,
        ResponseEnvelope(
            message=f"{len(uploaded)} file(s) uploaded",
            data=[item.model_dump() for item in uploaded],
        ),
    )


@router.post("/single")
@handle_errors(fallback_message="Upload failed")
async def upload_single_file(request: Request, rename: Optional[bool] = None):
    """Upload exactly one file"""
    destination = ensure_directory(settings.UPLOAD_DIR)
    uploaded = await process_single_upload(
        request,
        destination,
        settings.RENAME_UPLOADS if rename is None else rename,
        settings.upload_config(),
    )
    return write_json(
        201,
        ResponseEnvelope(message="file uploaded", data=uploaded.model_dump()),
    )


@router.get("/{file_name}")
@handle_errors(fallback_message="Download failed")
async def download_file(file_name: str, display_name: Optional[str] = None):
    """Download a stored file as an attachment"""
    return download_static_file(settings.UPLOAD_DIR, file_name, display_name)
