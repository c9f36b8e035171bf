"""
Upload-related Pydantic models
"""

from pydantic import BaseModel, ConfigDict


class UploadedFile(BaseModel):
    """One multipart part that was validated and written to disk"""
    model_config = ConfigDict(frozen=True)

    original_name: str
    new_name: str
    size_bytes: int
    content_type: str
