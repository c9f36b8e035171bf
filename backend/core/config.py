"""
Application configuration management
"""

from typing import FrozenSet, List

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_UPLOAD_SIZE = 1024 * 1024 * 1024  # 1GB
DEFAULT_MAX_JSON_SIZE = 1024 * 1024  # 1MB


def _normalize_mime(value: str) -> str:
    return value.split(";", 1)[0].strip().lower()


class UploadConfig(BaseModel):
    """
    Limits and policies for the upload pipeline and the JSON codec.

    Instances are immutable and passed explicitly into every call, so one
    config can be shared by concurrent requests.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    max_upload_size: int = 0
    allowed_mime_types: FrozenSet[str] = frozenset()
    max_json_size: int = 0
    allow_unknown_json_fields: bool = False
    field_name: str = "file"

    @field_validator("max_upload_size")
    @classmethod
    def default_upload_size(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_MAX_UPLOAD_SIZE

    @field_validator("max_json_size")
    @classmethod
    def default_json_size(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_MAX_JSON_SIZE

    @field_validator("allowed_mime_types", mode="before")
    @classmethod
    def parse_allowed_mime_types(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return frozenset(_normalize_mime(item) for item in v if item and item.strip())

    def allows(self, mime_type: str) -> bool:
        """Empty allow-list means anything goes"""
        if not self.allowed_mime_types:
            return True
        return _normalize_mime(mime_type) in self.allowed_mime_types


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "IngestKit"

    # CORS Settings
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Upload Settings
    UPLOAD_DIR: str = "./uploads"
    RENAME_UPLOADS: bool = True
    UPLOAD_FIELD_NAME: str = "file"
    MAX_UPLOAD_SIZE: int = DEFAULT_MAX_UPLOAD_SIZE
    ALLOWED_MIME_TYPES: List[str] = ["image/jpeg", "image/png", "image/gif", "image/webp"]

    # JSON Settings
    MAX_JSON_SIZE: int = DEFAULT_MAX_JSON_SIZE
    ALLOW_UNKNOWN_JSON_FIELDS: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("ALLOWED_MIME_TYPES", mode="before")
    @classmethod
    def parse_allowed_mime_types(cls, v):
        if isinstance(v, str):
            return [mime.strip() for mime in v.split(",") if mime.strip()]
        return v

    def upload_config(self) -> UploadConfig:
        """Build the explicit config handed to the upload and JSON helpers"""
        return UploadConfig(
            max_upload_size=self.MAX_UPLOAD_SIZE,
            allowed_mime_types=self.ALLOWED_MIME_TYPES,
            max_json_size=self.MAX_JSON_SIZE,
            allow_unknown_json_fields=self.ALLOW_UNKNOWN_JSON_FIELDS,
            field_name=self.UPLOAD_FIELD_NAME,
        )


# Create settings instance
settings = Settings()
