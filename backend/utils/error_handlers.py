"""
Error types shared by the upload pipeline and the JSON codec, plus the
route decorator that turns them into JSON error envelopes.
"""

import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Callable, Dict, Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error class."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: Optional[Dict] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.user_message = user_message or message
        self.timestamp = datetime.now(timezone.utc).isoformat()


class BodyTooLargeError(AppError):
    """Request body exceeded the configured byte ceiling."""

    def __init__(self, limit: int, **kwargs):
        super().__init__(
            f"body must not be larger than {limit} bytes",
            code="BODY_TOO_LARGE",
            status_code=413,
            details={"limit": limit},
            **kwargs
        )
        self.limit = limit


class MalformedUploadError(AppError):
    """Multipart body could not be parsed or did not have the expected shape."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="MALFORMED_UPLOAD",
            status_code=400,
            **kwargs
        )


class DisallowedFileTypeError(AppError):
    """Sniffed content type is not in the allow-list."""

    def __init__(self, mime_type: str, **kwargs):
        super().__init__(
            f"the uploaded file type is not permitted: {mime_type}",
            code="DISALLOWED_FILE_TYPE",
            status_code=415,
            details={"mime_type": mime_type},
            **kwargs
        )
        self.mime_type = mime_type


class InvalidJSONError(AppError):
    """Syntax or type error in a JSON body, or an empty body."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="INVALID_JSON",
            status_code=400,
            **kwargs
        )


class UnknownFieldError(AppError):
    """JSON document carries a key the target model does not declare."""

    def __init__(self, field: str, **kwargs):
        super().__init__(
            f"body contains unknown key {field!r}",
            code="UNKNOWN_FIELD",
            status_code=400,
            details={"field": field},
            **kwargs
        )
        self.field = field


class TrailingDataError(AppError):
    """More than one JSON value in a body."""

    def __init__(self, message: str = "body must contain only one JSON value", **kwargs):
        super().__init__(
            message,
            code="TRAILING_DATA",
            status_code=400,
            **kwargs
        )


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            status_code=400,
            **kwargs
        )


class StorageError(AppError):
    """Error with file storage operations."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="STORAGE_ERROR",
            status_code=507,
            **kwargs
        )


class FileMissingError(AppError):
    """Requested file does not exist inside the served directory."""

    def __init__(self, file_name: str, **kwargs):
        super().__init__(
            f"file not found: {file_name}",
            code="FILE_MISSING",
            status_code=404,
            details={"file_name": file_name},
            **kwargs
        )


class ResponseEncodingError(AppError):
    """Payload could not be serialised to JSON."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="RESPONSE_ENCODING",
            status_code=500,
            user_message="response could not be encoded",
            **kwargs
        )


def handle_errors(fallback_message: str = "Operation failed", log_errors: bool = True):
    """
    Decorator for async route handlers.

    AppErrors become JSON error envelopes with the error's own status code,
    HTTPExceptions are left to FastAPI, anything else becomes a generic 500.

    Args:
        fallback_message: Message sent to the client for unexpected errors
        log_errors: Whether to log errors
    """
    # Imported here, json_codec depends on this module.
    from services.json_codec import error_json

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except AppError as e:
                if log_errors:
                    logger.warning(f"{e.code}: {e.message}", extra={"details": e.details})
                return error_json(e)
            except HTTPException:
                raise
            except Exception as e:
                if log_errors:
                    logger.error(f"Unhandled error in {func.__name__}: {str(e)}", exc_info=True)
                return error_json(
                    AppError(message=str(e) or fallback_message, user_message=fallback_message)
                )

        return wrapper

    return decorator
