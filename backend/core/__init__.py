"""
Core module: settings, upload config and middleware
"""

from .config import settings, Settings, UploadConfig
from .middleware import RequestIDMiddleware, AccessLogMiddleware

__all__ = ["settings", "Settings", "UploadConfig", "RequestIDMiddleware", "AccessLogMiddleware"]
