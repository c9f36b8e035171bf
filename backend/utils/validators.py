"""
Validation utilities: content sniffing, allow-list checks and slugs.
"""

import re

import magic

from core.config import UploadConfig
from utils.error_handlers import DisallowedFileTypeError, ValidationError

# Enough leading bytes to identify every format we accept
SNIFF_SIZE = 512

_SLUG_SEPARATOR = re.compile(r'[^a-z0-9]+')


def sniff_mime_type(prefix: bytes) -> str:
    """
    Detect the MIME type of a file from its leading bytes.

    The declared Content-Type of an upload is never consulted; only the
    bytes decide.

    Args:
        prefix: First bytes of the file (up to SNIFF_SIZE)

    Returns:
        Detected MIME type, lower case, without parameters
    """
    detected = magic.from_buffer(prefix, mime=True)
    return detected.split(";", 1)[0].strip().lower()


def check_mime_type(mime_type: str, config: UploadConfig) -> str:
    """
    Validate a sniffed MIME type against the configured allow-list.

    Raises:
        DisallowedFileTypeError: If the allow-list is set and lacks the type
    """
    if not config.allows(mime_type):
        raise DisallowedFileTypeError(mime_type)
    return mime_type


def slugify(text: str) -> str:
    """
    Turn text into a URL slug.

    Anything outside a-z and 0-9 (after lower-casing) is a separator, so
    accented and non-Latin characters are dropped rather than transliterated.

    Raises:
        ValidationError: If the input is empty or nothing usable remains
    """
    if not text:
        raise ValidationError("empty string not permitted")

    slug = _SLUG_SEPARATOR.sub("-", text.lower()).strip("-")
    if not slug:
        raise ValidationError(
            "after removing characters, slug is zero length",
            details={"original": text}
        )
    return slug
