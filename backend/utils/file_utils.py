"""
File handling utilities
"""

import secrets
import string
from pathlib import Path, PurePosixPath

RANDOM_STRING_ALPHABET = string.ascii_letters + string.digits


def ensure_directory(path: str) -> Path:
    """Ensure directory exists, create if not"""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def random_string(length: int) -> str:
    """Random alphanumeric string of exactly `length` characters"""
    if length < 0:
        raise ValueError(f"length must not be negative, got {length}")
    return "".join(secrets.choice(RANDOM_STRING_ALPHABET) for _ in range(length))


def safe_basename(filename: str) -> str:
    """Drop any directory components a client put into a filename"""
    # Windows clients send backslash separated paths
    return PurePosixPath(filename.replace("\\", "/")).name


def get_file_extension(filename: str) -> str:
    """Get file extension from filename, case preserved"""
    return PurePosixPath(filename).suffix
