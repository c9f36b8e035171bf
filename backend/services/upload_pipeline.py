"""
Multipart upload pipeline.

Each file part is sniffed from its first bytes, checked against the
allow-list, named, and streamed to disk. The batch is fail-fast but not
transactional: when a part is rejected, parts written earlier in the same
request stay on disk and the caller owns their cleanup.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import aiofiles
from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from core.config import UploadConfig
from models.upload import UploadedFile
from utils.error_handlers import MalformedUploadError, StorageError
from utils.file_utils import get_file_extension, random_string, safe_basename
from utils.streams import chain_prefix, check_declared_length, limited_stream
from utils.validators import SNIFF_SIZE, check_mime_type, sniff_mime_type

logger = logging.getLogger(__name__)

RANDOM_NAME_LENGTH = 25


async def _parse_multipart(request: Request, config: UploadConfig) -> FormData:
    """Parse the body into spooled parts, bounded by max_upload_size"""
    check_declared_length(request, config.max_upload_size)

    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("multipart/form-data"):
        raise MalformedUploadError(
            f"expected multipart/form-data, got {content_type or 'no content type'}"
        )

    parser = MultiPartParser(request.headers, limited_stream(request, config.max_upload_size))
    try:
        return await parser.parse()
    except MultiPartException as exc:
        raise MalformedUploadError(exc.message) from exc
    except MultipartParseError as exc:
        raise MalformedUploadError(f"malformed multipart body: {exc}") from exc


def _file_parts(form: FormData, field_name: str) -> List[UploadFile]:
    """
    File parts under `field_name`. Parts with an empty filename are what
    browsers send for a file input left blank, so they are skipped.
    """
    return [
        value for value in form.getlist(field_name)
        if isinstance(value, UploadFile) and value.filename
    ]


def _destination_name(original_name: str, rename: bool) -> str:
    if rename:
        return random_string(RANDOM_NAME_LENGTH) + get_file_extension(original_name)
    return original_name


async def _store_part(
    upload: UploadFile,
    destination_dir: Path,
    rename: bool,
    config: UploadConfig
) -> UploadedFile:
    original_name = safe_basename(upload.filename or "")
    if original_name in ("", ".", ".."):
        raise MalformedUploadError(
            "file part has no usable filename",
            details={"filename": upload.filename}
        )

    prefix = await upload.read(SNIFF_SIZE)
    content_type = check_mime_type(sniff_mime_type(prefix), config)

    new_name = _destination_name(original_name, rename)
    target = destination_dir / new_name

    created = False
    size = 0
    try:
        async with aiofiles.open(target, "wb") as out:
            created = True
            async for chunk in chain_prefix(prefix, upload):
                await out.write(chunk)
                size += len(chunk)
    except BaseException as exc:
        # Never leave a truncated file behind for the failing part
        if created:
            target.unlink(missing_ok=True)
        if isinstance(exc, OSError):
            raise StorageError(
                f"could not write {new_name}: {exc}",
                details={"path": str(target)}
            ) from exc
        raise

    logger.debug(f"Stored upload {original_name!r} as {new_name!r} ({size} bytes, {content_type})")
    return UploadedFile(
        original_name=original_name,
        new_name=new_name,
        size_bytes=size,
        content_type=content_type,
    )


async def process_upload(
    request: Request,
    destination_dir: Union[str, Path],
    rename: bool = False,
    config: Optional[UploadConfig] = None
) -> List[UploadedFile]:
    """
    Validate and persist every file part of a multipart request.

    Args:
        request: Incoming multipart/form-data request
        destination_dir: Existing directory the files are written to
        rename: Replace each filename with a random one, keeping the extension
        config: Limits and allow-list; defaults apply when omitted

    Returns:
        One UploadedFile per part under config.field_name, in encounter order

    Raises:
        BodyTooLargeError: Body exceeded max_upload_size (nothing written)
        MalformedUploadError: Body is not valid multipart/form-data
        DisallowedFileTypeError: A part's sniffed type is not allowed
        StorageError: Writing a part to disk failed
    """
    config = config or UploadConfig()
    form = await _parse_multipart(request, config)
    try:
        destination = Path(destination_dir)
        uploaded = []
        for upload in _file_parts(form, config.field_name):
            uploaded.append(await _store_part(upload, destination, rename, config))
    finally:
        await form.close()

    logger.info(f"Stored {len(uploaded)} uploaded file(s) in {destination}")
    return uploaded


async def process_single_upload(
    request: Request,
    destination_dir: Union[str, Path],
    rename: bool = False,
    config: Optional[UploadConfig] = None
) -> UploadedFile:
    """
    Like process_upload, but the request must carry exactly one file part.

    The part count is checked before anything is written.
    """
    config = config or UploadConfig()
    form = await _parse_multipart(request, config)
    try:
        parts = _file_parts(form, config.field_name)
        if len(parts) != 1:
            raise MalformedUploadError(
                f"expected exactly one file in field {config.field_name!r}, got {len(parts)}",
                details={"count": len(parts)}
            )
        return await _store_part(parts[0], Path(destination_dir), rename, config)
    finally:
        await form.close()
