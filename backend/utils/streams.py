"""
Async byte-stream helpers shared by the upload pipeline and the JSON codec
"""

from typing import AsyncIterator

from fastapi import Request
from starlette.datastructures import UploadFile

from utils.error_handlers import BodyTooLargeError

CHUNK_SIZE = 64 * 1024


def check_declared_length(request: Request, limit: int) -> None:
    """Fail early when the client announces a body over the limit"""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise BodyTooLargeError(limit)


async def limited_stream(request: Request, limit: int) -> AsyncIterator[bytes]:
    """
    Yield the request body, raising BodyTooLargeError once more than
    `limit` bytes have arrived. Content-Length is not trusted for this.
    """
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise BodyTooLargeError(limit)
        yield chunk


async def read_limited(request: Request, limit: int) -> bytes:
    """Read the whole body into memory, bounded by `limit`"""
    check_declared_length(request, limit)
    body = bytearray()
    async for chunk in limited_stream(request, limit):
        body.extend(chunk)
    return bytes(body)


async def chain_prefix(prefix: bytes, upload: UploadFile, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Yield `prefix` followed by the rest of `upload`.

    Used after sniffing consumed the first bytes of a part, so the full
    content can be copied without rewinding.
    """
    if prefix:
        yield prefix
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        yield chunk
