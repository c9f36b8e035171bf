"""
Builders for hand-made ASGI requests used across the test modules.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from starlette.requests import Request

BOUNDARY = "ingestkit-test-boundary"


def make_request(
    chunks: Sequence[bytes],
    content_type: Optional[str] = None,
    content_length: Optional[int] = None,
) -> Request:
    """Build a POST request whose body arrives in the given chunks"""
    headers = []
    if content_type is not None:
        headers.append((b"content-type", content_type.encode("latin-1")))
    if content_length is not None:
        headers.append((b"content-length", str(content_length).encode("latin-1")))

    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ] or [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "headers": headers,
    }
    return Request(scope, receive)


def encode_multipart(parts: Iterable[Tuple[str, Optional[str], bytes, str]]) -> bytes:
    """Encode (field, filename, content, declared content type) tuples"""
    body = bytearray()
    for field, filename, content, declared_type in parts:
        body += f"--{BOUNDARY}\r\n".encode()
        disposition = f'form-data; name="{field}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        body += f"Content-Disposition: {disposition}\r\n".encode()
        body += f"Content-Type: {declared_type}\r\n\r\n".encode()
        body += content + b"\r\n"
    body += f"--{BOUNDARY}--\r\n".encode()
    return bytes(body)


def multipart_request(parts: List[Tuple[str, Optional[str], bytes, str]], chunked: bool = False) -> Request:
    body = encode_multipart(parts)
    content_type = f"multipart/form-data; boundary={BOUNDARY}"
    if chunked:
        chunks = [body[i:i + 100] for i in range(0, len(body), 100)]
        return make_request(chunks, content_type=content_type)
    return make_request([body], content_type=content_type, content_length=len(body))


def json_request(body: bytes) -> Request:
    return make_request([body], content_type="application/json", content_length=len(body))


