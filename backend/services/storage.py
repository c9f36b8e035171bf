"""
Serving stored files back to clients
"""

from pathlib import Path
from typing import Optional, Union

from fastapi.responses import FileResponse

from utils.error_handlers import FileMissingError


def download_static_file(
    directory: Union[str, Path],
    file_name: str,
    display_name: Optional[str] = None
) -> FileResponse:
    """
    Send a file from `directory` as an attachment.

    Args:
        directory: Directory the file must live in
        file_name: Name of the file on disk
        display_name: Filename offered to the client, defaults to file_name

    Raises:
        FileMissingError: If the file does not exist or resolves outside directory
    """
    base = Path(directory).resolve()
    file_path = (base / file_name).resolve()

    if base not in file_path.parents or not file_path.is_file():
        raise FileMissingError(file_name)

    return FileResponse(
        file_path,
        filename=display_name or file_name,
        content_disposition_type="attachment",
    )
