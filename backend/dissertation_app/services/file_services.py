import logging
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from ..config import settings
from ..exceptions import FileTooLargeError, InvalidFileTypeError, ValidationError

logger = logging.getLogger(__name__)


def read_pdf_upload(upload_file: Optional[UploadFile]) -> bytes:
    """
    Validate an uploaded PDF and return its bytes.
    Nothing is written to disk here; a rejected file leaves no trace.
    """
    if upload_file is None or not upload_file.filename:
        raise ValidationError("PDF file is required")

    ext = Path(upload_file.filename).suffix.lower()
    if (upload_file.content_type not in settings.ALLOWED_UPLOAD_CONTENT_TYPES
            or ext not in settings.ALLOWED_UPLOAD_EXTENSIONS):
        raise InvalidFileTypeError(
            upload_file.content_type or ext or "unknown",
            sorted(settings.ALLOWED_UPLOAD_CONTENT_TYPES)
        )

    # One byte past the limit is enough to know it is too large
    data = upload_file.file.read(settings.MAX_FILE_SIZE + 1)
    if len(data) > settings.MAX_FILE_SIZE:
        raise FileTooLargeError(settings.MAX_FILE_SIZE)

    if not data:
        raise ValidationError("Uploaded file is empty")

    return data


def build_stored_filename(uploader_id: int, original_filename: str, timestamp_ms: Optional[int] = None) -> str:
    """{uploaderUserId}_{uploadTimestamp}_{originalFilename}, basename only"""
    base_name = Path(original_filename.replace("\\", "/")).name
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{uploader_id}_{timestamp_ms}_{base_name}"


def save_upload_file(data: bytes, stored_name: str) -> Path:
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    file_path = settings.UPLOAD_DIR / stored_name

    with file_path.open("wb") as f:
        f.write(data)

    logger.debug(f"Stored upload {stored_name} ({len(data)} bytes)")
    return file_path


def remove_upload_file(stored_name: str) -> None:
    file_path = settings.UPLOAD_DIR / stored_name
    if file_path.exists():
        file_path.unlink()
