import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from dissertation_app.config import settings
from dissertation_app.exceptions import FileTooLargeError, InvalidFileTypeError, ValidationError
from dissertation_app.services.file_services import (
    build_stored_filename,
    read_pdf_upload,
    remove_upload_file,
    save_upload_file,
)

from .conftest import PDF_BYTES


def _upload(data: bytes, filename: str = "request.pdf", content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_stored_filename_convention():
    assert build_stored_filename(12, "cerere semnata.pdf", timestamp_ms=1700000000123) == \
        "12_1700000000123_cerere semnata.pdf"


@pytest.mark.parametrize("original", ["../../etc/passwd.pdf", "C:\\Users\\ana\\thesis.pdf", "dir/thesis.pdf"])
def test_stored_filename_drops_directories(original):
    stored = build_stored_filename(5, original, timestamp_ms=1)

    assert "/" not in stored
    assert "\\" not in stored
    assert stored.startswith("5_1_")


def test_stored_filename_uses_current_time():
    _, timestamp, _ = build_stored_filename(3, "a.pdf").split("_", 2)

    assert timestamp.isdigit()
    assert len(timestamp) >= 13


def test_accepts_pdf():
    assert read_pdf_upload(_upload(PDF_BYTES)) == PDF_BYTES


@pytest.mark.parametrize("filename, content_type", [
    ("notes.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
    ("scan.png", "image/png"),
    ("sneaky.pdf", "text/plain"),
    ("sneaky.txt", "application/pdf"),
])
def test_rejects_non_pdf(filename, content_type):
    with pytest.raises(InvalidFileTypeError):
        read_pdf_upload(_upload(b"hello", filename, content_type))


def test_rejects_oversized_file(monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 16)

    with pytest.raises(FileTooLargeError):
        read_pdf_upload(_upload(b"%PDF" + b"0" * 32))


def test_rejects_missing_or_empty_file():
    with pytest.raises(ValidationError):
        read_pdf_upload(None)
    with pytest.raises(ValidationError):
        read_pdf_upload(_upload(b""))


def test_save_and_remove():
    stored = build_stored_filename(1, "roundtrip.pdf")

    path = save_upload_file(PDF_BYTES, stored)
    assert path.read_bytes() == PDF_BYTES

    remove_upload_file(stored)
    assert not path.exists()
