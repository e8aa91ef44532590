# Overview: Local blob storage for bill/invoice PDFs.

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIMETYPES = ("application/pdf",)


def upload_folder() -> Path:
    folder = Path(current_app.config.get("UPLOAD_FOLDER") or "uploads")
    if not folder.is_absolute():
        folder = Path(current_app.instance_path).parent / folder
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def max_upload_bytes() -> int:
    return int(current_app.config.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024))


def _unique_name(original: str) -> str:
    stem = Path(secure_filename(original or "")).stem or "file"
    return f"{stem}-{uuid.uuid4().hex[:12]}.pdf"


def store_pdf(file: FileStorage | None) -> str:
    """
    Save an uploaded PDF and return its stored file name.

    Raises:
        ValidationError: no file, wrong type, or too large
    """
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    if file.mimetype not in ALLOWED_MIMETYPES:
        raise ValidationError("Only PDF files are allowed")

    name = _unique_name(file.filename)
    path = upload_folder() / name
    file.save(path)

    if path.stat().st_size > max_upload_bytes():
        os.remove(path)
        raise ValidationError(f"File exceeds {max_upload_bytes()} bytes")

    logger.info("Stored upload %s (%d bytes)", name, path.stat().st_size)
    return name


def status_info() -> dict:
    return {
        "max_file_size": max_upload_bytes(),
        "allowed_types": list(ALLOWED_MIMETYPES),
        "storage": "local",
    }
