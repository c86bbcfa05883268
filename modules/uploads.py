"""Cover image upload handling.

Validates an uploaded image and writes it once under UPLOAD_FOLDER with a
unique name. The stored file is referenced by path from then on and never
rewritten.
"""

from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from models.order import CoverImage


ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
MAX_FILENAME_LENGTH = 255


def has_upload(file: Optional[FileStorage]) -> bool:
    """Whether the form actually carried a file."""
    return file is not None and bool(file.filename)


def allowed_image(filename: str) -> bool:
    """Check if file extension is allowed."""
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_IMAGE_EXTENSIONS


def validate_image(file: FileStorage) -> Tuple[bool, str]:
    """
    Validate an uploaded cover image.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not has_upload(file):
        return False, "Please choose a cover image to upload."
    if len(file.filename) > MAX_FILENAME_LENGTH:
        return False, f"Filename too long. Maximum {MAX_FILENAME_LENGTH} characters."
    if not allowed_image(file.filename):
        allowed = ", ".join(sorted(ALLOWED_IMAGE_EXTENSIONS))
        return False, f"Unsupported image type. Please upload one of: {allowed}."
    return True, ""


def store_cover_image(file: FileStorage, upload_folder: Path) -> CoverImage:
    """
    Save a validated image with a timestamp prefix.

    Returns:
        CoverImage referencing the stored file
    """
    upload_folder.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    safe_name = secure_filename(file.filename) or "cover"
    stored_name = f"{timestamp}_{random.randint(0, 10**6):06d}_{safe_name}"
    stored_path = upload_folder / stored_name

    file.save(stored_path)

    return CoverImage(
        stored_path=str(stored_path),
        stored_filename=stored_name,
        original_filename=safe_name,
        content_type=file.mimetype or "application/octet-stream",
    )


def unique_upload_name(fieldname: str, original_filename: str) -> str:
    """Name like 'coverImage-1760870130123-482913522.png' for API uploads."""
    suffix = Path(secure_filename(original_filename)).suffix.lower()
    millis = time.time_ns() // 1_000_000
    return f"{fieldname}-{millis}-{random.randint(0, 10**9)}{suffix}"
