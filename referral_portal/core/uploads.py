from __future__ import annotations

import re
from pathlib import Path

from referral_portal.core.errors import AttachmentFailure

MAX_FILENAME_LENGTH = 150
OCTET_STREAM_MIME_TYPES = {"application/octet-stream", "binary/octet-stream"}

RESUME_EXTENSIONS = {
    ".doc",
    ".docx",
    ".pdf",
    ".rtf",
    ".txt",
}
RESUME_MIME_TYPES = {
    "application/x-pdf",
    "application/msword",
    "application/pdf",
    "application/rtf",
    "application/vnd.ms-word",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/rtf",
    "text/plain",
}

_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(raw: str | None, *, default: str = "file") -> str:
    name = (raw or "").strip() or default
    name = name.replace("/", "_").replace("\\", "_")
    name = _SAFE_NAME_RE.sub("_", name).strip("._") or default

    if len(name) > MAX_FILENAME_LENGTH:
        base, ext = _split_name_ext(name)
        keep = max(1, MAX_FILENAME_LENGTH - len(ext))
        name = f"{base[:keep]}{ext}"
    return name


def validate_upload(
    filename: str | None,
    content_type: str | None,
    *,
    allowed_extensions: set[str],
    allowed_mime_types: set[str],
    max_bytes: int | None = None,
    size: int | None = None,
) -> str:
    """Return a safe filename or raise AttachmentFailure."""
    safe_name = sanitize_filename(filename, default="resume")
    ext = Path(safe_name).suffix.lower()
    if not ext or ext not in allowed_extensions:
        raise AttachmentFailure("Unsupported file type.", {"filename": safe_name})

    normalized_type = (content_type or "").strip().lower()
    if ";" in normalized_type:
        normalized_type = normalized_type.split(";", 1)[0].strip()
    if normalized_type and normalized_type not in allowed_mime_types and normalized_type not in OCTET_STREAM_MIME_TYPES:
        raise AttachmentFailure("Unsupported file content type.", {"content_type": normalized_type})

    if size is not None:
        if size == 0:
            raise AttachmentFailure("File is empty.", {"filename": safe_name})
        if max_bytes is not None and size > max_bytes:
            raise AttachmentFailure("File is too large.", {"filename": safe_name, "max_bytes": max_bytes})
    return safe_name


def _split_name_ext(name: str) -> tuple[str, str]:
    ext = Path(name).suffix
    if ext:
        return name[: -len(ext)], ext
    return name, ""
