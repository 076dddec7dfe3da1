from __future__ import annotations

import logging
import mimetypes
import time
from dataclasses import dataclass
from pathlib import Path

import anyio

from referral_portal.core.config import settings
from referral_portal.core.errors import AttachmentFailure, NotFound
from referral_portal.core.paths import resolve_repo_path
from referral_portal.core.uploads import RESUME_EXTENSIONS, RESUME_MIME_TYPES, sanitize_filename, validate_upload

logger = logging.getLogger("referrals.attachments")


@dataclass(frozen=True)
class ResumeUpload:
    filename: str | None
    content_type: str | None
    data: bytes


@dataclass(frozen=True)
class StoredAttachment:
    data: bytes
    filename: str
    content_type: str


def _root_dir() -> Path:
    return resolve_repo_path(settings.upload_dir)


def _resolve_ref(ref: str) -> Path:
    root = _root_dir().resolve()
    target = (root / ref).resolve()
    if root not in target.parents:
        raise NotFound("Attachment", ref)
    return target


def _write_bytes(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


async def store_resume(owner_id: str, upload: ResumeUpload) -> str:
    """Validate and store a resume under the owner's folder. Returns the stored reference."""
    filename = validate_upload(
        upload.filename,
        upload.content_type,
        allowed_extensions=RESUME_EXTENSIONS,
        allowed_mime_types=RESUME_MIME_TYPES,
        max_bytes=settings.max_resume_bytes,
        size=len(upload.data),
    )
    ref = f"{sanitize_filename(owner_id)}/{int(time.time() * 1000)}-{filename}"
    target = _resolve_ref(ref)
    try:
        await anyio.to_thread.run_sync(_write_bytes, target, upload.data)
    except OSError as exc:
        raise AttachmentFailure("Resume could not be stored.", {"error": str(exc)}) from exc
    logger.info("resume_stored", extra={"owner_id": owner_id, "ref": ref, "size": len(upload.data)})
    return ref


async def load_resume(ref: str) -> StoredAttachment:
    target = _resolve_ref(ref)
    if not target.exists():
        raise NotFound("Attachment", ref)
    data = await anyio.to_thread.run_sync(target.read_bytes)
    original_name = target.name.split("-", 1)[-1]
    content_type = mimetypes.guess_type(original_name)[0] or "application/octet-stream"
    return StoredAttachment(data=data, filename=original_name, content_type=content_type)


async def discard_resume(ref: str) -> None:
    """Remove a stored resume that ended up unreferenced."""
    target = _resolve_ref(ref)
    try:
        await anyio.to_thread.run_sync(target.unlink)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("resume_discard_failed", extra={"ref": ref, "error": str(exc)})
