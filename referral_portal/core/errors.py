"""
Error taxonomy for the referral portal.

Services raise these; the exception handlers registered in ``main.py`` turn them
into JSON responses of the form ``{"error": ..., "details": {...}}``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("referrals.errors")


class ReferralPortalError(Exception):
    """Base exception for all portal errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ReferralPortalError):
    """Raised when input has the wrong shape."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)
        self.field = field


class MissingNote(ValidationError):
    """Raised when a rejection is submitted without a reason."""

    def __init__(self, message: str = "Please provide a reason when rejecting a candidate"):
        super().__init__(message, field="note")


class Unauthorized(ReferralPortalError):
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class AuthenticationFailed(ReferralPortalError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class NoOpTransition(ReferralPortalError):
    """Raised when the proposed status equals the current one."""

    def __init__(self, current: str):
        super().__init__(
            f"Referral is already in '{current}' status.",
            status.HTTP_409_CONFLICT,
            {"current_status": current},
        )
        self.current = current


class NotFound(ReferralPortalError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} not found: {resource_id}", status.HTTP_404_NOT_FOUND)
        self.resource = resource
        self.resource_id = resource_id


class PersistenceFailure(ReferralPortalError):
    """Raised when a write could not be committed. Nothing was applied."""

    def __init__(self, message: str = "Could not save changes. Please try again."):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, {"retryable": True})


class AttachmentFailure(ReferralPortalError):
    """Raised by the attachment store. Referral creation treats it as non-fatal."""

    def __init__(self, message: str = "Attachment could not be stored", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


async def portal_exception_handler(request: Request, exc: ReferralPortalError) -> JSONResponse:
    content: Dict[str, Any] = {"error": exc.message, "details": exc.details}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content=content)
