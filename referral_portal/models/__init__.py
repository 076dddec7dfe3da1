from referral_portal.db.base import Base
from referral_portal.models.auth_session import AuthSession
from referral_portal.models.employee import Employee
from referral_portal.models.job import Job
from referral_portal.models.referral import Referral
from referral_portal.models.status_history import AuditTrailViolation, StatusHistoryEntry

__all__ = [
    "Base",
    "AuditTrailViolation",
    "AuthSession",
    "Employee",
    "Job",
    "Referral",
    "StatusHistoryEntry",
]
