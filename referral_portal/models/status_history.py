from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, object_session

from referral_portal.core.datetime_utils import utc_now_naive
from referral_portal.db.base import Base


class StatusHistoryEntry(Base):
    """Append-only audit row. Order within a referral is (created_at, id)."""

    __tablename__ = "referral_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    referral_id: Mapped[str] = mapped_column(ForeignKey("referrals.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by: Mapped[str] = mapped_column(ForeignKey("employees.id"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True)


class AuditTrailViolation(RuntimeError):
    pass


@event.listens_for(StatusHistoryEntry, "before_update")
def _refuse_update(mapper, connection, target: StatusHistoryEntry) -> None:
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise AuditTrailViolation("Status history entries cannot be modified.")


@event.listens_for(StatusHistoryEntry, "before_delete")
def _refuse_delete(mapper, connection, target: StatusHistoryEntry) -> None:
    raise AuditTrailViolation("Status history entries cannot be deleted.")
