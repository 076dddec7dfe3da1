"""
Audit trail for referral status.

Every status a referral enters is appended here, and this module is the only
place that sets ``Referral.current_status``. The entry and the cached status are
committed together or not at all.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.datetime_utils import utc_now_naive
from referral_portal.core.errors import NotFound, Unauthorized
from referral_portal.core.status_machine import ReferralStatus, parse_status, validate_transition
from referral_portal.db.transactions import commit_or_raise
from referral_portal.models.employee import Employee
from referral_portal.models.referral import Referral
from referral_portal.models.status_history import StatusHistoryEntry
from referral_portal.schemas.user import ActorContext
from referral_portal.services.events import notify_referral_change

logger = logging.getLogger("referrals.status")


@dataclass(frozen=True)
class StatusChangeResult:
    referral_id: str
    from_status: str
    to_status: str
    entry: StatusHistoryEntry


def _apply_status(referral: Referral, status: ReferralStatus, now: datetime) -> None:
    referral._current_status = status.value
    referral.updated_at = now


def _clean_note(note: str | None) -> str | None:
    cleaned = (note or "").strip()
    return cleaned or None


def open_referral(session: AsyncSession, referral: Referral, *, actor_id: str) -> StatusHistoryEntry:
    """Stage a new referral together with its initial ``submitted`` entry. The caller commits."""
    now = utc_now_naive()
    if not referral.id:
        referral.id = uuid4().hex
    referral.created_at = now
    _apply_status(referral, ReferralStatus.SUBMITTED, now)

    entry = StatusHistoryEntry(
        referral_id=referral.id,
        status=ReferralStatus.SUBMITTED.value,
        note=None,
        changed_by=actor_id,
        created_at=now,
    )
    session.add(referral)
    session.add(entry)
    return entry


async def record_status_change(
    session: AsyncSession,
    *,
    referral: Referral,
    status: ReferralStatus | str,
    note: str | None,
    actor_id: str,
) -> StatusHistoryEntry:
    """Append one entry and move ``current_status`` to it in the same commit."""
    new_status = parse_status(status)
    now = utc_now_naive()

    entry = StatusHistoryEntry(
        referral_id=referral.id,
        status=new_status.value,
        note=_clean_note(note),
        changed_by=actor_id,
        created_at=now,
    )
    session.add(entry)
    _apply_status(referral, new_status, now)

    await commit_or_raise(session, operation="record_status_change")
    await notify_referral_change(referral, action="update")
    return entry


async def transition_referral(
    session: AsyncSession,
    *,
    referral_id: str,
    proposed: ReferralStatus | str,
    note: str | None,
    actor: ActorContext,
) -> StatusChangeResult:
    if not actor.is_hr:
        raise Unauthorized("Only HR can change referral status.")

    referral = await session.get(Referral, referral_id)
    if referral is None:
        raise NotFound("Referral", referral_id)

    from_status = referral.current_status
    validate_transition(from_status, proposed, note, actor.role)

    entry = await record_status_change(
        session,
        referral=referral,
        status=proposed,
        note=note,
        actor_id=actor.actor_id,
    )
    logger.info(
        "status_changed",
        extra={
            "referral_id": referral_id,
            "from_status": from_status,
            "to_status": entry.status,
            "actor_id": actor.actor_id,
        },
    )
    return StatusChangeResult(
        referral_id=referral_id,
        from_status=from_status,
        to_status=entry.status,
        entry=entry,
    )


@dataclass(frozen=True)
class HistoryRecord:
    entry: StatusHistoryEntry
    changed_by_name: str


async def list_status_history(session: AsyncSession, *, referral_id: str) -> list[HistoryRecord]:
    rows = (
        await session.execute(
            select(StatusHistoryEntry, Employee.name)
            .outerjoin(Employee, Employee.id == StatusHistoryEntry.changed_by)
            .where(StatusHistoryEntry.referral_id == referral_id)
            .order_by(StatusHistoryEntry.created_at.asc(), StatusHistoryEntry.id.asc())
        )
    ).all()
    return [HistoryRecord(entry=entry, changed_by_name=name or "Unknown User") for entry, name in rows]
