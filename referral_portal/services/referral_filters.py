"""
Pure filtering and counting over already-scoped referral rows.

Callers fetch the actor's referrals first (see ``services.referrals``); nothing
here touches the database.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional, Sequence

from referral_portal.core.status_machine import (
    ALL_STATUSES,
    IN_PROGRESS_STATUSES,
    ReferralStatus,
    is_known_status,
    normalize_status_name,
    status_label,
)
from referral_portal.models.job import Job
from referral_portal.schemas.dashboard import ReferralSummaryOut, StatusCount
from referral_portal.schemas.referral import ReferralListItem

ALL = "all"


def _is_noop(value: Optional[str]) -> bool:
    cleaned = (value or "").strip()
    return not cleaned or cleaned.lower() == ALL


def _search_fields(item: ReferralListItem, include_referrer: bool) -> list[str]:
    fields = [
        f"{item.candidate_first_name} {item.candidate_last_name}",
        item.job.job_code,
        item.job.title,
    ]
    if include_referrer and item.referrer is not None:
        fields.append(item.referrer.name)
    return fields


def _is_blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def matches_search(item: ReferralListItem, search_term: Optional[str], *, include_referrer: bool = False) -> bool:
    if _is_blank(search_term):
        return True
    needle = search_term.strip().lower()
    return any(needle in (value or "").lower() for value in _search_fields(item, include_referrer))


def filter_referrals(
    items: Iterable[ReferralListItem],
    search_term: Optional[str] = None,
    status_filter: Optional[str] = ALL,
    job_filter: Optional[str] = ALL,
    *,
    include_referrer: bool = False,
) -> list[ReferralListItem]:
    """Apply search, status and job filters (AND). ``"all"`` or empty disables a filter."""
    status_value = None if _is_noop(status_filter) else normalize_status_name(status_filter)
    job_value = None if _is_noop(job_filter) else job_filter.strip()

    result: list[ReferralListItem] = []
    for item in items:
        if status_value is not None and item.current_status != status_value:
            continue
        if job_value is not None and item.job.id != job_value:
            continue
        if not matches_search(item, search_term, include_referrer=include_referrer):
            continue
        result.append(item)
    return result


def status_counts(items: Iterable[ReferralListItem]) -> dict[str, int]:
    return dict(Counter(item.current_status for item in items))


def summarize(items: Sequence[ReferralListItem], jobs: Iterable[Job]) -> ReferralSummaryOut:
    counts = status_counts(items)
    in_progress = sum(counts.get(status.value, 0) for status in IN_PROGRESS_STATUSES)

    ordered: list[StatusCount] = [
        StatusCount(status=status.value, label=status_label(status), count=counts.get(status.value, 0))
        for status in ALL_STATUSES
    ]
    # Legacy values outside the enum still get counted, after the known ones.
    extras = sorted(name for name in counts if not is_known_status(name))
    ordered.extend(StatusCount(status=name, label=name, count=counts[name]) for name in extras)

    return ReferralSummaryOut(
        total_referrals=len(items),
        active_jobs=sum(1 for job in jobs if job.is_active),
        in_progress=in_progress,
        hired=counts.get(ReferralStatus.HIRED.value, 0),
        status_counts=ordered,
    )

