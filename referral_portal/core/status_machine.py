from __future__ import annotations

from enum import Enum
from typing import Iterable

from referral_portal.core.errors import MissingNote, NoOpTransition, Unauthorized, ValidationError
from referral_portal.core.roles import Role


class ReferralStatus(str, Enum):
    SUBMITTED = "submitted"
    SCREENING = "screening"
    INTERVIEW = "interview"
    OFFER = "offer"
    HIRED = "hired"
    REJECTED = "rejected"


# Workflow order, not alphabetical.
ALL_STATUSES: tuple[ReferralStatus, ...] = (
    ReferralStatus.SUBMITTED,
    ReferralStatus.SCREENING,
    ReferralStatus.INTERVIEW,
    ReferralStatus.OFFER,
    ReferralStatus.HIRED,
    ReferralStatus.REJECTED,
)

TERMINAL_STATUSES: frozenset[ReferralStatus] = frozenset({ReferralStatus.HIRED, ReferralStatus.REJECTED})

IN_PROGRESS_STATUSES: frozenset[ReferralStatus] = frozenset(
    {ReferralStatus.SCREENING, ReferralStatus.INTERVIEW, ReferralStatus.OFFER}
)

STATUS_LABELS: dict[ReferralStatus, str] = {
    ReferralStatus.SUBMITTED: "Submitted",
    ReferralStatus.SCREENING: "Screening",
    ReferralStatus.INTERVIEW: "Interview",
    ReferralStatus.OFFER: "Offer",
    ReferralStatus.HIRED: "Hired",
    ReferralStatus.REJECTED: "Rejected",
}

# Suggested next steps shown to HR. Not enforced by validate_transition.
SUGGESTED_NEXT: dict[ReferralStatus, frozenset[ReferralStatus]] = {
    ReferralStatus.SUBMITTED: frozenset({ReferralStatus.SCREENING, ReferralStatus.REJECTED}),
    ReferralStatus.SCREENING: frozenset({ReferralStatus.INTERVIEW, ReferralStatus.REJECTED}),
    ReferralStatus.INTERVIEW: frozenset({ReferralStatus.OFFER, ReferralStatus.REJECTED}),
    ReferralStatus.OFFER: frozenset({ReferralStatus.HIRED, ReferralStatus.REJECTED}),
    ReferralStatus.HIRED: frozenset(),
    ReferralStatus.REJECTED: frozenset(),
}


def normalize_status_name(raw: str | None) -> str | None:
    if raw is None:
        return None
    normalized = str(raw).strip().lower().replace(" ", "_")
    return normalized or None


def parse_status(raw: str | ReferralStatus | None) -> ReferralStatus:
    if isinstance(raw, ReferralStatus):
        return raw
    normalized = normalize_status_name(raw)
    try:
        return ReferralStatus(normalized)
    except ValueError:
        raise ValidationError(f"Unknown referral status: {raw!r}", field="status")


def is_known_status(raw: str | None) -> bool:
    return normalize_status_name(raw) in {s.value for s in ALL_STATUSES}


def is_terminal_status(status: ReferralStatus | str) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def status_rank(status: ReferralStatus | str) -> int:
    return ALL_STATUSES.index(parse_status(status))


def status_label(status: ReferralStatus | str) -> str:
    return STATUS_LABELS[parse_status(status)]


def suggested_next_statuses(status: ReferralStatus | str) -> tuple[ReferralStatus, ...]:
    nexts = SUGGESTED_NEXT[parse_status(status)]
    return tuple(sorted(nexts, key=status_rank))


def sort_statuses(statuses: Iterable[ReferralStatus | str]) -> list[ReferralStatus]:
    return sorted((parse_status(s) for s in statuses), key=status_rank)


def note_required(status: ReferralStatus | str) -> bool:
    return parse_status(status) == ReferralStatus.REJECTED


def validate_transition(
    current: ReferralStatus | str,
    proposed: ReferralStatus | str,
    note: str | None,
    actor_role: Role | str,
) -> None:
    """Decide whether ``current -> proposed`` may be recorded.

    Any status may move to any other status; the only rules are role, no-op and
    the rejection note. Raises Unauthorized, NoOpTransition or MissingNote.
    """
    if Role(actor_role) != Role.HR:
        raise Unauthorized("Only HR can change referral status.")

    current_status = parse_status(current)
    proposed_status = parse_status(proposed)
    if proposed_status == current_status:
        raise NoOpTransition(current_status.value)

    if note_required(proposed_status) and not (note or "").strip():
        raise MissingNote()
