from __future__ import annotations

from pydantic import BaseModel

from referral_portal.schemas.referral import ReferralListItem


class StatusCount(BaseModel):
    status: str
    label: str
    count: int


class ReferralSummaryOut(BaseModel):
    total_referrals: int
    active_jobs: int
    in_progress: int
    hired: int
    status_counts: list[StatusCount]


class BoardSnapshot(BaseModel):
    generation: int
    referrals: list[ReferralListItem]
    summary: ReferralSummaryOut
