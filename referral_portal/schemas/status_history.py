from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from referral_portal.schemas.referral import ReferralListItem


class StatusHistoryOut(BaseModel):
    id: int
    referral_id: str
    status: str
    note: Optional[str] = None
    changed_by: str
    changed_by_name: str
    created_at: datetime


class StatusChangeRequest(BaseModel):
    status: str
    note: Optional[str] = None


class ReferralDetailOut(BaseModel):
    referral: ReferralListItem
    history: List[StatusHistoryOut]
    suggested_next_statuses: List[str]
    note_required_for: List[str]
