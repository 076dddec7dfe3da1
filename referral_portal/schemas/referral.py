from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ReferralCreate(BaseModel):
    """Referral form payload. Field rules are enforced by services.referrals."""

    model_config = ConfigDict(extra="forbid")

    candidate_first_name: str = ""
    candidate_middle_name: Optional[str] = None
    candidate_last_name: str = ""
    candidate_phone: str = ""
    candidate_email: str = ""
    candidate_dob: Optional[date] = None
    job_ids: List[str] = []
    how_know_candidate: str = ""


class JobRef(BaseModel):
    id: str
    job_code: str
    title: str
    department: Optional[str] = None

    class Config:
        from_attributes = True


class ReferrerRef(BaseModel):
    id: str
    name: str
    employee_code: str

    class Config:
        from_attributes = True


class ReferralListItem(BaseModel):
    id: str
    candidate_first_name: str
    candidate_middle_name: Optional[str] = None
    candidate_last_name: str
    candidate_full_name: str
    candidate_phone: str
    candidate_email: str
    candidate_dob: date
    how_know_candidate: str
    has_resume: bool = False
    current_status: str
    created_at: datetime
    updated_at: datetime
    job: JobRef
    # Only populated for HR views.
    referrer: Optional[ReferrerRef] = None


class ReferralCreateResult(BaseModel):
    referrals: List[ReferralListItem]
    attachment_skipped: bool = False
    message: str
