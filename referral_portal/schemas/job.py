from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class JobCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_code: str
    title: str
    department: str

    @field_validator("job_code", "title", "department")
    @classmethod
    def _strip(cls, v: str) -> str:
        return _strip_required(v)


class JobUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_code: Optional[str] = None
    title: Optional[str] = None
    department: Optional[str] = None

    @field_validator("job_code", "title", "department")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return _strip_required(v)


class JobOut(BaseModel):
    id: str
    job_code: str
    title: str
    department: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
