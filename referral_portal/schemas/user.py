from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from referral_portal.core.roles import Role


class ActorContext(BaseModel):
    """Identity of the caller, resolved once per request from its session."""

    actor_id: str
    employee_code: str
    name: str
    email: str
    role: Role
    session_id: Optional[str] = None

    @property
    def roles(self) -> List[Role]:
        return [self.role]

    @property
    def is_hr(self) -> bool:
        return self.role == Role.HR


class ActorOut(BaseModel):
    id: str
    employee_code: str
    name: str
    email: str
    role: Role

    class Config:
        from_attributes = True
