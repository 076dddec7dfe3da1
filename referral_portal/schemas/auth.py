from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from referral_portal.core.roles import Role
from referral_portal.schemas.user import ActorOut


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Email address or employee code.
    identifier: str
    password: str

    @field_validator("identifier")
    @classmethod
    def _strip_identifier(cls, v: str) -> str:
        return v.strip()


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    actor: ActorOut


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: str
    last_name: str
    email: str
    employee_code: str
    password: str
    role: Role = Role.EMPLOYEE

    @field_validator("first_name", "last_name", "email", "employee_code")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()
