from __future__ import annotations

from enum import Enum
from typing import Iterable


class Role(str, Enum):
    EMPLOYEE = "employee"
    HR = "hr"


def has_required_role(user_roles: Iterable[Role], required: Iterable[Role]) -> bool:
    user_roles_set = {Role(r) for r in user_roles}
    required_set = {Role(r) for r in required}
    return bool(user_roles_set & required_set)


def sees_all_referrals(role: Role | str) -> bool:
    return Role(role) == Role.HR
