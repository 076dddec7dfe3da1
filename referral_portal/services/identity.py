from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.config import settings
from referral_portal.core.datetime_utils import utc_now_naive
from referral_portal.core.errors import AuthenticationFailed, Unauthorized, ValidationError
from referral_portal.core.roles import Role
from referral_portal.core.security import hash_password, hash_token, new_session_token, verify_password
from referral_portal.db.transactions import commit_or_raise
from referral_portal.models.auth_session import AuthSession
from referral_portal.models.employee import Employee
from referral_portal.schemas.auth import RegisterRequest
from referral_portal.schemas.user import ActorContext

logger = logging.getLogger("referrals.auth")

_INVALID_CREDENTIALS = "Invalid credentials"


def actor_context(employee: Employee, *, session_id: Optional[str] = None) -> ActorContext:
    return ActorContext(
        actor_id=employee.id,
        employee_code=employee.employee_code,
        name=employee.name,
        email=employee.email,
        role=Role(employee.role),
        session_id=session_id,
    )


async def find_employee(session: AsyncSession, identifier: str) -> Employee | None:
    """Look up an employee by email (case-insensitive) or employee code."""
    ident = (identifier or "").strip()
    if not ident:
        return None
    query = select(Employee).where(
        or_(func.lower(Employee.email) == ident.lower(), Employee.employee_code == ident)
    )
    return (await session.execute(query.limit(1))).scalars().first()


async def find_employee_by_email(session: AsyncSession, email: str) -> Employee | None:
    value = (email or "").strip().lower()
    if not value:
        return None
    query = select(Employee).where(func.lower(Employee.email) == value)
    return (await session.execute(query.limit(1))).scalars().first()


async def register_employee(session: AsyncSession, payload: RegisterRequest) -> Employee:
    """Create an employee account from the sign-up form.

    The email is validated and lowercased here, so stored addresses always
    come from the registration path or the seed script.
    """
    if not settings.allow_self_registration:
        raise Unauthorized("Self-registration is disabled")
    if payload.role == Role.HR and not settings.allow_hr_self_registration:
        raise Unauthorized("HR accounts must be created by an administrator")

    if not payload.first_name:
        raise ValidationError("First name is required", field="first_name")
    if not payload.last_name:
        raise ValidationError("Last name is required", field="last_name")
    if not payload.employee_code:
        raise ValidationError("Employee ID is required", field="employee_code")
    try:
        email = validate_email(payload.email, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValidationError("Invalid email address", field="email")
    if len(payload.password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters", field="password"
        )

    if await find_employee_by_email(session, email) is not None:
        raise ValidationError("An account with this email already exists", field="email")
    taken = await session.execute(
        select(Employee.id).where(Employee.employee_code == payload.employee_code).limit(1)
    )
    if taken.first() is not None:
        raise ValidationError("Employee ID is already registered", field="employee_code")

    employee = Employee(
        employee_code=payload.employee_code,
        name=f"{payload.first_name} {payload.last_name}",
        email=email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        is_active=True,
    )
    session.add(employee)
    await commit_or_raise(session, operation="register_employee")
    logger.info("employee_registered", extra={"employee_id": employee.id, "role": employee.role})
    return employee


async def authenticate(session: AsyncSession, identifier: str, password: str) -> Employee:
    employee = await find_employee(session, identifier)
    if employee is None or not verify_password(password, employee.password_hash):
        logger.info("login_rejected", extra={"identifier": identifier})
        raise AuthenticationFailed(_INVALID_CREDENTIALS)
    if not employee.is_active:
        logger.info("login_rejected_inactive", extra={"employee_id": employee.id})
        raise AuthenticationFailed(_INVALID_CREDENTIALS)
    return employee


async def start_session(
    session: AsyncSession,
    employee: Employee,
    *,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[str, AuthSession]:
    """Create a server-side session and return the raw bearer token with it."""
    token = new_session_token()
    now = utc_now_naive()
    auth_session = AuthSession(
        employee_id=employee.id,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=now + timedelta(hours=int(settings.session_ttl_hours)),
        ip=ip,
        user_agent=user_agent,
    )
    session.add(auth_session)
    await commit_or_raise(session, operation="start_session")
    logger.info("login_succeeded", extra={"employee_id": employee.id, "session_id": auth_session.id})
    return token, auth_session


async def resolve_session(session: AsyncSession, token: str) -> ActorContext:
    """Return the actor behind a bearer token, rejecting revoked or expired sessions."""
    row = (
        await session.execute(
            select(AuthSession, Employee)
            .join(Employee, Employee.id == AuthSession.employee_id)
            .where(AuthSession.token_hash == hash_token(token))
        )
    ).first()
    if row is None:
        raise AuthenticationFailed("Invalid session")
    auth_session, employee = row
    if auth_session.revoked_at is not None:
        raise AuthenticationFailed("Session revoked")
    if auth_session.expires_at <= utc_now_naive():
        raise AuthenticationFailed("Session expired")
    if not employee.is_active:
        raise AuthenticationFailed("User is not active")
    return actor_context(employee, session_id=auth_session.id)


async def revoke_session(session: AsyncSession, session_id: str) -> None:
    auth_session = await session.get(AuthSession, session_id)
    if auth_session is None or auth_session.revoked_at is not None:
        return
    auth_session.revoked_at = utc_now_naive()
    await commit_or_raise(session, operation="revoke_session")
    logger.info("logout", extra={"session_id": session_id})
