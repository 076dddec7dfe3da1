from __future__ import annotations

from typing import Iterable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.config import settings
from referral_portal.core.errors import AuthenticationFailed, Unauthorized
from referral_portal.core.roles import Role, has_required_role
from referral_portal.db.session import get_session
from referral_portal.schemas.user import ActorContext
from referral_portal.services.identity import actor_context, find_employee_by_email, resolve_session


async def get_current_user(request: Request, session: AsyncSession = Depends(get_session)) -> ActorContext:
    actor = await _resolve_actor(request, session)
    request.state.actor_id = actor.actor_id
    return actor


async def _resolve_actor(request: Request, session: AsyncSession) -> ActorContext:
    bearer = _read_bearer_token(request)
    if bearer:
        return await resolve_session(session, bearer)

    if settings.auth_mode == "session":
        raise AuthenticationFailed("Missing bearer token")

    # Dev mode: X-User-Email names an existing employee.
    email = (request.headers.get("x-user-email") or "").strip()
    if not email:
        raise AuthenticationFailed("Missing X-User-Email header")
    employee = await find_employee_by_email(session, email)
    if employee is None or not employee.is_active:
        raise AuthenticationFailed("Unknown user")
    return actor_context(employee)


def _read_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    prefix = "bearer "
    if auth.lower().startswith(prefix):
        return auth[len(prefix) :].strip() or None
    return None


def require_roles(required: Iterable[Role]):
    required = tuple(required)

    async def dependency(user: ActorContext = Depends(get_current_user)) -> ActorContext:
        if not has_required_role(user.roles, required):
            raise Unauthorized()
        return user

    return dependency
