from datetime import timedelta

import pytest

from conftest import PASSWORD
from referral_portal.core.config import settings
from referral_portal.core.errors import AuthenticationFailed, Unauthorized, ValidationError
from referral_portal.core.roles import Role, has_required_role
from referral_portal.core.security import hash_password, hash_token, verify_password
from referral_portal.models import AuthSession
from referral_portal.schemas.auth import RegisterRequest
from referral_portal.schemas.user import ActorOut
from referral_portal.services.identity import (
    authenticate,
    find_employee_by_email,
    register_employee,
    resolve_session,
    revoke_session,
    start_session,
)


def test_password_hash_round_trip():
    encoded = hash_password("s3cret", iterations=1000)
    assert encoded.startswith("pbkdf2:sha256:1000$")
    assert verify_password("s3cret", encoded)
    assert not verify_password("wrong", encoded)


def test_password_hashes_are_salted():
    assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)


def test_malformed_hash_never_verifies():
    assert not verify_password("x", None)
    assert not verify_password("x", "plaintext")
    assert not verify_password("x", "md5$1$abc$def")


def test_role_checks():
    assert has_required_role([Role.HR], [Role.HR]) is True
    assert has_required_role([Role.EMPLOYEE], [Role.HR]) is False
    assert has_required_role([Role.EMPLOYEE], [Role.EMPLOYEE, Role.HR]) is True


async def test_login_by_email_or_employee_code(db_session, employee):
    assert (await authenticate(db_session, "EMP001@Example.com", PASSWORD)).id == employee.id
    assert (await authenticate(db_session, "EMP001", PASSWORD)).id == employee.id


async def test_bad_credentials(db_session, employee):
    with pytest.raises(AuthenticationFailed):
        await authenticate(db_session, "EMP001", "nope")
    with pytest.raises(AuthenticationFailed):
        await authenticate(db_session, "nobody@example.com", PASSWORD)


async def test_inactive_employee_cannot_log_in(db_session, make_employee):
    await make_employee("EMP009", "Former Staff", active=False)
    with pytest.raises(AuthenticationFailed):
        await authenticate(db_session, "EMP009", PASSWORD)


async def test_session_lifecycle(db_session, hr_user):
    token, auth_session = await start_session(db_session, hr_user, ip="127.0.0.1")
    assert auth_session.token_hash == hash_token(token)
    assert token not in auth_session.token_hash

    actor = await resolve_session(db_session, token)
    assert actor.actor_id == hr_user.id
    assert actor.is_hr
    assert actor.session_id == auth_session.id

    await revoke_session(db_session, auth_session.id)
    with pytest.raises(AuthenticationFailed):
        await resolve_session(db_session, token)


async def test_expired_session_is_rejected(db_session, employee):
    token, auth_session = await start_session(db_session, employee)
    session_row = await db_session.get(AuthSession, auth_session.id)
    session_row.expires_at = session_row.created_at - timedelta(seconds=1)
    await db_session.commit()
    with pytest.raises(AuthenticationFailed):
        await resolve_session(db_session, token)


async def test_unknown_token(db_session):
    with pytest.raises(AuthenticationFailed):
        await resolve_session(db_session, "not-a-token")


async def test_reserved_domain_email_can_log_in(db_session, make_employee):
    hr = await make_employee("HR002", "Dana Ortiz", role=Role.HR, email="hr@portal.local")
    employee = await authenticate(db_session, "hr@portal.local", PASSWORD)
    token, _ = await start_session(db_session, employee)

    actor = await resolve_session(db_session, token)
    assert actor.actor_id == hr.id
    assert actor.email == "hr@portal.local"
    assert ActorOut.model_validate(employee).email == "hr@portal.local"


async def test_email_lookup_ignores_employee_code(db_session, employee):
    assert (await find_employee_by_email(db_session, " EMP001@EXAMPLE.COM ")).id == employee.id
    assert await find_employee_by_email(db_session, "EMP001") is None
    assert await find_employee_by_email(db_session, "") is None


def _registration(**overrides) -> RegisterRequest:
    fields = {
        "first_name": "Riya",
        "last_name": "Kapoor",
        "email": "Riya.Kapoor@Example.com",
        "employee_code": "EMP050",
        "password": "secret1",
    }
    fields.update(overrides)
    return RegisterRequest(**fields)


async def test_register_employee(db_session):
    employee = await register_employee(db_session, _registration(first_name=" Riya "))
    assert employee.name == "Riya Kapoor"
    assert employee.email == "riya.kapoor@example.com"
    assert employee.role == Role.EMPLOYEE.value
    assert employee.password_hash != "secret1"
    assert (await authenticate(db_session, "EMP050", "secret1")).id == employee.id


async def test_register_rejects_duplicates(db_session, employee):
    with pytest.raises(ValidationError) as exc_info:
        await register_employee(db_session, _registration(email="emp001@example.com"))
    assert exc_info.value.field == "email"

    with pytest.raises(ValidationError) as exc_info:
        await register_employee(db_session, _registration(employee_code="EMP001"))
    assert exc_info.value.field == "employee_code"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"email": "not-an-email"}, "email"),
        ({"password": "12345"}, "password"),
        ({"first_name": "  "}, "first_name"),
        ({"last_name": ""}, "last_name"),
        ({"employee_code": " "}, "employee_code"),
    ],
)
async def test_register_rejects_invalid_fields(db_session, overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        await register_employee(db_session, _registration(**overrides))
    assert exc_info.value.field == field


async def test_hr_self_registration_needs_opt_in(db_session, monkeypatch):
    with pytest.raises(Unauthorized):
        await register_employee(db_session, _registration(role=Role.HR))

    monkeypatch.setattr(settings, "allow_hr_self_registration", True)
    employee = await register_employee(db_session, _registration(role=Role.HR))
    assert employee.role == Role.HR.value
