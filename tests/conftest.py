import os

os.environ.setdefault("REFERRAL_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REFERRAL_AUTH_MODE", "session")
os.environ.setdefault("REFERRAL_PASSWORD_HASH_ITERATIONS", "1000")
os.environ["REFERRAL_REDIS_URL"] = ""

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from referral_portal.core.config import settings
from referral_portal.core.roles import Role
from referral_portal.core.security import hash_password
from referral_portal.models import Base, Employee, Job
from referral_portal.schemas.referral import ReferralCreate
from referral_portal.services.identity import actor_context

PASSWORD = "correct horse battery"


@pytest.fixture()
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(target))
    return target


@pytest.fixture()
def make_employee(db_session):
    async def _make(
        code: str, name: str, *, role: Role = Role.EMPLOYEE, active: bool = True, email: str | None = None
    ) -> Employee:
        employee = Employee(
            employee_code=code,
            name=name,
            email=email or f"{code.lower()}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role.value,
            is_active=active,
        )
        db_session.add(employee)
        await db_session.commit()
        return employee

    return _make


@pytest.fixture()
def make_job(db_session):
    async def _make(code: str, title: str, *, department: str = "Engineering", active: bool = True) -> Job:
        job = Job(job_code=code, title=title, department=department, is_active=active)
        db_session.add(job)
        await db_session.commit()
        return job

    return _make


@pytest.fixture()
async def employee(make_employee):
    return await make_employee("EMP001", "Priya Sharma")


@pytest.fixture()
async def hr_user(make_employee):
    return await make_employee("HR001", "Morgan Lee", role=Role.HR)


@pytest.fixture()
def employee_actor(employee):
    return actor_context(employee)


@pytest.fixture()
def hr_actor(hr_user):
    return actor_context(hr_user)


def referral_payload(job_ids, **overrides) -> ReferralCreate:
    data = {
        "candidate_first_name": "Jane",
        "candidate_last_name": "Doe",
        "candidate_phone": "+1 555 0100",
        "candidate_email": "jane.doe@example.com",
        "candidate_dob": date(1994, 5, 17),
        "job_ids": list(job_ids),
        "how_know_candidate": "Worked together at my previous company for three years.",
    }
    data.update(overrides)
    return ReferralCreate(**data)
