import pydantic
import pytest

from referral_portal.core.errors import NotFound, ValidationError
from referral_portal.schemas.job import JobCreate, JobUpdate
from referral_portal.services.jobs import create_job, list_active_jobs, list_all_jobs, toggle_job, update_job


async def test_create_and_list(db_session):
    job = await create_job(db_session, JobCreate(job_code=" ENG-101 ", title="Backend Engineer", department="Engineering"))
    assert job.job_code == "ENG-101"
    assert job.is_active
    assert [j.id for j in await list_active_jobs(db_session)] == [job.id]
    assert [j.id for j in await list_all_jobs(db_session)] == [job.id]


async def test_duplicate_code_is_rejected(db_session, make_job):
    await make_job("ENG-101", "Backend Engineer")
    with pytest.raises(ValidationError) as exc_info:
        await create_job(db_session, JobCreate(job_code="ENG-101", title="Other", department="Engineering"))
    assert exc_info.value.field == "job_code"


def test_blank_fields_fail_schema_validation():
    with pytest.raises(pydantic.ValidationError):
        JobCreate(job_code="  ", title="x", department="y")


async def test_toggle_hides_job_from_active_list(db_session, make_job):
    eng = await make_job("ENG-101", "Backend Engineer")
    des = await make_job("DES-201", "Product Designer")

    toggled = await toggle_job(db_session, eng.id)
    assert toggled.is_active is False
    assert [j.job_code for j in await list_active_jobs(db_session)] == ["DES-201"]
    assert {j.id for j in await list_all_jobs(db_session)} == {eng.id, des.id}

    assert (await toggle_job(db_session, eng.id)).is_active is True


async def test_update_job(db_session, make_job):
    eng = await make_job("ENG-101", "Backend Engineer")
    await make_job("DES-201", "Product Designer")

    updated = await update_job(db_session, eng.id, JobUpdate(title="Senior Backend Engineer"))
    assert updated.title == "Senior Backend Engineer"
    assert updated.job_code == "ENG-101"

    with pytest.raises(ValidationError):
        await update_job(db_session, eng.id, JobUpdate(job_code="DES-201"))


async def test_unknown_job(db_session):
    with pytest.raises(NotFound):
        await toggle_job(db_session, "missing")
