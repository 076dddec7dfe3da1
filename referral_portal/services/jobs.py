from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.datetime_utils import utc_now_naive
from referral_portal.core.errors import NotFound, ValidationError
from referral_portal.db.transactions import commit_or_raise
from referral_portal.models.job import Job
from referral_portal.schemas.job import JobCreate, JobUpdate

logger = logging.getLogger("referrals.jobs")


async def list_active_jobs(session: AsyncSession) -> list[Job]:
    """Jobs that currently accept referrals."""
    rows = await session.execute(select(Job).where(Job.is_active.is_(True)).order_by(Job.job_code.asc()))
    return list(rows.scalars().all())


async def list_all_jobs(session: AsyncSession) -> list[Job]:
    rows = await session.execute(select(Job).order_by(Job.created_at.desc(), Job.job_code.asc()))
    return list(rows.scalars().all())


async def _get_job(session: AsyncSession, job_id: str) -> Job:
    job = await session.get(Job, job_id)
    if job is None:
        raise NotFound("Job", job_id)
    return job


async def _ensure_code_available(session: AsyncSession, job_code: str, *, exclude_id: str | None = None) -> None:
    query = select(Job.id).where(Job.job_code == job_code)
    if exclude_id:
        query = query.where(Job.id != exclude_id)
    if (await session.execute(query.limit(1))).scalar_one_or_none():
        raise ValidationError(f"Job code {job_code} already exists", field="job_code")


async def create_job(session: AsyncSession, payload: JobCreate) -> Job:
    await _ensure_code_available(session, payload.job_code)
    now = utc_now_naive()
    job = Job(
        job_code=payload.job_code,
        title=payload.title,
        department=payload.department,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    session.add(job)
    await commit_or_raise(session, operation="create_job")
    logger.info("job_created", extra={"job_id": job.id, "job_code": job.job_code})
    return job


async def update_job(session: AsyncSession, job_id: str, payload: JobUpdate) -> Job:
    job = await _get_job(session, job_id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "job_code" in updates and updates["job_code"] != job.job_code:
        await _ensure_code_available(session, updates["job_code"], exclude_id=job.id)
    for key, value in updates.items():
        setattr(job, key, value)
    job.updated_at = utc_now_naive()
    await commit_or_raise(session, operation="update_job")
    return job


async def toggle_job(session: AsyncSession, job_id: str) -> Job:
    """Flip whether a job accepts referrals. Existing referrals are untouched."""
    job = await _get_job(session, job_id)
    job.is_active = not job.is_active
    job.updated_at = utc_now_naive()
    await commit_or_raise(session, operation="toggle_job")
    logger.info("job_toggled", extra={"job_id": job.id, "is_active": job.is_active})
    return job
