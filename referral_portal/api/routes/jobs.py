from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.api import deps
from referral_portal.core.auth import require_roles
from referral_portal.core.roles import Role
from referral_portal.schemas.job import JobCreate, JobOut, JobUpdate
from referral_portal.schemas.user import ActorContext
from referral_portal.services import jobs as job_service

router = APIRouter(prefix="/jobs", tags=["jobs"])

_hr_only = require_roles([Role.HR])


@router.get("/active", response_model=list[JobOut])
async def list_active_jobs(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: ActorContext = Depends(deps.get_user),
):
    return await job_service.list_active_jobs(session)


@router.get("", response_model=list[JobOut])
async def list_jobs(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: ActorContext = Depends(_hr_only),
):
    return await job_service.list_all_jobs(session)


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: ActorContext = Depends(_hr_only),
):
    return await job_service.create_job(session, payload)


@router.patch("/{job_id}", response_model=JobOut)
async def update_job(
    job_id: str,
    payload: JobUpdate,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: ActorContext = Depends(_hr_only),
):
    return await job_service.update_job(session, job_id, payload)


@router.post("/{job_id}/toggle", response_model=JobOut)
async def toggle_job(
    job_id: str,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: ActorContext = Depends(_hr_only),
):
    return await job_service.toggle_job(session, job_id)
