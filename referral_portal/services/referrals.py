from __future__ import annotations

import logging
from dataclasses import dataclass, field

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.config import settings
from referral_portal.core.errors import AttachmentFailure, NotFound, PersistenceFailure, ValidationError
from referral_portal.core.roles import sees_all_referrals
from referral_portal.db.transactions import commit_or_raise
from referral_portal.models.employee import Employee
from referral_portal.models.job import Job
from referral_portal.models.referral import Referral
from referral_portal.schemas.referral import JobRef, ReferralCreate, ReferralListItem, ReferrerRef
from referral_portal.schemas.user import ActorContext
from referral_portal.services.attachments import ResumeUpload, discard_resume, store_resume
from referral_portal.services.events import notify_referrals_created
from referral_portal.services.status_history import open_referral

logger = logging.getLogger("referrals.referrals")

_REQUIRED_FIELDS = (
    ("candidate_first_name", "First name is required"),
    ("candidate_last_name", "Last name is required"),
    ("candidate_phone", "Phone number is required"),
    ("candidate_email", "Email is required"),
)


@dataclass
class ReferralCreation:
    referrals: list[Referral] = field(default_factory=list)
    attachment_skipped: bool = False


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _unique_job_ids(job_ids: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for raw in job_ids:
        job_id = _clean(raw)
        if job_id and job_id not in seen:
            seen.add(job_id)
            ordered.append(job_id)
    return ordered


def validate_referral_payload(payload: ReferralCreate) -> ReferralCreate:
    """Return a trimmed copy of the payload or raise ValidationError on the first bad field."""
    for name, message in _REQUIRED_FIELDS:
        if not _clean(getattr(payload, name)):
            raise ValidationError(message, field=name)

    try:
        email = validate_email(_clean(payload.candidate_email), check_deliverability=False).normalized
    except EmailNotValidError:
        raise ValidationError("Invalid email address", field="candidate_email")

    if payload.candidate_dob is None:
        raise ValidationError("Date of birth is required", field="candidate_dob")

    job_ids = _unique_job_ids(payload.job_ids)
    if not job_ids:
        raise ValidationError("Please select at least one job", field="job_ids")

    how_know = _clean(payload.how_know_candidate)
    if not how_know:
        raise ValidationError("Please describe how you know this candidate", field="how_know_candidate")
    if len(how_know) > settings.how_know_max_length:
        raise ValidationError(
            f"Maximum {settings.how_know_max_length} characters",
            field="how_know_candidate",
        )

    return ReferralCreate(
        candidate_first_name=_clean(payload.candidate_first_name),
        candidate_middle_name=_clean(payload.candidate_middle_name) or None,
        candidate_last_name=_clean(payload.candidate_last_name),
        candidate_phone=_clean(payload.candidate_phone),
        candidate_email=email,
        candidate_dob=payload.candidate_dob,
        job_ids=job_ids,
        how_know_candidate=how_know,
    )


async def _load_selectable_jobs(session: AsyncSession, job_ids: list[str]) -> list[Job]:
    rows = (await session.execute(select(Job).where(Job.id.in_(job_ids)))).scalars().all()
    by_id = {job.id: job for job in rows}
    jobs: list[Job] = []
    for job_id in job_ids:
        job = by_id.get(job_id)
        if job is None:
            raise ValidationError(f"Unknown job: {job_id}", field="job_ids")
        if not job.is_active:
            raise ValidationError(f"Job {job.job_code} is no longer open for referrals", field="job_ids")
        jobs.append(job)
    return jobs


async def create_referrals(
    session: AsyncSession,
    *,
    payload: ReferralCreate,
    actor: ActorContext,
    resume: ResumeUpload | None = None,
) -> ReferralCreation:
    """Create one referral per selected job, each opened in ``submitted``.

    All referrals of one submission are committed together. A resume that cannot
    be stored is skipped and reported through ``attachment_skipped``.
    """
    cleaned = validate_referral_payload(payload)
    jobs = await _load_selectable_jobs(session, cleaned.job_ids)
    referrer = await session.get(Employee, actor.actor_id)
    if referrer is None:
        raise NotFound("Employee", actor.actor_id)

    result = ReferralCreation()
    resume_path: str | None = None
    if resume is not None:
        try:
            resume_path = await store_resume(actor.actor_id, resume)
        except AttachmentFailure as exc:
            logger.warning(
                "resume_skipped",
                extra={"actor_id": actor.actor_id, "reason": exc.message, "details": exc.details},
            )
            result.attachment_skipped = True

    for job in jobs:
        referral = Referral(
            job_id=job.id,
            referrer_id=actor.actor_id,
            candidate_first_name=cleaned.candidate_first_name,
            candidate_middle_name=cleaned.candidate_middle_name,
            candidate_last_name=cleaned.candidate_last_name,
            candidate_phone=cleaned.candidate_phone,
            candidate_email=cleaned.candidate_email,
            candidate_dob=cleaned.candidate_dob,
            how_know_candidate=cleaned.how_know_candidate,
            resume_path=resume_path,
        )
        referral.job = job
        referral.referrer = referrer
        open_referral(session, referral, actor_id=actor.actor_id)
        result.referrals.append(referral)

    try:
        await commit_or_raise(session, operation="create_referrals")
    except PersistenceFailure:
        if resume_path:
            await discard_resume(resume_path)
        raise

    await notify_referrals_created(result.referrals)
    logger.info(
        "referrals_created",
        extra={"actor_id": actor.actor_id, "count": len(result.referrals), "with_resume": bool(resume_path)},
    )
    return result


def _scoped_query(actor: ActorContext):
    query = select(Referral).order_by(Referral.created_at.desc(), Referral.id.desc())
    if not sees_all_referrals(actor.role):
        query = query.where(Referral.referrer_id == actor.actor_id)
    return query


async def list_referrals_for_actor(session: AsyncSession, actor: ActorContext) -> list[Referral]:
    return list((await session.execute(_scoped_query(actor))).scalars().all())


async def get_referral_for_actor(session: AsyncSession, *, referral_id: str, actor: ActorContext) -> Referral:
    """Load a referral the actor may see. Out-of-scope referrals look missing."""
    referral = await session.get(Referral, referral_id)
    if referral is None:
        raise NotFound("Referral", referral_id)
    if not sees_all_referrals(actor.role) and referral.referrer_id != actor.actor_id:
        raise NotFound("Referral", referral_id)
    return referral


def referral_list_item(referral: Referral, *, include_referrer: bool) -> ReferralListItem:
    return ReferralListItem(
        id=referral.id,
        candidate_first_name=referral.candidate_first_name,
        candidate_middle_name=referral.candidate_middle_name,
        candidate_last_name=referral.candidate_last_name,
        candidate_full_name=referral.candidate_full_name,
        candidate_phone=referral.candidate_phone,
        candidate_email=referral.candidate_email,
        candidate_dob=referral.candidate_dob,
        how_know_candidate=referral.how_know_candidate,
        has_resume=bool(referral.resume_path),
        current_status=referral.current_status,
        created_at=referral.created_at,
        updated_at=referral.updated_at,
        job=JobRef.model_validate(referral.job),
        referrer=ReferrerRef.model_validate(referral.referrer) if include_referrer else None,
    )
