from __future__ import annotations

from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.api import deps
from referral_portal.core.errors import NotFound, ValidationError
from referral_portal.core.roles import sees_all_referrals
from referral_portal.core.status_machine import ALL_STATUSES, note_required, suggested_next_statuses
from referral_portal.db.session import SessionLocal
from referral_portal.schemas.dashboard import ReferralSummaryOut
from referral_portal.schemas.referral import ReferralCreate, ReferralCreateResult, ReferralListItem
from referral_portal.schemas.status_history import (
    ReferralDetailOut,
    StatusChangeRequest,
    StatusHistoryOut,
)
from referral_portal.schemas.user import ActorContext
from referral_portal.services.attachments import ResumeUpload, load_resume
from referral_portal.services.jobs import list_active_jobs
from referral_portal.services.referral_board import ReferralBoard
from referral_portal.services.referral_filters import ALL, filter_referrals, summarize
from referral_portal.services.referrals import (
    create_referrals,
    get_referral_for_actor,
    list_referrals_for_actor,
    referral_list_item,
)
from referral_portal.services.status_history import HistoryRecord, list_status_history, transition_referral

router = APIRouter(prefix="/referrals", tags=["referrals"])

STREAM_PING_SECONDS = 15


def get_board_session_factory():
    return SessionLocal


def _history_out(record: HistoryRecord) -> StatusHistoryOut:
    entry = record.entry
    return StatusHistoryOut(
        id=entry.id,
        referral_id=entry.referral_id,
        status=entry.status,
        note=entry.note,
        changed_by=entry.changed_by,
        changed_by_name=record.changed_by_name,
        created_at=entry.created_at,
    )


def _parse_payload(raw: str) -> ReferralCreate:
    try:
        return ReferralCreate.model_validate_json(raw)
    except pydantic.ValidationError as exc:
        errors = exc.errors()
        field = ".".join(str(part) for part in errors[0].get("loc", ())) if errors else None
        raise ValidationError("Invalid referral payload", field=field or None, details={"errors": len(errors)}) from exc


@router.get("", response_model=list[ReferralListItem])
async def list_referrals(
    q: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=ALL, alias="status"),
    job_id: Optional[str] = Query(default=ALL),
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    include_referrer = sees_all_referrals(user.role)
    rows = await list_referrals_for_actor(session, user)
    items = [referral_list_item(r, include_referrer=include_referrer) for r in rows]
    return filter_referrals(items, q, status_filter, job_id, include_referrer=include_referrer)


@router.post("", response_model=ReferralCreateResult, status_code=status.HTTP_201_CREATED)
async def submit_referral(
    payload: str = Form(...),
    resume: Optional[UploadFile] = File(default=None),
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    data = _parse_payload(payload)
    upload = None
    if resume is not None and resume.filename:
        upload = ResumeUpload(
            filename=resume.filename,
            content_type=resume.content_type,
            data=await resume.read(),
        )

    result = await create_referrals(session, payload=data, actor=user, resume=upload)
    include_referrer = sees_all_referrals(user.role)
    message = "Referral submitted successfully!"
    if result.attachment_skipped:
        message = "Referral submitted, but the resume could not be attached."
    return ReferralCreateResult(
        referrals=[referral_list_item(r, include_referrer=include_referrer) for r in result.referrals],
        attachment_skipped=result.attachment_skipped,
        message=message,
    )


@router.get("/summary", response_model=ReferralSummaryOut)
async def referral_summary(
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    include_referrer = sees_all_referrals(user.role)
    rows = await list_referrals_for_actor(session, user)
    jobs = await list_active_jobs(session)
    return summarize([referral_list_item(r, include_referrer=include_referrer) for r in rows], jobs)


@router.get("/stream")
async def stream_referrals(
    request: Request,
    q: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=ALL, alias="status"),
    job_id: Optional[str] = Query(default=ALL),
    user: ActorContext = Depends(deps.get_user),
    session_factory=Depends(get_board_session_factory),
):
    board = ReferralBoard(session_factory, user)
    board.search_term = q or ""
    board.status_filter = status_filter or ALL
    board.job_filter = job_id or ALL

    async def event_generator():
        async with board.watch() as watch:
            snapshot = await board.refresh()
            if snapshot is not None:
                yield f"event: snapshot\ndata: {snapshot.model_dump_json()}\n\n"
            while True:
                if await request.is_disconnected():
                    break
                snapshot = await watch.next_change(timeout=STREAM_PING_SECONDS)
                if snapshot is None:
                    yield "event: ping\ndata: {}\n\n"
                    continue
                yield f"event: snapshot\ndata: {snapshot.model_dump_json()}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/{referral_id}", response_model=ReferralDetailOut)
async def referral_detail(
    referral_id: str,
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    referral = await get_referral_for_actor(session, referral_id=referral_id, actor=user)
    history = await list_status_history(session, referral_id=referral.id)
    return ReferralDetailOut(
        referral=referral_list_item(referral, include_referrer=sees_all_referrals(user.role)),
        history=[_history_out(record) for record in history],
        suggested_next_statuses=[s.value for s in suggested_next_statuses(referral.current_status)],
        note_required_for=[s.value for s in ALL_STATUSES if note_required(s)],
    )


@router.get("/{referral_id}/history", response_model=list[StatusHistoryOut])
async def referral_history(
    referral_id: str,
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    referral = await get_referral_for_actor(session, referral_id=referral_id, actor=user)
    history = await list_status_history(session, referral_id=referral.id)
    return [_history_out(record) for record in history]


@router.post("/{referral_id}/status", response_model=StatusHistoryOut, status_code=status.HTTP_201_CREATED)
async def change_status(
    referral_id: str,
    payload: StatusChangeRequest,
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    result = await transition_referral(
        session,
        referral_id=referral_id,
        proposed=payload.status,
        note=payload.note,
        actor=user,
    )
    return _history_out(HistoryRecord(entry=result.entry, changed_by_name=user.name))


@router.get("/{referral_id}/resume")
async def download_resume(
    referral_id: str,
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    referral = await get_referral_for_actor(session, referral_id=referral_id, actor=user)
    if not referral.resume_path:
        raise NotFound("Resume", referral_id)
    attachment = await load_resume(referral.resume_path)
    return Response(
        content=attachment.data,
        media_type=attachment.content_type,
        headers={"Content-Disposition": f'attachment; filename="{attachment.filename}"'},
    )
