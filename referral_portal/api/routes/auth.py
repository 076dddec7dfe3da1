from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.api import deps
from referral_portal.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from referral_portal.schemas.user import ActorContext, ActorOut
from referral_portal.services.identity import authenticate, register_employee, revoke_session, start_session

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
):
    employee = await authenticate(session, payload.identifier, payload.password)
    token, auth_session = await start_session(
        session,
        employee,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return LoginResponse(
        token=token,
        expires_at=auth_session.expires_at,
        actor=ActorOut.model_validate(employee),
    )


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
):
    employee = await register_employee(session, payload)
    token, auth_session = await start_session(
        session,
        employee,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return LoginResponse(
        token=token,
        expires_at=auth_session.expires_at,
        actor=ActorOut.model_validate(employee),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: AsyncSession = Depends(deps.get_db_session),
    user: ActorContext = Depends(deps.get_user),
):
    if user.session_id:
        await revoke_session(session, user.session_id)


@router.get("/me", response_model=ActorContext)
async def me(user: ActorContext = Depends(deps.get_user)):
    return user
