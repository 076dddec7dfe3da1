from fastapi import APIRouter

from referral_portal.api.routes import auth
from referral_portal.api.routes import jobs
from referral_portal.api.routes import referrals

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(jobs.router)
api_router.include_router(referrals.router)
