import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from referral_portal.api.router import api_router
from referral_portal.core.config import settings
from referral_portal.core.errors import ReferralPortalError, portal_exception_handler
from referral_portal.db.session import create_all
from referral_portal.middleware.logging import RequestLoggingMiddleware
from referral_portal.middleware.rate_limit import RateLimitMiddleware
from referral_portal.services.event_bus import event_bus

logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    RateLimitMiddleware,
    limit=settings.auth_rate_limit_per_min,
    window_seconds=settings.auth_rate_limit_window_seconds,
)
app.add_middleware(RequestLoggingMiddleware)
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_exception_handler(ReferralPortalError, portal_exception_handler)


@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.environment}


app.include_router(api_router)


@app.on_event("startup")
async def _startup() -> None:
    await create_all()


@app.on_event("shutdown")
async def _shutdown() -> None:
    await event_bus.close()
