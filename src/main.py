import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from create_tables import create_tables
from database import SessionLocal
from logging_config import setup_logging

from modules.documents.errors import setup_exception_handlers
from modules.documents.job import start_cleanup_job
from modules.documents.models import User
from modules.documents.repositories import UserRepository
from modules.documents.controllers.document_controller import router as document_router
from modules.documents.controllers.share_controller import router as share_router
from modules.security import (
    InputSanitizationMiddleware, RateLimiter, RateLimitMiddleware, SecurityHeadersMiddleware
)

logger = logging.getLogger(__name__)


def _seed_default_user():
    """Users are provisioned out-of-band; make sure the default actor exists."""
    with SessionLocal() as session:
        users = UserRepository(session)
        if users.count() > 0:
            logger.info("Users already present, skipping seed")
            return
        user = users.save(User(
            id=settings.DEFAULT_ACTOR_ID,
            username=settings.DEFAULT_USER_USERNAME,
            display_name=settings.DEFAULT_USER_DISPLAY_NAME,
            initials=settings.DEFAULT_USER_INITIALS,
            company=settings.DEFAULT_USER_COMPANY,
        ))
        logger.info("Seeded default user %s (id=%s)", user.username, user.id)


def create_app(rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    limiter = rate_limiter or RateLimiter(
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # --- Startup logic ---
        setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
        logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)
        create_tables()
        _seed_default_user()
        scheduler = start_cleanup_job(limiter)
        logger.info("Cleanup job started (every %s min)", settings.CLEANUP_INTERVAL_MINUTES)
        yield
        # --- Shutdown logic ---
        scheduler.shutdown(wait=False)
        logger.info("Application stopped")

    app = FastAPI(
        title="Secure Document Service",
        description="Document lifecycle with provenance stamping, audit trail and sharing",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.rate_limiter = limiter

    setup_exception_handlers(app)

    # Added innermost first: requests see headers, then sanitization, then rate limiting
    app.add_middleware(RateLimitMiddleware, limiter=limiter, path_prefix=settings.RATE_LIMIT_PREFIX)
    app.add_middleware(InputSanitizationMiddleware, path_prefix=settings.RATE_LIMIT_PREFIX)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            "X-User-Id",
        ],
        expose_headers=["Content-Disposition", "Retry-After"],
        max_age=86400,
    )

    # Routers
    app.include_router(document_router, prefix="/documents", tags=["documents"])
    app.include_router(share_router, prefix="/documents", tags=["shares"])
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
