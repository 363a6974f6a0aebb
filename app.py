"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.rate_limiter import RateLimit, create_limiter_strategy
from infrastructure.cache.redis_client import close_redis_client, create_redis_client
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.sms.http_gateway import HttpSmsGateway
from repositories import (
    ProfileRepository,
    RegistrationSessionRepository,
    UserRepository,
    VerificationCodeRepository,
)
from repositories.indexes import ensure_indexes
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.password_routes import router as password_router
from routes.profile_routes import router as profile_router
from routes.registration_routes import router as registration_router
from services.auth_service import AuthService
from services.notification_service import NotificationService
from services.password_service import PasswordService
from services.profile_service import ProfileService
from services.registration_service import RegistrationService
from services.token_service import TokenService
from services.verification_service import VerificationService
from shared.crypto import CredentialHasher
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def wire_services(
    app: FastAPI,
    settings: AppSettings,
    db: AsyncDatabase,
    http_client: HttpClient,
) -> None:
    """Build repositories and services and store them on app.state."""
    security = settings.security
    users = UserRepository(db)
    profiles = ProfileRepository(db)
    sessions = RegistrationSessionRepository(db)
    codes = VerificationCodeRepository(db)

    hasher = CredentialHasher(time_cost=security.password_hash_time_cost)
    tokens = TokenService(settings.jwt)
    notifications = NotificationService(
        ZeptoMailProvider(settings.email, http_client, app_url=settings.app_url),
        HttpSmsGateway(settings.sms, http_client),
        expiry_minutes=security.otp_expiry_minutes,
    )
    verification = VerificationService(codes, notifications, security)
    limiter_strategy = create_limiter_strategy(settings.redis.redis_uri)
    reset_limiter = RateLimit(
        limiter_strategy,
        namespace="password_reset",
        max_requests=security.password_reset_max_requests,
        window_seconds=security.password_reset_window_seconds,
    )
    app.state.auth_rate_limit = RateLimit(
        limiter_strategy,
        namespace="auth",
        max_requests=security.auth_rate_limit_max_requests,
        window_seconds=security.auth_rate_limit_window_seconds,
    )

    app.state.token_service = tokens
    app.state.registration_service = RegistrationService(
        users=users,
        profiles=profiles,
        sessions=sessions,
        verification=verification,
        tokens=tokens,
        hasher=hasher,
        settings=security,
    )
    app.state.auth_service = AuthService(
        users=users,
        profiles=profiles,
        tokens=tokens,
        hasher=hasher,
        settings=security,
    )
    passwords = PasswordService(
        users=users,
        profiles=profiles,
        verification=verification,
        tokens=tokens,
        hasher=hasher,
        limiter=reset_limiter,
        settings=security,
    )
    app.state.password_service = passwords
    app.state.profile_service = ProfileService(
        users=users, profiles=profiles, passwords=passwords
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
        env=settings.env,
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        await ensure_indexes(db)

        # Redis is optional; rate limits fall back to in-process counters
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        http_client = HttpClient(timeout=10.0)
        app.state.http_client = http_client

        wire_services(app, settings, db, http_client)
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await close_redis_client(redis_client)
        await mongo_client.close()
        log.info("app_stopped")

    app = FastAPI(
        title=f"{settings.app_name} Auth API",
        version="1.0.0",
        docs_url=None if settings.is_production else settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, expose_internal=not settings.is_production)
    app.include_router(health_router)
    app.include_router(registration_router)
    app.include_router(auth_router)
    app.include_router(password_router)
    app.include_router(profile_router)

    return app
