"""
Integration fixtures: the real routers and error handlers over in-memory
services.

``build_app`` mirrors create_app's wiring but swaps the Mongo and HTTP
collaborators for the fakes in tests/fakes.py and keeps rate-limit counters
in memory, so requests exercise the full path from DTO parsing to the JSON
error envelope. The per-IP auth throttle is loose by default; tests that
exercise it build a stack with the production limit.
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from config import JWTSettings, SecuritySettings
from errors import register_error_handlers
from infrastructure.cache.rate_limiter import RateLimit, create_limiter_strategy
from routes.auth_routes import router as auth_router
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
from tests.fakes import (
    FakeClock,
    FakeEmailProvider,
    FakeSmsProvider,
    InMemoryCodeRepository,
    InMemoryProfileRepository,
    InMemorySessionRepository,
    InMemoryUserRepository,
)


def build_stack(auth_rate_limit_max_requests: int = 1000) -> SimpleNamespace:
    clock = FakeClock()
    security = SecuritySettings(
        password_hash_time_cost=1,
        auth_rate_limit_max_requests=auth_rate_limit_max_requests,
    )
    limiter_strategy = create_limiter_strategy(None)
    stack = SimpleNamespace(
        clock=clock,
        security=security,
        users=InMemoryUserRepository(clock),
        profiles=InMemoryProfileRepository(),
        sessions=InMemorySessionRepository(clock),
        codes=InMemoryCodeRepository(clock),
        email=FakeEmailProvider(),
        sms=FakeSmsProvider(),
        hasher=CredentialHasher(time_cost=1),
        tokens=TokenService(
            JWTSettings(
                jwt_secret="integration-secret-0123456789abcdef",
                jwt_private_key="",
                jwt_public_key="",
            )
        ),
    )
    verification = VerificationService(
        stack.codes,
        NotificationService(stack.email, stack.sms, expiry_minutes=10),
        security,
        clock=clock,
    )
    common = dict(
        users=stack.users,
        profiles=stack.profiles,
        tokens=stack.tokens,
        hasher=stack.hasher,
        settings=security,
        clock=clock,
    )
    stack.registration = RegistrationService(
        sessions=stack.sessions, verification=verification, **common
    )
    stack.auth = AuthService(**common)
    stack.passwords = PasswordService(
        verification=verification,
        limiter=RateLimit(
            limiter_strategy,
            namespace="password_reset",
            max_requests=security.password_reset_max_requests,
            window_seconds=security.password_reset_window_seconds,
        ),
        **common,
    )
    stack.profile = ProfileService(
        users=stack.users, profiles=stack.profiles, passwords=stack.passwords
    )
    stack.auth_rate_limit = RateLimit(
        limiter_strategy,
        namespace="auth",
        max_requests=security.auth_rate_limit_max_requests,
        window_seconds=security.auth_rate_limit_window_seconds,
    )
    return stack


def build_app(stack: SimpleNamespace) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.token_service = stack.tokens
        app.state.registration_service = stack.registration
        app.state.auth_service = stack.auth
        app.state.password_service = stack.passwords
        app.state.profile_service = stack.profile
        app.state.auth_rate_limit = stack.auth_rate_limit
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(registration_router)
    app.include_router(auth_router)
    app.include_router(password_router)
    app.include_router(profile_router)
    return app


@pytest.fixture
def stack():
    return build_stack()


@pytest.fixture
def client(stack):
    with TestClient(build_app(stack)) as c:
        yield c


@pytest.fixture
def throttled_client():
    """Client whose auth throttle uses the production limit of 5 per window."""
    with TestClient(build_app(build_stack(auth_rate_limit_max_requests=5))) as c:
        yield c
