"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv()
or explicit constructor arguments.

Service fixtures are wired against the in-memory fakes in tests/fakes.py and
share one FakeClock, so expiry and lockout windows can be stepped through
with ``clock.advance(...)``.
"""

import pytest

from config import JWTSettings, SecuritySettings
from infrastructure.cache.rate_limiter import RateLimit, create_limiter_strategy
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


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def security():
    return SecuritySettings(password_hash_time_cost=1)


@pytest.fixture
def jwt_settings():
    return JWTSettings(
        jwt_secret="unit-test-secret-0123456789abcdef0123",
        jwt_private_key="",
        jwt_public_key="",
    )


@pytest.fixture
def hasher():
    return CredentialHasher(time_cost=1)


@pytest.fixture
def tokens(jwt_settings):
    return TokenService(jwt_settings)


@pytest.fixture
def users(clock):
    return InMemoryUserRepository(clock)


@pytest.fixture
def profiles():
    return InMemoryProfileRepository()


@pytest.fixture
def sessions(clock):
    return InMemorySessionRepository(clock)


@pytest.fixture
def codes(clock):
    return InMemoryCodeRepository(clock)


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def sms_provider():
    return FakeSmsProvider()


@pytest.fixture
def notifications(email_provider, sms_provider, security):
    return NotificationService(
        email_provider, sms_provider, expiry_minutes=security.otp_expiry_minutes
    )


@pytest.fixture
def verification(codes, notifications, security, clock):
    return VerificationService(codes, notifications, security, clock=clock)


@pytest.fixture
def registration(users, profiles, sessions, verification, tokens, hasher, security, clock):
    return RegistrationService(
        users=users,
        profiles=profiles,
        sessions=sessions,
        verification=verification,
        tokens=tokens,
        hasher=hasher,
        settings=security,
        clock=clock,
    )


@pytest.fixture
def auth(users, profiles, tokens, hasher, security, clock):
    return AuthService(
        users=users,
        profiles=profiles,
        tokens=tokens,
        hasher=hasher,
        settings=security,
        clock=clock,
    )


@pytest.fixture
def limiter_strategy():
    """Fresh in-memory counters per test."""
    return create_limiter_strategy(None)


@pytest.fixture
def reset_limiter(limiter_strategy, security):
    return RateLimit(
        limiter_strategy,
        namespace="password_reset",
        max_requests=security.password_reset_max_requests,
        window_seconds=security.password_reset_window_seconds,
    )


@pytest.fixture
def passwords(users, profiles, verification, tokens, hasher, reset_limiter, security, clock):
    return PasswordService(
        users=users,
        profiles=profiles,
        verification=verification,
        tokens=tokens,
        hasher=hasher,
        limiter=reset_limiter,
        settings=security,
        clock=clock,
    )


@pytest.fixture
def profile_service(users, profiles, passwords):
    return ProfileService(users=users, profiles=profiles, passwords=passwords)
