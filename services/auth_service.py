"""
Password login, token refresh and the current-user view.

Failed logins are counted per account. Reaching MAX_LOGIN_ATTEMPTS locks
the account for ACCOUNT_LOCKOUT_DURATION_MINUTES; while locked, login is
refused before the password is even checked and the counter is left alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import SecuritySettings
from errors import (
    AccountLockedError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
)
from repositories import ProfileRepository, UserRepository
from schemas.models.user import UserDoc, UserStatus
from services.token_service import TokenService
from shared.crypto import CredentialHasher
from shared.datetime_utils import ensure_utc, seconds_until, utcnow
from shared.logging import get_logger, hash_ip
from shared.validators import normalize_email

log = get_logger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
_BLOCKED_STATUSES = {UserStatus.SUSPENDED.value, UserStatus.REJECTED.value}


@dataclass
class LoginResult:
    user: dict
    profile: Optional[dict]
    access_token: str
    refresh_token: str


def _locked_error(locked_until: datetime, now: datetime) -> AccountLockedError:
    locked_until = ensure_utc(locked_until)
    return AccountLockedError(
        "Account is temporarily locked due to too many failed login attempts",
        details={
            "locked_until": locked_until.isoformat(),
            "retry_after_seconds": seconds_until(locked_until, now),
        },
    )


class AuthService:
    def __init__(
        self,
        *,
        users: UserRepository,
        profiles: ProfileRepository,
        tokens: TokenService,
        hasher: CredentialHasher,
        settings: SecuritySettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._profiles = profiles
        self._tokens = tokens
        self._hasher = hasher
        self._settings = settings
        self._clock = clock

    async def login(
        self, email: str, password: str, ip_address: Optional[str] = None
    ) -> LoginResult:
        """Authenticate with email and password.

        Raises:
            AuthenticationError: unknown email or wrong password.
            AccountLockedError: account locked, now or by this attempt.
            ForbiddenError: account unverified (when required) or blocked.
        """
        now = self._clock()
        user = await self._users.get_by_email(normalize_email(email or ""))
        if user is None:
            log.warning("login_failed", reason="user_not_found")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if user.locked_until is not None:
            if ensure_utc(user.locked_until) > now:
                log.warning("login_blocked", user_id=user.id_str, reason="locked")
                raise _locked_error(user.locked_until, now)
            # Lockout window elapsed; the next attempt starts a fresh count
            await self._users.reset_failed_login(user.id)

        if not self._hasher.verify(password or "", user.password_hash):
            attempts = await self._users.increment_failed_login(user.id)
            if attempts >= self._settings.max_login_attempts:
                locked_until = await self._users.lock(
                    user.id, self._settings.account_lockout_duration_minutes, now=now
                )
                log.warning(
                    "account_locked",
                    user_id=user.id_str,
                    attempts=attempts,
                    locked_until=locked_until.isoformat(),
                )
                raise _locked_error(locked_until, now)
            log.warning(
                "login_failed",
                user_id=user.id_str,
                reason="invalid_password",
                attempts=attempts,
            )
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if (
            self._settings.require_email_verification
            and user.status == UserStatus.PENDING_VERIFICATION.value
        ):
            log.warning("login_blocked", user_id=user.id_str, reason="unverified")
            raise ForbiddenError(
                "Please verify your email before logging in",
                details={"requires_verification": True},
            )
        if user.status in _BLOCKED_STATUSES:
            log.warning("login_blocked", user_id=user.id_str, reason=user.status)
            raise ForbiddenError(f"Account is {user.status}")

        await self._users.reset_failed_login(user.id)
        await self._users.update_last_login(user.id, ip_address)
        profile = await self._profiles.get_by_user_id(user.id)
        pair = self._tokens.issue_pair(user)

        log.info("login_success", user_id=user.id_str, ip_hash=hash_ip(ip_address))
        return LoginResult(
            user=user.public_dict(),
            profile=profile.summary() if profile else None,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    async def refresh_access_token(self, refresh_token: str) -> str:
        claims = self._tokens.verify_refresh_token(refresh_token)
        user = await self._users.get_by_id(claims["sub"])
        if user is None:
            raise NotFoundError("User not found")
        if user.status != UserStatus.ACTIVE.value:
            log.warning("refresh_blocked", user_id=user.id_str, status=user.status)
            raise ForbiddenError("Account is not active")
        log.info("access_refreshed", user_id=user.id_str)
        return self._tokens.create_access_token(user.id_str, user.email, user.role)

    async def logout(self, user_id: Optional[str]) -> None:
        """Record a logout. Tokens are stateless; the client discards them."""
        log.info("logout", user_id=user_id or "unknown")

    async def get_me(self, user_id: str) -> dict:
        user = await self.get_user(user_id)
        profile = await self._profiles.get_by_user_id(user.id)
        return {
            "user": user.public_dict(),
            "profile": profile.summary() if profile else None,
        }

    async def get_user(self, user_id: str) -> UserDoc:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
