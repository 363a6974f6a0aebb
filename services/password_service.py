"""
Password reset and password change.

Reset requests must not reveal whether an account exists: the rate limit is
applied per email before any lookup, the response message is identical for
known and unknown addresses, and over HTTP the code is issued after the
response has gone out so both answer equally fast.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from config import SecuritySettings
from errors import (
    AppError,
    AuthenticationError,
    InvalidCodeError,
    RateLimitError,
    ValidationError,
)
from infrastructure.cache.rate_limiter import RateLimit
from repositories import ProfileRepository, UserRepository
from schemas.models.user import UserDoc
from schemas.models.verification_code import CodePurpose
from services.token_service import TokenService
from services.verification_service import INVALID_CODE_MESSAGE, VerificationService
from shared.crypto import CredentialHasher
from shared.datetime_utils import utcnow
from shared.logging import get_logger
from shared.validators import check_password_strength, is_valid_email, normalize_email

log = get_logger(__name__)

GENERIC_RESET_MESSAGE = (
    "If an account with that email exists, a password reset code has been sent."
)


class PasswordService:
    def __init__(
        self,
        *,
        users: UserRepository,
        profiles: ProfileRepository,
        verification: VerificationService,
        tokens: TokenService,
        hasher: CredentialHasher,
        limiter: RateLimit,
        settings: SecuritySettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._profiles = profiles
        self._verification = verification
        self._tokens = tokens
        self._hasher = hasher
        self._limiter = limiter
        self._settings = settings
        self._clock = clock

    def _check_strength(self, new_password: str) -> None:
        problem = check_password_strength(
            new_password or "", self._settings.password_min_length
        )
        if problem:
            raise ValidationError(problem, field="new_password")

    def _normalized_email(self, email: str) -> str:
        email = normalize_email(email or "")
        if not is_valid_email(email):
            raise ValidationError("Invalid email address", field="email")
        return email

    async def _user_for_code(self, email: str) -> UserDoc:
        user = await self._users.get_by_email(email)
        if user is None:
            # Same answer as a wrong code, nothing about the account leaks
            raise InvalidCodeError(INVALID_CODE_MESSAGE, field="code")
        return user

    async def request_password_reset(
        self, email: str, defer: Optional[Callable[..., Any]] = None
    ) -> str:
        """Send a reset code when the account exists; always the generic message.

        *defer* schedules the code issuance instead of awaiting it (the
        routes pass ``BackgroundTasks.add_task``).

        Raises:
            RateLimitError: too many requests for this email in the window.
        """
        email = self._normalized_email(email)
        if not await self._limiter.hit(email):
            retry_after = await self._limiter.retry_after(email)
            log.warning("password_reset_rate_limited")
            raise RateLimitError(
                "Too many password reset requests. Please try again later.",
                details={"retry_after_seconds": retry_after} if retry_after else None,
            )

        user = await self._users.get_by_email(email)
        if user is None:
            log.info("password_reset_requested", account_found=False)
            return GENERIC_RESET_MESSAGE

        log.info("password_reset_requested", account_found=True, user_id=user.id_str)
        if defer is None:
            await self._send_reset_code(user)
        else:
            defer(self._send_reset_code, user)
        return GENERIC_RESET_MESSAGE

    async def _send_reset_code(self, user: UserDoc) -> None:
        """Issue and dispatch a reset code; failures are logged, never raised."""
        try:
            profile = await self._profiles.get_by_user_id(user.id)
            issued = await self._verification.issue(
                purpose=CodePurpose.PASSWORD_RESET,
                email=user.email,
                user_id=user.id,
                display_name=profile.full_name if profile else None,
            )
        except AppError as e:
            log.error(
                "password_reset_code_failed",
                user_id=user.id_str,
                error_code=e.error_code,
            )
            return
        log.info(
            "password_reset_code_sent", user_id=user.id_str, delivered=issued.delivered
        )

    async def verify_reset_code(self, email: str, code: str) -> str:
        """Check a reset code without using it up and return a proof token."""
        email = self._normalized_email(email)
        user = await self._user_for_code(email)
        await self._verification.check(
            code, purpose=CodePurpose.PASSWORD_RESET, email=email, consume=False
        )
        log.info("password_reset_code_verified", user_id=user.id_str)
        return self._tokens.create_reset_proof_token(user.id_str, user.email)

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        email = self._normalized_email(email)
        user = await self._user_for_code(email)
        record = await self._verification.check(
            code, purpose=CodePurpose.PASSWORD_RESET, email=email, consume=False
        )
        self._check_strength(new_password)

        await self._users.update(
            user.id,
            {
                "password_hash": self._hasher.hash(new_password),
                "failed_login_attempts": 0,
                "locked_until": None,
            },
        )
        await self._verification.consume(record)
        log.info("password_reset_completed", user_id=user.id_str)

    async def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> None:
        user = await self._users.get_by_id(user_id)
        if user is None or not self._hasher.verify(
            current_password or "", user.password_hash
        ):
            log.warning("password_change_failed", user_id=user_id, reason="bad_current")
            raise AuthenticationError("Current password is incorrect")
        self._check_strength(new_password)
        if self._hasher.verify(new_password, user.password_hash):
            raise ValidationError(
                "New password must be different from the current password",
                field="new_password",
            )

        await self._users.update(
            user.id, {"password_hash": self._hasher.hash(new_password)}
        )
        log.info("password_changed", user_id=user.id_str)
