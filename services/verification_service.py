"""
OTP issuance and matching.

Issuing a code for a target first invalidates every unused code for the
same target and purpose, so at most one code is live at a time. Matching
always looks at the newest unused code for the target and applies the
checks in a fixed order: missing, attempts exhausted, expired, mismatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from config import SecuritySettings
from errors import AttemptsExceededError, ExpiredCodeError, InvalidCodeError
from repositories.verification_code_repository import VerificationCodeRepository
from schemas.models.verification_code import (
    CodePurpose,
    VerificationCodeDoc,
    VerificationMethod,
)
from services.notification_service import NotificationService
from shared.crypto import token_matches
from shared.datetime_utils import ensure_utc, utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

INVALID_CODE_MESSAGE = "Invalid verification code"
EXPIRED_CODE_MESSAGE = "Verification code has expired"
ATTEMPTS_EXCEEDED_MESSAGE = (
    "Maximum verification attempts exceeded. Please request a new code."
)


@dataclass
class IssuedCode:
    code: str
    expires_at: datetime
    delivered: bool


def _lookup_target(email: Optional[str], phone_number: Optional[str]) -> dict:
    """Email is the primary identifier; phone is used only without one."""
    if email:
        return {"email": email}
    if phone_number:
        return {"phone_number": phone_number}
    raise ValueError("A verification target needs an email or phone number")


def _method_for(email: Optional[str], phone_number: Optional[str]) -> VerificationMethod:
    if email and phone_number:
        return VerificationMethod.BOTH
    if email:
        return VerificationMethod.EMAIL
    return VerificationMethod.PHONE


class VerificationService:
    def __init__(
        self,
        codes: VerificationCodeRepository,
        notifications: NotificationService,
        settings: SecuritySettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._codes = codes
        self._notifications = notifications
        self._settings = settings
        self._clock = clock

    async def issue(
        self,
        *,
        purpose: CodePurpose,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        user_id: Any = None,
        display_name: Optional[str] = None,
    ) -> IssuedCode:
        """Rotate the live code for the target and dispatch the new one."""
        now = self._clock()
        invalidated = await self._codes.invalidate_active_for(
            purpose=purpose, now=now, **_lookup_target(email, phone_number)
        )
        code = generate_otp_code(self._settings.otp_length)
        record = await self._codes.create(
            code=code,
            method=_method_for(email, phone_number),
            purpose=purpose,
            expiry_minutes=self._settings.otp_expiry_minutes,
            email=email,
            phone_number=phone_number,
            user_id=user_id,
            now=now,
        )
        log.info(
            "verification_code_issued",
            purpose=purpose,
            code_id=record.id_str,
            invalidated=invalidated,
        )
        delivered = await self._notifications.send_code(
            code,
            purpose,
            email=email,
            phone_number=phone_number,
            display_name=display_name,
        )
        return IssuedCode(code=code, expires_at=record.expires_at, delivered=delivered)

    async def check(
        self,
        code: str,
        *,
        purpose: CodePurpose,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        consume: bool = True,
    ) -> VerificationCodeDoc:
        """Match *code* against the live code for the target.

        Every mismatch counts against the live code. With ``consume=False``
        a matching code stays usable (password-reset code verification).

        Raises:
            InvalidCodeError, ExpiredCodeError, AttemptsExceededError
        """
        now = self._clock()
        max_attempts = self._settings.max_otp_attempts
        record = await self._codes.find_latest_unused(
            purpose=purpose, **_lookup_target(email, phone_number)
        )
        if record is None:
            log.warning("otp_verification_failed", purpose=purpose, reason="not_found")
            raise InvalidCodeError(INVALID_CODE_MESSAGE, field="code")

        if record.attempts >= max_attempts:
            log.warning(
                "otp_verification_failed",
                purpose=purpose,
                reason="max_attempts",
                code_id=record.id_str,
            )
            raise AttemptsExceededError(ATTEMPTS_EXCEEDED_MESSAGE, field="code")

        if ensure_utc(record.expires_at) <= now:
            log.warning(
                "otp_verification_failed",
                purpose=purpose,
                reason="expired",
                code_id=record.id_str,
            )
            raise ExpiredCodeError(EXPIRED_CODE_MESSAGE, field="code")

        if not token_matches(code, record.code_hash):
            await self._codes.increment_attempt(record.id)
            attempts = record.attempts + 1
            log.warning(
                "otp_verification_failed",
                purpose=purpose,
                reason="mismatch",
                code_id=record.id_str,
                attempts=attempts,
            )
            if attempts >= max_attempts:
                raise AttemptsExceededError(ATTEMPTS_EXCEEDED_MESSAGE, field="code")
            raise InvalidCodeError(INVALID_CODE_MESSAGE, field="code")

        if consume:
            await self.consume(record)
        log.info("otp_verified_success", purpose=purpose, code_id=record.id_str)
        return record

    async def consume(self, record: VerificationCodeDoc) -> None:
        """Mark *record* used; a concurrent consumer makes this fail."""
        if not await self._codes.mark_used(record.id, now=self._clock()):
            log.warning(
                "otp_verification_failed", reason="already_used", code_id=record.id_str
            )
            raise InvalidCodeError("Verification code has already been used", field="code")
