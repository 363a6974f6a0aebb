"""
Outbound delivery of verification codes.

Codes go to email and SMS concurrently. Delivery is best-effort: a failed
send is logged and reported through the return value but never raised, so
registration and password reset keep working and the code stays
retrievable through resend.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from infrastructure.email.protocol import EmailProvider
from infrastructure.sms.protocol import SmsProvider
from schemas.models.verification_code import CodePurpose
from shared.logging import get_logger

log = get_logger(__name__)


class NotificationService:
    def __init__(
        self,
        email_provider: Optional[EmailProvider],
        sms_provider: Optional[SmsProvider],
        expiry_minutes: int = 10,
    ) -> None:
        self._email = email_provider
        self._sms = sms_provider
        self._expiry_minutes = expiry_minutes

    def _sms_text(self, code: str, purpose: CodePurpose) -> str:
        if purpose == CodePurpose.PASSWORD_RESET:
            label = "password reset code"
        else:
            label = "verification code"
        return (
            f"Your AutoSaaz {label} is {code}. "
            f"It expires in {self._expiry_minutes} minutes."
        )

    async def send_code(
        self,
        code: str,
        purpose: CodePurpose,
        *,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> bool:
        """Deliver *code*; True when at least one channel accepted it."""
        sends = []
        channels = []
        if email and self._email is not None:
            if purpose == CodePurpose.PASSWORD_RESET:
                sends.append(
                    self._email.send_password_reset_email(
                        email, display_name, code, self._expiry_minutes
                    )
                )
            else:
                sends.append(
                    self._email.send_verification_email(
                        email, display_name, code, self._expiry_minutes
                    )
                )
            channels.append("email")
        if phone_number and self._sms is not None:
            sends.append(self._sms.send_sms(phone_number, self._sms_text(code, purpose)))
            channels.append("sms")

        if not sends:
            log.warning("code_delivery_skipped", purpose=purpose, reason="no_channel")
            return False

        results = await asyncio.gather(*sends, return_exceptions=True)
        delivered = False
        for channel, result in zip(channels, results):
            if isinstance(result, Exception):
                log.error(
                    "code_delivery_error",
                    channel=channel,
                    purpose=purpose,
                    error=str(result),
                    error_type=type(result).__name__,
                )
            elif result:
                delivered = True
            else:
                log.warning("code_delivery_failed", channel=channel, purpose=purpose)
        return delivered
