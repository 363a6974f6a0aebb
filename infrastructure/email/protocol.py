"""EmailProvider protocol implemented by every email backend."""

from typing import Optional, Protocol


class EmailProvider(Protocol):
    async def send_verification_email(
        self, email: str, user_name: Optional[str], otp_code: str, expiry_minutes: int
    ) -> bool: ...

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], otp_code: str, expiry_minutes: int
    ) -> bool: ...
