"""SmsProvider protocol implemented by every SMS gateway."""

from typing import Protocol


class SmsProvider(Protocol):
    async def send_sms(self, phone_number: str, message: str) -> bool: ...
