"""HTTP SMS gateway implementation of SmsProvider.

Posts a JSON message to the configured gateway URL with a bearer API key.
Delivery failures are logged and reported as False, never raised.
"""

import httpx

from config import SmsSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)


class HttpSmsGateway:
    def __init__(self, settings: SmsSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    async def send_sms(self, phone_number: str, message: str) -> bool:
        if not self._settings.sms_api_url or not self._settings.sms_api_key:
            log.error("sms_send_failed", reason="gateway_not_configured")
            return False

        payload = {
            "to": phone_number,
            "from": self._settings.sms_sender_id,
            "text": message,
        }
        headers = {
            "Authorization": f"Bearer {self._settings.sms_api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._http.post(
                self._settings.sms_api_url, json=payload, headers=headers
            )
            if response.status_code in (200, 201, 202):
                log.info("sms_sent_success", to_phone=phone_number[-4:])
                return True
            log.error(
                "sms_sent_failed",
                to_phone=phone_number[-4:],
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            log.error(
                "sms_send_error",
                to_phone=phone_number[-4:],
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
