"""ZeptoMail implementation of EmailProvider.

Both messages are OTP mails that differ only in subject, template and
wording, so they share one render-and-post path keyed by message kind.
Delivery failures are logged and reported as False.
"""

import os
from typing import NamedTuple, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_TOKEN_PREFIX = "Zoho-enczapikey "
_ACCEPTED = frozenset({200, 201, 202})
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "templates",
    "emails",
)


class _CodeMail(NamedTuple):
    subject: str
    template: str
    heading: str
    purpose_line: str
    footer: str


_MAILS = {
    "verification": _CodeMail(
        subject="Your AutoSaaz Verification Code",
        template="verification.html",
        heading="Verify your AutoSaaz account",
        purpose_line="Your verification code is",
        footer="",
    ),
    "password_reset": _CodeMail(
        subject="Reset Your AutoSaaz Password",
        template="password_reset.html",
        heading="Reset your AutoSaaz password",
        purpose_line="Your password reset code is",
        footer="If you did not request a reset, you can ignore this email.\n",
    ),
}


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_url: str = "https://autosaaz.com",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _authorization(self) -> str:
        token = self._settings.zepto_api_token
        return token if token.startswith(_TOKEN_PREFIX) else _TOKEN_PREFIX + token

    def _render(self, template_name: str, **context) -> str:
        return self._jinja.get_template(template_name).render(
            app_url=self._app_url, **context
        )

    def _compose(
        self,
        kind: str,
        to_email: str,
        to_name: Optional[str],
        otp_code: str,
        expiry_minutes: int,
    ) -> dict:
        mail = _MAILS[kind]
        greeting = f"Hello {to_name}," if to_name else "Hello,"
        return {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_name or to_email}}],
            "subject": mail.subject,
            "htmlbody": self._render(
                mail.template,
                otp_code=otp_code,
                user_name=to_name,
                expiry_minutes=expiry_minutes,
            ),
            "textbody": (
                f"{mail.heading}\n\n{greeting}\n\n"
                f"{mail.purpose_line}: {otp_code}\n\n"
                f"This code expires in {expiry_minutes} minutes.\n{mail.footer}"
            ),
        }

    async def _deliver(
        self,
        kind: str,
        to_email: str,
        to_name: Optional[str],
        otp_code: str,
        expiry_minutes: int,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_skipped", kind=kind, reason="token_not_configured")
            return False

        payload = self._compose(kind, to_email, to_name, otp_code, expiry_minutes)
        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=payload,
                headers={
                    "Authorization": self._authorization(),
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                kind=kind,
                to_email=to_email,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code not in _ACCEPTED:
            log.error(
                "email_send_rejected",
                kind=kind,
                to_email=to_email,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False
        log.info("email_sent", kind=kind, to_email=to_email)
        return True

    async def send_verification_email(
        self, email: str, user_name: Optional[str], otp_code: str, expiry_minutes: int
    ) -> bool:
        return await self._deliver(
            "verification", email, user_name, otp_code, expiry_minutes
        )

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], otp_code: str, expiry_minutes: int
    ) -> bool:
        return await self._deliver(
            "password_reset", email, user_name, otp_code, expiry_minutes
        )
