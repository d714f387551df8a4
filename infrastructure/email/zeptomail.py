"""ZeptoMail implementation of EmailProvider.

Selected instead of SMTP when ZEPTO_API_TOKEN is configured. Sends through
the shared async HttpClient.
"""

from typing import Optional

import httpx

from config import EmailSettings
from infrastructure.email.messages import EmailMessageBuilder, RenderedEmail
from infrastructure.http_client import HttpClient
from shared.logging import get_logger, mask_email

log = get_logger(__name__)

ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_AUTH_SCHEME = "Zoho-enczapikey"


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        builder: EmailMessageBuilder,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._builder = builder

    def _authorization(self) -> str:
        token = self._settings.zepto_api_token
        if token.startswith(f"{_AUTH_SCHEME} "):
            return token
        return f"{_AUTH_SCHEME} {token}"

    def _payload(
        self, to_email: str, to_name: Optional[str], rendered: RenderedEmail
    ) -> dict:
        return {
            "from": {
                "address": self._settings.email_from,
                "name": self._settings.email_from_name,
            },
            "to": [
                {"email_address": {"address": to_email, "name": to_name or to_email}}
            ],
            "subject": rendered.subject,
            "htmlbody": rendered.html_body,
            "textbody": rendered.text_body,
        }

    async def _send(
        self, to_email: str, to_name: Optional[str], rendered: RenderedEmail
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", provider="zeptomail", reason="no_token")
            return False

        ctx = log.bind(
            provider="zeptomail",
            to_email=mask_email(to_email),
            subject=rendered.subject,
        )
        try:
            response = await self._http.post(
                ZEPTO_API_URL,
                json=self._payload(to_email, to_name, rendered),
                headers={"Authorization": self._authorization()},
            )
        except httpx.HTTPError as e:
            ctx.error("email_send_error", error=str(e), error_type=type(e).__name__)
            return False

        if not response.is_success:
            ctx.error(
                "email_send_failed",
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False
        ctx.info("email_sent")
        return True

    async def send_verification_email(
        self, email: str, user_name: Optional[str], code: str
    ) -> bool:
        return await self._send(
            email, user_name, self._builder.verification(user_name, code)
        )

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], reset_url: str
    ) -> bool:
        return await self._send(
            email, user_name, self._builder.password_reset(user_name, reset_url)
        )
