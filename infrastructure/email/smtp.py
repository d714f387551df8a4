"""SMTP implementation of EmailProvider.

smtplib is blocking, so each send runs in a worker thread. Port 465 uses
implicit TLS; any other port upgrades with STARTTLS when the server offers it.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from config import EmailSettings
from infrastructure.email.messages import EmailMessageBuilder, RenderedEmail
from shared.logging import get_logger, mask_email

log = get_logger(__name__)


class SmtpEmailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        builder: EmailMessageBuilder,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._builder = builder
        self._timeout = timeout

    def _build_message(
        self, to_email: str, to_name: Optional[str], rendered: RenderedEmail
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = formataddr(
            (self._settings.email_from_name, self._settings.email_from)
        )
        message["To"] = formataddr((to_name or "", to_email))
        message["Subject"] = rendered.subject
        message.attach(MIMEText(rendered.text_body, "plain"))
        message.attach(MIMEText(rendered.html_body, "html"))
        return message

    def _deliver(self, message: MIMEMultipart) -> None:
        host, port = self._settings.email_host, self._settings.email_port
        if self._settings.use_ssl:
            server: smtplib.SMTP = smtplib.SMTP_SSL(host, port, timeout=self._timeout)
        else:
            server = smtplib.SMTP(host, port, timeout=self._timeout)
        with server:
            if not self._settings.use_ssl:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
            if self._settings.email_username:
                server.login(
                    self._settings.email_username, self._settings.email_password
                )
            server.send_message(message)

    async def _send(
        self, to_email: str, to_name: Optional[str], rendered: RenderedEmail
    ) -> bool:
        if not self._settings.email_host:
            log.error("email_send_failed", provider="smtp", reason="no_host")
            return False

        message = self._build_message(to_email, to_name, rendered)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            log.error(
                "email_send_error",
                provider="smtp",
                to_email=mask_email(to_email),
                subject=rendered.subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        log.info(
            "email_sent",
            provider="smtp",
            to_email=mask_email(to_email),
            subject=rendered.subject,
        )
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
