"""Rendered transactional messages shared by every EmailProvider.

Each builder returns a ``RenderedEmail`` with subject, HTML and plain-text
bodies. HTML comes from the Jinja2 templates under ``templates/emails``.
"""

import os
from dataclasses import dataclass
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html_body: str
    text_body: str


class EmailMessageBuilder:
    def __init__(
        self,
        app_name: str,
        code_ttl_seconds: int = 60,
        reset_ttl_seconds: int = 600,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._app_name = app_name
        self._code_ttl_minutes = max(1, code_ttl_seconds // 60)
        self._reset_ttl_minutes = max(1, reset_ttl_seconds // 60)
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    @staticmethod
    def _minutes(n: int) -> str:
        return f"{n} minute" if n == 1 else f"{n} minutes"

    def verification(self, user_name: Optional[str], code: str) -> RenderedEmail:
        expiry = self._minutes(self._code_ttl_minutes)
        html_body = self._jinja.get_template("verification.html").render(
            code=code, user_name=user_name, app_name=self._app_name, expiry=expiry
        )
        text_body = (
            f"Hello{f' {user_name}' if user_name else ''},\n\n"
            f"Your verification code is: {code}\n\n"
            f"This code will expire in {expiry}."
        )
        return RenderedEmail(
            subject=f"Email Verification Code - {self._app_name}",
            html_body=html_body,
            text_body=text_body,
        )

    def password_reset(self, user_name: Optional[str], reset_url: str) -> RenderedEmail:
        expiry = self._minutes(self._reset_ttl_minutes)
        html_body = self._jinja.get_template("password_reset.html").render(
            reset_url=reset_url,
            user_name=user_name,
            app_name=self._app_name,
            expiry=expiry,
        )
        text_body = (
            f"Forgot your password? Open the link to reset it: {reset_url}\n\n"
            f"This link is valid for {expiry}.\n"
            f"If you didn't forget your password, please ignore this email!"
        )
        return RenderedEmail(
            subject=f"Your password reset link (valid for {expiry})",
            html_body=html_body,
            text_body=text_body,
        )
