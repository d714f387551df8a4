"""
Async HTTP client for the auth API.

One method per endpoint. Every non-2xx response raises ApiError carrying
the status code and the server's ``message``; network failures raise
ApiError with ``status_code == 0``.

A 401 from any bearer endpoint first awaits ``on_unauthorized`` (the session
registers its logout there), then raises.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

import httpx

from client.config import ClientSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)


class ApiError(Exception):
    def __init__(
        self, status_code: int, message: str, code: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code}, message={self.message!r})"


def _error_from_response(response: httpx.Response) -> ApiError:
    message = response.reason_phrase or "Request failed"
    code = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or message
        code = body.get("code")
    return ApiError(response.status_code, message, code)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        http_client: Optional[HttpClient] = None,
        token: Optional[str] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = http_client or HttpClient(base_url=self.base_url)
        self.token = token
        self.on_unauthorized: Optional[Callable[[], Awaitable[None]]] = None

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "ApiClient":
        return cls(
            settings.api_base_url,
            HttpClient(
                timeout=settings.api_timeout_seconds, base_url=settings.api_base_url
            ),
        )

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    def image_url(self, path: Optional[str]) -> Optional[str]:
        """Absolute URL for a stored profile image path."""
        if not path:
            return None
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self, method: str, path: str, *, auth: bool = False, **kwargs: Any
    ) -> dict:
        headers = kwargs.pop("headers", {})
        if auth:
            if not self.token:
                raise ApiError(401, "Not authorized, no token")
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            log.warning("api_request_failed", path=path, error_type=type(e).__name__)
            raise ApiError(0, "Network error, please try again.") from e

        if response.is_error:
            error = _error_from_response(response)
            if auth and error.is_unauthorized and self.on_unauthorized is not None:
                await self.on_unauthorized()
            raise error
        return response.json()

    # ── Public endpoints ─────────────────────────────────────────────────────

    async def register(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> dict:
        return await self._request(
            "POST",
            "/api/auth/register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
            },
        )

    async def verify_email(self, email: str, code: str) -> dict:
        return await self._request(
            "POST", "/api/auth/verify-email", json={"email": email, "code": code}
        )

    async def resend_verification_code(self, email: str) -> dict:
        return await self._request(
            "POST", "/api/auth/resend-verification-code", json={"email": email}
        )

    async def forgot_password(self, email: str) -> dict:
        return await self._request(
            "POST", "/api/auth/forgot-password", json={"email": email}
        )

    async def reset_password(
        self, token: str, password: str, password_confirm: str
    ) -> dict:
        return await self._request(
            "PUT",
            f"/api/auth/reset-password/{token}",
            json={"password": password, "passwordConfirm": password_confirm},
        )

    async def login(self, email: str, password: str) -> dict:
        """Returns ``{message, token, user}``."""
        return await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )

    # ── Bearer endpoints ─────────────────────────────────────────────────────

    async def me(self) -> dict:
        return await self._request("GET", "/api/auth/me", auth=True)

    async def change_password(self, current_password: str, new_password: str) -> dict:
        return await self._request(
            "PUT",
            "/api/auth/change-password",
            auth=True,
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    async def update_profile(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> dict:
        body = {"firstName": first_name, "lastName": last_name, "email": email}
        return await self._request(
            "PUT",
            "/api/auth/update-profile",
            auth=True,
            json={k: v for k, v in body.items() if v is not None},
        )

    async def upload_profile(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        image: Optional[tuple[str, bytes, str]] = None,
    ) -> dict:
        """Multipart profile edit; *image* is ``(filename, data, content_type)``."""
        data = {"firstName": first_name, "lastName": last_name}
        files = {"profileImage": image} if image is not None else None
        return await self._request(
            "PATCH",
            "/api/auth/profile",
            auth=True,
            data={k: v for k, v in data.items() if v is not None},
            files=files,
        )

    async def delete_profile_image(self) -> dict:
        return await self._request("DELETE", "/api/auth/profile/image", auth=True)

    async def dashboard(self) -> dict:
        return await self._request("GET", "/api/dashboard", auth=True)

    async def aclose(self) -> None:
        await self._http.aclose()
