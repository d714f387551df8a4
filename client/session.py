"""
Client session cache.

SessionContext holds ``{account, token, is_loading}`` for the UI. It starts
in the loading state and leaves it exactly once, when hydrate() has read
the persisted session (or accepted a server-provided snapshot). Guards must
not redirect while ``is_loading`` is true.

After hydration the account is a plain cached value: every change replaces
it wholesale and is written through to storage. A 401 from any bearer call
made through the attached ApiClient logs the session out.
"""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from client.api import ApiClient, ApiError
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    account: dict
    token: str

    def to_dict(self) -> dict:
        return {"user": self.account, "token": self.token}

    @classmethod
    def from_dict(cls, data: object) -> Optional["SessionSnapshot"]:
        """Parse persisted state; anything malformed yields None."""
        if not isinstance(data, dict):
            return None
        account, token = data.get("user"), data.get("token")
        if not isinstance(account, dict) or not isinstance(token, str) or not token:
            return None
        return cls(account=account, token=token)


class SessionStorage(Protocol):
    def load(self) -> Optional[dict]: ...

    def save(self, data: dict) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    def __init__(self, data: Optional[dict] = None) -> None:
        self._data = data

    def load(self) -> Optional[dict]:
        return self._data

    def save(self, data: dict) -> None:
        self._data = data

    def clear(self) -> None:
        self._data = None


class FileStorage:
    """JSON file on disk; the CLI counterpart of browser storage."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> Optional[dict]:
        """Raises ValueError when the file is not valid JSON."""
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None

    def save(self, data: dict) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class SessionContext:
    def __init__(
        self,
        storage: SessionStorage,
        api: Optional[ApiClient] = None,
        initial: Optional[SessionSnapshot] = None,
    ) -> None:
        self._storage = storage
        self._api = api
        self._initial = initial
        self._lock = asyncio.Lock()
        self._hydrated = False
        self.account: Optional[dict] = None
        self.token: Optional[str] = None
        self.is_loading = True
        if api is not None:
            api.on_unauthorized = self._expire

    @property
    def is_authenticated(self) -> bool:
        return self.account is not None

    @property
    def is_verified(self) -> bool:
        return bool(self.account and self.account.get("isEmailVerified"))

    def _apply(self, snapshot: Optional[SessionSnapshot]) -> None:
        self.account = snapshot.account if snapshot else None
        self.token = snapshot.token if snapshot else None
        if self._api is not None:
            self._api.set_token(self.token)

    async def hydrate(self) -> None:
        """Load the session once; concurrent callers wait for the same load."""
        async with self._lock:
            if self._hydrated:
                return
            snapshot = self._initial
            if snapshot is None:
                try:
                    raw = await asyncio.to_thread(self._storage.load)
                except (ValueError, OSError) as e:
                    log.warning("session_state_unreadable", error=str(e))
                    raw = None
                    await asyncio.to_thread(self._storage.clear)
                snapshot = SessionSnapshot.from_dict(raw)
                if raw is not None and snapshot is None:
                    log.warning("session_state_discarded", reason="malformed")
                    await asyncio.to_thread(self._storage.clear)
            self._apply(snapshot)
            self._hydrated = True
            self.is_loading = False

    async def login(self, account: dict, token: str) -> None:
        snapshot = SessionSnapshot(account=account, token=token)
        await asyncio.to_thread(self._storage.save, snapshot.to_dict())
        self._apply(snapshot)

    async def update_account(self, account: dict) -> None:
        """Replace the cached account after the server confirmed a change."""
        if self.token is None:
            raise RuntimeError("Cannot update the account of a logged-out session")
        await self.login(account, self.token)

    async def logout(self) -> None:
        await asyncio.to_thread(self._storage.clear)
        self._apply(None)

    async def _expire(self) -> None:
        if self.token is None:
            return
        log.info("session_expired")
        await self.logout()

    async def refresh(self) -> Optional[dict]:
        """Re-fetch the account from the server.

        A 401 (expired or revoked session) logs the session out; other API
        errors propagate and leave the cached session untouched.
        """
        if self._api is None or self.token is None:
            return self.account
        try:
            account = await self._api.me()
        except ApiError as e:
            if e.is_unauthorized:
                await self._expire()
                return None
            raise
        await self.update_account(account)
        return account
