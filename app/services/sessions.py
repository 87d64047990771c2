"""Opaque session tokens mapped to authenticated usernames."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Callable

from ..errors import AuthenticationError


@dataclass(slots=True)
class SessionEntry:
    username: str
    expires_at: float


class SessionStore:
    """In-process session registry; each token expires a fixed time after issue."""

    def __init__(
        self,
        ttl_seconds: int,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, SessionEntry] = {}

    def issue(self, username: str) -> str:
        """Open a session for ``username`` and return its token."""

        self._prune_expired()
        token = secrets.token_urlsafe(32)
        self._entries[token] = SessionEntry(
            username=username, expires_at=self._clock() + self._ttl_seconds
        )
        return token

    def resolve(self, token: str | None) -> str:
        """Return the username behind ``token`` or raise ``AuthenticationError``."""

        if not token:
            raise AuthenticationError("Not authenticated")
        entry = self._entries.get(token)
        if entry is None:
            raise AuthenticationError("Not authenticated")
        if entry.expires_at <= self._clock():
            self._entries.pop(token, None)
            raise AuthenticationError("Session expired")
        return entry.username

    def revoke(self, token: str | None) -> None:
        if token:
            self._entries.pop(token, None)

    def __len__(self) -> int:
        return len(self._entries)

    def _prune_expired(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            self._entries.pop(key, None)
