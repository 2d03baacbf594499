"""In-process cache of signed media URLs.

Entries live for ``cache_ttl_ms(expires_in)``, which always ends well before
the URL itself expires. Keys carry a fingerprint of the caller (bearer token
or session uid), so one user's URL is never handed to another.
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from firebase_admin import firestore
from flask import current_app

from eco.auth.providers import get_auth_provider
from eco.errors import AuthRequired

from .services import (
    DEFAULT_EXPIRES_IN,
    MediaService,
    clamp,
    parse_expires_in,
)

EXTENSION_KEY = "eco.signed_urls"

TTL_MARGIN_SECONDS = 20
MIN_TTL_SECONDS = 20
MAX_TTL_SECONDS = 120
DEFAULT_MAX_ENTRIES = 256


def clamp_expires_in(expires_in: Any) -> int:
    """Requested expiry in seconds, clamped to [60, 300]."""
    return parse_expires_in(expires_in)


def cache_ttl_ms(expires_in: Any) -> int:
    """Cache lifetime: clamped expiry minus a 20 s margin, kept within [20, 120] s."""
    seconds = clamp(
        clamp_expires_in(expires_in) - TTL_MARGIN_SECONDS,
        MIN_TTL_SECONDS,
        MAX_TTL_SECONDS,
    )
    return seconds * 1000


def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class SessionCaller:
    """A caller the server-side session already authenticated.

    Pages pass this instead of a bearer token: the session outlives the
    one-hour ID token, so it is never re-verified here.
    """

    uid: str


class MediaUrlResolver:
    """Resolves URLs in process: identifies the caller, then asks ``MediaService``."""

    def _user_id(self, caller: str | SessionCaller) -> str:
        if isinstance(caller, SessionCaller):
            return caller.uid
        return get_auth_provider().verify_token(caller)["uid"]

    def by_media_id(
        self, caller: str | SessionCaller, media_id: str, expires_in: int
    ) -> dict[str, Any]:
        user_id = self._user_id(caller)
        return MediaService.resolve_media(
            firestore.client(), user_id, media_id, expires_in
        )

    def by_entity(
        self,
        caller: str | SessionCaller,
        entity_type: str,
        entity_id: str,
        expires_in: int,
    ) -> dict[str, Any]:
        user_id = self._user_id(caller)
        return dict(
            MediaService.resolve_entity(
                firestore.client(), user_id, entity_type, entity_id, expires_in
            )
        )


class SignedUrlCache:
    """Bounded LRU of signed URL lookups with per-entry expiry."""

    def __init__(
        self,
        resolver: Any = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.resolver = resolver or MediaUrlResolver()
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[tuple, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _read(self, key: tuple) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def _write(self, key: tuple, value: Any, expires_in: int) -> None:
        expires_at = self.clock() + cache_ttl_ms(expires_in) / 1000.0
        with self._lock:
            self._entries[key] = (expires_at, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    @staticmethod
    def _require_token(token: str | SessionCaller | None) -> str:
        if isinstance(token, SessionCaller):
            if not token.uid:
                raise AuthRequired("Missing session.")
            return token_fingerprint(f"session:{token.uid}")
        if not token:
            raise AuthRequired("Missing bearer token.")
        return token_fingerprint(token)

    def get_by_media_id(
        self,
        token: str | SessionCaller | None,
        media_id: str,
        expires_in: Any = DEFAULT_EXPIRES_IN,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        """Signed URL payload for one media object."""
        fingerprint = self._require_token(token)
        expires = clamp_expires_in(expires_in)
        key = (fingerprint, "media", media_id, expires)
        if not force_refresh:
            cached = self._read(key)
            if cached is not None:
                return cached
        value = self.resolver.by_media_id(token, media_id, expires)
        self._write(key, value, expires)
        return value

    def get_by_entity(
        self,
        token: str | SessionCaller | None,
        entity_type: str,
        entity_id: str,
        expires_in: Any = DEFAULT_EXPIRES_IN,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        """Signed URLs for an entity; also warms the per-media entries."""
        fingerprint = self._require_token(token)
        expires = clamp_expires_in(expires_in)
        key = (fingerprint, "entity", entity_type, entity_id, expires)
        if not force_refresh:
            cached = self._read(key)
            if cached is not None:
                return cached
        value = self.resolver.by_entity(token, entity_type, entity_id, expires)
        self._write(key, value, expires)
        for item in value.get("items", []):
            media_key = (fingerprint, "media", item["media_id"], expires)
            self._write(
                media_key,
                {
                    "media_id": item["media_id"],
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "expires_in": expires,
                    "signed_url": item["signed_url"],
                },
                expires,
            )
        return value


def get_signed_url_cache() -> SignedUrlCache:
    """Return the cache shared by the current app."""
    return current_app.extensions[EXTENSION_KEY]
