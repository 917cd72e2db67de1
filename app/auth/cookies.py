# =============================================================================
# app/auth/cookies.py - Session Cookie Bridge
# =============================================================================
# Moves session cookies between HTTP requests/responses and the Supabase auth
# client:
# - RequestCookieBridge: get_all() reads the request's cookies, set_all()
#   forwards writes to a sink (or drops them on the read-only page path)
# - ResponseCookieJar: the per-request write sink, applied to the response
# - CookieStorage: the auth client's storage interface on top of a bridge,
#   with base64 encoding and chunking of large values
#
# Cookie layout (compatible with @supabase/ssr):
#   sb-<ref>-auth-token            session JSON, "base64-" encoded
#   sb-<ref>-auth-token.0, .1 ...  same value split when longer than 3180 chars
#   sb-<ref>-auth-token-code-verifier   PKCE verifier during auth flows
# =============================================================================

from __future__ import annotations

import base64
import re
from collections.abc import Mapping
from typing import Any, Iterable, Protocol

from starlette.requests import Request
from starlette.responses import Response
from supabase_auth import SyncSupportedStorage

CookieOptions = dict[str, Any]
CookieWrite = tuple[str, str, CookieOptions]

MAX_CHUNK_SIZE = 3180
BASE64_PREFIX = "base64-"

# Names used by older releases of the frontend; cleared along with the session
LEGACY_SESSION_COOKIES = ("sb-access-token", "sb-refresh-token")

_COOKIE_KWARGS = ("max_age", "expires", "path", "domain", "secure", "httponly", "samesite")


def default_cookie_options(max_age: int, secure: bool) -> CookieOptions:
    """Options for session cookie writes."""
    return {
        "path": "/",
        "samesite": "lax",
        "httponly": True,
        "secure": secure,
        "max_age": max_age,
    }


def is_deletion(options: CookieOptions) -> bool:
    return options.get("max_age") == 0


class CookieBridge(Protocol):
    """What the session client needs from the HTTP layer."""

    def get_all(self) -> list[tuple[str, str]]:
        ...

    def set_all(self, cookies: list[CookieWrite]) -> None:
        ...


# =============================================================================
# Write Sink
# =============================================================================

class ResponseCookieJar:
    """
    Collects cookie writes for one request.

    Writes are kept in order; when the jar is applied or merged, the last
    write per name wins, so a cookie is never emitted twice.
    """

    def __init__(self):
        self._writes: list[CookieWrite] = []

    def set_all(self, cookies: Iterable[CookieWrite]) -> None:
        self._writes.extend(cookies)

    def delete(self, names: Iterable[str], options: CookieOptions | None = None) -> None:
        """Record deletions (empty value, max_age=0) for the given names."""
        base = {k: v for k, v in (options or {}).items() if k in ("path", "domain")}
        self.set_all((name, "", {**base, "max_age": 0}) for name in names)

    @property
    def writes(self) -> list[CookieWrite]:
        return list(self._writes)

    def pending(self) -> dict[str, CookieWrite]:
        """Last write per cookie name, in first-write order."""
        latest: dict[str, CookieWrite] = {}
        for write in self._writes:
            latest[write[0]] = write
        return latest

    def __len__(self) -> int:
        return len(self._writes)

    def merge_into(self, cookies: Mapping[str, str]) -> dict[str, str]:
        """
        Overlay the pending writes on an inbound cookie mapping.

        Used to forward refreshed cookies to the downstream handler.
        """
        merged = dict(cookies)
        for name, value, options in self.pending().values():
            if is_deletion(options):
                merged.pop(name, None)
            else:
                merged[name] = value
        return merged

    def apply(self, response: Response) -> None:
        """Emit one Set-Cookie header per pending cookie."""
        for name, value, options in self.pending().values():
            kwargs = {k: v for k, v in options.items() if k in _COOKIE_KWARGS}
            if is_deletion(options):
                response.delete_cookie(
                    name,
                    path=kwargs.get("path", "/"),
                    domain=kwargs.get("domain"),
                )
            else:
                response.set_cookie(name, value, **kwargs)


# =============================================================================
# Bridge
# =============================================================================

class RequestCookieBridge:
    """
    Cookie bridge over a request's cookies.

    With no sink (server-rendered pages, JSON endpoints) set_all does nothing:
    those paths only read the session. The refresh gate and auth actions pass
    the request's ResponseCookieJar as sink; writes then also update this
    bridge's own view so later reads in the same request see them.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        sink: ResponseCookieJar | None = None,
    ):
        self._cookies = dict(cookies)
        self._sink = sink

    @classmethod
    def from_request(
        cls,
        request: Request,
        sink: ResponseCookieJar | None = None,
    ) -> RequestCookieBridge:
        return cls(request.cookies, sink=sink)

    @property
    def writable(self) -> bool:
        return self._sink is not None

    def get_all(self) -> list[tuple[str, str]]:
        return list(self._cookies.items())

    def set_all(self, cookies: list[CookieWrite]) -> None:
        if self._sink is None:
            return
        for name, value, options in cookies:
            if is_deletion(options):
                self._cookies.pop(name, None)
            else:
                self._cookies[name] = value
        self._sink.set_all(cookies)


# =============================================================================
# Chunking / Encoding
# =============================================================================

def encode_value(value: str) -> str:
    encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii")
    return BASE64_PREFIX + encoded.rstrip("=")


def decode_value(value: str) -> str:
    if not value.startswith(BASE64_PREFIX):
        return value
    data = value[len(BASE64_PREFIX):]
    data += "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data.encode("ascii")).decode("utf-8")


def split_chunks(name: str, value: str, size: int = MAX_CHUNK_SIZE) -> list[tuple[str, str]]:
    """
    Split a cookie value into numbered chunks.

    Values that fit are kept under the bare name.

    Example:
        split_chunks("tok", "x" * 5000) -> [("tok.0", 3180 chars), ("tok.1", 1820 chars)]
    """
    if len(value) <= size:
        return [(name, value)]
    return [
        (f"{name}.{i}", value[start:start + size])
        for i, start in enumerate(range(0, len(value), size))
    ]


def combine_chunks(cookies: Mapping[str, str], name: str) -> str | None:
    """Read a cookie stored bare or as consecutive chunks."""
    if name in cookies:
        return cookies[name]

    parts = []
    i = 0
    while f"{name}.{i}" in cookies:
        parts.append(cookies[f"{name}.{i}"])
        i += 1
    return "".join(parts) if parts else None


def cookie_family(cookies: Iterable[str], name: str) -> list[str]:
    """Names in `cookies` that hold `name`, bare or chunked."""
    pattern = re.compile(rf"^{re.escape(name)}(\.\d+)?$")
    return [c for c in cookies if pattern.match(c)]


def session_cookie_names(cookies: Iterable[str], base_name: str) -> list[str]:
    """Session token cookies present on a request (PKCE verifier excluded)."""
    names = list(cookies)
    found = cookie_family(names, base_name)
    found.extend(c for c in LEGACY_SESSION_COOKIES if c in names)
    return found


# =============================================================================
# Auth Client Storage
# =============================================================================

class CookieStorage(SyncSupportedStorage):
    """
    Supabase auth storage backed by a cookie bridge.

    Storage keys are cookie names: the auth client is built with
    storage_key=<session cookie name>, so the session lands under that name
    and the PKCE verifier under "<name>-code-verifier".
    """

    def __init__(self, bridge: CookieBridge, cookie_options: CookieOptions):
        self.bridge = bridge
        self.cookie_options = cookie_options

    def _deletions(self, names: Iterable[str]) -> list[CookieWrite]:
        return [(name, "", {**self.cookie_options, "max_age": 0}) for name in names]

    def get_item(self, key: str) -> str | None:
        raw = combine_chunks(dict(self.bridge.get_all()), key)
        if raw is None:
            return None
        return decode_value(raw)

    def set_item(self, key: str, value: str) -> None:
        chunks = split_chunks(key, encode_value(value))
        new_names = {name for name, _ in chunks}

        existing = cookie_family((n for n, _ in self.bridge.get_all()), key)
        writes = self._deletions(n for n in existing if n not in new_names)
        writes.extend((name, chunk, dict(self.cookie_options)) for name, chunk in chunks)
        self.bridge.set_all(writes)

    def remove_item(self, key: str) -> None:
        existing = cookie_family((n for n, _ in self.bridge.get_all()), key)
        if existing:
            self.bridge.set_all(self._deletions(existing))
