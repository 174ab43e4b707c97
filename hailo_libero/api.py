from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

import aiohttp

from .const import REQUEST_TIMEOUT, USER_AGENT
from .models import Session

_LOGGER = logging.getLogger(__name__)

# Toggle to preview bodies in debug logs. Leave False by default.
API_LOG_PREVIEW = False

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class HailoError(Exception):
    """Base error for the Hailo Libero device layer."""


class HailoConnectionError(HailoError):
    """Device unreachable, refused the connection or timed out."""


class HailoAuthError(HailoError):
    """Device rejected the credential or returned no session cookie."""


def _redact(text: str | None, *secrets: str | None) -> str:
    """Mask credentials and cookie values in an arbitrary string."""
    if not text:
        return ""
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***REDACTED***")
    return text


def _header_values(headers: Mapping[str, str], name: str) -> List[str]:
    getall = getattr(headers, "getall", None)
    if getall is not None:
        return [str(v) for v in getall(name, [])]
    value = headers.get(name)
    return [value] if value else []


@dataclass(frozen=True)
class RequestSpec:
    """What to send; built by a profile, executed by the transport."""

    method: str
    path: str
    data: Optional[Dict[str, Any]] = None
    json: Optional[Dict[str, Any]] = None
    timeout: float = REQUEST_TIMEOUT


@dataclass
class DeviceResponse:
    status: int
    text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 200

    @property
    def is_redirect(self) -> bool:
        return self.status in REDIRECT_STATUSES

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("Location")

    @property
    def location_path(self) -> Optional[str]:
        loc = self.location
        if loc is None:
            return None
        return urlsplit(loc).path or "/"

    @property
    def set_cookies(self) -> List[str]:
        return _header_values(self.headers, "Set-Cookie")


class HailoTransport:
    """Executes RequestSpecs against one device over a shared aiohttp session.

    Redirects are never followed: a redirect is how the device says the session
    is not (or no longer) authenticated, so callers need to see it.
    Timeouts and socket errors surface as HailoConnectionError.
    """

    def __init__(self, session: aiohttp.ClientSession, base_url: str) -> None:
        self._session = session
        self._base = base_url.rstrip("/")
        self._secrets: List[str] = []

    @property
    def base_url(self) -> str:
        return self._base

    def add_secret(self, secret: str | None) -> None:
        """Register a value that must never appear in logs."""
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    async def request(
        self, spec: RequestSpec, session: Session | None = None
    ) -> DeviceResponse:
        headers = {"User-Agent": USER_AGENT}
        if session is not None:
            headers.update(session.headers())
        url = self._base + spec.path
        _LOGGER.debug("HTTP %s %s", spec.method, url)

        try:
            async with self._session.request(
                spec.method,
                url,
                headers=headers,
                data=spec.data,
                json=spec.json,
                timeout=aiohttp.ClientTimeout(total=spec.timeout),
                allow_redirects=False,
            ) as resp:
                try:
                    body = await resp.text()
                except Exception:
                    body = ""
                if API_LOG_PREVIEW:
                    _LOGGER.debug(
                        "HTTP %s -> %s, body[0:200]=%r",
                        url,
                        resp.status,
                        _redact(body, *self._secrets)[:200],
                    )
                else:
                    _LOGGER.debug("HTTP %s -> %s", url, resp.status)
                return DeviceResponse(status=resp.status, text=body, headers=resp.headers)
        except asyncio.TimeoutError as err:
            _LOGGER.debug("Request %s %s timed out after %ss", spec.method, url, spec.timeout)
            raise HailoConnectionError(f"Timeout talking to {self._base}") from err
        except aiohttp.ClientError as err:
            msg = _redact(str(err), *self._secrets)
            _LOGGER.debug("Request %s %s failed: %s", spec.method, url, msg)
            raise HailoConnectionError(msg or type(err).__name__) from err
