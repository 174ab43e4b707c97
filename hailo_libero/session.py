from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from .api import HailoAuthError, HailoTransport
from .models import Session
from .profiles import DeviceProfile

_LOGGER = logging.getLogger(__name__)


class SessionManager:
    """Owns the device session; the only place that performs the login handshake.

    The device never tells us when a session expires. It is considered valid
    until a request is answered with a redirect to the login page, at which
    point callers invoke :meth:`invalidate` (lazily, on next use).
    """

    def __init__(
        self, transport: HailoTransport, profile: DeviceProfile, credential: str
    ) -> None:
        self._transport = transport
        self._profile = profile
        self._credential = credential
        self._session = Session()
        self._lock = asyncio.Lock()
        transport.add_secret(credential)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def authenticated(self) -> bool:
        return self._session.authenticated

    def invalidate(self) -> None:
        if self._session.authenticated or self._session.cookie_token:
            _LOGGER.debug("Device rejected the session; clearing cached cookie")
        self._session = Session()

    async def ensure_authenticated(self) -> bool:
        """Probe once; log in only if the device asks for it.

        Any other probe answer (e.g. a 500) returns False without sending
        credentials. Raises HailoConnectionError when the device cannot be
        reached.
        """
        resp = await self._transport.request(self._profile.probe_request(), self._session)
        if self._profile.probe_authenticated(resp):
            if not self._session.authenticated:
                self._session = replace(self._session, authenticated=True)
            return True

        if not self._profile.is_login_redirect(resp):
            _LOGGER.warning("Session probe answered HTTP %s", resp.status)
            return False

        _LOGGER.debug("Probe answered HTTP %s; login required", resp.status)
        self.invalidate()
        return await self.authenticate()

    async def authenticate(
        self, credential: str | None = None, *, raise_on_reject: bool = False
    ) -> bool:
        """Run the login handshake; returns False when the device rejects it.

        With ``raise_on_reject`` a rejection raises HailoAuthError instead.
        """
        if credential is None:
            credential = self._credential
        else:
            self._transport.add_secret(credential)

        async with self._lock:
            resp = await self._transport.request(self._profile.login_request(credential))
            token = self._profile.login_cookie(resp)
            if token is None:
                if resp.set_cookies:
                    _LOGGER.warning(
                        "Login answered HTTP %s with an unusable cookie", resp.status
                    )
                else:
                    _LOGGER.warning("Login rejected by device (HTTP %s)", resp.status)
                self._session = Session()
                if raise_on_reject:
                    raise HailoAuthError(f"Login rejected by device (HTTP {resp.status})")
                return False

            self._transport.add_secret(token.split("=", 1)[1])
            self._session = Session(cookie_token=token, authenticated=True)
            _LOGGER.info("Authenticated with device (HTTP %s)", resp.status)
            return True
