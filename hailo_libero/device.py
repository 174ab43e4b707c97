from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import aiohttp
import voluptuous as vol

from .api import HailoAuthError, HailoConnectionError, HailoTransport
from .client import HailoClient
from .config import HailoConfig
from .const import SETTING_FIELDS
from .extractor import coerce_number
from .models import CommandResult, DeviceInfo, DeviceSettings, StateUpdate
from .profiles import get_profile
from .scheduler import Scheduler
from .session import SessionManager
from .supervisor import ConnectionListener, ConnectionSupervisor, UpdateListener

_LOGGER = logging.getLogger(__name__)


def _build_client(session: aiohttp.ClientSession, config: HailoConfig) -> HailoClient:
    profile = get_profile(config.profile, config.paths)
    transport = HailoTransport(session, config.base_url)
    sessions = SessionManager(transport, profile, config.password)
    return HailoClient(transport, profile, sessions)


class HailoDevice:
    """Host-facing handle: reads, commands and the update/connection streams.

    Like aiohttp itself, create it inside a coroutine when no session is
    passed in.
    """

    def __init__(
        self,
        config: HailoConfig,
        session: aiohttp.ClientSession | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self.client = _build_client(self._session, config)
        self.supervisor = ConnectionSupervisor(
            self.client, poll_interval=config.poll_interval, scheduler=scheduler
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        session: aiohttp.ClientSession | None = None,
        **kwargs: Any,
    ) -> "HailoDevice":
        return cls(HailoConfig.from_dict(data), session, **kwargs)

    # ----------------- Lifecycle -----------------

    async def start(self) -> None:
        _LOGGER.info(
            "Initializing Hailo Libero device at %s (profile %s)",
            self.config.base_url,
            self.config.profile,
        )
        await self.supervisor.start()

    async def stop(self, callback: Callable[[], Any] | None = None) -> None:
        await self.supervisor.stop(callback)

    async def close(self) -> None:
        """Stop and release the HTTP session if this object created it."""
        try:
            if self.supervisor.active:
                await self.supervisor.stop()
        finally:
            if self._owns_session and not self._session.closed:
                await self._session.close()

    def add_update_listener(self, cb: UpdateListener) -> Callable[[], None]:
        return self.supervisor.add_update_listener(cb)

    def add_connection_listener(self, cb: ConnectionListener) -> Callable[[], None]:
        return self.supervisor.add_connection_listener(cb)

    # ----------------- Reads -----------------

    async def read_info(self) -> DeviceInfo:
        return await self.client.read_info()

    async def read_settings(self) -> DeviceSettings:
        return await self.client.read_settings()

    # ----------------- Commands -----------------

    async def send_command(
        self, name: str, args: Optional[Mapping[str, Any]] = None
    ) -> CommandResult:
        """Dispatch a named command; never raises for device-side failures."""
        args = dict(args or {})
        if name == "open_lid":
            ok = await self.client.open_lid()
            return CommandResult(ok, None if ok else "Failed to open bin lid")

        if name == "write_settings":
            dry_run = bool(args.pop("dry_run", False))
            unknown = set(args) - set(SETTING_FIELDS)
            if unknown:
                return CommandResult(False, f"Unknown settings: {', '.join(sorted(unknown))}")
            ok = await self.client.write_settings(**args, dry_run=dry_run)
            if ok and not dry_run:
                await self.supervisor.publish(
                    StateUpdate(f"settings.{SETTING_FIELDS[k]}", coerce_number(v))
                    for k, v in args.items()
                    if v is not None
                )
            return CommandResult(ok, None if ok else "Failed to update settings")

        if name == "restart":
            ok = await self.client.restart()
            return CommandResult(ok, None if ok else "Failed to restart device")

        if name == "refresh":
            ok = await self.supervisor.request_refresh()
            return CommandResult(ok, None if ok else "Device not connected or poll running")

        _LOGGER.warning("Unknown command: %s", name)
        return CommandResult(False, f"Unknown command: {name}")


async def async_test_connection(
    session: aiohttp.ClientSession, data: Mapping[str, Any]
) -> CommandResult:
    """Check a not-yet-saved configuration against the real device.

    ``data`` is the raw config mapping; an optional ``settings`` entry holds
    values to validate with a dry-run write.
    """
    data = dict(data)
    settings: Dict[str, Any] = dict(data.pop("settings", None) or {})
    try:
        config = HailoConfig.from_dict(data)
    except vol.Invalid as err:
        return CommandResult(False, f"Invalid configuration: {err}")

    client = _build_client(session, config)
    result = await client.test_connection()
    if not result.success:
        return CommandResult(False, f"Connection failed: {result.message}")

    auth_error: HailoAuthError | None = None
    try:
        await client.sessions.authenticate(raise_on_reject=True)
    except HailoAuthError as err:
        auth_error = err
    except HailoConnectionError as err:
        return CommandResult(False, f"Connection failed: {err}")

    unknown = set(settings) - set(SETTING_FIELDS)
    if unknown:
        return CommandResult(False, f"Unknown settings: {', '.join(sorted(unknown))}")
    if not await client.write_settings(**settings, dry_run=True):
        return CommandResult(False, "Invalid settings")

    if auth_error is not None:
        return CommandResult(True, f"Connection successful (not authenticated: {auth_error})")
    return CommandResult(True, "Connection successful!")
