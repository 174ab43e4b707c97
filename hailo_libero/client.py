from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .api import DeviceResponse, HailoConnectionError, HailoError, HailoTransport, RequestSpec
from .const import SETTING_FIELDS, SETTING_RANGES
from .extractor import coerce_number
from .models import CommandResult, DeviceInfo, DeviceSettings
from .profiles import DeviceProfile
from .session import SessionManager

_LOGGER = logging.getLogger(__name__)


class HailoClient:
    """Reads state from and sends commands to one Hailo Libero device."""

    def __init__(
        self,
        transport: HailoTransport,
        profile: DeviceProfile,
        sessions: SessionManager,
    ) -> None:
        self._transport = transport
        self._profile = profile
        self.sessions = sessions

    @property
    def profile(self) -> DeviceProfile:
        return self._profile

    @property
    def base_url(self) -> str:
        return self._transport.base_url

    async def _send(self, spec: RequestSpec) -> DeviceResponse:
        resp = await self._transport.request(spec, self.sessions.session)
        if self._profile.is_login_redirect(resp):
            self.sessions.invalidate()
        return resp

    async def _secure_session(self) -> None:
        """Try to get a session; commands go out regardless of the outcome."""
        try:
            if not await self.sessions.ensure_authenticated():
                _LOGGER.warning("Authentication failed; sending command unauthenticated")
        except HailoError as err:
            _LOGGER.debug("Could not secure a session: %s", err)

    async def _read(self, spec: RequestSpec) -> DeviceResponse:
        """GET with one re-login and retry when the session was rejected."""
        resp = await self._send(spec)
        if self._profile.is_login_redirect(resp):
            _LOGGER.debug("Session rejected on %s; logging in again", spec.path)
            if await self.sessions.authenticate():
                resp = await self._send(spec)
        return resp

    # ----------------- Reads -----------------

    async def test_connection(self) -> CommandResult:
        """Lightweight reachability check; any HTTP answer counts as reachable."""
        _LOGGER.debug("Testing connection to %s", self._transport.base_url)
        try:
            resp = await self._transport.request(self._profile.reachability_request())
        except HailoConnectionError as err:
            _LOGGER.error("Connection test failed: %s", err)
            return CommandResult(False, str(err))
        return CommandResult(True, f"Device is reachable (HTTP {resp.status})")

    async def read_settings(self) -> DeviceSettings:
        """Current settings; empty when the page could not be read."""
        resp = await self._read(self._profile.settings_request())
        if not resp.ok:
            _LOGGER.debug("Settings request answered HTTP %s", resp.status)
            return {}
        return self._profile.parse_settings(resp)

    async def read_info(self) -> DeviceInfo:
        resp = await self._read(self._profile.info_request())
        if not resp.ok:
            _LOGGER.debug("Info request answered HTTP %s", resp.status)
            return DeviceInfo()
        return self._profile.parse_info(resp)

    # ----------------- Commands -----------------

    async def open_lid(self) -> bool:
        """Physically opens the lid. Sent once; never retried here."""
        await self._secure_session()
        _LOGGER.info("Sending open lid command")
        try:
            resp = await self._send(self._profile.open_request())
        except HailoConnectionError as err:
            _LOGGER.error("Failed to open lid: %s", err)
            return False
        if self._profile.open_succeeded(resp):
            _LOGGER.info("Lid opened")
            return True
        _LOGGER.error(
            "Open lid not acknowledged (HTTP %s, body=%r)", resp.status, resp.text[:40]
        )
        return False

    async def write_settings(
        self,
        led_brightness: Optional[int] = None,
        ejection_force: Optional[int] = None,
        sensor_distance: Optional[int] = None,
        *,
        dry_run: bool = False,
    ) -> bool:
        """Write the given settings in one submission; omitted ones stay unchanged.

        With ``dry_run`` the values are only validated and logged; the device
        is not contacted.
        """
        fields = self._settings_payload(
            led_brightness=led_brightness,
            ejection_force=ejection_force,
            sensor_distance=sensor_distance,
        )
        if fields is None:
            return False
        if not fields:
            _LOGGER.debug("No settings to write")
            return True
        if dry_run:
            _LOGGER.info("Dry run: would write settings %s", fields)
            return True

        await self._secure_session()
        _LOGGER.debug("Writing settings %s", fields)
        try:
            resp = await self._send(self._profile.write_request(fields))
        except HailoConnectionError as err:
            _LOGGER.error("Failed to write settings: %s", err)
            return False
        if self._profile.command_succeeded(resp):
            _LOGGER.info("Settings updated")
            return True
        _LOGGER.error("Settings write rejected (HTTP %s)", resp.status)
        return False

    async def restart(self) -> bool:
        """Reboots the device. Sent once; never retried here."""
        await self._secure_session()
        _LOGGER.info("Sending restart command")
        try:
            resp = await self._send(self._profile.restart_request())
        except HailoConnectionError as err:
            _LOGGER.error("Failed to restart device: %s", err)
            return False
        if self._profile.command_succeeded(resp):
            return True
        _LOGGER.error("Restart rejected (HTTP %s)", resp.status)
        return False

    @staticmethod
    def _settings_payload(**values: Any) -> Optional[Dict[str, int]]:
        """Map keyword values to device form fields; None if any is invalid."""
        fields: Dict[str, int] = {}
        for key, value in values.items():
            if value is None:
                continue
            name = SETTING_FIELDS[key]
            lo, hi = SETTING_RANGES[name]
            num = None if isinstance(value, bool) else coerce_number(value)
            if not isinstance(num, int) or not lo <= num <= hi:
                _LOGGER.warning(
                    "%s must be an integer between %s and %s, got %r", key, lo, hi, value
                )
                return None
            fields[name] = num
        return fields
