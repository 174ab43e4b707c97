from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Iterable, List, Optional

from .api import HailoConnectionError, HailoError
from .client import HailoClient
from .const import (
    DEFAULT_POLL_INTERVAL,
    MAX_POLL_INTERVAL,
    MIN_POLL_INTERVAL,
    RECONNECT_DELAY,
)
from .models import ConnectionState, DeviceInfo, DeviceSettings, StateUpdate, setting_scalar
from .scheduler import LoopScheduler, ScheduledTask, Scheduler

_LOGGER = logging.getLogger(__name__)

UpdateListener = Callable[[StateUpdate], Any]
ConnectionListener = Callable[[bool], Any]


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


def settings_updates(settings: DeviceSettings) -> List[StateUpdate]:
    return [StateUpdate(f"settings.{k}", setting_scalar(v)) for k, v in settings.items()]


def info_updates(info: DeviceInfo) -> List[StateUpdate]:
    return [StateUpdate(f"info.{k}", v) for k, v in info.as_dict().items()]


class ConnectionSupervisor:
    """Drives reachability -> login -> polling, and reconnects after failures.

    States: DISCONNECTED -> CONNECTING -> CONNECTED, or RECONNECTING with one
    retry after a fixed delay. At most one reconnect timer and one poll timer
    exist at any time, and poll ticks never overlap: a tick that fires while
    the previous fetch is still running is skipped.
    """

    def __init__(
        self,
        client: HailoClient,
        *,
        poll_interval: int = DEFAULT_POLL_INTERVAL,
        scheduler: Scheduler | None = None,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        self.client = client
        self._poll_interval = max(MIN_POLL_INTERVAL, min(MAX_POLL_INTERVAL, int(poll_interval)))
        self._reconnect_delay = reconnect_delay
        self._scheduler: Scheduler = scheduler or LoopScheduler()

        self._state = ConnectionState.DISCONNECTED
        self._active = False
        self._poll_task: Optional[ScheduledTask] = None
        self._reconnect_task: Optional[ScheduledTask] = None
        self._poll_in_flight = False

        self._update_listeners: List[UpdateListener] = []
        self._connection_listeners: List[ConnectionListener] = []

    # ----------------- Public -----------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def active(self) -> bool:
        return self._active

    @property
    def poll_interval(self) -> int:
        return self._poll_interval

    def add_update_listener(self, cb: UpdateListener) -> Callable[[], None]:
        self._update_listeners.append(cb)

        def _unsub() -> None:
            if cb in self._update_listeners:
                self._update_listeners.remove(cb)

        return _unsub

    def add_connection_listener(self, cb: ConnectionListener) -> Callable[[], None]:
        self._connection_listeners.append(cb)

        def _unsub() -> None:
            if cb in self._connection_listeners:
                self._connection_listeners.remove(cb)

        return _unsub

    async def start(self) -> None:
        if self._active:
            return
        self._active = True
        await self.connect()

    async def connect(self) -> None:
        """One connection attempt. Never raises; failures schedule a retry."""
        if not self._active:
            return
        self._cancel_reconnect()
        self._stop_polling()
        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.info("Connecting to Hailo Libero at %s", self.client.base_url)

        try:
            result = await self.client.test_connection()
            if not self._active:
                return
            if not result.success:
                _LOGGER.error(
                    "Cannot reach device at %s: %s",
                    self.client.base_url,
                    result.message,
                )
                await self._emit_connection(False)
                self._schedule_reconnect()
                return

            try:
                authed = await self.client.sessions.authenticate()
            except HailoError as err:
                _LOGGER.warning("Login request failed: %s", err)
                authed = False
            if not authed:
                _LOGGER.warning(
                    "Authentication failed or not required; continuing without authentication"
                )
            if not self._active:
                return

            self._set_state(ConnectionState.CONNECTED)
            await self._emit_connection(True)
            _LOGGER.info("Connected to Hailo Libero device")

            await self._update_info()
            await self._refresh_settings()
            if self._active and self.connected:
                self._start_polling()
        except Exception as err:
            if not self._active:
                return
            _LOGGER.error("Error connecting to device: %s", err)
            await self._emit_connection(False)
            self._schedule_reconnect()

    async def request_refresh(self) -> bool:
        """Poll settings now, honouring the no-overlap rule."""
        if not self.connected or self._poll_in_flight:
            return False
        await self._poll_once()
        return True

    async def publish(self, updates: Iterable[StateUpdate]) -> None:
        """Push values obtained outside a poll (e.g. after a settings write)."""
        for update in updates:
            await self._emit_update(update)

    async def stop(self, callback: Callable[[], Any] | None = None) -> None:
        """Cancel both timers, report disconnected, then signal completion.

        The completion callback runs even if a listener fails.
        """
        self._active = False
        self._stop_polling()
        self._cancel_reconnect()
        _LOGGER.info("Stopping connection supervisor")
        try:
            await self._emit_connection(False)
        finally:
            self._set_state(ConnectionState.DISCONNECTED)
            if callback is not None:
                await _maybe_await(callback())

    # ----------------- Polling -----------------

    def _start_polling(self) -> None:
        self._stop_polling()
        self._poll_task = self._scheduler.call_later(
            self._poll_interval, self._poll_tick, name="hailo-poll"
        )

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_tick(self) -> None:
        if not self._active or not self.connected:
            return
        # Re-arm first so the cadence does not drift with fetch latency
        self._start_polling()
        if self._poll_in_flight:
            _LOGGER.debug("Previous poll still running; skipping tick")
            return
        await self._poll_once()

    async def _poll_once(self) -> None:
        self._poll_in_flight = True
        try:
            await self._refresh_settings()
        except HailoConnectionError as err:
            if self._active and self.connected:
                _LOGGER.warning("Lost connection to device: %s", err)
                await self._emit_connection(False)
                self._schedule_reconnect()
        finally:
            self._poll_in_flight = False

    async def _refresh_settings(self) -> None:
        settings = await self.client.read_settings()
        if not self._active or not self.connected:
            return
        for update in settings_updates(settings):
            await self._emit_update(update)

    async def _update_info(self) -> None:
        try:
            info = await self.client.read_info()
        except HailoError as err:
            _LOGGER.debug("Could not get device info: %s", err)
            return
        if not self._active:
            return
        if info.firmware_version:
            _LOGGER.info("Device firmware version: %s", info.firmware_version)
        for update in info_updates(info):
            await self._emit_update(update)

    # ----------------- Reconnect -----------------

    def _schedule_reconnect(self) -> None:
        if not self._active:
            return
        self._stop_polling()
        self._cancel_reconnect()
        self._set_state(ConnectionState.RECONNECTING)
        _LOGGER.info("Scheduling reconnection attempt in %s seconds", self._reconnect_delay)
        self._reconnect_task = self._scheduler.call_later(
            self._reconnect_delay, self._reconnect, name="hailo-reconnect"
        )

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

    async def _reconnect(self) -> None:
        self._reconnect_task = None
        await self.connect()

    # ----------------- Helpers -----------------

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            _LOGGER.debug("Connection state %s -> %s", self._state.value, state.value)
            self._state = state

    async def _emit_update(self, update: StateUpdate) -> None:
        if not self._active:
            return
        for cb in list(self._update_listeners):
            try:
                await _maybe_await(cb(update))
            except Exception:
                _LOGGER.exception("Update listener failed for %s", update.field)

    async def _emit_connection(self, connected: bool) -> None:
        for cb in list(self._connection_listeners):
            try:
                await _maybe_await(cb(connected))
            except Exception:
                _LOGGER.exception("Connection listener failed")
