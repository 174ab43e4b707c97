"""
hailo_libero
============
Keeps a live session with a Hailo Libero smart bin and turns its HTML
configuration page and undocumented endpoints into polled state plus a
small command set (open lid, write settings, restart).

Quick start
-----------
    import aiohttp
    from hailo_libero import HailoDevice

    async with aiohttp.ClientSession() as http:
        device = HailoDevice.from_dict({"host": "192.168.1.50"}, http)
        device.add_update_listener(print)
        await device.start()
        await device.send_command("open_lid")
"""

from .api import HailoAuthError, HailoConnectionError, HailoError
from .client import HailoClient
from .config import CONFIG_SCHEMA, HailoConfig
from .device import HailoDevice, async_test_connection
from .extractor import InfoLocator, StateExtractor
from .models import (
    CommandResult,
    ConnectionState,
    DeviceInfo,
    RangedValue,
    Session,
    StateUpdate,
)
from .profiles import DeviceProfile, JsonPasswordProfile, PinFormProfile, get_profile
from .session import SessionManager
from .supervisor import ConnectionSupervisor

__all__ = [
    "CONFIG_SCHEMA",
    "CommandResult",
    "ConnectionState",
    "ConnectionSupervisor",
    "DeviceInfo",
    "DeviceProfile",
    "HailoAuthError",
    "HailoClient",
    "HailoConfig",
    "HailoConnectionError",
    "HailoDevice",
    "HailoError",
    "InfoLocator",
    "JsonPasswordProfile",
    "PinFormProfile",
    "RangedValue",
    "Session",
    "SessionManager",
    "StateExtractor",
    "StateUpdate",
    "async_test_connection",
    "get_profile",
]
