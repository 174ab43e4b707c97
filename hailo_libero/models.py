from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Session:
    """Authentication state handed out by SessionManager, never mutated in place."""

    cookie_token: Optional[str] = None
    authenticated: bool = False

    def headers(self) -> Dict[str, str]:
        if self.cookie_token:
            return {"Cookie": self.cookie_token}
        return {}


@dataclass(frozen=True)
class RangedValue:
    """Numeric reading from a range input: value with its device-side bounds."""

    value: Union[Number, str]
    min: Optional[Number] = None
    max: Optional[Number] = None


SettingValue = Union[str, bool, Number, RangedValue]
DeviceSettings = Dict[str, SettingValue]


@dataclass
class DeviceInfo:
    """Device identity/network details; None means not found on the page."""

    model: Optional[str] = None
    firmware_version: Optional[str] = None
    status: Optional[str] = None
    ssid: Optional[str] = None
    ip_address: Optional[str] = None
    subnet_mask: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True)
class CommandResult:
    success: bool
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class StateUpdate:
    """One authoritative value pushed to the host, e.g. ``settings.led``."""

    field: str
    value: Any
    authoritative: bool = True


def setting_scalar(value: SettingValue) -> Any:
    """Plain value of a setting (the reading for ranged inputs)."""
    if isinstance(value, RangedValue):
        return value.value
    return value
