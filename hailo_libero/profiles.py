"""Protocol profiles: one per reverse-engineered firmware API variant.

A profile is pure. It says which request to send for an operation and how to
read the answer; SessionManager and HailoClient do the actual I/O. Two
variants have been seen in the field:

* ``pin_form`` - form login with the device PIN, session cookie, state
  scraped from the HTML configuration page, ``/push`` opens the lid.
* ``json_password`` - JSON login with a password, JSON ``/config`` and
  ``/info`` documents, ``/open`` opens the lid.

Which one current production firmware speaks is not known, so the profile is
selected by configuration.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Type

from .api import DeviceResponse, RequestSpec
from .const import (
    BOOLEAN_FIELDS,
    CONFIG_PATH,
    INFO_PATH,
    LOGIN_PATH,
    OPEN_PATH,
    PROBE_TIMEOUT,
    PROFILE_JSON_PASSWORD,
    PROFILE_PIN_FORM,
    PUSH_ACK,
    PUSH_PATH,
    RESTART_PATH,
    ROOT_PATH,
    SETTINGS_PATH,
    STATUS_PATH,
)
from .extractor import StateExtractor, coerce_number
from .models import DeviceInfo, DeviceSettings, RangedValue

_LOGGER = logging.getLogger(__name__)


def parse_cookie(header: str | None) -> Optional[str]:
    """Return the ``name=value`` pair a Set-Cookie header starts with, if non-empty."""
    if not header:
        return None
    # Attributes after the first ';' (Path, Secure, Partitioned, ...) are ignored
    pair = header.split(";", 1)[0]
    name, sep, value = pair.partition("=")
    name, value = name.strip(), value.strip()
    if not sep or not name or not value:
        return None
    return f"{name}={value}"


class DeviceProfile(ABC):
    """Binding of the session/command interface to one device API variant."""

    name: str = ""
    default_paths: Dict[str, str] = {}

    def __init__(
        self,
        paths: Mapping[str, str] | None = None,
        extractor: StateExtractor | None = None,
    ) -> None:
        self.paths: Dict[str, str] = {**self.default_paths, **(paths or {})}
        self.extractor = extractor or StateExtractor()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    def first_cookie(self, resp: DeviceResponse) -> Optional[str]:
        for header in resp.set_cookies:
            token = parse_cookie(header)
            if token:
                return token
        return None

    # ----------------- Session -----------------

    def reachability_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["root"], timeout=PROBE_TIMEOUT)

    @abstractmethod
    def probe_request(self) -> RequestSpec:
        """Cheap request whose answer tells whether the session is accepted."""

    @abstractmethod
    def probe_authenticated(self, resp: DeviceResponse) -> bool:
        ...

    @abstractmethod
    def login_request(self, credential: str) -> RequestSpec:
        ...

    @abstractmethod
    def login_cookie(self, resp: DeviceResponse) -> Optional[str]:
        """Session cookie from a successful login answer, else None."""

    def is_login_redirect(self, resp: DeviceResponse) -> bool:
        return resp.is_redirect

    # ----------------- State -----------------

    @abstractmethod
    def settings_request(self) -> RequestSpec:
        ...

    @abstractmethod
    def parse_settings(self, resp: DeviceResponse) -> DeviceSettings:
        ...

    @abstractmethod
    def info_request(self) -> RequestSpec:
        ...

    @abstractmethod
    def parse_info(self, resp: DeviceResponse) -> DeviceInfo:
        ...

    # ----------------- Commands -----------------

    @abstractmethod
    def open_request(self) -> RequestSpec:
        ...

    def open_succeeded(self, resp: DeviceResponse) -> bool:
        return resp.ok

    @abstractmethod
    def write_request(self, fields: Dict[str, Any]) -> RequestSpec:
        """Single submission carrying only ``fields`` (device form names)."""

    def restart_request(self) -> RequestSpec:
        return RequestSpec("POST", self.paths["restart"])

    def command_succeeded(self, resp: DeviceResponse) -> bool:
        return resp.ok


class PinFormProfile(DeviceProfile):
    """Cookie session from a PIN form login; state from the HTML config page."""

    name = PROFILE_PIN_FORM
    default_paths = {
        "root": ROOT_PATH,
        "login": LOGIN_PATH,
        "push": PUSH_PATH,
        "settings": SETTINGS_PATH,
        "restart": RESTART_PATH,
    }
    credential_field = "pin"

    def probe_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["root"], timeout=PROBE_TIMEOUT)

    def probe_authenticated(self, resp: DeviceResponse) -> bool:
        # 200 is the config page itself; anything else means log in first
        return resp.ok

    def login_request(self, credential: str) -> RequestSpec:
        return RequestSpec(
            "POST", self.paths["login"], data={self.credential_field: credential}
        )

    def login_cookie(self, resp: DeviceResponse) -> Optional[str]:
        if resp.ok:
            return self.first_cookie(resp)
        if resp.is_redirect and resp.location_path == self.paths["root"]:
            return self.first_cookie(resp)
        return None

    def settings_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["root"])

    def parse_settings(self, resp: DeviceResponse) -> DeviceSettings:
        return self.extractor.extract_settings(resp.text)

    def info_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["root"])

    def parse_info(self, resp: DeviceResponse) -> DeviceInfo:
        return self.extractor.extract_info(resp.text)

    def open_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["push"])

    def open_succeeded(self, resp: DeviceResponse) -> bool:
        return resp.ok and resp.text.strip() == PUSH_ACK

    def write_request(self, fields: Dict[str, Any]) -> RequestSpec:
        return RequestSpec(
            "POST",
            self.paths["settings"],
            data={k: str(v) for k, v in fields.items()},
        )


class JsonPasswordProfile(DeviceProfile):
    """JSON login with a password; JSON status/config/info documents."""

    name = PROFILE_JSON_PASSWORD
    default_paths = {
        "root": ROOT_PATH,
        "login": LOGIN_PATH,
        "status": STATUS_PATH,
        "config": CONFIG_PATH,
        "info": INFO_PATH,
        "open": OPEN_PATH,
        "restart": RESTART_PATH,
    }

    # DeviceInfo field -> keys seen in /info payloads, first match wins
    INFO_KEYS: Dict[str, tuple] = {
        "model": ("device", "model"),
        "firmware_version": ("firmware", "version", "fw"),
        "status": ("status", "state"),
        "ssid": ("ssid",),
        "ip_address": ("ip", "ip_address", "ipaddr"),
        "subnet_mask": ("subnet", "netmask", "subnet_mask"),
    }

    def probe_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["status"], timeout=PROBE_TIMEOUT)

    def probe_authenticated(self, resp: DeviceResponse) -> bool:
        return resp.ok

    def is_login_redirect(self, resp: DeviceResponse) -> bool:
        return resp.status in (401, 403) or resp.is_redirect

    def login_request(self, credential: str) -> RequestSpec:
        return RequestSpec("POST", self.paths["login"], json={"password": credential})

    def login_cookie(self, resp: DeviceResponse) -> Optional[str]:
        if not resp.ok:
            return None
        return self.first_cookie(resp)

    @staticmethod
    def _json(resp: DeviceResponse) -> Dict[str, Any]:
        try:
            data = json.loads(resp.text or "null")
        except ValueError:
            _LOGGER.debug("Non-JSON body from device (HTTP %s)", resp.status)
            return {}
        return data if isinstance(data, dict) else {}

    def settings_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["config"])

    def parse_settings(self, resp: DeviceResponse) -> DeviceSettings:
        data = self._json(resp)
        for key in ("settings", "config"):
            if isinstance(data.get(key), dict):
                data = data[key]
                break

        settings: DeviceSettings = {}
        for key, val in data.items():
            if isinstance(val, dict) and "value" in val:
                num = coerce_number(val.get("value"))
                settings[key] = RangedValue(
                    value=val.get("value") if num is None else num,
                    min=coerce_number(val.get("min")),
                    max=coerce_number(val.get("max")),
                )
            elif key in BOOLEAN_FIELDS and str(val) in ("0", "1"):
                settings[key] = str(val) == "1"
            else:
                settings[key] = val
        return settings

    def info_request(self) -> RequestSpec:
        return RequestSpec("GET", self.paths["info"])

    def parse_info(self, resp: DeviceResponse) -> DeviceInfo:
        data = self._json(resp)
        if isinstance(data.get("info"), dict):
            data = data["info"]
        info = DeviceInfo()
        for field_name, keys in self.INFO_KEYS.items():
            for key in keys:
                val = data.get(key)
                if val not in (None, ""):
                    setattr(info, field_name, str(val))
                    break
        return info

    def open_request(self) -> RequestSpec:
        return RequestSpec("POST", self.paths["open"], json={})

    def write_request(self, fields: Dict[str, Any]) -> RequestSpec:
        return RequestSpec("POST", self.paths["config"], json=dict(fields))


PROFILES: Dict[str, Type[DeviceProfile]] = {
    PinFormProfile.name: PinFormProfile,
    JsonPasswordProfile.name: JsonPasswordProfile,
}


def get_profile(name: str, paths: Mapping[str, str] | None = None) -> DeviceProfile:
    """Instantiate the profile registered under ``name``."""
    try:
        cls = PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown device profile: {name!r}") from None
    return cls(paths=paths)
