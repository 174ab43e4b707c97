from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

import voluptuous as vol

from .const import (
    DEFAULT_PASSWORD,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_PROFILE,
    MAX_POLL_INTERVAL,
    MIN_POLL_INTERVAL,
    PROFILE_JSON_PASSWORD,
    PROFILE_PIN_FORM,
)

CONF_HOST = "host"
CONF_PORT = "port"
CONF_PASSWORD = "password"
CONF_PROFILE = "profile"
CONF_POLL_INTERVAL = "poll_interval"
CONF_PATHS = "paths"

# Endpoint names a config may re-point; see DeviceProfile.paths
PATH_KEYS = (
    "root",
    "login",
    "push",
    "settings",
    "restart",
    "status",
    "config",
    "info",
    "open",
)


def _path(value: Any) -> str:
    value = vol.Coerce(str)(value).strip()
    if not value.startswith("/"):
        raise vol.Invalid(f"path must start with '/': {value!r}")
    return value


PATHS_SCHEMA = vol.Schema({vol.In(PATH_KEYS): _path})

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): vol.All(str, vol.Strip, vol.Length(min=1)),
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=65535)
        ),
        vol.Optional(CONF_PASSWORD, default=DEFAULT_PASSWORD): vol.Coerce(str),
        vol.Optional(CONF_PROFILE, default=DEFAULT_PROFILE): vol.In(
            [PROFILE_PIN_FORM, PROFILE_JSON_PASSWORD]
        ),
        vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL): vol.All(
            vol.Coerce(int), vol.Clamp(min=MIN_POLL_INTERVAL, max=MAX_POLL_INTERVAL)
        ),
        vol.Optional(CONF_PATHS, default=dict): PATHS_SCHEMA,
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class HailoConfig:
    """Validated connection settings for one device."""

    host: str
    port: int = DEFAULT_PORT
    password: str = DEFAULT_PASSWORD
    profile: str = DEFAULT_PROFILE
    poll_interval: int = DEFAULT_POLL_INTERVAL
    paths: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HailoConfig":
        """Validate a raw mapping; raises ``voluptuous.Invalid`` on bad input."""
        conf = CONFIG_SCHEMA(dict(data))
        return cls(
            host=conf[CONF_HOST],
            port=conf[CONF_PORT],
            password=conf[CONF_PASSWORD],
            profile=conf[CONF_PROFILE],
            poll_interval=conf[CONF_POLL_INTERVAL],
            paths=dict(conf[CONF_PATHS]),
        )

    @property
    def base_url(self) -> str:
        host = self.host.rstrip("/")
        if host.startswith(("http://", "https://")):
            return f"{host}:{self.port}" if host.count(":") < 2 else host
        return f"http://{host}:{self.port}"
