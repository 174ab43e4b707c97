"""
hailo_libero.extractor
======================
Turns the device's configuration page into settings and device info.

The page has no schema. Settings are read from the form's ``<input>``
elements; device info is scraped from label/value text that follows bold
marker elements (``<b>Firmware:</b> 1.4.2<br>``). Everything that depends on
that layout lives here, and the info layout is plain data
(:data:`DEFAULT_INFO_LOCATORS`) so a new firmware page usually only needs a
new locator table.

Nothing in this module performs I/O or raises on bad markup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Tuple, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .const import BOOLEAN_FIELDS
from .models import DeviceInfo, DeviceSettings, RangedValue

_LOGGER = logging.getLogger(__name__)

_BS4_PARSER = "html.parser"


@dataclass(frozen=True)
class InfoLocator:
    """Maps a marker label (matched as a prefix) to a DeviceInfo field."""

    marker: str
    field: str


DEFAULT_INFO_LOCATORS: Tuple[InfoLocator, ...] = (
    InfoLocator("Model", "model"),
    InfoLocator("Firmware", "firmware_version"),
    InfoLocator("Status", "status"),
    InfoLocator("SSID", "ssid"),
    InfoLocator("IP", "ip_address"),
    InfoLocator("Subnet", "subnet_mask"),
)

DEFAULT_MARKER_SELECTOR = "b, strong"


def coerce_number(raw: Any) -> Union[int, float, None]:
    if raw is None:
        return None
    try:
        val = float(str(raw).strip())
    except ValueError:
        return None
    if val != val or val in (float("inf"), float("-inf")):
        return None
    return int(val) if val.is_integer() else val


def _label(text: str) -> str:
    return text.strip().rstrip(":").strip().casefold()


class StateExtractor:
    """Pure HTML -> (DeviceSettings, DeviceInfo) extraction."""

    def __init__(
        self,
        locators: Iterable[InfoLocator] = DEFAULT_INFO_LOCATORS,
        *,
        marker_selector: str = DEFAULT_MARKER_SELECTOR,
        boolean_fields: Iterable[str] = BOOLEAN_FIELDS,
    ) -> None:
        self._locators = tuple(locators)
        self._marker_selector = marker_selector
        self._boolean_fields = frozenset(boolean_fields)

    def extract(self, html: str | None) -> Tuple[DeviceSettings, DeviceInfo]:
        soup = self._soup(html)
        return self._settings(soup), self._info(soup)

    def extract_settings(self, html: str | None) -> DeviceSettings:
        return self._settings(self._soup(html))

    def extract_info(self, html: str | None) -> DeviceInfo:
        return self._info(self._soup(html))

    # ----------------- Internals -----------------

    @staticmethod
    def _soup(html: str | None) -> BeautifulSoup:
        return BeautifulSoup(html or "", _BS4_PARSER)

    def _settings(self, soup: BeautifulSoup) -> DeviceSettings:
        settings: DeviceSettings = {}
        for el in soup.find_all("input"):
            name = el.get("name")
            if not name:
                continue
            itype = (el.get("type") or "text").lower()
            if itype == "radio" and not el.has_attr("checked"):
                continue
            raw = el.get("value")
            if raw is None:
                raw = ""

            if itype == "range" or (el.has_attr("min") and el.has_attr("max")):
                value = coerce_number(raw)
                settings[name] = RangedValue(
                    value=raw if value is None else value,
                    min=coerce_number(el.get("min")),
                    max=coerce_number(el.get("max")),
                )
            elif name in self._boolean_fields and raw.strip() in ("0", "1"):
                settings[name] = raw.strip() == "1"
            else:
                settings[name] = raw
        return settings

    def _info(self, soup: BeautifulSoup) -> DeviceInfo:
        info = DeviceInfo()
        markers = soup.select(self._marker_selector)
        if not markers:
            _LOGGER.debug("No info markers on page; device info unavailable")
            return info

        seen = {id(m) for m in markers}
        for marker in markers:
            label = _label(marker.get_text())
            if not label:
                continue
            for loc in self._locators:
                if getattr(info, loc.field, None) is not None:
                    continue
                if label.startswith(loc.marker.casefold()):
                    value = self._adjacent_text(marker, seen)
                    if value:
                        setattr(info, loc.field, value)
                    break
        return info

    @staticmethod
    def _adjacent_text(marker: Tag, markers: set) -> str:
        """Text following ``marker`` up to the next marker or line break."""
        parts = []
        for sib in marker.next_siblings:
            if isinstance(sib, Comment):
                continue
            if isinstance(sib, NavigableString):
                parts.append(str(sib))
                continue
            if not isinstance(sib, Tag):
                continue
            if sib.name == "br" or id(sib) in markers:
                break
            parts.append(sib.get_text())
        text = " ".join("".join(parts).split())
        return text.lstrip(":").strip()
