"""User preferences: refresh cadences and color mode."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from typing import Callable, Literal, Union

from .store import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "easypanel_monitor_settings"

OFF = "off"
REFRESH_MINUTES = (1, 5, 10, 15, 30, 60)
RefreshInterval = Union[int, Literal["off"]]
REFRESH_OPTIONS: tuple[RefreshInterval, ...] = (*REFRESH_MINUTES, OFF)

COLOR_MODES = ("system", "light", "dark")


class InvalidSettingError(ValueError):
    """A settings value outside its permitted set."""


def coerce_interval(value: object) -> RefreshInterval:
    """Map *value* onto a permitted RefreshInterval or raise InvalidSettingError."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text == OFF:
            return OFF
        if text.isdigit():
            value = int(text)
    if isinstance(value, int) and not isinstance(value, bool) and value in REFRESH_MINUTES:
        return value
    raise InvalidSettingError(f"refresh interval must be one of {list(REFRESH_OPTIONS)}, got {value!r}")


def coerce_color_mode(value: object) -> str:
    if value in COLOR_MODES:
        return value
    raise InvalidSettingError(f"color mode must be one of {list(COLOR_MODES)}, got {value!r}")


def refresh_interval_seconds(interval: RefreshInterval) -> float | None:
    """Cadence in seconds, or None when refreshing is off."""
    if interval == OFF:
        return None
    return coerce_interval(interval) * 60


@dataclass(frozen=True)
class AppSettings:
    homePageRefreshInterval: RefreshInterval = OFF
    serviceRefreshInterval: RefreshInterval = OFF
    colorMode: str = "system"

    def __post_init__(self) -> None:
        object.__setattr__(self, "homePageRefreshInterval", coerce_interval(self.homePageRefreshInterval))
        object.__setattr__(self, "serviceRefreshInterval", coerce_interval(self.serviceRefreshInterval))
        object.__setattr__(self, "colorMode", coerce_color_mode(self.colorMode))

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_SETTINGS = AppSettings()


class SettingsStore:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def load(self) -> AppSettings:
        """Persisted settings merged over the defaults. Never raises."""
        try:
            raw = self.store.get(SETTINGS_KEY)
        except OSError as e:
            logger.warning("Failed to read settings: %s", e)
            return DEFAULT_SETTINGS
        if not raw:
            return DEFAULT_SETTINGS
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.warning("Stored settings are corrupted, using defaults: %s", e)
            return DEFAULT_SETTINGS
        if not isinstance(parsed, dict):
            logger.warning("Stored settings are not an object, using defaults")
            return DEFAULT_SETTINGS

        merged = {}
        for f in fields(AppSettings):
            if f.name not in parsed:
                continue
            try:
                # validate one field at a time so a bad field only loses itself
                AppSettings(**{f.name: parsed[f.name]})
            except InvalidSettingError as e:
                logger.warning("Ignoring stored %s: %s", f.name, e)
                continue
            merged[f.name] = parsed[f.name]
        return AppSettings(**merged)

    def save(self, settings: AppSettings) -> None:
        self.store.set(SETTINGS_KEY, json.dumps(settings.to_dict()))


class SettingsWatcher:
    """Re-read settings on store change notifications and on focus.

    *on_change* receives the freshly loaded AppSettings every time either
    signal fires, whether or not the values actually differ.
    """

    def __init__(self, settings: SettingsStore, on_change: Callable[[AppSettings], None]) -> None:
        self.settings = settings
        self.on_change = on_change
        self._unsubscribe: Callable[[], None] | None = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.settings.store.subscribe(self._on_store_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_store_change(self, key: str | None) -> None:
        if key in (None, SETTINGS_KEY):
            self.on_change(self.settings.load())

    def on_focus(self) -> None:
        # catch writes from other contexts that no notification reached us for
        changed = self.settings.store.check_for_changes()
        if not changed or self._unsubscribe is None:
            self.on_change(self.settings.load())
