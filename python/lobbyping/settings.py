"""Persistence helpers for the selected local address."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Union

from .utils import UNSPECIFIED_ADDRESS, pack_ip

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".lobbyping.json"

# Shortest possible dotted quad, "0.0.0.0".
_MIN_ADDRESS_LENGTH = 7

_TRUE_FLAGS = frozenset({"1", "true", "yes", "on"})


class SettingsError(ValueError):
    """Raised for an unusable local address."""


@dataclass
class Settings:
    addr: str = ""
    autoload: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        return cls(
            addr=str(data.get("addr", "") or ""),
            autoload=_parse_flag(data.get("autoload", False)),
        )


def _parse_flag(value: object) -> bool:
    """Hand-edited files may hold "0"/"1" strings rather than JSON booleans."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_FLAGS
    if isinstance(value, int):
        return value != 0
    return False


def validate_address(text: str) -> str:
    candidate = (text or "").strip()
    if len(candidate) < _MIN_ADDRESS_LENGTH or candidate == UNSPECIFIED_ADDRESS:
        raise SettingsError(f"Not a usable local address: {text!r}")
    try:
        pack_ip(candidate)
    except ValueError as exc:
        raise SettingsError(f"Encountered an invalid address: {text!r}") from exc
    return candidate


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        return Settings()
    try:
        raw = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable settings file %s", settings_path, exc_info=True)
        return Settings()
    if not isinstance(raw, dict):
        logger.warning("Ignoring malformed settings file %s", settings_path)
        return Settings()
    return Settings.from_dict(raw)


def save_settings(settings: Settings, path: Optional[Union[str, Path]] = None) -> Path:
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    return settings_path


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "Settings",
    "SettingsError",
    "validate_address",
    "load_settings",
    "save_settings",
]
