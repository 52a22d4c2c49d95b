from __future__ import annotations

import json
import logging
import os
import warnings
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

from .config import _coerce_bool

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("~/.config/chatnav/settings.json").expanduser()

SIDEBAR_POSITIONS = {"left", "right"}

# Control surfaces send camelCase keys.
SETTING_ALIASES = {
    "enabled": "enabled",
    "showPreview": "show_preview",
    "show_preview": "show_preview",
    "sidebarPosition": "sidebar_position",
    "sidebar_position": "sidebar_position",
}


@dataclass(frozen=True)
class Settings:
    enabled: bool = True
    show_preview: bool = True
    sidebar_position: str = "right"

    def merged(self, partial: dict[str, Any]) -> Settings:
        updated = self
        for key, value in normalize_partial(partial).items():
            if key == "sidebar_position":
                if value not in SIDEBAR_POSITIONS:
                    warnings.warn(
                        f"Invalid sidebar position: {value!r}", RuntimeWarning, stacklevel=2
                    )
                    continue
                updated = replace(updated, sidebar_position=value)
            else:
                current = getattr(updated, key)
                updated = replace(updated, **{key: _coerce_bool(value, current, key=key)})
        return updated

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_partial(partial: dict[str, Any] | None) -> dict[str, Any]:
    """Map camelCase or snake_case keys to field names, dropping unknown keys."""

    if not partial:
        return {}
    normalized: dict[str, Any] = {}
    for key, value in partial.items():
        field_name = SETTING_ALIASES.get(key)
        if field_name is not None and value is not None:
            normalized[field_name] = value
    return normalized


def get_settings_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("CHATNAV_SETTINGS", DEFAULT_SETTINGS_PATH))
    return candidate.expanduser()


class SettingsStore:
    """JSON-file settings storage.

    Read and write failures are logged and reported through return values;
    callers keep running on whatever they last held in memory.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = get_settings_path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("settings read failed: %s", self.path, exc_info=exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
        except OSError as exc:
            logger.warning("settings write failed: %s", self.path, exc_info=exc)
            return False
        return True

    def load(self) -> Settings:
        stored = self._read().get("settings")
        if not isinstance(stored, dict):
            return Settings()
        return Settings().merged(stored)

    def save(self, settings: Settings) -> bool:
        data = self._read()
        data["settings"] = settings.to_dict()
        return self._write(data)

    def load_sidebar_visible(self, default: bool = True) -> bool:
        return _coerce_bool(self._read().get("sidebar_visible"), default, key="sidebar_visible")

    def save_sidebar_visible(self, visible: bool) -> bool:
        data = self._read()
        data["sidebar_visible"] = visible
        return self._write(data)
