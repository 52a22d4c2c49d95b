from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/chatnav/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "preview_max_length": "CHATNAV_PREVIEW_MAX_LENGTH",
    "title_max_length": "CHATNAV_TITLE_MAX_LENGTH",
    "debounce_ms": "CHATNAV_DEBOUNCE_MS",
    "intersection_threshold": "CHATNAV_INTERSECTION_THRESHOLD",
    "root_margin": "CHATNAV_ROOT_MARGIN",
    "scroll_behavior": "CHATNAV_SCROLL_BEHAVIOR",
    "rescroll_delay_ms": "CHATNAV_RESCROLL_DELAY_MS",
    "navigation_grace_ms": "CHATNAV_NAVIGATION_GRACE_MS",
    "highlight_fade_ms": "CHATNAV_HIGHLIGHT_FADE_MS",
    "highlight_restore_ms": "CHATNAV_HIGHLIGHT_RESTORE_MS",
    "highlight_color": "CHATNAV_HIGHLIGHT_COLOR",
}

INT_KEYS = {
    "preview_max_length",
    "title_max_length",
    "debounce_ms",
    "rescroll_delay_ms",
    "navigation_grace_ms",
    "highlight_fade_ms",
    "highlight_restore_ms",
}
FLOAT_KEYS = {"intersection_threshold"}
SCROLL_BEHAVIORS = {"smooth", "auto", "instant"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("CHATNAV_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class NavigatorConfig:
    preview_max_length: int = 100
    title_max_length: int = 50
    debounce_ms: int = 300
    # Handed to the host's visibility tracking; the default watches the
    # middle tenth of the viewport.
    intersection_threshold: float = 0.0
    root_margin: str = "-45% 0px -45% 0px"
    scroll_behavior: str = "smooth"
    rescroll_delay_ms: int = 150
    navigation_grace_ms: int = 500
    highlight_fade_ms: int = 1500
    highlight_restore_ms: int = 1800
    highlight_color: str = "rgba(0, 108, 255, 0.12)"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(
    path: Path | None = None, overrides: dict[str, Any] | None = None
) -> NavigatorConfig:
    cfg = NavigatorConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    if overrides:
        cfg = _apply_dict(cfg, overrides)
    return cfg


def _apply_dict(cfg: NavigatorConfig, data: dict[str, Any]) -> NavigatorConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key == "scroll_behavior":
            if value not in SCROLL_BEHAVIORS:
                warnings.warn(f"Invalid scroll behavior: {value!r}", RuntimeWarning, stacklevel=2)
                continue
        if value is None:
            continue
        setattr(cfg, key, str(value))
    return cfg
