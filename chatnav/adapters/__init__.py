from __future__ import annotations

from urllib.parse import urlparse

from .base import Adapter
from .chatgpt import ChatGPTAdapter
from .doubao import DoubaoAdapter
from .gemini import GeminiAdapter
from .kimi import KimiAdapter
from .qwen import QwenAdapter

UNKNOWN = "unknown"

BUILTIN_ADAPTERS: tuple[type, ...] = (
    ChatGPTAdapter,
    GeminiAdapter,
    DoubaoAdapter,
    KimiAdapter,
    QwenAdapter,
)


def hostname_of(url: str) -> str:
    parsed = urlparse(url if "://" in url else f"//{url}")
    return (parsed.hostname or "").lower()


class AdapterRegistry:
    """Platform id -> adapter. Re-registering an id replaces the old entry."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register_adapter(self, platform: str, adapter: Adapter) -> None:
        self._adapters[platform] = adapter

    def platforms(self) -> list[str]:
        return list(self._adapters)

    def detect_platform(self, url: str) -> str:
        host = hostname_of(url)
        if not host:
            return UNKNOWN
        for platform, adapter in self._adapters.items():
            if any(pattern in host for pattern in adapter.host_patterns):
                return platform
        return UNKNOWN

    def get_adapter(self, url: str) -> Adapter | None:
        return self._adapters.get(self.detect_platform(url))

    def get_adapter_by_platform(self, platform: str) -> Adapter | None:
        return self._adapters.get(platform)


def default_registry() -> AdapterRegistry:
    registry = AdapterRegistry()
    for adapter_cls in BUILTIN_ADAPTERS:
        adapter = adapter_cls()
        registry.register_adapter(adapter.platform, adapter)
    return registry


DEFAULT_REGISTRY = default_registry()


def register_adapter(platform: str, adapter: Adapter) -> None:
    DEFAULT_REGISTRY.register_adapter(platform, adapter)


def detect_platform(url: str) -> str:
    return DEFAULT_REGISTRY.detect_platform(url)


def get_adapter(url: str) -> Adapter | None:
    return DEFAULT_REGISTRY.get_adapter(url)


__all__ = [
    "Adapter",
    "AdapterRegistry",
    "BUILTIN_ADAPTERS",
    "DEFAULT_REGISTRY",
    "UNKNOWN",
    "default_registry",
    "detect_platform",
    "get_adapter",
    "hostname_of",
    "register_adapter",
]
