from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from bs4 import Tag

from .adapters import Adapter
from .config import NavigatorConfig
from .dom import LiveDocument
from .pairing import Unit
from .timers import TimerQueue

logger = logging.getLogger(__name__)

_TIE_EPSILON = 1e-6


class NavState(enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    SCROLLED = "scrolled"


@dataclass(frozen=True, slots=True, eq=False)
class IntersectionEntry:
    """Geometry of one observed anchor, relative to the viewport top."""

    target: Tag
    is_intersecting: bool
    top: float
    height: float

    @property
    def center(self) -> float:
        return self.top + self.height / 2


def _margin_px(token: str, extent: float) -> float:
    token = token.strip()
    if token.endswith("%"):
        return float(token[:-1]) * extent / 100.0
    return float(re.sub(r"px$", "", token) or 0)


def parse_root_margin(margin: str, viewport_height: float) -> tuple[float, float]:
    """Return (top, bottom) insets in px for a CSS-style margin string."""

    parts = margin.split()
    if not parts:
        return 0.0, 0.0
    if len(parts) < 3:
        top = bottom = parts[0]
    else:
        top, bottom = parts[0], parts[2]
    try:
        return _margin_px(top, viewport_height), _margin_px(bottom, viewport_height)
    except ValueError:
        logger.warning("invalid root margin: %r", margin)
        return 0.0, 0.0


class Highlighter:
    """Timed background pulse that puts the element's inline style back afterwards."""

    def __init__(
        self,
        document: LiveDocument,
        timers: TimerQueue,
        config: NavigatorConfig,
        *,
        is_active: Callable[[], bool] = lambda: True,
    ) -> None:
        self.document = document
        self.timers = timers
        self.config = config
        self._is_active = is_active
        # id(node) -> (node, style attribute before the first overlapping pulse, generation)
        self._pending: dict[int, tuple[Tag, str | None, int]] = {}
        self._generation = 0

    def pulse(self, node: Tag, border_radius: str = "0") -> None:
        self._generation += 1
        existing = self._pending.get(id(node))
        original_style = existing[1] if existing else self.document.style_attribute(node)
        self._pending[id(node)] = (node, original_style, self._generation)
        original_background = _style_value(original_style, "background")

        self.document.set_style_property(node, "transition", "background 0.3s ease")
        self.document.set_style_property(node, "background", self.config.highlight_color)
        self.document.set_style_property(node, "border-radius", border_radius)

        generation = self._generation
        self.timers.call_later(
            self.config.highlight_fade_ms, self._fade, node, original_background, generation
        )
        self.timers.call_later(self.config.highlight_restore_ms, self._restore, node, generation)

    def _current(self, node: Tag, generation: int) -> bool:
        entry = self._pending.get(id(node))
        return entry is not None and entry[0] is node and entry[2] == generation

    def _fade(self, node: Tag, original_background: str, generation: int) -> None:
        if not self._is_active() or not self._current(node, generation):
            return
        self.document.set_style_property(node, "background", original_background)

    def _restore(self, node: Tag, generation: int) -> None:
        if not self._is_active() or not self._current(node, generation):
            return
        entry = self._pending.pop(id(node))
        self.document.restore_style_attribute(node, entry[1])

    def restore_all(self) -> None:
        for node, original_style, _ in list(self._pending.values()):
            self.document.restore_style_attribute(node, original_style)
        self._pending.clear()

    @property
    def active_count(self) -> int:
        return len(self._pending)


def _style_value(style: str | None, name: str) -> str:
    for declaration in (style or "").split(";"):
        key, sep, value = declaration.partition(":")
        if sep and key.strip().lower() == name:
            return value.strip()
    return ""


class ViewportTracker:
    """Keeps the active index on the observed anchor nearest the viewport center."""

    def __init__(
        self,
        config: NavigatorConfig,
        *,
        viewport_height: Callable[[], float],
        units: Callable[[], Sequence[Unit]],
        active_index: Callable[[], int],
        on_change: Callable[[int], None],
        is_suppressed: Callable[[], bool] = lambda: False,
    ) -> None:
        self.root_margin = config.root_margin
        self.threshold = config.intersection_threshold
        self._viewport_height = viewport_height
        self._units = units
        self._active_index = active_index
        self._on_change = on_change
        self._is_suppressed = is_suppressed
        self._observed: dict[int, Tag] = {}
        self.connected = True

    @property
    def observed(self) -> list[Tag]:
        return list(self._observed.values())

    def observe(self, node: Tag) -> None:
        if self.connected:
            self._observed[id(node)] = node

    def unobserve(self, node: Tag) -> None:
        self._observed.pop(id(node), None)

    def disconnect(self) -> None:
        self._observed.clear()
        self.connected = False

    def entries_for(self, rects: Sequence[tuple[Tag, float, float]]) -> list[IntersectionEntry]:
        """Build entries from (node, top, height) rects against the margin-shrunk viewport."""

        height = self._viewport_height()
        top_inset, bottom_inset = parse_root_margin(self.root_margin, height)
        band_top = -top_inset
        band_bottom = height + bottom_inset
        entries: list[IntersectionEntry] = []
        for node, top, node_height in rects:
            visible = min(top + node_height, band_bottom) - max(top, band_top)
            if node_height > 0:
                ratio = max(0.0, visible) / node_height
                intersecting = visible > 0 and ratio >= self.threshold
            else:
                intersecting = band_top <= top <= band_bottom
            entries.append(
                IntersectionEntry(
                    target=node, is_intersecting=intersecting, top=top, height=node_height
                )
            )
        return entries

    def handle_entries(self, entries: Sequence[IntersectionEntry]) -> int | None:
        """Apply a batch of geometry events; return the new active index, if it changed."""

        if not self.connected or self._is_suppressed():
            return None
        units = self._units()
        positions = {id(unit.anchor_node): idx for idx, unit in enumerate(units)}
        candidates: list[tuple[float, int]] = []
        center = self._viewport_height() / 2
        for entry in entries:
            if not entry.is_intersecting or id(entry.target) not in self._observed:
                continue
            idx = positions.get(id(entry.target))
            if idx is None:
                continue
            candidates.append((abs(entry.center - center), idx))
        if not candidates:
            return None

        best = min(distance for distance, _ in candidates)
        tied = sorted(idx for distance, idx in candidates if distance - best <= _TIE_EPSILON)
        current = self._active_index()
        chosen = current if current in tied else tied[0]
        if chosen == current:
            return None
        self._on_change(chosen)
        return chosen


class NavigationController:
    """Resolve a unit to a live node, scroll to it and highlight it.

    IDLE -> RESOLVING -> SCROLLED -> IDLE. While not IDLE the viewport
    tracker is suppressed, so smooth-scroll positions do not override the
    selection; the return to IDLE is purely time based.
    """

    def __init__(
        self,
        document: LiveDocument,
        adapter: Adapter,
        timers: TimerQueue,
        config: NavigatorConfig,
        *,
        units: Callable[[], Sequence[Unit]],
        reextract: Callable[[], Sequence[Unit]],
        highlighter: Highlighter,
        on_activate: Callable[[int], None],
        is_active: Callable[[], bool] = lambda: True,
    ) -> None:
        self.document = document
        self.adapter = adapter
        self.timers = timers
        self.config = config
        self.highlighter = highlighter
        self.state = NavState.IDLE
        self._units = units
        self._reextract = reextract
        self._on_activate = on_activate
        self._is_active = is_active
        self._generation = 0

    @property
    def in_progress(self) -> bool:
        return self.state is not NavState.IDLE

    def resolve(self, index: int) -> Tag | None:
        units = self._units()
        if not 0 <= index < len(units):
            return None
        stale = units[index]
        if self.document.is_connected(stale.anchor_node):
            return stale.anchor_node

        fresh = self._reextract()
        for unit in fresh:
            if unit.title == stale.title:
                if self.document.is_connected(unit.anchor_node):
                    return unit.anchor_node
                break
        if index < len(fresh) and self.document.is_connected(fresh[index].anchor_node):
            return fresh[index].anchor_node
        return None

    def navigate(self, index: int) -> bool:
        if not self._is_active():
            return False
        if not 0 <= index < len(self._units()):
            return False

        previous_state = self.state
        self.state = NavState.RESOLVING
        target = self.resolve(index)
        if target is None:
            # an earlier navigation keeps its grace window
            logger.debug("navigation to %d aborted: no live anchor", index)
            self.state = previous_state
            return False

        self._generation += 1
        generation = self._generation
        self.document.scroll_into_view(target, behavior=self.config.scroll_behavior, block="start")
        self.state = NavState.SCROLLED
        self._on_activate(index)
        self.highlighter.pulse(target, self.adapter.highlight_border_radius)
        if self.adapter.reflowing_layout:
            self.timers.call_later(
                self.config.rescroll_delay_ms, self._rescroll, target, generation
            )
        self.timers.call_later(self.config.navigation_grace_ms, self._finish, generation)
        return True

    def _rescroll(self, target: Tag, generation: int) -> None:
        if not self._is_active() or generation != self._generation:
            return
        if self.document.is_connected(target):
            self.document.scroll_into_view(target, behavior="auto", block="start")

    def _finish(self, generation: int) -> None:
        if not self._is_active() or generation != self._generation:
            return
        self.state = NavState.IDLE
