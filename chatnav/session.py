from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .adapters import DEFAULT_REGISTRY, Adapter, AdapterRegistry
from .config import NavigatorConfig, load_config
from .dom import LiveDocument, MutationRecord, MutationSubscription
from .navigation import Highlighter, IntersectionEntry, NavigationController, ViewportTracker
from .pairing import Unit
from .presentation import Presenter
from .refresh import RefreshScheduler
from .settings import Settings, SettingsStore, normalize_partial
from .theme import BODY_THEME_ATTRIBUTES, ROOT_THEME_ATTRIBUTES, is_dark_mode
from .timers import TimerQueue

logger = logging.getLogger(__name__)

ACTION_TOGGLE_SIDEBAR = "toggleSidebar"
ACTION_UPDATE_SETTINGS = "updateSettings"


class NavigatorSession:
    """Everything one page session owns, from `init()` to `teardown()`.

    A session picks its adapter once, from the document URL. A page that
    navigates elsewhere goes through `reinit()`, which tears the old state
    down completely before building the new one.
    """

    def __init__(
        self,
        document: LiveDocument,
        presenter: Presenter,
        *,
        registry: AdapterRegistry | None = None,
        config: NavigatorConfig | None = None,
        settings_store: SettingsStore | None = None,
        timers: TimerQueue | None = None,
    ) -> None:
        self.document = document
        self.presenter = presenter
        self.registry = registry or DEFAULT_REGISTRY
        self.config = config or load_config()
        self.settings_store = settings_store or SettingsStore()
        self.timers = timers or TimerQueue.monotonic()
        self.adapter: Adapter | None = None
        self.settings = Settings()
        self.visible = True
        self.active_index = -1
        self.scheduler: RefreshScheduler | None = None
        self.tracker: ViewportTracker | None = None
        self.navigation: NavigationController | None = None
        self.highlighter: Highlighter | None = None
        self._theme_subscriptions: list[MutationSubscription] = []
        self._location_subscription: MutationSubscription | None = None
        self._last_url = document.url
        self._active = False
        # bumped on teardown; timers from an earlier init see a stale epoch
        self._epoch = 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def units(self) -> list[Unit]:
        if self.scheduler is None:
            return []
        return self.scheduler.units

    # Lifecycle

    def init(self) -> bool:
        if self._active:
            return True
        adapter = self.registry.get_adapter(self.document.url)
        if adapter is None:
            logger.info("platform not supported: %s", self.document.url)
            return False
        logger.info("detected platform: %s", adapter.name)
        self.adapter = adapter
        self.settings = self.settings_store.load()
        self.visible = self.settings_store.load_sidebar_visible(self.visible)
        self.active_index = -1

        self.presenter.set_show_preview(self.settings.show_preview)
        self.presenter.update_position(self.settings.sidebar_position)
        self.presenter.update_theme(is_dark_mode(self.document))
        self.presenter.set_visible(self.visible and self.settings.enabled)
        if not self.settings.enabled:
            logger.info("navigator disabled, list hidden")

        self._active = True
        epoch = self._epoch

        def is_active() -> bool:
            return self._active and self._epoch == epoch

        self.highlighter = Highlighter(self.document, self.timers, self.config, is_active=is_active)
        self.tracker = ViewportTracker(
            self.config,
            viewport_height=lambda: self.document.viewport.height,
            units=lambda: self.units,
            active_index=lambda: self.active_index,
            on_change=self._set_active_index,
            is_suppressed=self._navigation_in_progress,
        )
        self.scheduler = RefreshScheduler(
            self.document,
            adapter,
            self.timers,
            self.config,
            on_rebuild=self._on_rebuild,
            is_active=is_active,
        )
        self.navigation = NavigationController(
            self.document,
            adapter,
            self.timers,
            self.config,
            units=lambda: self.units,
            reextract=self.scheduler.extract,
            highlighter=self.highlighter,
            on_activate=self._set_active_index,
            is_active=is_active,
        )
        self.presenter.bind_selection(self.navigate)
        self._start_theme_observer()
        self.scheduler.start()
        logger.info("navigator initialized with %d units", len(self.units))
        return True

    def teardown(self) -> None:
        if not self._active:
            return
        self._active = False
        self._epoch += 1
        if self.scheduler is not None:
            self.scheduler.stop()
        if self.tracker is not None:
            self.tracker.disconnect()
        for subscription in self._theme_subscriptions:
            subscription.disconnect()
        self._theme_subscriptions = []
        if self.highlighter is not None:
            self.highlighter.restore_all()
        self.presenter.bind_selection(None)
        self.presenter.set_visible(False)
        self.scheduler = None
        self.tracker = None
        self.navigation = None
        self.highlighter = None
        self.adapter = None
        self.active_index = -1

    def reinit(self) -> bool:
        self.teardown()
        return self.init()

    def follow_location(self) -> None:
        """Re-initialize whenever the document URL changes.

        The location subscription outlives `teardown()`, so a page that
        leaves a supported platform and comes back is picked up again.
        """

        if self._location_subscription is not None:
            return
        self._last_url = self.document.url
        self._location_subscription = self.document.observe(
            self.document.root,
            self._on_location_change,
            child_list=False,
            character_data=False,
            subtree=False,
            location=True,
        )

    def close(self) -> None:
        self.teardown()
        if self._location_subscription is not None:
            self._location_subscription.disconnect()
            self._location_subscription = None

    # Events

    def refresh(self) -> bool:
        if not self._active or self.scheduler is None:
            return False
        return self.scheduler.refresh_now()

    def navigate(self, index: int) -> bool:
        if not self._active or self.navigation is None:
            return False
        return self.navigation.navigate(index)

    def handle_entries(self, entries: Sequence[IntersectionEntry]) -> int | None:
        if not self._active or self.tracker is None:
            return None
        return self.tracker.handle_entries(entries)

    def handle_key(self, key: str, index: int) -> bool:
        if not self._active:
            return False
        if key in {"Enter", " "}:
            self.navigate(index)
            return True
        if key == "ArrowDown":
            self._focus(index + 1)
            return True
        if key == "ArrowUp":
            self._focus(index - 1)
            return True
        if key == "Home":
            self._focus(0)
            return True
        if key == "End":
            self._focus(len(self.units) - 1)
            return True
        return False

    def handle_message(self, message: dict[str, Any]) -> dict[str, bool]:
        action = message.get("action") if isinstance(message, dict) else None
        if not self._active:
            return {"success": False}
        try:
            if action == ACTION_TOGGLE_SIDEBAR:
                self.toggle_sidebar()
                return {"success": True}
            if action == ACTION_UPDATE_SETTINGS:
                settings = message.get("settings")
                self.update_settings(settings if isinstance(settings, dict) else {})
                return {"success": True}
        except Exception as exc:
            logger.warning("control message failed: %s", action, exc_info=exc)
            return {"success": False}
        logger.debug("unknown control action: %r", action)
        return {"success": False}

    def toggle_sidebar(self) -> bool:
        self.visible = not self.visible
        self.presenter.set_visible(self.visible and self.settings.enabled)
        self.settings_store.save_sidebar_visible(self.visible)
        return self.visible

    def update_settings(self, partial: dict[str, Any]) -> Settings:
        changes = normalize_partial(partial)
        self.settings = self.settings.merged(changes)
        if "sidebar_position" in changes:
            self.presenter.update_position(self.settings.sidebar_position)
        if "show_preview" in changes:
            self.presenter.set_show_preview(self.settings.show_preview)
            self.presenter.render_list(self.units, self.active_index)
        if "enabled" in changes:
            self.presenter.set_visible(self.visible and self.settings.enabled)
        return self.settings

    # Internals

    def _navigation_in_progress(self) -> bool:
        return self.navigation is not None and self.navigation.in_progress

    def _set_active_index(self, index: int) -> None:
        self.active_index = index
        self.presenter.update_active_item(index)

    def _focus(self, index: int) -> None:
        if 0 <= index < len(self.units):
            self.presenter.focus_item(index)

    def _on_rebuild(self, previous: list[Unit], units: list[Unit]) -> None:
        tracker = self.tracker
        if tracker is not None:
            for unit in previous:
                tracker.unobserve(unit.anchor_node)
        self.presenter.render_list(units, self.active_index)
        self.presenter.bind_selection(self.navigate)
        if tracker is not None:
            for unit in units:
                if self.document.is_connected(unit.anchor_node):
                    tracker.observe(unit.anchor_node)

    def _start_theme_observer(self) -> None:
        document = self.document
        if document.soup.html is not None:
            self._theme_subscriptions.append(
                document.observe(
                    document.soup.html,
                    self._on_theme_mutation,
                    child_list=False,
                    character_data=False,
                    attributes=True,
                    subtree=False,
                    attribute_filter=ROOT_THEME_ATTRIBUTES,
                )
            )
        if document.soup.body is not None:
            self._theme_subscriptions.append(
                document.observe(
                    document.soup.body,
                    self._on_theme_mutation,
                    child_list=False,
                    character_data=False,
                    attributes=True,
                    subtree=False,
                    attribute_filter=BODY_THEME_ATTRIBUTES,
                )
            )

    def _on_location_change(self, record: MutationRecord) -> None:
        url = self.document.url
        if url == self._last_url:
            return
        self._last_url = url
        logger.info("page url changed: %s", url)
        self.reinit()

    def _on_theme_mutation(self, record: MutationRecord) -> None:
        if self._active:
            self.presenter.update_theme(is_dark_mode(self.document))
