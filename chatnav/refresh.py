from __future__ import annotations

import logging
from collections.abc import Callable

from bs4 import Tag

from .adapters import Adapter
from .config import NavigatorConfig
from .dom import LiveDocument, MutationRecord, MutationSubscription
from .extraction import extract_units
from .pairing import Signature, Unit
from .timers import Debouncer, TimerQueue

logger = logging.getLogger(__name__)

RebuildCallback = Callable[[list[Unit], list[Unit]], None]


class RefreshScheduler:
    """Debounced re-extraction with signature-based change detection.

    Mutations under the conversation root restart a quiet-period countdown.
    When it expires the units are re-extracted; `on_rebuild(previous, units)`
    runs only when the signature differs from the last committed one.
    """

    def __init__(
        self,
        document: LiveDocument,
        adapter: Adapter,
        timers: TimerQueue,
        config: NavigatorConfig,
        *,
        on_rebuild: RebuildCallback,
        is_active: Callable[[], bool] = lambda: True,
    ) -> None:
        self.document = document
        self.adapter = adapter
        self.config = config
        self.units: list[Unit] = []
        self.signature: Signature | None = None
        self.root: Tag | None = None
        self.passes = 0
        self.rebuilds = 0
        self._on_rebuild = on_rebuild
        self._is_active = is_active
        self._subscription: MutationSubscription | None = None
        self._body_subscription: MutationSubscription | None = None
        self._debouncer = Debouncer(timers, config.debounce_ms, self._on_quiet)

    def start(self) -> bool:
        # Direct children of <body> being swapped out would take the old
        # root (and its subscription) with them.
        self._body_subscription = self.document.observe(
            self.document.body,
            self.note_mutation,
            character_data=False,
            subtree=False,
        )
        return self.refresh_now()

    def stop(self) -> None:
        self._debouncer.cancel()
        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None
        if self._body_subscription is not None:
            self._body_subscription.disconnect()
            self._body_subscription = None
        self.root = None

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def note_mutation(self, record: MutationRecord | None = None) -> None:
        if not self._is_active():
            return
        self._debouncer.note_activity()

    def extract(self) -> list[Unit]:
        """Run one extraction pass without committing its result."""

        extraction = extract_units(self.adapter, self.document, self.config)
        self._track_root(extraction.root)
        return extraction.units

    def refresh_now(self) -> bool:
        if not self._is_active():
            return False
        self._debouncer.cancel()
        units = self.extract()
        self.passes += 1
        signature = Signature.from_units(units)
        if signature == self.signature:
            return False
        self.signature = signature
        previous = self.units
        self.units = units
        self.rebuilds += 1
        logger.debug("units rebuilt: %d", len(units))
        self._on_rebuild(previous, units)
        return True

    def _on_quiet(self) -> None:
        self.refresh_now()

    def _track_root(self, root: Tag | None) -> None:
        if root is self.root:
            return
        self.root = root
        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None
        if root is None:
            return
        logger.debug("observing conversation root <%s>", root.name)
        self._subscription = self.document.observe(root, self.note_mutation)
