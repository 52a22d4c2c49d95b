from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import soupsieve
from bs4 import BeautifulSoup, NavigableString, Tag

logger = logging.getLogger(__name__)

CHILD_LIST = "childList"
CHARACTER_DATA = "characterData"
ATTRIBUTES = "attributes"
LOCATION = "location"

PARSER = "html.parser"


@dataclass(frozen=True, slots=True, eq=False)
class MutationRecord:
    kind: str
    target: Tag
    attribute_name: str | None = None


MutationCallback = Callable[[MutationRecord], None]


@dataclass(eq=False)
class MutationSubscription:
    """A subtree subscription created by `LiveDocument.observe`."""

    document: LiveDocument
    target: Tag
    callback: MutationCallback
    child_list: bool = True
    character_data: bool = True
    attributes: bool = False
    subtree: bool = True
    attribute_filter: frozenset[str] | None = None
    location: bool = False
    connected: bool = True

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        self.document._forget(self)

    def accepts(self, record: MutationRecord) -> bool:
        if not self.connected:
            return False
        if record.kind == ATTRIBUTES:
            if not self.attributes:
                return False
            attribute_filter = self.attribute_filter
            if attribute_filter is not None and record.attribute_name not in attribute_filter:
                return False
        elif record.kind == CHILD_LIST and not self.child_list:
            return False
        elif record.kind == CHARACTER_DATA and not self.character_data:
            return False
        elif record.kind == LOCATION and not self.location:
            return False
        if record.target is self.target:
            return True
        return self.subtree and _is_ancestor(self.target, record.target)


@dataclass(frozen=True, slots=True, eq=False)
class ScrollRequest:
    node: Tag
    behavior: str
    block: str


class Viewport(Protocol):
    height: float

    def scroll_into_view(self, node: Tag, *, behavior: str, block: str) -> None: ...


@dataclass
class RecordingViewport:
    """Viewport that remembers every scroll request it receives."""

    height: float = 800.0
    requests: list[ScrollRequest] = field(default_factory=list)

    def scroll_into_view(self, node: Tag, *, behavior: str, block: str) -> None:
        self.requests.append(ScrollRequest(node=node, behavior=behavior, block=block))


def _is_ancestor(ancestor: Tag, node: Tag) -> bool:
    for parent in node.parents:
        if parent is ancestor:
            return True
    return False


def _child_index(parent: Tag, child: Tag) -> int:
    # list.index() compares tags structurally, identical siblings need identity
    for idx, candidate in enumerate(parent.contents):
        if candidate is child:
            return idx
    return -1


def _position_path(node: Tag) -> tuple[Tag, list[int]]:
    path: list[int] = []
    current = node
    while current.parent is not None:
        path.append(_child_index(current.parent, current))
        current = current.parent
    path.reverse()
    return current, path


def _parse_style(value: str | None) -> dict[str, str]:
    props: dict[str, str] = {}
    if not value:
        return props
    for declaration in value.split(";"):
        name, sep, prop_value = declaration.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        if name:
            props[name] = prop_value.strip()
    return props


def _format_style(props: dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in props.items())


class LiveDocument:
    """A mutable HTML tree with subtree mutation subscriptions.

    The host mutates the tree through the helper methods (`append_html`,
    `set_text`, `remove` and friends) so that subscribers hear about it, the
    same way a browser delivers mutation records to its observers.
    """

    def __init__(
        self,
        markup: str,
        url: str = "about:blank",
        *,
        viewport: Viewport | None = None,
    ) -> None:
        self.soup = BeautifulSoup(markup, PARSER)
        self.url = url
        self.viewport: Viewport = viewport or RecordingViewport()
        self._subscriptions: list[MutationSubscription] = []

    @classmethod
    def from_file(cls, path: Path, url: str, *, viewport: Viewport | None = None) -> LiveDocument:
        return cls(path.read_text(encoding="utf-8", errors="replace"), url, viewport=viewport)

    @property
    def root(self) -> Tag:
        return self.soup.html or self.soup

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    # Queries

    def select(self, selector: str, scope: Tag | None = None) -> list[Tag]:
        try:
            return list(soupsieve.select(selector, scope or self.soup))
        except soupsieve.SelectorSyntaxError as exc:
            logger.debug("selector rejected: %s", selector, exc_info=exc)
            return []

    def select_one(self, selector: str, scope: Tag | None = None) -> Tag | None:
        try:
            return soupsieve.select_one(selector, scope or self.soup)
        except soupsieve.SelectorSyntaxError as exc:
            logger.debug("selector rejected: %s", selector, exc_info=exc)
            return None

    def matches(self, node: Tag, selector: str) -> bool:
        try:
            return bool(soupsieve.match(selector, node))
        except soupsieve.SelectorSyntaxError as exc:
            logger.debug("selector rejected: %s", selector, exc_info=exc)
            return False

    def is_connected(self, node: Tag | None) -> bool:
        if node is None:
            return False
        if node is self.soup:
            return True
        return _is_ancestor(self.soup, node)

    def compare_position(self, a: Tag, b: Tag) -> int:
        """Return -1 when `a` precedes `b`, 1 when it follows, 0 otherwise."""

        if a is b:
            return 0
        top_a, path_a = _position_path(a)
        top_b, path_b = _position_path(b)
        if top_a is not top_b:
            return 0
        # an ancestor's path is a prefix of its descendant's and sorts first
        if path_a < path_b:
            return -1
        if path_a > path_b:
            return 1
        return 0

    def position_index(self) -> dict[int, int]:
        """Map `id()` of every attached tag to its preorder position."""

        return {id(tag): idx for idx, tag in enumerate(self.soup.find_all(True))}

    def text_content(self, node: Tag | None) -> str:
        if node is None:
            return ""
        return node.get_text()

    # Subscriptions

    def observe(
        self,
        target: Tag,
        callback: MutationCallback,
        *,
        child_list: bool = True,
        character_data: bool = True,
        attributes: bool = False,
        subtree: bool = True,
        attribute_filter: Iterable[str] | None = None,
        location: bool = False,
    ) -> MutationSubscription:
        subscription = MutationSubscription(
            document=self,
            target=target,
            callback=callback,
            child_list=child_list,
            character_data=character_data,
            attributes=attributes,
            subtree=subtree,
            attribute_filter=frozenset(attribute_filter) if attribute_filter is not None else None,
            location=location,
        )
        self._subscriptions.append(subscription)
        return subscription

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _forget(self, subscription: MutationSubscription) -> None:
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    def _notify(self, kind: str, target: Tag, attribute_name: str | None = None) -> None:
        record = MutationRecord(kind=kind, target=target, attribute_name=attribute_name)
        for subscription in list(self._subscriptions):
            if subscription.accepts(record):
                subscription.callback(record)

    # Mutations

    def append_html(self, parent: Tag, markup: str) -> list[Tag]:
        fragment = BeautifulSoup(markup, PARSER)
        added: list[Tag] = []
        for child in list(fragment.contents):
            parent.append(child.extract())
            if isinstance(child, Tag):
                added.append(child)
        self._notify(CHILD_LIST, parent)
        return added

    def replace_html(self, node: Tag, markup: str) -> list[Tag]:
        """Swap `node` for freshly parsed markup, detaching the old node."""

        parent = node.parent
        if parent is None:
            return []
        fragment = BeautifulSoup(markup, PARSER)
        added: list[Tag] = []
        anchor: Tag | NavigableString = node
        for child in list(fragment.contents):
            child = child.extract()
            anchor.insert_after(child)
            anchor = child
            if isinstance(child, Tag):
                added.append(child)
        node.extract()
        self._notify(CHILD_LIST, parent)
        return added

    def append_text(self, node: Tag, text: str) -> None:
        node.append(NavigableString(text))
        self._notify(CHARACTER_DATA, node)

    def set_text(self, node: Tag, text: str) -> None:
        node.string = text
        self._notify(CHARACTER_DATA, node)

    def remove(self, node: Tag) -> None:
        parent = node.parent
        if parent is None:
            return
        node.extract()
        self._notify(CHILD_LIST, parent)

    def set_attribute(self, node: Tag, name: str, value: str | None) -> None:
        if value is None:
            node.attrs.pop(name, None)
        else:
            node[name] = value
        self._notify(ATTRIBUTES, node, attribute_name=name)

    def navigate(self, url: str) -> None:
        """Record a same-document URL change, the way `history.pushState` does."""

        if url == self.url:
            return
        self.url = url
        self._notify(LOCATION, self.root)

    def set_body(self, markup: str) -> None:
        """Replace the body content (and root/body attributes) with new markup."""

        fresh = BeautifulSoup(markup, PARSER)
        if fresh.html is not None and self.soup.html is not None:
            for name in set(self.root.attrs) | set(fresh.html.attrs):
                if self.root.attrs.get(name) != fresh.html.attrs.get(name):
                    self.set_attribute(self.root, name, _attr_text(fresh.html.attrs.get(name)))
        body = self.body
        fresh_body = fresh.body or fresh
        if fresh.body is not None and self.soup.body is not None:
            for name in set(body.attrs) | set(fresh_body.attrs):
                if body.attrs.get(name) != fresh_body.attrs.get(name):
                    self.set_attribute(body, name, _attr_text(fresh_body.attrs.get(name)))
        body.clear()
        for child in list(fresh_body.contents):
            body.append(child.extract())
        self._notify(CHILD_LIST, body)

    # Inline style

    def style_attribute(self, node: Tag) -> str | None:
        value = node.attrs.get("style")
        return _attr_text(value)

    def restore_style_attribute(self, node: Tag, value: str | None) -> None:
        self.set_attribute(node, "style", value)

    def get_style_property(self, node: Tag, name: str) -> str:
        return _parse_style(self.style_attribute(node)).get(name.lower(), "")

    def set_style_property(self, node: Tag, name: str, value: str) -> None:
        props = _parse_style(self.style_attribute(node))
        if value:
            props[name.lower()] = value
        else:
            props.pop(name.lower(), None)
        self.set_attribute(node, "style", _format_style(props) if props else None)

    # Viewport

    def scroll_into_view(self, node: Tag, *, behavior: str, block: str = "start") -> None:
        self.viewport.scroll_into_view(node, behavior=behavior, block=block)


def _attr_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)
