from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from bs4 import Tag

from ..dom import LiveDocument
from ..pairing import ASSISTANT, USER, Turn

ROLE_ATTRIBUTES = ("data-message-author-role", "data-author-role", "data-role")
ROLE_ALIASES = {
    USER: frozenset({"user", "human", "me"}),
    ASSISTANT: frozenset({"assistant", "ai", "bot", "model"}),
}
ROLE_ATTRIBUTE_SELECTOR = ",".join(f"[{attr}]" for attr in ROLE_ATTRIBUTES)

DEFAULT_BORDER_RADIUS = "18px"


@runtime_checkable
class Adapter(Protocol):
    """Capabilities every platform dialect provides.

    Adapters may also define `get_text_from_node(node, role) -> str` to pull
    only the message payload out of a turn container; callers look it up
    with `getattr` and fall back to the node's full text.
    """

    platform: str
    name: str
    host_patterns: tuple[str, ...]
    highlight_border_radius: str
    reflowing_layout: bool

    def get_conversation_root(self, document: LiveDocument) -> Tag | None: ...

    def get_conversation_messages(self, document: LiveDocument, root: Tag | None) -> list[Turn]: ...

    def get_observe_target(self, document: LiveDocument) -> Tag | None: ...


def role_from_attributes(node: Tag) -> str | None:
    for attr in ROLE_ATTRIBUTES:
        value = node.get(attr)
        if not value or not isinstance(value, str):
            continue
        normalized = value.lower()
        if normalized in ROLE_ALIASES[USER]:
            return USER
        if normalized in ROLE_ALIASES[ASSISTANT]:
            return ASSISTANT
    return None


def collect_by_role_attributes(document: LiveDocument, root: Tag | None) -> list[Turn]:
    if root is None:
        return []
    turns: list[Turn] = []
    for node in document.select(ROLE_ATTRIBUTE_SELECTOR, root):
        role = role_from_attributes(node)
        if role:
            turns.append(Turn(node=node, role=role))
    return turns


def find_first(
    document: LiveDocument, selectors: Sequence[str], scope: Tag | None = None
) -> Tag | None:
    for selector in selectors:
        node = document.select_one(selector, scope)
        if node is not None:
            return node
    return None


def query_first_nonempty(
    document: LiveDocument, selectors: Sequence[str], scope: Tag | None = None
) -> list[Tag]:
    for selector in selectors:
        nodes = document.select(selector, scope)
        if nodes:
            return nodes
    return []


def sort_document_order(document: LiveDocument, turns: list[Turn]) -> list[Turn]:
    positions = document.position_index()
    # detached nodes go last, in their original order
    detached = len(positions)
    return sorted(turns, key=lambda turn: positions.get(id(turn.node), detached))


def collect_split_turns(
    document: LiveDocument,
    user_selectors: Sequence[str],
    assistant_selectors: Sequence[str],
) -> list[Turn]:
    """Merge separately queried user and assistant nodes into document order."""

    turns = [Turn(node=node, role=USER) for node in query_first_nonempty(document, user_selectors)]
    assistant_nodes = query_first_nonempty(document, assistant_selectors)
    turns.extend(Turn(node=node, role=ASSISTANT) for node in assistant_nodes)
    return sort_document_order(document, turns)
