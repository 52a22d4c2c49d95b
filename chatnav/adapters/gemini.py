from __future__ import annotations

from collections.abc import Sequence

from bs4 import Tag

from ..dom import LiveDocument
from ..pairing import ASSISTANT, USER, Turn
from .base import (
    DEFAULT_BORDER_RADIUS,
    collect_by_role_attributes,
    find_first,
    role_from_attributes,
)

PLATFORM = "gemini"

ROOT_SELECTORS = ("chat-window", "main", "body")
TURN_SELECTORS = (".conversation-container",)
USER_SELECTORS = ("user-query .query-text", "user-query")
ASSISTANT_SELECTORS = ("model-response message-content", "model-response")


def _matches_any(document: LiveDocument, node: Tag, selectors: Sequence[str]) -> bool:
    return any(document.matches(node, selector) for selector in selectors)


def _role_for(document: LiveDocument, node: Tag) -> str | None:
    if _matches_any(document, node, USER_SELECTORS):
        return USER
    if _matches_any(document, node, ASSISTANT_SELECTORS):
        return ASSISTANT
    return role_from_attributes(node)


def _collect_turn_containers(document: LiveDocument, containers: list[Tag]) -> list[Turn]:
    turns: list[Turn] = []
    for container in containers:
        user_node = find_first(document, USER_SELECTORS, container)
        if user_node is not None:
            turns.append(Turn(node=user_node, role=USER))
        assistant_node = find_first(document, ASSISTANT_SELECTORS, container)
        if assistant_node is not None:
            turns.append(Turn(node=assistant_node, role=ASSISTANT))
    return turns


def _collect_custom_elements(document: LiveDocument, root: Tag) -> list[Turn]:
    selector = ",".join(USER_SELECTORS + ASSISTANT_SELECTORS)
    turns: list[Turn] = []
    seen: set[int] = set()
    for node in document.select(selector, root):
        # the selector list matches both a custom element and its payload child
        if any(id(parent) in seen for parent in node.parents):
            continue
        role = _role_for(document, node)
        if role:
            seen.add(id(node))
            turns.append(Turn(node=node, role=role))
    return turns


class GeminiAdapter:
    """Custom elements grouped in turn containers.

    Strategies, first non-empty wins: turn containers, then a combined
    custom-element query, then the generic role attributes.
    """

    platform = PLATFORM
    name = "gemini"
    host_patterns = ("gemini.google.com",)
    highlight_border_radius = DEFAULT_BORDER_RADIUS
    reflowing_layout = False

    def get_conversation_root(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body

    def get_conversation_messages(self, document: LiveDocument, root: Tag | None) -> list[Turn]:
        if root is None:
            return []
        containers = document.select(",".join(TURN_SELECTORS), root)
        if containers:
            return _collect_turn_containers(document, containers)
        by_element = _collect_custom_elements(document, root)
        if by_element:
            return by_element
        return collect_by_role_attributes(document, root)

    def get_observe_target(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body
