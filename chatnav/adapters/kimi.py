from __future__ import annotations

from bs4 import Tag

from ..dom import LiveDocument
from ..pairing import Turn
from .base import DEFAULT_BORDER_RADIUS, collect_split_turns, find_first

PLATFORM = "kimi"

ROOT_SELECTORS = (".chat-content", '[class*="chat-container"]', "main")

USER_SELECTORS = (
    ".chat-content-item.chat-content-item-user",
    '[class*="user-message"]',
    '[class*="human-message"]',
)

ASSISTANT_SELECTORS = (
    ".chat-content-item.chat-content-item-assistant",
    '[class*="assistant-message"]',
    '[class*="ai-message"]',
)


class KimiAdapter:
    """Messages are siblings; replies keep loading after a jump, so re-scroll once."""

    platform = PLATFORM
    name = "kimi"
    host_patterns = ("kimi.moonshot.cn", "kimi.com")
    highlight_border_radius = DEFAULT_BORDER_RADIUS
    reflowing_layout = True

    def get_conversation_root(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body

    def get_conversation_messages(self, document: LiveDocument, root: Tag | None) -> list[Turn]:
        if root is None:
            return []
        return collect_split_turns(document, USER_SELECTORS, ASSISTANT_SELECTORS)

    def get_observe_target(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body
