from __future__ import annotations

from bs4 import Tag

from ..dom import LiveDocument
from ..pairing import Turn
from .base import DEFAULT_BORDER_RADIUS, collect_split_turns, find_first

PLATFORM = "doubao"

ROOT_SELECTORS = (".chat-container", '[class*="chat-container"]', "main")

USER_SELECTORS = (
    'div[data-testid="send_message"]',
    ".user-message",
    '[class*="user-message"]',
    '[class*="user"][class*="message"]',
    '[class*="send"][class*="message"]',
    '[class*="question"]',
)

ASSISTANT_SELECTORS = (
    'div[data-testid="receive_message"]',
    ".bot-message",
    '[class*="bot-message"]',
    '[class*="receive"][class*="message"]',
    '[class*="answer"]',
)


class DoubaoAdapter:
    platform = PLATFORM
    name = "doubao"
    host_patterns = ("doubao.com",)
    highlight_border_radius = DEFAULT_BORDER_RADIUS
    reflowing_layout = False

    def get_conversation_root(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body

    def get_conversation_messages(self, document: LiveDocument, root: Tag | None) -> list[Turn]:
        if root is None:
            return []
        return collect_split_turns(document, USER_SELECTORS, ASSISTANT_SELECTORS)

    def get_observe_target(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body
