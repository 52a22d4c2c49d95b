from __future__ import annotations

from bs4 import Tag

from ..dom import LiveDocument
from ..pairing import Turn
from .base import DEFAULT_BORDER_RADIUS, collect_by_role_attributes

PLATFORM = "chatgpt"


class ChatGPTAdapter:
    """Turns carry a role attribute and come back from one ordered query."""

    platform = PLATFORM
    name = "chatgpt"
    host_patterns = ("chatgpt.com", "chat.openai.com")
    highlight_border_radius = DEFAULT_BORDER_RADIUS
    reflowing_layout = False

    def get_conversation_root(self, document: LiveDocument) -> Tag | None:
        return document.select_one("main") or document.body

    def get_conversation_messages(self, document: LiveDocument, root: Tag | None) -> list[Turn]:
        return collect_by_role_attributes(document, root)

    def get_observe_target(self, document: LiveDocument) -> Tag | None:
        return document.select_one("main") or document.body
