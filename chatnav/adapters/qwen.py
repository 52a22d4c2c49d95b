from __future__ import annotations

from bs4 import Tag

from ..dom import LiveDocument
from ..pairing import Turn
from .base import DEFAULT_BORDER_RADIUS, collect_split_turns, find_first

PLATFORM = "qwen"

ROOT_SELECTORS = ('[class*="chat-container"]', '[class*="conversation"]', "main")

USER_SELECTORS = (
    'div[class*="questionItem-"][data-msgid]',
    '[class*="user-message"]',
    '[class*="question"]',
)

ASSISTANT_SELECTORS = (
    'div[class*="answerItem-"][data-msgid]',
    '[class*="assistant-message"]',
    '[class*="answer"]',
)

# Message containers also hold the model name, a timestamp and action
# buttons; these point at the text body only.
TEXT_SELECTORS = (
    'div[class*="answerContent-"]',
    'div[class*="questionContent-"]',
    'div[class*="bubble-"]',
    ".markdown-body",
)


class QwenAdapter:
    platform = PLATFORM
    name = "qwen"
    host_patterns = ("tongyi.aliyun.com", "qianwen.com")
    highlight_border_radius = DEFAULT_BORDER_RADIUS
    reflowing_layout = False

    def get_text_from_node(self, node: Tag, role: str) -> str:
        for selector in TEXT_SELECTORS:
            for candidate in node.select(selector, limit=1):
                text = candidate.get_text().strip()
                if text:
                    return text
        return node.get_text()

    def get_conversation_root(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body

    def get_conversation_messages(self, document: LiveDocument, root: Tag | None) -> list[Turn]:
        if root is None:
            return []
        return collect_split_turns(document, USER_SELECTORS, ASSISTANT_SELECTORS)

    def get_observe_target(self, document: LiveDocument) -> Tag | None:
        return find_first(document, ROOT_SELECTORS) or document.body
