from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import Tag

from .adapters import Adapter
from .config import NavigatorConfig
from .dom import LiveDocument
from .pairing import TextExtractor, Unit, build_units


@dataclass(eq=False)
class Extraction:
    root: Tag | None
    units: list[Unit] = field(default_factory=list)


def text_extractor(adapter: Adapter, document: LiveDocument) -> TextExtractor:
    custom = getattr(adapter, "get_text_from_node", None)
    if callable(custom):
        return lambda node, role: custom(node, role) or ""
    return lambda node, role: document.text_content(node)


def conversation_root(adapter: Adapter, document: LiveDocument) -> Tag | None:
    return (
        adapter.get_conversation_root(document)
        or adapter.get_observe_target(document)
        or document.body
    )


def extract_units(adapter: Adapter, document: LiveDocument, config: NavigatorConfig) -> Extraction:
    root = conversation_root(adapter, document)
    if root is None:
        return Extraction(root=None)
    turns = adapter.get_conversation_messages(document, root)
    units = build_units(
        turns,
        text_extractor(adapter, document),
        title_max_length=config.title_max_length,
        preview_max_length=config.preview_max_length,
    )
    return Extraction(root=root, units=units)
