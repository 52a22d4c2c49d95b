from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from bs4 import Tag

from .text import normalize_text, truncate

USER = "user"
ASSISTANT = "assistant"

TextExtractor = Callable[[Tag, str], str]


@dataclass(frozen=True, slots=True, eq=False)
class Turn:
    node: Tag
    role: str


@dataclass(frozen=True, slots=True, eq=False)
class Unit:
    anchor_node: Tag
    title: str
    preview: str
    raw_text: str
    reply_end_node: Tag | None = None


@dataclass(frozen=True, slots=True)
class Signature:
    unit_count: int
    last_raw_text: str
    last_preview: str

    @classmethod
    def from_units(cls, units: Sequence[Unit]) -> Signature:
        if not units:
            return cls(0, "", "")
        last = units[-1]
        return cls(len(units), last.raw_text, last.preview)

    def key(self) -> str:
        return f"{self.unit_count}:{self.last_raw_text}:{self.last_preview}"


def build_units(
    turns: Sequence[Turn],
    extract_text: TextExtractor,
    *,
    title_max_length: int,
    preview_max_length: int,
) -> list[Unit]:
    """Pair each user turn with the assistant turns that follow it.

    A user turn opens a window that runs until the next user turn or the end
    of the sequence. The first assistant turn with text in that window feeds
    the preview; the last assistant turn in it becomes `reply_end_node`, so a
    reply that is still streaming in extra nodes is tracked to its tail.
    Assistant turns before the first user turn belong to no unit.
    """

    units: list[Unit] = []
    for idx, turn in enumerate(turns):
        if turn.role != USER:
            continue

        raw_text = extract_text(turn.node, USER) or ""
        title = truncate(raw_text, title_max_length)
        if not title:
            if not raw_text:
                continue
            title = f"Prompt {len(units) + 1}"

        reply_text = ""
        reply_end: Tag | None = None
        for follower in turns[idx + 1 :]:
            if follower.role == USER:
                break
            if follower.role != ASSISTANT:
                continue
            if not reply_text:
                reply_text = normalize_text(extract_text(follower.node, ASSISTANT))
            reply_end = follower.node

        preview = truncate(reply_text, preview_max_length) if reply_text else ""
        units.append(
            Unit(
                anchor_node=turn.node,
                title=title,
                preview=preview,
                raw_text=raw_text,
                reply_end_node=reply_end,
            )
        )
    return units
