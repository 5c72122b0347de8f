"""Logical outbound replies, before channel limits are applied."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class TextReply:
    body: str


@dataclass(frozen=True)
class Button:
    id: str
    title: str


@dataclass(frozen=True)
class ButtonReply:
    body: str
    buttons: Tuple[Button, ...]


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str = ""


@dataclass(frozen=True)
class ListSection:
    title: str
    rows: Tuple[ListRow, ...]


@dataclass(frozen=True)
class ListReply:
    body: str
    button_label: str
    sections: Tuple[ListSection, ...]
    header: str = ""
    footer: str = ""


OutboundReply = Union[TextReply, ButtonReply, ListReply]


def reply_preview(reply: OutboundReply) -> str:
    """Plain-text rendering of a reply, for the message log."""
    if isinstance(reply, TextReply):
        return reply.body
    if isinstance(reply, ButtonReply):
        labels = " | ".join(b.title for b in reply.buttons)
        return f"{reply.body}\n[{labels}]" if labels else reply.body
    rows = [row.title for section in reply.sections for row in section.rows]
    head = f"{reply.header}\n" if reply.header else ""
    return f"{head}{reply.body}\n" + "\n".join(f"- {r}" for r in rows)
