# dukabot/domain/services/message_composer.py
"""
Render logical replies into WhatsApp Cloud API message payloads.

WhatsApp rejects interactive messages that exceed its field limits, so every
string is clamped here.  Row titles get special care: a long title such as
``"Keko Modern Furniture — near Omax Bar"`` is split at its first separator
and the tail moves into the row description instead of being cut off.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from dukabot.domain.models.outbound import (
    ButtonReply,
    ListReply,
    ListRow,
    ListSection,
    OutboundReply,
    TextReply,
)

ROW_TITLE_MAX = 24
ROW_DESCRIPTION_MAX = 72
ROW_ID_MAX = 200
SECTION_TITLE_MAX = 24
SECTION_ROWS_MAX = 10
BUTTON_TITLE_MAX = 20
LIST_BUTTON_MAX = 20
BUTTONS_MAX = 3
LIST_BODY_MAX = 1024
BUTTON_BODY_MAX = 1000
TEXT_BODY_MAX = 4096
HEADER_MAX = 60
FOOTER_MAX = 60

TITLE_SEPARATORS = (" — ", " – ", " - ", "—", "–", "-")
DESCRIPTION_JOINER = " • "
EMPTY_SECTION_TITLE = "—"
EMPTY_BUTTON_TITLE = "•"


def clamp(text: Optional[str], limit: int) -> str:
    return (text or "")[:limit]


def normalize_recipient(to: str) -> str:
    """Keep digits only: ``"+255 712-345 678"`` → ``"255712345678"``."""
    return re.sub(r"\D", "", to or "")


def split_title(title: str, limit: int = ROW_TITLE_MAX) -> tuple[str, str]:
    """Split an over-long title at its first separator into ``(head, tail)``.

    Titles that already fit are returned untouched with an empty tail.
    """
    title = (title or "").strip()
    if len(title) <= limit:
        return title, ""
    for sep in TITLE_SEPARATORS:
        if sep in title:
            head, tail = title.split(sep, 1)
            head, tail = head.strip(), tail.strip()
            if head:
                return head, tail
    return title, ""


def clamp_row(row: ListRow) -> ListRow:
    head, tail = split_title(row.title)
    description = DESCRIPTION_JOINER.join(part for part in (tail, (row.description or "").strip()) if part)
    return ListRow(
        id=clamp(row.id, ROW_ID_MAX),
        title=clamp(head, ROW_TITLE_MAX),
        description=clamp(description, ROW_DESCRIPTION_MAX),
    )


def clamp_section(section: ListSection) -> ListSection:
    title = clamp((section.title or "").strip(), SECTION_TITLE_MAX) or EMPTY_SECTION_TITLE
    rows = tuple(clamp_row(row) for row in section.rows[:SECTION_ROWS_MAX])
    return ListSection(title=title, rows=rows)


def _text_payload(to: str, body: str) -> Dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": normalize_recipient(to),
        "type": "text",
        "text": {"preview_url": False, "body": clamp(body, TEXT_BODY_MAX)},
    }


def _interactive_payload(to: str, interactive: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": normalize_recipient(to),
        "type": "interactive",
        "interactive": interactive,
    }


def _compose_buttons(to: str, reply: ButtonReply) -> Dict[str, Any]:
    buttons = [
        {
            "type": "reply",
            "reply": {
                "id": clamp(b.id, ROW_ID_MAX),
                "title": clamp((b.title or "").strip(), BUTTON_TITLE_MAX) or EMPTY_BUTTON_TITLE,
            },
        }
        for b in reply.buttons[:BUTTONS_MAX]
    ]
    if not buttons:
        return _text_payload(to, reply.body)
    return _interactive_payload(
        to,
        {
            "type": "button",
            "body": {"text": clamp(reply.body, BUTTON_BODY_MAX)},
            "action": {"buttons": buttons},
        },
    )


def _compose_list(to: str, reply: ListReply) -> Dict[str, Any]:
    sections = [clamp_section(s) for s in reply.sections if s.rows]
    if not sections:
        return _text_payload(to, reply.body)

    interactive: Dict[str, Any] = {
        "type": "list",
        "body": {"text": clamp(reply.body, LIST_BODY_MAX)},
        "action": {
            "button": clamp((reply.button_label or "").strip(), LIST_BUTTON_MAX) or EMPTY_BUTTON_TITLE,
            "sections": [
                {
                    "title": section.title,
                    "rows": [
                        {"id": row.id, "title": row.title, **({"description": row.description} if row.description else {})}
                        for row in section.rows
                    ],
                }
                for section in sections
            ],
        },
    }
    if reply.header:
        interactive["header"] = {"type": "text", "text": clamp(reply.header, HEADER_MAX)}
    if reply.footer:
        interactive["footer"] = {"text": clamp(reply.footer, FOOTER_MAX)}
    return _interactive_payload(to, interactive)


def compose(to: str, reply: OutboundReply) -> Dict[str, Any]:
    """Build the Graph API ``/messages`` body for one reply."""
    if isinstance(reply, TextReply):
        return _text_payload(to, reply.body)
    if isinstance(reply, ButtonReply):
        return _compose_buttons(to, reply)
    if isinstance(reply, ListReply):
        return _compose_list(to, reply)
    raise TypeError(f"Unsupported reply type: {type(reply).__name__}")
