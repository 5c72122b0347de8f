"""Normalised inbound events.

Provider payloads are converted into one of three payload shapes at ingress;
nothing past the parser ever looks at raw WhatsApp JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class EventKind(str, Enum):
    TEXT = "text"
    INTERACTIVE = "interactive"
    LOCATION = "location"


@dataclass(frozen=True)
class TextMessage:
    body: str

    kind = EventKind.TEXT


@dataclass(frozen=True)
class InteractiveReply:
    reply_id: str
    title: str = ""

    kind = EventKind.INTERACTIVE


@dataclass(frozen=True)
class LocationPin:
    latitude: float
    longitude: float

    kind = EventKind.LOCATION


EventPayload = Union[TextMessage, InteractiveReply, LocationPin]


@dataclass(frozen=True)
class InboundEvent:
    customer_id: str
    payload: EventPayload
    message_id: Optional[str] = None

    @property
    def kind(self) -> EventKind:
        return self.payload.kind
