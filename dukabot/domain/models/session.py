# dukabot/domain/models/session.py
"""
Per-customer conversation state.

A ``Session`` is created lazily on the first event from a customer and is
only ever mutated by the flow engine.  It serialises to a plain JSON dict so
any keyed store can hold it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

SESSION_VERSION = 1


class Language(str, Enum):
    SW = "sw"
    EN = "en"

    def other(self) -> "Language":
        return Language.EN if self is Language.SW else Language.SW


class FlowStep(str, Enum):
    IDLE = "IDLE"
    ASK_QUANTITY = "ASK_QUANTITY"
    ASK_DELIVERY_AREA = "ASK_DELIVERY_AREA"
    ASK_DELIVERY_MODE = "ASK_DELIVERY_MODE"
    # Inside the service area, delivery branch
    ASK_NAME_INSIDE = "ASK_NAME_INSIDE"
    ASK_PHONE_INSIDE = "ASK_PHONE_INSIDE"
    ASK_DISTRICT = "ASK_DISTRICT"
    ASK_WARD = "ASK_WARD"
    ASK_STREET = "ASK_STREET"
    ASK_GPS = "ASK_GPS"
    # Outside the service area
    ASK_NAME_OUTSIDE = "ASK_NAME_OUTSIDE"
    ASK_PHONE_OUTSIDE = "ASK_PHONE_OUTSIDE"
    ASK_REGION_OUTSIDE = "ASK_REGION_OUTSIDE"
    # Post checkout
    WAIT_PROOF = "WAIT_PROOF"
    TRACK_BY_NAME = "TRACK_BY_NAME"


@dataclass
class CartItem:
    sku: str
    name: str
    qty: int
    unit_price: int

    def __post_init__(self):
        if self.qty <= 0:
            raise ValueError(f"qty must be positive, got {self.qty}")
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be non-negative, got {self.unit_price}")

    @property
    def line_total(self) -> int:
        return self.qty * self.unit_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "qty": self.qty,
            "unit_price": self.unit_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        return cls(
            sku=str(data["sku"]),
            name=str(data.get("name", "")),
            qty=int(data["qty"]),
            unit_price=int(data["unit_price"]),
        )


@dataclass
class Contact:
    name: Optional[str] = None
    phone: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None
    ward: Optional[str] = None
    street: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "region": self.region,
            "district": self.district,
            "ward": self.ward,
            "street": self.street,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Contact":
        data = data or {}
        return cls(**{k: data.get(k) for k in ("name", "phone", "region", "district", "ward", "street")})


@dataclass
class Session:
    customer_id: str
    language: Language = Language.SW
    flow_step: FlowStep = FlowStep.IDLE
    cart: List[CartItem] = field(default_factory=list)
    pending_item: Optional[CartItem] = None
    qty_sku: Optional[str] = None  # product waiting for a typed quantity
    contact: Contact = field(default_factory=Contact)
    street_page: int = 0
    checkout_total: Optional[int] = None
    agent_mode: bool = False
    version: int = SESSION_VERSION

    def checkout_items(self) -> List[CartItem]:
        """Items the current checkout operates on: the pending item alone, else the cart."""
        if self.pending_item is not None:
            return [self.pending_item]
        return list(self.cart)

    def subtotal(self) -> int:
        return sum(item.line_total for item in self.checkout_items())

    def reset_flow(self) -> None:
        """Back to Idle, dropping whatever the abandoned steps had captured."""
        self.flow_step = FlowStep.IDLE
        self.contact = Contact()
        self.street_page = 0
        self.qty_sku = None

    def clear_checkout(self) -> None:
        """Forget everything tied to the finished (or abandoned) checkout."""
        self.reset_flow()
        self.cart = []
        self.pending_item = None
        self.checkout_total = None

    def copy(self) -> "Session":
        return Session.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "customer_id": self.customer_id,
            "language": self.language.value,
            "flow_step": self.flow_step.value,
            "cart": [item.to_dict() for item in self.cart],
            "pending_item": self.pending_item.to_dict() if self.pending_item else None,
            "qty_sku": self.qty_sku,
            "contact": self.contact.to_dict(),
            "street_page": self.street_page,
            "checkout_total": self.checkout_total,
            "agent_mode": self.agent_mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        pending = data.get("pending_item")
        return cls(
            customer_id=str(data["customer_id"]),
            language=Language(data.get("language", Language.SW.value)),
            flow_step=FlowStep(data.get("flow_step", FlowStep.IDLE.value)),
            cart=[CartItem.from_dict(item) for item in data.get("cart") or []],
            pending_item=CartItem.from_dict(pending) if pending else None,
            qty_sku=data.get("qty_sku"),
            contact=Contact.from_dict(data.get("contact")),
            street_page=max(0, int(data.get("street_page") or 0)),
            checkout_total=data.get("checkout_total"),
            agent_mode=bool(data.get("agent_mode", False)),
            version=int(data.get("version", SESSION_VERSION)),
        )
