from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from dukabot.domain.models.quote import DeliveryQuote
from dukabot.domain.models.session import CartItem, Contact


@dataclass(frozen=True)
class OrderPlaced:
    """Emitted by the flow engine when a checkout reaches its quote."""

    customer_id: str
    delivery_mode: str  # "delivery" | "outside"
    items: Tuple[CartItem, ...]
    subtotal: int
    fee: int
    total: int
    contact: Contact
    quote: Optional[DeliveryQuote] = None


@dataclass(frozen=True)
class OrderSummary:
    order_id: int
    status: str
    total: int
    customer_name: str = ""
    created_at: Optional[datetime] = None
    items: Tuple[Tuple[str, int], ...] = ()  # (name, qty); only filled for a customer's own order

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


class OrderBook(Protocol):
    async def place_order(self, order: OrderPlaced) -> Optional[int]: ...

    async def find_by_id(self, order_id: int) -> Optional[OrderSummary]: ...

    async def find_latest_by_name(self, name: str) -> Optional[OrderSummary]: ...

    async def list_for_customer(self, customer_id: str, limit: int = 10) -> List[OrderSummary]: ...

    async def find_for_customer(self, order_id: int, customer_id: str) -> Optional[OrderSummary]: ...

    async def cancel_order(self, order_id: int, customer_id: str) -> bool:
        """Cancel a pending order the customer owns; False when it is not (or no longer) pending."""
        ...
