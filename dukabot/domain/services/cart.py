from __future__ import annotations

from typing import Iterable, List

from dukabot.domain.models.session import CartItem


def add_to_cart(cart: List[CartItem], item: CartItem) -> List[CartItem]:
    """Append ``item``, merging into an existing line with the same sku and unit price."""
    for line in cart:
        if line.sku == item.sku and line.unit_price == item.unit_price:
            line.qty += item.qty
            return cart
    cart.append(CartItem(sku=item.sku, name=item.name, qty=item.qty, unit_price=item.unit_price))
    return cart


def cart_total(items: Iterable[CartItem]) -> int:
    return sum(item.line_total for item in items)
