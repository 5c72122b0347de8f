# dukabot/domain/services/catalog.py
"""
Product catalog shown in the WhatsApp menu.

The bundled catalog can be replaced by a JSON file (``CATALOG_PATH``) holding
a list of ``{"sku", "name", "price", "details": {"sw", "en"}, "children": [...]}``
with an optional ``"stock_qty"``; products without it are always orderable.
Product management itself lives in the admin dashboard, not here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

logger = logging.getLogger("catalog")


@dataclass(frozen=True)
class Product:
    sku: str
    name: str
    price: int
    details: dict = field(default_factory=dict, compare=False)
    children: tuple["Product", ...] = ()
    stock_qty: Optional[int] = None  # None: stock is not tracked

    @property
    def has_variants(self) -> bool:
        return bool(self.children)

    @property
    def in_stock(self) -> bool:
        return self.stock_qty is None or self.stock_qty > 0

    def details_for(self, lang: str) -> str:
        lang = getattr(lang, "value", lang)
        return self.details.get(lang) or self.details.get("sw") or ""


DEFAULT_PRODUCTS = (
    Product(
        sku="KIBOKO",
        name="Ujani Kiboko",
        price=140_000,
        details={
            "sw": "• *Ujani Kiboko* ni dawa ya asili ya kupaka.\n• Matumizi ni ya siku 21.\n• Tumia kama ilivyoelekezwa kwenye kifungashio.",
            "en": "• *Ujani Kiboko* is a topical herbal remedy.\n• One course lasts 21 days.\n• Follow the instructions on the bottle.",
        },
    ),
    Product(
        sku="FURAHA",
        name="Furaha ya Ndoa",
        price=110_000,
        details={
            "sw": "• *Furaha ya Ndoa* ni dawa ya asili ya kunywa.\n• Dozi: vijiko 2 asubuhi, mchana na jioni.",
            "en": "• *Furaha ya Ndoa* is an oral herbal remedy.\n• Dosage: 2 teaspoons morning, noon and evening.",
        },
    ),
    Product(
        sku="PROMAX",
        name="Ujani Pro Max",
        price=350_000,
        details={
            "sw": "• *Ujani Pro Max* huja kwa vifurushi vitatu: A, B na C.",
            "en": "• *Ujani Pro Max* comes in three packages: A, B and C.",
        },
        children=(
            Product(
                sku="PROMAX_A",
                name="Pro Max — A",
                price=350_000,
                details={"sw": "• Dawa 3 za kunywa.", "en": "• Three oral remedies."},
            ),
            Product(
                sku="PROMAX_B",
                name="Pro Max — B",
                price=350_000,
                details={"sw": "• Dawa 3 za kupaka.", "en": "• Three topical remedies."},
            ),
            Product(
                sku="PROMAX_C",
                name="Pro Max — C",
                price=350_000,
                details={"sw": "• Dawa 2 za kupaka + 2 za kunywa.", "en": "• Two topical and two oral remedies."},
            ),
        ),
    ),
)


class Catalog:
    def __init__(self, products: Iterable[Product] = DEFAULT_PRODUCTS):
        self._products = tuple(products)
        self._by_sku: dict[str, Product] = {}
        for product in self._products:
            self._register(product)

    def _register(self, product: Product) -> None:
        self._by_sku[product.sku.upper()] = product
        for child in product.children:
            self._register(child)

    def top_level(self) -> tuple[Product, ...]:
        return self._products

    def get(self, sku: Optional[str]) -> Optional[Product]:
        return self._by_sku.get((sku or "").strip().upper())


def _stock(data: dict[str, Any]) -> Optional[int]:
    raw = data.get("stock_qty", data.get("stock"))
    return None if raw is None else max(0, int(raw))


def _product_from_dict(data: dict[str, Any]) -> Product:
    return Product(
        sku=str(data["sku"]).strip().upper(),
        name=str(data["name"]).strip(),
        price=int(data["price"]),
        details=dict(data.get("details") or {}),
        children=tuple(_product_from_dict(c) for c in data.get("children") or []),
        stock_qty=_stock(data),
    )


def load_catalog(path: str | Path | None = None) -> Catalog:
    if not path:
        return Catalog()
    target = Path(path)
    try:
        products = [_product_from_dict(p) for p in json.loads(target.read_text(encoding="utf-8"))]
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.error("Could not load catalog from %s (%s); using bundled catalog", target, exc)
        return Catalog()
    return Catalog(products)


_catalog_singleton: Catalog | None = None


def get_catalog() -> Catalog:
    global _catalog_singleton
    if _catalog_singleton is None:
        from dukabot.core.config import settings

        _catalog_singleton = load_catalog(settings.CATALOG_PATH or None)
    return _catalog_singleton
