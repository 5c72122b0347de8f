# dukabot/domain/services/flow_engine.py
"""Checkout conversation state machine.

States handled (``FlowStep``):
    IDLE, ASK_QUANTITY,
    ASK_DELIVERY_AREA, ASK_DELIVERY_MODE,
    ASK_NAME_INSIDE, ASK_PHONE_INSIDE, ASK_DISTRICT, ASK_WARD, ASK_STREET, ASK_GPS,
    ASK_NAME_OUTSIDE, ASK_PHONE_OUTSIDE, ASK_REGION_OUTSIDE,
    WAIT_PROOF, TRACK_BY_NAME

``FlowEngine.handle`` never touches storage: it works on a copy of the
session and returns the new session together with the replies to send and
the side effects (placed orders) for the caller to execute.

Routing goes through ``TRANSITIONS``, keyed by ``(FlowStep, EventKind)``.
Every pair has an entry; a handler that does not understand the event
re-sends the prompt of the current step and leaves the session alone.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence

from dukabot.domain.i18n import format_amount, t
from dukabot.domain.models.events import EventKind, EventPayload, InteractiveReply, LocationPin, TextMessage
from dukabot.domain.models.location import GpsPin, StreetName
from dukabot.domain.models.order import OrderBook, OrderPlaced, OrderSummary
from dukabot.domain.models.outbound import TextReply
from dukabot.domain.models.quote import DeliveryQuote
from dukabot.domain.models.session import CartItem, Contact, FlowStep, Session
from dukabot.domain.services import flow_screens as screens
from dukabot.domain.services.cart import add_to_cart
from dukabot.domain.services.catalog import Catalog, Product
from dukabot.domain.services.delivery_quote import DeliveryQuoteResolver, FeeTable, fee_table_from_settings
from dukabot.domain.services.payment_options import (
    PAY_PREFIX,
    PaymentOption,
    find_payment_option,
    payment_options_from_settings,
)

logger = logging.getLogger("flow_engine")

NEXT_PAGE_WORDS = {"next", "zaidi"}
MAX_QUANTITY = 99
ORDER_LIST_LIMIT = 8
DEFAULT_OUTSIDE_AREA_FEE = 10_000
DEFAULT_STREET_PAGE_SIZE = 9


@dataclass
class FlowResult:
    session: Session
    replies: list = field(default_factory=list)
    effects: list = field(default_factory=list)

    def say(self, *replies: Any) -> None:
        self.replies.extend(replies)


Handler = Callable[["FlowEngine", FlowResult, EventPayload], Awaitable[None]]


def _choice_number(text: str) -> Optional[int]:
    """``"3"`` → 2 (zero-based); anything else → None."""
    text = text.strip().rstrip(".")
    # isdecimal, not isdigit: "²" is a digit that int() rejects.
    if text.isdecimal() and int(text) > 0:
        return int(text) - 1
    return None


def _id_index(reply_id: str, prefix: str) -> Optional[int]:
    suffix = reply_id[len(prefix):] if reply_id.startswith(prefix) else ""
    return int(suffix) if suffix.isdecimal() else None


class FlowEngine:
    def __init__(
        self,
        catalog: Catalog,
        resolver: DeliveryQuoteResolver,
        *,
        fee_table_provider: Callable[[], FeeTable] = fee_table_from_settings,
        payment_options_provider: Callable[[], Sequence[PaymentOption]] = payment_options_from_settings,
        order_book: Optional[OrderBook] = None,
        outside_area_fee: int = DEFAULT_OUTSIDE_AREA_FEE,
        street_page_size: int = DEFAULT_STREET_PAGE_SIZE,
        order_code_prefix: str = "UJ",
    ):
        if street_page_size <= 0:
            raise ValueError("street_page_size must be positive")
        if outside_area_fee < 0:
            raise ValueError("outside_area_fee must be non-negative")
        self.catalog = catalog
        self.resolver = resolver
        self.fee_table_provider = fee_table_provider
        self.payment_options_provider = payment_options_provider
        self.order_book = order_book
        self.outside_area_fee = outside_area_fee
        self.street_page_size = street_page_size
        self.order_code_prefix = order_code_prefix
        self._order_code = re.compile(rf"^{re.escape(order_code_prefix)}\s*-?\s*(\d+)$", re.IGNORECASE)

    @property
    def index(self):
        return self.resolver.index

    def order_code(self, order_id: int) -> str:
        return f"{self.order_code_prefix}-{order_id}"

    async def handle(self, session: Session, payload: EventPayload) -> FlowResult:
        out = FlowResult(session=session.copy())
        s = out.session
        before = s.flow_step

        if s.agent_mode:
            if isinstance(payload, InteractiveReply) and payload.reply_id == screens.ACTION_RETURN_TO_BOT:
                s.agent_mode = False
                s.reset_flow()
                out.say(self._main_menu(s))
            return out

        if isinstance(payload, InteractiveReply) and self._handle_global(out, payload.reply_id):
            logger.debug("Flow %s: %s -> %s (global)", s.customer_id, before.value, s.flow_step.value)
            return out

        handler = TRANSITIONS[(s.flow_step, payload.kind)]
        await handler(self, out, payload)
        logger.debug("Flow %s: %s -> %s", s.customer_id, before.value, s.flow_step.value)
        return out

    def _handle_global(self, out: FlowResult, reply_id: str) -> bool:
        s = out.session
        if reply_id == screens.ACTION_CHANGE_LANGUAGE:
            s.language = s.language.other()
            # Mid-checkout the customer gets the same question again, now in the new language.
            self._prompt(out)
            return True
        if reply_id == screens.ACTION_BACK and s.flow_step is not FlowStep.IDLE:
            s.reset_flow()
            s.pending_item = None
            out.say(self._main_menu(s))
            return True
        return False

    # ── prompts ────────────────────────────────────────────

    def _main_menu(self, s: Session):
        return screens.main_menu(self.catalog, s.language)

    def _prompt(self, out: FlowResult) -> None:
        """Re-send the question of the current step; the session is untouched."""
        s = out.session
        lang = s.language
        step = s.flow_step
        if step is FlowStep.IDLE:
            out.say(self._main_menu(s))
        elif step is FlowStep.ASK_QUANTITY:
            product = self.catalog.get(s.qty_sku)
            out.say(screens.quantity_prompt(product, lang) if product else self._main_menu(s))
        elif step is FlowStep.ASK_DELIVERY_AREA:
            out.say(screens.area_choice(lang))
        elif step is FlowStep.ASK_DELIVERY_MODE:
            out.say(screens.mode_choice(lang))
        elif step in (FlowStep.ASK_NAME_INSIDE, FlowStep.ASK_NAME_OUTSIDE):
            out.say(TextReply(t("FLOW_ASK_NAME", lang)))
        elif step in (FlowStep.ASK_PHONE_INSIDE, FlowStep.ASK_PHONE_OUTSIDE):
            out.say(TextReply(t("FLOW_ASK_PHONE", lang)))
        elif step is FlowStep.ASK_REGION_OUTSIDE:
            out.say(TextReply(t("FLOW_ASK_REGION", lang)))
        elif step is FlowStep.ASK_DISTRICT:
            out.say(screens.district_menu(self.index.districts(), lang))
        elif step is FlowStep.ASK_WARD:
            out.say(screens.ward_menu(s.contact.district or "", self.index.wards(s.contact.district), lang))
        elif step is FlowStep.ASK_STREET:
            out.say(self._street_page(s))
        elif step is FlowStep.ASK_GPS:
            out.say(TextReply(t("FLOW_ASK_GPS", lang)))
        elif step is FlowStep.WAIT_PROOF:
            out.say(TextReply(t("PROOF_ASK", lang)))
        elif step is FlowStep.TRACK_BY_NAME:
            out.say(TextReply(t("TRACK_ASK_NAME", lang, prefix=self.order_code_prefix)))

    async def _reprompt(self, out: FlowResult, payload: EventPayload) -> None:
        self._prompt(out)

    def _street_page(self, s: Session):
        streets = self.index.streets(s.contact.district, s.contact.ward)
        return screens.street_page(s.contact.ward or "", streets, s.street_page, self.street_page_size, s.language)

    # ══════════════════════════════════════════════════════
    # IDLE
    # ══════════════════════════════════════════════════════

    async def _idle_text(self, out: FlowResult, payload: TextMessage) -> None:
        body = (payload.body or "").strip()
        if self._order_code.match(body):
            await self._track(out, body)
            return
        out.say(self._main_menu(out.session))

    async def _idle_location(self, out: FlowResult, payload: LocationPin) -> None:
        out.say(self._main_menu(out.session))

    async def _idle_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        s = out.session
        lang = s.language
        reply_id = (payload.reply_id or "").strip()

        for prefix, action in (
            (screens.PRODUCT_PREFIX, self._show_product),
            (screens.VARIANTS_PREFIX, self._show_variants),
            (screens.DETAILS_PREFIX, self._show_details),
            (screens.ADD_PREFIX, self._add_to_cart),
            (screens.BUY_PREFIX, self._buy_now),
        ):
            if reply_id.startswith(prefix):
                product = self.catalog.get(reply_id[len(prefix):])
                if product is None:
                    out.say(TextReply(t("PRODUCT_NOT_FOUND", lang)), self._main_menu(s))
                else:
                    action(out, product)
                return

        if reply_id == screens.ACTION_VIEW_CART:
            if not s.cart:
                out.say(TextReply(t("CART_EMPTY", lang)), self._main_menu(s))
            else:
                out.say(screens.cart_summary(s.cart, lang), screens.cart_actions(lang, with_clear=True))
        elif reply_id == screens.ACTION_CLEAR_CART:
            s.cart = []
            s.pending_item = None
            out.say(TextReply(t("CART_CLEARED", lang)), self._main_menu(s))
        elif reply_id == screens.ACTION_CHECKOUT:
            if not s.cart:
                out.say(TextReply(t("CART_EMPTY", lang)), self._main_menu(s))
            else:
                s.pending_item = None
                self._start_checkout(out)
        elif reply_id == screens.ACTION_TRACK_BY_NAME:
            await self._show_orders(out)
        elif reply_id == screens.ACTION_TRACK_SEARCH:
            s.flow_step = FlowStep.TRACK_BY_NAME
            self._prompt(out)
        elif reply_id.startswith(screens.ORDER_DETAIL_PREFIX):
            await self._order_detail(out, _id_index(reply_id, screens.ORDER_DETAIL_PREFIX))
        elif reply_id.startswith(screens.ORDER_PAY_PREFIX):
            await self._pay_order(out, _id_index(reply_id, screens.ORDER_PAY_PREFIX))
        elif reply_id.startswith(screens.ORDER_CANCEL_PREFIX):
            await self._cancel_order(out, _id_index(reply_id, screens.ORDER_CANCEL_PREFIX))
        elif reply_id == screens.ACTION_FAQ:
            out.say(TextReply(t("FAQ_TEXT", lang)))
        elif reply_id == screens.ACTION_TALK_TO_AGENT:
            s.agent_mode = True
            out.say(screens.agent_handoff(lang))
        elif reply_id.startswith(PAY_PREFIX):
            self._choose_payment(out, reply_id)
        elif reply_id == screens.ACTION_PAYMENT_DONE and s.checkout_total is not None:
            s.flow_step = FlowStep.WAIT_PROOF
            self._prompt(out)
        elif reply_id == screens.PAYMODE_COD and s.checkout_total is not None:
            s.clear_checkout()
            out.say(TextReply(t("PAYMENT_COD_CONFIRM", lang)))
        else:
            out.say(self._main_menu(s))

    def _show_product(self, out: FlowResult, product: Product) -> None:
        s = out.session
        if not product.in_stock:
            out.say(TextReply(t("PRODUCT_UNAVAILABLE", s.language, name=product.name)), self._main_menu(s))
            return
        out.say(screens.product_actions(product, s.language))

    def _show_variants(self, out: FlowResult, product: Product) -> None:
        lang = out.session.language
        if product.has_variants:
            out.say(screens.variant_menu(product, lang))
        else:
            out.say(screens.product_actions(product, lang))

    def _show_details(self, out: FlowResult, product: Product) -> None:
        lang = out.session.language
        out.say(screens.product_details(product, lang), screens.product_actions(product, lang))

    def _add_to_cart(self, out: FlowResult, product: Product) -> None:
        s = out.session
        if product.has_variants:
            out.say(screens.variant_menu(product, s.language))
            return
        if not product.in_stock:
            out.say(TextReply(t("PRODUCT_UNAVAILABLE", s.language, name=product.name)), self._main_menu(s))
            return
        s.qty_sku = product.sku
        s.flow_step = FlowStep.ASK_QUANTITY
        self._prompt(out)

    def _buy_now(self, out: FlowResult, product: Product) -> None:
        s = out.session
        if product.has_variants:
            out.say(screens.variant_menu(product, s.language))
            return
        if not product.in_stock:
            out.say(TextReply(t("PRODUCT_UNAVAILABLE", s.language, name=product.name)), self._main_menu(s))
            return
        s.pending_item = CartItem(sku=product.sku, name=product.name, qty=1, unit_price=product.price)
        self._start_checkout(out)

    def _start_checkout(self, out: FlowResult) -> None:
        s = out.session
        s.contact = Contact()
        s.street_page = 0
        s.checkout_total = None
        s.flow_step = FlowStep.ASK_DELIVERY_AREA
        self._prompt(out)

    def _choose_payment(self, out: FlowResult, reply_id: str) -> None:
        s = out.session
        option = find_payment_option(self.payment_options_provider(), reply_id)
        if option is None or s.checkout_total is None:
            out.say(self._main_menu(s))
            return
        s.flow_step = FlowStep.WAIT_PROOF
        out.say(*screens.payment_instructions(option, s.checkout_total, s.language))

    # ══════════════════════════════════════════════════════
    # Quantity
    # ══════════════════════════════════════════════════════

    async def _quantity_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        lang = s.language
        product = self.catalog.get(s.qty_sku)
        if product is None or not product.in_stock:
            logger.info("Product %s gone while %s was choosing a quantity", s.qty_sku, s.customer_id)
            s.reset_flow()
            out.say(TextReply(t("PRODUCT_NOT_FOUND", lang)), self._main_menu(s))
            return
        n = _choice_number(payload.body or "")
        qty = n + 1 if n is not None else None
        if qty is None or qty > MAX_QUANTITY:
            out.say(TextReply(t("CART_ASK_QUANTITY_INVALID", lang, max=MAX_QUANTITY)))
            return
        if product.stock_qty is not None and qty > product.stock_qty:
            out.say(TextReply(t("CART_QUANTITY_OVER_STOCK", lang, stock=product.stock_qty, name=product.name)))
            return
        add_to_cart(s.cart, CartItem(sku=product.sku, name=product.name, qty=qty, unit_price=product.price))
        s.reset_flow()
        line = next(item for item in s.cart if item.sku == product.sku and item.unit_price == product.price)
        out.say(
            TextReply(t("CART_ADDED", lang, name=product.name, qty=line.qty)),
            screens.cart_actions(lang),
        )

    # ══════════════════════════════════════════════════════
    # Area & mode
    # ══════════════════════════════════════════════════════

    async def _area_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        s = out.session
        reply_id = (payload.reply_id or "").upper()
        if reply_id.startswith(screens.AREA_INSIDE):
            s.flow_step = FlowStep.ASK_DELIVERY_MODE
        elif reply_id.startswith(screens.AREA_OUTSIDE):
            s.flow_step = FlowStep.ASK_NAME_OUTSIDE
        self._prompt(out)

    async def _mode_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        s = out.session
        reply_id = (payload.reply_id or "").upper()
        if reply_id.startswith(screens.MODE_PICKUP):
            s.pending_item = None
            s.reset_flow()
            out.say(TextReply(t("FLOW_PICKUP_INFO", s.language)))
            return
        if reply_id.startswith(screens.MODE_DELIVERY):
            s.flow_step = FlowStep.ASK_NAME_INSIDE
        self._prompt(out)

    # ══════════════════════════════════════════════════════
    # Contact capture
    # ══════════════════════════════════════════════════════

    async def _name_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        name = (payload.body or "").strip()
        if name:
            s.contact.name = name
            s.flow_step = (
                FlowStep.ASK_PHONE_INSIDE if s.flow_step is FlowStep.ASK_NAME_INSIDE else FlowStep.ASK_PHONE_OUTSIDE
            )
        self._prompt(out)

    async def _phone_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        phone = (payload.body or "").strip()
        if phone:
            s.contact.phone = phone
            if s.flow_step is FlowStep.ASK_PHONE_OUTSIDE:
                s.flow_step = FlowStep.ASK_REGION_OUTSIDE
            elif self.index.is_empty:
                logger.warning("Location index is empty; asking %s for GPS", s.customer_id)
                s.flow_step = FlowStep.ASK_GPS
            else:
                s.flow_step = FlowStep.ASK_DISTRICT
        self._prompt(out)

    async def _region_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        region = (payload.body or "").strip()
        if not region:
            self._prompt(out)
            return
        s.contact.region = region
        fee = self.outside_area_fee
        out.say(TextReply(t("FLOW_OUTSIDE_QUOTE", s.language, fee=format_amount(fee))))
        self._complete(out, "outside", fee, area=region, quote=None)

    # ══════════════════════════════════════════════════════
    # District / ward / street / GPS
    # ══════════════════════════════════════════════════════

    def _pick_district(self, out: FlowResult, name: Optional[str]) -> None:
        s = out.session
        if name is None:
            self._prompt(out)
            return
        s.contact.district = name
        s.contact.ward = None
        s.flow_step = FlowStep.ASK_WARD
        self._prompt(out)

    async def _district_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        reply_id = payload.reply_id or ""
        if reply_id == screens.LOCATION_SHARE:
            out.session.flow_step = FlowStep.ASK_GPS
            self._prompt(out)
            return
        districts = self.index.districts()
        n = _id_index(reply_id, screens.DISTRICT_PREFIX)
        self._pick_district(out, districts[n] if n is not None and n < len(districts) else None)

    async def _district_text(self, out: FlowResult, payload: TextMessage) -> None:
        body = (payload.body or "").strip()
        districts = self.index.districts()
        n = _choice_number(body)
        if n is not None:
            self._pick_district(out, districts[n] if n < len(districts) else None)
            return
        found = self.index.find_district(body) if body else None
        self._pick_district(out, found.name if found else None)

    async def _pin_before_ward(self, out: FlowResult, payload: LocationPin) -> None:
        quote = self.resolver.resolve_pin(GpsPin(payload.latitude, payload.longitude), self.fee_table_provider())
        self._complete_delivery(out, quote)

    def _pick_ward(self, out: FlowResult, name: Optional[str]) -> None:
        s = out.session
        if name is None:
            self._prompt(out)
            return
        s.contact.ward = name
        s.contact.street = None
        s.street_page = 0
        if not self.index.streets(s.contact.district, name):
            quote = self.resolver.resolve(s.contact.district, name, None, self.fee_table_provider())
            self._complete_delivery(out, quote)
            return
        s.flow_step = FlowStep.ASK_STREET
        self._prompt(out)

    async def _ward_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        wards = self.index.wards(out.session.contact.district)
        n = _id_index(payload.reply_id or "", screens.WARD_PREFIX)
        self._pick_ward(out, wards[n] if n is not None and n < len(wards) else None)

    async def _ward_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        body = (payload.body or "").strip()
        wards = self.index.wards(s.contact.district)
        n = _choice_number(body)
        if n is not None:
            self._pick_ward(out, wards[n] if n < len(wards) else None)
            return
        found = self.index.find_ward(s.contact.district, body) if body else None
        self._pick_ward(out, found.name if found else None)

    def _resolve_in_ward(self, out: FlowResult, refinement) -> None:
        s = out.session
        quote = self.resolver.resolve(s.contact.district, s.contact.ward, refinement, self.fee_table_provider())
        if isinstance(refinement, StreetName) and not quote.resolved_street:
            s.contact.street = refinement.name
        self._complete_delivery(out, quote)

    async def _street_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        s = out.session
        reply_id = payload.reply_id or ""
        if reply_id == screens.STREET_SKIP:
            self._resolve_in_ward(out, None)
            return
        if reply_id == screens.LOCATION_SHARE:
            s.flow_step = FlowStep.ASK_GPS
            self._prompt(out)
            return
        streets = self.index.streets(s.contact.district, s.contact.ward)
        n = _id_index(reply_id, screens.STREET_PREFIX)
        if n is None or n >= len(streets):
            self._prompt(out)
            return
        self._resolve_in_ward(out, StreetName(streets[n].name))

    async def _street_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        body = (payload.body or "").strip()
        if not body:
            self._prompt(out)
            return
        streets = self.index.streets(s.contact.district, s.contact.ward)
        if body.lower() in NEXT_PAGE_WORDS:
            pages = max(1, -(-len(streets) // self.street_page_size))
            s.street_page = (s.street_page + 1) % pages
            self._prompt(out)
            return
        n = _choice_number(body)
        if n is not None:
            # Numbers refer to the rows on the page the customer is looking at.
            if n >= self.street_page_size:
                self._prompt(out)
                return
            idx = s.street_page * self.street_page_size + n
            if idx >= len(streets):
                self._prompt(out)
                return
            self._resolve_in_ward(out, StreetName(streets[idx].name))
            return
        if body.isdigit():
            # "0" or "²": a number, just not a row on this page.
            self._prompt(out)
            return
        self._resolve_in_ward(out, StreetName(body))

    async def _pin_in_ward(self, out: FlowResult, payload: LocationPin) -> None:
        self._resolve_in_ward(out, GpsPin(payload.latitude, payload.longitude))

    async def _gps_location(self, out: FlowResult, payload: LocationPin) -> None:
        s = out.session
        if s.contact.district and s.contact.ward:
            await self._pin_in_ward(out, payload)
        else:
            await self._pin_before_ward(out, payload)

    # ══════════════════════════════════════════════════════
    # Terminal
    # ══════════════════════════════════════════════════════

    def _complete_delivery(self, out: FlowResult, quote: DeliveryQuote) -> None:
        s = out.session
        logger.info(
            "Quote for %s: %.2f km via %s (confidence %.2f) fee %s",
            s.customer_id, quote.distance_km, quote.resolution_method.value, quote.confidence, quote.fee,
        )
        s.contact.district = s.contact.district or quote.district
        s.contact.ward = s.contact.ward or quote.ward
        if quote.resolved_street:
            s.contact.street = quote.resolved_street
        out.say(screens.distance_quote(quote, s.language))
        self._complete(out, "delivery", quote.fee, area=screens.area_label(s.contact), quote=quote)

    def _complete(self, out: FlowResult, mode: str, fee: int, *, area: str, quote: Optional[DeliveryQuote]) -> None:
        s = out.session
        items = s.checkout_items()
        subtotal = s.subtotal()
        total = subtotal + fee
        out.say(screens.order_summary(items, s.contact, area, fee, total, s.language))
        out.say(
            *screens.payment_choices(
                self.payment_options_provider(), total, s.language,
                cash_on_delivery=(mode == "delivery"),
            )
        )
        out.effects.append(
            OrderPlaced(
                customer_id=s.customer_id,
                delivery_mode=mode,
                items=tuple(CartItem.from_dict(item.to_dict()) for item in items),
                subtotal=subtotal,
                fee=fee,
                total=total,
                contact=Contact.from_dict(s.contact.to_dict()),
                quote=quote,
            )
        )
        s.flow_step = FlowStep.IDLE
        s.street_page = 0
        s.checkout_total = total

    # ══════════════════════════════════════════════════════
    # Payment proof & tracking
    # ══════════════════════════════════════════════════════

    async def _proof_text(self, out: FlowResult, payload: TextMessage) -> None:
        s = out.session
        names = " ".join((payload.body or "").split())
        if len(names.split(" ")) >= 2:
            s.clear_checkout()
            out.say(TextReply(t("PROOF_OK_NAMES", s.language, name=names)))
        else:
            out.say(TextReply(t("PROOF_INVALID", s.language)))

    async def _proof_interactive(self, out: FlowResult, payload: InteractiveReply) -> None:
        reply_id = payload.reply_id or ""
        if reply_id.startswith(PAY_PREFIX):
            self._choose_payment(out, reply_id)
            return
        self._prompt(out)

    async def _track_text(self, out: FlowResult, payload: TextMessage) -> None:
        query = (payload.body or "").strip()
        if not query:
            self._prompt(out)
            return
        out.session.flow_step = FlowStep.IDLE
        await self._track(out, query)

    async def _track(self, out: FlowResult, query: str) -> None:
        lang = out.session.language
        summary: Optional[OrderSummary] = None
        if self.order_book is not None:
            match = self._order_code.match(query)
            try:
                if match:
                    summary = await self.order_book.find_by_id(int(match.group(1)))
                else:
                    summary = await self.order_book.find_latest_by_name(query)
            except Exception:
                logger.exception("Order lookup failed for %r", query)
                summary = None
        if summary is None:
            out.say(TextReply(t("TRACK_NONE", lang, query=query)))
            return
        date = summary.created_at.strftime("%d/%m/%Y") if summary.created_at else "-"
        out.say(
            TextReply(
                t(
                    "TRACK_RESULT",
                    lang,
                    code=self.order_code(summary.order_id),
                    status=screens.order_status(summary.status, lang),
                    total=format_amount(summary.total),
                    date=date,
                )
            )
        )

    # ══════════════════════════════════════════════════════
    # The customer's own orders
    # ══════════════════════════════════════════════════════

    async def _show_orders(self, out: FlowResult) -> None:
        s = out.session
        orders: list = []
        if self.order_book is not None:
            try:
                orders = await self.order_book.list_for_customer(s.customer_id, ORDER_LIST_LIMIT)
            except Exception:
                logger.exception("Could not list orders for %s", s.customer_id)
                orders = []
        if not orders:
            s.flow_step = FlowStep.TRACK_BY_NAME
            self._prompt(out)
            return
        out.say(screens.order_list(orders, self.order_code_prefix, s.language))

    async def _own_order(self, out: FlowResult, order_id: Optional[int]) -> Optional[OrderSummary]:
        """The customer's order ``order_id``, or None after telling them it was not found."""
        s = out.session
        summary = None
        if order_id is not None and self.order_book is not None:
            try:
                summary = await self.order_book.find_for_customer(order_id, s.customer_id)
            except Exception:
                logger.exception("Order %s lookup failed for %s", order_id, s.customer_id)
        if summary is None:
            out.say(TextReply(t("ORDERS_NONE", s.language)), self._main_menu(s))
        return summary

    async def _order_detail(self, out: FlowResult, order_id: Optional[int]) -> None:
        summary = await self._own_order(out, order_id)
        if summary is None:
            return
        lang = out.session.language
        out.say(
            screens.order_detail(summary, self.order_code(summary.order_id), lang),
            screens.order_actions(summary, lang),
        )

    async def _pay_order(self, out: FlowResult, order_id: Optional[int]) -> None:
        summary = await self._own_order(out, order_id)
        if summary is None:
            return
        s = out.session
        code = self.order_code(summary.order_id)
        if not summary.is_pending:
            out.say(TextReply(t("ORDERS_PAY_NOT_PENDING", s.language, code=code)))
            return
        s.checkout_total = summary.total
        out.say(TextReply(t("ORDERS_PAY_HEADER", s.language, code=code)))
        out.say(
            *screens.payment_choices(
                self.payment_options_provider(), summary.total, s.language, cash_on_delivery=False,
            )
        )

    async def _cancel_order(self, out: FlowResult, order_id: Optional[int]) -> None:
        summary = await self._own_order(out, order_id)
        if summary is None:
            return
        s = out.session
        code = self.order_code(summary.order_id)
        cancelled = False
        if summary.is_pending:
            try:
                cancelled = await self.order_book.cancel_order(summary.order_id, s.customer_id)
            except Exception:
                logger.exception("Cancelling order %s for %s failed", summary.order_id, s.customer_id)
                out.say(TextReply(t("ORDERS_NONE", s.language)))
                return
        if not cancelled:
            out.say(TextReply(t("ORDERS_CANCEL_NOT_PENDING", s.language, code=code)))
            return
        logger.info("Order %s cancelled by %s", summary.order_id, s.customer_id)
        out.say(TextReply(t("ORDERS_CANCEL_OK", s.language, code=code)))


_T, _I, _L = EventKind.TEXT, EventKind.INTERACTIVE, EventKind.LOCATION
_F = FlowStep

TRANSITIONS: dict[tuple[FlowStep, EventKind], Handler] = {
    (_F.IDLE, _T): FlowEngine._idle_text,
    (_F.IDLE, _I): FlowEngine._idle_interactive,
    (_F.IDLE, _L): FlowEngine._idle_location,

    (_F.ASK_QUANTITY, _T): FlowEngine._quantity_text,
    (_F.ASK_QUANTITY, _I): FlowEngine._reprompt,
    (_F.ASK_QUANTITY, _L): FlowEngine._reprompt,

    (_F.ASK_DELIVERY_AREA, _T): FlowEngine._reprompt,
    (_F.ASK_DELIVERY_AREA, _I): FlowEngine._area_interactive,
    (_F.ASK_DELIVERY_AREA, _L): FlowEngine._reprompt,

    (_F.ASK_DELIVERY_MODE, _T): FlowEngine._reprompt,
    (_F.ASK_DELIVERY_MODE, _I): FlowEngine._mode_interactive,
    (_F.ASK_DELIVERY_MODE, _L): FlowEngine._reprompt,

    (_F.ASK_NAME_INSIDE, _T): FlowEngine._name_text,
    (_F.ASK_NAME_INSIDE, _I): FlowEngine._reprompt,
    (_F.ASK_NAME_INSIDE, _L): FlowEngine._reprompt,

    (_F.ASK_PHONE_INSIDE, _T): FlowEngine._phone_text,
    (_F.ASK_PHONE_INSIDE, _I): FlowEngine._reprompt,
    (_F.ASK_PHONE_INSIDE, _L): FlowEngine._reprompt,

    (_F.ASK_DISTRICT, _T): FlowEngine._district_text,
    (_F.ASK_DISTRICT, _I): FlowEngine._district_interactive,
    (_F.ASK_DISTRICT, _L): FlowEngine._pin_before_ward,

    (_F.ASK_WARD, _T): FlowEngine._ward_text,
    (_F.ASK_WARD, _I): FlowEngine._ward_interactive,
    (_F.ASK_WARD, _L): FlowEngine._pin_before_ward,

    (_F.ASK_STREET, _T): FlowEngine._street_text,
    (_F.ASK_STREET, _I): FlowEngine._street_interactive,
    (_F.ASK_STREET, _L): FlowEngine._pin_in_ward,

    (_F.ASK_GPS, _T): FlowEngine._reprompt,
    (_F.ASK_GPS, _I): FlowEngine._reprompt,
    (_F.ASK_GPS, _L): FlowEngine._gps_location,

    (_F.ASK_NAME_OUTSIDE, _T): FlowEngine._name_text,
    (_F.ASK_NAME_OUTSIDE, _I): FlowEngine._reprompt,
    (_F.ASK_NAME_OUTSIDE, _L): FlowEngine._reprompt,

    (_F.ASK_PHONE_OUTSIDE, _T): FlowEngine._phone_text,
    (_F.ASK_PHONE_OUTSIDE, _I): FlowEngine._reprompt,
    (_F.ASK_PHONE_OUTSIDE, _L): FlowEngine._reprompt,

    (_F.ASK_REGION_OUTSIDE, _T): FlowEngine._region_text,
    (_F.ASK_REGION_OUTSIDE, _I): FlowEngine._reprompt,
    (_F.ASK_REGION_OUTSIDE, _L): FlowEngine._reprompt,

    (_F.WAIT_PROOF, _T): FlowEngine._proof_text,
    (_F.WAIT_PROOF, _I): FlowEngine._proof_interactive,
    (_F.WAIT_PROOF, _L): FlowEngine._reprompt,

    (_F.TRACK_BY_NAME, _T): FlowEngine._track_text,
    (_F.TRACK_BY_NAME, _I): FlowEngine._reprompt,
    (_F.TRACK_BY_NAME, _L): FlowEngine._reprompt,
}


_engine_singleton: FlowEngine | None = None


def get_flow_engine(order_book: Optional[OrderBook] = None) -> FlowEngine:
    global _engine_singleton
    if _engine_singleton is None:
        from dukabot.core.config import settings
        from dukabot.domain.services.catalog import get_catalog
        from dukabot.domain.services.delivery_quote import get_quote_resolver

        _engine_singleton = FlowEngine(
            get_catalog(),
            get_quote_resolver(),
            order_book=order_book,
            outside_area_fee=settings.OUTSIDE_AREA_FLAT_FEE,
            street_page_size=settings.STREET_PAGE_SIZE,
            order_code_prefix=settings.ORDER_CODE_PREFIX,
        )
    return _engine_singleton
