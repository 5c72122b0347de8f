# dukabot/domain/services/flow_screens.py
"""
Builders for the logical replies the flow engine sends.

Every function here is pure: given the language and data it returns
``TextReply`` / ``ButtonReply`` / ``ListReply`` objects.  Channel limits are
applied later by the message composer, so labels here may be long.
"""

from __future__ import annotations

from typing import Optional, Sequence

from dukabot.domain.i18n import MESSAGES, format_amount, t
from dukabot.domain.models.location import Street
from dukabot.domain.models.outbound import Button, ButtonReply, ListReply, ListRow, ListSection, TextReply
from dukabot.domain.models.order import OrderSummary
from dukabot.domain.models.quote import DeliveryQuote
from dukabot.domain.models.session import CartItem, Contact, Language
from dukabot.domain.services.cart import cart_total
from dukabot.domain.services.catalog import Catalog, Product
from dukabot.domain.services.payment_options import PaymentOption

# ──────────────────────────────────────────────────────────
# Interactive ids (stable: they come back in replies)
# ──────────────────────────────────────────────────────────

ACTION_VIEW_CART = "ACTION_VIEW_CART"
ACTION_CLEAR_CART = "ACTION_CLEAR_CART"
ACTION_CHECKOUT = "ACTION_CHECKOUT"
ACTION_BACK = "ACTION_BACK"
ACTION_CHANGE_LANGUAGE = "ACTION_CHANGE_LANGUAGE"
ACTION_TRACK_BY_NAME = "ACTION_TRACK_BY_NAME"
ACTION_FAQ = "ACTION_FAQ"
ACTION_TALK_TO_AGENT = "ACTION_TALK_TO_AGENT"
ACTION_RETURN_TO_BOT = "ACTION_RETURN_TO_BOT"
ACTION_PAYMENT_DONE = "ACTION_PAYMENT_DONE"
PAYMODE_COD = "PAYMODE_COD"

PRODUCT_PREFIX = "PRODUCT_"
VARIANTS_PREFIX = "VARIANTS_"
DETAILS_PREFIX = "DETAILS_"
ADD_PREFIX = "ADD_"
BUY_PREFIX = "BUY_"

AREA_INSIDE = "AREA_INSIDE"
AREA_OUTSIDE = "AREA_OUTSIDE"
MODE_DELIVERY = "MODE_DELIVERY"
MODE_PICKUP = "MODE_PICKUP"

DISTRICT_PREFIX = "DISTRICT_"
WARD_PREFIX = "WARD_"
STREET_PREFIX = "STREET_"
STREET_SKIP = "STREET_SKIP"
LOCATION_SHARE = "LOCATION_SHARE"

ORDER_DETAIL_PREFIX = "ORDER_DETAIL_"
ORDER_PAY_PREFIX = "ORDER_PAY_"
ORDER_CANCEL_PREFIX = "ORDER_CANCEL_"
ACTION_TRACK_SEARCH = "ACTION_TRACK_SEARCH"


# ── Menu & products ──────────────────────────────────────


def main_menu(catalog: Catalog, lang: Language) -> ListReply:
    products = tuple(
        ListRow(
            id=f"{PRODUCT_PREFIX}{p.sku}",
            title=f"{p.name} — {format_amount(p.price)} TZS",
        )
        for p in catalog.top_level()
    )
    actions = (
        ListRow(ACTION_VIEW_CART, t("MENU_VIEW_CART", lang)),
        ListRow(ACTION_CHECKOUT, t("MENU_CHECKOUT", lang)),
        ListRow(ACTION_TRACK_BY_NAME, t("MENU_TRACK", lang)),
        ListRow(ACTION_FAQ, t("MENU_FAQ", lang)),
        ListRow(ACTION_TALK_TO_AGENT, t("MENU_TALK_TO_AGENT", lang)),
        # The toggle speaks the language it switches to.
        ListRow(ACTION_CHANGE_LANGUAGE, t("MENU_CHANGE_LANGUAGE", lang.other())),
    )
    return ListReply(
        header=t("MENU_TITLE", lang),
        body=t("MENU_HEADER", lang),
        button_label=t("GENERIC_OPEN", lang),
        sections=(
            ListSection(t("MENU_PRODUCTS_SECTION", lang), products),
            ListSection(t("MENU_ACTIONS_SECTION", lang), actions),
        ),
    )


def product_actions(product: Product, lang: Language) -> ListReply:
    rows = [
        ListRow(f"{ADD_PREFIX}{product.sku}", t("PRODUCT_ADD", lang)),
        ListRow(f"{BUY_PREFIX}{product.sku}", t("PRODUCT_BUY", lang)),
        ListRow(f"{DETAILS_PREFIX}{product.sku}", t("PRODUCT_DETAILS", lang)),
    ]
    if product.has_variants:
        rows.append(ListRow(f"{VARIANTS_PREFIX}{product.sku}", t("PRODUCT_VARIANTS", lang)))
    rows.append(ListRow(ACTION_BACK, t("GENERIC_BACK", lang)))
    return ListReply(
        body=t("PRODUCT_ACTIONS_BODY", lang, name=product.name, price=format_amount(product.price)),
        button_label=t("GENERIC_CHOOSE", lang),
        sections=(ListSection(product.name, tuple(rows)),),
    )


def variant_menu(product: Product, lang: Language) -> ListReply:
    rows = tuple(
        ListRow(f"{PRODUCT_PREFIX}{child.sku}", f"{child.name} — {format_amount(child.price)} TZS")
        for child in product.children
    )
    return ListReply(
        body=t("PRODUCT_VARIANTS_BODY", lang, name=product.name),
        button_label=t("GENERIC_CHOOSE", lang),
        sections=(ListSection(product.name, rows),),
    )


def product_details(product: Product, lang: Language) -> TextReply:
    return TextReply(product.details_for(lang) or t("PRODUCT_NO_DETAILS", lang))


# ── Cart ─────────────────────────────────────────────────


def cart_lines(items: Sequence[CartItem], lang: Language) -> list[str]:
    return [
        t("CART_LINE", lang, name=item.name, qty=item.qty, amount=format_amount(item.line_total))
        for item in items
    ]


def cart_summary(items: Sequence[CartItem], lang: Language) -> TextReply:
    lines = [t("CART_SUMMARY_HEADER", lang)] + cart_lines(items, lang)
    lines.append(t("CART_TOTAL", lang, total=format_amount(cart_total(items))))
    return TextReply("\n".join(lines))


def quantity_prompt(product: Product, lang: Language) -> TextReply:
    return TextReply(t("CART_ASK_QUANTITY", lang, name=product.name, price=format_amount(product.price)))


def cart_actions(lang: Language, *, with_clear: bool = False) -> ButtonReply:
    second = (
        Button(ACTION_CLEAR_CART, t("CART_CLEAR", lang))
        if with_clear
        else Button(ACTION_VIEW_CART, t("MENU_VIEW_CART", lang))
    )
    return ButtonReply(
        body=t("CART_NEXT", lang),
        buttons=(
            Button(ACTION_CHECKOUT, t("MENU_CHECKOUT", lang)),
            second,
            Button(ACTION_BACK, t("GENERIC_BACK", lang)),
        ),
    )


# ── Checkout prompts ─────────────────────────────────────


def area_choice(lang: Language) -> ButtonReply:
    return ButtonReply(
        body=t("FLOW_CHOOSE_AREA", lang),
        buttons=(
            Button(AREA_INSIDE, t("FLOW_AREA_INSIDE", lang)),
            Button(AREA_OUTSIDE, t("FLOW_AREA_OUTSIDE", lang)),
        ),
    )


def mode_choice(lang: Language) -> ButtonReply:
    return ButtonReply(
        body=t("FLOW_CHOOSE_MODE", lang),
        buttons=(
            Button(MODE_DELIVERY, t("FLOW_MODE_DELIVERY", lang)),
            Button(MODE_PICKUP, t("FLOW_MODE_PICKUP", lang)),
        ),
    )


def district_menu(districts: Sequence[str], lang: Language) -> ListReply:
    rows = tuple(ListRow(f"{DISTRICT_PREFIX}{i}", name) for i, name in enumerate(districts))
    options = (ListRow(LOCATION_SHARE, t("FLOW_SHARE_LOCATION", lang)),)
    return ListReply(
        header=t("FLOW_PICK_DISTRICT_TITLE", lang),
        body=t("FLOW_PICK_DISTRICT_BODY", lang),
        button_label=t("GENERIC_CHOOSE", lang),
        sections=(
            ListSection(t("FLOW_PICK_DISTRICT_TITLE", lang), rows),
            ListSection(t("FLOW_OPTIONS_SECTION", lang), options),
        ),
    )


def ward_menu(district: str, wards: Sequence[str], lang: Language) -> ListReply:
    rows = tuple(ListRow(f"{WARD_PREFIX}{i}", name) for i, name in enumerate(wards))
    return ListReply(
        header=t("FLOW_PICK_WARD_TITLE", lang),
        body=t("FLOW_PICK_WARD_BODY", lang, district=district),
        button_label=t("GENERIC_CHOOSE", lang),
        sections=(ListSection(district, rows),),
    )


def street_page(
    ward: str,
    streets: Sequence[Street],
    page: int,
    page_size: int,
    lang: Language,
) -> ListReply:
    """One page of streets, numbered 1..n for typed replies, plus skip / share rows."""
    start = page * page_size
    visible = streets[start:start + page_size]
    rows = tuple(
        ListRow(f"{STREET_PREFIX}{start + i}", f"{i + 1}. {street.name}", street.places)
        for i, street in enumerate(visible)
    )
    options = (
        ListRow(STREET_SKIP, t("FLOW_STREET_SKIP", lang)),
        ListRow(LOCATION_SHARE, t("FLOW_SHARE_LOCATION", lang)),
    )
    body = t("FLOW_PICK_STREET_BODY", lang, ward=ward)
    if start + page_size < len(streets):
        body = f"{body}\n{t('FLOW_STREET_PAGE_MORE', lang)}"
    return ListReply(
        header=t("FLOW_PICK_STREET_TITLE", lang),
        body=body,
        button_label=t("GENERIC_CHOOSE", lang),
        sections=(
            ListSection(t("FLOW_STREETS_SECTION", lang), rows),
            ListSection(t("FLOW_OPTIONS_SECTION", lang), options),
        ),
    )


# ── Quote, summary, payment ──────────────────────────────


def distance_quote(quote: DeliveryQuote, lang: Language) -> TextReply:
    place = quote.resolved_street or quote.ward or t("FLOW_PLACE_GPS", lang)
    return TextReply(
        t(
            "FLOW_DISTANCE_QUOTE",
            lang,
            km=f"{quote.distance_km:.1f}",
            place=place,
            fee=format_amount(quote.fee),
        )
    )


def order_summary(
    items: Sequence[CartItem],
    contact: Contact,
    area: str,
    fee: int,
    total: int,
    lang: Language,
) -> TextReply:
    lines = [
        t("CHECKOUT_SUMMARY_HEADER", lang),
        t("CHECKOUT_SUMMARY_NAME", lang, name=contact.name or ""),
        t("CHECKOUT_SUMMARY_PHONE", lang, phone=contact.phone or ""),
    ]
    if area:
        lines.append(t("CHECKOUT_SUMMARY_AREA", lang, area=area))
    lines.extend(cart_lines(items, lang))
    lines.append(t("CHECKOUT_SUMMARY_FEE", lang, fee=format_amount(fee)))
    lines.append(t("CHECKOUT_SUMMARY_TOTAL", lang, total=format_amount(total)))
    return TextReply("\n".join(lines))


def payment_choices(
    options: Sequence[PaymentOption],
    total: int,
    lang: Language,
    *,
    cash_on_delivery: bool,
) -> list:
    replies: list = []
    rows = [ListRow(o.id, o.label, o.value) for o in options]
    if not options:
        replies.append(TextReply(t("PAYMENT_NONE", lang)))
    if cash_on_delivery:
        rows.append(ListRow(PAYMODE_COD, t("PAYMENT_COD_ROW", lang)))
    if rows:
        replies.append(
            ListReply(
                header=t("CHECKOUT_SUMMARY_TOTAL", lang, total=format_amount(total)),
                body=t("PAYMENT_CHOOSE", lang),
                button_label=t("GENERIC_CHOOSE", lang),
                sections=(ListSection(t("PAYMENT_SECTION", lang), tuple(rows)),),
            )
        )
    return replies


def payment_instructions(option: PaymentOption, total: int, lang: Language) -> list:
    return [
        TextReply(t("PAYMENT_SELECTED", lang, total=format_amount(total), label=option.label, value=option.value)),
        ButtonReply(
            body=t("PAYMENT_DONE_CTA", lang),
            buttons=(Button(ACTION_PAYMENT_DONE, t("PAYMENT_DONE_BUTTON", lang)),),
        ),
    ]


def agent_handoff(lang: Language) -> ButtonReply:
    return ButtonReply(
        body=t("AGENT_REPLY", lang),
        buttons=(Button(ACTION_RETURN_TO_BOT, t("AGENT_RETURN_BUTTON", lang)),),
    )


def area_label(contact: Contact) -> str:
    parts: list[Optional[str]] = [contact.district, contact.ward, contact.street]
    return ", ".join(p for p in parts if p)


# ── Customer orders ──────────────────────────────────────


def order_status(status: str, lang: Language) -> str:
    key = f"ORDER_STATUS_{status.upper()}"
    return t(key, lang) if key in MESSAGES else status


def _order_date(summary: OrderSummary) -> str:
    return summary.created_at.strftime("%d/%m/%Y") if summary.created_at else "-"


def order_list(orders: Sequence[OrderSummary], prefix: str, lang: Language) -> ListReply:
    rows = tuple(
        ListRow(
            f"{ORDER_DETAIL_PREFIX}{o.order_id}",
            f"{prefix}-{o.order_id} — TZS {format_amount(o.total)}",
            f"{order_status(o.status, lang)} • {_order_date(o)}",
        )
        for o in orders
    )
    options = (
        ListRow(ACTION_TRACK_SEARCH, t("ORDERS_SEARCH_ROW", lang)),
        ListRow(ACTION_BACK, t("GENERIC_BACK", lang)),
    )
    return ListReply(
        header=t("ORDERS_LIST_HEADER", lang),
        body=t("ORDERS_LIST_BODY", lang),
        button_label=t("GENERIC_CHOOSE", lang),
        sections=(
            ListSection(t("ORDERS_LIST_SECTION", lang), rows),
            ListSection(t("FLOW_OPTIONS_SECTION", lang), options),
        ),
    )


def order_detail(summary: OrderSummary, code: str, lang: Language) -> TextReply:
    lines = [t("ORDERS_DETAIL_HEADER", lang, code=code)]
    if summary.items:
        lines.append(t("ORDERS_DETAIL_ITEMS", lang))
        lines.extend(t("ORDERS_DETAIL_LINE", lang, name=name, qty=qty) for name, qty in summary.items)
    lines.append("")
    lines.append(
        t(
            "ORDERS_DETAIL_FOOTER",
            lang,
            total=format_amount(summary.total),
            status=order_status(summary.status, lang),
            date=_order_date(summary),
        )
    )
    return TextReply("\n".join(lines))


def order_actions(summary: OrderSummary, lang: Language) -> ButtonReply:
    """Pending orders can still be paid or cancelled; anything else only goes back."""
    buttons = []
    if summary.is_pending:
        buttons.append(Button(f"{ORDER_PAY_PREFIX}{summary.order_id}", t("ORDERS_PAY_BUTTON", lang)))
        buttons.append(Button(f"{ORDER_CANCEL_PREFIX}{summary.order_id}", t("ORDERS_CANCEL_BUTTON", lang)))
    buttons.append(Button(ACTION_BACK, t("GENERIC_BACK", lang)))
    return ButtonReply(body=t("CART_NEXT", lang), buttons=tuple(buttons))
