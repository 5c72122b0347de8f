# tests/test_order_repository.py
"""Tests for turning placed orders into rows and rows back into summaries."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from dukabot.domain.models.order import OrderPlaced
from dukabot.domain.models.quote import DeliveryQuote, ResolutionMethod
from dukabot.domain.models.session import CartItem, Contact
from dukabot.infrastructure.db.models import Customer, Order, OrderItem
from dukabot.infrastructure.db.repositories import OrderRepository, SqlOrderBook


def _db_returning(row):
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    return db


def _factory(db):
    def factory():
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=db)
        cm.__aexit__ = AsyncMock(return_value=False)
        return cm

    return factory


def _placed(quote=None, mode="delivery"):
    return OrderPlaced(
        customer_id="255700000001",
        delivery_mode=mode,
        items=(CartItem("SOAP", "Sabuni Asili", 2, 120_000),),
        subtotal=240_000,
        fee=2500,
        total=242_500,
        contact=Contact(name="Asha", phone="0700000000", district="Temeke", ward="Keko", street="Bora"),
        quote=quote,
    )


def test_create_copies_contact_quote_and_items(event_loop):
    db = _db_returning(Customer(id=3, wa_id="255700000001", name="Asha"))
    quote = DeliveryQuote(
        distance_km=1.0,
        resolution_method=ResolutionMethod.EXACT_STREET_MATCH,
        confidence=1.0,
        fee=2500,
        district="Temeke",
        ward="Keko",
        resolved_street="Bora",
    )

    order = event_loop.run_until_complete(OrderRepository(db).create(_placed(quote)))

    db.add.assert_called_once_with(order)
    assert order.customer_id == 3
    assert order.status == "pending"
    assert order.street == "Bora"
    assert order.km == 1.0
    assert order.resolution_method == "exact-street-match"
    assert order.total == 242_500
    [item] = order.items
    assert (item.sku, item.qty, item.unit_price) == ("SOAP", 2, 120_000)


def test_outside_order_has_no_distance(event_loop):
    db = _db_returning(Customer(id=3, wa_id="255700000001"))
    order = event_loop.run_until_complete(OrderRepository(db).create(_placed(mode="outside")))
    assert order.km is None
    assert order.resolution_method is None


def test_find_by_id_returns_summary(event_loop):
    row = Order(id=12, status="paid", total=40_000, customer_name="Asha", created_at=datetime(2026, 1, 5))
    book = SqlOrderBook(session_factory=_factory(_db_returning(row)))
    summary = event_loop.run_until_complete(book.find_by_id(12))
    assert summary.order_id == 12
    assert summary.status == "paid"
    assert summary.total == 40_000
    assert summary.customer_name == "Asha"


def test_find_latest_by_name_missing(event_loop):
    book = SqlOrderBook(session_factory=_factory(_db_returning(None)))
    assert event_loop.run_until_complete(book.find_latest_by_name("Nobody")) is None


def test_list_for_customer_returns_summaries(event_loop):
    rows = [
        Order(id=12, status="pending", total=242_500, created_at=datetime(2026, 3, 2)),
        Order(id=9, status="delivered", total=40_000, created_at=datetime(2026, 1, 5)),
    ]
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    book = SqlOrderBook(session_factory=_factory(db))

    summaries = event_loop.run_until_complete(book.list_for_customer("255700000001", 8))

    assert [(s.order_id, s.status) for s in summaries] == [(12, "pending"), (9, "delivered")]
    assert all(s.items == () for s in summaries)
    sql = str(db.execute.await_args.args[0])
    assert "customers.wa_id" in sql
    assert "LIMIT" in sql


def test_find_for_customer_includes_items(event_loop):
    row = Order(id=12, status="pending", total=242_500, customer_name="Asha")
    row.items = [OrderItem(sku="SOAP", name="Sabuni Asili", qty=2, unit_price=120_000)]
    book = SqlOrderBook(session_factory=_factory(_db_returning(row)))
    summary = event_loop.run_until_complete(book.find_for_customer(12, "255700000001"))
    assert summary.items == (("Sabuni Asili", 2),)
    assert summary.is_pending


def test_find_for_customer_missing(event_loop):
    book = SqlOrderBook(session_factory=_factory(_db_returning(None)))
    assert event_loop.run_until_complete(book.find_for_customer(12, "255799999999")) is None


def test_cancel_only_touches_pending_orders(event_loop):
    result = MagicMock()
    result.rowcount = 1
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    book = SqlOrderBook(session_factory=_factory(db))

    assert event_loop.run_until_complete(book.cancel_order(12, "255700000001")) is True
    db.commit.assert_awaited_once()
    stmt = db.execute.await_args.args[0]
    sql = str(stmt)
    assert sql.startswith("UPDATE orders")
    assert "customers.wa_id" in sql
    assert "pending" in stmt.compile().params.values()


def test_cancel_reports_nothing_changed(event_loop):
    result = MagicMock()
    result.rowcount = 0
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    book = SqlOrderBook(session_factory=_factory(db))
    assert event_loop.run_until_complete(book.cancel_order(9, "255700000001")) is False
