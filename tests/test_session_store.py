# tests/test_session_store.py
"""Tests for the session model, cart math and session store backends."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from dukabot.domain.models.session import CartItem, Contact, FlowStep, Language, Session
from dukabot.domain.services.cart import add_to_cart, cart_total
from dukabot.infrastructure.cache.session_store import InMemorySessionStore, RedisSessionStore

WA_ID = "255700000001"


# ── Cart ─────────────────────────────────────────────────


def test_same_sku_and_price_merge():
    cart = []
    for qty in (1, 2, 4):
        add_to_cart(cart, CartItem("SOAP", "Sabuni Asili", qty, 120_000))
    assert len(cart) == 1
    assert cart[0].qty == 7
    assert cart_total(cart) == 7 * 120_000


def test_same_sku_different_price_stays_separate():
    cart = []
    add_to_cart(cart, CartItem("SOAP", "Sabuni Asili", 1, 120_000))
    add_to_cart(cart, CartItem("SOAP", "Sabuni Asili", 1, 100_000))
    assert [i.unit_price for i in cart] == [120_000, 100_000]


def test_add_to_cart_copies_item():
    item = CartItem("OIL", "Mafuta", 1, 30_000)
    cart = add_to_cart([], item)
    add_to_cart(cart, CartItem("OIL", "Mafuta", 1, 30_000))
    assert item.qty == 1


@pytest.mark.parametrize("qty, price", [(0, 100), (-1, 100), (1, -5)])
def test_cart_item_rejects_bad_values(qty, price):
    with pytest.raises(ValueError):
        CartItem("X", "X", qty, price)


# ── Session model ────────────────────────────────────────


def test_pending_item_overrides_cart():
    s = Session(customer_id=WA_ID, cart=[CartItem("OIL", "Mafuta", 2, 30_000)])
    assert s.subtotal() == 60_000
    s.pending_item = CartItem("SOAP", "Sabuni", 1, 120_000)
    assert [i.sku for i in s.checkout_items()] == ["SOAP"]
    assert s.subtotal() == 120_000


def test_session_dict_round_trip_keeps_every_field():
    s = Session(
        customer_id=WA_ID,
        language=Language.EN,
        flow_step=FlowStep.ASK_STREET,
        cart=[CartItem("OIL", "Mafuta", 2, 30_000)],
        pending_item=CartItem("SOAP", "Sabuni", 1, 120_000),
        qty_sku="OIL",
        contact=Contact(name="Asha", phone="0700000000", district="Temeke", ward="Keko"),
        street_page=1,
        checkout_total=125_000,
        agent_mode=True,
    )
    assert Session.from_dict(json.loads(json.dumps(s.to_dict()))) == s


def test_clear_checkout_returns_to_idle():
    s = Session(
        customer_id=WA_ID,
        flow_step=FlowStep.WAIT_PROOF,
        cart=[CartItem("OIL", "Mafuta", 1, 30_000)],
        contact=Contact(name="Asha"),
        checkout_total=40_000,
    )
    s.clear_checkout()
    assert s.flow_step is FlowStep.IDLE
    assert s.cart == [] and s.pending_item is None
    assert s.contact == Contact()
    assert s.checkout_total is None


def test_reset_flow_drops_quantity_question():
    s = Session(customer_id=WA_ID, flow_step=FlowStep.ASK_QUANTITY, qty_sku="OIL", cart=[CartItem("OIL", "Mafuta", 1, 30_000)])
    s.reset_flow()
    assert s.flow_step is FlowStep.IDLE
    assert s.qty_sku is None
    assert len(s.cart) == 1


# ── In-memory store ──────────────────────────────────────


def test_get_creates_idle_default(event_loop):
    store = InMemorySessionStore()
    session = event_loop.run_until_complete(store.get(WA_ID))
    assert session.customer_id == WA_ID
    assert session.flow_step is FlowStep.IDLE
    assert session.language is Language.SW


def test_put_stores_a_snapshot(event_loop):
    store = InMemorySessionStore()

    async def scenario():
        s = await store.get(WA_ID)
        s.flow_step = FlowStep.ASK_NAME_INSIDE
        await store.put(WA_ID, s)
        s.flow_step = FlowStep.ASK_GPS  # not persisted
        return await store.get(WA_ID)

    assert event_loop.run_until_complete(scenario()).flow_step is FlowStep.ASK_NAME_INSIDE


def test_concurrent_updates_are_serialised(event_loop):
    store = InMemorySessionStore()

    async def add_one(session):
        await asyncio.sleep(0)
        add_to_cart(session.cart, CartItem("OIL", "Mafuta", 1, 30_000))

    async def scenario():
        await asyncio.gather(*(store.update(WA_ID, add_one) for _ in range(50)))
        return await store.get(WA_ID)

    session = event_loop.run_until_complete(scenario())
    assert len(session.cart) == 1
    assert session.cart[0].qty == 50


def test_update_returns_mutator_result(event_loop):
    store = InMemorySessionStore()

    def switch(session):
        session.language = session.language.other()
        return session.language

    assert event_loop.run_until_complete(store.update(WA_ID, switch)) is Language.EN
    assert event_loop.run_until_complete(store.get(WA_ID)).language is Language.EN


def test_different_customers_do_not_block(event_loop):
    store = InMemorySessionStore()

    async def scenario():
        async with store.lock("a"):
            async with store.lock("b"):
                return True

    assert event_loop.run_until_complete(asyncio.wait_for(scenario(), timeout=1))


# ── Redis store ──────────────────────────────────────────


def _redis_client(stored=None):
    client = MagicMock()
    client.get = AsyncMock(return_value=stored)
    client.set = AsyncMock()
    client.delete = AsyncMock()
    return client


def test_redis_get_missing_returns_default(event_loop):
    store = RedisSessionStore(client=_redis_client(None))
    session = event_loop.run_until_complete(store.get(WA_ID))
    assert session == Session(customer_id=WA_ID)


def test_redis_unreadable_json_falls_back_to_fresh_session(event_loop):
    store = RedisSessionStore(client=_redis_client("{broken"))
    session = event_loop.run_until_complete(store.get(WA_ID))
    assert session.flow_step is FlowStep.IDLE


def test_redis_put_uses_key_and_ttl(event_loop):
    client = _redis_client()
    store = RedisSessionStore(client=client, ttl_seconds=600)
    s = Session(customer_id=WA_ID, flow_step=FlowStep.ASK_DISTRICT)
    event_loop.run_until_complete(store.put(WA_ID, s))

    key, payload = client.set.await_args.args
    assert key == f"wa:session:{WA_ID}"
    assert client.set.await_args.kwargs["ex"] == 600
    assert json.loads(payload)["flow_step"] == "ASK_DISTRICT"


def test_redis_update_takes_the_customer_lock(event_loop):
    stored = json.dumps(Session(customer_id=WA_ID).to_dict())
    client = _redis_client(stored)
    store = RedisSessionStore(client=client)

    def go_track(session):
        session.flow_step = FlowStep.TRACK_BY_NAME

    event_loop.run_until_complete(store.update(WA_ID, go_track))
    assert client.lock.call_args.args[0] == f"wa:session-lock:{WA_ID}"
    assert json.loads(client.set.await_args.args[1])["flow_step"] == "TRACK_BY_NAME"


def test_redis_store_requires_url_or_client():
    with pytest.raises(RuntimeError):
        RedisSessionStore()
