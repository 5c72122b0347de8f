from typing import List, Optional

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dukabot.domain.models.order import OrderPlaced, OrderSummary
from dukabot.infrastructure.db.models import Customer, Order, OrderItem
from dukabot.infrastructure.db.repositories.message_repository import CustomerRepository


def _summary(order: Order, with_items: bool = False) -> OrderSummary:
    return OrderSummary(
        order_id=order.id,
        status=order.status or "pending",
        total=order.total or 0,
        customer_name=order.customer_name or "",
        created_at=order.created_at,
        items=tuple((i.name, i.qty) for i in order.items) if with_items else (),
    )


class OrderRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, placed: OrderPlaced) -> Order:
        customer = await CustomerRepository(self.db).get_or_create(placed.customer_id, placed.contact.name)
        quote = placed.quote
        order = Order(
            customer_id=customer.id,
            status="pending",
            delivery_mode=placed.delivery_mode,
            customer_name=placed.contact.name,
            phone=placed.contact.phone,
            region=placed.contact.region,
            district=placed.contact.district,
            ward=placed.contact.ward,
            street=placed.contact.street,
            km=quote.distance_km if quote else None,
            resolution_method=quote.resolution_method.value if quote else None,
            subtotal=placed.subtotal,
            delivery_fee=placed.fee,
            total=placed.total,
            items=[
                OrderItem(sku=i.sku, name=i.name, qty=i.qty, unit_price=i.unit_price)
                for i in placed.items
            ],
        )
        self.db.add(order)
        await self.db.flush()
        return order

    async def get(self, order_id: int) -> Order | None:
        stmt = select(Order).where(Order.id == order_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def latest_by_name(self, name: str) -> Order | None:
        stmt = (
            select(Order)
            .where(func.lower(Order.customer_name) == name.strip().lower())
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_customer(self, wa_id: str, limit: int = 10) -> List[Order]:
        stmt = (
            select(Order)
            .join(Customer, Order.customer_id == Customer.id)
            .where(Customer.wa_id == wa_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_for_customer(self, order_id: int, wa_id: str) -> Order | None:
        stmt = (
            select(Order)
            .join(Customer, Order.customer_id == Customer.id)
            .where(Order.id == order_id, Customer.wa_id == wa_id)
            .options(selectinload(Order.items))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def cancel(self, order_id: int, wa_id: str) -> bool:
        """Only a pending order owned by ``wa_id`` changes; returns whether one did."""
        owner = select(Customer.id).where(Customer.wa_id == wa_id).scalar_subquery()
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.customer_id == owner, Order.status == "pending")
            .values(status="cancelled")
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0


class SqlOrderBook:
    """``OrderBook`` backed by Postgres; opens a short session per call."""

    def __init__(self, session_factory=None):
        if session_factory is None:
            from dukabot.core.db import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self._session_factory = session_factory

    async def place_order(self, order: OrderPlaced) -> Optional[int]:
        async with self._session_factory() as db:
            row = await OrderRepository(db).create(order)
            await db.commit()
            logger.success("Order {} stored for {} (total {})", row.id, order.customer_id, order.total)
            return row.id

    async def find_by_id(self, order_id: int) -> Optional[OrderSummary]:
        async with self._session_factory() as db:
            row = await OrderRepository(db).get(order_id)
            return _summary(row) if row else None

    async def find_latest_by_name(self, name: str) -> Optional[OrderSummary]:
        async with self._session_factory() as db:
            row = await OrderRepository(db).latest_by_name(name)
            return _summary(row) if row else None

    async def list_for_customer(self, customer_id: str, limit: int = 10) -> List[OrderSummary]:
        async with self._session_factory() as db:
            rows = await OrderRepository(db).list_for_customer(customer_id, limit)
            return [_summary(row) for row in rows]

    async def find_for_customer(self, order_id: int, customer_id: str) -> Optional[OrderSummary]:
        async with self._session_factory() as db:
            row = await OrderRepository(db).get_for_customer(order_id, customer_id)
            return _summary(row, with_items=True) if row else None

    async def cancel_order(self, order_id: int, customer_id: str) -> bool:
        async with self._session_factory() as db:
            cancelled = await OrderRepository(db).cancel(order_id, customer_id)
            await db.commit()
        if cancelled:
            logger.success("Order {} cancelled by {}", order_id, customer_id)
        else:
            logger.warning("Order {} not cancelled for {}: not pending or not theirs", order_id, customer_id)
        return cancelled
