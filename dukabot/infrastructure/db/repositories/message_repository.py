from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from dukabot.infrastructure.db.models import Conversation, Customer, Message


class CustomerRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_wa_id(self, wa_id: str) -> Customer | None:
        stmt = select(Customer).where(Customer.wa_id == wa_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(self, wa_id: str, name: Optional[str] = None) -> Customer:
        customer = await self.get_by_wa_id(wa_id)
        if customer is None:
            customer = Customer(wa_id=wa_id, name=name or None)
            self.db.add(customer)
            await self.db.flush()
        elif name and not customer.name:
            customer.name = name
        return customer


class ConversationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self, customer_id: int) -> Conversation:
        stmt = (
            select(Conversation)
            .where(Conversation.customer_id == customer_id)
            .order_by(Conversation.id.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        conversation = result.scalar_one_or_none()
        if conversation is None:
            conversation = Conversation(customer_id=customer_id)
            self.db.add(conversation)
            await self.db.flush()
        return conversation

    async def touch_inbound(self, conversation: Conversation, when: datetime) -> None:
        conversation.last_user_message_at = when


class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert_if_new(
        self,
        *,
        conversation_id: int,
        direction: str,
        type: str,
        body: str,
        wa_message_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Optional[int]:
        """Insert one message; a repeated ``wa_message_id`` is ignored and returns None."""
        stmt = (
            insert(Message)
            .values(
                conversation_id=conversation_id,
                direction=direction,
                type=type,
                body=body,
                wa_message_id=wa_message_id,
                status=status,
            )
            .on_conflict_do_nothing(index_elements=[Message.wa_message_id])
            .returning(Message.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
