from sqlalchemy import BigInteger, Column, DateTime, Float, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from dukabot.infrastructure.db.base import Base


class Customer(Base):
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True)
    wa_id = Column(String(32), unique=True, index=True, nullable=False)
    name = Column(String(200))
    phone = Column(String(32))
    language = Column(String(5), default="sw")
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    conversations = relationship("Conversation", back_populates="customer")
    orders = relationship("Order", back_populates="customer")


class Conversation(Base):
    __tablename__ = "conversations"
    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    agent_allowed = Column(Integer, default=0)
    last_user_message_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    customer = relationship("Customer", back_populates="conversations")
    messages = relationship("Message", back_populates="conversation")


class Message(Base):
    __tablename__ = "messages"
    id = Column(BigInteger, primary_key=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    wa_message_id = Column(String(128), unique=True)
    direction = Column(String(8), nullable=False)  # "inbound" | "outbound"
    type = Column(String(20), nullable=False)
    body = Column(Text)
    status = Column(String(20))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    conversation = relationship("Conversation", back_populates="messages")


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, server_default="pending")
    delivery_mode = Column(String(20), nullable=False)
    customer_name = Column(String(200), index=True)
    phone = Column(String(32))
    region = Column(String(100))
    district = Column(String(100))
    ward = Column(String(100))
    street = Column(String(200))
    km = Column(Float)
    resolution_method = Column(String(32))
    subtotal = Column(Integer, nullable=False)
    delivery_fee = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    order = relationship("Order", back_populates="items")


class WhatsAppDeadLetter(Base):
    __tablename__ = "whatsapp_dead_letters"
    id = Column(Integer, primary_key=True)
    to_number = Column(String(32), index=True)
    payload = Column(JSONB, nullable=False)
    failure_reason = Column(String(64), nullable=False)
    last_error = Column(Text)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
