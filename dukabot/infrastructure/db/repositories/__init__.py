from .message_repository import (
    ConversationRepository,
    CustomerRepository,
    MessageRepository,
)
from .order_repository import OrderRepository, SqlOrderBook

__all__ = [
    "CustomerRepository",
    "ConversationRepository",
    "MessageRepository",
    "OrderRepository",
    "SqlOrderBook",
]
