"""
ORM models.
"""

from .base import Base
from .conversation import Conversation, Message, MessageRole
from .session import ShopSession
from .store_settings import StoreSettings

__all__ = [
    "Base",
    "Conversation",
    "Message",
    "MessageRole",
    "ShopSession",
    "StoreSettings",
]
