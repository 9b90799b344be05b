"""
Conversation and message models.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, generate_uuid, utcnow


class MessageRole(str, Enum):
    """Roles a stored message can carry."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Conversation(Base):
    """One customer's chat thread with a shop."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    shop_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    messages: Mapped[List["Message"]] = relationship(back_populates="conversation")

    __table_args__ = (
        Index("ix_conversations_shop_customer_updated", "shop_id", "customer_id", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Conversation {self.id} shop={self.shop_id} customer={self.customer_id}>"


class Message(Base):
    """
    A single chat message. Immutable once written.

    The integer primary key doubles as the insertion-order tie breaker for
    messages that share a timestamp.
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)

    conversation: Mapped[Conversation] = relationship(back_populates="messages")

    def __repr__(self) -> str:
        return f"<Message {self.id} {self.role} conversation={self.conversation_id}>"
