"""
Conversation persistence: find-or-create conversations, append messages,
replay ordered history.

Resolution of (shop, customer) is a read-then-write without a uniqueness
guard, so two simultaneous first messages from the same new customer can
create two conversations. Later lookups deterministically pick the most
recently updated one.
"""

from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import Database
from app.models.base import utcnow
from app.models.conversation import Conversation, Message, MessageRole
from app.utils.exceptions import PersistenceError


class ConversationStore:
    """Store for conversations and their messages."""

    def __init__(self, database: Database):
        self.database = database

    def find_or_create_conversation(self, shop_id: str, customer_id: Optional[str] = None) -> Conversation:
        """
        Resolve the active conversation for a shop/customer pair.

        Picks the most recently updated match; creates one when nothing
        matches. Guests (no customer id) always get a fresh conversation.
        """
        try:
            with self.database.session() as db:
                if customer_id:
                    existing = db.execute(
                        select(Conversation)
                        .where(Conversation.shop_id == shop_id, Conversation.customer_id == customer_id)
                        .order_by(Conversation.updated_at.desc(), Conversation.created_at.desc())
                        .limit(1)
                    ).scalar_one_or_none()
                    if existing is not None:
                        return existing

                now = utcnow()
                conversation = Conversation(
                    shop_id=shop_id,
                    customer_id=customer_id or None,
                    created_at=now,
                    updated_at=now,
                )
                db.add(conversation)
                db.commit()
                logger.info(f"Created conversation {conversation.id} for shop {shop_id}")
                return conversation
        except SQLAlchemyError as e:
            logger.error(f"Failed to resolve conversation for shop {shop_id}: {e}")
            raise PersistenceError(
                "Failed to resolve conversation",
                details={"shop_id": shop_id},
            ) from e

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        try:
            with self.database.session() as db:
                return db.get(Conversation, conversation_id)
        except SQLAlchemyError as e:
            raise PersistenceError(
                "Failed to load conversation",
                details={"conversation_id": conversation_id},
            ) from e

    def append_message(self, conversation_id: str, role: str, content: str) -> Message:
        """Persist one message and bump the conversation's freshness."""
        role_value = MessageRole(role).value
        try:
            with self.database.session() as db:
                conversation = db.get(Conversation, conversation_id)
                if conversation is None:
                    raise PersistenceError(
                        f"Conversation not found: {conversation_id}",
                        details={"conversation_id": conversation_id},
                    )

                created_at = self._next_timestamp(db, conversation_id)
                message = Message(
                    conversation_id=conversation_id,
                    role=role_value,
                    content=content,
                    created_at=created_at,
                )
                db.add(message)
                conversation.updated_at = created_at
                db.commit()
                return message
        except SQLAlchemyError as e:
            logger.error(f"Failed to save {role_value} message for conversation {conversation_id}: {e}")
            raise PersistenceError(
                "Failed to save message",
                details={"conversation_id": conversation_id, "role": role_value},
            ) from e

    def load_history(self, conversation_id: str) -> List[Dict[str, str]]:
        """Full ordered history as ``{"role", "content"}`` dicts, oldest first."""
        try:
            with self.database.session() as db:
                rows = db.execute(
                    select(Message.role, Message.content)
                    .where(Message.conversation_id == conversation_id)
                    .order_by(Message.created_at.asc(), Message.id.asc())
                ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load history for conversation {conversation_id}: {e}")
            raise PersistenceError(
                "Failed to load conversation history",
                details={"conversation_id": conversation_id},
            ) from e

        return [{"role": role, "content": content} for role, content in rows]

    @staticmethod
    def _next_timestamp(db, conversation_id: str) -> datetime:
        # Never earlier than the newest stored message, even if the clock steps back
        now = utcnow()
        latest = db.execute(
            select(Message.created_at)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        if latest is not None and latest > now:
            return latest
        return now
