"""
Read access to stored Shopify sessions, used to authenticate merchants.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import Database
from app.models.session import ShopSession
from app.utils.exceptions import AuthenticationError, PersistenceError


class SessionStore:
    """Looks up ``ShopSession`` rows."""

    def __init__(self, database: Database):
        self.database = database

    def save(self, shop_session: ShopSession) -> ShopSession:
        try:
            with self.database.session() as db:
                merged = db.merge(shop_session)
                db.commit()
                return merged
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to save session", details={"shop": shop_session.shop}) from e

    def authenticate_shop(self, shop: str, access_token: Optional[str], now: Optional[datetime] = None) -> ShopSession:
        """
        Return the unexpired session for ``shop`` holding ``access_token``.

        Raises:
            AuthenticationError: no token, or no live session matches it
        """
        if not access_token:
            raise AuthenticationError("Missing access token")

        try:
            with self.database.session() as db:
                rows = db.execute(
                    select(ShopSession).where(ShopSession.shop == shop, ShopSession.access_token == access_token)
                ).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load sessions for shop {shop}: {e}")
            raise PersistenceError("Failed to load session", details={"shop": shop}) from e

        for shop_session in rows:
            if not shop_session.is_expired(now):
                return shop_session

        logger.warning(f"Rejected settings access for shop {shop}")
        raise AuthenticationError("Invalid or expired session")
