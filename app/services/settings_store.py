"""
Per-shop settings persistence with find-or-create-on-read semantics.
"""

from typing import Any, Dict

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.db.session import Database
from app.models.store_settings import StoreSettings
from app.utils.exceptions import PersistenceError

UPDATABLE_FIELDS = ("openai_key", "system_prompt", "storefront_access_token")


class SettingsStore:
    """Store for ``StoreSettings`` rows."""

    def __init__(self, database: Database):
        self.database = database

    def get_or_create(self, shop_id: str) -> StoreSettings:
        """Return the shop's settings, creating an empty row on first read."""
        try:
            with self.database.session() as db:
                row = self._find(db, shop_id)
                if row is not None:
                    return row

                row = StoreSettings(shop_id=shop_id)
                db.add(row)
                try:
                    db.commit()
                except IntegrityError:
                    # Another request created the row first
                    db.rollback()
                    return self._find(db, shop_id)

                logger.info(f"Created default settings for shop {shop_id}")
                return row
        except SQLAlchemyError as e:
            logger.error(f"Failed to load settings for shop {shop_id}: {e}")
            raise PersistenceError("Failed to load store settings", details={"shop_id": shop_id}) from e

    def update(self, shop_id: str, changes: Dict[str, Any]) -> StoreSettings:
        """Upsert the given fields; keys outside the settings schema are ignored."""
        updates = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        try:
            with self.database.session() as db:
                row = self._find(db, shop_id)
                if row is None:
                    row = StoreSettings(shop_id=shop_id)
                    db.add(row)
                for key, value in updates.items():
                    setattr(row, key, value)
                db.commit()
                logger.info(f"Updated settings for shop {shop_id}: {sorted(updates)}")
                return row
        except SQLAlchemyError as e:
            logger.error(f"Failed to update settings for shop {shop_id}: {e}")
            raise PersistenceError("Failed to update store settings", details={"shop_id": shop_id}) from e

    @staticmethod
    def _find(db, shop_id: str):
        return db.execute(
            select(StoreSettings).where(StoreSettings.shop_id == shop_id)
        ).scalar_one_or_none()
