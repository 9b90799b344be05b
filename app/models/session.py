"""
Shopify app session record.

Rows are written by the OAuth install flow, which lives outside this service.
Here they only back shop authentication for the merchant settings API.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ShopSession(Base):
    """Stored Shopify session (offline or online)."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    shop: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expires: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (now or datetime.utcnow())
