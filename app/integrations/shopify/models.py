"""
Shopify Storefront data models.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ShopifyError(Exception):
    """Custom exception for Shopify API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class StorefrontConfig(BaseModel):
    """Connection settings for one shop's Storefront API."""
    shop_domain: str
    access_token: str = ""
    api_version: str = "2025-04"
    timeout: float = 15.0

    @property
    def graphql_url(self) -> str:
        return f"https://{self.shop_domain}/api/{self.api_version}/graphql.json"


class ProductSummary(BaseModel):
    """Compact product projection returned to the model by catalog search."""
    id: str
    title: str
    handle: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    currency: Optional[str] = None
    image: Optional[str] = None
    variant_id: Optional[str] = Field(None, alias="variantId")

    class Config:
        populate_by_name = True


class ShopPolicy(BaseModel):
    """One published shop policy."""
    type: str
    title: str
    content: str

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title or body."""
        needle = query.lower()
        return needle in self.title.lower() or needle in self.content.lower()


class CartLine(BaseModel):
    """Requested cart line change."""
    variant_id: Optional[str] = Field(None, alias="variantId")
    quantity: Optional[int] = None

    class Config:
        populate_by_name = True


POLICY_FIELDS: List[tuple] = [
    ("privacy", "privacyPolicy"),
    ("refund", "refundPolicy"),
    ("terms", "termsOfService"),
    ("shipping", "shippingPolicy"),
]
