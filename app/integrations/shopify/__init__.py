"""
Shopify Storefront integration package.
"""

from .client import StorefrontClient
from .models import (
    ProductSummary,
    ShopifyError,
    ShopPolicy,
    StorefrontConfig,
)

__all__ = [
    "StorefrontClient",
    "ProductSummary",
    "ShopifyError",
    "ShopPolicy",
    "StorefrontConfig",
]
