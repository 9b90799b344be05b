"""
GraphQL documents for the Shopify Storefront API.
"""

from typing import Any, Dict, Tuple


SEARCH_PRODUCTS_QUERY = """
query searchProducts($query: String!, $first: Int!) {
  products(first: $first, query: $query) {
    edges {
      node {
        id
        title
        handle
        description
        priceRange {
          minVariantPrice {
            amount
            currencyCode
          }
        }
        images(first: 1) {
          edges {
            node {
              url
              altText
            }
          }
        }
        variants(first: 1) {
          edges {
            node {
              id
              title
              price {
                amount
                currencyCode
              }
            }
          }
        }
      }
    }
  }
}
"""

SHOP_POLICIES_QUERY = """
query shopPolicies {
  shop {
    privacyPolicy {
      title
      body
    }
    refundPolicy {
      title
      body
    }
    termsOfService {
      title
      body
    }
    shippingPolicy {
      title
      body
    }
  }
}
"""


class StorefrontQueries:
    """Builds (document, variables) pairs for Storefront calls."""

    @classmethod
    def search_products(cls, query: str, first: int = 10) -> Tuple[str, Dict[str, Any]]:
        return SEARCH_PRODUCTS_QUERY, {"query": query, "first": first}

    @classmethod
    def shop_policies(cls) -> Tuple[str, Dict[str, Any]]:
        return SHOP_POLICIES_QUERY, {}
