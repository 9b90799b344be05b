"""
Parsers that turn Storefront GraphQL payloads into compact projections.
"""

from typing import Any, Dict, List, Optional

from .models import POLICY_FIELDS, ProductSummary, ShopPolicy


def _first_node(connection: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    edges = (connection or {}).get("edges") or []
    if not edges:
        return {}
    return edges[0].get("node") or {}


def parse_product_summary(node: Dict[str, Any]) -> ProductSummary:
    """Project one product node into the fields the assistant needs."""
    min_price = ((node.get("priceRange") or {}).get("minVariantPrice")) or {}
    return ProductSummary(
        id=node["id"],
        title=node.get("title", ""),
        handle=node.get("handle"),
        description=node.get("description"),
        price=min_price.get("amount"),
        currency=min_price.get("currencyCode"),
        image=_first_node(node.get("images")).get("url"),
        variant_id=_first_node(node.get("variants")).get("id"),
    )


def parse_product_search_response(data: Dict[str, Any]) -> List[ProductSummary]:
    products = ((data.get("data") or {}).get("products")) or {}
    return [parse_product_summary(edge["node"]) for edge in products.get("edges", [])]


def parse_shop_policies_response(data: Dict[str, Any]) -> List[ShopPolicy]:
    """Collect the policies that have a published body, in a fixed order."""
    shop = ((data.get("data") or {}).get("shop")) or {}
    policies = []
    for policy_type, field in POLICY_FIELDS:
        policy = shop.get(field) or {}
        if policy.get("body"):
            policies.append(ShopPolicy(
                type=policy_type,
                title=policy.get("title") or policy_type.title(),
                content=policy["body"],
            ))
    return policies
