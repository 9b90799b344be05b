"""
Shopify Storefront API client for GraphQL calls.
"""

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .exceptions import (
    ShopifyConfigurationError,
    ShopifyConnectionError,
    ShopifyTimeoutError,
    shopify_error_from_response,
    shopify_graphql_error_from_response,
)
from .graphql_queries import StorefrontQueries
from .models import ProductSummary, ShopifyError, ShopPolicy, StorefrontConfig
from .parsers import parse_product_search_response, parse_shop_policies_response


class StorefrontClient:
    """Client for one shop's Storefront GraphQL endpoint."""

    def __init__(self, config: StorefrontConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the Storefront client."""
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Storefront-Access-Token": self.config.access_token,
                    "User-Agent": "ShopChatAssistant/1.0",
                },
            )
        return self._client

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _make_graphql_request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make a GraphQL request to the Storefront API."""
        if not self.config.access_token:
            raise ShopifyConfigurationError(
                f"Storefront access token is not configured for {self.config.shop_domain}"
            )

        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        url = self.config.graphql_url
        try:
            logger.debug(f"Making Storefront GraphQL request to {url}")
            response = await self.client.post(url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout during Storefront request to {url}: {e}")
            raise ShopifyTimeoutError(f"Request timeout: {e}", timeout=self.config.timeout) from e
        except httpx.ConnectError as e:
            logger.error(f"Connection error during Storefront request to {url}: {e}")
            raise ShopifyConnectionError(f"Connection failed: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"Network error during Storefront request to {url}: {e}")
            raise ShopifyConnectionError(f"Network error: {e}") from e

        if response.status_code != 200:
            logger.error(f"Storefront request failed: {response.status_code} - {response.text}")
            try:
                body = response.json()
            except ValueError:
                body = {"error": response.text}
            raise shopify_error_from_response(response.status_code, body if isinstance(body, dict) else {})

        try:
            data = response.json()
        except ValueError as e:
            raise ShopifyError(f"Invalid JSON from Storefront API: {e}", response.status_code) from e

        if data.get("errors"):
            logger.error(f"GraphQL errors: {data['errors']}")
            raise shopify_graphql_error_from_response(data["errors"])
        return data

    async def search_products(self, query: str, first: int = 10) -> List[ProductSummary]:
        """Search the catalog by free text."""
        document, variables = StorefrontQueries.search_products(query, first)
        data = await self._make_graphql_request(document, variables)
        products = parse_product_search_response(data)
        logger.info(f"Storefront search on {self.config.shop_domain} for '{query}' returned {len(products)} products")
        return products

    async def get_policies(self) -> List[ShopPolicy]:
        """Fetch every published shop policy."""
        document, variables = StorefrontQueries.shop_policies()
        data = await self._make_graphql_request(document, variables)
        return parse_shop_policies_response(data)
