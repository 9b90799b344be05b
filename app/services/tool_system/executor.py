"""
Tool executor: runs one named tool call against the Storefront backend.
"""

import time
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from app.core.config import settings
from app.integrations.shopify.client import StorefrontClient
from app.integrations.shopify.exceptions import is_retryable_error
from app.integrations.shopify.models import CartLine, ShopifyError, ShopPolicy, StorefrontConfig
from app.services.cache_service import PolicyCache
from app.services.tool_system.tools import ToolRegistry, tool_registry
from app.utils.exceptions import ToolExecutionError, UnknownToolError


class ToolExecutor:
    """Executes tool calls for one shop within one turn."""

    def __init__(
        self,
        shop_domain: str,
        access_token: str = "",
        registry: Optional[ToolRegistry] = None,
        policy_cache: Optional[PolicyCache] = None,
        client: Optional[StorefrontClient] = None,
        max_retries: Optional[int] = None,
    ):
        self.shop_domain = shop_domain
        self.registry = registry or tool_registry
        self.policy_cache = policy_cache
        self.max_retries = settings.TOOL_MAX_RETRIES if max_retries is None else max_retries
        self.client = client or StorefrontClient(StorefrontConfig(
            shop_domain=shop_domain,
            access_token=access_token,
            api_version=settings.STOREFRONT_API_VERSION,
            timeout=settings.TOOL_TIMEOUT,
        ))
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "search_shop_catalog": self._search_shop_catalog,
            "get_cart": self._get_cart,
            "update_cart": self._update_cart,
            "search_shop_policies_and_faqs": self._search_shop_policies_and_faqs,
            "get_order_status": self._get_order_status,
        }

    async def close(self):
        await self.client.close()

    async def execute(self, name: str, arguments: Dict[str, Any]) -> Any:
        """
        Execute a tool call and return its JSON-serializable result.

        Raises:
            UnknownToolError: the name is not in the catalog
            ToolExecutionError: missing required arguments or backend failure
        """
        declaration = self.registry.get_tool(name)
        handler = self._handlers.get(name)
        if declaration is None or handler is None:
            logger.warning(f"Unknown tool requested for shop {self.shop_domain}: {name}")
            raise UnknownToolError(name)

        missing = [param for param in declaration.required_parameters if arguments.get(param) in (None, "")]
        if missing:
            raise ToolExecutionError(
                f"Missing required parameter(s) for {name}: {', '.join(missing)}",
                tool_name=name,
                details={"missing": missing},
            )

        attempts = 1 + (self.max_retries if declaration.read_only else 0)
        start_time = time.time()
        for attempt in range(1, attempts + 1):
            try:
                result = await handler(arguments)
                logger.info(
                    f"Tool {name} for shop {self.shop_domain} succeeded in {time.time() - start_time:.2f}s"
                )
                return result
            except ShopifyError as e:
                if attempt < attempts and is_retryable_error(e):
                    logger.warning(f"Tool {name} attempt {attempt} failed for shop {self.shop_domain}, retrying: {e}")
                    continue
                logger.error(f"Tool {name} failed for shop {self.shop_domain}: {e}")
                raise ToolExecutionError(
                    f"Failed to execute {name}: {e}",
                    tool_name=name,
                    details={"status_code": e.status_code},
                ) from e
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Tool {name} rejected arguments for shop {self.shop_domain}: {e}")
                raise ToolExecutionError(f"Invalid arguments for {name}: {e}", tool_name=name) from e

    # Catalog
    async def _search_shop_catalog(self, params: Dict[str, Any]) -> Dict[str, Any]:
        products = await self.client.search_products(str(params["query"]))
        return {"products": [product.model_dump(by_alias=True) for product in products]}

    # Cart (not yet backed by Storefront cart mutations)
    async def _get_cart(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "cartId": params.get("cartId") or "current",
            "items": [],
            "total": "0.00",
            "currency": "USD",
            "message": "Cart functionality requires cart creation via Storefront API",
        }

    async def _update_cart(self, params: Dict[str, Any]) -> Dict[str, Any]:
        items = params.get("items") or []
        if not isinstance(items, list):
            raise ToolExecutionError("items must be an array", tool_name="update_cart")
        if not all(isinstance(item, dict) for item in items):
            raise ToolExecutionError("items must be an array of objects", tool_name="update_cart")
        lines = [CartLine.model_validate(item).model_dump(by_alias=True) for item in items]
        return {
            "cartId": params.get("cartId") or "new",
            "items": lines,
            "message": "Cart update functionality requires Storefront API cart mutations",
        }

    # Policies
    async def _search_shop_policies_and_faqs(self, params: Dict[str, Any]) -> Dict[str, Any]:
        query = str(params["query"])
        policies = await self._load_policies()
        matching = [policy for policy in policies if policy.matches(query)]
        # Nothing matched: hand back every policy so the model still has something to cite
        selected = matching or policies
        return {"query": query, "policies": [policy.model_dump() for policy in selected]}

    async def _load_policies(self):
        if self.policy_cache is not None:
            cached = await self.policy_cache.get_policies(self.shop_domain)
            if cached is not None:
                return [ShopPolicy.model_validate(item) for item in cached]

        policies = await self.client.get_policies()
        if self.policy_cache is not None:
            await self.policy_cache.set_policies(self.shop_domain, [policy.model_dump() for policy in policies])
        return policies

    # Orders (requires Customer Account or Admin API access)
    async def _get_order_status(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "orderNumber": params.get("orderNumber") or "unknown",
            "email": params.get("email") or "unknown",
            "status": "pending",
            "message": (
                "Order status checking requires Customer Account API or Admin API access. "
                "Please implement using authenticated API calls."
            ),
        }
