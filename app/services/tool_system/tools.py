"""
Tool declarations for the storefront chat assistant.
The catalog is fixed and process-wide; declarations are read-only after import.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ToolDeclaration(BaseModel):
    """A callable tool as advertised to the model."""
    name: str
    description: str
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    read_only: bool = True

    @property
    def required_parameters(self) -> List[str]:
        return list(self.input_schema.get("required", []))

    def to_function_schema(self) -> Dict[str, Any]:
        """Convert to the chat-completions function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


class ToolRegistry:
    """Registry for managing tool declarations."""

    def __init__(self, declarations: Optional[List[ToolDeclaration]] = None):
        self._tools: Dict[str, ToolDeclaration] = {}
        for declaration in declarations if declarations is not None else _default_declarations():
            self._tools[declaration.name] = declaration

    def list_tools(self) -> List[ToolDeclaration]:
        """All declarations in registration order."""
        return list(self._tools.values())

    def get_tool(self, name: str) -> Optional[ToolDeclaration]:
        return self._tools.get(name)


def _default_declarations() -> List[ToolDeclaration]:
    return [
        ToolDeclaration(
            name="search_shop_catalog",
            description=(
                "Search the store's product catalog by natural language query. "
                "Returns matching products with id, title, price, currency, image URL and one variant id."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Natural language search query for products",
                    },
                },
                "required": ["query"],
            },
        ),
        ToolDeclaration(
            name="get_cart",
            description="Get the current shopping cart contents for the customer.",
            input_schema={
                "type": "object",
                "properties": {
                    "cartId": {
                        "type": "string",
                        "description": "Optional cart ID. If not provided, returns current session cart.",
                    },
                },
            },
        ),
        ToolDeclaration(
            name="update_cart",
            description="Add, update, or remove items from the shopping cart.",
            input_schema={
                "type": "object",
                "properties": {
                    "cartId": {
                        "type": "string",
                        "description": "Optional cart ID. If not provided, uses current session cart.",
                    },
                    "items": {
                        "type": "array",
                        "description": "Array of cart items to add or update",
                        "items": {
                            "type": "object",
                            "properties": {
                                "variantId": {"type": "string"},
                                "quantity": {"type": "number"},
                            },
                        },
                    },
                },
                "required": ["items"],
            },
            read_only=False,
        ),
        ToolDeclaration(
            name="search_shop_policies_and_faqs",
            description=(
                "Search store policies (shipping, returns, privacy, terms) and FAQ content. "
                "Returns every policy when nothing matches the query."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search query for policies or FAQs",
                    },
                },
                "required": ["query"],
            },
        ),
        ToolDeclaration(
            name="get_order_status",
            description="Get order status and tracking information by order number or email.",
            input_schema={
                "type": "object",
                "properties": {
                    "orderNumber": {
                        "type": "string",
                        "description": "Order number (e.g., #1001)",
                    },
                    "email": {
                        "type": "string",
                        "description": "Customer email address",
                    },
                },
            },
        ),
    ]


# Global tool registry instance
tool_registry = ToolRegistry()
