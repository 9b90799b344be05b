"""
Shopify-specific exception handling and error classes.
"""

from typing import Any, Dict, Optional

from .models import ShopifyError


class ShopifyConfigurationError(ShopifyError):
    """Error raised when a Storefront call cannot be made with the given config."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)


class ShopifyRateLimitError(ShopifyError):
    """Error raised when Shopify API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, 429, **kwargs)
        self.retry_after = retry_after


class ShopifyAuthenticationError(ShopifyError):
    """Error raised when Shopify authentication fails."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, 401, **kwargs)


class ShopifyNotFoundError(ShopifyError):
    """Error raised when Shopify resource is not found."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, 404, **kwargs)


class ShopifyServerError(ShopifyError):
    """Error raised when Shopify server error occurs."""

    def __init__(self, message: str, status_code: int = 500, **kwargs):
        super().__init__(message, status_code, **kwargs)


class ShopifyTimeoutError(ShopifyError):
    """Error raised when Shopify request times out."""

    def __init__(self, message: str, timeout: Optional[float] = None, **kwargs):
        super().__init__(message, 408, **kwargs)
        self.timeout = timeout


class ShopifyConnectionError(ShopifyError):
    """Error raised when Shopify connection fails."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, 503, **kwargs)


class ShopifyGraphQLError(ShopifyError):
    """Error raised when a GraphQL response carries an ``errors`` array."""

    def __init__(self, message: str, graphql_errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.graphql_errors = graphql_errors or []


def shopify_error_from_response(status_code: int, response_data: Dict[str, Any]) -> ShopifyError:
    """
    Create appropriate ShopifyError from HTTP response.

    Args:
        status_code: HTTP status code
        response_data: Response data from Shopify

    Returns:
        Appropriate ShopifyError subclass
    """
    error_message = f"Storefront request failed with status {status_code}"
    if isinstance(response_data.get("errors"), str):
        error_message = response_data["errors"]
    elif "error" in response_data:
        error_message = str(response_data["error"])

    if status_code in (401, 403):
        return ShopifyAuthenticationError(error_message, response=response_data)
    elif status_code == 404:
        return ShopifyNotFoundError(error_message, response=response_data)
    elif status_code == 429:
        return ShopifyRateLimitError(error_message, response=response_data)
    elif status_code >= 500:
        return ShopifyServerError(error_message, status_code, response=response_data)
    else:
        return ShopifyError(error_message, status_code, response_data)


def shopify_graphql_error_from_response(errors: list) -> ShopifyGraphQLError:
    """
    Create ShopifyGraphQLError from GraphQL errors.

    Args:
        errors: List of GraphQL error objects

    Returns:
        ShopifyGraphQLError
    """
    if not errors:
        return ShopifyGraphQLError("Unknown GraphQL error")

    error_messages = []
    for error in errors:
        if isinstance(error, dict):
            message = error.get("message", "Unknown error")
            code = (error.get("extensions") or {}).get("code")
            error_messages.append(f"{message} (code: {code})" if code else message)
        else:
            error_messages.append(str(error))

    return ShopifyGraphQLError(
        f"GraphQL errors: {'; '.join(error_messages)}",
        graphql_errors=errors,
    )


def is_retryable_error(error: ShopifyError) -> bool:
    """
    Check if an error is transient and worth one more attempt.

    Args:
        error: ShopifyError instance

    Returns:
        True if error is retryable, False otherwise
    """
    if isinstance(error, (ShopifyServerError, ShopifyConnectionError, ShopifyTimeoutError)):
        return True

    return error.status_code in [502, 503, 504]
