"""
Custom exception classes for the application.
"""

from typing import Any, Dict, Optional


class ShopAssistantException(Exception):
    """Base exception class for the storefront chat assistant."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ShopAssistantException):
    """Exception raised when a chat request is missing required input."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)


class AuthenticationError(ShopAssistantException):
    """Exception raised when a shop cannot be authenticated."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)


class PersistenceError(ShopAssistantException):
    """Exception raised when the conversation or settings store fails."""

    def __init__(self, message: str = "Database error", **kwargs):
        super().__init__(message, error_code="DATABASE_ERROR", **kwargs)


class ConfigurationError(ShopAssistantException):
    """Exception raised for unrecoverable configuration problems."""

    def __init__(self, message: str = "Configuration error", **kwargs):
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)


class CompletionError(ShopAssistantException):
    """Exception raised when the completion provider fails mid-turn."""

    def __init__(
        self,
        message: str = "LLM processing error",
        model_name: Optional[str] = None,
        **kwargs
    ):
        self.model_name = model_name
        super().__init__(message, error_code="LLM_ERROR", **kwargs)


class ToolExecutionError(ShopAssistantException):
    """Exception raised when a single tool call fails."""

    def __init__(self, message: str, tool_name: Optional[str] = None, **kwargs):
        self.tool_name = tool_name
        kwargs.setdefault("error_code", "TOOL_EXECUTION_ERROR")
        super().__init__(message, **kwargs)


class UnknownToolError(ToolExecutionError):
    """Exception raised when the model calls a tool that is not in the catalog."""

    def __init__(self, tool_name: str):
        super().__init__(
            f"Unknown tool: {tool_name}",
            tool_name=tool_name,
            error_code="UNKNOWN_TOOL",
        )


class ArgumentParseError(ShopAssistantException):
    """Exception raised when streamed tool-call arguments are not a JSON object."""

    def __init__(self, message: str, tool_name: Optional[str] = None, **kwargs):
        self.tool_name = tool_name
        super().__init__(message, error_code="ARGUMENT_PARSE_ERROR", **kwargs)
