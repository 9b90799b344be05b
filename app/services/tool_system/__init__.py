"""
Tool system package.

Declares the storefront tools offered to the model and executes the calls it makes.
"""

from .tools import ToolDeclaration, ToolRegistry, tool_registry
from .executor import ToolExecutor

__all__ = [
    "ToolDeclaration",
    "ToolRegistry",
    "tool_registry",
    "ToolExecutor",
]
