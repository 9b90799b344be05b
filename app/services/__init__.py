"""
Service layer: chat orchestration, persistence stores and the completion client.
"""

from .chat_orchestrator import ChatOrchestrator, ShopResolver
from .conversation_store import ConversationStore
from .llm import CompletionClient
from .settings_store import SettingsStore

__all__ = ["ChatOrchestrator", "ShopResolver", "ConversationStore", "CompletionClient", "SettingsStore"]
