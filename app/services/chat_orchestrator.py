"""
Chat turn orchestration.

A turn runs strictly in order: validate input, persist the user message,
load history and shop settings, stream the completion while dispatching
tool calls, persist the assistant reply, emit ``done``. Streaming and
buffered requests share the same loop and leave the same persisted state;
they differ only in whether events are forwarded as they happen.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger

from app.core.config import settings
from app.prompts import PromptRegistry
from app.schemas.chat import (
    ChatRequest,
    ChatResponse,
    ToolOutcome,
    done_event,
    text_event,
    tool_call_event,
    tool_error_event,
    tool_result_event,
)
from app.services.cache_service import PolicyCache
from app.services.conversation_store import ConversationStore
from app.services.llm import CompletionClient, StreamHandlers, ToolCall
from app.services.settings_store import SettingsStore
from app.services.tool_system.executor import ToolExecutor
from app.services.tool_system.tools import ToolRegistry, tool_registry
from app.utils.exceptions import (
    CompletionError,
    ConfigurationError,
    PersistenceError,
    ToolExecutionError,
    ValidationError,
)

Send = Callable[[Any], None]


class ShopResolver:
    """Resolves and canonicalizes the shop a chat request belongs to."""

    def __init__(self, domain_suffix: Optional[str] = None):
        self.domain_suffix = domain_suffix or settings.SHOP_DOMAIN_SUFFIX

    def resolve(
        self,
        request: ChatRequest,
        header_domain: Optional[str] = None,
        query_shop: Optional[str] = None,
    ) -> str:
        """Body field, then header, then query string."""
        for candidate in (request.shop_id, request.shop_domain, header_domain, query_shop):
            shop = self.normalize(candidate)
            if shop:
                return shop
        raise ValidationError("Missing shop domain", field="shop")

    def normalize(self, shop: Optional[str]) -> str:
        """
        Canonical store domain used as the persistence key.

        ``acme`` and ``acme.myshopify.com`` map to the same value. Anything that
        already looks like a domain is kept, minus scheme, port and path.
        """
        if not shop:
            return ""
        value = shop.strip().lower()
        if "://" in value:
            value = urlparse(value).netloc
        value = value.split("/", 1)[0].split(":", 1)[0]
        if not value:
            return ""
        if "." not in value:
            value = f"{value}{self.domain_suffix}"
        return value


@dataclass
class TurnContext:
    """Everything a turn needs once its input has been persisted."""
    shop_domain: str
    conversation_id: str
    history: List[Dict[str, str]]
    api_key: str
    storefront_token: str = ""
    prompt_type: Optional[str] = None
    customer_id: Optional[str] = None


@dataclass
class TurnState:
    text_parts: List[str] = field(default_factory=list)
    outcomes: List[ToolOutcome] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.text_parts)


class ChatOrchestrator:
    """Drives one chat turn against the stores, the model and the tools."""

    def __init__(
        self,
        conversations: ConversationStore,
        settings_store: SettingsStore,
        policy_cache: Optional[PolicyCache] = None,
        registry: Optional[ToolRegistry] = None,
        prompts: Optional[PromptRegistry] = None,
        shop_resolver: Optional[ShopResolver] = None,
        completion_factory: Optional[Callable[[str], CompletionClient]] = None,
        executor_factory: Optional[Callable[[str, str], ToolExecutor]] = None,
    ):
        self.conversations = conversations
        self.settings_store = settings_store
        self.policy_cache = policy_cache
        self.registry = registry or tool_registry
        self.prompts = prompts or PromptRegistry()
        self.shop_resolver = shop_resolver or ShopResolver()
        self.completion_factory = completion_factory or self._default_completion_client
        self.executor_factory = executor_factory or self._default_executor

    def _default_completion_client(self, api_key: str) -> CompletionClient:
        return CompletionClient(api_key=api_key, prompts=self.prompts)

    def _default_executor(self, shop_domain: str, access_token: str) -> ToolExecutor:
        return ToolExecutor(
            shop_domain,
            access_token,
            registry=self.registry,
            policy_cache=self.policy_cache,
        )

    async def prepare_turn(
        self,
        request: ChatRequest,
        header_domain: Optional[str] = None,
        query_shop: Optional[str] = None,
    ) -> TurnContext:
        """
        Validate the request, persist the user message and load context.

        Raises:
            ValidationError: missing shop or message, nothing persisted
            PersistenceError: the user message could not be stored
            ConfigurationError: no model key or no usable system prompt
        """
        shop_domain = self.shop_resolver.resolve(request, header_domain, query_shop)
        message = request.message or ""
        if not message.strip():
            raise ValidationError("Missing message", field="message")

        conversation = self.conversations.find_or_create_conversation(shop_domain, request.customer_id)
        self.conversations.append_message(conversation.id, "user", message)
        history = self.conversations.load_history(conversation.id)

        store_settings = self.settings_store.get_or_create(shop_domain)
        api_key = store_settings.openai_key or settings.OPENAI_API_KEY
        if not api_key:
            logger.error(f"No completion API key configured for shop {shop_domain}")
            raise ConfigurationError(
                "Completion API key is not configured",
                details={"shop_id": shop_domain},
            )

        storefront_token = store_settings.storefront_access_token or settings.STOREFRONT_ACCESS_TOKEN
        if not storefront_token:
            logger.warning(
                f"Storefront access token not configured for shop {shop_domain}; catalog and policy tools will fail"
            )

        prompt_type = store_settings.system_prompt or None
        # Fail before streaming starts if no prompt resolves
        self.prompts.resolve(prompt_type)

        logger.info(
            f"Prepared turn for shop {shop_domain}, conversation {conversation.id}, {len(history)} message(s) of history"
        )
        return TurnContext(
            shop_domain=shop_domain,
            conversation_id=conversation.id,
            history=history,
            api_key=api_key,
            storefront_token=storefront_token,
            prompt_type=prompt_type,
            customer_id=request.customer_id,
        )

    async def stream_turn(self, ctx: TurnContext, send: Send) -> ChatResponse:
        """Run the turn, forwarding every event to ``send`` as it happens."""
        return await self._run(ctx, send)

    async def run_buffered(self, ctx: TurnContext) -> ChatResponse:
        """Run the turn and return the final text plus all tool outcomes."""
        return await self._run(ctx, None)

    async def _run(self, ctx: TurnContext, send: Optional[Send]) -> ChatResponse:
        state = TurnState()
        executor = self.executor_factory(ctx.shop_domain, ctx.storefront_token)
        completion = self.completion_factory(ctx.api_key)

        def emit(event):
            if send is not None:
                send(event)

        def on_text(text: str):
            state.text_parts.append(text)
            emit(text_event(text))

        async def on_tool_use(call: ToolCall):
            emit(tool_call_event(call.name, call.arguments))
            try:
                result = await executor.execute(call.name, call.arguments)
            except ToolExecutionError as e:
                logger.error(
                    f"Tool {call.name} failed for shop {ctx.shop_domain}, conversation {ctx.conversation_id}: {e.message}"
                )
                state.outcomes.append(ToolOutcome(tool=call.name, error=e.message))
                emit(tool_error_event(call.name, e.message))
            except Exception as e:
                logger.exception(
                    f"Unexpected error in tool {call.name} for shop {ctx.shop_domain}, "
                    f"conversation {ctx.conversation_id}: {e}"
                )
                state.outcomes.append(ToolOutcome(tool=call.name, error=str(e)))
                emit(tool_error_event(call.name, str(e)))
            else:
                state.outcomes.append(ToolOutcome(tool=call.name, result=result))
                emit(tool_result_event(call.name, result))

        handlers = StreamHandlers(on_text=on_text, on_tool_use=on_tool_use)
        try:
            await completion.stream_conversation(
                ctx.history,
                handlers,
                prompt_type=ctx.prompt_type,
                tools=self.registry.list_tools(),
            )
        except CompletionError as e:
            logger.error(
                f"Completion failed for shop {ctx.shop_domain}, conversation {ctx.conversation_id}: {e.message}"
            )
            if state.text_parts:
                self._persist_assistant_message(ctx, state.text)
            raise
        finally:
            await executor.close()
            await completion.close()

        if state.text:
            self._persist_assistant_message(ctx, state.text)
        emit(done_event(ctx.conversation_id))

        logger.info(
            f"Completed turn for shop {ctx.shop_domain}, conversation {ctx.conversation_id} "
            f"with {len(state.outcomes)} tool call(s)"
        )
        return ChatResponse(
            conversation_id=ctx.conversation_id,
            message=state.text,
            tool_results=state.outcomes,
        )

    def _persist_assistant_message(self, ctx: TurnContext, text: str):
        # The customer already has the reply; a failed write is only logged
        try:
            self.conversations.append_message(ctx.conversation_id, "assistant", text)
        except PersistenceError as e:
            logger.error(
                f"Failed to save assistant message for shop {ctx.shop_domain}, "
                f"conversation {ctx.conversation_id}: {e.message}"
            )
