"""
Unit tests for chat turn orchestration.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.integrations.shopify.models import ProductSummary
from app.models.conversation import Conversation, Message
from app.prompts import PromptRegistry
from app.schemas.chat import ChatRequest
from app.services.chat_orchestrator import ChatOrchestrator, ShopResolver
from app.services.llm import CompletionClient
from app.services.tool_system.executor import ToolExecutor
from app.utils.exceptions import CompletionError, ConfigurationError, ValidationError

SHOP = "acme.myshopify.com"
PROMPTS = PromptRegistry({"standardAssistant": "You are a shop assistant."}, "standardAssistant")


@pytest.fixture
def storefront():
    client = AsyncMock()
    client.search_products.return_value = [
        ProductSummary(
            id="gid://shopify/Product/1001",
            title="Red Running Shoes",
            price="89.00",
            currency="USD",
            variant_id="gid://shopify/ProductVariant/5001",
        )
    ]
    client.get_policies.return_value = []
    return client


@pytest.fixture
def make_orchestrator(conversation_store, settings_store, policy_cache, storefront, completion_transport):
    """Orchestrator whose model replays ``chunks`` and whose tools hit a mocked storefront."""
    def build(chunks, status_code=200):
        transport = completion_transport(chunks, status_code=status_code)
        orchestrator = ChatOrchestrator(
            conversation_store,
            settings_store,
            policy_cache=policy_cache,
            prompts=PROMPTS,
            completion_factory=lambda api_key: CompletionClient(
                api_key=api_key,
                base_url="https://llm.example.com/v1",
                prompts=PROMPTS,
                transport=transport,
            ),
            executor_factory=lambda shop, token: ToolExecutor(
                shop, token, policy_cache=policy_cache, client=storefront, max_retries=0
            ),
        )
        orchestrator.transport = transport
        return orchestrator
    return build


@pytest.fixture
def configured_shop(settings_store):
    settings_store.update(SHOP, {"openai_key": "sk-shop", "storefront_access_token": "sf-token"})
    return SHOP


def count_rows(database, model):
    with database.session() as db:
        return db.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.mark.unit
class TestShopResolver:
    """Shop domain resolution and canonicalization."""

    def test_bare_handle_gets_suffix(self):
        resolver = ShopResolver(".myshopify.com")
        assert resolver.normalize("Acme") == "acme.myshopify.com"
        assert resolver.normalize("acme.myshopify.com") == "acme.myshopify.com"
        assert resolver.normalize("https://acme.myshopify.com/admin") == "acme.myshopify.com"
        assert resolver.normalize("shop.acme.com") == "shop.acme.com"
        assert resolver.normalize("acme.myshopify.com:443") == "acme.myshopify.com"
        assert resolver.normalize("https://Acme.myshopify.com:8443/apps/chatbot") == "acme.myshopify.com"
        assert resolver.normalize("acme:3000") == "acme.myshopify.com"
        assert resolver.normalize("  ") == ""

    def test_body_wins_over_header_and_query(self):
        resolver = ShopResolver(".myshopify.com")
        request = ChatRequest(message="hi", shopDomain="body-shop")
        assert resolver.resolve(request, "header-shop", "query-shop") == "body-shop.myshopify.com"
        assert resolver.resolve(ChatRequest(message="hi"), "header-shop", "query-shop") == "header-shop.myshopify.com"
        assert resolver.resolve(ChatRequest(message="hi"), None, "query-shop") == "query-shop.myshopify.com"

    def test_missing_shop(self):
        with pytest.raises(ValidationError) as exc_info:
            ShopResolver().resolve(ChatRequest(message="hi"))
        assert exc_info.value.message == "Missing shop domain"


@pytest.mark.unit
class TestChatOrchestrator:
    """End-to-end turns against in-memory stores."""

    @pytest.mark.asyncio
    async def test_missing_message_has_no_side_effects(self, make_orchestrator, database):
        orchestrator = make_orchestrator([])
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.prepare_turn(ChatRequest(shopDomain=SHOP, message="   "))

        assert exc_info.value.message == "Missing message"
        assert count_rows(database, Conversation) == 0
        assert count_rows(database, Message) == 0

    @pytest.mark.asyncio
    async def test_user_message_stored_verbatim(
        self, make_orchestrator, configured_shop, conversation_store, text_chunk
    ):
        orchestrator = make_orchestrator([text_chunk("Sure.")])

        ctx = await orchestrator.prepare_turn(ChatRequest(shopDomain=configured_shop, message="  red shoes\n"))
        await orchestrator.run_buffered(ctx)

        assert conversation_store.load_history(ctx.conversation_id)[0] == {
            "role": "user",
            "content": "  red shoes\n",
        }
        assert orchestrator.transport.requests[0]["messages"][1]["content"] == "  red shoes\n"

    @pytest.mark.asyncio
    async def test_missing_api_key_after_user_message_saved(
        self, make_orchestrator, database, monkeypatch
    ):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
        orchestrator = make_orchestrator([])

        with pytest.raises(ConfigurationError):
            await orchestrator.prepare_turn(ChatRequest(shopDomain=SHOP, message="hello"))
        assert count_rows(database, Message) == 1

    @pytest.mark.asyncio
    async def test_streaming_turn_event_order(
        self, make_orchestrator, configured_shop, conversation_store, text_chunk, tool_chunk
    ):
        orchestrator = make_orchestrator([
            text_chunk("Let me look. "),
            text_chunk("Here you go."),
            tool_chunk(0, call_id="call_1", name="search_shop_catalog", arguments="{\"query\": \"red shoes\"}"),
        ])
        events = []

        ctx = await orchestrator.prepare_turn(
            ChatRequest(shopDomain=configured_shop, message="find red shoes", customerId="cust-1")
        )
        reply = await orchestrator.stream_turn(ctx, events.append)

        assert [event.type for event in events] == ["text", "text", "tool_call", "tool_result", "done"]
        assert events[2].data.arguments == {"query": "red shoes"}
        assert events[3].data.result["products"][0]["title"] == "Red Running Shoes"
        assert events[-1].data.conversation_id == ctx.conversation_id
        assert reply.message == "Let me look. Here you go."

        history = conversation_store.load_history(ctx.conversation_id)
        assert history == [
            {"role": "user", "content": "find red shoes"},
            {"role": "assistant", "content": "Let me look. Here you go."},
        ]

    @pytest.mark.asyncio
    async def test_history_sent_to_model_includes_new_message(
        self, make_orchestrator, configured_shop, text_chunk
    ):
        orchestrator = make_orchestrator([text_chunk("Hi again")])
        request = ChatRequest(shopDomain=configured_shop, message="first", customerId="cust-1")
        await orchestrator.run_buffered(await orchestrator.prepare_turn(request))

        second = ChatRequest(shopDomain=configured_shop, message="second", customerId="cust-1")
        await orchestrator.run_buffered(await orchestrator.prepare_turn(second))

        sent = orchestrator.transport.requests[-1]["messages"]
        assert [m["content"] for m in sent] == ["You are a shop assistant.", "first", "Hi again", "second"]
        assert orchestrator.transport.requests[-1]["model"]

    @pytest.mark.asyncio
    async def test_unknown_tool_reports_error_and_turn_continues(
        self, make_orchestrator, configured_shop, text_chunk, tool_chunk
    ):
        orchestrator = make_orchestrator([
            text_chunk("Checking."),
            tool_chunk(0, call_id="call_1", name="delete_store", arguments="{}"),
            tool_chunk(1, call_id="call_2", name="get_cart", arguments="{}"),
        ])
        events = []

        ctx = await orchestrator.prepare_turn(ChatRequest(shopDomain=configured_shop, message="hi"))
        reply = await orchestrator.stream_turn(ctx, events.append)

        assert [event.type for event in events] == [
            "text", "tool_call", "tool_error", "tool_call", "tool_result", "done",
        ]
        assert events[2].data.error == "Unknown tool: delete_store"
        assert [outcome.to_wire() for outcome in reply.tool_results][0] == {
            "tool": "delete_store",
            "error": "Unknown tool: delete_store",
        }

    @pytest.mark.asyncio
    async def test_tool_failure_is_contained(
        self, make_orchestrator, configured_shop, storefront, text_chunk, tool_chunk
    ):
        storefront.search_products.side_effect = RuntimeError("socket closed")
        orchestrator = make_orchestrator([
            tool_chunk(0, call_id="call_1", name="search_shop_catalog", arguments="{\"query\": \"hat\"}"),
        ])

        ctx = await orchestrator.prepare_turn(ChatRequest(shopDomain=configured_shop, message="hats?"))
        reply = await orchestrator.run_buffered(ctx)

        assert reply.tool_results[0].error == "socket closed"
        assert reply.message == ""

    @pytest.mark.asyncio
    async def test_completion_failure_keeps_partial_text(
        self, make_orchestrator, configured_shop, conversation_store, text_chunk
    ):
        orchestrator = make_orchestrator([text_chunk("Our return window"), {"error": {"message": "overloaded"}}])
        events = []

        ctx = await orchestrator.prepare_turn(ChatRequest(shopDomain=configured_shop, message="returns?"))
        with pytest.raises(CompletionError):
            await orchestrator.stream_turn(ctx, events.append)

        assert [event.type for event in events] == ["text"]
        assert conversation_store.load_history(ctx.conversation_id)[-1] == {
            "role": "assistant",
            "content": "Our return window",
        }

    @pytest.mark.asyncio
    async def test_provider_error_before_text_persists_nothing(
        self, make_orchestrator, configured_shop, conversation_store
    ):
        orchestrator = make_orchestrator([], status_code=500)

        ctx = await orchestrator.prepare_turn(ChatRequest(shopDomain=configured_shop, message="hello"))
        with pytest.raises(CompletionError):
            await orchestrator.run_buffered(ctx)

        assert conversation_store.load_history(ctx.conversation_id) == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_buffered_and_streaming_persist_the_same(
        self, make_orchestrator, configured_shop, conversation_store, text_chunk, tool_chunk
    ):
        chunks = [
            text_chunk("Found one."),
            tool_chunk(0, call_id="call_1", name="search_shop_catalog", arguments="{\"query\": \"shoes\"}"),
        ]

        streamed_ctx = await make_orchestrator(chunks).prepare_turn(
            ChatRequest(shopDomain=configured_shop, message="shoes?")
        )
        streamed = await make_orchestrator(chunks).stream_turn(streamed_ctx, lambda event: None)

        buffered_ctx = await make_orchestrator(chunks).prepare_turn(
            ChatRequest(shopDomain=configured_shop, message="shoes?")
        )
        buffered = await make_orchestrator(chunks).run_buffered(buffered_ctx)

        assert streamed.message == buffered.message == "Found one."
        assert [o.to_wire() for o in streamed.tool_results] == [o.to_wire() for o in buffered.tool_results]
        assert conversation_store.load_history(streamed_ctx.conversation_id) == conversation_store.load_history(
            buffered_ctx.conversation_id
        )

    @pytest.mark.asyncio
    async def test_stored_prompt_type_is_used(self, make_orchestrator, settings_store, text_chunk):
        settings_store.update(SHOP, {"openai_key": "sk-shop", "system_prompt": "enthusiasticAssistant"})
        prompts = PromptRegistry(
            {"standardAssistant": "Plain.", "enthusiasticAssistant": "Excited!"}, "standardAssistant"
        )
        orchestrator = make_orchestrator([text_chunk("Yay")])
        orchestrator.prompts = prompts
        orchestrator.completion_factory = lambda api_key: CompletionClient(
            api_key=api_key, base_url="https://llm.example.com/v1", prompts=prompts, transport=orchestrator.transport
        )

        ctx = await orchestrator.prepare_turn(ChatRequest(shopDomain=SHOP, message="hi"))
        await orchestrator.run_buffered(ctx)

        assert ctx.prompt_type == "enthusiasticAssistant"
        assert ctx.api_key == "sk-shop"
        assert orchestrator.transport.requests[0]["messages"][0]["content"] == "Excited!"
