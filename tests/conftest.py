"""
Pytest configuration and shared fixtures for the storefront chat assistant.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from app.db.session import Database
from app.services.cache_service import PolicyCache
from app.services.conversation_store import ConversationStore
from app.services.session_store import SessionStore
from app.services.settings_store import SettingsStore


@pytest.fixture
def database() -> Database:
    """Fresh in-memory database per test."""
    db = Database("sqlite:///:memory:")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def conversation_store(database) -> ConversationStore:
    return ConversationStore(database)


@pytest.fixture
def settings_store(database) -> SettingsStore:
    return SettingsStore(database)


@pytest.fixture
def session_store(database) -> SessionStore:
    return SessionStore(database)


@pytest.fixture
def policy_cache() -> PolicyCache:
    """In-memory policy cache (no Redis)."""
    return PolicyCache(redis_url="", default_ttl=60)


# Completion provider stream helpers

@pytest.fixture
def text_chunk() -> Callable[[str], Dict[str, Any]]:
    def build(text: str) -> Dict[str, Any]:
        return {"choices": [{"index": 0, "delta": {"content": text}}]}
    return build


@pytest.fixture
def tool_chunk() -> Callable[..., Dict[str, Any]]:
    def build(
        index: int = 0,
        call_id: Optional[str] = None,
        name: Optional[str] = None,
        arguments: Optional[str] = None,
    ) -> Dict[str, Any]:
        delta: Dict[str, Any] = {"index": index, "function": {}}
        if call_id is not None:
            delta["id"] = call_id
            delta["type"] = "function"
        if name is not None:
            delta["function"]["name"] = name
        if arguments is not None:
            delta["function"]["arguments"] = arguments
        return {"choices": [{"index": 0, "delta": {"tool_calls": [delta]}}]}
    return build


@pytest.fixture
def completion_transport():
    """
    Build an ``httpx.MockTransport`` that answers ``/chat/completions`` with
    the given chunks as an SSE body. Sent request bodies are appended to
    ``transport.requests``.
    """
    def build(chunks: List[Dict[str, Any]], status_code: int = 200, done: bool = True) -> httpx.MockTransport:
        requests: List[Dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            if status_code != 200:
                return httpx.Response(status_code, json={"error": {"message": "upstream failure"}})
            body = "".join(f"data: {json.dumps(chunk)}\n\n" for chunk in chunks)
            if done:
                body += "data: [DONE]\n\n"
            return httpx.Response(200, text=body, headers={"Content-Type": "text/event-stream"})

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport
    return build


# Storefront API fixtures

@pytest.fixture
def sample_product_node() -> Dict[str, Any]:
    return {
        "id": "gid://shopify/Product/1001",
        "title": "Red Running Shoes",
        "handle": "red-running-shoes",
        "description": "Lightweight red shoes for road running",
        "priceRange": {"minVariantPrice": {"amount": "89.00", "currencyCode": "USD"}},
        "images": {"edges": [{"node": {"url": "https://cdn.example.com/red-shoes.jpg", "altText": "Red shoes"}}]},
        "variants": {
            "edges": [
                {
                    "node": {
                        "id": "gid://shopify/ProductVariant/5001",
                        "title": "Size 9",
                        "price": {"amount": "89.00", "currencyCode": "USD"},
                    }
                }
            ]
        },
    }


@pytest.fixture
def sample_policies_response() -> Dict[str, Any]:
    return {
        "data": {
            "shop": {
                "privacyPolicy": {"title": "Privacy Policy", "body": "We never sell your personal data."},
                "refundPolicy": {"title": "Refund Policy", "body": "Returns accepted within 30 days of delivery."},
                "termsOfService": None,
                "shippingPolicy": {"title": "Shipping Policy", "body": "Orders ship within 2 business days."},
            }
        }
    }


@pytest.fixture
def storefront_transport(sample_product_node, sample_policies_response):
    """Mock Storefront GraphQL endpoint; requests are recorded on ``transport.requests``."""
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        payload = json.loads(request.content)
        if "searchProducts" in payload["query"]:
            return httpx.Response(200, json={"data": {"products": {"edges": [{"node": sample_product_node}]}}})
        if "shopPolicies" in payload["query"]:
            return httpx.Response(200, json=sample_policies_response)
        return httpx.Response(400, json={"errors": "Unknown query"})

    transport = httpx.MockTransport(handler)
    transport.requests = requests
    return transport
