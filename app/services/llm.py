"""
Streaming completion client for OpenAI-compatible chat completion APIs.

Text deltas are forwarded as they arrive. Tool-call fragments are buffered by
their ``index`` and only parsed once the provider has finished the response,
then dispatched one at a time.
"""

import inspect
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union

import httpx
from loguru import logger

from app.core.config import settings
from app.prompts import PromptRegistry
from app.services.tool_system.tools import ToolDeclaration
from app.utils.exceptions import ArgumentParseError, CompletionError


@dataclass
class ToolCall:
    """A fully assembled tool call with decoded arguments."""
    id: Optional[str]
    name: str
    arguments: Dict[str, Any]


@dataclass
class AssistantMessage:
    """Final assistant message of one completion."""
    content: str = ""
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)
    role: str = "assistant"


@dataclass
class StreamHandlers:
    """Caller-supplied callbacks for one streamed completion."""
    on_text: Optional[Callable[[str], None]] = None
    on_tool_use: Optional[Callable[[ToolCall], Union[Awaitable[None], None]]] = None
    on_message: Optional[Callable[[AssistantMessage], None]] = None


def parse_tool_arguments(raw: str, tool_name: Optional[str] = None) -> Dict[str, Any]:
    """Decode a complete argument string; an empty string means no arguments."""
    if not raw or not raw.strip():
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArgumentParseError(f"Invalid JSON arguments: {e}", tool_name=tool_name) from e
    if not isinstance(arguments, dict):
        raise ArgumentParseError(
            f"Arguments must be a JSON object, got {type(arguments).__name__}",
            tool_name=tool_name,
        )
    return arguments


class ToolCallAccumulator:
    """Collects streamed tool-call deltas into slots keyed by index."""

    def __init__(self):
        self._slots: List[Optional[Dict[str, Any]]] = []

    def add(self, delta: Dict[str, Any]):
        index = delta.get("index") or 0
        while len(self._slots) <= index:
            self._slots.append(None)

        slot = self._slots[index]
        if slot is None:
            # The provider sends the id with the first fragment only
            slot = {"id": delta.get("id"), "type": "function", "function": {"name": "", "arguments": ""}}
            self._slots[index] = slot

        function = delta.get("function") or {}
        if function.get("name"):
            slot["function"]["name"] += function["name"]
        if function.get("arguments"):
            slot["function"]["arguments"] += function["arguments"]

    def raw_calls(self) -> List[Dict[str, Any]]:
        """Accumulated calls in index order, arguments still as strings."""
        return [slot for slot in self._slots if slot is not None]

    def finalize(self) -> List[ToolCall]:
        """Parse every accumulated call, dropping those whose arguments do not decode."""
        calls = []
        for raw in self.raw_calls():
            name = raw["function"]["name"]
            try:
                arguments = parse_tool_arguments(raw["function"]["arguments"], name)
            except ArgumentParseError as e:
                logger.warning(f"Dropping tool call {raw['id']} ({name}): {e.message}")
                continue
            calls.append(ToolCall(id=raw["id"], name=name, arguments=arguments))
        return calls

    def __len__(self) -> int:
        return len(self.raw_calls())


class CompletionClient:
    """Client for a streamed chat completion with tool use."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        prompts: Optional[PromptRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url or settings.OPENAI_BASE_URL
        self.model = model or settings.DEFAULT_LLM_MODEL
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.prompts = prompts or PromptRegistry()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
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
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_request(
        self,
        history: List[Dict[str, str]],
        prompt_type: Optional[str] = None,
        tools: Optional[List[ToolDeclaration]] = None,
    ) -> Dict[str, Any]:
        """Build the request body: system prompt, full history, tool schemas."""
        system_prompt = self.prompts.resolve(prompt_type)
        request_data: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "system", "content": system_prompt}]
            + [{"role": msg["role"], "content": msg["content"]} for msg in history],
            "stream": True,
        }
        if tools:
            request_data["tools"] = [tool.to_function_schema() for tool in tools]
        return request_data

    async def iter_chunks(self, request_data: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        """Yield decoded SSE chunks until ``[DONE]`` or end of body."""
        try:
            async with self.client.stream("POST", "/chat/completions", json=request_data) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error(f"Completion API error with {self.model}: {response.status_code} - {body}")
                    raise CompletionError(
                        f"Completion provider returned {response.status_code}",
                        model_name=self.model,
                        details={"status_code": response.status_code},
                    )

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[5:].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError as e:
                        raise CompletionError(
                            f"Malformed stream chunk: {e}", model_name=self.model
                        ) from e
                    if isinstance(chunk, dict) and chunk.get("error"):
                        raise CompletionError(
                            f"Completion provider error: {chunk['error']}",
                            model_name=self.model,
                        )
                    yield chunk
        except httpx.TimeoutException as e:
            logger.error(f"Timeout streaming from model {self.model}: {e}")
            raise CompletionError("Completion request timed out", model_name=self.model) from e
        except httpx.HTTPError as e:
            logger.error(f"Request error streaming from model {self.model}: {e}")
            raise CompletionError(f"Completion request failed: {e}", model_name=self.model) from e

    async def stream_conversation(
        self,
        history: List[Dict[str, str]],
        handlers: StreamHandlers,
        prompt_type: Optional[str] = None,
        tools: Optional[List[ToolDeclaration]] = None,
    ) -> AssistantMessage:
        """
        Stream one completion over the full history.

        ``on_text`` fires for every text delta in arrival order. Once the
        response is complete each tool call is handed to ``on_tool_use`` in
        index order, awaiting each before the next. ``on_message`` fires
        once at the end.

        Raises:
            CompletionError: transport or provider failure while streaming
        """
        request_data = self.build_request(history, prompt_type, tools)
        accumulator = ToolCallAccumulator()
        content_parts: List[str] = []

        async for chunk in self.iter_chunks(request_data):
            choices = chunk.get("choices") or []
            if not choices:
                continue
            delta = choices[0].get("delta") or {}

            text = delta.get("content")
            if text:
                content_parts.append(text)
                if handlers.on_text:
                    handlers.on_text(text)

            for tool_delta in delta.get("tool_calls") or []:
                accumulator.add(tool_delta)

        if len(accumulator):
            logger.info(f"Completion from {self.model} requested {len(accumulator)} tool call(s)")

        if handlers.on_tool_use:
            for call in accumulator.finalize():
                result = handlers.on_tool_use(call)
                if inspect.isawaitable(result):
                    await result

        final_message = AssistantMessage(content="".join(content_parts), tool_calls=accumulator.raw_calls())
        if handlers.on_message:
            handlers.on_message(final_message)
        return final_message
