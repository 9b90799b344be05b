"""
Chat request/response schemas and the stream event union.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class ChatRequest(BaseModel):
    """Inbound chat message. Presence checks happen in the orchestrator."""
    message: Optional[str] = Field(None, description="Customer message text")
    conversation_id: Optional[str] = Field(None, alias="conversationId", description="Client-held conversation ID")
    shop_id: Optional[str] = Field(None, alias="shopId", description="Shop identifier")
    customer_id: Optional[str] = Field(None, alias="customerId", description="Logged-in customer ID")
    shop_domain: Optional[str] = Field(None, alias="shopDomain", description="Shop domain")

    class Config:
        populate_by_name = True


class ToolOutcome(BaseModel):
    """Result or error of one tool call in a buffered reply."""
    tool: str
    result: Optional[Any] = None
    error: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"tool": self.tool, "error": self.error}
        return {"tool": self.tool, "result": self.result}


class ChatResponse(BaseModel):
    """Buffered (non-streaming) chat reply."""
    conversation_id: str = Field(..., alias="conversationId")
    message: str = ""
    tool_results: List[ToolOutcome] = Field(default_factory=list, alias="toolResults")

    class Config:
        populate_by_name = True

    def to_wire(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "message": self.message,
            "toolResults": [outcome.to_wire() for outcome in self.tool_results],
        }


# Stream events: {"type": ..., "data": {...}}

class TextData(BaseModel):
    content: str


class ToolCallData(BaseModel):
    tool: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolResultData(BaseModel):
    tool: str
    result: Any = None


class ToolErrorData(BaseModel):
    tool: str
    error: str


class DoneData(BaseModel):
    conversation_id: str = Field(..., alias="conversationId")

    class Config:
        populate_by_name = True


class TextEvent(BaseModel):
    type: Literal["text"] = "text"
    data: TextData


class ToolCallEvent(BaseModel):
    type: Literal["tool_call"] = "tool_call"
    data: ToolCallData


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    data: ToolResultData


class ToolErrorEvent(BaseModel):
    type: Literal["tool_error"] = "tool_error"
    data: ToolErrorData


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"
    data: DoneData


StreamEvent = Annotated[
    Union[TextEvent, ToolCallEvent, ToolResultEvent, ToolErrorEvent, DoneEvent],
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter = TypeAdapter(StreamEvent)


def text_event(content: str) -> TextEvent:
    return TextEvent(data=TextData(content=content))


def tool_call_event(tool: str, arguments: Dict[str, Any]) -> ToolCallEvent:
    return ToolCallEvent(data=ToolCallData(tool=tool, arguments=arguments))


def tool_result_event(tool: str, result: Any) -> ToolResultEvent:
    return ToolResultEvent(data=ToolResultData(tool=tool, result=result))


def tool_error_event(tool: str, error: str) -> ToolErrorEvent:
    return ToolErrorEvent(data=ToolErrorData(tool=tool, error=error))


def done_event(conversation_id: str) -> DoneEvent:
    return DoneEvent(data=DoneData(conversation_id=conversation_id))
