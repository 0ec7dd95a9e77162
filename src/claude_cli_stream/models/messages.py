"""Message and content block models.

claude-cli-stream models v0.1.0

Typed counterparts of the objects the CLI writes in stream-json mode:
- Message: user / assistant / system / result
- ContentBlock: text / tool_use / tool_result (nested in assistant messages)

All models are frozen and JSON payloads (tool input, system data, usage)
are stored as read-only copies: mappings become MappingProxyType and lists
become tuples. Derived views (assistant text, token counts) are
plain properties and are recomputed on every access.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

__all__ = [
    # Content blocks
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ContentBlock",
    # Messages
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ResultMessage",
    "Message",
    # Factories
    "assistant_message",
    "user_message",
]


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def _empty_object() -> Mapping[str, Any]:
    return MappingProxyType({})


# Read-only JSON object, dumped back to plain dicts and lists
JsonObject = Annotated[Mapping[str, Any], AfterValidator(_freeze), PlainSerializer(_thaw)]


# =============================================================================
# Content blocks
# =============================================================================


class TextBlock(_FrozenModel):
    """Plain text produced by the assistant."""

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(_FrozenModel):
    """A tool invocation requested by the assistant.

    Attributes:
        id: Tool use ID, referenced by the matching ToolResultBlock
        name: Tool name
        input: Tool input parameters
    """

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: JsonObject = Field(default_factory=_empty_object)


class ToolResultBlock(_FrozenModel):
    """The result of a tool invocation.

    Attributes:
        tool_use_id: ID of the tool use this result answers
        content: Result content (string or structured JSON), if any
        is_error: Whether the tool failed, if reported
    """

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: Any = None
    is_error: bool | None = None


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


# =============================================================================
# Messages
# =============================================================================


class UserMessage(_FrozenModel):
    """A user turn."""

    type: Literal["user"] = "user"
    content: str


class AssistantMessage(_FrozenModel):
    """An assistant turn made of ordered content blocks."""

    type: Literal["assistant"] = "assistant"
    content: tuple[ContentBlock, ...] = ()

    @property
    def text_blocks(self) -> list[TextBlock]:
        return [block for block in self.content if isinstance(block, TextBlock)]

    @property
    def tool_use_blocks(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def tool_result_blocks(self) -> list[ToolResultBlock]:
        return [block for block in self.content if isinstance(block, ToolResultBlock)]

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks, in order."""
        return "".join(block.text for block in self.text_blocks)

    def __add__(self, other: AssistantMessage) -> AssistantMessage:
        if not isinstance(other, AssistantMessage):
            return NotImplemented
        return AssistantMessage(content=self.content + other.content)


class SystemMessage(_FrozenModel):
    """A system event such as ``init``.

    Attributes:
        subtype: System message subtype
        data: The raw payload without its ``type`` key
    """

    type: Literal["system"] = "system"
    subtype: str
    data: JsonObject = Field(default_factory=_empty_object)


def _usage_int(usage: Mapping[str, Any] | None, key: str) -> int | None:
    if not usage:
        return None
    value = usage.get(key)
    # bool is an int subclass but never a token count
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


class ResultMessage(_FrozenModel):
    """Final summary of a query with cost and usage information.

    Attributes:
        subtype: Result subtype (e.g. ``success``)
        duration_ms: Total duration in milliseconds
        duration_api_ms: Time spent in API calls in milliseconds
        is_error: Whether the query ended in an error
        num_turns: Number of conversation turns
        session_id: Session identifier, usable with ``resume``
        total_cost_usd: Total cost in USD, if reported
        usage: Raw usage object, if reported
        result: Final result text, if reported
    """

    type: Literal["result"] = "result"
    subtype: str
    duration_ms: int
    duration_api_ms: int
    is_error: bool
    num_turns: int
    session_id: str
    total_cost_usd: float | None = None
    usage: JsonObject | None = None
    result: str | None = None

    @property
    def input_tokens(self) -> int | None:
        return _usage_int(self.usage, "input_tokens")

    @property
    def output_tokens(self) -> int | None:
        return _usage_int(self.usage, "output_tokens")

    @property
    def total_tokens(self) -> int | None:
        return _usage_int(self.usage, "total_tokens")


Message = Annotated[
    Union[UserMessage, AssistantMessage, SystemMessage, ResultMessage],
    Field(discriminator="type"),
]


def assistant_message(text: str) -> AssistantMessage:
    """Build a text-only assistant message."""
    return AssistantMessage(content=(TextBlock(text=text),))


def user_message(content: str) -> UserMessage:
    """Build a user message."""
    return UserMessage(content=content)
