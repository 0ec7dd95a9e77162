"""Async filters over a message stream.

Usage:
    async for text in text_content(client.query("Explain this repo")):
        print(text)
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

from .models.messages import (
    AssistantMessage,
    Message,
    ResultMessage,
    SystemMessage,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

__all__ = [
    "assistant_messages",
    "user_messages",
    "system_messages",
    "result_messages",
    "text_content",
    "tool_uses",
    "tool_results",
    "successful_messages",
    "error_messages",
]


async def assistant_messages(
    messages: AsyncIterable[Message],
) -> AsyncIterator[AssistantMessage]:
    async for message in messages:
        if isinstance(message, AssistantMessage):
            yield message


async def user_messages(messages: AsyncIterable[Message]) -> AsyncIterator[UserMessage]:
    async for message in messages:
        if isinstance(message, UserMessage):
            yield message


async def system_messages(
    messages: AsyncIterable[Message],
) -> AsyncIterator[SystemMessage]:
    async for message in messages:
        if isinstance(message, SystemMessage):
            yield message


async def result_messages(
    messages: AsyncIterable[Message],
) -> AsyncIterator[ResultMessage]:
    async for message in messages:
        if isinstance(message, ResultMessage):
            yield message


async def text_content(messages: AsyncIterable[Message]) -> AsyncIterator[str]:
    """Concatenated text of each assistant message, skipping empty ones."""
    async for message in assistant_messages(messages):
        text = message.text
        if text:
            yield text


async def tool_uses(messages: AsyncIterable[Message]) -> AsyncIterator[ToolUseBlock]:
    async for message in assistant_messages(messages):
        for block in message.tool_use_blocks:
            yield block


async def tool_results(
    messages: AsyncIterable[Message],
) -> AsyncIterator[ToolResultBlock]:
    async for message in assistant_messages(messages):
        for block in message.tool_result_blocks:
            yield block


async def successful_messages(messages: AsyncIterable[Message]) -> AsyncIterator[Message]:
    """Every message except result messages flagged as errors."""
    async for message in messages:
        if isinstance(message, ResultMessage) and message.is_error:
            continue
        yield message


async def error_messages(
    messages: AsyncIterable[Message],
) -> AsyncIterator[ResultMessage]:
    async for message in result_messages(messages):
        if message.is_error:
            yield message
