"""Claude Code CLI stream-json message parser.

claude-cli-stream parsers v0.1.0

Converts one decoded JSON object from the CLI into a typed Message.

Claude Code CLI event types:
- user: {"type": "user", "message": {"content": "..."}}
- assistant: {"type": "assistant", "message": {"content": [blocks...]}}
- system: {"type": "system", "subtype": "init", ...}
- result: {"type": "result", "subtype": "success", "duration_ms": ..., ...}

Assistant content blocks:
- text: {"type": "text", "text": "..."}
- tool_use: {"type": "tool_use", "id": "...", "name": "...", "input": {...}}
- tool_result: {"type": "tool_result", "tool_use_id": "...", "content": ..., "is_error": ...}

Parsing never raises: unknown discriminators, missing required fields and
fields of the wrong JSON type all degrade to None, so one bad line cannot
abort the stream.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..models.messages import (
    AssistantMessage,
    ContentBlock,
    Message,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

__all__ = [
    "parse_message",
    "parse_content_block",
]

logger = logging.getLogger(__name__)


# =============================================================================
# Typed field accessors (wrong JSON type == absent)
# =============================================================================


def _str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _float(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _bool(data: dict[str, Any], key: str) -> bool | None:
    value = data.get(key)
    return value if isinstance(value, bool) else None


def _dict(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    return value if isinstance(value, dict) else None


# =============================================================================
# Content blocks
# =============================================================================


def _parse_text_block(block: dict[str, Any]) -> TextBlock | None:
    text = _str(block, "text")
    if text is None:
        return None
    return TextBlock(text=text)


def _parse_tool_use_block(block: dict[str, Any]) -> ToolUseBlock | None:
    block_id = _str(block, "id")
    name = _str(block, "name")
    if block_id is None or name is None:
        return None
    return ToolUseBlock(id=block_id, name=name, input=_dict(block, "input") or {})


def _parse_tool_result_block(block: dict[str, Any]) -> ToolResultBlock | None:
    tool_use_id = _str(block, "tool_use_id")
    if tool_use_id is None:
        return None
    return ToolResultBlock(
        tool_use_id=tool_use_id,
        content=block.get("content"),
        is_error=_bool(block, "is_error"),
    )


_BLOCK_DECODERS: dict[str, Callable[[dict[str, Any]], ContentBlock | None]] = {
    "text": _parse_text_block,
    "tool_use": _parse_tool_use_block,
    "tool_result": _parse_tool_result_block,
}


def parse_content_block(block: Any) -> ContentBlock | None:
    """Parse one assistant content block, or return None if it is malformed."""
    if not isinstance(block, dict):
        return None
    block_type = _str(block, "type")
    decoder = _BLOCK_DECODERS.get(block_type) if block_type is not None else None
    if decoder is None:
        return None
    return decoder(block)


# =============================================================================
# Messages
# =============================================================================


def _parse_user(data: dict[str, Any]) -> UserMessage | None:
    message = _dict(data, "message")
    if message is None:
        return None
    content = _str(message, "content")
    if content is None:
        return None
    return UserMessage(content=content)


def _parse_assistant(data: dict[str, Any]) -> AssistantMessage | None:
    message = _dict(data, "message")
    if message is None:
        return None
    content = message.get("content")
    if not isinstance(content, list):
        return None

    # Blocks are independent: a malformed block is dropped, not the message
    blocks: list[ContentBlock] = []
    for raw_block in content:
        block = parse_content_block(raw_block)
        if block is None:
            logger.debug(f"Dropping malformed content block: {str(raw_block)[:100]}")
            continue
        blocks.append(block)

    return AssistantMessage(content=tuple(blocks))


def _parse_system(data: dict[str, Any]) -> SystemMessage | None:
    subtype = _str(data, "subtype")
    if subtype is None:
        return None
    payload = {key: value for key, value in data.items() if key != "type"}
    return SystemMessage(subtype=subtype, data=payload)


def _parse_result(data: dict[str, Any]) -> ResultMessage | None:
    subtype = _str(data, "subtype")
    duration_ms = _int(data, "duration_ms")
    duration_api_ms = _int(data, "duration_api_ms")
    is_error = _bool(data, "is_error")
    num_turns = _int(data, "num_turns")
    session_id = _str(data, "session_id")

    if (
        subtype is None
        or duration_ms is None
        or duration_api_ms is None
        or is_error is None
        or num_turns is None
        or session_id is None
    ):
        return None

    return ResultMessage(
        subtype=subtype,
        duration_ms=duration_ms,
        duration_api_ms=duration_api_ms,
        is_error=is_error,
        num_turns=num_turns,
        session_id=session_id,
        total_cost_usd=_float(data, "total_cost_usd"),
        usage=_dict(data, "usage"),
        result=_str(data, "result"),
    )


_MESSAGE_DECODERS: dict[str, Callable[[dict[str, Any]], Message | None]] = {
    "user": _parse_user,
    "assistant": _parse_assistant,
    "system": _parse_system,
    "result": _parse_result,
}


def parse_message(data: Any) -> Message | None:
    """Parse one decoded JSON object into a Message.

    Args:
        data: Decoded JSON object from one stdout line

    Returns:
        The typed message, or None when the object is not a recognized,
        well-formed message
    """
    if not isinstance(data, dict):
        return None
    message_type = _str(data, "type")
    decoder = _MESSAGE_DECODERS.get(message_type) if message_type is not None else None
    if decoder is None:
        logger.debug(f"Ignoring event with unknown type: {data.get('type')!r}")
        return None

    message = decoder(data)
    if message is None:
        logger.debug(f"Dropping malformed {message_type} event: {str(data)[:100]}")
    return message

