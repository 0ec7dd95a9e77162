"""Data models: messages, content blocks, query options and outcomes."""

from __future__ import annotations

from .messages import (
    AssistantMessage,
    ContentBlock,
    Message,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    assistant_message,
    user_message,
)
from .options import (
    DEFAULT_MAX_THINKING_TOKENS,
    McpHttpServerConfig,
    McpServerConfig,
    McpSSEServerConfig,
    McpStdioServerConfig,
    PermissionMode,
    QueryOptions,
    QueryRequest,
)
from .outcome import Error, Outcome, Success, Timeout

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
    "assistant_message",
    "user_message",
    # Options
    "PermissionMode",
    "McpStdioServerConfig",
    "McpSSEServerConfig",
    "McpHttpServerConfig",
    "McpServerConfig",
    "QueryOptions",
    "QueryRequest",
    "DEFAULT_MAX_THINKING_TOKENS",
    # Outcome
    "Success",
    "Error",
    "Timeout",
    "Outcome",
]
