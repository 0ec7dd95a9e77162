"""Query option types.

claude-cli-stream models v0.1.0

Defines the immutable per-query configuration snapshot, the permission mode
enum and the MCP server configurations serialized into ``--mcp-config``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Union

from ..errors import ConfigurationError

__all__ = [
    "PermissionMode",
    "McpStdioServerConfig",
    "McpSSEServerConfig",
    "McpHttpServerConfig",
    "McpServerConfig",
    "QueryOptions",
    "QueryRequest",
    "DEFAULT_MAX_THINKING_TOKENS",
]

DEFAULT_MAX_THINKING_TOKENS = 8000


class PermissionMode(str, Enum):
    """Permission mode for tool execution.

    - DEFAULT: the CLI asks before dangerous operations
    - ACCEPT_EDITS: file edits are accepted automatically
    - BYPASS_PERMISSIONS: every tool runs without asking
    """

    DEFAULT = "default"
    ACCEPT_EDITS = "acceptEdits"
    BYPASS_PERMISSIONS = "bypassPermissions"


@dataclass(frozen=True)
class McpStdioServerConfig:
    """MCP server launched as a local subprocess.

    Attributes:
        command: Command to execute
        args: Command arguments
        env: Extra environment variables
        type: Server type, None omits the key for older CLIs
    """

    command: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    type: str | None = "stdio"

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.type is not None:
            result["type"] = self.type
        result["command"] = self.command
        if self.args:
            result["args"] = list(self.args)
        if self.env:
            result["env"] = dict(self.env)
        return result


@dataclass(frozen=True)
class McpSSEServerConfig:
    """MCP server reached over server-sent events."""

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    type: str = "sse"

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "url": self.url}
        if self.headers:
            result["headers"] = dict(self.headers)
        return result


@dataclass(frozen=True)
class McpHttpServerConfig:
    """MCP server reached over streamable HTTP."""

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    type: str = "http"

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "url": self.url}
        if self.headers:
            result["headers"] = dict(self.headers)
        return result


McpServerConfig = Union[McpStdioServerConfig, McpSSEServerConfig, McpHttpServerConfig]


@dataclass(frozen=True)
class QueryOptions:
    """Immutable options snapshot for one query.

    Use ``with_changes()`` to derive a modified copy.

    Attributes:
        allowed_tools: Tool names the CLI may use
        disallowed_tools: Tool names the CLI must not use
        system_prompt: Replaces the default system prompt
        append_system_prompt: Appended to the default system prompt
        max_thinking_tokens: Thinking token budget
        mcp_tools: MCP tool names
        mcp_servers: Named MCP server configurations
        permission_mode: Permission mode for tool execution
        permission_prompt_tool_name: MCP tool answering permission prompts
        continue_conversation: Continue the most recent conversation
        resume: Session ID to resume
        max_turns: Maximum conversation turns
        model: Model identifier
        cwd: Working directory of the CLI process
        timeout_ms: Query deadline, None = configured default
    """

    allowed_tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()
    system_prompt: str | None = None
    append_system_prompt: str | None = None
    max_thinking_tokens: int = DEFAULT_MAX_THINKING_TOKENS
    mcp_tools: tuple[str, ...] = ()
    mcp_servers: Mapping[str, McpServerConfig] = field(default_factory=dict)
    permission_mode: PermissionMode | None = None
    permission_prompt_tool_name: str | None = None
    continue_conversation: bool = False
    resume: str | None = None
    max_turns: int | None = None
    model: str | None = None
    cwd: Path | None = None
    timeout_ms: int | None = None

    def __post_init__(self) -> None:
        """Copy collections into read-only snapshots, cwd to Path and permission_mode to the enum."""
        # frozen dataclass: normalize via object.__setattr__
        for name in ("allowed_tools", "disallowed_tools", "mcp_tools"):
            value = getattr(self, name)
            if isinstance(value, str):
                raise ConfigurationError(f"{name} must be a sequence of tool names")
            object.__setattr__(self, name, tuple(value))
        object.__setattr__(self, "mcp_servers", MappingProxyType(dict(self.mcp_servers)))
        if isinstance(self.cwd, str):
            object.__setattr__(self, "cwd", Path(self.cwd))
        if isinstance(self.permission_mode, str) and not isinstance(
            self.permission_mode, PermissionMode
        ):
            try:
                object.__setattr__(self, "permission_mode", PermissionMode(self.permission_mode))
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown permission mode: {self.permission_mode}"
                ) from e
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ConfigurationError("timeout_ms must be positive")
        if self.max_turns is not None and self.max_turns <= 0:
            raise ConfigurationError("max_turns must be positive")

    def with_changes(self, **changes: Any) -> QueryOptions:
        """Return a new snapshot with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class QueryRequest:
    """A prompt paired with its options."""

    prompt: str
    options: QueryOptions = field(default_factory=QueryOptions)

    def __post_init__(self) -> None:
        if not self.prompt:
            raise ConfigurationError("Prompt must not be empty")
