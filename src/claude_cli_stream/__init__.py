"""claude-cli-stream - typed streaming client for the Claude Code CLI.

Environment variables:
    CCS_CLI_PATH: Default claude executable (default: PATH search)
    CCS_TIMEOUT_MS: Default per-query timeout in ms (default 300000)
    CCS_STDERR_MAX_BYTES: stderr capture cap (default 1048576)
    CCS_KILL_TIMEOUT: Seconds to wait for a killed process (default 1.0)
    CCS_DEBUG: Log raw process output at DEBUG (default false)

Usage:
    async with ClaudeClient() as client:
        async for message in client.query("Explain this repo"):
            print(message)
"""

__version__ = "0.1.0"

from .client import ClaudeClient, MessageStream
from .config import Config, get_config, load_config, reload_config
from .errors import (
    ClaudeSDKError,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    CLITimeoutError,
    ConfigurationError,
    ProcessError,
)
from .models import (
    AssistantMessage,
    ContentBlock,
    Error,
    McpHttpServerConfig,
    McpServerConfig,
    McpSSEServerConfig,
    McpStdioServerConfig,
    Message,
    Outcome,
    PermissionMode,
    QueryOptions,
    QueryRequest,
    ResultMessage,
    Success,
    SystemMessage,
    TextBlock,
    Timeout,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from .orchestrator import QueryOrchestrator
from .parsers import parse_message
from .runtime import ProcessFactory, ProcessSpec, ProcessTransport, find_cli

__all__ = [
    "__version__",
    # Client
    "ClaudeClient",
    "MessageStream",
    "QueryOrchestrator",
    "ProcessTransport",
    "ProcessFactory",
    "ProcessSpec",
    "find_cli",
    "parse_message",
    # Config
    "Config",
    "get_config",
    "load_config",
    "reload_config",
    # Errors
    "ClaudeSDKError",
    "CLIConnectionError",
    "CLINotFoundError",
    "CLIJSONDecodeError",
    "ProcessError",
    "CLITimeoutError",
    "ConfigurationError",
    # Models
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ContentBlock",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ResultMessage",
    "Message",
    "PermissionMode",
    "McpStdioServerConfig",
    "McpSSEServerConfig",
    "McpHttpServerConfig",
    "McpServerConfig",
    "QueryOptions",
    "QueryRequest",
    "Success",
    "Error",
    "Timeout",
    "Outcome",
]
