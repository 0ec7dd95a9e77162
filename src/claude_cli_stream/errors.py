"""Exception hierarchy for claude-cli-stream.

claude-cli-stream v0.1.0

Every failure raised by the transport derives from ClaudeSDKError so callers
can handle the whole family with one except clause:

- CLIConnectionError: the process could not be started
- CLINotFoundError: no CLI executable (or no Node.js runtime) was found
- CLIJSONDecodeError: a stdout line was not valid JSON
- ProcessError: the CLI exited with a non-zero code
- CLITimeoutError: the query deadline expired
- ConfigurationError: invalid options or a closed client
"""

from __future__ import annotations

__all__ = [
    "ClaudeSDKError",
    "CLIConnectionError",
    "CLINotFoundError",
    "CLIJSONDecodeError",
    "ProcessError",
    "CLITimeoutError",
    "ConfigurationError",
]

CLI_INSTALL_HINT = (
    "Claude Code CLI not found. Please install it using:\n"
    "\n"
    "    npm install -g @anthropic-ai/claude-code\n"
    "\n"
    "Prerequisites:\n"
    "- Node.js 18 or higher\n"
    "- npm (comes with Node.js)\n"
    "\n"
    "After installation, make sure the 'claude' command is available in your PATH."
)

NODE_INSTALL_HINT = (
    "Claude Code requires Node.js, which is not installed.\n"
    "\n"
    "Install Node.js from: https://nodejs.org/\n"
    "\n"
    "After installing Node.js, install Claude Code:\n"
    "    npm install -g @anthropic-ai/claude-code"
)


class ClaudeSDKError(Exception):
    """Base exception for all SDK errors."""
    pass


class CLIConnectionError(ClaudeSDKError):
    """The CLI process could not be started."""
    pass


class CLINotFoundError(CLIConnectionError):
    """The CLI executable (or the Node.js runtime it needs) is missing.

    Attributes:
        runtime_missing: True when Node.js itself was not found
    """

    def __init__(self, message: str = CLI_INSTALL_HINT, runtime_missing: bool = False) -> None:
        self.runtime_missing = runtime_missing
        super().__init__(message)


class CLIJSONDecodeError(ClaudeSDKError):
    """A stdout line could not be decoded as a JSON object.

    Attributes:
        line: The raw line that failed to decode
        original_error: The underlying decoder exception
    """

    def __init__(self, line: str, original_error: Exception | None = None) -> None:
        self.line = line
        self.original_error = original_error
        super().__init__(f"Failed to decode JSON from CLI output: {line[:200]}")


class ProcessError(ClaudeSDKError):
    """The CLI process exited with a non-zero code.

    Attributes:
        exit_code: Process exit code
        stderr: Captured stderr (newest bytes of the ring buffer)
    """

    def __init__(self, exit_code: int, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Claude CLI process exited with code {exit_code}: {stderr}")


class CLITimeoutError(ClaudeSDKError):
    """The query did not finish before its deadline.

    Attributes:
        timeout_ms: The deadline that expired, in milliseconds
    """

    def __init__(self, timeout_ms: int, message: str | None = None) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message or f"Query timed out after {timeout_ms}ms")


class ConfigurationError(ClaudeSDKError):
    """Invalid configuration or use of a closed client."""
    pass
