"""Claude CLI command construction.

Command format:
    claude \
      --output-format stream-json --verbose \
      [--system-prompt "{system_prompt}"] \
      [--append-system-prompt "{append_system_prompt}"] \
      [--allowedTools a,b] \
      [--disallowedTools c,d] \
      [--permission-prompt-tool {tool}] \
      [--permission-mode {mode}] \
      [--max-turns {n}] \
      [--model {model}] \
      [--continue] \
      [--resume {session_id}] \
      [--mcp-config '{"mcpServers": {...}}'] \
      --print "{prompt}"

The order is fixed so the same options always produce the same argv.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from ..models.options import QueryOptions

__all__ = [
    "build_command",
    "build_env",
    "build_mcp_config",
    "ENTRYPOINT_ENV",
    "ENTRYPOINT_VALUE",
]

ENTRYPOINT_ENV = "CLAUDE_CODE_ENTRYPOINT"
ENTRYPOINT_VALUE = "sdk-py"


def build_mcp_config(options: QueryOptions) -> str:
    """Serialize the MCP server map into the ``--mcp-config`` JSON blob."""
    servers = {name: config.to_dict() for name, config in options.mcp_servers.items()}
    return json.dumps({"mcpServers": servers}, ensure_ascii=False)


def build_command(cli_path: Path | str, prompt: str, options: QueryOptions) -> list[str]:
    """Build the CLI argument vector.

    Args:
        cli_path: The claude executable
        prompt: The user prompt (always the final argument)
        options: Query options

    Returns:
        Command line argument list
    """
    cmd = [str(cli_path)]

    # Output format
    cmd.extend(["--output-format", "stream-json"])
    cmd.append("--verbose")  # stream-json requires --verbose in print mode

    # System prompt
    if options.system_prompt is not None:
        cmd.extend(["--system-prompt", options.system_prompt])
    if options.append_system_prompt is not None:
        cmd.extend(["--append-system-prompt", options.append_system_prompt])

    # Tool permissions
    if options.allowed_tools:
        cmd.extend(["--allowedTools", ",".join(options.allowed_tools)])
    if options.disallowed_tools:
        cmd.extend(["--disallowedTools", ",".join(options.disallowed_tools)])
    if options.permission_prompt_tool_name is not None:
        cmd.extend(["--permission-prompt-tool", options.permission_prompt_tool_name])
    if options.permission_mode is not None:
        cmd.extend(["--permission-mode", options.permission_mode.value])

    # Execution
    if options.max_turns is not None:
        cmd.extend(["--max-turns", str(options.max_turns)])
    if options.model is not None:
        cmd.extend(["--model", options.model])

    # Conversation
    if options.continue_conversation:
        cmd.append("--continue")
    if options.resume is not None:
        cmd.extend(["--resume", options.resume])

    # MCP servers
    if options.mcp_servers:
        cmd.extend(["--mcp-config", build_mcp_config(options)])

    # Prompt last
    cmd.extend(["--print", prompt])

    return cmd


def build_env() -> dict[str, str]:
    """Parent environment plus the SDK entrypoint marker."""
    env = dict(os.environ)
    env[ENTRYPOINT_ENV] = ENTRYPOINT_VALUE
    return env
