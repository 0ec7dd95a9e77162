"""Runtime module for CLI discovery, process management and line streaming.

This module provides isolated process execution with reliable termination
and a timeout-bounded stream of decoded JSON objects from the Claude CLI.
"""

from __future__ import annotations

from .cli_locator import cli_search_paths, find_cli, verify_cli_available
from .command import build_command, build_env, build_mcp_config
from .process import (
    ProcessFactory,
    ProcessHandle,
    ProcessSpec,
    SubprocessFactory,
    SubprocessHandle,
    kill_process,
)
from .transport import ProcessTransport, StderrBuffer

__all__ = [
    "ProcessFactory",
    "ProcessHandle",
    "ProcessSpec",
    "SubprocessFactory",
    "SubprocessHandle",
    "kill_process",
    "find_cli",
    "cli_search_paths",
    "verify_cli_available",
    "build_command",
    "build_env",
    "build_mcp_config",
    "ProcessTransport",
    "StderrBuffer",
]
