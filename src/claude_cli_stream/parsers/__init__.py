"""Stream-json parsers.

Usage:
    from claude_cli_stream.parsers import parse_message

    message = parse_message({"type": "user", "message": {"content": "hi"}})
"""

from __future__ import annotations

from .claude import parse_content_block, parse_message

__all__ = [
    "parse_content_block",
    "parse_message",
]
