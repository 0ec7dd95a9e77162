"""CCS environment variable configuration.

Environment variables:
    CCS_CLI_PATH: Default path of the claude executable
        - unset = search PATH and the well-known install locations
        - an explicit cli_path argument always wins

    CCS_TIMEOUT_MS: Default per-query timeout in milliseconds
        - default 300000 (5 minutes)
        - used when QueryOptions.timeout_ms is None

    CCS_STDERR_MAX_BYTES: Cap of the stderr ring buffer
        - default 1048576 (1 MiB), oldest bytes are evicted past the cap

    CCS_KILL_TIMEOUT: Seconds to wait for a killed process to be reaped
        - default 1.0, clamped to 0.1-10

    CCS_DEBUG: Debug mode
        - true/1/yes/on = log raw stdout/stderr of every process at DEBUG
        - false/0/no = off (default)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reload_config",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_STDERR_MAX_BYTES",
    "DEFAULT_KILL_TIMEOUT",
]

DEFAULT_TIMEOUT_MS = 300_000
DEFAULT_STDERR_MAX_BYTES = 1024 * 1024
DEFAULT_KILL_TIMEOUT = 1.0


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_positive_int(value: str | None, default: int) -> int:
    """Parse a positive integer; invalid or non-positive values fall back to default."""
    if not value or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_kill_timeout(value: str | None) -> float:
    """Parse the kill timeout environment variable."""
    if not value:
        return DEFAULT_KILL_TIMEOUT
    try:
        timeout = float(value)
        return max(0.1, min(timeout, 10.0))
    except ValueError:
        return DEFAULT_KILL_TIMEOUT


def _parse_path(value: str | None) -> Path | None:
    if not value or not value.strip():
        return None
    return Path(value.strip()).expanduser()


@dataclass(frozen=True)
class Config:
    """CCS configuration.

    Attributes:
        cli_path: Default claude executable, None = auto-discover
        default_timeout_ms: Timeout applied when options carry none
        stderr_max_bytes: Cap of the stderr ring buffer
        kill_timeout: Seconds to wait for a killed process to exit
        debug: Log raw process output at DEBUG level
    """

    cli_path: Path | None = None
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    stderr_max_bytes: int = DEFAULT_STDERR_MAX_BYTES
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    debug: bool = False

    def __repr__(self) -> str:
        return (
            f"Config(cli_path={self.cli_path or 'auto'}, "
            f"default_timeout_ms={self.default_timeout_ms}, "
            f"stderr_max_bytes={self.stderr_max_bytes}, "
            f"kill_timeout={self.kill_timeout}, "
            f"debug={self.debug})"
        )


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config(
        cli_path=_parse_path(os.environ.get("CCS_CLI_PATH")),
        default_timeout_ms=_parse_positive_int(
            os.environ.get("CCS_TIMEOUT_MS"), DEFAULT_TIMEOUT_MS
        ),
        stderr_max_bytes=_parse_positive_int(
            os.environ.get("CCS_STDERR_MAX_BYTES"), DEFAULT_STDERR_MAX_BYTES
        ),
        kill_timeout=_parse_kill_timeout(os.environ.get("CCS_KILL_TIMEOUT")),
        debug=_parse_bool(os.environ.get("CCS_DEBUG"), default=False),
    )


# Global configuration instance (lazily loaded)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
