"""Claude CLI discovery.

Resolution order:
1. PATH (``claude``, then ``claude.cmd`` for Windows npm shims)
2. Well-known install locations
3. Failure, distinguishing a missing Node.js runtime from a missing CLI
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import anyio

from ..errors import NODE_INSTALL_HINT, CLINotFoundError
from .process import ProcessFactory, ProcessSpec, SubprocessFactory, kill_process

__all__ = [
    "find_cli",
    "verify_cli_available",
    "cli_search_paths",
]

logger = logging.getLogger(__name__)

# Seconds allowed for ``claude --version``
VERIFY_TIMEOUT = 30.0


def cli_search_paths() -> list[Path]:
    """Return the well-known install locations, in search order."""
    home = Path.home()
    return [
        home / ".claude" / "local" / "claude",
        home / ".claude" / "local" / "node_modules" / ".bin" / "claude",
        home / ".npm-global" / "bin" / "claude",
        Path("/usr/local/bin/claude"),
        home / ".local" / "bin" / "claude",
        home / "node_modules" / ".bin" / "claude",
        home / ".yarn" / "bin" / "claude",
        Path("/opt/homebrew/bin/claude"),
        Path("C:\\Program Files\\nodejs\\claude.cmd"),
        Path("C:\\Program Files (x86)\\nodejs\\claude.cmd"),
    ]


def find_cli() -> Path:
    """Locate the claude executable.

    Returns:
        Path of the executable

    Raises:
        CLINotFoundError: If neither the CLI nor a fallback location exists;
            ``runtime_missing`` is set when Node.js is absent too
    """
    for name in ("claude", "claude.cmd"):
        found = shutil.which(name)
        if found:
            logger.debug(f"Found CLI on PATH: {found}")
            return Path(found)

    for candidate in cli_search_paths():
        if candidate.is_file():
            logger.debug(f"Found CLI at well-known location: {candidate}")
            return candidate

    if shutil.which("node") is None:
        raise CLINotFoundError(NODE_INSTALL_HINT, runtime_missing=True)

    raise CLINotFoundError()


async def verify_cli_available(
    cli_path: Path | str | None = None,
    process_factory: ProcessFactory | None = None,
) -> Path:
    """Check that the CLI can be executed by running ``<cli> --version``.

    Args:
        cli_path: Explicit executable, None = find_cli()
        process_factory: Spawning implementation (default SubprocessFactory)

    Returns:
        The verified executable path

    Raises:
        CLINotFoundError: If the CLI is missing or fails to run
    """
    path = Path(cli_path) if cli_path is not None else find_cli()
    factory = process_factory or SubprocessFactory()

    try:
        process = await factory.spawn(ProcessSpec(argv=[str(path), "--version"]))
    except OSError as e:
        raise CLINotFoundError(f"Claude CLI at {path} could not be started: {e}") from e

    with anyio.move_on_after(VERIFY_TIMEOUT) as scope:
        returncode = await process.wait()

    if scope.cancelled_caught:
        await kill_process(process, kill_timeout=1.0)
        raise CLINotFoundError(f"Claude CLI at {path} did not answer --version")

    if returncode != 0:
        raise CLINotFoundError(
            f"Claude CLI found at {path} but failed to execute (exit code {returncode}).\n"
            "Please ensure it is installed correctly and that Node.js is available."
        )

    logger.debug(f"Verified CLI at {path}")
    return path
