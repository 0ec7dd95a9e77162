"""Process spawning seam with subprocess isolation and forced termination.

claude-cli-stream runtime module v0.1.0

This module provides:
- ProcessSpec: what to run (argv, cwd, env)
- ProcessFactory: the injectable spawning interface used by the transport
- SubprocessFactory: the default asyncio implementation
- kill_process(): force-kill plus bounded, cancel-shielded reaping

Key design points:
- POSIX: start_new_session=True to create a new process group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- stdin is always bound to DEVNULL; the CLI receives its prompt as an argument
- Killing targets the process group, not just the main process
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import anyio

__all__ = [
    "ProcessSpec",
    "ProcessHandle",
    "ProcessFactory",
    "SubprocessFactory",
    "SubprocessHandle",
    "kill_process",
    "IS_WINDOWS",
    "STREAM_LIMIT",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# stream-json lines carry whole tool results; the asyncio default (64 KiB) is too small
STREAM_LIMIT = 16 * 1024 * 1024


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = inherit)
        env: Environment variables (None = inherit parent)
    """

    argv: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None


class ProcessHandle(Protocol):
    """The subset of asyncio.subprocess.Process the transport relies on."""

    pid: int
    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    @property
    def returncode(self) -> int | None: ...

    async def wait(self) -> int: ...

    def kill(self) -> None: ...


class ProcessFactory(Protocol):
    """Creates processes for the transport.

    Tests substitute a fake implementation to avoid touching the OS.
    """

    async def spawn(self, spec: ProcessSpec) -> ProcessHandle: ...


class SubprocessHandle:
    """asyncio process wrapper whose kill() targets the whole process group."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self.pid = process.pid
        self.stdout = process.stdout
        self.stderr = process.stderr

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def wait(self) -> int:
        return await self._process.wait()

    def kill(self) -> None:
        if self._process.returncode is not None:
            return
        if IS_WINDOWS:
            self._windows_kill()
        else:
            self._posix_kill()

    def _posix_kill(self) -> None:
        """Send SIGKILL to the process group on POSIX systems."""
        try:
            # pgid == pid because of start_new_session
            pgid = os.getpgid(self.pid)
            os.killpg(pgid, signal.SIGKILL)
            logger.debug(f"Sent SIGKILL to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to kill: {e}")
            try:
                self._process.kill()
            except ProcessLookupError:
                pass

    def _windows_kill(self) -> None:
        """Force kill on Windows."""
        try:
            self._process.kill()
            logger.debug(f"Called kill() on pid={self.pid}")
        except ProcessLookupError:
            pass


@dataclass
class SubprocessFactory:
    """Spawns real OS processes with asyncio.

    Example:
        factory = SubprocessFactory()
        process = await factory.spawn(ProcessSpec(argv=["claude", "--version"]))
        await process.wait()
    """

    stream_limit: int = STREAM_LIMIT

    async def spawn(self, spec: ProcessSpec) -> SubprocessHandle:
        """Start the subprocess described by spec.

        Raises:
            OSError: If the executable or working directory cannot be used
        """
        kwargs = self._build_subprocess_kwargs(spec)

        # DEVNULL rather than None: the CLI must never inherit the caller's stdin
        process = await asyncio.create_subprocess_exec(
            *spec.argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=spec.cwd,
            limit=self.stream_limit,
            **kwargs,
        )

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} cwd={spec.cwd}"
        )
        return SubprocessHandle(process)

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs.

        Args:
            spec: Process specification

        Returns:
            Dict of kwargs for asyncio.create_subprocess_exec
        """
        kwargs: dict[str, Any] = {}

        # Environment
        if spec.env is not None:
            kwargs["env"] = dict(spec.env)

        # Platform-specific isolation
        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True

        return kwargs


async def kill_process(process: ProcessHandle, kill_timeout: float) -> None:
    """Force-kill a process and reap it.

    The signal is sent synchronously; reaping waits at most kill_timeout
    seconds and is shielded from cancellation so an abandoned or cancelled
    query still leaves no zombie behind.

    Args:
        process: The process to kill
        kill_timeout: Seconds to wait for the process to exit
    """
    pid = process.pid
    if process.returncode is None:
        logger.debug(f"Force killing subprocess pid={pid}")
        try:
            process.kill()
        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")

    with anyio.move_on_after(kill_timeout, shield=True) as scope:
        await process.wait()

    if scope.cancelled_caught:
        logger.warning(f"Subprocess did not exit after kill pid={pid}")
    else:
        logger.debug(f"Subprocess killed pid={pid} returncode={process.returncode}")
