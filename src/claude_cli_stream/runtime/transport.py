"""Process transport: one CLI process per query.

claude-cli-stream runtime module v0.1.0

ProcessTransport owns the lifecycle of a single CLI process:

    Disconnected -> connect() -> Connected -> receive_messages() -> Streaming
                 -> disconnect() -> Disconnected

- stdout is read line by line and decoded into JSON objects
- stderr is drained concurrently into a ring buffer so a full pipe cannot
  block the child
- one deadline bounds the whole stream; expiry kills the process
- disconnect() is idempotent and safe from cleanup paths

A transport is never reused: create a new one for every query.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from ..config import Config, get_config
from ..errors import (
    ClaudeSDKError,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    CLITimeoutError,
    ProcessError,
)
from ..models.options import QueryOptions
from .cli_locator import find_cli
from .command import build_command, build_env
from .process import (
    ProcessFactory,
    ProcessHandle,
    ProcessSpec,
    SubprocessFactory,
    kill_process,
)

__all__ = [
    "ProcessTransport",
    "StderrBuffer",
]

logger = logging.getLogger(__name__)

# Seconds to let the stderr reader catch up after the process has exited
STDERR_FLUSH_TIMEOUT = 1.0


class StderrBuffer:
    """Bounded byte buffer keeping the newest max_bytes of stderr."""

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        self._data = bytearray()
        self.total_bytes = 0

    def append(self, chunk: bytes) -> None:
        self._data.extend(chunk)
        self.total_bytes += len(chunk)
        overflow = len(self._data) - self.max_bytes
        if overflow > 0:
            del self._data[:overflow]

    def __len__(self) -> int:
        return len(self._data)

    def text(self) -> str:
        return self._data.decode("utf-8", errors="replace")


class ProcessTransport:
    """Streams stream-json objects from one Claude CLI process.

    Example:
        transport = ProcessTransport("Explain this repo", QueryOptions())
        await transport.connect()
        try:
            async for data in transport.receive_messages():
                print(data["type"])
        finally:
            await transport.disconnect()
    """

    def __init__(
        self,
        prompt: str,
        options: QueryOptions,
        cli_path: Path | str | None = None,
        process_factory: ProcessFactory | None = None,
        config: Config | None = None,
    ) -> None:
        self._prompt = prompt
        self._options = options
        self._config = config or get_config()
        self._cli_path = Path(cli_path) if cli_path is not None else self._config.cli_path
        self._factory = process_factory or SubprocessFactory()

        self._process: ProcessHandle | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._stderr = StderrBuffer(self._config.stderr_max_bytes)
        self._connected = False
        self._used = False

    @property
    def timeout_ms(self) -> int:
        if self._options.timeout_ms is not None:
            return self._options.timeout_ms
        return self._config.default_timeout_ms

    @property
    def stderr_output(self) -> str:
        """Captured stderr so far (newest bytes only)."""
        return self._stderr.text()

    def is_connected(self) -> bool:
        return (
            self._connected
            and self._process is not None
            and self._process.returncode is None
        )

    def build_command(self) -> list[str]:
        cli_path = self._cli_path if self._cli_path is not None else find_cli()
        return build_command(cli_path, self._prompt, self._options)

    async def connect(self) -> None:
        """Resolve the CLI and start the process.

        Raises:
            CLINotFoundError: If the executable cannot be found
            CLIConnectionError: If the process cannot be started, or the
                transport was already disconnected
        """
        if self._process is not None:
            return
        if self._used:
            raise CLIConnectionError("Transport cannot be reused after disconnect")
        self._used = True

        cmd = self.build_command()
        cwd = self._options.cwd
        logger.info(f"Executing: {cmd[0]} ({len(cmd) - 1} args, cwd={cwd or '.'})")
        logger.debug(f"[SUBPROCESS] Command: {' '.join(cmd[:-1])} <prompt {len(self._prompt)} chars>")

        spec = ProcessSpec(argv=cmd, cwd=cwd, env=build_env())
        try:
            self._process = await self._factory.spawn(spec)
        except ClaudeSDKError:
            raise
        except OSError as e:
            if cwd is not None and not Path(cwd).exists():
                raise CLIConnectionError(f"Working directory does not exist: {cwd}") from e
            if isinstance(e, FileNotFoundError):
                raise CLINotFoundError() from e
            raise CLIConnectionError(f"Failed to start Claude CLI process: {e}") from e

        self._connected = True
        logger.debug(f"[SUBPROCESS] Started: pid={self._process.pid}")

    async def disconnect(self) -> None:
        """Stop the stderr reader, kill the process if alive and drop handles.

        Idempotent: extra calls are no-ops.
        """
        self._connected = False
        process = self._process
        stderr_task = self._stderr_task
        self._process = None
        self._stderr_task = None

        if stderr_task is not None and not stderr_task.done():
            stderr_task.cancel()

        if process is not None:
            await kill_process(process, self._config.kill_timeout)
            if self._config.debug:
                self._log_debug_summary(process)

    async def receive_messages(self) -> AsyncIterator[dict[str, Any]]:
        """Yield one decoded JSON object per non-blank stdout line.

        Raises:
            CLIConnectionError: If connect() has not been called
            CLIJSONDecodeError: If a line is not a JSON object
            CLITimeoutError: If the deadline expires (the process is killed)
            ProcessError: If the process exits with a non-zero code
        """
        process = self._process
        if process is None or process.stdout is None:
            raise CLIConnectionError("Not connected")

        timeout_ms = self.timeout_ms
        deadline = time.monotonic() + timeout_ms / 1000
        self._stderr_task = asyncio.create_task(self._drain_stderr(process))

        try:
            while True:
                line = await self._read_line(process, deadline, timeout_ms)
                if not line:
                    break

                decoded = line.decode("utf-8", errors="replace").strip()
                if not decoded:
                    continue
                if self._config.debug:
                    logger.debug(f"[SUBPROCESS] stdout: {decoded[:500]}")

                try:
                    data = json.loads(decoded)
                except json.JSONDecodeError as e:
                    raise CLIJSONDecodeError(decoded, e) from e
                if not isinstance(data, dict):
                    raise CLIJSONDecodeError(decoded)

                yield data

            returncode = await self._wait_exit(process, deadline, timeout_ms)
            await self._flush_stderr()

            logger.debug(f"[SUBPROCESS] Exit: pid={process.pid} returncode={returncode}")
            if returncode != 0:
                stderr = self._stderr.text()
                logger.warning(f"Claude CLI exited with code {returncode}")
                raise ProcessError(returncode, stderr)
        finally:
            task = self._stderr_task
            if task is not None and not task.done():
                task.cancel()

    async def _read_line(
        self, process: ProcessHandle, deadline: float, timeout_ms: int
    ) -> bytes:
        assert process.stdout is not None
        remaining = deadline - time.monotonic()
        try:
            if remaining <= 0:
                raise asyncio.TimeoutError
            return await asyncio.wait_for(process.stdout.readline(), timeout=remaining)
        except asyncio.TimeoutError:
            await self._kill_on_timeout(process, timeout_ms)
            raise CLITimeoutError(timeout_ms) from None
        except ValueError as e:
            # StreamReader limit exceeded
            raise CLIJSONDecodeError(f"<line longer than stream limit: {e}>", e) from e

    async def _wait_exit(
        self, process: ProcessHandle, deadline: float, timeout_ms: int
    ) -> int:
        remaining = deadline - time.monotonic()
        try:
            if remaining <= 0:
                raise asyncio.TimeoutError
            return await asyncio.wait_for(process.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            await self._kill_on_timeout(process, timeout_ms)
            raise CLITimeoutError(timeout_ms) from None

    async def _kill_on_timeout(self, process: ProcessHandle, timeout_ms: int) -> None:
        logger.warning(f"Query timed out after {timeout_ms}ms, killing pid={process.pid}")
        await kill_process(process, self._config.kill_timeout)

    async def _drain_stderr(self, process: ProcessHandle) -> None:
        """Read stderr until EOF into the ring buffer."""
        if process.stderr is None:
            return
        while True:
            chunk = await process.stderr.read(4096)
            if not chunk:
                break
            self._stderr.append(chunk)

    async def _flush_stderr(self) -> None:
        task = self._stderr_task
        if task is None or task.done():
            return
        # a grandchild holding the pipe open must not block completion
        done, _ = await asyncio.wait({task}, timeout=STDERR_FLUSH_TIMEOUT)
        if not done:
            logger.debug("stderr still open after process exit, stop reading")

    def _log_debug_summary(self, process: ProcessHandle) -> None:
        logger.debug(
            f"[SUBPROCESS] Closed: pid={process.pid}\n"
            f"  Return code: {process.returncode}\n"
            f"  Stderr size: {self._stderr.total_bytes} bytes"
        )
        stderr = self._stderr.text()
        if stderr.strip():
            logger.debug(f"[SUBPROCESS] Stderr:\n{stderr}")
