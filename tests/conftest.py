"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import shlex
import stat
import sys
from pathlib import Path
from typing import Callable

import pytest

from claude_cli_stream.config import Config
from claude_cli_stream.runtime.process import IS_WINDOWS, ProcessSpec

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

FAKE_CLI = Path(__file__).parent / "fixtures" / "fake_cli.py"


# =============================================================================
# In-memory process double
# =============================================================================


class FakeProcess:
    """In-memory stand-in for an asyncio subprocess.

    Args:
        lines: stdout lines (newline is appended)
        stderr: stderr bytes
        exit_code: Exit code once stdout is exhausted
        hang: Never reach EOF until killed
    """

    def __init__(
        self,
        lines: list[str] | tuple[str, ...] = (),
        stderr: bytes = b"",
        exit_code: int = 0,
        hang: bool = False,
        pid: int = 4242,
    ) -> None:
        self.pid = pid
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.killed = False
        self._returncode: int | None = None
        self._exited = asyncio.Event()

        for line in lines:
            self.stdout.feed_data(line.encode("utf-8") + b"\n")
        if stderr:
            self.stderr.feed_data(stderr)

        if not hang:
            self.stdout.feed_eof()
            self.stderr.feed_eof()
            self._finish(exit_code)

    @property
    def returncode(self) -> int | None:
        return self._returncode

    async def wait(self) -> int:
        await self._exited.wait()
        assert self._returncode is not None
        return self._returncode

    def kill(self) -> None:
        self.killed = True
        if self._returncode is None:
            self.stdout.feed_eof()
            self.stderr.feed_eof()
            self._finish(-9)

    def _finish(self, code: int) -> None:
        self._returncode = code
        self._exited.set()


class FakeProcessFactory:
    """ProcessFactory returning prepared FakeProcess objects.

    Either pass processes up front (consumed in order) or a builder that
    creates one per spawn, which keeps stream readers on the spawning loop.
    """

    def __init__(
        self,
        *processes: FakeProcess,
        builder: Callable[[], FakeProcess] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._processes = list(processes)
        self._builder = builder
        self._error = error
        self.specs: list[ProcessSpec] = []
        self.spawned: list[FakeProcess] = []

    async def spawn(self, spec: ProcessSpec) -> FakeProcess:
        self.specs.append(spec)
        if self._error is not None:
            raise self._error
        if self._builder is not None:
            process = self._builder()
        else:
            process = self._processes.pop(0)
        self.spawned.append(process)
        return process


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def test_config() -> Config:
    """Config with a fake CLI path and short timeouts."""
    return Config(
        cli_path=Path("/fake/bin/claude"),
        default_timeout_ms=5000,
        kill_timeout=0.5,
    )


@pytest.fixture
def fake_cli(tmp_path: Path) -> Callable[..., Path]:
    """Create an executable wrapper around fixtures/fake_cli.py.

    Usage:
        cli = fake_cli("--assistant-count", "3")
        transport = ProcessTransport("hi", QueryOptions(), cli_path=cli)
    """
    if IS_WINDOWS:
        pytest.skip("fake CLI wrapper requires a POSIX shell")

    counter = [0]

    def make(*scenario: str) -> Path:
        counter[0] += 1
        script = tmp_path / f"claude-{counter[0]}"
        command = " ".join(
            shlex.quote(part) for part in (sys.executable, str(FAKE_CLI), *scenario)
        )
        script.write_text(f'#!/bin/sh\nexec {command} "$@"\n', encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return make
