"""ProcessTransport tests.

Test coverage:
- Line streaming (order, blank lines, JSON decoding)
- Exit code classification (ProcessError with captured stderr)
- Deadline expiry (CLITimeoutError, process killed)
- Start failure classification
- Idempotent disconnect
- Real subprocess via the fake CLI (integration)
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import pytest

from claude_cli_stream.config import Config
from claude_cli_stream.errors import (
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    CLITimeoutError,
    ProcessError,
)
from claude_cli_stream.models import QueryOptions
from claude_cli_stream.runtime.command import ENTRYPOINT_ENV, ENTRYPOINT_VALUE
from claude_cli_stream.runtime.transport import ProcessTransport, StderrBuffer

from conftest import FakeProcess, FakeProcessFactory


def _line(data: dict) -> str:
    return json.dumps(data)


async def _drain(transport: ProcessTransport) -> list[dict]:
    return [data async for data in transport.receive_messages()]


# =============================================================================
# StderrBuffer
# =============================================================================


class TestStderrBuffer:
    """Ring buffer keeps the newest bytes."""

    def test_under_cap(self):
        buffer = StderrBuffer(max_bytes=10)
        buffer.append(b"abc")
        buffer.append(b"def")
        assert buffer.text() == "abcdef"

    def test_oldest_bytes_evicted(self):
        buffer = StderrBuffer(max_bytes=5)
        buffer.append(b"12345")
        buffer.append(b"678")
        assert buffer.text() == "45678"
        assert len(buffer) == 5
        assert buffer.total_bytes == 8

    def test_invalid_utf8_replaced(self):
        buffer = StderrBuffer(max_bytes=10)
        buffer.append(b"\xffok")
        assert buffer.text().endswith("ok")


# =============================================================================
# Streaming with an in-memory process
# =============================================================================


class TestReceiveMessages:
    """Line streaming from a fake process."""

    @pytest.mark.asyncio
    async def test_three_lines_in_order(self, test_config: Config):
        lines = [_line({"type": "system", "n": i}) for i in range(3)]
        factory = FakeProcessFactory(FakeProcess(lines=lines))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        try:
            received = await _drain(transport)
        finally:
            await transport.disconnect()

        assert [data["n"] for data in received] == [0, 1, 2]
        assert transport.is_connected() is False

    @pytest.mark.asyncio
    async def test_blank_lines_skipped(self, test_config: Config):
        lines = ["", _line({"a": 1}), "   ", _line({"b": 2}), ""]
        factory = FakeProcessFactory(FakeProcess(lines=lines))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        received = await _drain(transport)
        await transport.disconnect()

        assert received == [{"a": 1}, {"b": 2}]

    @pytest.mark.asyncio
    async def test_invalid_json_raises_with_line(self, test_config: Config):
        factory = FakeProcessFactory(FakeProcess(lines=[_line({"a": 1}), "not json"]))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        received = []
        with pytest.raises(CLIJSONDecodeError) as exc_info:
            async for data in transport.receive_messages():
                received.append(data)
        await transport.disconnect()

        assert received == [{"a": 1}]
        assert exc_info.value.line == "not json"

    @pytest.mark.asyncio
    async def test_non_object_json_rejected(self, test_config: Config):
        factory = FakeProcessFactory(FakeProcess(lines=["[1, 2]"]))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        with pytest.raises(CLIJSONDecodeError):
            await _drain(transport)
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_not_connected(self, test_config: Config):
        transport = ProcessTransport("hi", QueryOptions(), process_factory=FakeProcessFactory(), config=test_config)
        with pytest.raises(CLIConnectionError):
            await _drain(transport)


class TestExitCode:
    """Non-zero exit classification."""

    @pytest.mark.asyncio
    async def test_exit_one_with_stderr(self, test_config: Config):
        process = FakeProcess(lines=[_line({"a": 1})], stderr=b"fatal: bad things", exit_code=1)
        factory = FakeProcessFactory(process)
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        with pytest.raises(ProcessError) as exc_info:
            await _drain(transport)
        await transport.disconnect()

        assert exc_info.value.exit_code == 1
        assert exc_info.value.stderr == "fatal: bad things"
        assert transport.stderr_output == "fatal: bad things"

    @pytest.mark.asyncio
    async def test_stderr_capped(self):
        config = Config(cli_path=Path("/fake/claude"), stderr_max_bytes=4)
        factory = FakeProcessFactory(FakeProcess(stderr=b"0123456789", exit_code=2))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=config)

        await transport.connect()
        with pytest.raises(ProcessError) as exc_info:
            await _drain(transport)
        await transport.disconnect()

        assert exc_info.value.stderr == "6789"

    @pytest.mark.asyncio
    async def test_zero_exit_with_stderr_is_success(self, test_config: Config):
        factory = FakeProcessFactory(FakeProcess(lines=[_line({"a": 1})], stderr=b"warning"))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        assert await _drain(transport) == [{"a": 1}]
        await transport.disconnect()


class TestTimeout:
    """Deadline expiry."""

    @pytest.mark.asyncio
    async def test_never_reaching_eof_times_out(self, test_config: Config):
        process = FakeProcess(lines=[_line({"a": 1})], hang=True)
        factory = FakeProcessFactory(process)
        options = QueryOptions(timeout_ms=200)
        transport = ProcessTransport("hi", options, process_factory=factory, config=test_config)

        await transport.connect()
        received = []
        started = time.monotonic()
        with pytest.raises(CLITimeoutError) as exc_info:
            async for data in transport.receive_messages():
                received.append(data)
        elapsed = time.monotonic() - started
        await transport.disconnect()

        assert received == [{"a": 1}]
        assert exc_info.value.timeout_ms == 200
        assert 0.15 <= elapsed < 2.0
        assert process.killed is True
        assert process.returncode is not None

    @pytest.mark.asyncio
    async def test_config_default_timeout(self):
        config = Config(cli_path=Path("/fake/claude"), default_timeout_ms=100)
        factory = FakeProcessFactory(FakeProcess(hang=True))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=config)

        assert transport.timeout_ms == 100
        await transport.connect()
        with pytest.raises(CLITimeoutError):
            await _drain(transport)
        await transport.disconnect()

    def test_option_timeout_wins(self, test_config: Config):
        transport = ProcessTransport("hi", QueryOptions(timeout_ms=42), config=test_config)
        assert transport.timeout_ms == 42


class TestConnect:
    """Spawn and start failure classification."""

    @pytest.mark.asyncio
    async def test_spawn_spec(self, test_config: Config, tmp_path: Path):
        factory = FakeProcessFactory(FakeProcess(hang=True))
        options = QueryOptions(cwd=tmp_path, model="sonnet")
        transport = ProcessTransport("Hello", options, process_factory=factory, config=test_config)

        await transport.connect()
        assert transport.is_connected() is True
        await transport.disconnect()

        spec = factory.specs[0]
        assert spec.argv[0] == "/fake/bin/claude"
        assert spec.argv[-2:] == ["--print", "Hello"]
        assert spec.cwd == tmp_path
        assert spec.env is not None
        assert spec.env[ENTRYPOINT_ENV] == ENTRYPOINT_VALUE

    @pytest.mark.asyncio
    async def test_explicit_cli_path_wins(self, test_config: Config):
        factory = FakeProcessFactory(FakeProcess())
        transport = ProcessTransport(
            "hi", QueryOptions(), cli_path="/explicit/claude", process_factory=factory, config=test_config
        )
        await transport.connect()
        await transport.disconnect()
        assert factory.specs[0].argv[0] == "/explicit/claude"

    @pytest.mark.asyncio
    async def test_missing_working_directory(self, test_config: Config, tmp_path: Path):
        factory = FakeProcessFactory(error=FileNotFoundError("cwd"))
        options = QueryOptions(cwd=tmp_path / "does-not-exist")
        transport = ProcessTransport("hi", options, process_factory=factory, config=test_config)

        with pytest.raises(CLIConnectionError, match="Working directory does not exist") as exc_info:
            await transport.connect()
        assert not isinstance(exc_info.value, CLINotFoundError)

    @pytest.mark.asyncio
    async def test_executable_not_found(self, test_config: Config):
        factory = FakeProcessFactory(error=FileNotFoundError("claude"))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        with pytest.raises(CLINotFoundError):
            await transport.connect()

    @pytest.mark.asyncio
    async def test_generic_start_failure(self, test_config: Config):
        factory = FakeProcessFactory(error=PermissionError("denied"))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        with pytest.raises(CLIConnectionError, match="Failed to start") as exc_info:
            await transport.connect()
        assert not isinstance(exc_info.value, CLINotFoundError)


class TestDisconnect:
    """Idempotent teardown."""

    @pytest.mark.asyncio
    async def test_double_disconnect(self, test_config: Config):
        process = FakeProcess(hang=True)
        transport = ProcessTransport(
            "hi", QueryOptions(), process_factory=FakeProcessFactory(process), config=test_config
        )

        await transport.connect()
        await transport.disconnect()
        assert transport.is_connected() is False
        await transport.disconnect()
        assert transport.is_connected() is False
        assert process.killed is True

    @pytest.mark.asyncio
    async def test_disconnect_without_connect(self, test_config: Config):
        transport = ProcessTransport("hi", QueryOptions(), config=test_config)
        await transport.disconnect()
        assert transport.is_connected() is False

    @pytest.mark.asyncio
    async def test_connect_is_noop_while_connected(self, test_config: Config):
        factory = FakeProcessFactory(FakeProcess(hang=True))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        await transport.connect()

        assert len(factory.specs) == 1
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_no_reconnect_after_disconnect(self, test_config: Config):
        factory = FakeProcessFactory(FakeProcess(hang=True), FakeProcess(hang=True))
        transport = ProcessTransport("hi", QueryOptions(), process_factory=factory, config=test_config)

        await transport.connect()
        await transport.disconnect()

        with pytest.raises(CLIConnectionError):
            await transport.connect()
        assert len(factory.specs) == 1

    @pytest.mark.asyncio
    async def test_abandoned_stream_cleans_up(self, test_config: Config):
        process = FakeProcess(lines=[_line({"a": 1}), _line({"b": 2})], hang=True)
        transport = ProcessTransport(
            "hi", QueryOptions(), process_factory=FakeProcessFactory(process), config=test_config
        )

        await transport.connect()
        stream = transport.receive_messages()
        assert await stream.__anext__() == {"a": 1}
        await stream.aclose()
        await transport.disconnect()

        assert process.killed is True
        assert transport.is_connected() is False


class TestDebugLogging:
    """CCS_DEBUG dumps raw process output."""

    @pytest.mark.asyncio
    async def test_raw_output_logged(self, caplog: pytest.LogCaptureFixture):
        config = Config(cli_path=Path("/fake/claude"), debug=True)
        process = FakeProcess(lines=[_line({"a": 1})], stderr=b"some warning")
        transport = ProcessTransport("hi", QueryOptions(), process_factory=FakeProcessFactory(process), config=config)

        with caplog.at_level(logging.DEBUG, logger="claude_cli_stream.runtime.transport"):
            await transport.connect()
            await _drain(transport)
            await transport.disconnect()

        assert '[SUBPROCESS] stdout: {"a": 1}' in caplog.text
        assert "some warning" in caplog.text


# =============================================================================
# Integration with a real subprocess
# =============================================================================


@pytest.mark.integration
class TestFakeCliIntegration:
    """Drive fixtures/fake_cli.py through the default SubprocessFactory."""

    @pytest.mark.asyncio
    async def test_stream_json_roundtrip(self, fake_cli, test_config: Config, tmp_path: Path):
        cli = fake_cli("--assistant-count", "2")
        transport = ProcessTransport("Hello", QueryOptions(cwd=tmp_path), cli_path=cli, config=test_config)

        await transport.connect()
        try:
            received = await _drain(transport)
        finally:
            await transport.disconnect()

        assert [data["type"] for data in received] == ["system", "assistant", "assistant", "result"]
        init = received[0]
        assert init["prompt"] == "Hello"
        assert init["entrypoint"] == ENTRYPOINT_VALUE
        assert Path(init["cwd"]).resolve() == tmp_path.resolve()
        assert "stream-json" in init["argv"]

    @pytest.mark.asyncio
    async def test_process_error(self, fake_cli, test_config: Config):
        cli = fake_cli("--exit-code", "1", "--stderr", "boom")
        transport = ProcessTransport("hi", QueryOptions(), cli_path=cli, config=test_config)

        await transport.connect()
        with pytest.raises(ProcessError) as exc_info:
            await _drain(transport)
        await transport.disconnect()

        assert exc_info.value.exit_code == 1
        assert "boom" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, fake_cli, test_config: Config):
        cli = fake_cli("--hang")
        transport = ProcessTransport("hi", QueryOptions(timeout_ms=500), cli_path=cli, config=test_config)

        await transport.connect()
        process = transport._process
        assert process is not None
        with pytest.raises(CLITimeoutError):
            await _drain(transport)
        await transport.disconnect()

        assert process.returncode is not None

    @pytest.mark.asyncio
    async def test_garbage_line(self, fake_cli, test_config: Config):
        cli = fake_cli("--garbage")
        transport = ProcessTransport("hi", QueryOptions(), cli_path=cli, config=test_config)

        await transport.connect()
        with pytest.raises(CLIJSONDecodeError):
            await _drain(transport)
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_executable_not_found(self, test_config: Config, tmp_path: Path):
        transport = ProcessTransport("hi", QueryOptions(), cli_path=tmp_path / "nope", config=test_config)
        with pytest.raises(CLINotFoundError):
            await transport.connect()
