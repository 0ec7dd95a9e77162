"""Public client.

claude-cli-stream client v0.1.0

Three ways to consume a query:

- Streaming: ``async for message in client.query(prompt)``
- Eager: ``messages = await client.query_all(prompt)``
- Outcome: ``outcome = await client.query_outcome(prompt)`` (never raises)

Thread-facing variants (``query_async``, ``query_outcome_async``,
``query_with_callback_async``) run on an event loop owned by the client in a
background thread and return ``concurrent.futures.Future`` objects. Closing
the client cancels every query still running there; each cancelled query
disconnects its transport on the way out.

Example:
    ```python
    with ClaudeClient() as client:
        future = client.query_async("Summarize README.md")
        messages = future.result()
    ```
"""

from __future__ import annotations

import inspect
import logging
import threading
import time
from collections.abc import AsyncIterator
from concurrent.futures import Future
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

import anyio.to_thread
from anyio.from_thread import BlockingPortal, start_blocking_portal

from .config import Config, get_config
from .errors import CLITimeoutError, ConfigurationError
from .models.messages import Message
from .models.options import QueryOptions, QueryRequest
from .models.outcome import Error, Outcome, Success, Timeout
from .orchestrator import QueryOrchestrator
from .runtime.cli_locator import verify_cli_available
from .runtime.process import ProcessFactory

__all__ = ["ClaudeClient", "MessageStream"]

logger = logging.getLogger(__name__)

Prompt = Union[str, QueryRequest]
MessageCallback = Callable[[Message], Union[None, Awaitable[None]]]


class MessageStream:
    """Async iterator over one query's messages.

    Leaving an ``async with`` block or calling ``aclose()`` before the end
    of the stream kills the CLI process.
    """

    def __init__(self, messages: AsyncIterator[Message]) -> None:
        self._messages = messages

    def __aiter__(self) -> MessageStream:
        return self

    async def __anext__(self) -> Message:
        return await self._messages.__anext__()

    async def aclose(self) -> None:
        await self._messages.aclose()  # type: ignore[attr-defined]

    async def __aenter__(self) -> MessageStream:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class ClaudeClient:
    """Entry point for running Claude CLI queries."""

    def __init__(
        self,
        cli_path: Path | str | None = None,
        *,
        process_factory: ProcessFactory | None = None,
        config: Config | None = None,
        orchestrator: QueryOrchestrator | None = None,
    ) -> None:
        self._cli_path = Path(cli_path) if cli_path is not None else None
        self._process_factory = process_factory
        self._config = config
        self._orchestrator = orchestrator or QueryOrchestrator(
            process_factory=process_factory, config=config
        )

        self._lock = threading.Lock()
        self._closed = False
        self._portal: BlockingPortal | None = None
        self._portal_cm: AbstractContextManager[BlockingPortal] | None = None
        self._portal_thread_id: int | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Streaming / eager / outcome
    # =========================================================================

    def query(self, prompt: Prompt, options: QueryOptions | None = None) -> MessageStream:
        """Start a query and return its lazy message stream.

        The CLI process is spawned on the first iteration.

        Raises:
            ConfigurationError: If the client is closed or the prompt is empty
        """
        self._check_open()
        request = self._make_request(prompt, options)
        return MessageStream(
            self._orchestrator.process_query(request.prompt, request.options, self._cli_path)
        )

    async def query_all(
        self, prompt: Prompt, options: QueryOptions | None = None
    ) -> list[Message]:
        """Run a query to completion and return every message in order."""
        messages: list[Message] = []
        async with self.query(prompt, options) as stream:
            async for message in stream:
                messages.append(message)
        return messages

    async def query_outcome(
        self, prompt: Prompt, options: QueryOptions | None = None
    ) -> Outcome[list[Message]]:
        """Run a query and report how it ended instead of raising.

        Returns:
            Success with all messages, Timeout or Error with the messages
            received before the failure
        """
        messages: list[Message] = []
        started = time.monotonic()
        try:
            async with self.query(prompt, options) as stream:
                async for message in stream:
                    messages.append(message)
        except CLITimeoutError:
            return Timeout(_elapsed_ms(started), messages)
        except Exception as e:
            logger.debug(f"Query failed: {type(e).__name__}: {e}")
            return Error(e, messages, _elapsed_ms(started))

        return Success(list(messages), messages, _elapsed_ms(started))

    async def verify_cli(self) -> Path:
        """Run ``claude --version`` and return the verified executable."""
        cli_path = self._cli_path or (self._config or get_config()).cli_path
        return await verify_cli_available(cli_path, self._process_factory)

    # =========================================================================
    # Thread-facing variants
    # =========================================================================

    def query_async(
        self, prompt: Prompt, options: QueryOptions | None = None
    ) -> Future[list[Message]]:
        """Eager query on the client's event loop thread."""
        return self._start(self.query_all, self._make_request(prompt, options), None)

    def query_outcome_async(
        self, prompt: Prompt, options: QueryOptions | None = None
    ) -> Future[Outcome[list[Message]]]:
        """Outcome query on the client's event loop thread.

        A closed client or an empty prompt yields an already completed future
        holding an Error outcome.
        """
        try:
            request = self._make_request(prompt, options)
            return self._start(self.query_outcome, request, None)
        except ConfigurationError as e:
            future: Future[Outcome[list[Message]]] = Future()
            future.set_result(Error(e))
            return future

    def query_with_callback_async(
        self,
        prompt: Prompt,
        on_message: MessageCallback,
        options: QueryOptions | None = None,
    ) -> Future[None]:
        """Deliver each message to on_message (sync or async) as it arrives."""
        request = self._make_request(prompt, options)
        return self._start(self._deliver, request, on_message, None)

    def query_with_callback(
        self,
        prompt: Prompt,
        on_message: MessageCallback,
        options: QueryOptions | None = None,
    ) -> None:
        """Blocking variant of query_with_callback_async.

        Must not be called from the client's own event loop thread.
        """
        self.query_with_callback_async(prompt, on_message, options).result()

    async def _deliver(
        self,
        prompt: Prompt,
        on_message: MessageCallback,
        options: QueryOptions | None,
    ) -> None:
        async with self.query(prompt, options) as stream:
            async for message in stream:
                result = on_message(message)
                if inspect.isawaitable(result):
                    await result

    def _start(self, func: Callable[..., Awaitable[Any]], *args: Any) -> Future[Any]:
        self._check_open()
        portal = self._get_portal()
        return portal.start_task_soon(func, *args)

    def _get_portal(self) -> BlockingPortal:
        with self._lock:
            if self._closed:
                raise ConfigurationError("Client is closed")
            if self._portal is None:
                self._portal_cm = start_blocking_portal()
                self._portal = self._portal_cm.__enter__()
                self._portal_thread_id = self._portal.call(threading.get_ident)
                logger.debug("Started client event loop thread")
            return self._portal

    # =========================================================================
    # Lifetime
    # =========================================================================

    def close(self) -> None:
        """Cancel in-flight background queries and stop the event loop thread.

        Idempotent. Queries consumed directly with ``query``/``query_all``
        belong to the caller's own event loop and are not affected.
        Called from the event loop thread itself, for example inside a
        callback, the shutdown finishes on a helper thread after return.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            portal, portal_cm = self._portal, self._portal_cm
            self._portal = None
            self._portal_cm = None

        if portal is None or portal_cm is None:
            return

        if self._on_portal_thread():
            # the loop thread cannot join itself; stop it from a helper thread
            threading.Thread(
                target=_stop_portal,
                args=(portal, portal_cm),
                name="claude-client-close",
                daemon=True,
            ).start()
            return

        _stop_portal(portal, portal_cm)

    async def aclose(self) -> None:
        if self._on_portal_thread():
            self.close()
        else:
            await anyio.to_thread.run_sync(self.close)

    def __enter__(self) -> ClaudeClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self) -> ClaudeClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _on_portal_thread(self) -> bool:
        return self._portal_thread_id == threading.get_ident()

    def _check_open(self) -> None:
        if self._closed:
            raise ConfigurationError("Client is closed")

    @staticmethod
    def _make_request(prompt: Prompt, options: QueryOptions | None) -> QueryRequest:
        if isinstance(prompt, QueryRequest):
            if options is not None:
                return QueryRequest(prompt.prompt, options)
            return prompt
        return QueryRequest(prompt, options or QueryOptions())


def _stop_portal(
    portal: BlockingPortal, portal_cm: AbstractContextManager[BlockingPortal]
) -> None:
    logger.debug("Cancelling background queries")
    try:
        portal.call(portal.stop, True)
    finally:
        portal_cm.__exit__(None, None, None)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
