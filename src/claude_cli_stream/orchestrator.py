"""Query orchestration.

Wires one ProcessTransport and the message parser into a lazy stream of
typed messages for a single query:

    transport.connect()
      -> transport.receive_messages()   (dict per stdout line)
      -> parse_message()                (Message or None)
      -> yield Message
    transport.disconnect()              (always, exactly once)

Errors raised by the transport propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path
from typing import Any, Callable

from .config import Config, get_config
from .models.messages import Message
from .models.options import QueryOptions
from .parsers import parse_message
from .runtime.process import ProcessFactory
from .runtime.transport import ProcessTransport

__all__ = ["QueryOrchestrator"]

logger = logging.getLogger(__name__)

MessageParser = Callable[[Any], "Message | None"]


class QueryOrchestrator:
    """Runs queries, one fresh transport each.

    Example:
        ```python
        orchestrator = QueryOrchestrator()
        async for message in orchestrator.process_query("hello", QueryOptions()):
            print(message.type)
        ```
    """

    def __init__(
        self,
        process_factory: ProcessFactory | None = None,
        config: Config | None = None,
        parser: MessageParser | None = None,
    ) -> None:
        self._process_factory = process_factory
        self._config = config
        self._parser = parser or parse_message

    @property
    def config(self) -> Config:
        return self._config or get_config()

    def create_transport(
        self,
        prompt: str,
        options: QueryOptions,
        cli_path: Path | str | None = None,
    ) -> ProcessTransport:
        """Build the transport for one query. Override to substitute it."""
        return ProcessTransport(
            prompt,
            options,
            cli_path=cli_path,
            process_factory=self._process_factory,
            config=self.config,
        )

    async def process_query(
        self,
        prompt: str,
        options: QueryOptions,
        cli_path: Path | str | None = None,
    ) -> AsyncIterator[Message]:
        """Yield the typed messages of one query in stdout order.

        Unparseable objects are dropped. The transport is disconnected when
        the stream completes, fails, or is closed early by the consumer.
        """
        transport = self.create_transport(prompt, options, cli_path)
        count = 0
        try:
            await transport.connect()
            async with aclosing(transport.receive_messages()) as stream:
                async for data in stream:
                    message = self._parser(data)
                    if message is None:
                        continue
                    count += 1
                    yield message
        finally:
            await transport.disconnect()
            logger.debug(f"Query finished after {count} messages")
