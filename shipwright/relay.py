"""Bounded event relay between orchestrators and a single consumer.

Producers (any orchestrator holding a sink) push text into a fixed-capacity
anyio memory object stream; one consumer task drains it and hands every item
to a handler.  A full buffer suspends the producer instead of dropping the
item.  The relay is closed once every send handle -- the relay's own and all
clones handed out by ``sink()`` -- has been closed; the consumer then drains
what is left and returns.

Typical use::

    relay = EventRelay()
    async with relay.serve(echo_event) as sink:
        await BuildOrchestrator(engine).build("demo", sink)
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable

import anyio
import click
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from loguru import logger

from shipwright.errors import SinkClosedError

DEFAULT_CAPACITY = 32

EventHandler = Callable[[str], Awaitable[None] | None]


async def forward(sink: MemoryObjectSendStream[str], text: str) -> None:
    """Send ``text`` to ``sink``, suspending while the relay is full.

    Raises
    ------
    SinkClosedError:
        If the consumer side is gone or ``sink`` itself was already closed.
    """
    try:
        await sink.send(text)
    except (anyio.BrokenResourceError, anyio.ClosedResourceError) as exc:
        msg = "Event sink is closed"
        raise SinkClosedError(msg) from exc


class EventRelay:
    """Multi-producer / single-consumer queue of text events."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            msg = f"Relay capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._sender, self._receiver = anyio.create_memory_object_stream[str](max_buffer_size=capacity)

    # -- Producers -------------------------------------------------------------

    def sink(self) -> MemoryObjectSendStream[str]:
        """Hand out a new send handle.  The caller must close it when done."""
        return self._sender.clone()

    def close(self) -> None:
        """Drop the relay's own send handle.

        Outstanding ``sink()`` clones keep the relay open until they close.
        """
        self._sender.close()

    @property
    def is_closed(self) -> bool:
        """True once no send handle is open and nothing is buffered."""
        stats = self._receiver.statistics()
        return stats.open_send_streams == 0 and stats.current_buffer_used == 0

    # -- Consumer --------------------------------------------------------------

    async def consume(self, handler: EventHandler) -> int:
        """Drain the relay into ``handler`` until it is closed and empty.

        Returns the number of items delivered.
        """
        delivered = 0
        try:
            while True:
                try:
                    item = await self._receiver.receive()
                except anyio.EndOfStream:
                    # anyio only ends the stream once closed and drained, so the
                    # branch below is a guard against a receiver that does not.
                    if self.is_closed:
                        logger.debug("Relay: closed and drained after {} item(s)", delivered)
                        break
                    stats = self._receiver.statistics()
                    logger.warning(
                        "Relay: receive failed with {} buffered item(s) and {} open sender(s), continuing",
                        stats.current_buffer_used,
                        stats.open_send_streams,
                    )
                    continue

                result = handler(item)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
        finally:
            # Producers blocked on a full buffer now fail instead of hanging.
            self._receiver.close()
        return delivered

    @contextlib.asynccontextmanager
    async def serve(self, handler: EventHandler) -> AsyncIterator[MemoryObjectSendStream[str]]:
        """Run ``consume`` in a background task for the duration of the block.

        Yields a sink.  On exit the sink and the relay's own handle are
        closed, and the consumer is awaited so every sent item is handled
        before the block returns.

        If the block raises, that error propagates and a handler failure is
        only logged (a producer that outlived the consumer already sees
        ``SinkClosedError``).  If the block exits cleanly, a handler failure
        is raised.
        """
        consumer = asyncio.create_task(self.consume(handler))
        try:
            async with self.sink() as sink:
                yield sink
        except BaseException:
            self.close()
            try:
                await consumer
            except Exception as exc:
                logger.warning("Relay: consumer failed while the producer was unwinding: {!r}", exc)
            raise
        self.close()
        await consumer


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def echo_event(text: str) -> None:
    """Print an event to stdout, without doubling an existing trailing newline."""
    click.echo(text, nl=not text.endswith("\n"))


def log_event(text: str) -> None:
    """Emit an event through loguru at INFO, tagged as relayed engine output."""
    logger.bind(relayed=True).info("{}", text.rstrip("\n"))
