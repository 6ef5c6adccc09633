"""
Progress reporting for the article downloader.

Progress events are single human-readable lines written to a consumer
connection and flushed immediately, so the consumer sees each event before
the next one is produced. The HTTP transport drains a QueueConnection into a
server-sent event stream; the CLI writes plain lines to stdout.
"""
import asyncio
from typing import AsyncIterator, List, Protocol, TextIO

import structlog

# Set up structured logger
logger = structlog.get_logger()

_CLOSED = object()


class ConsumerConnection(Protocol):
    """An open, writable, flush-capable connection to an observer."""

    async def write(self, data: str) -> None:
        ...

    async def flush(self) -> None:
        ...


class QueueConnection:
    """
    Connection backed by an asyncio queue.

    Writes are buffered until flush(), which hands the buffered frames to the
    reader side. Iterate the connection to receive frames until close().
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._buffer: List[str] = []
        self.closed = False

    async def write(self, data: str) -> None:
        if self.closed:
            raise RuntimeError("Connection is closed")
        self._buffer.append(data)

    async def flush(self) -> None:
        if self._buffer:
            await self._queue.put("".join(self._buffer))
            self._buffer.clear()

    async def close(self) -> None:
        """Flush what is left and end the stream."""
        if self.closed:
            return
        await self.flush()
        self.closed = True
        await self._queue.put(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            frame = await self._queue.get()
            if frame is _CLOSED:
                return
            yield frame


class TextStreamConnection:
    """Connection that writes to a text stream such as sys.stdout."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    async def write(self, data: str) -> None:
        self.stream.write(data)

    async def flush(self) -> None:
        self.stream.flush()


def format_event(message: str) -> str:
    """Format a message as one server-sent event frame."""
    return f"data: {_single_line(message)}\n\n"


def _single_line(message: str) -> str:
    return " ".join(message.splitlines()).strip()


class ProgressReporter:
    """
    Emits ordered progress events to a consumer connection.

    Args:
        connection: Open consumer connection
        plain: Write bare lines instead of server-sent event frames
    """

    def __init__(self, connection: ConsumerConnection, plain: bool = False):
        self.connection = connection
        self.plain = plain
        self.events: List[str] = []

    async def emit(self, message: str, **log_fields) -> None:
        """Write one event and flush it to the consumer."""
        line = _single_line(message)
        frame = f"{line}\n" if self.plain else format_event(line)
        self.events.append(line)
        logger.info("Progress event", message=line, **log_fields)
        await self.connection.write(frame)
        await self.connection.flush()
