"""Event Stream Reader.

Decodes a chunked byte stream into typed events and reports the outcome of
the read through three callbacks: on_event, on_complete and on_error.

Incomplete trailing data is buffered across chunks, so an event split over
two reads is decoded once both halves have arrived.
"""

import asyncio
import codecs
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable

from narration_engine.exceptions import MalformedEventError, StreamTimeoutError, TransportError
from narration_engine.streaming.events import StreamEvent, parse_event_line
from narration_engine.streaming.transport import StreamResponse, StreamTransport

logger = logging.getLogger(__name__)

EVENT_DELIMITER = "\n\n"


async def iter_events(
    chunks: AsyncIterable[bytes],
    idle_timeout: float | None = None,
) -> AsyncIterator[StreamEvent]:
    """Lazily decode events from raw byte chunks.

    Each call starts with a fresh decoder and buffer.

    Args:
        chunks: Raw body chunks in arrival order.
        idle_timeout: Maximum seconds to wait for the next chunk.

    Yields:
        Decoded events in arrival order. Malformed lines are skipped.

    Raises:
        StreamTimeoutError: If no chunk arrives within idle_timeout.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in _with_idle_timeout(chunks, idle_timeout):
        buffer = (buffer + decoder.decode(chunk)).replace("\r\n", "\n")
        *blocks, buffer = buffer.split(EVENT_DELIMITER)
        for block in blocks:
            for event in _decode_block(block):
                yield event

    buffer = (buffer + decoder.decode(b"", final=True)).replace("\r\n", "\n")
    for event in _decode_block(buffer):
        yield event


def _decode_block(block: str) -> list[StreamEvent]:
    """Decode every event line in one blank-line-delimited block."""
    events: list[StreamEvent] = []
    for line in block.split("\n"):
        try:
            event = parse_event_line(line.strip())
        except MalformedEventError as e:
            logger.debug(f"Skipping malformed line: {e} ({e.raw_line!r:.120})")
            continue
        if event is not None:
            events.append(event)
    return events


async def _with_idle_timeout(
    chunks: AsyncIterable[bytes],
    timeout: float | None,
) -> AsyncIterator[bytes]:
    """Re-yield chunks, failing if the gap between two exceeds timeout."""
    iterator = chunks.__aiter__()
    while True:
        try:
            if timeout is None:
                chunk = await iterator.__anext__()
            else:
                chunk = await asyncio.wait_for(iterator.__anext__(), timeout)
        except StopAsyncIteration:
            return
        except asyncio.TimeoutError as e:
            raise StreamTimeoutError(
                f"No data received for {timeout}s", timeout=timeout
            ) from e
        yield chunk


class EventStreamReader:
    """Reads one stream and dispatches its events to callbacks.

    Guarantees per read:
    - on_complete fires exactly once, after the stream ends
    - on_error fires exactly once if the transport fails
    - the two are mutually exclusive
    - cancellation fires neither and propagates to the caller
    """

    def __init__(
        self,
        on_event: Callable[[StreamEvent], None],
        on_complete: Callable[[], None] | None = None,
        on_error: Callable[[TransportError], None] | None = None,
        on_open: Callable[[StreamResponse], None] | None = None,
        idle_timeout: float | None = None,
    ) -> None:
        """Initialize the reader.

        Args:
            on_event: Called for every decoded event, in arrival order.
            on_complete: Called once when the stream ends normally.
            on_error: Called once when the transport fails.
            on_open: Called with the response once the stream is open.
            idle_timeout: Maximum seconds between chunks.
        """
        self._on_event = on_event
        self._on_complete = on_complete
        self._on_error = on_error
        self._on_open = on_open
        self._idle_timeout = idle_timeout

    async def read(self, chunks: AsyncIterable[bytes]) -> None:
        """Consume already-open chunks until the stream ends."""
        try:
            await self._dispatch(chunks)
        except TransportError as e:
            self._fail(e)
            return
        self._complete()

    async def read_from(
        self,
        transport: StreamTransport,
        endpoint: str,
        payload: dict[str, Any],
    ) -> None:
        """Open a stream on the transport and consume it.

        Args:
            transport: Transport used to open the stream.
            endpoint: Collaborator endpoint path.
            payload: JSON request body.
        """
        try:
            async with transport.open(endpoint, payload) as response:
                if self._on_open is not None:
                    self._on_open(response)
                await self._dispatch(response.chunks)
        except TransportError as e:
            self._fail(e)
            return
        self._complete()

    async def _dispatch(self, chunks: AsyncIterable[bytes]) -> None:
        async for event in iter_events(chunks, self._idle_timeout):
            self._on_event(event)

    def _complete(self) -> None:
        if self._on_complete is not None:
            self._on_complete()

    def _fail(self, error: TransportError) -> None:
        logger.warning(f"Stream failed: {error}")
        if self._on_error is not None:
            self._on_error(error)


class StreamHandle:
    """Cancellation capability for one in-flight stream read."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def done(self) -> bool:
        """Whether the read has finished (normally, with error, or cancelled)."""
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        """Whether the read was cancelled."""
        return self._task.cancelled()

    def cancel(self) -> bool:
        """Cancel the read. Returns False if it had already finished."""
        return self._task.cancel()

    async def wait(self) -> None:
        """Wait for the read to finish; cancellation is not re-raised."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


def start_read(
    reader: EventStreamReader,
    transport: StreamTransport,
    endpoint: str,
    payload: dict[str, Any],
    name: str | None = None,
) -> StreamHandle:
    """Schedule reader.read_from on the running loop.

    Returns:
        Handle used to cancel or await the read.
    """
    task = asyncio.get_running_loop().create_task(
        reader.read_from(transport, endpoint, payload), name=name
    )
    return StreamHandle(task)
