# src/svg_sanitizer/streaming.py
"""Stream-in/stream-out sanitization through one background worker.

A worker thread runs sanitize_stream() and writes its output into a bounded
Channel; the caller reads the other end through a SanitizedStream, a plain
``io.RawIOBase`` that can be wrapped in ``io.BufferedReader`` or handed to
anything that reads binary files.

Contract:
- Bytes arrive in exactly the order the worker produced them.
- The worker blocks while the channel is full (backpressure).
- Closing the stream unblocks and stops the worker at its next channel
  write, and closes the source.
- A worker failure discards every chunk not yet read and surfaces as a
  StreamError on the next read.
"""

import io
import threading
from collections import deque
from typing import BinaryIO

from .config import DEFAULT_STREAM_QUEUE_SIZE
from .svg_sanitizer import sanitize_stream
from .types import SanitizationOptions, StreamCancelled, StreamError
from .utils import log_error, log_op

# =============================================================================
# Channel
# =============================================================================


class Channel:
    """Bounded, ordered queue of byte chunks between one writer and one reader."""

    def __init__(self, capacity: int = DEFAULT_STREAM_QUEUE_SIZE):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._chunks: deque[bytes] = deque()
        self._condition = threading.Condition()
        self._finished = False
        self._error: BaseException | None = None
        self._reader_closed = False

    @property
    def reader_closed(self) -> bool:
        with self._condition:
            return self._reader_closed

    def put(self, chunk: bytes) -> None:
        """Append a chunk, blocking while the channel is full.

        Raises:
            StreamCancelled: If the reader closed its end.
        """
        with self._condition:
            while len(self._chunks) >= self._capacity and not self._reader_closed:
                self._condition.wait()
            if self._reader_closed:
                raise StreamCancelled("reader closed the stream")
            self._chunks.append(chunk)
            self._condition.notify_all()

    def finish(self, error: BaseException | None = None) -> None:
        """Mark the end of output. With an error, pending chunks are discarded."""
        with self._condition:
            self._finished = True
            self._error = error
            if error is not None:
                self._chunks.clear()
            self._condition.notify_all()

    def get(self) -> bytes:
        """Take the next chunk, blocking until one is ready. b"" means end of stream.

        Raises:
            StreamError: If the writer finished with an error.
        """
        with self._condition:
            while not self._chunks and not self._finished and not self._reader_closed:
                self._condition.wait()
            if self._error is not None:
                raise StreamError(f"sanitization failed: {self._error}") from self._error
            if not self._chunks:
                return b""
            chunk = self._chunks.popleft()
            self._condition.notify_all()
            return chunk

    def close_reader(self) -> None:
        """Close the reading end; a blocked or later put() raises StreamCancelled."""
        with self._condition:
            self._reader_closed = True
            self._chunks.clear()
            self._condition.notify_all()


class _ChannelSink:
    """Binary sink facade over the writing end of a channel."""

    def __init__(self, channel: Channel):
        self._channel = channel

    def write(self, data: bytes) -> int:
        self._channel.put(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass


# =============================================================================
# Worker
# =============================================================================


def _produce(source: BinaryIO, channel: Channel, options: SanitizationOptions | None) -> None:
    try:
        sanitize_stream(source, _ChannelSink(channel), options, mode="channel")
    except Exception as e:
        if isinstance(e, StreamCancelled) or channel.reader_closed:
            # Includes reads failing because close() closed the source under us
            log_op("stream_cancelled", error_type=type(e).__name__)
            channel.finish()
        else:
            log_error("stream_sanitize_error", e)
            channel.finish(e)
    else:
        channel.finish()
    finally:
        source.close()


# =============================================================================
# Consumer Stream
# =============================================================================


class SanitizedStream(io.RawIOBase):
    """Readable binary stream of sanitized output, produced by a worker thread.

    Usage:
        with sanitize_to_stream(open("in.svg", "rb")) as stream:
            data = stream.read()
    """

    def __init__(
        self,
        source: BinaryIO,
        options: SanitizationOptions | None = None,
        capacity: int = DEFAULT_STREAM_QUEUE_SIZE,
    ):
        self._channel = Channel(capacity)
        super().__init__()
        self._source = source
        self._pending = b""
        self._worker = threading.Thread(
            target=_produce,
            args=(source, self._channel, options),
            name="svg-sanitizer-stream",
            daemon=True,
        )
        self._worker.start()

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        if self.closed:
            raise StreamError("read from a closed sanitized stream")
        if not self._pending:
            self._pending = self._channel.get()
            if not self._pending:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        """Cancel the worker and close the source. Safe to call twice."""
        if self.closed:
            return
        self._channel.close_reader()
        self._pending = b""
        try:
            self._source.close()
        finally:
            super().close()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker thread. Returns True once it has exited."""
        self._worker.join(timeout)
        return not self._worker.is_alive()


def sanitize_to_stream(
    source: BinaryIO,
    options: SanitizationOptions | None = None,
) -> SanitizedStream:
    """Start sanitizing ``source`` in the background and return the output stream.

    The returned stream owns ``source``: it is closed when the output is
    fully produced, when the worker fails, or when the stream is closed.
    """
    return SanitizedStream(source, options)
