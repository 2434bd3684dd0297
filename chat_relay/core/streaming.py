# chat_relay/core/streaming.py

import asyncio
import codecs
import json
from typing import Any, AsyncIterator, Callable, List, Optional

import httpx

from chat_relay.config import log
from chat_relay.models.chat_models import error_event, response_event

DATA_MARKER = "data:"

_EOF = object()

# --- FRAMING HELPERS ---

class SSELineDecoder:
    """Turns arbitrary byte chunks into complete text lines."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Returns whatever is left once the upstream has ended."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [tail.rstrip("\r")] if tail.strip() else []


def parse_data_line(line: str) -> Optional[str]:
    """Payload of an SSE data line, or None for comments, event names and blanks."""
    if not line.startswith(DATA_MARKER):
        return None
    payload = line[len(DATA_MARKER):]
    return payload[1:] if payload.startswith(" ") else payload


def dig(obj: Any, *path) -> Any:
    """Walks dict keys and list indices, returning None as soon as a level is missing."""
    for key in path:
        if isinstance(key, int):
            if not isinstance(obj, list) or not -len(obj) <= key < len(obj):
                return None
        elif not isinstance(obj, dict) or key not in obj:
            return None
        obj = obj[key]
    return obj

# --- CHANNEL ---

class FramePipe:
    """Bounded single-producer, single-consumer channel of encoded frames."""

    def __init__(self, maxsize: int = 1):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    async def write(self, frame: bytes) -> None:
        if self.closed:
            raise RuntimeError("write to a closed pipe")
        await self._queue.put(frame)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(_EOF)
        except asyncio.QueueFull:
            # The reader stops once it has drained the queue.
            pass

    def __aiter__(self) -> "FramePipe":
        return self

    async def __anext__(self) -> bytes:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        frame = await self._queue.get()
        if frame is _EOF:
            raise StopAsyncIteration
        return frame

# --- RELAY ---

class StreamRelay:
    """
    Copies an upstream streaming response into a FramePipe from a background task.

    Without a translate function the upstream bytes are forwarded untouched.
    With one, every SSE data line is parsed as JSON and handed to it; the text
    it returns is re-emitted as a {"response": ...} frame.
    """

    def __init__(
        self,
        upstream: httpx.Response,
        client: httpx.AsyncClient,
        translate: Optional[Callable[[Any], Optional[str]]] = None,
        queue_size: int = 1,
        source: str = "upstream",
    ):
        self._upstream = upstream
        self._client = client
        self._translate = translate
        self._source = source
        self.pipe = FramePipe(queue_size)
        self.task: Optional[asyncio.Task] = None

    def start(self) -> AsyncIterator[bytes]:
        """Returns the body iterator; the producer starts on its first step."""
        return self._drain()

    async def aclose(self) -> None:
        """Releases the upstream whether or not the body was ever iterated."""
        if self.task is None:
            self.pipe.close()
            await self._release()
        else:
            self._cancel()

    async def _drain(self) -> AsyncIterator[bytes]:
        if self.pipe.closed:
            return
        try:
            self.task = asyncio.create_task(self._pump())
            async for frame in self.pipe:
                yield frame
        finally:
            self._cancel()

    def _cancel(self) -> None:
        if self.task and not self.task.done():
            log.info(f"Client left before {self._source} finished streaming. Cancelling upstream read.")
            self.task.cancel()

    async def _release(self) -> None:
        await self._upstream.aclose()
        await self._client.aclose()

    async def _pump(self) -> None:
        try:
            if self._translate is None:
                async for chunk in self._upstream.aiter_bytes():
                    await self.pipe.write(chunk)
            else:
                decoder = SSELineDecoder()
                async for chunk in self._upstream.aiter_bytes():
                    for line in decoder.feed(chunk):
                        await self._emit_line(line)
                for line in decoder.flush():
                    await self._emit_line(line)
            log.info(f"Stream from {self._source} finished.")
        except Exception as e:
            log.error(f"Error while reading the stream from {self._source}: {e}", exc_info=True)
            await self.pipe.write(error_event(f"Stream from {self._source} was interrupted: {e}"))
        finally:
            # The pipe closes last so the consumer only finishes once the upstream is released.
            try:
                await self._release()
            finally:
                self.pipe.close()

    async def _emit_line(self, line: str) -> None:
        data = parse_data_line(line)
        if data is None:
            return
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            log.warning(f"Skipping malformed SSE data chunk from {self._source}: {e}. Chunk: {data!r}")
            return
        text = self._translate(payload)
        if text:
            await self.pipe.write(response_event(text))
