"""Connection byte streams delivered in bounded chunks per direction."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union

from flowscope.connection import FiveTuple
from flowscope.subscription import Subscription

_log = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 8000

BytesLike = Union[bytes, bytearray, memoryview]


class Direction(enum.Enum):
    """Which endpoint sent the bytes."""

    FROM_ORIGINATOR = "from_originator"
    FROM_RESPONDER = "from_responder"


@dataclass(frozen=True)
class StreamChunk:
    """A piece of reassembled payload from one direction of a connection."""

    five_tuple: FiveTuple
    data: bytes
    direction: Direction


class StreamFlow:
    """Byte buffer for one direction of a stream."""

    def __init__(self, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE) -> None:
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        self.max_chunk_size = max_chunk_size
        self.buffer = bytearray()

    def __len__(self) -> int:
        return len(self.buffer)

    def append(self, data: BytesLike) -> None:
        """Append payload regardless of the chunk size limit."""
        self.buffer.extend(data)

    def append_chunked(self, data: BytesLike) -> Optional[bytes]:
        """Append payload; if that would exceed the limit, first return the buffered bytes."""
        if len(self.buffer) + len(data) > self.max_chunk_size:
            to_deliver = self.drain()
            self.buffer.extend(data)
            return to_deliver
        self.buffer.extend(data)
        return None

    def drain(self) -> bytes:
        """Return everything buffered and empty the buffer."""
        to_deliver = bytes(self.buffer)
        self.buffer.clear()
        return to_deliver


class StreamAssembler:
    """Buffers both directions of a connection and hands chunks to a subscription."""

    def __init__(
        self,
        five_tuple: FiveTuple,
        subscription: Subscription,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
    ) -> None:
        self.five_tuple = five_tuple
        self.subscription = subscription
        self.max_chunk_size = max_chunk_size
        self.ctos = StreamFlow(max_chunk_size)
        self.stoc = StreamFlow(max_chunk_size)

    def _flow(self, direction: Direction) -> StreamFlow:
        return self.ctos if direction is Direction.FROM_ORIGINATOR else self.stoc

    def _emit(self, data: bytes, direction: Direction) -> None:
        self.subscription.invoke(StreamChunk(self.five_tuple, data, direction))

    def update_prefilter(self, payload: BytesLike, from_client: bool) -> None:
        """Buffer payload seen before the filter has matched."""
        if len(payload) == 0:
            return
        _log.debug("updating stream prefilter")
        (self.ctos if from_client else self.stoc).append(payload)

    def update_postfilter(self, payload: BytesLike, from_client: bool) -> None:
        """Buffer payload after a match, delivering a chunk when the buffer would overflow."""
        if len(payload) == 0:
            return
        _log.debug("updating stream postfilter")
        direction = Direction.FROM_ORIGINATOR if from_client else Direction.FROM_RESPONDER
        to_deliver = self._flow(direction).append_chunked(payload)
        if to_deliver is not None:
            self._emit(to_deliver, direction)

    def deliver_chunked(self, direction: Direction) -> None:
        """Deliver the buffered bytes of one direction in pieces of at most the chunk size."""
        data = self._flow(direction).drain()
        size = self.max_chunk_size
        for start in range(0, len(data), size):
            self._emit(data[start : start + size], direction)

    def on_match(self) -> None:
        """The filter matched: deliver everything buffered, originator side first."""
        _log.debug("stream filter matched")
        self.deliver_chunked(Direction.FROM_ORIGINATOR)
        self.deliver_chunked(Direction.FROM_RESPONDER)