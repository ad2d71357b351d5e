"""Subscriptions: a callback paired with the filters that select its traffic."""

from __future__ import annotations

import enum
import time
from typing import Any, Callable, Optional, Protocol


class Level(enum.IntEnum):
    """The abstraction level of a subscribable type, ordered from finest to coarsest."""

    PACKET = 0
    """Individual packets or frames, without connection semantics."""
    CONNECTION = 1
    """Whole connections, as a single record or as a stream."""
    SESSION = 2
    """Application-layer sessions, possibly several per connection."""


class _Recorder(Protocol):
    def record(self, which: str, value: int, sample: int) -> None: ...


class Subscription:
    """A request for a callback on the subset of traffic selected by three filters.

    The packet and connection filters return whatever result type the caller's
    filter pipeline uses; the session filter returns a boolean.
    """

    def __init__(
        self,
        packet_filter: Callable[[Any], Any],
        conn_filter: Callable[[Any], Any],
        session_filter: Callable[[Any, int], bool],
        callback: Callable[[Any], Any],
        timers: Optional[_Recorder] = None,
    ) -> None:
        self._packet_filter = packet_filter
        self._conn_filter = conn_filter
        self._session_filter = session_filter
        self._callback = callback
        self.timers = timers

    def filter_packet(self, packet: Any) -> Any:
        """Run the packet filter on ``packet``."""
        return self._packet_filter(packet)

    def filter_conn(self, conn: Any) -> Any:
        """Run the connection filter on ``conn``."""
        return self._conn_filter(conn)

    def filter_session(self, session: Any, idx: int) -> bool:
        """Run the session filter; ``idx`` is the numerical id of the filter node."""
        return bool(self._session_filter(session, idx))

    def invoke(self, obj: Any) -> None:
        """Hand ``obj`` to the callback, timing the call when timers are attached."""
        if self.timers is None:
            self._callback(obj)
            return
        start = time.perf_counter_ns()
        self._callback(obj)
        self.timers.record("callback", time.perf_counter_ns() - start, 1)