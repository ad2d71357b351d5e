"""Reports built from delivered records: video session summaries and client random counts."""

from __future__ import annotations

import heapq
import math
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Iterable, Mapping, Optional

from flowscope.connection import Connection

VIDEO_CSV_HEADER = (
    "client",
    "parallel_flows",
    "bytes_up",
    "bytes_dn",
    "avg_ooo_up",
    "avg_ooo_dn",
    "tot_tput_dn",
    "duration",
)

DEFAULT_IDLE = timedelta(milliseconds=500)


def max_overlap(intervals: Iterable[tuple[float, float]]) -> int:
    """Estimate the largest number of simultaneously open intervals."""
    ends: list[float] = []  # max-heap via negated values
    for start, end in sorted(intervals, key=lambda iv: iv[0]):
        if ends and start > -ends[0]:
            heapq.heappop(ends)
        heapq.heappush(ends, -end)
    return len(ends)


@dataclass
class VideoSession:
    """A client's video session, made of several connections."""

    last_updated: float
    connections: list[Connection] = field(default_factory=list)


def _throughput(nb_bytes: int, duration: timedelta) -> float:
    micros = duration // timedelta(microseconds=1)
    bits = 8.0 * nb_bytes
    if micros == 0:
        return math.nan if bits == 0 else math.inf
    return bits / micros


def _summarise(client: str, session: VideoSession) -> tuple:
    conns = session.connections
    parallel_flows = max_overlap(
        (c.ts, c.ts + c.duration.total_seconds()) for c in conns
    )
    bytes_up = sum(c.orig.nb_bytes for c in conns)
    bytes_dn = sum(c.resp.nb_bytes for c in conns)
    ooo_up = float(sum(len(c.orig.gaps) for c in conns))
    ooo_dn = float(sum(len(c.resp.gaps) for c in conns))
    tput_dn = sum(_throughput(c.resp.nb_bytes, c.duration) for c in conns)
    last = conns[-1].ts + conns[-1].duration.total_seconds()
    duration_ms = int(max(0.0, last - conns[0].ts) * 1000)
    n = len(conns)
    return (
        client,
        parallel_flows,
        bytes_up,
        bytes_dn,
        ooo_up / n,
        ooo_dn / n,
        tput_dn / n * parallel_flows,
        duration_ms,
    )


class VideoTracker:
    """Groups connections by client and reports sessions once they go idle.

    Sessions are kept in least-recently-updated order; after each added
    connection the oldest session is reported and dropped if it has been idle
    for longer than ``idle``.
    """

    def __init__(
        self,
        idle: timedelta = DEFAULT_IDLE,
        on_report: Optional[Callable[[tuple], None]] = None,
    ) -> None:
        self.idle = idle
        self.on_report = on_report
        self.sessions: OrderedDict[str, VideoSession] = OrderedDict()

    def add(self, conn: Connection, now: Optional[float] = None) -> Optional[tuple]:
        """Add a finished connection; return the row of a session reported now, if any."""
        if now is None:
            now = time.monotonic()
        client = conn.five_tuple.orig[0]
        session = self.sessions.get(client)
        if session is None:
            self.sessions[client] = VideoSession(now, [conn])
        else:
            self.sessions.move_to_end(client)
            session.last_updated = now
            session.connections.append(conn)

        oldest_client, oldest = next(iter(self.sessions.items()))
        if now - oldest.last_updated <= self.idle.total_seconds():
            return None
        row = _summarise(oldest_client, oldest)
        del self.sessions[oldest_client]
        if self.on_report is not None:
            self.on_report(row)
        return row


def top_client_randoms(
    counts: Mapping[str, int], limit: Optional[int] = 10
) -> list[tuple[str, int]]:
    """Non-empty client randoms seen more than once, most frequent first."""
    repeated = [(k, v) for k, v in counts.items() if v > 1 and k != ""]
    repeated.sort(key=lambda kv: kv[1], reverse=True)
    return repeated if limit is None else repeated[:limit]