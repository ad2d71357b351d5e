"""Connection records: per-direction flow statistics and state history."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional

FIN = 0x01
SYN = 0x02
RST = 0x04
PSH = 0x08
ACK = 0x10

HIST_SYN = ord("S")
HIST_SYNACK = ord("H")
HIST_ACK = ord("A")
HIST_DATA = ord("D")
HIST_FIN = ord("F")
HIST_RST = ord("R")

_U32 = 0xFFFFFFFF
_RESPONDER_MASK = 0x20


def _wrapping_lt(lhs: int, rhs: int) -> bool:
    """Sequence-number comparison modulo 2**32."""
    diff = (lhs - rhs) & _U32
    return diff >= 0x80000000


def _format_addr(addr: tuple[str, int]) -> str:
    host, port = addr
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _duration_dict(value: timedelta) -> dict:
    micros = value // timedelta(microseconds=1)
    secs, rem = divmod(micros, 1_000_000)
    return {"secs": secs, "nanos": rem * 1000}


@dataclass(frozen=True)
class FiveTuple:
    """Connection identifier: originator and responder socket addresses and protocol."""

    orig: tuple[str, int]
    resp: tuple[str, int]
    proto: int

    def __str__(self) -> str:
        return f"{_format_addr(self.orig)} -> {_format_addr(self.resp)}"

    def to_dict(self) -> dict:
        return {
            "orig": _format_addr(self.orig),
            "resp": _format_addr(self.resp),
            "proto": self.proto,
        }


@dataclass(frozen=True, order=True)
class Chunk:
    """Start (inclusive) and end (exclusive) of contiguous payload bytes."""

    start: int
    end: int


@dataclass(frozen=True)
class Segment:
    """A transport-layer segment as seen by the connection tracker.

    ``data_len`` is the length of the whole packet buffer; by default the
    buffer ends exactly where the payload ends.
    """

    from_originator: bool
    flags: int = 0
    seq_no: int = 0
    offset: int = 0
    length: int = 0
    data_len: Optional[int] = None

    def __post_init__(self) -> None:
        if self.data_len is None:
            object.__setattr__(self, "data_len", self.offset + self.length)


@dataclass
class Flow:
    """A unidirectional flow."""

    nb_pkts: int = 0
    nb_malformed_pkts: int = 0
    nb_late_start_pkts: int = 0
    nb_bytes: int = 0
    max_simult_gaps: int = 0
    data_start: int = 0
    capacity: int = 100
    chunks: list[Chunk] = field(default_factory=list)
    gaps: dict[int, int] = field(default_factory=dict)

    def insert_segment(self, segment: Segment) -> None:
        """Account for ``segment`` and merge its payload interval into the flow."""
        self.nb_pkts += 1

        if (
            segment.offset > segment.data_len
            or segment.offset + segment.length > segment.data_len
        ):
            self.nb_malformed_pkts += 1
            return
        self.nb_bytes += segment.length

        seq_no = segment.seq_no & _U32
        if segment.flags & SYN:
            seq_no = (seq_no + 1) & _U32

        if not self.chunks:
            self.data_start = seq_no

        if _wrapping_lt(seq_no, self.data_start):
            self.nb_late_start_pkts += 1
            return

        if len(self.chunks) < self.capacity:
            seg_start = (seq_no - self.data_start) & _U32
            seg_end = (seg_start + segment.length) & _U32
            self.merge_chunk(Chunk(seg_start, seg_end))

    def merge_chunk(self, chunk: Chunk) -> None:
        """Insert ``chunk``, keeping ``chunks`` a sorted set of disjoint intervals."""
        start, end = chunk.start, chunk.end
        result: list[Chunk] = []
        inserted = False
        for existing in self.chunks:
            if inserted or start > existing.end:
                result.append(existing)
            elif end < existing.start:
                inserted = True
                result.append(Chunk(start, end))
                result.append(existing)
            else:
                start = min(start, existing.start)
                end = max(end, existing.end)
        if not inserted:
            result.append(Chunk(start, end))

        for open_chunk in result[:-1]:
            self.gaps[open_chunk.end] = self.gaps.get(open_chunk.end, 0) + 1

        if len(result) - 1 > self.max_simult_gaps:
            self.max_simult_gaps += 1
        self.chunks = result

    def content_gaps(self) -> int:
        """Number of gaps left in the final state of the flow."""
        return max(len(self.chunks) - 1, 0)

    def missed_bytes(self) -> int:
        """Number of bytes missing in the gaps left at the end."""
        return sum(nxt.start - cur.end for cur, nxt in zip(self.chunks, self.chunks[1:]))

    def mean_pkts_to_fill(self) -> Optional[float]:
        """Mean packet arrivals before a gap was filled, or None without gaps."""
        if not self.gaps:
            return None
        return sum(self.gaps.values()) / len(self.gaps)

    def median_pkts_to_fill(self) -> Optional[int]:
        """Median packet arrivals before a gap was filled, or None without gaps."""
        if not self.gaps:
            return None
        values = sorted(self.gaps.values())
        return values[len(values) // 2]

    def to_dict(self) -> dict:
        return {
            "nb_pkts": self.nb_pkts,
            "nb_malformed_pkts": self.nb_malformed_pkts,
            "nb_late_start_pkts": self.nb_late_start_pkts,
            "nb_bytes": self.nb_bytes,
            "max_simult_gaps": self.max_simult_gaps,
            "data_start": self.data_start,
            "capacity": self.capacity,
            "chunks": [[c.start, c.end] for c in self.chunks],
            "gaps": {str(k): v for k, v in self.gaps.items()},
        }


@dataclass
class Connection:
    """A finished connection record."""

    five_tuple: FiveTuple
    ts: float
    duration: timedelta
    max_inactivity: timedelta
    time_to_second_packet: timedelta
    history: bytes
    orig: Flow
    resp: Flow

    def client(self) -> tuple[str, int]:
        """The originator's socket address."""
        return self.five_tuple.orig

    def server(self) -> tuple[str, int]:
        """The responder's socket address."""
        return self.five_tuple.resp

    def total_pkts(self) -> int:
        return self.orig.nb_pkts + self.resp.nb_pkts

    def total_bytes(self) -> int:
        return self.orig.nb_bytes + self.resp.nb_bytes

    def history_text(self) -> str:
        return self.history.decode("utf-8", errors="replace")

    def to_dict(self) -> dict:
        """The serialised form of the record."""
        return {
            "five_tuple": self.five_tuple.to_dict(),
            "duration": _duration_dict(self.duration),
            "max_inactivity": _duration_dict(self.max_inactivity),
            "history": self.history_text(),
            "orig": self.orig.to_dict(),
            "resp": self.resp.to_dict(),
        }

    def __str__(self) -> str:
        return f"{self.five_tuple}: {self.history_text()}"


class TrackedConnection:
    """Accumulates a connection record over the lifetime of a connection."""

    def __init__(
        self, five_tuple: FiveTuple, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.five_tuple = five_tuple
        self._clock = clock
        now = clock()
        self.first_seen_ts = now
        self.second_seen_ts = now
        self.last_seen_ts = now
        self.max_inactivity = 0.0
        self.history = bytearray()
        self.ctos = Flow()
        self.stoc = Flow()

    def update(self, segment: Segment) -> None:
        """Account for one observed segment."""
        now = self._clock()
        inactivity = now - self.last_seen_ts
        if inactivity > self.max_inactivity:
            self.max_inactivity = inactivity
        self.last_seen_ts = now

        if segment.from_originator:
            self._update_history(segment, 0)
            self.ctos.insert_segment(segment)
        else:
            self._update_history(segment, _RESPONDER_MASK)
            self.stoc.insert_segment(segment)

        if self.ctos.nb_pkts + self.stoc.nb_pkts == 2:
            self.second_seen_ts = now

    def _update_history(self, segment: Segment, mask: int) -> None:
        def insert(event: int) -> None:
            event ^= mask
            if event not in self.history:
                self.history.append(event)

        flags = segment.flags
        if flags == SYN:
            insert(HIST_SYN)
        elif flags == SYN | ACK:
            insert(HIST_SYNACK)
        elif flags == ACK and segment.length == 0:
            insert(HIST_ACK)

        if flags & FIN:
            insert(HIST_FIN)
        if flags & RST:
            insert(HIST_RST)
        if segment.length > 0:
            insert(HIST_DATA)

    def finish(self) -> Connection:
        """Build the connection record at termination."""
        if self.ctos.nb_pkts + self.stoc.nb_pkts == 1:
            duration = max_inactivity = to_second = timedelta(0)
        else:
            duration = timedelta(seconds=self.last_seen_ts - self.first_seen_ts)
            max_inactivity = timedelta(seconds=self.max_inactivity)
            to_second = timedelta(seconds=self.second_seen_ts - self.first_seen_ts)
        return Connection(
            five_tuple=self.five_tuple,
            ts=self.first_seen_ts,
            duration=duration,
            max_inactivity=max_inactivity,
            time_to_second_packet=to_second,
            history=bytes(self.history),
            orig=_copy_flow(self.ctos),
            resp=_copy_flow(self.stoc),
        )


def _copy_flow(flow: Flow) -> Flow:
    return Flow(
        nb_pkts=flow.nb_pkts,
        nb_malformed_pkts=flow.nb_malformed_pkts,
        nb_late_start_pkts=flow.nb_late_start_pkts,
        nb_bytes=flow.nb_bytes,
        max_simult_gaps=flow.max_simult_gaps,
        data_start=flow.data_start,
        capacity=flow.capacity,
        chunks=list(flow.chunks),
        gaps=dict(flow.gaps),
    )