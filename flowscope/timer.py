"""Cycle timers: per-stage counters that keep sampled measurements for reporting."""

from __future__ import annotations

import csv
import enum
import json
import logging
import math
import os
import threading
from typing import Iterable, Mapping, Optional, Union

_log = logging.getLogger(__name__)

STATS = (
    "name",
    "cnt",
    "rec",
    "avg",
    "min",
    "p05",
    "p25",
    "p50",
    "p75",
    "p95",
    "p99",
    "p999",
    "max",
)

DEFAULT_TIMERS = (
    "process",
    "packet_filter",
    "conn_track",
    "reassembly",
    "flush",
    "applayer_parse",
    "stream_filter",
    "builder",
    "callback",
    "remove_inactive",
)

_QUANTILES = (0.05, 0.25, 0.5, 0.75, 0.95, 0.99, 0.999)

PathLike = Union[str, "os.PathLike[str]"]


def mean(values: Iterable[int]) -> float:
    """Arithmetic mean; NaN for an empty sequence."""
    items = list(values)
    if not items:
        return math.nan
    return sum(items) / len(items)


def median(values: Iterable[int]) -> int:
    """Median, truncated to an integer when it falls between two values."""
    ordered = sorted(values)
    if not ordered:
        raise ValueError("Empty vector")
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return int(mean([ordered[mid - 1], ordered[mid]]))
    return ordered[mid]


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return f"{value:.3f}"


def _value_at_quantile(ordered: list[int], quantile: float) -> int:
    if not ordered:
        return 0
    rank = max(1, math.ceil(quantile * len(ordered)))
    return ordered[min(rank, len(ordered)) - 1]


class TimerKind(enum.Enum):
    """How a timer summarises its samples."""

    HISTOGRAM = "histogram"
    VECTOR = "vector"


class CycleTimer:
    """Counts every measurement and keeps one out of every ``sample``."""

    def __init__(self, kind: TimerKind = TimerKind.HISTOGRAM) -> None:
        self.kind = kind
        self.cnt = 0
        self.data: list[int] = []

    def record(self, value: int, sample: int = 1) -> None:
        """Count ``value``; keep it when the running count is a multiple of ``sample``."""
        if sample <= 0:
            raise ValueError(f"sample rate must be positive, got {sample}")
        if value < 0:
            raise ValueError(f"cannot record negative value {value}")
        if self.cnt % sample == 0:
            self.data.append(value)
        self.cnt += 1

    def stats(self) -> list[str]:
        """Count, recorded count, mean, min, percentiles and max, as strings."""
        if self.kind is TimerKind.HISTOGRAM:
            ordered = sorted(self.data)
            avg = sum(ordered) / len(ordered) if ordered else 0.0
            return [
                str(self.cnt),
                str(len(ordered)),
                _format_float(avg),
                str(ordered[0] if ordered else 0),
                *(str(_value_at_quantile(ordered, q)) for q in _QUANTILES),
                str(ordered[-1] if ordered else 0),
            ]
        mid = median(self.data) if self.data else 0
        return [
            str(self.cnt),
            str(len(self.data)),
            _format_float(mean(self.data)),
            str(min(self.data, default=0)),
            "",
            "",
            str(mid),
            "",
            "",
            "",
            "",
            str(max(self.data, default=0)),
        ]


class Timers:
    """A named, ordered collection of cycle timers safe to record from many threads."""

    def __init__(self, timers: Optional[Mapping[str, CycleTimer]] = None) -> None:
        if timers is None:
            timers = {name: CycleTimer(TimerKind.HISTOGRAM) for name in DEFAULT_TIMERS}
        self._timers: dict[str, CycleTimer] = dict(timers)
        self._locks = {name: threading.Lock() for name in self._timers}

    def __getitem__(self, name: str) -> CycleTimer:
        return self._timers[name]

    def __contains__(self, name: object) -> bool:
        return name in self._timers

    def __iter__(self):
        return iter(self._timers)

    def record(self, which: str, value: int, sample: int = 1) -> None:
        """Record ``value`` in the timer named ``which``; unknown names are logged."""
        timer = self._timers.get(which)
        if timer is None:
            _log.error("No cycle timer found for: %s", which)
            return
        with self._locks[which]:
            timer.record(value, sample)

    def _rows(self) -> list[list[str]]:
        rows = []
        for name, timer in self._timers.items():
            with self._locks[name]:
                rows.append([name, *timer.stats()])
        return rows

    def format_stats(self) -> str:
        """Render all timers as a text table with a title row."""
        rows = [list(STATS), *self._rows()]
        widths = [max(len(row[col]) for row in rows) for col in range(len(STATS))]
        rule = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

        def line(cells: list[str]) -> str:
            return "|" + "|".join(f" {c:<{w}} " for c, w in zip(cells, widths)) + "|"

        lines = [rule, line(rows[0]), rule, *(line(r) for r in rows[1:]), rule]
        return "\n".join(lines)

    def dump_stats(
        self,
        csv_path: PathLike = "cycle_hist.csv",
        json_path: PathLike = "cycle_vec.json",
    ) -> None:
        """Write histogram summaries as CSV and raw vector samples as JSON."""
        hist_rows = []
        vectors: dict[str, list[int]] = {}
        for name, timer in self._timers.items():
            with self._locks[name]:
                if timer.kind is TimerKind.HISTOGRAM:
                    hist_rows.append([name, *timer.stats()])
                else:
                    vectors[name] = list(timer.data)

        with open(csv_path, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh, lineterminator="\n")
            writer.writerow(STATS)
            writer.writerows(hist_rows)

        with open(json_path, "w", encoding="utf-8") as fh:
            json.dump(vectors, fh)