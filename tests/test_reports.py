from datetime import timedelta

import pytest

from flowscope.connection import Connection, FiveTuple, Flow
from flowscope.reports import (
    VIDEO_CSV_HEADER,
    VideoSession,
    VideoTracker,
    max_overlap,
    top_client_randoms,
)


def _conn(ip, ts=0.0, seconds=1.0, up=100, down=1000, gaps_up=None):
    return Connection(
        five_tuple=FiveTuple((ip, 50000), ("192.0.2.10", 443), 6),
        ts=ts,
        duration=timedelta(seconds=seconds),
        max_inactivity=timedelta(0),
        time_to_second_packet=timedelta(0),
        history=b"",
        orig=Flow(nb_bytes=up, gaps=dict(gaps_up or {})),
        resp=Flow(nb_bytes=down),
    )


def test_max_overlap_empty():
    assert max_overlap([]) == 0


def test_max_overlap_disjoint_is_one():
    assert max_overlap([(4, 5), (0, 1), (2, 3)]) == 1


def test_max_overlap_identical_intervals():
    intervals = [(1.0, 9.0)] * 5
    assert max_overlap(intervals) == len(intervals)


def test_max_overlap_bounded_by_count():
    intervals = [(0, 10), (1, 5), (6, 7), (11, 12)]
    result = max_overlap(intervals)
    assert 1 <= result <= len(intervals)


def test_report_row_matches_csv_header():
    tracker = VideoTracker()
    tracker.add(_conn("198.51.100.1"), now=0.0)
    row = tracker.add(_conn("198.51.100.2"), now=1.0)
    assert len(row) == len(VIDEO_CSV_HEADER)
    assert VIDEO_CSV_HEADER[0] == "client"
    assert VIDEO_CSV_HEADER[-1] == "duration"


def test_tracker_no_report_while_active():
    tracker = VideoTracker()
    assert tracker.add(_conn("198.51.100.1"), now=0.0) is None
    assert tracker.add(_conn("198.51.100.1"), now=0.3) is None
    assert len(tracker.sessions["198.51.100.1"].connections) == 2


def test_tracker_reports_idle_session():
    reported = []
    tracker = VideoTracker(on_report=reported.append)
    first = _conn("198.51.100.1", ts=0.0, seconds=2.0, up=123, down=456)
    tracker.add(first, now=0.0)
    row = tracker.add(_conn("198.51.100.2"), now=1.0)
    assert row is not None
    assert reported == [row]
    assert row[0] == "198.51.100.1"
    assert row[1] == 1
    assert row[2] == first.orig.nb_bytes
    assert row[3] == first.resp.nb_bytes
    assert row[7] == 2000
    assert list(tracker.sessions) == ["198.51.100.2"]


def test_tracker_moves_updated_session_to_back():
    tracker = VideoTracker()
    tracker.add(_conn("198.51.100.1"), now=0.0)
    tracker.add(_conn("198.51.100.2"), now=0.1)
    tracker.add(_conn("198.51.100.1"), now=0.2)
    assert list(tracker.sessions) == ["198.51.100.2", "198.51.100.1"]
    assert isinstance(tracker.sessions["198.51.100.1"], VideoSession)
    assert tracker.sessions["198.51.100.1"].last_updated == 0.2


def test_tracker_averages_gaps_per_connection():
    tracker = VideoTracker()
    tracker.add(_conn("198.51.100.1", gaps_up={5: 1, 9: 2}), now=0.0)
    tracker.add(_conn("198.51.100.1", gaps_up={}), now=0.1)
    row = tracker.add(_conn("198.51.100.3"), now=5.0)
    assert row[4] == pytest.approx((2 + 0) / 2)
    assert row[5] == pytest.approx(0.0)


def test_top_client_randoms_filters_and_sorts():
    counts = {"a": 3, "b": 1, "": 5, "c": 2}
    assert top_client_randoms(counts) == [("a", 3), ("c", 2)]


def test_top_client_randoms_limit():
    counts = {"x": 4, "y": 7, "z": 2}
    top = top_client_randoms(counts, 2)
    assert top == [("y", 7), ("x", 4)]
    assert top_client_randoms(counts, None) == [("y", 7), ("x", 4), ("z", 2)]