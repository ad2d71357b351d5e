# flowscope

Building blocks for analysing network traffic at the connection level. The package has no
dependencies outside the standard library.

## Modules

### `flowscope.connection`: connection records

- `FiveTuple(orig, resp, proto)` identifies a connection. `orig` and `resp` are `(host, port)`
  tuples.
- `Segment(from_originator, flags=0, seq_no=0, offset=0, length=0, data_len=None)` describes one
  observed transport segment. If `data_len` is omitted, it defaults to `offset + length`.
- `Flow` holds the statistics for one direction:
  - `nb_pkts`, `nb_malformed_pkts`, `nb_late_start_pkts` and `nb_bytes`.
  - `max_simult_gaps`, plus the sorted, disjoint payload intervals (`chunks` of `Chunk`).
  - A map from gap position to the number of packets seen before the gap was filled (`gaps`).
  - `content_gaps()`, `missed_bytes()`, `mean_pkts_to_fill()` and `median_pkts_to_fill()`. The
    last two return `None` when there were no gaps.

  Sequence numbers are compared modulo 2³². At most `capacity` (100) chunks are tracked.
- `TrackedConnection(five_tuple, clock=time.monotonic)` accumulates a connection:
  - `update(segment)` accounts for one segment.
  - `finish()` returns a `Connection` record.
- `Connection` records the following:
  - The five-tuple, the first-seen timestamp and the duration.
  - The maximum inactivity and the time to the second packet. All three durations are zero for a
    single-packet connection.
  - A state history and the `orig`/`resp` flows.

  It provides `client()`, `server()`, `total_pkts()`, `total_bytes()`, `history_text()` and
  `to_dict()`, a JSON-ready form with durations written as `{"secs", "nanos"}`.

The history holds at most one of each letter per direction:

| Letter | Meaning                                      |
|--------|----------------------------------------------|
| `S`    | a pure SYN                                   |
| `H`    | a pure SYN+ACK                               |
| `A`    | a pure ACK with no payload                   |
| `D`    | a segment with payload                       |
| `F`    | FIN set                                      |
| `R`    | RST set                                      |

The letter is upper case for the originator and lower case for the responder.

### `flowscope.subscription`: subscriptions

- `Level` orders subscription levels: `PACKET < CONNECTION < SESSION`.
- `Subscription(packet_filter, conn_filter, session_filter, callback, timers=None)` pairs three
  filter callables with a callback:
  - `filter_packet`, `filter_conn` and `filter_session(session, idx)` run the filters.
  - `invoke(obj)` calls the callback. When `timers` is given, the call time is recorded in
    nanoseconds under `"callback"`.

### `flowscope.stream`: byte streams

- `Direction` is either `FROM_ORIGINATOR` or `FROM_RESPONDER`.
- `StreamChunk(five_tuple, data, direction)` is one delivered piece of payload.
- `StreamFlow(max_chunk_size=8000)` buffers the bytes of one direction:
  - `append` adds bytes with no limit.
  - `append_chunked` returns the previous buffer contents when the new data would exceed the
    limit.
  - `drain` returns and clears the buffer.
- `StreamAssembler(five_tuple, subscription, max_chunk_size=8000)` works as follows:
  - `update_prefilter` buffers payload until a match.
  - `on_match()` delivers all buffered bytes, originator side first, in chunks of at most
    `max_chunk_size`.
  - `update_postfilter` delivers a chunk whenever the buffer would overflow.
  - Empty payloads are ignored.

### `flowscope.timer`: cycle timers

- `CycleTimer(kind=TimerKind.HISTOGRAM)`:
  - `record(value, sample=1)` counts every value and keeps one in every `sample`.
  - `stats()` returns the count, the number kept, the mean, the minimum, the percentiles and the
    maximum as strings. The percentiles are p05 to p999; the vector kind gives only the median.
- `Timers()` has one histogram timer for each name in `DEFAULT_TIMERS`. Its methods:
  - `record(which, value, sample=1)` is thread-safe and logs an error for unknown names.
  - `format_stats()` renders a text table.
  - `dump_stats(csv_path="cycle_hist.csv", json_path="cycle_vec.json")` writes histogram
    summaries to CSV and raw vector samples to JSON.
- `mean(values)` returns NaN when empty. `median(values)` raises `ValueError` when empty and
  truncates the average of the two middle values.

### `flowscope.byteorder` and `flowscope.b64`

- `BigEndian` holds a 16, 32, 64 or 128-bit unsigned value as big-endian bytes. It provides
  `from_int(value, width)`, `from_ipv4(addr)`, `to_int()`, and bitwise `&` and `|` between values
  of equal width.
- `encode(data)` and `decode(text)` handle padded standard Base64. `decode` raises `ValueError` on
  malformed input.

### `flowscope.reports`: reports from records

- `max_overlap(intervals)` estimates the number of parallel intervals.
- `VideoTracker(idle=timedelta(milliseconds=500), on_report=None)` groups finished connections by
  client address:
  - After each `add(conn, now=None)`, it reports and drops the least recently updated session if
    that session has been idle longer than `idle`.
  - The report is a row matching `VIDEO_CSV_HEADER`. It is returned and also passed to
    `on_report`.
- `top_client_randoms(counts, limit=10)` lists the non-empty keys counted more than once, most
  frequent first.

## Installation

```
pip install .
```

To install with the test suite and run it:

```
pip install .[test]
pytest
```

## Example

```python
from flowscope.connection import SYN, FiveTuple, Segment, TrackedConnection

five_tuple = FiveTuple(("10.0.0.1", 40000), ("10.0.0.2", 443), 6)
tracked = TrackedConnection(five_tuple)
tracked.update(Segment(from_originator=True, flags=SYN, seq_no=1000, offset=54, length=0))
conn = tracked.finish()
print(conn.history_text(), conn.total_pkts())  # S 1
```

## What this package does not do

It does not capture packets, parse protocol headers or application sessions, or compile filter
expressions. Filters are plain callables that you supply. The package has no command-line
programs. You feed it segments and connection records from your own capture pipeline.