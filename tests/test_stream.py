import pytest

from flowscope.connection import FiveTuple
from flowscope.stream import (
    DEFAULT_MAX_CHUNK_SIZE,
    Direction,
    StreamAssembler,
    StreamChunk,
    StreamFlow,
)
from flowscope.subscription import Subscription

FT = FiveTuple(("10.0.0.1", 40000), ("10.0.0.2", 80), 6)


def _assembler(max_chunk_size=DEFAULT_MAX_CHUNK_SIZE):
    delivered = []
    sub = Subscription(
        lambda p: None, lambda c: None, lambda s, i: True, delivered.append
    )
    return StreamAssembler(FT, sub, max_chunk_size), delivered


def test_default_chunk_size_is_8000():
    asm, _ = _assembler()
    assert asm.max_chunk_size == 8000
    assert asm.ctos.max_chunk_size == 8000
    assert asm.stoc.max_chunk_size == 8000


def test_prefilter_buffers_without_delivery():
    asm, delivered = _assembler()
    asm.update_prefilter(b"hello", True)
    asm.update_prefilter(b"world", False)
    assert delivered == []
    assert bytes(asm.ctos.buffer) == b"hello"
    assert bytes(asm.stoc.buffer) == b"world"


def test_empty_payload_ignored():
    asm, delivered = _assembler(max_chunk_size=2)
    asm.update_prefilter(b"", True)
    asm.update_postfilter(b"", False)
    assert len(asm.ctos) == 0
    assert len(asm.stoc) == 0
    assert delivered == []


def test_on_match_delivers_originator_then_responder():
    asm, delivered = _assembler()
    asm.update_prefilter(b"req", True)
    asm.update_prefilter(b"resp", False)
    asm.on_match()
    assert delivered == [
        StreamChunk(FT, b"req", Direction.FROM_ORIGINATOR),
        StreamChunk(FT, b"resp", Direction.FROM_RESPONDER),
    ]
    assert len(asm.ctos) == 0 and len(asm.stoc) == 0


def test_deliver_chunked_splits_by_max_size():
    data = b"abcdefghij"
    asm, delivered = _assembler(max_chunk_size=4)
    asm.update_prefilter(data, True)
    asm.deliver_chunked(Direction.FROM_ORIGINATOR)
    assert all(len(c.data) <= 4 for c in delivered)
    assert all(len(c.data) > 0 for c in delivered)
    assert b"".join(c.data for c in delivered) == data
    assert all(c.direction is Direction.FROM_ORIGINATOR for c in delivered)
    assert len(asm.ctos) == 0


def test_deliver_chunked_empty_buffer_delivers_nothing():
    asm, delivered = _assembler()
    asm.deliver_chunked(Direction.FROM_RESPONDER)
    assert delivered == []


def test_postfilter_delivers_buffer_when_limit_exceeded():
    asm, delivered = _assembler(max_chunk_size=5)
    asm.update_postfilter(b"abc", False)
    assert delivered == []
    asm.update_postfilter(b"def", False)
    assert delivered == [StreamChunk(FT, b"abc", Direction.FROM_RESPONDER)]
    assert bytes(asm.stoc.buffer) == b"def"


def test_flow_append_chunked_and_drain():
    flow = StreamFlow(5)
    assert flow.append_chunked(b"ab") is None
    assert flow.append_chunked(b"cde") is None
    assert flow.append_chunked(b"f") == b"abcde"
    assert flow.drain() == b"f"
    assert flow.drain() == b""


def test_flow_append_ignores_limit():
    flow = StreamFlow(2)
    flow.append(b"abcdef")
    assert flow.drain() == b"abcdef"


def test_flow_rejects_non_positive_size():
    with pytest.raises(ValueError):
        StreamFlow(0)