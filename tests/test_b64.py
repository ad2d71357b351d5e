import pytest

from flowscope.b64 import decode, encode


def test_encode_known_value():
    assert encode(b"hello") == "aGVsbG8="


def test_empty_round_trip():
    assert encode(b"") == ""
    assert decode("") == b""


@pytest.mark.parametrize(
    "data", [b"\x00", b"\xff\xfe\xfd", bytes(range(256)), b"client random bytes"]
)
def test_round_trip(data):
    text = encode(data)
    assert decode(text) == data
    assert len(text) % 4 == 0


def test_decode_accepts_bytes():
    data = b"\x10\x20\x30\x40"
    assert decode(encode(data).encode("ascii")) == data


def test_decode_rejects_bad_characters():
    with pytest.raises(ValueError):
        decode("abc$")


def test_decode_rejects_missing_padding():
    with pytest.raises(ValueError):
        decode("aGVsbG8")


def test_decode_rejects_non_ascii():
    with pytest.raises(ValueError):
        decode("é===")