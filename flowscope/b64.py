"""Base64 encoding of byte fields for serialised records."""

from __future__ import annotations

import base64
import binascii
from typing import Union


def encode(data: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as a padded standard Base64 string."""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: Union[str, bytes]) -> bytes:
    """Decode a padded standard Base64 string; raise ValueError if malformed."""
    if isinstance(text, str):
        try:
            text = text.encode("ascii")
        except UnicodeEncodeError as exc:
            raise ValueError(f"invalid base64 input: {exc}") from exc
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 input: {exc}") from exc