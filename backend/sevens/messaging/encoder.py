"""
MessagePack encoder/decoder for the WebSocket wire format.

Every frame in either direction is a single MessagePack map with a "type"
key naming the message.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Error raised when an inbound frame cannot be decoded."""


# Client commands are tiny; anything larger is rejected before unpacking.
MAX_BUFFER_LEN = 16 * 1024  # 16KB total payload
MAX_STR_LEN = 1024  # per string (usernames, card ids)
MAX_BIN_LEN = 1024
MAX_ARRAY_LEN = 64
MAX_MAP_LEN = 32
MAX_EXT_LEN = 0  # extension types are never used


def encode(data: dict[str, Any]) -> bytes:
    """
    Encode a message dict to MessagePack bytes.
    """
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode a MessagePack frame into a message dict.

    Raises DecodeError if the frame is invalid, not a map, or exceeds size limits.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")

    return result
