import msgpack
import pytest

from sevens.messaging.encoder import MAX_BUFFER_LEN, DecodeError, decode, encode


class TestEncoder:
    def test_frames_are_msgpack_maps(self):
        frame = encode({"type": "pong"})
        assert msgpack.unpackb(frame, raw=False) == {"type": "pong"}
        assert decode(frame) == {"type": "pong"}

    def test_non_map_rejected(self):
        with pytest.raises(DecodeError, match="expected map"):
            decode(msgpack.packb([1, 2, 3]))

    def test_garbage_rejected(self):
        with pytest.raises(DecodeError):
            decode(b"\xff\xff\xff")

    def test_oversized_payload_rejected(self):
        with pytest.raises(DecodeError, match="too large"):
            decode(b"\x00" * (MAX_BUFFER_LEN + 1))

    def test_long_strings_rejected(self):
        with pytest.raises(DecodeError):
            decode(msgpack.packb({"type": "createRoom", "username": "x" * 2000}))

    def test_non_string_keys_rejected(self):
        with pytest.raises(DecodeError):
            decode(msgpack.packb({1: "a"}))
