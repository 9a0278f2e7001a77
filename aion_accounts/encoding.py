"""RLP sedes and hex/bytes/int coercion helpers.

The Aion kernel reads ``gas``, ``gasPrice`` and ``type`` as fixed-width
longs, so those fields use :data:`aion_long` instead of pyrlp's minimal
``big_endian_int``. Everything else follows standard RLP.
"""

from __future__ import annotations

from typing import Any

from rlp.exceptions import DeserializationError, SerializationError
from rlp.sedes import List, big_endian_int, binary

# ---------------------------------------------------------------------------
# Long wire form
# ---------------------------------------------------------------------------

LONG_WIDTH = 8


class AionLong:
    """Sedes for the kernel's long encoding.

    A non-negative integer serialises big-endian, left-padded to at least
    :data:`LONG_WIDTH` bytes. Values too wide for a long keep their minimal
    big-endian length, so any integer round-trips.
    """

    def __init__(self, width: int = LONG_WIDTH) -> None:
        self.width = width

    def serialize(self, obj: Any) -> bytes:
        if isinstance(obj, bool) or not isinstance(obj, int):
            raise SerializationError("Can only serialize integers", obj)
        if obj < 0:
            raise SerializationError("Cannot serialize negative integers", obj)
        length = max(self.width, (obj.bit_length() + 7) // 8)
        return obj.to_bytes(length, "big")

    def deserialize(self, serial: bytes) -> int:
        if not isinstance(serial, (bytes, bytearray)):
            raise DeserializationError("Long values must be byte strings", serial)
        return int.from_bytes(serial, "big")


aion_long = AionLong()

# [nonce, to, value, data, timestamp, gas, gasPrice, type]
UNSIGNED_TX_SEDES = List(
    [
        big_endian_int,
        binary,
        big_endian_int,
        binary,
        big_endian_int,
        aion_long,
        aion_long,
        aion_long,
    ]
)

# ---------------------------------------------------------------------------
# Hex helpers
# ---------------------------------------------------------------------------


def strip_0x(value: str) -> str:
    """Remove a leading ``0x``/``0X`` if present."""
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def to_hex(data: bytes) -> str:
    """Render bytes as ``0x``-prefixed lowercase hex."""
    return "0x" + bytes(data).hex()


def to_bytes(value: bytes | bytearray | str | None) -> bytes:
    """Coerce bytes or (``0x``-)hex text into bytes. ``None`` and ``"0x"`` are empty."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        digits = strip_0x(value)
        if len(digits) % 2:
            digits = "0" + digits
        try:
            return bytes.fromhex(digits)
        except ValueError as exc:
            raise ValueError(f"not a hex string: {value!r}") from exc
    raise TypeError(f"cannot convert {type(value).__name__} to bytes")


def to_int(value: int | str | bytes | None) -> int | None:
    """Coerce an integer-like value.

    ``0x`` strings are hexadecimal, other strings decimal, byte strings
    big-endian. ``None``, ``""`` and ``"0x"`` mean absent.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    if isinstance(value, str):
        text = value.strip()
        if text in ("", "0x", "0X"):
            return None
        if text[:2] in ("0x", "0X"):
            return int(text[2:], 16)
        if text.startswith("-0x"):
            return -int(text[3:], 16)
        return int(text, 10)
    raise ValueError(f"cannot convert {type(value).__name__} to int")


def int_from_bytes(serial: bytes) -> int:
    """Big-endian interpretation; the empty string is zero."""
    return int.from_bytes(serial, "big")
