"""Hex and fixed-width integer codecs used on the wire."""
from __future__ import annotations

COUNTER_SIZE_BYTES = 8


def hex_to_bytes(data: str) -> bytes:
    """Decode a hex string, tolerating an optional ``0x`` prefix.

    Raises:
        ValueError: If the input is not valid hex.
    """
    cleaned = data.strip()
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    try:
        return bytes.fromhex(cleaned)
    except ValueError as err:
        raise ValueError(f"Invalid hex encoding: {err}") from err


def bytes_to_hex(data: bytes) -> str:
    """Return the lowercase hex encoding of ``data``."""
    return bytes(data).hex()


def encode_counter(counter: int) -> bytes:
    """Encode a PoW counter as an unsigned 64-bit big-endian integer."""
    return counter.to_bytes(COUNTER_SIZE_BYTES, "big", signed=False)


def decode_counter(counter_hex: str) -> int:
    """Decode a hex-encoded 64-bit big-endian counter."""
    raw = hex_to_bytes(counter_hex)
    if len(raw) != COUNTER_SIZE_BYTES:
        raise ValueError(f"Counter must be {COUNTER_SIZE_BYTES} bytes, got {len(raw)}")
    return int.from_bytes(raw, "big", signed=False)
