"""Shared constants and address helpers for the ping correlation engine."""

from __future__ import annotations

import socket
from typing import Union

MICROS_PER_SECOND = 1_000_000
MICROS_PER_MILLI = 1_000

# Payload sizes of the lobby host handshake: 56 is the request, 68 the response.
PROBE_PAYLOAD_BYTES = 56
REPLY_PAYLOAD_BYTES = 68

CAPTURE_FILTER = "udp and less 150"

UNSPECIFIED_ADDRESS = "0.0.0.0"


def format_ip(value: Union[bytes, bytearray, str]) -> str:
    """Convert a raw IPv4 buffer into a printable string."""
    if isinstance(value, (bytes, bytearray)) and len(value) == 4:
        return ".".join(str(b & 0xFF) for b in value)
    return str(value)


def pack_ip(value: Union[bytes, bytearray, str]) -> bytes:
    """Return the 4-byte form of an IPv4 address given as text or bytes."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 4:
            raise ValueError(f"Not an IPv4 address buffer: {value!r}")
        return bytes(value)
    try:
        return socket.inet_pton(socket.AF_INET, value.strip())
    except OSError as exc:
        raise ValueError(f"Not an IPv4 address: {value!r}") from exc


def micros_to_millis(micros: int) -> int:
    # Truncates toward zero so negative deltas keep their sign.
    return int(micros / MICROS_PER_MILLI)


__all__ = [
    "MICROS_PER_SECOND",
    "MICROS_PER_MILLI",
    "PROBE_PAYLOAD_BYTES",
    "REPLY_PAYLOAD_BYTES",
    "CAPTURE_FILTER",
    "UNSPECIFIED_ADDRESS",
    "format_ip",
    "pack_ip",
    "micros_to_millis",
]
