"""Minimal per-packet record handed from the capture layer to the engine."""

from __future__ import annotations

from dataclasses import dataclass

from .utils import format_ip


@dataclass(frozen=True)
class CapturedPacket:
    src: bytes
    dst: bytes
    payload_bytes: int
    timestamp: int

    def __post_init__(self) -> None:
        # Copies keep decoder buffers from leaking into the table keys.
        object.__setattr__(self, "src", bytes(self.src))
        object.__setattr__(self, "dst", bytes(self.dst))

    @property
    def src_ip(self) -> str:
        return format_ip(self.src)

    @property
    def dst_ip(self) -> str:
        return format_ip(self.dst)


__all__ = ["CapturedPacket"]
