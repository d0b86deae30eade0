"""Listener and source interfaces shared by the correlation pipeline."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterator, Protocol

from .captured_packet import CapturedPacket

if TYPE_CHECKING:  # pragma: no cover - annotations only
    from .rtt_emitter import RttMeasurement


class RttListener(Protocol):
    def on_rtt_measured(self, measurement: "RttMeasurement") -> None:  # pragma: no cover - protocol definition
        ...


class PacketSource(Protocol):
    """Yields captured packets in capture order until ``stop_event`` is set or input ends."""

    def packets(self, stop_event: threading.Event) -> Iterator[CapturedPacket]:  # pragma: no cover - protocol definition
        ...


__all__ = ["RttListener", "PacketSource"]
