"""Best-effort forwarding of round-trip measurements to a consumer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .listeners import RttListener
from .utils import format_ip, micros_to_millis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RttMeasurement:
    peer: str
    rtt_ms: int
    timestamp: int


class RttEmitter:
    """Hands measurements to a single listener without retry or buffering."""

    def __init__(self, listener: Optional[RttListener] = None) -> None:
        self._listener = listener
        self.emitted_count = 0
        self.dropped_count = 0

    def set_listener(self, listener: Optional[RttListener]) -> None:
        self._listener = listener

    def emit(self, peer: bytes, rtt_us: int, timestamp: int) -> Optional[RttMeasurement]:
        measurement = RttMeasurement(
            peer=format_ip(peer),
            rtt_ms=micros_to_millis(rtt_us),
            timestamp=timestamp,
        )

        listener = self._listener
        if listener is None:
            self.dropped_count += 1
            return measurement

        try:
            listener.on_rtt_measured(measurement)
        except Exception:
            self.dropped_count += 1
            logger.exception("RTT listener failed, dropping measurement for %s", measurement.peer)
            return measurement

        self.emitted_count += 1
        return measurement


__all__ = ["RttMeasurement", "RttEmitter"]
