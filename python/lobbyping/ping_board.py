"""Thread-safe hand-off of the latest RTT per peer to a presentation thread."""

from __future__ import annotations

import threading
from typing import Dict, Optional

from .rtt_emitter import RttMeasurement


class PingBoard:
    """Keeps only the most recent measurement per peer; safe to read from any thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: Dict[str, RttMeasurement] = {}
        self._last_peer: Optional[str] = None

    def on_rtt_measured(self, measurement: RttMeasurement) -> None:
        with self._lock:
            self._latest[measurement.peer] = measurement
            self._last_peer = measurement.peer

    def latest(self, peer: str) -> Optional[RttMeasurement]:
        with self._lock:
            return self._latest.get(peer)

    def current_host(self) -> Optional[RttMeasurement]:
        """The peer measured most recently, which is the host the overlay shows."""
        with self._lock:
            if self._last_peer is None:
                return None
            return self._latest.get(self._last_peer)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {peer: m.rtt_ms for peer, m in self._latest.items()}

    def clear(self) -> None:
        with self._lock:
            self._latest.clear()
            self._last_peer = None


__all__ = ["PingBoard"]
