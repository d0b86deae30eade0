"""Single-threaded pipeline tying capture, classification and RTT emission together."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Union

from .captured_packet import CapturedPacket
from .correlation_table import DEFAULT_CAPACITY, FlowCorrelationTable
from .listeners import PacketSource, RttListener
from .packet_classifier import PacketClassifier, PacketKind
from .rtt_emitter import RttEmitter, RttMeasurement
from .utils import format_ip

logger = logging.getLogger(__name__)


class CorrelationEngine:
    """Owns the correlation state of one capture session.

    ``process`` is the per-packet step. ``run`` drives it from a packet
    source on the calling thread; ``start``/``stop`` do the same on a
    dedicated worker thread. The table is touched only by whichever thread
    runs the pipeline, so it carries no locks.
    """

    def __init__(
        self,
        local_address: Union[str, bytes],
        listener: Optional[RttListener] = None,
        *,
        capacity: int = DEFAULT_CAPACITY,
        probe_timeout: Optional[int] = None,
    ) -> None:
        self.classifier = PacketClassifier(local_address)
        self.table = FlowCorrelationTable(capacity=capacity, probe_timeout=probe_timeout)
        self.emitter = RttEmitter(listener)
        self.packets_seen = 0

        self._stop_event = threading.Event()
        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    @property
    def local_ip(self) -> str:
        return format_ip(self.classifier.local_address)

    # ------------------------------------------------------------------
    def process(self, packet: Optional[CapturedPacket]) -> Optional[RttMeasurement]:
        if packet is None:
            return None
        self.packets_seen += 1

        result = self.classifier.classify(packet, self.table)
        if result.kind is PacketKind.PROBE:
            self.table.on_probe(result.peer, packet.timestamp)
            logger.debug("Probe to %s at %d", result.peer_ip, packet.timestamp)
            return None

        if result.kind is PacketKind.REPLY:
            rtt = self.table.on_reply(result.peer, packet.timestamp)
            if rtt is None:
                return None
            measurement = self.emitter.emit(result.peer, rtt, packet.timestamp)
            logger.debug("Reply from %s, rtt %d ms", measurement.peer, measurement.rtt_ms)
            return measurement

        return None

    # ------------------------------------------------------------------
    def run(self, source: PacketSource) -> None:
        """Process packets from ``source`` until it is exhausted or ``stop`` is called."""
        self._stop_event.clear()
        self._run_loop(source)

    def start(self, source: PacketSource) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("Correlation engine already running")

            self._stop_event.clear()
            self._error = None
            self.table.clear()
            thread = threading.Thread(
                target=self._thread_main,
                args=(source,),
                name="lobbyping-correlation",
                daemon=True,
            )
            self._thread = thread
            thread.start()

        logger.info("Correlation engine started for %s", self.local_ip)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the pipeline to exit; pending correlation state is discarded."""
        self._stop_event.set()
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Correlation engine stopped for %s", self.local_ip)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker exits; re-raises its failure. Returns ``True`` if still running."""
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return True

        error = self._error
        if error is not None:
            self._error = None
            raise error
        return False

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    def _thread_main(self, source: PacketSource) -> None:
        try:
            self._run_loop(source)
        except Exception as exc:
            logger.error("Correlation loop terminated: %s", exc)
            self._error = exc

    def _run_loop(self, source: PacketSource) -> None:
        for packet in source.packets(self._stop_event):
            self.process(packet)


__all__ = ["CorrelationEngine"]
