"""Live packet source bridging Scapy sniffing with the correlation pipeline."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Iterator, Optional

from scapy.packet import Packet
from scapy.sendrecv import AsyncSniffer

from .captured_packet import CapturedPacket
from .packet_decoder import decode_scapy_packet
from .utils import CAPTURE_FILTER

logger = logging.getLogger(__name__)


class LiveCaptureError(RuntimeError):
    """Raised when live capture cannot be started or fails while running."""


class LiveCapture:
    """Capture UDP packets on one interface and hand them over in capture order.

    Scapy delivers packets on its own sniffer thread; they are decoded there
    and queued, and ``packets`` drains the queue on the consumer thread. The
    wait on the queue is bounded by ``poll_interval`` so a stop request is
    noticed even when the wire is silent.

    Frames are read whole by Scapy's listen socket, so there is no separate
    snapshot length to configure.
    """

    def __init__(
        self,
        interface: str,
        *,
        bpf_filter: Optional[str] = CAPTURE_FILTER,
        promiscuous: bool = False,
        poll_interval: float = 0.25,
        startup_timeout: float = 5.0,
        status_handler: Optional[Callable[[str], None]] = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.interface = interface
        self.bpf_filter = bpf_filter
        self.promiscuous = promiscuous
        self.poll_interval = poll_interval
        self.startup_timeout = startup_timeout
        self.status_handler = status_handler

        self._queue: "queue.Queue[CapturedPacket]" = queue.Queue()
        self._lock = threading.RLock()
        self._sniffer: Optional[AsyncSniffer] = None
        self.packets_captured = 0

    # ------------------------------------------------------------------
    def start(self) -> None:
        """Open the capture; failures to open the device or compile the filter are fatal."""
        with self._lock:
            if self._sniffer is not None:
                raise LiveCaptureError("Capture already running")

            started = threading.Event()
            sniffer = AsyncSniffer(
                iface=self.interface,
                prn=self._handle_packet,
                store=False,
                filter=self.bpf_filter,
                promisc=self.promiscuous,
                started_callback=started.set,
            )
            try:
                sniffer.start()
            except Exception as exc:  # pragma: no cover - start failures depend on system
                raise LiveCaptureError(
                    f"Failed to start capture on interface '{self.interface}'"
                ) from exc

            self._await_startup(sniffer, started)
            self._sniffer = sniffer

        self._notify_status(f"listening: {self.interface}")
        logger.info("Live capture listening on %s (filter: %s)", self.interface, self.bpf_filter)

    def stop(self) -> None:
        with self._lock:
            sniffer = self._sniffer
            self._sniffer = None

        if sniffer is None:
            return

        logger.info("Cleaning up capture handle on %s", self.interface)
        try:
            if getattr(sniffer, "running", False):
                sniffer.stop()
        except Exception:  # pragma: no cover - stop failures depend on system
            logger.exception("Failed to stop live capture")

        self._notify_status(f"stopped: {self.interface}")
        logger.info("Freed capture handle on %s", self.interface)

    def is_running(self) -> bool:
        with self._lock:
            return self._sniffer is not None

    # ------------------------------------------------------------------
    def next_packet(self, timeout: Optional[float] = None) -> Optional[CapturedPacket]:
        """Wait up to ``timeout`` seconds for a packet; ``None`` when nothing arrived."""
        try:
            return self._queue.get(timeout=self.poll_interval if timeout is None else timeout)
        except queue.Empty:
            self._check_sniffer()
            return None

    def packets(self, stop_event: threading.Event) -> Iterator[CapturedPacket]:
        owns_capture = not self.is_running()
        if owns_capture:
            self.start()
        try:
            while not stop_event.is_set():
                packet = self.next_packet()
                if packet is not None:
                    yield packet
        finally:
            if owns_capture:
                self.stop()

    # ------------------------------------------------------------------
    def _handle_packet(self, packet: Packet) -> None:
        try:
            captured = decode_scapy_packet(packet)
        except Exception:
            logger.exception("Failed to decode captured packet")
            return

        if captured is None:
            return
        self.packets_captured += 1
        self._queue.put_nowait(captured)

    def _await_startup(self, sniffer: AsyncSniffer, started: threading.Event) -> None:
        waited = 0.0
        step = min(self.poll_interval, 0.05)
        while not started.wait(step):
            waited += step
            error = getattr(sniffer, "exception", None)
            thread = getattr(sniffer, "thread", None)
            if error is not None or (thread is not None and not thread.is_alive()):
                raise LiveCaptureError(
                    f"Failed to open capture on interface '{self.interface}'"
                ) from error
            if waited >= self.startup_timeout:
                logger.warning("Capture on %s has not reported readiness yet", self.interface)
                return

    def _check_sniffer(self) -> None:
        with self._lock:
            sniffer = self._sniffer
        if sniffer is None:
            raise LiveCaptureError(f"Capture on interface '{self.interface}' is not running")

        error = getattr(sniffer, "exception", None)
        if error is not None:
            raise LiveCaptureError(f"Capture on interface '{self.interface}' failed") from error
        thread = getattr(sniffer, "thread", None)
        if thread is not None and not thread.is_alive():
            raise LiveCaptureError(f"Capture on interface '{self.interface}' ended unexpectedly")

    def _notify_status(self, message: str) -> None:
        if self.status_handler is not None:
            try:
                self.status_handler(message)
            except Exception:  # pragma: no cover - user supplied handler
                logger.exception("Status handler raised an exception")


__all__ = ["LiveCapture", "LiveCaptureError"]
