"""Qt-aware bridge re-emitting ping measurements as signals."""

from __future__ import annotations

import logging

from PySide6.QtCore import QObject, Signal

from ..rtt_emitter import RttMeasurement

logger = logging.getLogger(__name__)


class QtPingBridge(QObject):
    """RTT listener for an overlay living on the Qt GUI thread.

    Signals cross threads through Qt's queued connections, so the
    correlation thread never touches widgets directly.
    """

    ping_measured = Signal(str, int)
    measurement_received = Signal(object)

    def on_rtt_measured(self, measurement: RttMeasurement) -> None:
        logger.debug("Forwarding ping %s -> %d ms", measurement.peer, measurement.rtt_ms)
        self.ping_measured.emit(measurement.peer, measurement.rtt_ms)
        self.measurement_received.emit(measurement)


__all__ = ["QtPingBridge"]
