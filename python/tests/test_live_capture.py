from __future__ import annotations

import threading

import pytest
from scapy.layers.inet import IP, UDP
from scapy.layers.l2 import Ether
from scapy.packet import Raw

import lobbyping.live_capture as live_capture
from lobbyping.live_capture import LiveCapture, LiveCaptureError
from lobbyping.utils import CAPTURE_FILTER

LOCAL = "192.168.1.10"
PEER = "203.0.113.5"


def _scapy_packet(src: str, dst: str, size: int, when: float):
    packet = Ether() / IP(src=src, dst=dst) / UDP(sport=50000, dport=3478) / Raw(load=b"\x00" * size)
    packet.time = when
    return packet


def _finished_thread() -> threading.Thread:
    thread = threading.Thread(target=lambda: None)
    thread.start()
    thread.join()
    return thread


def _fake_sniffer_factory(packets, *, fail_on_start=None, fail_after_start=None):
    created = []

    class FakeSniffer:
        def __init__(self, **kwargs) -> None:
            self.kwargs = kwargs
            self.running = False
            self.thread = None
            self.exception = None
            self.stopped = False
            created.append(self)

        def start(self) -> None:
            if fail_on_start is not None:
                self.exception = fail_on_start
                self.thread = _finished_thread()
                return
            self.running = True
            self.thread = threading.current_thread()
            self.kwargs["started_callback"]()
            for packet in packets:
                self.kwargs["prn"](packet)
            if fail_after_start is not None:
                self.exception = fail_after_start

        def stop(self) -> None:
            self.running = False
            self.stopped = True

    return FakeSniffer, created


def test_default_capture_configuration():
    capture = LiveCapture("eth0")

    assert capture.bpf_filter == CAPTURE_FILTER == "udp and less 150"
    assert capture.promiscuous is False


def test_packets_are_delivered_in_capture_order(monkeypatch):
    packets = [
        _scapy_packet(LOCAL, PEER, 56, 1.0),
        _scapy_packet(LOCAL, PEER, 0, 1.01),
        _scapy_packet(PEER, LOCAL, 68, 1.05),
    ]
    factory, created = _fake_sniffer_factory(packets)
    monkeypatch.setattr(live_capture, "AsyncSniffer", factory)

    statuses = []
    capture = LiveCapture("eth0", poll_interval=0.01, status_handler=statuses.append)
    stop = threading.Event()
    seen = []
    for packet in capture.packets(stop):
        seen.append(packet)
        if len(seen) == 2:
            stop.set()

    assert [p.payload_bytes for p in seen] == [56, 68]
    assert [p.timestamp for p in seen] == [1_000_000, 1_050_000]
    sniffer = created[0]
    assert sniffer.kwargs["filter"] == "udp and less 150"
    assert sniffer.kwargs["iface"] == "eth0"
    assert sniffer.kwargs["promisc"] is False
    assert sniffer.kwargs["store"] is False
    assert sniffer.stopped
    assert not capture.is_running()
    assert statuses == ["listening: eth0", "stopped: eth0"]


def test_every_capture_setting_reaches_the_sniffer(monkeypatch):
    factory, created = _fake_sniffer_factory([])
    monkeypatch.setattr(live_capture, "AsyncSniffer", factory)

    capture = LiveCapture("eth0", bpf_filter="udp", promiscuous=True, poll_interval=0.01)
    capture.start()
    capture.stop()

    kwargs = created[0].kwargs
    assert set(kwargs) == {"iface", "prn", "store", "filter", "promisc", "started_callback"}
    assert (kwargs["iface"], kwargs["filter"], kwargs["promisc"]) == ("eth0", "udp", True)


def test_start_failure_is_fatal(monkeypatch):
    factory, _ = _fake_sniffer_factory([], fail_on_start=OSError("no such device"))
    monkeypatch.setattr(live_capture, "AsyncSniffer", factory)

    capture = LiveCapture("missing0", poll_interval=0.01)

    with pytest.raises(LiveCaptureError) as excinfo:
        capture.start()
    assert isinstance(excinfo.value.__cause__, OSError)
    assert not capture.is_running()


def test_start_twice_is_rejected(monkeypatch):
    factory, _ = _fake_sniffer_factory([])
    monkeypatch.setattr(live_capture, "AsyncSniffer", factory)

    capture = LiveCapture("eth0", poll_interval=0.01)
    capture.start()
    try:
        with pytest.raises(LiveCaptureError):
            capture.start()
    finally:
        capture.stop()


def test_read_failure_terminates_packet_stream(monkeypatch):
    factory, _ = _fake_sniffer_factory(
        [_scapy_packet(LOCAL, PEER, 56, 2.0)],
        fail_after_start=OSError("interface removed"),
    )
    monkeypatch.setattr(live_capture, "AsyncSniffer", factory)

    capture = LiveCapture("eth0", poll_interval=0.01)
    seen = []
    with pytest.raises(LiveCaptureError):
        for packet in capture.packets(threading.Event()):
            seen.append(packet)

    assert [p.payload_bytes for p in seen] == [56]
    assert not capture.is_running()


def test_next_packet_times_out_quietly(monkeypatch):
    factory, _ = _fake_sniffer_factory([])
    monkeypatch.setattr(live_capture, "AsyncSniffer", factory)

    capture = LiveCapture("eth0", poll_interval=0.01)
    capture.start()
    try:
        assert capture.next_packet() is None
    finally:
        capture.stop()


def test_invalid_poll_interval_is_rejected():
    with pytest.raises(ValueError):
        LiveCapture("eth0", poll_interval=0)
