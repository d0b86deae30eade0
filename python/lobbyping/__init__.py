"""Passive round-trip measurement to the host of a game lobby."""

from .captured_packet import CapturedPacket
from .correlation_engine import CorrelationEngine
from .correlation_table import DEFAULT_CAPACITY, FlowCorrelationTable, PendingProbe
from .listeners import PacketSource, RttListener
from .live_capture import LiveCapture, LiveCaptureError
from .packet_classifier import Classification, PacketClassifier, PacketKind
from .packet_decoder import decode_frame, decode_scapy_packet
from .packet_reader import PacketReader
from .ping_board import PingBoard
from .rtt_emitter import RttEmitter, RttMeasurement
from .pcap_compat import (
    CandidateAddress,
    CaptureSetupError,
    InterfaceAddress,
    PcapDevice,
    candidate_addresses,
    find_device_by_address,
    list_devices,
    open_live,
    open_offline,
)
from .settings import Settings, SettingsError, load_settings, save_settings, validate_address

__all__ = [
    "CapturedPacket",
    "CorrelationEngine",
    "DEFAULT_CAPACITY",
    "FlowCorrelationTable",
    "PendingProbe",
    "PacketSource",
    "RttListener",
    "LiveCapture",
    "LiveCaptureError",
    "Classification",
    "PacketClassifier",
    "PacketKind",
    "decode_frame",
    "decode_scapy_packet",
    "PacketReader",
    "PingBoard",
    "RttEmitter",
    "RttMeasurement",
    "CandidateAddress",
    "CaptureSetupError",
    "InterfaceAddress",
    "PcapDevice",
    "candidate_addresses",
    "find_device_by_address",
    "list_devices",
    "open_live",
    "open_offline",
    "Settings",
    "SettingsError",
    "load_settings",
    "save_settings",
    "validate_address",
]
