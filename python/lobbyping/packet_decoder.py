"""Decoding of captured frames down to IPv4 addresses and UDP payload size."""

from __future__ import annotations

import logging
import socket
from typing import Optional

import dpkt
from dpkt.ethernet import VLANtag8021Q
from scapy.layers.inet import IP, UDP
from scapy.packet import Packet

from .captured_packet import CapturedPacket
from .utils import MICROS_PER_SECOND

logger = logging.getLogger(__name__)

UDP_HEADER_BYTES = 8

# DLT_RAW is 12 or 14 depending on the platform, 101 is LINKTYPE_RAW in files.
RAW_LINK_TYPES = frozenset({12, 14, 101})
LOOPBACK_LINK_TYPES = frozenset({dpkt.pcap.DLT_NULL, dpkt.pcap.DLT_LOOP})


def decode_frame(
    timestamp: float,
    frame: bytes,
    datalink: int = dpkt.pcap.DLT_EN10MB,
) -> Optional[CapturedPacket]:
    """Decode a raw link-layer frame; returns ``None`` for anything but IPv4/UDP with payload."""
    try:
        network = _network_layer(frame, datalink)
    except (dpkt.UnpackError, ValueError):
        logger.debug("Skipping undecodable frame", exc_info=True)
        return None

    if not isinstance(network, dpkt.ip.IP):
        return None
    transport = network.data
    if not isinstance(transport, dpkt.udp.UDP):
        return None

    payload_len = len(transport.data)
    if payload_len == 0:
        return None

    return CapturedPacket(
        src=network.src,
        dst=network.dst,
        payload_bytes=payload_len,
        timestamp=to_micros(timestamp),
    )


def decode_scapy_packet(packet: Packet) -> Optional[CapturedPacket]:
    """Decode a packet dissected by scapy, as delivered by a live sniffer."""
    if not hasattr(packet, "time") or not packet.haslayer(IP):
        return None

    ip_layer = packet.getlayer(IP)
    udp = ip_layer.payload
    if not isinstance(udp, UDP):
        return None

    payload_len = _udp_payload_length(udp)
    if payload_len <= 0:
        return None

    try:
        src = socket.inet_pton(socket.AF_INET, ip_layer.src)
        dst = socket.inet_pton(socket.AF_INET, ip_layer.dst)
    except (OSError, TypeError):
        logger.debug("Skipping packet with unparsable address", exc_info=True)
        return None

    return CapturedPacket(
        src=src,
        dst=dst,
        payload_bytes=payload_len,
        timestamp=to_micros(float(packet.time)),
    )


def to_micros(timestamp: float) -> int:
    return int(round(timestamp * MICROS_PER_SECOND))


def _network_layer(frame: bytes, datalink: int):
    if datalink == dpkt.pcap.DLT_EN10MB:
        payload = dpkt.ethernet.Ethernet(frame).data
        if isinstance(payload, VLANtag8021Q):
            payload = payload.data
        return payload
    if datalink == dpkt.pcap.DLT_LINUX_SLL:
        return dpkt.sll.SLL(frame).data
    if datalink in LOOPBACK_LINK_TYPES:
        return dpkt.loopback.Loopback(frame).data
    if datalink in RAW_LINK_TYPES:
        return dpkt.ip.IP(frame)
    logger.debug("Unsupported link type %s", datalink)
    return None


def _udp_payload_length(udp: UDP) -> int:
    payload = udp.payload
    data_len = len(bytes(payload)) if payload else 0
    # Dissected datagrams carry the length field; trailing link padding is not payload.
    if isinstance(udp.len, int) and udp.len >= UDP_HEADER_BYTES:
        data_len = min(data_len, udp.len - UDP_HEADER_BYTES)
    return data_len


__all__ = ["decode_frame", "decode_scapy_packet", "to_micros"]
