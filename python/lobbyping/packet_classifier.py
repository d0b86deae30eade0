"""Size-based classification of captured packets into probes and replies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional, Union

from .captured_packet import CapturedPacket
from .correlation_table import FlowCorrelationTable
from .utils import PROBE_PAYLOAD_BYTES, REPLY_PAYLOAD_BYTES, format_ip, pack_ip


@unique
class PacketKind(Enum):
    PROBE = "probe"
    REPLY = "reply"
    NOOP = "noop"


@dataclass(frozen=True)
class Classification:
    kind: PacketKind
    peer: Optional[bytes] = None

    @property
    def peer_ip(self) -> Optional[str]:
        return format_ip(self.peer) if self.peer is not None else None


NOOP = Classification(PacketKind.NOOP)


class PacketClassifier:
    """Decides whether a packet is a probe, a reply, or noise for ``local_address``.

    A peer already present in the table is only ever evaluated as a reply
    candidate, never re-classified as a probe target.
    """

    def __init__(self, local_address: Union[str, bytes]) -> None:
        self.local_address = pack_ip(local_address)

    def classify(self, packet: CapturedPacket, table: FlowCorrelationTable) -> Classification:
        local = self.local_address
        src = packet.src
        dst = packet.dst

        if src != local and table.is_pending_or_cleared(src):
            if (
                dst == local
                and packet.payload_bytes == REPLY_PAYLOAD_BYTES
                and table.is_pending(src)
            ):
                return Classification(PacketKind.REPLY, src)
            return NOOP

        if packet.payload_bytes == PROBE_PAYLOAD_BYTES and src == local and dst != local:
            return Classification(PacketKind.PROBE, dst)

        return NOOP


__all__ = ["PacketKind", "Classification", "PacketClassifier"]
