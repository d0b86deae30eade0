"""Offline packet source replaying a saved capture through the correlation engine."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import IO, Iterator, Optional, Tuple, Union

import dpkt

from .captured_packet import CapturedPacket
from .packet_decoder import decode_frame

logger = logging.getLogger(__name__)


class PacketReader:
    """Iterates over IPv4/UDP packets decoded from a pcap or pcapng file."""

    def __init__(self, pcap_path: Union[str, Path]) -> None:
        path = Path(pcap_path)
        if not path.is_file():
            raise FileNotFoundError(f"PCAP file does not exist: {path}")

        self.path = path
        self.datalink = dpkt.pcap.DLT_EN10MB
        self.frames_read = 0

        self._file: Optional[IO[bytes]] = None
        self._pcap = None
        self._packet_iter: Optional[Iterator[Tuple[float, bytes]]] = None

        self._first_packet_ts: Optional[int] = None
        self._last_packet_ts: Optional[int] = None

    # ------------------------------------------------------------------
    def __enter__(self) -> "PacketReader":
        self._open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def close(self) -> None:
        self._pcap = None
        self._packet_iter = None
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                logger.debug("Failed to close PCAP file", exc_info=True)
            finally:
                self._file = None

    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[CapturedPacket]:
        while True:
            packet = self.next_packet()
            if packet is None:
                break
            yield packet

    def next_packet(self) -> Optional[CapturedPacket]:
        self._ensure_iter()
        assert self._packet_iter is not None

        for ts, buf in self._packet_iter:
            self.frames_read += 1
            packet = decode_frame(ts, buf, self.datalink)
            if packet is not None:
                self._register_timestamp(packet.timestamp)
                return packet
        return None

    def packets(self, stop_event: threading.Event) -> Iterator[CapturedPacket]:
        try:
            while not stop_event.is_set():
                packet = self.next_packet()
                if packet is None:
                    logger.info("Reached end of %s after %d frames", self.path.name, self.frames_read)
                    return
                yield packet
        finally:
            self.close()

    # ------------------------------------------------------------------
    @property
    def first_packet_timestamp(self) -> Optional[int]:
        return self._first_packet_ts

    @property
    def last_packet_timestamp(self) -> Optional[int]:
        return self._last_packet_ts

    # ------------------------------------------------------------------
    def _ensure_iter(self) -> None:
        if self._pcap is None or self._packet_iter is None:
            self._open()
            assert self._pcap is not None
            self._packet_iter = iter(self._pcap)

    def _open(self) -> None:
        if self._pcap is not None:
            return
        reader_cls = dpkt.pcapng.Reader if self.path.suffix.lower() == ".pcapng" else dpkt.pcap.Reader
        try:
            self._file = self.path.open("rb")
            self._pcap = reader_cls(self._file)
        except (OSError, ValueError, dpkt.dpkt.NeedData) as exc:
            self.close()
            raise RuntimeError(f"Failed to open PCAP file: {self.path}") from exc
        self.datalink = self._pcap.datalink()

    def _register_timestamp(self, micros: int) -> None:
        if self._first_packet_ts is None:
            self._first_packet_ts = micros
        self._last_packet_ts = micros


__all__ = ["PacketReader"]
