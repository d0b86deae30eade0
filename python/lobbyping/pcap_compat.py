"""Interface discovery and capture factories for the local-address collaborator."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import List, Optional, Sequence

import psutil

from .live_capture import LiveCapture, LiveCaptureError
from .packet_reader import PacketReader
from .utils import UNSPECIFIED_ADDRESS

logger = logging.getLogger(__name__)


class CaptureSetupError(LiveCaptureError):
    """Raised when no capture device matches the selected local address."""


@dataclass(frozen=True)
class InterfaceAddress:
    """IPv4 addressing assigned to a capture device."""

    address: str
    netmask: Optional[str] = None
    broadcast: Optional[str] = None


@dataclass(frozen=True)
class PcapDevice:
    """Metadata describing a capture-capable network interface."""

    name: str
    addresses: Sequence[InterfaceAddress]
    is_up: bool = True
    is_loopback: bool = False


@dataclass(frozen=True)
class CandidateAddress:
    """A local address offered for selection, with the device that owns it."""

    index: int
    device: str
    address: str

    def display_label(self) -> str:
        return f"{self.index} - {self.device} ::: {self.address}"


def list_devices(*, include_loopback: bool = True) -> List[PcapDevice]:
    """Return interfaces with their IPv4 addresses, sorted by name."""

    try:
        addresses = psutil.net_if_addrs()
    except Exception as exc:  # pragma: no cover - platform dependent
        raise CaptureSetupError("Unable to enumerate network interfaces") from exc
    try:
        stats = psutil.net_if_stats()
    except Exception:  # pragma: no cover - platform dependent
        logger.debug("psutil.net_if_stats() failed", exc_info=True)
        stats = {}

    devices: List[PcapDevice] = []
    for name, entries in addresses.items():
        ip_addrs = [
            InterfaceAddress(
                address=entry.address,
                netmask=getattr(entry, "netmask", None),
                broadcast=getattr(entry, "broadcast", None),
            )
            for entry in entries
            if getattr(entry, "family", None) == socket.AF_INET and getattr(entry, "address", "")
        ]
        is_loop = _is_loopback(name, ip_addrs)
        if is_loop and not include_loopback:
            continue
        stat = stats.get(name)
        devices.append(
            PcapDevice(
                name=name,
                addresses=tuple(ip_addrs),
                is_up=bool(getattr(stat, "isup", True)),
                is_loopback=is_loop,
            )
        )

    devices.sort(key=lambda dev: dev.name)
    return devices


def candidate_addresses(*, include_loopback: bool = False) -> List[CandidateAddress]:
    """Addresses a user could pick as the local address: up devices with a netmask."""

    candidates: List[CandidateAddress] = []
    for device in list_devices(include_loopback=include_loopback):
        if not device.is_up:
            continue
        for addr in device.addresses:
            if addr.netmask is None or addr.address == UNSPECIFIED_ADDRESS:
                continue
            candidate = CandidateAddress(len(candidates) + 1, device.name, addr.address)
            candidates.append(candidate)
            logger.info("Found: %s", candidate.display_label())
    return candidates


def find_device_by_address(address: str) -> PcapDevice:
    """Return the interface that owns ``address``, as the capture must open on it."""

    for device in list_devices(include_loopback=True):
        if any(addr.address == address for addr in device.addresses):
            return device
    raise CaptureSetupError(
        f"The device for {address} doesn't seem to exist. Double-check the IP you entered."
    )


def open_live(
    interface: str,
    *,
    promisc: bool = False,
    **kwargs,
) -> LiveCapture:
    """Return a LiveCapture configured for the lobby handshake filter."""

    return LiveCapture(interface, promiscuous=promisc, **kwargs)


def open_offline(path: str) -> PacketReader:
    return PacketReader(path)


def _is_loopback(name: str, addresses: Sequence[InterfaceAddress]) -> bool:
    if any(addr.address.startswith("127.") for addr in addresses):
        return True
    return name.lower().startswith(("lo", "loopback"))


__all__ = [
    "CaptureSetupError",
    "InterfaceAddress",
    "PcapDevice",
    "CandidateAddress",
    "list_devices",
    "candidate_addresses",
    "find_device_by_address",
    "open_live",
    "open_offline",
]
