"""Per-peer probe bookkeeping for matching lobby host replies to probes."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1_024


@dataclass
class PendingProbe:
    """Latest probe seen towards ``peer``; ``pending`` drops to False once answered."""

    peer: bytes
    probed_at: int
    pending: bool = True


class FlowCorrelationTable:
    """Bounded map from peer address to its outstanding probe.

    Entries are kept in probe order: every probe moves its peer to the newest
    end, so the oldest end always holds the least-recently-probed peer. When
    ``capacity`` is exceeded that peer is evicted. With ``probe_timeout``
    (microseconds) entries whose latest probe is older than the timeout are
    dropped lazily, and a stale pending entry no longer matches a reply.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        probe_timeout: Optional[int] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if probe_timeout is not None and probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        self.capacity = capacity
        self.probe_timeout = probe_timeout
        self._entries: "OrderedDict[bytes, PendingProbe]" = OrderedDict()
        self.evicted_count = 0

    # ------------------------------------------------------------------
    def on_probe(self, peer: bytes, timestamp: int) -> None:
        self._expire(timestamp)

        entry = self._entries.get(peer)
        if entry is None:
            self._entries[peer] = PendingProbe(peer=peer, probed_at=timestamp)
            self._enforce_capacity()
            return

        entry.probed_at = timestamp
        entry.pending = True
        self._entries.move_to_end(peer)

    def on_reply(self, peer: bytes, timestamp: int) -> Optional[int]:
        """Return the round trip in microseconds if ``peer`` has an unanswered probe."""
        self._expire(timestamp)

        entry = self._entries.get(peer)
        if entry is None or not entry.pending:
            return None
        if self.probe_timeout is not None and timestamp - entry.probed_at > self.probe_timeout:
            del self._entries[peer]
            self.evicted_count += 1
            return None

        entry.pending = False
        return timestamp - entry.probed_at

    # ------------------------------------------------------------------
    def is_pending_or_cleared(self, peer: bytes) -> bool:
        return peer in self._entries

    def is_pending(self, peer: bytes) -> bool:
        entry = self._entries.get(peer)
        return entry is not None and entry.pending

    def get(self, peer: bytes) -> Optional[PendingProbe]:
        return self._entries.get(peer)

    def snapshot(self) -> Dict[bytes, PendingProbe]:
        return dict(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, peer: object) -> bool:
        return peer in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._entries)

    # ------------------------------------------------------------------
    def _enforce_capacity(self) -> None:
        while len(self._entries) > self.capacity:
            peer, _ = self._entries.popitem(last=False)
            self.evicted_count += 1
            logger.debug("Evicted least recently probed peer %s", peer.hex())

    def _expire(self, now: int) -> None:
        if self.probe_timeout is None:
            return
        cutoff = now - self.probe_timeout
        while self._entries:
            peer, entry = next(iter(self._entries.items()))
            if entry.probed_at >= cutoff:
                break
            del self._entries[peer]
            self.evicted_count += 1


__all__ = ["FlowCorrelationTable", "PendingProbe", "DEFAULT_CAPACITY"]
