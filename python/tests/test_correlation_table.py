import unittest

from lobbyping import FlowCorrelationTable

PEER_A = bytes([203, 0, 113, 5])
PEER_B = bytes([198, 51, 100, 7])
PEER_C = bytes([198, 51, 100, 8])


class FlowCorrelationTableTest(unittest.TestCase):
    def test_reply_to_pending_probe_returns_elapsed_time_and_clears(self) -> None:
        table = FlowCorrelationTable()
        table.on_probe(PEER_A, 1_000_000)

        self.assertTrue(table.is_pending(PEER_A))
        self.assertEqual(table.on_reply(PEER_A, 1_045_000), 45_000)
        self.assertFalse(table.is_pending(PEER_A))
        self.assertTrue(table.is_pending_or_cleared(PEER_A))

    def test_duplicate_reply_is_ignored(self) -> None:
        table = FlowCorrelationTable()
        table.on_probe(PEER_A, 0)
        table.on_reply(PEER_A, 10_000)

        self.assertIsNone(table.on_reply(PEER_A, 20_000))
        self.assertEqual(len(table), 1)

    def test_reply_without_probe_creates_nothing(self) -> None:
        table = FlowCorrelationTable()

        self.assertIsNone(table.on_reply(PEER_A, 5_000))
        self.assertEqual(len(table), 0)
        self.assertNotIn(PEER_A, table)

    def test_new_probe_rearms_cleared_entry(self) -> None:
        table = FlowCorrelationTable()
        table.on_probe(PEER_A, 0)
        table.on_reply(PEER_A, 30_000)

        table.on_probe(PEER_A, 100_000)
        self.assertTrue(table.is_pending(PEER_A))
        self.assertEqual(table.on_reply(PEER_A, 160_000), 60_000)

    def test_later_probe_overwrites_earlier_one(self) -> None:
        table = FlowCorrelationTable()
        table.on_probe(PEER_A, 0)
        table.on_probe(PEER_A, 50_000)

        self.assertEqual(table.on_reply(PEER_A, 70_000), 20_000)

    def test_negative_round_trip_is_passed_through(self) -> None:
        table = FlowCorrelationTable()
        table.on_probe(PEER_A, 100_000)

        self.assertEqual(table.on_reply(PEER_A, 90_000), -10_000)

    def test_capacity_evicts_least_recently_probed_peer(self) -> None:
        table = FlowCorrelationTable(capacity=2)
        table.on_probe(PEER_A, 0)
        table.on_probe(PEER_B, 1_000)
        table.on_probe(PEER_A, 2_000)
        table.on_probe(PEER_C, 3_000)

        self.assertEqual(len(table), 2)
        self.assertIn(PEER_A, table)
        self.assertIn(PEER_C, table)
        self.assertNotIn(PEER_B, table)
        self.assertEqual(table.evicted_count, 1)

    def test_probe_timeout_expires_stale_entries(self) -> None:
        table = FlowCorrelationTable(probe_timeout=1_000_000)
        table.on_probe(PEER_A, 0)
        table.on_probe(PEER_B, 1_500_000)

        self.assertNotIn(PEER_A, table)
        self.assertIn(PEER_B, table)

    def test_late_reply_past_timeout_does_not_match(self) -> None:
        table = FlowCorrelationTable(probe_timeout=1_000_000)
        table.on_probe(PEER_A, 0)

        self.assertIsNone(table.on_reply(PEER_A, 2_000_000))
        self.assertNotIn(PEER_A, table)

    def test_snapshot_exposes_entry_state(self) -> None:
        table = FlowCorrelationTable()
        table.on_probe(PEER_A, 10)
        table.on_probe(PEER_B, 20)
        table.on_reply(PEER_B, 30)

        snapshot = table.snapshot()
        self.assertEqual(snapshot[PEER_A].probed_at, 10)
        self.assertTrue(snapshot[PEER_A].pending)
        self.assertFalse(snapshot[PEER_B].pending)
        self.assertEqual(list(table), [PEER_A, PEER_B])

    def test_invalid_bounds_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            FlowCorrelationTable(capacity=0)
        with self.assertRaises(ValueError):
            FlowCorrelationTable(probe_timeout=0)


if __name__ == "__main__":  # pragma: no cover - convenience
    unittest.main()
