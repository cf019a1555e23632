"""
Tests for the core.entropy module.
"""

import unittest
import sys
import os

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from contextkernel.core.entropy import EntropySource
from contextkernel.core.errors import ReplayMismatchError


class TestEntropySource(unittest.TestCase):
    """Tests for seeded and replayed draws."""

    def test_deterministic_for_same_identity(self):
        a = EntropySource(42).uniform("seed:out", 0, 5)
        b = EntropySource(42).uniform("seed:out", 0, 5)
        np.testing.assert_array_equal(a, b)

    def test_identity_changes_draws(self):
        src = EntropySource(42)
        base = src.uniform("seed:out", 0, 5)
        self.assertFalse(np.array_equal(base, src.uniform("seed:other", 0, 5)))
        self.assertFalse(np.array_equal(base, src.uniform("seed:out", 1, 5)))
        self.assertFalse(np.array_equal(base, EntropySource(43).uniform("seed:out", 0, 5)))

    def test_streams_are_independent(self):
        a = EntropySource(42, stream="unit-a").uniform("seed:out", 0, 5)
        b = EntropySource(42, stream="unit-b").uniform("seed:out", 0, 5)
        again = EntropySource(42, stream="unit-a").uniform("seed:out", 0, 5)
        self.assertFalse(np.array_equal(a, b))
        np.testing.assert_array_equal(a, again)

    def test_ranges(self):
        src = EntropySource(1)
        u = src.uniform("u", 0, 1000)
        self.assertTrue(((u >= 0.0) & (u < 1.0)).all())
        c = src.centred("c", 0, 1000, 100.0)
        self.assertTrue(((c >= -50.0) & (c < 50.0)).all())
        self.assertIsInstance(src.sample_uniform("s", 0), float)

    def test_salt_only_in_entropy_mode(self):
        self.assertEqual(EntropySource(42).run_salt, 0)
        salted = EntropySource(42, entropy_mode=True)
        self.assertGreaterEqual(salted.run_salt, 0)

    def test_no_recording_by_default(self):
        src = EntropySource(42)
        src.uniform("x", 0, 3)
        self.assertEqual(src.replay_log, [])

    def test_replay(self):
        src = EntropySource(7, replay_mode=True)
        first = src.uniform("x", 0, 3)
        second = src.uniform("y", 1, 2)
        self.assertEqual(len(src.replay_log), 2)
        self.assertEqual(src.replay_log[1].checkpoint_id, "y")

        src.rewind()
        np.testing.assert_array_equal(src.uniform("x", 0, 3), first)
        np.testing.assert_array_equal(src.uniform("y", 1, 2), second)
        # log exhausted: fresh draws, nothing appended while replaying
        src.uniform("z", 2, 4)
        self.assertEqual(len(src.replay_log), 2)

    def test_replay_rejects_a_different_draw(self):
        src = EntropySource(7, replay_mode=True)
        src.uniform("x", 0, 3)
        src.rewind()
        with self.assertRaises(ReplayMismatchError):
            src.uniform("x", 0, 4)
        with self.assertRaises(ReplayMismatchError):
            src.uniform("other", 0, 3)
        np.testing.assert_array_equal(src.uniform("x", 0, 3), src.replay_log[0].values)

    def test_rewind_with_external_log(self):
        recorder = EntropySource(7, replay_mode=True)
        recorded = recorder.uniform("x", 0, 3)
        player = EntropySource(999, replay_mode=True)
        player.rewind(recorder.replay_log)
        np.testing.assert_array_equal(player.uniform("x", 0, 3), recorded)


if __name__ == "__main__":
    unittest.main()
