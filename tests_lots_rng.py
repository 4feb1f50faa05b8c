#!/usr/bin/env python3
"""
TAILDRAW - Random Source & CLI Tests

Validates:
1.  ProvablyFairSource values are 32-bit and advance the nonce
2.  Recorded values verify against the revealed seeds
3.  A draw can be replayed from revealed seeds
4.  Audit log hides the server seed until revealed
5.  EntropyMixSource follows its hash chain
6.  SeededSource / ReplaySource / RecordingSource behaviour
7.  get_source registry
8.  CLI exit codes, log level choices and JSON output
"""

import contextlib
import hashlib
import io
import json
import struct
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from rich.console import Console

from sim_engine.lots import RandomSourceError, draw_lots
from tools import lots_cli
from tools.lots_rng import (
    EntropyMixSource, ProvablyFairSource, RecordingSource, ReplaySource,
    SeededSource, get_source,
)


# ════════════════════════════════════════════════════════════════
# A) Provably fair source
# ════════════════════════════════════════════════════════════════

class TestProvablyFairSource(unittest.TestCase):
    """HMAC seed sessions."""

    def setUp(self):
        self.source = ProvablyFairSource(client_seed="client-abc")

    def test_values_are_u32_and_nonce_advances(self):
        values = [self.source.next(7) for _ in range(20)]
        self.assertTrue(all(0 <= v <= 0xFFFFFFFF for v in values))
        self.assertEqual(self.source.session.nonce, 20)
        self.assertEqual(len(self.source.session.values), 20)

    def test_value_is_hash_prefix(self):
        value = self.source.next(3)
        record = self.source.session.values[0]
        self.assertEqual(record.value, value)
        self.assertEqual(value, int(record.combined_hash[:8], 16))

    def test_salt_changes_value(self):
        a = ProvablyFairSource.derive_hash("server", "client", 1, 0)
        b = ProvablyFairSource.derive_hash("server", "client", 2, 0)
        self.assertNotEqual(a, b)

    def test_verify_recorded_values(self):
        self.source.next(5)
        self.source.next(6)
        session = self.source.session
        self.assertTrue(ProvablyFairSource.verify_server_seed(
            session.server_seed, session.server_seed_hash))
        for record in session.values:
            self.assertTrue(ProvablyFairSource.verify_value(
                session.server_seed, session.client_seed,
                record.salt, record.nonce, record.combined_hash))
        self.assertFalse(ProvablyFairSource.verify_value(
            "wrong-seed", session.client_seed, 5, 0, session.values[0].combined_hash))

    def test_draw_replays_from_revealed_seeds(self):
        result = draw_lots(11, 73, 1000, self.source)
        session = self.source.session
        replayed = draw_lots(11, 73, 1000, ProvablyFairSource.replay(
            session.server_seed, session.client_seed))
        self.assertEqual(result.as_tuple(), replayed.as_tuple())

    def test_audit_log_reveal(self):
        self.source.next(1)
        hidden = self.source.session_audit_log()
        self.assertNotIn("server_seed", hidden)
        self.assertEqual(hidden["total_values"], 1)
        revealed = json.loads(self.source.to_audit_json(reveal=True))
        self.assertEqual(revealed["server_seed"], self.source.session.server_seed)

    def test_fresh_sessions_differ(self):
        other = ProvablyFairSource(client_seed="client-abc")
        self.assertNotEqual(self.source.session.server_seed_hash,
                            other.session.server_seed_hash)


# ════════════════════════════════════════════════════════════════
# B) Other sources
# ════════════════════════════════════════════════════════════════

class TestOtherSources(unittest.TestCase):

    def test_entropy_mix_hash_chain(self):
        source = EntropyMixSource(clock=lambda: 1000, block_number=lambda: 1)
        first = source.next(5)
        mixed = (1000 ^ 1 | (0 + 5)) & 0xFFFFFFFF
        expected = struct.unpack("<I", hashlib.sha256(struct.pack("<I", mixed)).digest()[:4])[0]
        self.assertEqual(first, expected)
        self.assertEqual(source.previous, first)

    def test_entropy_mix_deterministic_with_fixed_environment(self):
        a = EntropyMixSource(clock=lambda: 42, block_number=lambda: 7)
        b = EntropyMixSource(clock=lambda: 42, block_number=lambda: 7)
        self.assertEqual([a.next(3) for _ in range(5)], [b.next(3) for _ in range(5)])

    def test_entropy_mix_default_environment(self):
        source = EntropyMixSource()
        values = [source.next(0) for _ in range(10)]
        self.assertTrue(all(0 <= v <= 0xFFFFFFFF for v in values))

    def test_seeded_source(self):
        a, b = SeededSource(9), SeededSource(9)
        self.assertEqual([a.next(0) for _ in range(5)], [b.next(0) for _ in range(5)])

    def test_replay_exhausts(self):
        source = ReplaySource([1, 2])
        self.assertEqual(source.next(0), 1)
        self.assertEqual(source.next(0), 2)
        with self.assertRaises(RandomSourceError):
            source.next(0)

    def test_replay_rejects_bad_values(self):
        with self.assertRaises(RandomSourceError):
            ReplaySource([1 << 32]).next(0)

    def test_recording_source(self):
        recorder = RecordingSource(SeededSource(4))
        values = [recorder.next(1) for _ in range(3)]
        self.assertEqual(recorder.values, values)
        replay = recorder.replay()
        self.assertEqual([replay.next(1) for _ in range(3)], values)

    def test_get_source(self):
        self.assertIsInstance(get_source("seeded", seed="12"), SeededSource)
        self.assertIsInstance(get_source("fair"), ProvablyFairSource)
        self.assertIsInstance(get_source("ENTROPY"), EntropyMixSource)
        fair = get_source("fair", seed="revealed", client_seed="c")
        self.assertEqual(fair.session.server_seed, "revealed")
        with self.assertRaises(ValueError):
            get_source("dice")


# ════════════════════════════════════════════════════════════════
# C) CLI
# ════════════════════════════════════════════════════════════════

class TestCLI(unittest.TestCase):

    def setUp(self):
        self.output = io.StringIO()
        patcher = patch.object(lots_cli, "console", Console(file=self.output, width=120))
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_draw_and_check(self):
        status = lots_cli.main(["73", "1000", "--source", "seeded", "--seed", "5", "--check"])
        self.assertEqual(status, 0)
        self.assertIn("Verified", self.output.getvalue())

    def test_complement_with_winners(self):
        status = lots_cli.main(["8", "10", "--source", "seeded", "--seed", "1",
                                "--check", "--winners"])
        self.assertEqual(status, 0)
        self.assertIn("Winners:", self.output.getvalue())

    def test_invalid_input_exit_code(self):
        self.assertEqual(lots_cli.main(["0", "10"]), 1)
        self.assertIn("Draw failed", self.output.getvalue())

    def test_log_level_choices(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr), self.assertRaises(SystemExit) as ctx:
            lots_cli.main(["3", "10", "--log-level", "loud"])
        self.assertEqual(ctx.exception.code, 2)
        self.assertIn("--log-level", stderr.getvalue())

    def test_log_level_case_insensitive(self):
        status = lots_cli.main(["3", "10", "--source", "seeded", "--log-level", "warning"])
        self.assertEqual(status, 0)

    def test_json_output(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            status = lots_cli.main(["600", "1000", "--json"])
        self.assertEqual(status, 0)
        data = json.loads(stdout.getvalue())
        self.assertFalse(data["is_winning_set"])
        self.assertEqual(data["working_target"], 400)
        self.assertIn("server_seed_hash", data["source"])
        self.assertEqual(data["matched_quantity"], 400)


if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
