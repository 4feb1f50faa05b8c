#!/usr/bin/env python3
"""
TAILDRAW - Draw Engine Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestDrawLots    # run specific class

Test categories:
  TestRateDigits      - digit length, factor table, win rate and direction
  TestBlockAccountant - block sizes, overshoot rollback, digit saturation
  TestTailGenerator   - collision rules, range rules, spaced companions
  TestMembership      - is_winner, section counts, pattern audit
  TestDrawLots        - exact winner counts, determinism, validation
"""

import sys
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.lots import (
    DrawRequest, ExhaustedCandidateSpace, InvalidInput, RandomSource, RandomSourceError,
    check_patterns, compute_rate, count_winners, digit_length, draw_lots,
    get_factors, is_winner, winning_numbers,
)
from sim_engine.lots.accountant import BlockAccountant, block_size
from sim_engine.lots.digits import rate_digits
from sim_engine.lots.membership import count_matches
from sim_engine.lots.tails import TailGenerator, collides, step_multipliers
from tools.lots_rng import RecordingSource, ReplaySource, SeededSource


class ConstantSource(RandomSource):
    """Always returns the same value."""

    def __init__(self, value: int):
        self.value = value

    def next(self, salt: int) -> int:
        return self.value


def brute_winners(result) -> int:
    return sum(1 for serial in range(1, result.total_quantity + 1)
               if result.is_winner(serial))


# ============================================================
# Win Rate Digits
# ============================================================

class TestRateDigits(unittest.TestCase):
    """Digit arithmetic behind the win rate."""

    def test_digit_length(self):
        self.assertEqual(digit_length(1), 1)
        self.assertEqual(digit_length(9), 1)
        self.assertEqual(digit_length(10), 2)
        self.assertEqual(digit_length(1000), 4)
        self.assertEqual(digit_length(10 ** 20), 21)

    def test_digit_length_rejects_zero(self):
        with self.assertRaises(InvalidInput):
            digit_length(0)

    def test_factor_table(self):
        """Uneven digits split into two evenly spaced groups."""
        expected = {
            0: (0, 0), 1: (1, 0), 2: (2, 0), 3: (2, 1), 4: (2, 2),
            5: (5, 0), 6: (5, 1), 7: (5, 2), 8: (8, 0), 9: (9, 0),
        }
        for digit, factors in expected.items():
            self.assertEqual(get_factors(digit), factors, f"digit {digit}")
            self.assertEqual(sum(factors), digit)

    def test_factor_rejects_non_digit(self):
        with self.assertRaises(ValueError):
            get_factors(10)

    def test_rate_below_half(self):
        """73 of 1000: four digits, rate 0.0730, tails mark winners."""
        plan = compute_rate(73, 1000)
        self.assertEqual(plan.digit_count, 4)
        self.assertEqual(plan.win_rate, 730)
        self.assertEqual(plan.working_target, 73)
        self.assertTrue(plan.is_winning_set)

    def test_rate_above_half_flips(self):
        """927 of 1000 is drawn as 73 losers."""
        plan = compute_rate(927, 1000)
        self.assertEqual(plan.raw_win_rate, 9270)
        self.assertEqual(plan.win_rate, 730)
        self.assertEqual(plan.working_target, 73)
        self.assertFalse(plan.is_winning_set)

    def test_rate_exactly_half_keeps_direction(self):
        plan = compute_rate(500, 1000)
        self.assertEqual(plan.win_rate, plan.half)
        self.assertTrue(plan.is_winning_set)

    def test_rate_digits_most_significant_first(self):
        self.assertEqual(rate_digits(730, 4), [0, 7, 3, 0])
        self.assertEqual(rate_digits(5, 1), [5])
        self.assertEqual(rate_digits(30, 2), [3, 0])


# ============================================================
# Block Accountant
# ============================================================

class TestBlockAccountant(unittest.TestCase):
    """Block sizes and overshoot handling."""

    def test_block_size(self):
        self.assertEqual(block_size(2, 0, 1000), 10)     # 100, 200, ... 1000
        self.assertEqual(block_size(2, 37, 1000), 10)
        self.assertEqual(block_size(3, 7, 1000), 1)
        self.assertEqual(block_size(4, 0, 1000), 0)      # 10000 is out of the pool
        self.assertEqual(block_size(4, 999, 1000), 1)
        self.assertEqual(block_size(1, 3, 1234), 124)
        self.assertEqual(block_size(1, 5, 1234), 123)

    def _accountant(self, target, digits=None):
        patterns = {}
        acc = BlockAccountant(total_quantity=1000, working_target=target,
                              digit_count=4, rate_digits=digits or [0, 7, 3, 0],
                              patterns=patterns)
        return acc, patterns

    def test_records_tail_within_target(self):
        acc, patterns = self._accountant(73)
        self.assertTrue(acc.account(2, 5))
        self.assertEqual(acc.matched, 10)
        self.assertEqual(acc.shortfall, 63)
        self.assertEqual(patterns, {5: 2})

    def test_overshoot_rolls_back_and_saturates(self):
        """Rejected tail lowers its digit and forces finer digits to 9."""
        acc, patterns = self._accountant(15)
        acc.account(2, 5)
        self.assertFalse(acc.account(2, 6))
        self.assertEqual(acc.matched, 10)
        self.assertEqual(acc.rollbacks, 1)
        self.assertEqual(acc.rate_digits, [0, 6, 9, 9])
        self.assertNotIn(6, patterns)

    def test_overshoot_at_finest_position_keeps_digits(self):
        acc, patterns = self._accountant(1)
        self.assertTrue(acc.account(4, 998))
        self.assertTrue(acc.converged)
        self.assertFalse(acc.account(4, 999))
        self.assertEqual(acc.rate_digits, [0, 7, 3, 0])
        self.assertEqual(acc.matched, 1)
        self.assertEqual(patterns, {998: 4})

    def test_digit_never_negative(self):
        acc, _ = self._accountant(5, digits=[0, 0, 3, 0])
        self.assertFalse(acc.account(2, 5))
        self.assertEqual(acc.rate_digits[1], 0)


# ============================================================
# Tail Generator
# ============================================================

class TestTailGenerator(unittest.TestCase):
    """Candidate tails: range, collisions and spacing."""

    def _generator(self, values, patterns=None, total=1000, attempts=100):
        return TailGenerator(ReplaySource(values), salt=0, total_quantity=total,
                             patterns={} if patterns is None else patterns,
                             max_attempts=attempts)

    def test_collision_with_shorter_tail(self):
        self.assertTrue(collides(17, 2, {7: 1}))
        self.assertFalse(collides(18, 2, {7: 1}))

    def test_collision_with_longer_tail(self):
        self.assertTrue(collides(3, 1, {123: 3}))
        self.assertTrue(collides(23, 2, {123: 3}))
        self.assertFalse(collides(13, 2, {123: 3}))

    def test_same_value_different_length(self):
        """07 and 007 overlap; 7 stored at length 3 does not block 17."""
        self.assertTrue(collides(7, 2, {7: 3}))
        self.assertFalse(collides(17, 2, {7: 3}))

    def test_generate_reduces_modulo_position(self):
        gen = self._generator([1234567])
        self.assertEqual(gen.generate(2), 67)
        self.assertEqual(gen.draws, 1)

    def test_generate_skips_collisions(self):
        gen = self._generator([17, 25], patterns={7: 1})
        self.assertEqual(gen.generate(2), 25)
        self.assertEqual(gen.draws, 2)

    def test_generate_skips_tails_matching_nothing(self):
        """Above the pool, or zero at full length, matches no ticket."""
        gen = self._generator([5000, 0, 999])
        self.assertEqual(gen.generate(4), 999)

    def test_generate_wide_modulus_uses_several_values(self):
        total = 10 ** 12
        gen = self._generator([1, 2], total=total)
        self.assertEqual(gen.generate(13), (1 << 32) | 2)
        self.assertEqual(gen.draws, 2)

    def test_generate_exhausts(self):
        gen = self._generator([7] * 5, patterns={7: 1}, attempts=5)
        with self.assertRaises(ExhaustedCandidateSpace) as ctx:
            gen.generate(1)
        self.assertEqual(ctx.exception.length, 1)
        self.assertEqual(ctx.exception.attempts, 5)

    def test_step_multipliers(self):
        self.assertEqual(step_multipliers(1), [])
        self.assertEqual(step_multipliers(2), [1])
        self.assertEqual(step_multipliers(5), [1, 2, 3, 4])
        self.assertEqual(step_multipliers(8), [1, 2, 3, 8, 5, 6, 7])
        self.assertEqual(step_multipliers(9), list(range(1, 9)))

    def test_derive_evenly_spaced(self):
        gen = self._generator([])
        self.assertEqual(list(gen.derive(3, 1, 5)), [5, 7, 9, 1])
        self.assertEqual(list(gen.derive(42, 2, 2)), [92])
        self.assertEqual(list(gen.derive(0, 1, 8)), [1, 2, 3, 8, 5, 6, 7])

    def test_derive_shifts_on_collision(self):
        """Second group of a 7 (5 + 2) lands on the first group and moves one."""
        gen = self._generator([], patterns={1: 1, 3: 1, 5: 1, 7: 1, 9: 1})
        self.assertEqual(list(gen.derive(4, 1, 2)), [0])

    def test_derive_drops_out_of_range(self):
        gen = self._generator([])
        self.assertEqual(list(gen.derive(500, 4, 2)), [])

    def test_derive_drops_when_shift_collides(self):
        """9 is taken and its one-unit shift 0 is taken too."""
        patterns = {9: 1, 0: 1}
        gen = self._generator([], patterns=patterns)
        self.assertEqual(list(gen.derive(4, 1, 2)), [])
        self.assertEqual(patterns, {9: 1, 0: 1})

    def test_generate_rejects_non_integer_value(self):
        gen = TailGenerator(ConstantSource(0.5), salt=0, total_quantity=1000,
                            patterns={}, max_attempts=10)
        with self.assertRaises(RandomSourceError):
            gen.generate(2)

    def test_generate_rejects_value_above_32_bits(self):
        gen = TailGenerator(ConstantSource(1 << 32), salt=0, total_quantity=1000,
                            patterns={}, max_attempts=10)
        with self.assertRaises(RandomSourceError):
            gen.generate(2)
        self.assertEqual(gen.draws, 0)


# ============================================================
# Membership
# ============================================================

class TestMembership(unittest.TestCase):
    """Winner checks against stored tails."""

    PATTERNS = {7: 1, 12: 2, 300: 3}

    def test_is_winner(self):
        self.assertTrue(is_winner(17, self.PATTERNS, True))
        self.assertTrue(is_winner(412, self.PATTERNS, True))
        self.assertTrue(is_winner(1300, self.PATTERNS, True))
        self.assertFalse(is_winner(400, self.PATTERNS, True))

    def test_is_winner_inverted(self):
        self.assertFalse(is_winner(17, self.PATTERNS, False))
        self.assertTrue(is_winner(400, self.PATTERNS, False))

    def test_count_matches_agrees_with_brute_force(self):
        for start, end in [(1, 1000), (1, 1), (13, 112), (250, 999), (301, 1300)]:
            expected = sum(1 for n in range(start, end + 1)
                           if is_winner(n, self.PATTERNS, True))
            self.assertEqual(count_matches(start, end, self.PATTERNS), expected,
                             f"section [{start}, {end}]")

    def test_count_winners_inverted(self):
        expected = sum(1 for n in range(101, 601) if is_winner(n, self.PATTERNS, False))
        self.assertEqual(count_winners(101, 600, self.PATTERNS, False), expected)

    def test_empty_section(self):
        self.assertEqual(count_winners(10, 9, self.PATTERNS, True), 0)

    def test_winning_numbers(self):
        self.assertEqual(list(winning_numbers({3: 1}, True, 25)), [3, 13, 23])

    def test_check_patterns_clean(self):
        self.assertEqual(check_patterns(self.PATTERNS, 1000), [])

    def test_check_patterns_reports_problems(self):
        problems = check_patterns({7: 1, 17: 2, 5000: 4, 0: 4}, 1000)
        self.assertTrue(any("overlaps" in p for p in problems))
        self.assertTrue(any("exceeds" in p for p in problems))
        self.assertTrue(any("matches no ticket" in p for p in problems))


# ============================================================
# Draw Lots
# ============================================================

class TestDrawLots(unittest.TestCase):
    """End-to-end draws."""

    def assertExactDraw(self, result, target, total):
        self.assertEqual(result.matched_quantity, result.working_target)
        self.assertEqual(check_patterns(result.patterns, total), [])
        self.assertEqual(result.count_winners(), target)
        for value, length in result.patterns.items():
            self.assertLessEqual(value, total)
            self.assertLess(value, 10 ** length)

    def test_example_73_of_1000(self):
        result = draw_lots(7, 73, 1000, SeededSource(2024))
        self.assertEqual(result.digit_count, 4)
        self.assertEqual(result.win_rate, 730)
        self.assertTrue(result.is_winning_set)
        self.assertExactDraw(result, 73, 1000)
        self.assertEqual(brute_winners(result), 73)

    def test_small_pool_3_of_10(self):
        result = draw_lots(1, 3, 10, SeededSource(3))
        self.assertExactDraw(result, 3, 10)
        self.assertEqual(brute_winners(result), 3)

    def test_complement_draw(self):
        result = draw_lots(0, 927, 1000, SeededSource(11))
        self.assertFalse(result.is_winning_set)
        self.assertEqual(result.working_target, 73)
        self.assertExactDraw(result, 927, 1000)
        self.assertEqual(brute_winners(result), 927)

    def test_exact_counts_across_pools(self):
        """Every target in a spread of pool sizes is hit exactly."""
        seed = 0
        for total in [2, 3, 7, 10, 11, 19, 99, 100, 101, 250, 999, 1000, 1001, 1234]:
            targets = {1, total // 3, total // 2, total // 2 + 1, (2 * total) // 3, total - 1}
            for target in sorted(t for t in targets if 0 < t < total):
                seed += 1
                result = draw_lots(seed, target, total, SeededSource(seed))
                with self.subTest(target=target, total=total):
                    self.assertExactDraw(result, target, total)
                    self.assertEqual(brute_winners(result), target)

    def test_large_pool(self):
        total = 10 ** 12 + 7
        target = 123_456_789
        result = draw_lots(99, target, total, SeededSource(99))
        self.assertEqual(result.digit_count, 13)
        self.assertExactDraw(result, target, total)
        self.assertLess(len(result.patterns), 500)

    def test_sections_sum_to_target(self):
        result = draw_lots(5, 333, 1000, SeededSource(5))
        sections = [(1, 250), (251, 600), (601, 1000)]
        counts = [result.count_winners(s, e) for s, e in sections]
        self.assertEqual(sum(counts), 333)
        for (start, end), count in zip(sections, counts):
            brute = sum(1 for n in range(start, end + 1) if result.is_winner(n))
            self.assertEqual(count, brute)

    def test_section_end_clamped_to_pool(self):
        """Serials past the pool are never winners, even in complement mode."""
        result = draw_lots(0, 927, 1000, SeededSource(11))
        self.assertFalse(result.is_winning_set)
        self.assertEqual(result.count_winners(1, 1100), 927)
        self.assertEqual(result.count_winners(1001, 1100), 0)

    def test_replay_is_deterministic(self):
        recorder = RecordingSource(SeededSource(77))
        first = draw_lots(3, 421, 5000, recorder)
        second = draw_lots(3, 421, 5000, recorder.replay())
        self.assertEqual(first.as_tuple(), second.as_tuple())
        self.assertEqual(first.draws, len(recorder.values))

    def test_same_seed_same_draw(self):
        a = draw_lots(9, 47, 300, SeededSource("same"))
        b = draw_lots(9, 47, 300, SeededSource("same"))
        self.assertEqual(a.as_tuple(), b.as_tuple())

    def test_as_tuple_copies_patterns(self):
        result = draw_lots(0, 3, 10, SeededSource(1))
        patterns, flag = result.as_tuple()
        patterns.clear()
        self.assertTrue(result.patterns)
        self.assertTrue(flag)

    def test_to_dict_labels(self):
        result = draw_lots(7, 73, 1000, SeededSource(2024))
        data = result.to_dict()
        self.assertEqual(len(data["tails"]), len(result.patterns))
        for tail in data["tails"]:
            self.assertEqual(len(tail["label"]), tail["length"])
            self.assertEqual(int(tail["label"]), tail["tail"])

    def test_invalid_inputs(self):
        source = SeededSource(1)
        for salt, target, total in [(0, 0, 1000), (0, 1000, 1000), (0, 5, 0),
                                    (0, 1001, 1000), (-1, 5, 10), (1 << 32, 5, 10),
                                    (0, 5, 1 << 128)]:
            with self.subTest(salt=salt, target=target, total=total):
                with self.assertRaises(InvalidInput):
                    draw_lots(salt, target, total, source)

    def test_invalid_input_is_value_error(self):
        with self.assertRaises(ValueError):
            draw_lots(0, 10, 10, SeededSource(1))

    def test_request_rejects_non_integers(self):
        with self.assertRaises(InvalidInput):
            DrawRequest.build(0, "10", 100)
        with self.assertRaises(InvalidInput):
            DrawRequest.build(0, 10.0, 100)

    def test_exhausted_source_aborts(self):
        """A stuck source cannot find a third free two-digit tail."""
        with self.assertRaises(ExhaustedCandidateSpace):
            draw_lots(0, 3, 100, ConstantSource(7), max_attempts=50)

    def test_max_attempts_must_be_positive(self):
        with self.assertRaises(ValueError):
            draw_lots(0, 3, 10, SeededSource(1), max_attempts=0)


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
