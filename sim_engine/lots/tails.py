"""
TAILDRAW - Tail Generator

Draws random tails of a given length that match at least one ticket and do
not overlap any tail already recorded, and derives evenly spaced companions
of a drawn tail.
"""

import logging

from sim_engine.lots.accountant import block_size
from sim_engine.lots.base import U32_MAX
from sim_engine.lots.errors import ExhaustedCandidateSpace, RandomSourceError

logger = logging.getLogger("taildraw.tails")


def collides(value: int, length: int, patterns: dict) -> bool:
    """True if (value, length) shares tickets with any recorded tail."""
    for n in range(1, length + 1):
        if patterns.get(value % 10 ** n) == n:
            return True
    # Recorded tails longer than the candidate that end with it
    modulus = 10 ** length
    return any(other_len > length and other % modulus == value
               for other, other_len in patterns.items())


def step_multipliers(factor: int) -> list:
    """Multiples of the step used for the factor-1 companions of a base tail."""
    multipliers = list(range(1, factor))
    if factor == 8:
        # 0123_5678 instead of 01234567 keeps the eight tails spread out
        multipliers[3] = 8
    return multipliers


class TailGenerator:
    """Random tail source bound to one draw's pattern set."""

    def __init__(self, source, salt: int, total_quantity: int,
                 patterns: dict, max_attempts: int):
        self.source = source
        self.salt = salt
        self.total_quantity = total_quantity
        self.patterns = patterns
        self.max_attempts = max_attempts
        self.draws = 0

    def in_range(self, value: int, length: int) -> bool:
        return value <= self.total_quantity and block_size(length, value, self.total_quantity) > 0

    def is_free(self, value: int, length: int) -> bool:
        return self.in_range(value, length) and not collides(value, length, self.patterns)

    def _draw_below(self, modulus: int) -> int:
        """One random value reduced modulo `modulus`.

        Moduli wider than 32 bits concatenate several source values.
        """
        words = max(1, -(-modulus.bit_length() // 32))
        value = 0
        for _ in range(words):
            word = self.source.next(self.salt)
            if not isinstance(word, int) or not 0 <= word <= U32_MAX:
                raise RandomSourceError(
                    f"{type(self.source).__name__} returned {word!r}, not a 32-bit integer"
                )
            value = (value << 32) | word
            self.draws += 1
        return value % modulus

    def generate(self, position: int) -> int:
        """Draw a free tail of length `position`."""
        modulus = 10 ** position
        for _ in range(self.max_attempts):
            tail = self._draw_below(modulus)
            if self.is_free(tail, position):
                return tail
        raise ExhaustedCandidateSpace(position, self.max_attempts, self.total_quantity)

    def derive(self, base: int, position: int, factor: int):
        """Yield the evenly spaced companions of `base` at the same position.

        A companion already taken is nudged one unit of its leading digit;
        if that is taken too, or matches no ticket, it is dropped.
        """
        modulus = 10 ** position
        unit = 10 ** (position - 1)
        step = 10 // factor
        for i in step_multipliers(factor):
            tail = (base + step * i * unit) % modulus
            if collides(tail, position, self.patterns):
                tail = (tail + unit) % modulus
            if not self.is_free(tail, position):
                logger.debug(f"Dropped companion {tail:0{position}d} of "
                             f"{base:0{position}d} (factor {factor})")
                continue
            yield tail
