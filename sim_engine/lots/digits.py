"""
TAILDRAW - Win Rate Digits

The win rate T/N is written as a D-digit decimal fraction (D = digits of N).
Digit p of that fraction says how many tails of length p are needed: each
length-p tail matches about N / 10^p tickets, i.e. a 1/10^p share.
"""

from dataclasses import dataclass

from sim_engine.lots.errors import InvalidInput

# Digits that are not evenly spaced over ten are split into two spaced sets.
# 7/10 = 5/10 + 2/10, etc.
SPLIT_FACTORS = {
    3: (2, 1),
    4: (2, 2),
    6: (5, 1),
    7: (5, 2),
}


@dataclass
class RatePlan:
    """Direction and digit layout of one draw."""
    digit_count: int
    working_target: int
    win_rate: int
    raw_win_rate: int
    is_winning_set: bool

    @property
    def half(self) -> int:
        return 5 * 10 ** (self.digit_count - 1)


def digit_length(value: int) -> int:
    """Number of decimal digits of a positive integer."""
    length = 0
    while value > 0:
        length += 1
        value //= 10
    if length == 0:
        raise InvalidInput("total_quantity must be positive to count its digits")
    return length


def get_factors(digit: int) -> tuple:
    """Split a rate digit into at most two evenly spaced tail counts."""
    if not 0 <= digit <= 9:
        raise ValueError(f"Rate digit must be 0-9, got {digit}")
    return SPLIT_FACTORS.get(digit, (digit, 0))


def compute_rate(target_quantity: int, total_quantity: int) -> RatePlan:
    """Compute D and the win rate, flipping to the minority side above 50%."""
    digit_count = digit_length(total_quantity)
    scale = 10 ** digit_count
    raw = target_quantity * scale // total_quantity

    if raw > 5 * 10 ** (digit_count - 1):
        return RatePlan(digit_count=digit_count,
                        working_target=total_quantity - target_quantity,
                        win_rate=scale - raw,
                        raw_win_rate=raw,
                        is_winning_set=False)
    return RatePlan(digit_count=digit_count,
                    working_target=target_quantity,
                    win_rate=raw,
                    raw_win_rate=raw,
                    is_winning_set=True)


def rate_digits(win_rate: int, digit_count: int) -> list:
    """Fractional digits of the win rate; index p-1 is consumed at position p."""
    return [(win_rate // 10 ** (digit_count - p)) % 10
            for p in range(1, digit_count + 1)]
