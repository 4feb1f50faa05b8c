"""
TAILDRAW - Block Accountant

Keeps the running count of tickets matched by the recorded tails and
undoes any tail that would push the count past the working target.
"""

import logging

logger = logging.getLogger("taildraw.draw")


def block_size(length: int, value: int, total_quantity: int) -> int:
    """How many serials in [1, total_quantity] end with `value` (length digits)."""
    modulus = 10 ** length
    size = total_quantity // modulus
    if value != 0 and value <= total_quantity % modulus:
        size += 1
    return size


class BlockAccountant:
    """Running matched count with overshoot rollback.

    `rate_digits` is shared with the orchestrator: a rollback at position p
    lowers digit p and saturates every finer position to 9 so the remaining
    positions can soak up the weight the rejected tail would have carried.
    """

    def __init__(self, total_quantity: int, working_target: int,
                 digit_count: int, rate_digits: list, patterns: dict):
        self.total_quantity = total_quantity
        self.working_target = working_target
        self.digit_count = digit_count
        self.rate_digits = rate_digits
        self.patterns = patterns
        self.matched = 0
        self.rollbacks = 0

    @property
    def shortfall(self) -> int:
        return self.working_target - self.matched

    @property
    def converged(self) -> bool:
        return self.matched == self.working_target

    def account(self, position: int, value: int) -> bool:
        """Count a tail and record it. Returns False if it was rolled back."""
        size = block_size(position, value, self.total_quantity)
        self.matched += size

        if self.matched > self.working_target:
            self.matched -= size
            self.rollbacks += 1
            # At the finest position leftovers are closed by replenishment
            if position != self.digit_count:
                current = self.rate_digits[position - 1]
                self.rate_digits[position - 1] = max(current - 1, 0)
                for i in range(position, self.digit_count):
                    self.rate_digits[i] = 9
            logger.debug(f"Rollback tail {value:0{position}d} (block {size}) "
                         f"at position {position}: {self.matched}/{self.working_target}")
            return False

        self.patterns[value] = position
        return True
