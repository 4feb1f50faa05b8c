"""
TAILDRAW - Draw Lots

Selects exactly T winners out of N sequential tickets by drawing a handful
of non-overlapping decimal tails instead of shuffling the tickets.

Stages:
    Validate -> per-position tails (1..D) -> replenish shortfall -> result

Usage:
    from sim_engine.lots import draw_lots
    from tools.lots_rng import ProvablyFairSource

    result = draw_lots(salt=7, target_quantity=73, total_quantity=1000,
                       source=ProvablyFairSource())
    patterns, is_winning_set = result.as_tuple()
    result.is_winner(412)
"""

import logging

from config.settings import DrawSettings
from sim_engine.lots.accountant import BlockAccountant
from sim_engine.lots.base import DrawRequest, DrawResult, RandomSource
from sim_engine.lots.digits import compute_rate, get_factors, rate_digits
from sim_engine.lots.replenish import replenish
from sim_engine.lots.tails import TailGenerator

logger = logging.getLogger("taildraw.draw")


class DrawLots:
    """Draw orchestrator bound to one random source.

    Every call starts from empty working state; only the source carries
    anything over between draws. Calls sharing a source must not overlap.
    """

    def __init__(self, source: RandomSource, max_attempts: int = None):
        self.source = source
        self.max_attempts = DrawSettings.max_attempts(max_attempts)

    def draw(self, salt: int, target_quantity: int, total_quantity: int) -> DrawResult:
        request = DrawRequest.build(salt, target_quantity, total_quantity)
        plan = compute_rate(request.target_quantity, request.total_quantity)
        digits = rate_digits(plan.win_rate, plan.digit_count)

        patterns = {}
        generator = TailGenerator(self.source, request.salt, request.total_quantity,
                                  patterns, self.max_attempts)
        accountant = BlockAccountant(request.total_quantity, plan.working_target,
                                     plan.digit_count, digits, patterns)

        for position in range(1, plan.digit_count + 1):
            if accountant.converged:
                break
            for factor in get_factors(digits[position - 1]):
                self._place(generator, accountant, position, factor)

        replenished = replenish(generator, accountant)

        logger.info(
            f"Drew {len(patterns)} tails for {request.target_quantity}/"
            f"{request.total_quantity} (D={plan.digit_count}, rate={plan.win_rate}, "
            f"{'winners' if plan.is_winning_set else 'losers'}, "
            f"rollbacks={accountant.rollbacks}, replenished={replenished}, "
            f"draws={generator.draws})"
        )
        return DrawResult(
            patterns=patterns,
            is_winning_set=plan.is_winning_set,
            salt=request.salt,
            target_quantity=request.target_quantity,
            total_quantity=request.total_quantity,
            working_target=plan.working_target,
            digit_count=plan.digit_count,
            win_rate=plan.win_rate,
            matched_quantity=accountant.matched,
            replenished=replenished,
            rollbacks=accountant.rollbacks,
            draws=generator.draws,
        )

    @staticmethod
    def _place(generator: TailGenerator, accountant: BlockAccountant,
               position: int, factor: int):
        """Place one evenly spaced group of `factor` tails at `position`."""
        if factor <= 0 or accountant.converged:
            return
        base = generator.generate(position)
        accountant.account(position, base)
        for tail in generator.derive(base, position, factor):
            if accountant.converged:
                break
            accountant.account(position, tail)


def draw_lots(salt: int, target_quantity: int, total_quantity: int,
              source: RandomSource, max_attempts: int = None) -> DrawResult:
    """Draw `target_quantity` winners out of tickets 1..`total_quantity`."""
    return DrawLots(source, max_attempts=max_attempts).draw(
        salt, target_quantity, total_quantity)
