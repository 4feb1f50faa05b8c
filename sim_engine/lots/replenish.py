"""TAILDRAW - Shortfall replenishment with single-ticket tails."""

import logging

logger = logging.getLogger("taildraw.draw")


def replenish(generator, accountant) -> int:
    """Close the remaining shortfall one full-length tail at a time.

    A tail as long as the pool's digit count matches exactly one ticket, so
    every accepted tail moves the count by one. Returns the tails added.
    """
    position = accountant.digit_count
    added = 0
    while accountant.shortfall > 0:
        tail = generator.generate(position)
        if accountant.account(position, tail):
            added += 1
    if added:
        logger.debug(f"Replenished {added} single-ticket tails")
    return added
