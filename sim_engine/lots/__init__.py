"""
TAILDRAW - Draw Engine

Picks exactly T winners among tickets 1..N by drawing non-overlapping
decimal tails ("ticket ends with 37", "ticket ends with 0412", ...).

Usage:
    from sim_engine.lots import draw_lots, is_winner
    result = draw_lots(salt, target_quantity=73, total_quantity=1000, source=source)
    patterns, is_winning_set = result.as_tuple()
    is_winner(412, patterns, is_winning_set)
"""

from sim_engine.lots.errors import (
    DrawError, ExhaustedCandidateSpace, InvalidInput, RandomSourceError,
)
from sim_engine.lots.base import DrawRequest, DrawResult, RandomSource
from sim_engine.lots.digits import compute_rate, digit_length, get_factors
from sim_engine.lots.membership import (
    check_patterns, count_winners, is_winner, winning_numbers,
)
from sim_engine.lots.draw import DrawLots, draw_lots

__all__ = [
    "DrawError", "ExhaustedCandidateSpace", "InvalidInput", "RandomSourceError",
    "DrawRequest", "DrawResult", "RandomSource",
    "compute_rate", "digit_length", "get_factors",
    "check_patterns", "count_winners", "is_winner", "winning_numbers",
    "DrawLots", "draw_lots",
]
