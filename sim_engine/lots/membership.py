"""
TAILDRAW - Ticket Membership

Answers "did this serial win?" for a stored draw, and counts winners over a
purchased section of serials without walking every ticket.
"""

from sim_engine.lots.accountant import block_size


def matches(serial: int, patterns: dict) -> bool:
    """True if some tail (value, length) is a decimal suffix of `serial`."""
    return any(serial % 10 ** length == value for value, length in patterns.items())


def is_winner(serial: int, patterns: dict, is_winning_set: bool) -> bool:
    """Membership, inverted when the tails mark the losing tickets."""
    return matches(serial, patterns) == is_winning_set


def count_matches(start: int, end: int, patterns: dict) -> int:
    """Number of serials in [start, end] matched by the tails.

    Exact only for a non-colliding tail set (blocks are disjoint).
    """
    if end < start:
        return 0
    lower = max(start, 1) - 1
    total = 0
    for value, length in patterns.items():
        total += block_size(length, value, end) - block_size(length, value, lower)
    return total


def count_winners(start: int, end: int, patterns: dict, is_winning_set: bool) -> int:
    """Winners among serials [start, end]."""
    if end < start:
        return 0
    matched = count_matches(start, end, patterns)
    if is_winning_set:
        return matched
    return (end - max(start, 1) + 1) - matched


def winning_numbers(patterns: dict, is_winning_set: bool, total_quantity: int):
    """Yield winning serials in ascending order."""
    for serial in range(1, total_quantity + 1):
        if is_winner(serial, patterns, is_winning_set):
            yield serial


def check_patterns(patterns: dict, total_quantity: int) -> list:
    """Audit a tail set. Returns human-readable problems (empty when valid)."""
    problems = []
    for value, length in patterns.items():
        if value >= 10 ** length:
            problems.append(f"tail {value} does not fit in {length} digits")
        if value > total_quantity:
            problems.append(f"tail {value:0{length}d} exceeds total {total_quantity}")
        elif block_size(length, value, total_quantity) == 0:
            problems.append(f"tail {value:0{length}d} matches no ticket")

    ordered = sorted(patterns.items(), key=lambda kv: kv[1])
    for i, (short, short_len) in enumerate(ordered):
        for longer, longer_len in ordered[i + 1:]:
            if longer % 10 ** short_len == short:
                problems.append(
                    f"tail {longer:0{longer_len}d} overlaps {short:0{short_len}d}"
                )
    return problems
