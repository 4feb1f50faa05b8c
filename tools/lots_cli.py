#!/usr/bin/env python3
"""
TAILDRAW - Draw CLI

Usage:
    python -m tools.lots_cli 73 1000
    python -m tools.lots_cli 73 1000 --salt 7 --source seeded --seed 1234
    python -m tools.lots_cli 600 1000 --check --winners
    python -m tools.lots_cli 73 1000 --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import DrawSettings, configure_logging
from sim_engine.lots import DrawError, check_patterns, draw_lots, winning_numbers
from sim_engine.lots.accountant import block_size
from tools.lots_rng import SOURCE_TYPES, ProvablyFairSource, get_source

logger = logging.getLogger("taildraw.cli")
console = Console()

WINNER_LIST_LIMIT = 200


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Draw winning ticket tails")
    parser.add_argument("target", type=int, help="Number of winners")
    parser.add_argument("total", type=int, help="Number of tickets (1..total)")
    parser.add_argument("--salt", type=int, default=0, help="Caller salt (u32)")
    parser.add_argument("--source", choices=SOURCE_TYPES, default="fair")
    parser.add_argument("--seed", type=str, default=None,
                        help="Seed (seeded source) or revealed server seed (fair source)")
    parser.add_argument("--client-seed", type=str, default=None)
    parser.add_argument("--max-attempts", type=int, default=None)
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--check", action="store_true", help="Verify the winner count")
    parser.add_argument("--winners", action="store_true", help="List winning serials")
    parser.add_argument("--log-level", type=str.upper, default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser


def verify(result) -> list:
    """Audit a result; brute-force the winner count on small pools."""
    problems = check_patterns(result.patterns, result.total_quantity)
    counted = result.count_winners()
    if counted != result.target_quantity:
        problems.append(f"section count gives {counted} winners, expected {result.target_quantity}")
    if result.total_quantity <= DrawSettings.CHECK_LIMIT:
        brute = sum(1 for _ in winning_numbers(result.patterns, result.is_winning_set,
                                               result.total_quantity))
        if brute != result.target_quantity:
            problems.append(f"brute force gives {brute} winners, expected {result.target_quantity}")
    else:
        logger.info(f"Pool of {result.total_quantity} above check limit; brute force skipped")
    return problems


def render(result, source):
    mode = "winners" if result.is_winning_set else "losers (complement)"
    console.print(Panel(
        f"[bold]🎟️  {result.target_quantity} of {result.total_quantity} tickets[/bold]\n\n"
        f"Digits: {result.digit_count}  Win rate: {result.win_rate}/{10 ** result.digit_count}\n"
        f"Tails mark: {mode}\n"
        f"Tails: {len(result.patterns)}  Rollbacks: {result.rollbacks}  "
        f"Replenished: {result.replenished}  Draws: {result.draws}",
        title="Draw Complete", border_style="cyan",
    ))

    table = Table(title="Tails")
    table.add_column("Tail", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Tickets", justify="right")
    for tail in result.to_dict()["tails"]:
        table.add_row(tail["label"], str(tail["length"]),
                      str(block_size(tail["length"], tail["tail"], result.total_quantity)))
    console.print(table)

    if isinstance(source, ProvablyFairSource):
        console.print(f"Server seed hash: {source.session.server_seed_hash}")
        console.print(f"Client seed: {source.session.client_seed}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        source = get_source(args.source, seed=args.seed, client_seed=args.client_seed)
        result = draw_lots(args.salt, args.target, args.total, source,
                           max_attempts=args.max_attempts)
    except (DrawError, ValueError) as e:
        console.print(f"[red]❌ Draw failed: {e}[/red]")
        return 1

    if args.json:
        payload = result.to_dict()
        if isinstance(source, ProvablyFairSource):
            payload["source"] = source.public_info()
        print(json.dumps(payload, indent=2))
    else:
        render(result, source)

    status = 0
    if args.check:
        problems = verify(result)
        if problems:
            for p in problems:
                console.print(f"[red]  - {p}[/red]")
            status = 1
        else:
            console.print(f"[green]✅ Verified: {result.target_quantity} winners[/green]")

    if args.winners:
        if result.total_quantity > WINNER_LIST_LIMIT * 50:
            console.print("[yellow]⚠️  Pool too large to list winners[/yellow]")
        else:
            serials = list(winning_numbers(result.patterns, result.is_winning_set,
                                           result.total_quantity))
            shown = ", ".join(str(s) for s in serials[:WINNER_LIST_LIMIT])
            more = f" (+{len(serials) - WINNER_LIST_LIMIT} more)" if len(serials) > WINNER_LIST_LIMIT else ""
            console.print(f"Winners: {shown}{more}")

    return status


if __name__ == "__main__":
    sys.exit(main())
