"""Command-line interface for allocating tournament prizes."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from prizealloc.allocator import allocate_prizes, find_suspicious_entries
from prizealloc.config.rules import MULTI_PRIZE_POLICIES, parse_tie_break_strategy, with_overrides
from prizealloc.config_loader import load_allocation_input, save_result


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Allocate tournament prizes to ranked players")
    parser.add_argument("input", type=Path, help="Path to allocation input JSON")
    parser.add_argument("--output", type=Path, default=None, help="Result JSON path (default stdout)")
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        default=None,
        help="Date ages are computed on (YYYY-MM-DD); overrides the input document",
    )
    parser.add_argument(
        "--policy",
        choices=MULTI_PRIZE_POLICIES,
        default=None,
        help="Multi-prize policy override",
    )
    parser.add_argument(
        "--tie-break",
        default=None,
        help="Tie-break strategy: none, rating_then_name, or a comma list such as name,rating",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every eligibility check")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    payload = load_allocation_input(args.input)
    rules = with_overrides(
        payload.rules,
        multi_prize_policy=args.policy,
        tie_break_strategy=parse_tie_break_strategy(args.tie_break) if args.tie_break is not None else None,
        verbose_logs=True if args.verbose else None,
    )
    reference_date = args.reference_date or payload.resolve_reference_date()

    result = allocate_prizes(
        payload.players,
        payload.categories,
        rules,
        reference_date=reference_date,
        overrides=payload.overrides,
    )

    # Keep stdout parseable as JSON when the result is printed there.
    summary_stream = sys.stdout
    if args.output:
        save_result(result, args.output)
        print(f"Wrote allocation result to {args.output}")
    else:
        print(result.model_dump_json(indent=2))
        summary_stream = sys.stderr

    meta = result.meta
    print(
        f"Allocated {meta.winner_count}/{meta.prize_count} prizes, "
        f"{meta.unfilled_count} unfilled, {meta.conflict_count} conflicts",
        file=summary_stream,
    )
    suspicious = find_suspicious_entries(result.coverage)
    if suspicious:
        preview = ", ".join(entry.prize_label for entry in suspicious[:5])
        more = len(suspicious) - 5
        suffix = f", +{more} more" if more > 0 else ""
        print(f"Prizes needing review: {preview}{suffix}", file=summary_stream)


if __name__ == "__main__":
    main()
