"""
recalculate_bets.py - Recompute stored lay stakes, liabilities and profits.

Run after changing the exchange commission or fixing a sizing formula.
Every hedged bet is re-sized with the current engine; rows whose liability
moves by more than the tolerance are rewritten.  Exchange ledger entries
already journalled are left untouched.

Usage
-----
  python scripts/recalculate_bets.py --dry-run           # show changes only
  python scripts/recalculate_bets.py                     # rewrite rows
  python scripts/recalculate_bets.py --commission 0.02   # override EXCHANGE_COMMISSION
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure the project root (one level up from scripts/) is on sys.path so that
# `from bonus_ledger.xxx import ...` resolves when the script is run directly.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv()


def main() -> None:
    from bonus_ledger.config import load_config

    cfg = load_config()

    parser = argparse.ArgumentParser(
        description="Recalculate hedged bets with the current formulas."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report changes without writing them.",
    )
    parser.add_argument(
        "--commission",
        type=float,
        default=cfg.commission,
        help=f"Exchange commission as a fraction (default {cfg.commission}).",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=0.01,
        help="Minimum liability change that triggers a rewrite.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from bonus_ledger.models import SessionLocal
    from bonus_ledger.services.bets import recalculate_bets

    db = SessionLocal()
    try:
        summary = recalculate_bets(
            db,
            commission=args.commission,
            default_retention=cfg.retention,
            tolerance=args.tolerance,
            dry_run=args.dry_run,
        )
    finally:
        db.close()

    label = "[DRY RUN] " if args.dry_run else ""
    print(f"{label}Checked {summary['total']} hedged bet(s), {len(summary['changes'])} changed.")
    for change in summary["changes"]:
        print(
            f"  bet {change['id']:>5}: liability "
            f"{change['old_liability']:.2f} -> {change['new_liability']:.2f} "
            f"(diff {change['diff']:.2f})"
        )
    for err in summary["errors"]:
        print(f"  ERROR {err}")

    if summary["errors"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
