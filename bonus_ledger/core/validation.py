"""Input guards shared by the hedge and profit modules.

Each guard either returns silently or raises the matching
:mod:`~bonus_ledger.core.errors` subclass with the offending value in the
message.
"""

from __future__ import annotations

from typing import Final, Optional

from bonus_ledger.core.errors import (
    InvalidCommissionError,
    InvalidOddsError,
    InvalidRegimeError,
    InvalidStakeError,
)

#: Decimal odds must be strictly above 1.0.  At exactly 1.0 a winning bet
#: returns only the stake and the liability is zero.
MIN_DECIMAL_ODDS: Final[float] = 1.0


def check_stake(stake: float, name: str = "stake") -> None:
    if not stake > 0.0:
        raise InvalidStakeError(f"{name} must be > 0, got {stake!r}.")


def check_odds(odds: float, name: str) -> None:
    if not odds > MIN_DECIMAL_ODDS:
        raise InvalidOddsError(
            f"{name} must be decimal odds > 1.0, got {odds!r}. "
            "American or fractional prices must be converted by the caller."
        )


def check_commission(commission: float) -> None:
    if not 0.0 <= commission < 1.0:
        raise InvalidCommissionError(
            f"commission must be in [0, 1), got {commission!r}. "
            "Pass a fraction (0.05), not a percentage (5)."
        )


def check_lay_denominator(lay_odds: float, commission: float) -> float:
    """Validate the lay side of a hedge and return ``lay_odds − commission``."""
    check_commission(commission)
    if not lay_odds > commission:
        raise InvalidOddsError(
            f"lay_odds ({lay_odds!r}) must exceed commission ({commission!r}); "
            "the hedge is undefined."
        )
    check_odds(lay_odds, "lay_odds")
    return lay_odds - commission


def check_retention(retention: Optional[float]) -> float:
    if retention is None:
        raise InvalidRegimeError(
            "Refund regime requires a retention fraction; got None. "
            "Set Bookmaker.retention or DEFAULT_RETENTION."
        )
    if not 0.0 < retention < 1.0:
        raise InvalidRegimeError(
            f"retention must be in (0, 1), got {retention!r}."
        )
    return retention
