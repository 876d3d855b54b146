"""Hedge sizing: the single source of truth for lay stakes and liability.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement the lay-stake formulas in
services or scripts.

The three lay-stake formulas cover the three bonus regimes:

1. :func:`lay_stake_qualifying`: stake-returned qualifying bet.  The back
   side returns ``stake × back_odds`` on a win, so the whole payout is hedged.
2. :func:`lay_stake_free_bet`: stake-not-returned freebet.  Only the net
   winnings ``stake × (back_odds − 1)`` are at stake.
3. :func:`lay_stake_refund`: qualifying bet under an ``only_if_lost``
   offer.  Losing the back bet triggers a refund freebet, so part of the
   stake (``retention``) is deliberately left unhedged.

:func:`select_lay_stake` picks the formula; :func:`liability` converts a lay
stake into the capital at risk on the exchange.

Design decisions
----------------
* **Commission is always an argument.**  There is no module-level default.
  The deployment's single authoritative rate lives in
  :mod:`bonus_ledger.config` and is threaded through every call site, so the
  stake-sizing and settlement paths can never disagree about it.
* **No rounding.**  Results are full-precision floats; rounding to cents is a
  presentation concern.  Identical inputs give bit-identical outputs, which
  is what lets the recalculation pass compare a stored liability with a
  freshly computed one.
* **Reject, don't clamp.**  A lay price at or below the commission makes the
  denominator zero or negative.  Returning ``inf`` or a negative stake would
  be silently persisted, so the engine raises :class:`InvalidOddsError`.

Run tests with::

    pytest tests/test_hedge.py -v
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bonus_ledger.core.types import BetType, BonusRegime
from bonus_ledger.core.validation import (
    check_lay_denominator,
    check_odds,
    check_retention,
    check_stake,
)


# ---------------------------------------------------------------------------
# Lay stakes
# ---------------------------------------------------------------------------


def lay_stake_qualifying(
    back_stake: float,
    back_odds: float,
    lay_odds: float,
    commission: float,
) -> float:
    """Lay stake that neutralises a stake-returned qualifying bet.

    Equating the two outcomes of a back/lay pair::

        back wins:  S·(B − 1) − L·(l − 1)
        back loses: L·(1 − c) − S

    and solving for ``L`` gives::

        L  =  S · B / (l − c)                                   (1)

    Args:
        back_stake: ``S``, real money staked at the bookmaker.
        back_odds: ``B``, decimal odds backed.
        lay_odds: ``l``, decimal odds laid on the exchange.
        commission: ``c``, exchange commission on net lay winnings.

    Returns:
        Lay stake ``L`` (not rounded).

    Raises:
        InvalidStakeError: ``back_stake ≤ 0``.
        InvalidOddsError: any odds ≤ 1 or ``lay_odds ≤ commission``.

    Examples::

        lay_stake_qualifying(100, 2.0, 2.05, 0.05)  →  100.0
    """
    check_stake(back_stake, "back_stake")
    check_odds(back_odds, "back_odds")
    denominator = check_lay_denominator(lay_odds, commission)
    return (back_stake * back_odds) / denominator


def lay_stake_free_bet(
    freebet_stake: float,
    back_odds: float,
    lay_odds: float,
    commission: float,
) -> float:
    """Lay stake for a stake-not-returned (SNR) freebet.

    A freebet's stake is bonus money that is never paid back, so a winning
    back bet returns only ``S·(B − 1)``.  Replacing ``B`` by ``B − 1`` in
    equation (1) of :func:`lay_stake_qualifying`::

        L  =  S · (B − 1) / (l − c)

    Examples::

        lay_stake_free_bet(50, 5.0, 5.2, 0.05)  →  38.835  (200 / 5.15)
    """
    check_stake(freebet_stake, "freebet_stake")
    check_odds(back_odds, "back_odds")
    denominator = check_lay_denominator(lay_odds, commission)
    return (freebet_stake * (back_odds - 1.0)) / denominator


def lay_stake_refund(
    back_stake: float,
    back_odds: float,
    lay_odds: float,
    retention: Optional[float],
    commission: float,
) -> float:
    """Reduced lay stake for a qualifying bet under an ``only_if_lost`` offer.

    When the back bet loses the bookmaker refunds it as a freebet worth
    roughly ``retention × S`` once extracted, so that fraction of the stake
    does not need to be won back on the exchange::

        L  =  S · (B − r) / (l − c)

    The refund freebet itself is booked later as its own bet; nothing here
    accounts for its value beyond the discount.

    Args:
        retention: ``r`` in ``(0, 1)``, typically 0.75.

    Raises:
        InvalidRegimeError: ``retention`` is ``None`` or outside ``(0, 1)``.
    """
    r = check_retention(retention)
    check_stake(back_stake, "back_stake")
    check_odds(back_odds, "back_odds")
    denominator = check_lay_denominator(lay_odds, commission)
    return (back_stake * (back_odds - r)) / denominator


def liability(lay_stake: float, lay_odds: float) -> float:
    """Capital lost on the exchange if the lay bet loses (the back bet wins).

    ``liability = L · (l − 1)``

    Examples::

        liability(100.0, 2.05)  →  105.0
    """
    check_stake(lay_stake, "lay_stake")
    check_odds(lay_odds, "lay_odds")
    return lay_stake * (lay_odds - 1.0)


# ---------------------------------------------------------------------------
# Regime selection
# ---------------------------------------------------------------------------


def select_lay_stake(
    stake: float,
    back_odds: float,
    lay_odds: float,
    bet_type: "BetType | str",
    commission: float,
    *,
    regime: "BonusRegime | str" = BonusRegime.ALWAYS,
    retention: Optional[float] = None,
) -> float:
    """Pick the lay-stake formula for a bet and apply it.

    * ``freebet`` → :func:`lay_stake_free_bet`, whatever the offer's regime
      (a granted freebet is unconditionally usable).
    * ``qualifying`` under ``only_if_lost`` → :func:`lay_stake_refund`.
    * ``qualifying`` otherwise → :func:`lay_stake_qualifying`.

    ``retention`` is only read on the refund path.

    Raises:
        ValueError: unknown ``bet_type`` or ``regime`` string.
    """
    bet_type = BetType(bet_type)
    regime = BonusRegime(regime)

    if bet_type is BetType.FREEBET:
        return lay_stake_free_bet(stake, back_odds, lay_odds, commission)
    if regime is BonusRegime.ONLY_IF_LOST:
        return lay_stake_refund(stake, back_odds, lay_odds, retention, commission)
    return lay_stake_qualifying(stake, back_odds, lay_odds, commission)


@dataclass(frozen=True, slots=True)
class Hedge:
    """Lay stake and liability computed together at bet creation."""

    lay_stake: float
    liability: float


def hedge(
    stake: float,
    back_odds: float,
    lay_odds: float,
    bet_type: "BetType | str",
    commission: float,
    *,
    regime: "BonusRegime | str" = BonusRegime.ALWAYS,
    retention: Optional[float] = None,
) -> Hedge:
    """:func:`select_lay_stake` followed by :func:`liability`."""
    lay = select_lay_stake(
        stake, back_odds, lay_odds, bet_type, commission,
        regime=regime, retention=retention,
    )
    return Hedge(lay_stake=lay, liability=liability(lay, lay_odds))
