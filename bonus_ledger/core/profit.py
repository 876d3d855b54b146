"""Profit evaluation for an already-sized hedge.

All functions are **pure** and take the lay stake computed by
:mod:`bonus_ledger.core.hedge` as an input rather than recomputing it, so a
stored hedge is always evaluated exactly as it was placed.

Realized profit
---------------
``outcome`` is the result of the *back* bet at the bookmaker:

==========  =====================================  ==========================
regime      back bet won                           back bet lost
==========  =====================================  ==========================
qualifying  ``S·(B−1) − L·(l−1)``                  ``L·(1−c) − S``
freebet     ``S·(B−1) − L·(l−1)``                  ``L·(1−c)``
refund      ``S·(B−1) − L·(l−1)``                  ``L·(1−c) − S``
==========  =====================================  ==========================

A lost freebet costs nothing because its stake was bonus money.  A lost
refund-regime bet additionally earns a freebet from the bookmaker; that
freebet is a separate future bet and is *not* part of this figure.

Expected profit
---------------
:func:`expected_profit` is the arithmetic mean of the two branches.  A well
matched hedge makes both branches nearly equal, so the mean is a usable
pre-resolution estimate.  It is an estimate only: the branches are not
required to agree.

Resolution events
-----------------
:func:`resolution_event` describes what a resolution does to the exchange
balance so a single ledger writer can apply it (see
:mod:`bonus_ledger.services.ledger`).

Run tests with::

    pytest tests/test_profit.py -v
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bonus_ledger.core.errors import InvalidStakeError
from bonus_ledger.core.hedge import select_lay_stake
from bonus_ledger.core.types import BetType, BonusRegime, Outcome, coerce_outcome
from bonus_ledger.core.validation import check_commission, check_odds, check_stake


def _check_inputs(
    back_stake: float,
    back_odds: float,
    lay_stake: float,
    lay_odds: float,
    commission: float,
) -> None:
    check_stake(back_stake, "back_stake")
    check_stake(lay_stake, "lay_stake")
    check_odds(back_odds, "back_odds")
    check_odds(lay_odds, "lay_odds")
    check_commission(commission)


# ---------------------------------------------------------------------------
# Realized profit
# ---------------------------------------------------------------------------


def qualifying_profit(
    back_stake: float,
    back_odds: float,
    lay_stake: float,
    lay_odds: float,
    outcome: "Outcome | str",
    commission: float,
) -> float:
    """Cash profit of a stake-returned qualifying hedge.

    Examples::

        qualifying_profit(100, 2.0, 100.0, 2.05, "won", 0.05)   →  -5.0
        qualifying_profit(100, 2.0, 100.0, 2.05, "lost", 0.05)  →  -5.0

    Raises:
        InvalidOutcomeError: ``outcome`` is not ``won`` / ``lost``.
        InvalidStakeError, InvalidOddsError: as in :mod:`~bonus_ledger.core.hedge`.
    """
    outcome = coerce_outcome(outcome)
    _check_inputs(back_stake, back_odds, lay_stake, lay_odds, commission)

    if outcome is Outcome.WON:
        # Bookmaker pays the winnings, exchange collects the liability.
        return back_stake * (back_odds - 1.0) - lay_stake * (lay_odds - 1.0)
    # Back stake is gone, lay stake is won net of commission.
    return lay_stake * (1.0 - commission) - back_stake


def free_bet_profit(
    freebet_stake: float,
    back_odds: float,
    lay_stake: float,
    lay_odds: float,
    outcome: "Outcome | str",
    commission: float,
) -> float:
    """Cash profit of a stake-not-returned freebet hedge.

    Non-negative on a lost back bet for any valid input.

    Examples::

        free_bet_profit(50, 5.0, 200 / 5.15, 5.2, "lost", 0.05)  →  36.89
    """
    outcome = coerce_outcome(outcome)
    _check_inputs(freebet_stake, back_odds, lay_stake, lay_odds, commission)

    if outcome is Outcome.WON:
        return freebet_stake * (back_odds - 1.0) - lay_stake * (lay_odds - 1.0)
    return lay_stake * (1.0 - commission)


def refund_profit(
    back_stake: float,
    back_odds: float,
    lay_stake: float,
    lay_odds: float,
    outcome: "Outcome | str",
    commission: float,
) -> float:
    """Immediate cash profit of a refund-regime qualifying hedge.

    Same shape as :func:`qualifying_profit`, evaluated on the reduced lay
    stake from :func:`~bonus_ledger.core.hedge.lay_stake_refund`.  The refund
    freebet granted on a loss is excluded; the caller books it as a new bet.
    """
    return qualifying_profit(back_stake, back_odds, lay_stake, lay_odds, outcome, commission)


def realized_profit(
    stake: float,
    back_odds: float,
    lay_stake: float,
    lay_odds: float,
    outcome: "Outcome | str",
    bet_type: "BetType | str",
    commission: float,
    *,
    regime: "BonusRegime | str" = BonusRegime.ALWAYS,
) -> float:
    """Dispatch to the profit function matching the bet's regime."""
    bet_type = BetType(bet_type)
    regime = BonusRegime(regime)

    if bet_type is BetType.FREEBET:
        return free_bet_profit(stake, back_odds, lay_stake, lay_odds, outcome, commission)
    if regime is BonusRegime.ONLY_IF_LOST:
        return refund_profit(stake, back_odds, lay_stake, lay_odds, outcome, commission)
    return qualifying_profit(stake, back_odds, lay_stake, lay_odds, outcome, commission)


# ---------------------------------------------------------------------------
# Expected profit
# ---------------------------------------------------------------------------


def expected_profit(
    stake: float,
    back_odds: float,
    lay_odds: float,
    bet_type: "BetType | str",
    commission: float,
    *,
    regime: "BonusRegime | str" = BonusRegime.ALWAYS,
    retention: Optional[float] = None,
) -> float:
    """Pre-resolution profit estimate: mean of the won and lost branches.

    The lay stake is chosen with
    :func:`~bonus_ledger.core.hedge.select_lay_stake`, so freebets use the
    SNR formula and ``only_if_lost`` qualifying bets the refund formula.

    Examples::

        expected_profit(100, 2.0, 2.05, "qualifying", 0.05)  →  -5.0
    """
    lay = select_lay_stake(
        stake, back_odds, lay_odds, bet_type, commission,
        regime=regime, retention=retention,
    )
    if_won = realized_profit(
        stake, back_odds, lay, lay_odds, Outcome.WON, bet_type, commission, regime=regime,
    )
    if_lost = realized_profit(
        stake, back_odds, lay, lay_odds, Outcome.LOST, bet_type, commission, regime=regime,
    )
    return (if_won + if_lost) / 2.0


# ---------------------------------------------------------------------------
# Resolution events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ResolutionEvent:
    """Effect of resolving one bet on the exchange balance.

    Attributes:
        type: ``"won"`` or ``"lost"``, the back bet's outcome.
        exchange_delta: Signed change to the exchange balance.  Negative when
            the lay bet lost (liability paid out), positive when it won.
    """

    type: str
    exchange_delta: float


def exchange_delta(
    outcome: "Outcome | str",
    lay_stake: float,
    liability_amount: float,
    commission: float,
) -> float:
    """Signed exchange-balance change for a resolved hedge.

    * back bet won → the lay bet lost: ``−liability``.
    * back bet lost → the lay bet won: ``+L · (1 − c)``.
    """
    outcome = coerce_outcome(outcome)
    check_commission(commission)
    if outcome is Outcome.WON:
        return -liability_amount
    if lay_stake < 0.0:
        raise InvalidStakeError(f"lay_stake must be ≥ 0, got {lay_stake!r}.")
    return lay_stake * (1.0 - commission)


def resolution_event(
    outcome: "Outcome | str",
    lay_stake: float,
    liability_amount: float,
    commission: float,
) -> ResolutionEvent:
    """Build the :class:`ResolutionEvent` for a hedged bet."""
    outcome = coerce_outcome(outcome)
    return ResolutionEvent(
        type=outcome.value,
        exchange_delta=exchange_delta(outcome, lay_stake, liability_amount, commission),
    )


def manual_resolution_event(supplied_profit: float) -> ResolutionEvent:
    """Manual bets never touch the exchange; the delta is always zero."""
    outcome = Outcome.WON if supplied_profit > 0 else Outcome.LOST
    return ResolutionEvent(type=outcome.value, exchange_delta=0.0)
