"""Debt/exposure aggregation over the bets of one operation.

Answers "how much money is sitting in the bookmaker account for this
operation right now" (what the account holder owes back to the operator),
together with the exchange-side picture: liability already lost, lay
winnings already collected, and liability still at risk on live bets.

:func:`calculate_owes` is a read-side projection.  It is pure, idempotent,
and recomputable at any time from stored bets.  Unlike the hedge and profit
modules it never raises on awkward data: a partially recorded bet simply
contributes nothing to the fields that do not apply to it.

Per-bet rules
-------------
* **Unresolved**: counted in ``pending_bets``; its liability is added to
  ``outstanding_liability``.  No breakdown row.
* **Hedged, back bet won**: the payout stays at the bookmaker:
  ``stake × back_odds`` for a qualifying bet, ``stake × (back_odds − 1)``
  for a freebet (stake not returned).  The liability was paid out on the
  exchange and is added to ``liability_lost``.
* **Hedged, back bet lost**: nothing stays at the bookmaker; the lay stake
  is won on the exchange net of commission and added to
  ``exchange_winnings``.
* **Manual**: the supplied profit *is* the money in the bookmaker when
  positive; otherwise the bet contributes a zero row.

Run tests with::

    pytest tests/test_owes.py -v
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from bonus_ledger.core.types import BetType, HedgedBet, ManualBet, Outcome
from bonus_ledger.core.validation import check_commission


@dataclass(frozen=True, slots=True)
class BreakdownRow:
    """Contribution of one resolved bet, for display."""

    bet_type: str
    result: str
    money_in_bookmaker: float = 0.0
    liability_lost: float = 0.0
    exchange_winnings: float = 0.0
    bet_number: Optional[int] = None


@dataclass(frozen=True, slots=True)
class OwesBreakdown:
    """Aggregate position of one operation.

    Attributes:
        total_owes: Money physically in the bookmaker account, owed back to
            the operator.  Equal to ``money_in_bookmaker``.
        money_in_bookmaker: Sum of every row's ``money_in_bookmaker``.
        liability_lost: Exchange liability paid out on back-bet wins.
        exchange_winnings: Lay winnings (net of commission) on back-bet losses.
        exchange_balance: ``exchange_winnings − liability_lost``.
        pending_bets: Bets with no result yet.
        outstanding_liability: Liability of the pending bets, still at risk.
        breakdown: One row per resolved bet, in input order.
    """

    total_owes: float = 0.0
    money_in_bookmaker: float = 0.0
    liability_lost: float = 0.0
    exchange_winnings: float = 0.0
    exchange_balance: float = 0.0
    pending_bets: int = 0
    outstanding_liability: float = 0.0
    breakdown: List[BreakdownRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_owes": self.total_owes,
            "money_in_bookmaker": self.money_in_bookmaker,
            "liability_lost": self.liability_lost,
            "exchange_winnings": self.exchange_winnings,
            "exchange_balance": self.exchange_balance,
            "pending_bets": self.pending_bets,
            "outstanding_liability": self.outstanding_liability,
            "breakdown": [
                {
                    "bet_type": row.bet_type,
                    "bet_number": row.bet_number,
                    "result": row.result,
                    "money_in_bookmaker": row.money_in_bookmaker,
                    "liability_lost": row.liability_lost,
                    "exchange_winnings": row.exchange_winnings,
                }
                for row in self.breakdown
            ],
        }


def _lay_stake_of(bet: HedgedBet) -> float:
    """Stored lay stake, or the one implied by the stored liability."""
    if bet.lay_stake is not None:
        return bet.lay_stake
    if bet.lay_odds > 1.0:
        return (bet.liability or 0.0) / (bet.lay_odds - 1.0)
    return 0.0


def _hedged_row(bet: HedgedBet, commission: float) -> BreakdownRow:
    if bet.result == Outcome.WON.value:
        if bet.bet_type == BetType.FREEBET.value:
            in_bookmaker = bet.stake * (bet.back_odds - 1.0)
        else:
            in_bookmaker = bet.stake * bet.back_odds
        return BreakdownRow(
            bet_type=bet.bet_type,
            result=Outcome.WON.value,
            money_in_bookmaker=in_bookmaker,
            liability_lost=bet.liability or 0.0,
            bet_number=bet.bet_number,
        )
    return BreakdownRow(
        bet_type=bet.bet_type,
        result=Outcome.LOST.value,
        exchange_winnings=_lay_stake_of(bet) * (1.0 - commission),
        bet_number=bet.bet_number,
    )


def _manual_row(bet: ManualBet) -> BreakdownRow:
    in_bookmaker = max(0.0, bet.supplied_profit or 0.0)
    return BreakdownRow(
        bet_type=bet.bet_type,
        result=Outcome.WON.value if in_bookmaker > 0 else Outcome.LOST.value,
        money_in_bookmaker=in_bookmaker,
        bet_number=bet.bet_number,
    )


def _is_resolved(bet: "HedgedBet | ManualBet") -> bool:
    return bet.result in (Outcome.WON.value, Outcome.LOST.value)


def calculate_owes(
    bets: Iterable["HedgedBet | ManualBet"],
    commission: float,
) -> OwesBreakdown:
    """Aggregate the bookmaker and exchange position of an operation.

    Args:
        bets: Every bet of one operation, resolved or not, hedged or manual.
        commission: Exchange commission used to net lay winnings.  Must be
            the same value the bets were sized with.

    Returns:
        :class:`OwesBreakdown`.  An empty input yields all zeros and an
        empty breakdown.

    Raises:
        InvalidCommissionError: ``commission`` outside ``[0, 1)``.  This is
            the only input the aggregator validates.
    """
    check_commission(commission)

    money_in_bookmaker = 0.0
    liability_lost = 0.0
    exchange_winnings = 0.0
    outstanding_liability = 0.0
    pending = 0
    rows: List[BreakdownRow] = []

    for bet in bets:
        if not _is_resolved(bet):
            pending += 1
            if isinstance(bet, HedgedBet):
                outstanding_liability += bet.liability or 0.0
            continue

        if isinstance(bet, ManualBet):
            row = _manual_row(bet)
        else:
            row = _hedged_row(bet, commission)

        money_in_bookmaker += row.money_in_bookmaker
        liability_lost += row.liability_lost
        exchange_winnings += row.exchange_winnings
        rows.append(row)

    return OwesBreakdown(
        total_owes=money_in_bookmaker,
        money_in_bookmaker=money_in_bookmaker,
        liability_lost=liability_lost,
        exchange_winnings=exchange_winnings,
        exchange_balance=exchange_winnings - liability_lost,
        pending_bets=pending,
        outstanding_liability=outstanding_liability,
        breakdown=rows,
    )
