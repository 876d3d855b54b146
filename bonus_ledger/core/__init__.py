"""Core mathematics for the Bonus Ledger matched-betting engine.

This package contains pure, persistence-agnostic building blocks:

- ``hedge``     : lay-stake formulas per bonus regime, liability
- ``profit``    : realized / expected profit, resolution events
- ``owes``      : money-in-bookmaker and exchange exposure per operation
- ``types``     : regime, bet-type and outcome tags; bet variants
- ``errors``    : the engine's exception taxonomy
- ``validation``: shared input guards

Nothing in this package imports from ``bonus_ledger.services`` or
``bonus_ledger.models``.  All modules are side-effect-free and unit-testable
in isolation.
"""

from bonus_ledger.core.errors import (
    InvalidCommissionError,
    InvalidOddsError,
    InvalidOutcomeError,
    InvalidRegimeError,
    InvalidStakeError,
    MatchedBettingError,
)
from bonus_ledger.core.hedge import (
    Hedge,
    hedge,
    lay_stake_free_bet,
    lay_stake_qualifying,
    lay_stake_refund,
    liability,
    select_lay_stake,
)
from bonus_ledger.core.owes import BreakdownRow, OwesBreakdown, calculate_owes
from bonus_ledger.core.profit import (
    ResolutionEvent,
    expected_profit,
    free_bet_profit,
    qualifying_profit,
    realized_profit,
    refund_profit,
    resolution_event,
)
from bonus_ledger.core.types import BetType, BonusRegime, HedgedBet, ManualBet, Outcome

__all__ = [
    "BetType",
    "BonusRegime",
    "BreakdownRow",
    "Hedge",
    "HedgedBet",
    "InvalidCommissionError",
    "InvalidOddsError",
    "InvalidOutcomeError",
    "InvalidRegimeError",
    "InvalidStakeError",
    "ManualBet",
    "MatchedBettingError",
    "Outcome",
    "OwesBreakdown",
    "ResolutionEvent",
    "calculate_owes",
    "expected_profit",
    "free_bet_profit",
    "hedge",
    "lay_stake_free_bet",
    "lay_stake_qualifying",
    "lay_stake_refund",
    "liability",
    "qualifying_profit",
    "realized_profit",
    "refund_profit",
    "resolution_event",
    "select_lay_stake",
]
