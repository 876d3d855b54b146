"""Domain tags and bet variants shared by every engine module.

A bet reaches the engine as one of two explicit variants:

* :class:`HedgedBet`: a back bet at the bookmaker covered by a lay bet on
  the exchange.  All hedge and profit formulas apply.
* :class:`ManualBet`: an unhedged bet whose profit is supplied directly by
  the record-keeping layer.  No formula applies.

The legacy convention of storing ``odds == 0`` to mean "manual" lives only at
the persistence boundary (:meth:`bonus_ledger.models.Bet.to_engine`); inside
the engine the variant type is the only signal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from bonus_ledger.core.errors import InvalidOutcomeError


class BonusRegime(str, Enum):
    """How a bookmaker offer grants its bonus."""

    #: Bonus granted whatever the qualifying bet does.
    ALWAYS = "always"
    #: Bonus (refund freebet) granted only when the qualifying bet loses.
    ONLY_IF_LOST = "only_if_lost"


class BetType(str, Enum):
    QUALIFYING = "qualifying"
    FREEBET = "freebet"


class Outcome(str, Enum):
    """Result of the *back* bet at the bookmaker, not the operator's net P&L."""

    WON = "won"
    LOST = "lost"


def coerce_outcome(value: "Outcome | str") -> Outcome:
    """Return ``value`` as an :class:`Outcome` or raise :class:`InvalidOutcomeError`."""
    try:
        return Outcome(value)
    except ValueError:
        raise InvalidOutcomeError(
            f"Outcome must be 'won' or 'lost', got {value!r}."
        ) from None


@dataclass(frozen=True, slots=True)
class HedgedBet:
    """A back/lay pair as stored by the record-keeping layer.

    Attributes:
        bet_type: Qualifying bet (real money) or freebet (bonus money).
        stake: Back stake placed at the bookmaker.
        back_odds: Decimal odds backed at the bookmaker.
        lay_odds: Decimal odds laid on the exchange.
        liability: Exchange exposure stored at creation time.
        lay_stake: Stored lay stake.  When ``None`` it is derived from
            ``liability / (lay_odds − 1)``, matching older rows that only
            persisted the liability.
        result: ``None`` while unresolved.  Kept as a plain string so that
            partial or malformed records can still be aggregated.
        bet_number: Position of the bet within its type, for display.
    """

    bet_type: str
    stake: float
    back_odds: float
    lay_odds: float
    liability: float
    lay_stake: Optional[float] = None
    result: Optional[str] = None
    bet_number: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ManualBet:
    """An unhedged bet.  ``supplied_profit is None`` means unresolved."""

    bet_type: str
    stake: float = 0.0
    supplied_profit: Optional[float] = None
    bet_number: Optional[int] = None

    @property
    def result(self) -> Optional[str]:
        # Display-only inference from the sign of the supplied figure.
        if self.supplied_profit is None:
            return None
        return Outcome.WON.value if self.supplied_profit > 0 else Outcome.LOST.value


Bet = Union[HedgedBet, ManualBet]
