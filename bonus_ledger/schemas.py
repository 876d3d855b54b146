"""
Pydantic input schemas for the Bonus Ledger record-keeping layer.

Services accept these instead of raw dicts so that only fields a user is
allowed to set ever reach the ORM.  Derived fields (lay stake, liability,
expected and actual profit) are never accepted from input; the engine
computes them.
"""

from __future__ import annotations

from typing import List, Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Bets
# ---------------------------------------------------------------------------

class BetCreate(BaseModel):
    """
    Payload for adding a bet to an operation.

    A hedged bet needs both prices.  A manual (unhedged) bet carries no
    prices at all; its profit is supplied when it is resolved.
    """

    bet_type: Literal["qualifying", "freebet"] = Field(..., description="Bet type")
    kind: Literal["hedged", "manual"] = Field("hedged", description="Hedged on the exchange or not")
    bet_number: Optional[int] = Field(None, ge=1, description="Defaults to next number for the type")

    stake: float = Field(..., gt=0, description="Back stake at the bookmaker")
    odds_back: Optional[float] = Field(None, description="Decimal odds backed")
    odds_lay: Optional[float] = Field(None, description="Decimal odds laid")

    event_name: Optional[str] = Field(None, max_length=200)
    event_date: Optional[datetime] = None

    @field_validator("odds_back", "odds_lay")
    @classmethod
    def validate_decimal_odds(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        if v <= 1.0:
            raise ValueError(
                f"odds={v} is not valid decimal odds. Must be > 1.0."
            )
        return v

    @model_validator(mode="after")
    def check_prices_match_kind(self) -> "BetCreate":
        has_prices = self.odds_back is not None and self.odds_lay is not None
        if self.kind == "hedged" and not has_prices:
            raise ValueError("A hedged bet needs both odds_back and odds_lay")
        if self.kind == "manual" and (self.odds_back is not None or self.odds_lay is not None):
            raise ValueError("A manual bet must not carry odds")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "bet_type": "qualifying",
                "stake": 100.0,
                "odds_back": 2.0,
                "odds_lay": 2.05,
                "event_name": "Real Madrid - Sevilla",
            }
        }
    }


class BetResolve(BaseModel):
    """Outcome of the back bet at the bookmaker."""

    result: Literal["won", "lost"] = Field(..., description="Back bet result")


class ManualBetResolve(BaseModel):
    """Profit figure supplied directly for an unhedged bet."""

    profit: float = Field(..., description="Money left in the bookmaker by this bet")


# ---------------------------------------------------------------------------
# Persons
# ---------------------------------------------------------------------------

class PersonCreate(BaseModel):
    """Account holder who will place bets for the operator."""

    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=1000)
    commission: float = Field(0.0, ge=0, description="Agreed commission for the person")


class PersonUpdate(BaseModel):
    """Editable fields of a person.  ``None`` leaves a field untouched."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=1000)
    commission: Optional[float] = Field(None, ge=0)
    commission_paid: Optional[float] = Field(None, ge=0)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

class DepositCreate(BaseModel):
    amount: float = Field(..., gt=0)
    deposit_num: Optional[int] = Field(None, ge=1)


class OperationCreate(BaseModel):
    """Open a bonus claim for a person at a bookmaker, with its first bets."""

    person_id: int
    bookmaker_id: int
    bizum_sent: float = Field(0.0, ge=0)
    bizum_received: float = Field(0.0, ge=0)
    commission: float = Field(0.0, ge=0, description="Commission owed to the person")
    notes: Optional[str] = Field(None, max_length=1000)

    deposits: List[DepositCreate] = Field(default_factory=list)
    bets: List[BetCreate] = Field(default_factory=list)


class OperationUpdate(BaseModel):
    """Editable fields of an operation.  ``None`` leaves a field untouched."""

    status: Optional[Literal["pending", "qualifying", "freebet", "completed", "cancelled"]] = None
    bizum_sent: Optional[float] = Field(None, ge=0)
    money_returned: Optional[float] = Field(None, ge=0)
    commission_paid: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Exchange balance
# ---------------------------------------------------------------------------

class ExchangeBalanceUpdate(BaseModel):
    """Manual correction of the exchange balance (e.g. after a withdrawal)."""

    exchange_balance: float
    reason: Optional[str] = Field(None, max_length=200)
