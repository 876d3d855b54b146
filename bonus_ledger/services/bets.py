"""
Bet lifecycle: creation, resolution and bulk recalculation.

These are the two points where the record-keeping layer calls the engine:

  1. bet creation/edit  - size the hedge and store lay stake, liability and
                          expected profit
  2. bet resolution     - store the result and realized profit, and hand
                          the exchange movement to the ledger

plus the maintenance pass that recomputes stored figures after a formula
fix (``recalculate_bets``).

Every function takes a SQLAlchemy Session and commits its own work.  The
engine does not guard against resolving a bet twice; this module does.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from bonus_ledger.core.errors import MatchedBettingError
from bonus_ledger.core.hedge import hedge
from bonus_ledger.core.owes import OwesBreakdown, calculate_owes
from bonus_ledger.core.profit import (
    expected_profit,
    manual_resolution_event,
    realized_profit,
    resolution_event,
)
from bonus_ledger.core.types import BetType, BonusRegime, Outcome, coerce_outcome
from bonus_ledger.models import (
    BET_KIND_HEDGED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FREEBET,
    STATUS_QUALIFYING,
    Bet,
    Deposit,
    Operation,
)
from bonus_ledger.schemas import (
    BetCreate,
    BetResolve,
    ManualBetResolve,
    OperationCreate,
    OperationUpdate,
)
from bonus_ledger.services.ledger import ExchangeLedger, get_exchange_ledger

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class OperationNotFoundError(LookupError):
    pass


class BetNotFoundError(LookupError):
    pass


class BetAlreadyResolvedError(RuntimeError):
    """Resolution is once-only; re-resolving would double-count the exchange delta."""


class BetKindError(ValueError):
    """A hedged-bet operation was asked of a manual bet, or vice versa."""


class UnsizedBetError(RuntimeError):
    """A hedged bet has neither a lay stake nor a liability to derive one from."""


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_operation(db: Session, operation_id: int) -> Operation:
    operation = db.get(Operation, operation_id)
    if operation is None:
        raise OperationNotFoundError(f"Operation {operation_id} not found")
    return operation


def get_bet(db: Session, bet_id: int) -> Bet:
    bet = db.get(Bet, bet_id)
    if bet is None:
        raise BetNotFoundError(f"Bet {bet_id} not found")
    return bet


def regime_for(operation: Operation, default_retention: float) -> Tuple[BonusRegime, Optional[float]]:
    """Offer regime and retention fraction that apply to an operation's bets."""
    bookmaker = operation.bookmaker
    if bookmaker is None:
        return BonusRegime.ALWAYS, None
    regime = bookmaker.regime
    if regime is BonusRegime.ONLY_IF_LOST:
        return regime, bookmaker.retention or default_retention
    return regime, None


# ---------------------------------------------------------------------------
# Sizing (pure w.r.t. the DB: mutates the Bet object only)
# ---------------------------------------------------------------------------

def size_bet(
    bet: Bet,
    *,
    commission: float,
    regime: BonusRegime = BonusRegime.ALWAYS,
    retention: Optional[float] = None,
) -> None:
    """Compute and store lay stake, liability and expected profit."""
    if bet.is_manual:
        bet.lay_stake = 0.0
        bet.liability = 0.0
        bet.expected_profit = 0.0
        return

    h = hedge(
        bet.stake, bet.odds_back, bet.odds_lay, bet.bet_type, commission,
        regime=regime, retention=retention,
    )
    bet.lay_stake = h.lay_stake
    bet.liability = h.liability
    bet.expected_profit = expected_profit(
        bet.stake, bet.odds_back, bet.odds_lay, bet.bet_type, commission,
        regime=regime, retention=retention,
    )


def _next_bet_number(operation: Operation, bet_type: str) -> int:
    return max((b.bet_number or 0 for b in operation.bets if b.bet_type == bet_type), default=0) + 1


def _new_bet(
    operation: Operation,
    payload: BetCreate,
    *,
    commission: float,
    default_retention: float,
) -> Bet:
    regime, retention = regime_for(operation, default_retention)
    bet = Bet(
        kind=payload.kind,
        bet_type=payload.bet_type,
        bet_number=payload.bet_number or _next_bet_number(operation, payload.bet_type),
        stake=payload.stake,
        odds_back=payload.odds_back or 0.0,
        odds_lay=payload.odds_lay or 0.0,
        event_name=payload.event_name,
        event_date=payload.event_date,
    )
    size_bet(bet, commission=commission, regime=regime, retention=retention)
    operation.bets.append(bet)
    return bet


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_operation(
    db: Session,
    payload: OperationCreate,
    *,
    commission: float,
    default_retention: float,
) -> Operation:
    """Open an operation with its deposits and first bets."""
    operation = Operation(
        person_id=payload.person_id,
        bookmaker_id=payload.bookmaker_id,
        bizum_sent=payload.bizum_sent,
        bizum_received=payload.bizum_received,
        commission=payload.commission,
        notes=payload.notes,
    )
    db.add(operation)
    try:
        db.flush()
        for i, dep in enumerate(payload.deposits, start=1):
            operation.deposits.append(
                Deposit(deposit_num=dep.deposit_num or i, amount=dep.amount)
            )
        for bet_payload in payload.bets:
            _new_bet(
                operation, bet_payload,
                commission=commission, default_retention=default_retention,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(operation)
    logger.info(
        "Operation %d opened: person %d, bookmaker %d, %d bet(s), %d deposit(s)",
        operation.id, operation.person_id, operation.bookmaker_id,
        len(operation.bets), len(operation.deposits),
    )
    return operation


def create_bet(
    db: Session,
    operation_id: int,
    payload: BetCreate,
    *,
    commission: float,
    default_retention: float,
) -> Bet:
    """Add a bet to an existing operation.

    Adding a freebet to a completed operation reopens it in ``freebet``.
    """
    operation = get_operation(db, operation_id)
    try:
        bet = _new_bet(
            operation, payload,
            commission=commission, default_retention=default_retention,
        )
        if operation.status == STATUS_COMPLETED and bet.bet_type == BetType.FREEBET.value:
            operation.status = STATUS_FREEBET
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bet)
    logger.info(
        "Bet %d added to operation %d: %s #%d stake %.2f @ %.2f/%.2f | liability %.2f",
        bet.id, operation.id, bet.bet_type, bet.bet_number,
        bet.stake, bet.odds_back, bet.odds_lay, bet.liability,
    )
    return bet


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def advance_operation_status(operation: Operation) -> Optional[str]:
    """
    Derive the operation status from its bets.

    completed   every bet resolved
    freebet     every qualifying bet resolved, some freebet pending
    qualifying  some qualifying bet resolved

    Cancelled operations are left alone.  Returns the new status, or None
    when nothing changed.
    """
    if operation.status == STATUS_CANCELLED:
        return None

    qualifying = [b for b in operation.bets if b.bet_type == BetType.QUALIFYING.value]
    freebets = [b for b in operation.bets if b.bet_type == BetType.FREEBET.value]

    all_qualifying_done = all(b.result is not None for b in qualifying)
    all_freebets_done = all(b.result is not None for b in freebets)

    new_status = None
    if all_qualifying_done and all_freebets_done:
        new_status = STATUS_COMPLETED
    elif all_qualifying_done and freebets:
        new_status = STATUS_FREEBET
    elif any(b.result is not None for b in qualifying):
        new_status = STATUS_QUALIFYING

    if new_status is None or new_status == operation.status:
        return None
    operation.status = new_status
    return new_status


def _check_unresolved(bet: Bet) -> None:
    if bet.result is not None:
        raise BetAlreadyResolvedError(
            f"Bet {bet.id} is already resolved as {bet.result!r}"
        )


def _stored_lay_stake(bet: Bet) -> float:
    """Lay stake as placed; older rows only kept the liability."""
    if bet.lay_stake:
        return bet.lay_stake
    if bet.liability and bet.odds_lay and bet.odds_lay > 1.0:
        return bet.liability / (bet.odds_lay - 1.0)
    raise UnsizedBetError(
        f"Bet {bet.id} has no lay stake or liability; run recalculate_bets first"
    )


def resolve_bet(
    db: Session,
    bet_id: int,
    outcome: "BetResolve | Outcome | str",
    *,
    commission: float,
    default_retention: float,
    ledger: Optional[ExchangeLedger] = None,
) -> Bet:
    """Record the back bet's outcome for a hedged bet.

    Profit is evaluated on the stored hedge; lay stake, liability and
    expected profit are never rewritten here.  The bet update, the
    operation status change and the exchange ledger movement are committed
    together.
    """
    if isinstance(outcome, BetResolve):
        outcome = outcome.result
    outcome = coerce_outcome(outcome)
    ledger = ledger or get_exchange_ledger()
    bet = get_bet(db, bet_id)
    _check_unresolved(bet)
    if bet.is_manual:
        raise BetKindError(f"Bet {bet.id} is manual; resolve it with a profit figure")

    operation = bet.operation
    regime, _ = regime_for(operation, default_retention)
    lay_stake = _stored_lay_stake(bet)

    try:
        bet.actual_profit = realized_profit(
            bet.stake, bet.odds_back, lay_stake, bet.odds_lay,
            outcome, bet.bet_type, commission, regime=regime,
        )
        bet.result = outcome.value
        bet.resolved_at = datetime.utcnow()

        new_status = advance_operation_status(operation)
        ledger.apply(
            db,
            resolution_event(outcome, lay_stake, bet.liability, commission),
            bet_id=bet.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Bet %d resolved %s: profit %.2f%s",
        bet.id, bet.result, bet.actual_profit,
        f" | operation {operation.id} -> {new_status}" if new_status else "",
    )
    if (
        outcome is Outcome.LOST
        and regime is BonusRegime.ONLY_IF_LOST
        and bet.bet_type == BetType.QUALIFYING.value
    ):
        logger.info(
            "Operation %d: qualifying bet %d lost under a refund offer; a refund freebet is due",
            operation.id, bet.id,
        )
    return bet


def resolve_manual_bet(
    db: Session,
    bet_id: int,
    profit: "ManualBetResolve | float",
    *,
    ledger: Optional[ExchangeLedger] = None,
) -> Bet:
    """Store the profit of an unhedged bet; its result follows the sign."""
    if isinstance(profit, ManualBetResolve):
        profit = profit.profit
    ledger = ledger or get_exchange_ledger()
    bet = get_bet(db, bet_id)
    _check_unresolved(bet)
    if not bet.is_manual:
        raise BetKindError(f"Bet {bet.id} is hedged; resolve it with an outcome")

    event = manual_resolution_event(profit)
    try:
        bet.actual_profit = profit
        bet.result = event.type
        bet.resolved_at = datetime.utcnow()
        advance_operation_status(bet.operation)
        ledger.apply(db, event, bet_id=bet.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Manual bet %d resolved: profit %.2f", bet.id, profit)
    return bet


# ---------------------------------------------------------------------------
# Operation edits and read-side
# ---------------------------------------------------------------------------

def update_operation(db: Session, operation_id: int, payload: OperationUpdate) -> Operation:
    operation = get_operation(db, operation_id)
    for field_name, value in payload.model_dump(exclude_none=True).items():
        setattr(operation, field_name, value)
    db.commit()
    db.refresh(operation)
    return operation


def operation_owes(operation: Operation, *, commission: float) -> OwesBreakdown:
    """Money in the bookmaker and exchange position for one operation."""
    return calculate_owes([b.to_engine() for b in operation.bets], commission)


def operation_totals(operation: Operation) -> Dict:
    """Headline figures shown next to an operation."""
    bets = operation.bets
    return {
        "total_profit": sum(b.actual_profit or 0.0 for b in bets),
        "total_expected_profit": sum(b.expected_profit or 0.0 for b in bets),
        "total_liability": sum(b.liability or 0.0 for b in bets),
        "pending_bets": sum(1 for b in bets if b.result is None),
        "total_deposited": sum(d.amount for d in operation.deposits),
    }


# ---------------------------------------------------------------------------
# Maintenance: recalculate
# ---------------------------------------------------------------------------

def recalculate_bets(
    db: Session,
    *,
    commission: float,
    default_retention: float,
    tolerance: float = 0.01,
    dry_run: bool = False,
) -> Dict:
    """
    Recompute lay stake, liability, expected and actual profit for every
    hedged bet, and persist rows whose liability moved by more than
    ``tolerance``.

    Used to repair bets stored under an older formula.  Exchange ledger
    entries already written are not rewritten.
    """
    logger.info("Starting recalculate_bets (commission=%.4f, dry_run=%s)", commission, dry_run)

    bets = (
        db.query(Bet)
        .filter(Bet.kind == BET_KIND_HEDGED, Bet.odds_back > 0, Bet.odds_lay > 0)
        .order_by(Bet.id.asc())
        .all()
    )

    changes: List[Dict] = []
    errors: List[str] = []

    try:
        for bet in bets:
            old_liability = bet.liability or 0.0
            regime, retention = regime_for(bet.operation, default_retention)
            try:
                h = hedge(
                    bet.stake, bet.odds_back, bet.odds_lay, bet.bet_type, commission,
                    regime=regime, retention=retention,
                )
                new_expected = expected_profit(
                    bet.stake, bet.odds_back, bet.odds_lay, bet.bet_type, commission,
                    regime=regime, retention=retention,
                )
                new_actual = bet.actual_profit
                if bet.result is not None:
                    new_actual = realized_profit(
                        bet.stake, bet.odds_back, h.lay_stake, bet.odds_lay,
                        bet.result, bet.bet_type, commission, regime=regime,
                    )
            except MatchedBettingError as exc:
                errors.append(f"Bet {bet.id}: {exc}")
                logger.error("Cannot recalculate bet %d: %s", bet.id, exc)
                continue

            diff = abs(old_liability - h.liability)
            if diff <= tolerance:
                continue

            changes.append({
                "id": bet.id,
                "old_liability": old_liability,
                "new_liability": h.liability,
                "diff": diff,
            })
            bet.lay_stake = h.lay_stake
            bet.liability = h.liability
            bet.expected_profit = new_expected
            bet.actual_profit = new_actual

        if dry_run:
            db.rollback()
        else:
            db.commit()
    except Exception as exc:
        logger.error("Fatal error in recalculate_bets: %s", exc, exc_info=True)
        db.rollback()
        errors.append(f"Fatal: {exc}")

    summary = {
        "total": len(bets),
        "updated": 0 if dry_run else len(changes),
        "changes": changes,
        "errors": errors,
        "dry_run": dry_run,
        "timestamp": datetime.utcnow().isoformat(),
    }
    logger.info(
        "recalculate_bets done: %d of %d bet(s) changed, %d error(s)",
        len(changes), len(bets), len(errors),
    )
    return summary
