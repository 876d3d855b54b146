"""
Financial summaries over operations, persons and bookmakers.

All public functions receive a SQLAlchemy Session and return plain dicts
so they can be called from a web layer, a script or a test without
importing anything else.  Nothing here writes to the database.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session, selectinload

from bonus_ledger.core.owes import calculate_owes
from bonus_ledger.core.types import BetType, Outcome
from bonus_ledger.models import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    Bet,
    Bookmaker,
    Operation,
    Person,
)
from bonus_ledger.services.ledger import get_exchange_ledger

logger = logging.getLogger(__name__)

PERIODS = ("monthly", "yearly", "total")
RECENT_OPERATIONS = 5
DEBT_EPSILON = 0.01


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _round(value: float) -> float:
    return round(value, 2)


def _is_open(operation: Operation) -> bool:
    return operation.status not in (STATUS_COMPLETED, STATUS_CANCELLED)


def _operation_profit(operation: Operation) -> float:
    return sum(b.actual_profit or 0.0 for b in operation.bets)


def _all_operations(db: Session) -> List[Operation]:
    return (
        db.query(Operation)
        .options(
            selectinload(Operation.bets),
            selectinload(Operation.deposits),
            selectinload(Operation.person),
            selectinload(Operation.bookmaker),
        )
        .order_by(Operation.created_at.asc())
        .all()
    )


def _exchange_result(operations: Iterable[Operation], commission: float) -> Dict:
    wins = losses = outstanding = 0.0
    pending = 0
    for op in operations:
        owes = calculate_owes([b.to_engine() for b in op.bets], commission)
        wins += owes.exchange_winnings
        losses += owes.liability_lost
        outstanding += owes.outstanding_liability
        pending += owes.pending_bets
    return {
        "wins": wins,
        "losses": losses,
        "net_result": wins - losses,
        "pending_bets": pending,
        "total_liability": outstanding,
    }


# ---------------------------------------------------------------------------
# money_in_bookmaker
# ---------------------------------------------------------------------------

def money_in_bookmaker(operation: Operation) -> float:
    """
    Real money currently in the bookmaker account for one operation.

    Until some qualifying bet has a result, the deposits are still sitting
    in the account.  After that:

      qualifying won      stake x back odds
      qualifying pending  stake
      qualifying lost     nothing (the money is on the exchange)
      freebet won         stake x (back odds - 1); the bonus stake is not returned
      freebet otherwise   nothing (bonus money is not real money)

    Manual bets count their positive supplied profit once resolved.
    """
    qualifying = [b for b in operation.bets if b.bet_type == BetType.QUALIFYING.value]
    if not any(b.result is not None for b in qualifying):
        return sum(d.amount for d in operation.deposits)

    total = 0.0
    for bet in operation.bets:
        if bet.is_manual:
            if bet.result is not None:
                total += max(0.0, bet.actual_profit or 0.0)
            continue
        if bet.bet_type == BetType.QUALIFYING.value:
            if bet.result == Outcome.WON.value:
                total += bet.stake * bet.odds_back
            elif bet.result is None:
                total += bet.stake
        elif bet.result == Outcome.WON.value:
            total += bet.stake * (bet.odds_back - 1.0)
    return total


# ---------------------------------------------------------------------------
# dashboard_summary
# ---------------------------------------------------------------------------

def dashboard_summary(db: Session) -> Dict:
    """
    Headline figures for the home screen:
      - operation counts and total realized profit
      - cash sent to / returned by persons, commission paid
      - pending_to_collect: money in bookmakers minus money already returned
      - total_liability: liability of pending bets on open operations
      - persons_with_debt, recent_operations, bookmaker_summary
    """
    operations = _all_operations(db)

    total_money_in_bookmaker = sum(money_in_bookmaker(op) for op in operations)
    total_money_returned = sum(op.money_returned or 0.0 for op in operations)

    total_liability = sum(
        b.liability or 0.0
        for op in operations if _is_open(op)
        for b in op.bets if b.result is None
    )

    persons_with_debt = []
    for person in db.query(Person).order_by(Person.name.asc()).all():
        in_bookmaker = sum(money_in_bookmaker(op) for op in person.operations)
        returned = sum(op.money_returned or 0.0 for op in person.operations)
        balance = in_bookmaker - returned
        if abs(balance) > DEBT_EPSILON:
            persons_with_debt.append(
                {"id": person.id, "name": person.name, "balance": _round(balance)}
            )

    recent = sorted(operations, key=lambda op: op.created_at, reverse=True)[:RECENT_OPERATIONS]
    recent_operations = [
        {
            "id": op.id,
            "person_name": op.person.name,
            "bookmaker_name": op.bookmaker.name,
            "status": op.status,
            "profit": _round(_operation_profit(op)),
            "created_at": op.created_at.isoformat() if op.created_at else None,
        }
        for op in recent
    ]

    bookmaker_summary = [
        {
            "id": bm.id,
            "name": bm.name,
            "operations_count": len(bm.operations),
            "total_profit": _round(sum(_operation_profit(op) for op in bm.operations)),
        }
        for bm in db.query(Bookmaker).filter(Bookmaker.is_active.is_(True)).order_by(Bookmaker.name).all()
    ]

    return {
        "total_operations": len(operations),
        "completed_operations": sum(1 for op in operations if op.status == STATUS_COMPLETED),
        "pending_operations": sum(1 for op in operations if _is_open(op)),
        "total_profit": _round(sum(_operation_profit(op) for op in operations)),
        "total_bizum_sent": _round(sum(op.bizum_sent or 0.0 for op in operations)),
        "total_money_returned": _round(total_money_returned),
        "total_commission_paid": _round(sum(op.commission_paid or 0.0 for op in operations)),
        "pending_to_collect": _round(total_money_in_bookmaker - total_money_returned),
        "total_liability": _round(total_liability),
        "persons_with_debt": persons_with_debt,
        "recent_operations": recent_operations,
        "bookmaker_summary": bookmaker_summary,
    }


# ---------------------------------------------------------------------------
# accounting_summary
# ---------------------------------------------------------------------------

def accounting_summary(db: Session, year: int, *, commission: float) -> Dict:
    """
    Yearly books: exchange result, commissions owed to persons, cash flow
    with persons, the stored exchange balance and twelve monthly rows.

    Operations are attributed to the year and month they were opened in.
    Exchange wins and losses come from :func:`calculate_owes`, so they
    use the configured commission.
    """
    start = datetime(year, 1, 1)
    end = datetime(year + 1, 1, 1)
    operations = [
        op for op in _all_operations(db)
        if op.created_at is not None and start <= op.created_at < end
    ]

    commissions_by_person: Dict[str, Dict] = {}
    cash_by_person: Dict[str, Dict] = {}
    for op in operations:
        name = op.person.name
        c = commissions_by_person.setdefault(
            name, {"name": name, "due": 0.0, "paid": 0.0, "operations": 0}
        )
        c["due"] += op.commission or 0.0
        c["paid"] += op.commission_paid or 0.0
        c["operations"] += 1

        f = cash_by_person.setdefault(
            name, {"name": name, "bizum_sent": 0.0, "money_returned": 0.0, "balance": 0.0}
        )
        f["bizum_sent"] += op.bizum_sent or 0.0
        f["money_returned"] += op.money_returned or 0.0
    for f in cash_by_person.values():
        f["balance"] = f["money_returned"] - f["bizum_sent"]

    total_due = sum(c["due"] for c in commissions_by_person.values())
    total_paid = sum(c["paid"] for c in commissions_by_person.values())
    total_sent = sum(f["bizum_sent"] for f in cash_by_person.values())
    total_returned = sum(f["money_returned"] for f in cash_by_person.values())

    exchange = _exchange_result(operations, commission)
    exchange["current_balance"] = get_exchange_ledger().balance(db)

    monthly = []
    for month in range(1, 13):
        month_ops = [op for op in operations if op.created_at.month == month]
        monthly.append({
            "month": f"{year}-{month:02d}",
            "exchange_result": _exchange_result(month_ops, commission)["net_result"],
            "commissions_paid": sum(op.commission_paid or 0.0 for op in month_ops),
            "bizum_sent": sum(op.bizum_sent or 0.0 for op in month_ops),
            "money_returned": sum(op.money_returned or 0.0 for op in month_ops),
        })

    logger.debug("accounting_summary %d: %d operation(s)", year, len(operations))

    return {
        "year": year,
        "exchange": exchange,
        "commissions": {
            "total_due": total_due,
            "total_paid": total_paid,
            "pending": total_due - total_paid,
            "by_person": sorted(commissions_by_person.values(), key=lambda c: c["paid"], reverse=True),
        },
        "cash_flow": {
            "total_bizum_sent": total_sent,
            "total_money_returned": total_returned,
            "net_flow": total_returned - total_sent,
            "by_person": sorted(cash_by_person.values(), key=lambda f: f["balance"], reverse=True),
        },
        "summary": {
            "total_operations": len(operations),
            "completed_operations": sum(1 for op in operations if op.status == STATUS_COMPLETED),
            "pending_operations": sum(1 for op in operations if _is_open(op)),
        },
        "monthly": monthly,
    }


# ---------------------------------------------------------------------------
# profit_stats
# ---------------------------------------------------------------------------

def _period_key(when: datetime, period: str) -> str:
    if period == "yearly":
        return f"{when.year}"
    if period == "total":
        return "total"
    return f"{when.year}-{when.month:02d}"


def profit_stats(db: Session, period: str = "monthly") -> Dict:
    """
    Realized profit of completed operations grouped by period.

    Args:
        period: ``"monthly"``, ``"yearly"`` or ``"total"``.

    Returns:
        ``profit_by_period`` and ``cumulative_profit`` in chronological
        order, ``persons_completed`` (persons counted in the period of their
        first completed operation) and ``totals`` with gross profit, net
        profit (gross minus commission paid to persons), operation and
        person counts.

    Raises:
        ValueError: unknown ``period``.
    """
    if period not in PERIODS:
        raise ValueError(f"period must be one of {PERIODS}, got {period!r}")

    completed = [op for op in _all_operations(db) if op.status == STATUS_COMPLETED]

    by_period: Dict[str, float] = {}
    for op in completed:
        key = _period_key(op.created_at, period)
        by_period[key] = by_period.get(key, 0.0) + _operation_profit(op)

    profit_by_period = []
    cumulative_profit = []
    running = 0.0
    for key in sorted(by_period):
        profit = _round(by_period[key])
        running += profit
        profit_by_period.append({"period": key, "profit": profit})
        cumulative_profit.append({"period": key, "profit": profit, "cumulative": _round(running)})

    persons = db.query(Person).all()
    persons_completed: Dict[str, int] = {}
    for person in persons:
        done = [op for op in person.operations if op.status == STATUS_COMPLETED]
        if not done:
            continue
        first = min(done, key=lambda op: op.created_at)
        key = _period_key(first.created_at, period)
        persons_completed[key] = persons_completed.get(key, 0) + 1

    gross = sum(_operation_profit(op) for op in completed)
    commissions_paid = sum(p.commission_paid or 0.0 for p in persons)

    return {
        "period": period,
        "profit_by_period": profit_by_period,
        "cumulative_profit": cumulative_profit,
        "persons_completed": [
            {"period": k, "count": persons_completed[k]} for k in sorted(persons_completed)
        ],
        "totals": {
            "gross_profit": _round(gross),
            "net_profit": _round(gross - commissions_paid),
            "commissions_paid": _round(commissions_paid),
            "operations": len(completed),
            "persons": sum(persons_completed.values()),
        },
    }


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

def pending_bets(db: Session) -> List[Dict]:
    """Unresolved bets by event date, soonest first; undated bets last."""
    bets = (
        db.query(Bet)
        .options(selectinload(Bet.operation).selectinload(Operation.person),
                 selectinload(Bet.operation).selectinload(Operation.bookmaker))
        .filter(Bet.result.is_(None))
        .order_by(Bet.event_date.is_(None), Bet.event_date.asc(), Bet.id.asc())
        .all()
    )
    return [
        {
            "id": bet.id,
            "event_name": bet.event_name,
            "event_date": bet.event_date.isoformat() if bet.event_date else None,
            "bet_type": bet.bet_type,
            "bet_number": bet.bet_number,
            "stake": bet.stake,
            "odds_back": bet.odds_back,
            "odds_lay": bet.odds_lay,
            "liability": bet.liability,
            "expected_profit": bet.expected_profit,
            "operation_id": bet.operation_id,
            "person_name": bet.operation.person.name,
            "bookmaker_name": bet.operation.bookmaker.name,
        }
        for bet in bets
    ]


def active_bookmakers(db: Session) -> List[Dict]:
    """Bookmakers currently offered, by name, with their offer terms."""
    rows = (
        db.query(Bookmaker)
        .filter(Bookmaker.is_active.is_(True))
        .order_by(Bookmaker.name.asc())
        .all()
    )
    return [
        {
            "id": bm.id,
            "name": bm.name,
            "bonus_type": bm.bonus_type,
            "retention": bm.retention,
            "min_deposit": bm.min_deposit,
            "max_bonus": bm.max_bonus,
            "min_odds_qualifying": bm.min_odds_qualifying,
            "freebet_value": bm.freebet_value,
            "promo_code": bm.promo_code,
        }
        for bm in rows
    ]
