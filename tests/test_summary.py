"""
Tests for dashboard, accounting and profit summaries
Run with: pytest tests/test_summary.py -v
"""

from datetime import datetime

import pytest

from bonus_ledger.models import Bet, Deposit, Operation
from bonus_ledger.schemas import BetCreate, DepositCreate, OperationCreate
from bonus_ledger.services.bets import create_operation, resolve_bet
from bonus_ledger.services.summary import (
    accounting_summary,
    active_bookmakers,
    dashboard_summary,
    money_in_bookmaker,
    pending_bets,
    profit_stats,
)

C = 0.05
R = 0.75


# ---------------------------------------------------------------------------
# money_in_bookmaker (transient ORM objects, no session)
# ---------------------------------------------------------------------------

def _transient_op(bets, deposits=(100.0,)):
    op = Operation(status="pending")
    op.deposits = [Deposit(deposit_num=i, amount=a) for i, a in enumerate(deposits, 1)]
    op.bets = bets
    return op


def _bet(bet_type, result=None, stake=100.0, odds_back=2.0, odds_lay=2.05, **kw):
    return Bet(
        kind=kw.pop("kind", "hedged"), bet_type=bet_type, stake=stake,
        odds_back=odds_back, odds_lay=odds_lay, result=result, **kw,
    )


class TestMoneyInBookmaker:

    def test_deposits_until_qualifying_resolves(self):
        op = _transient_op([_bet("qualifying"), _bet("freebet", "won")], deposits=(50.0, 50.0))
        assert money_in_bookmaker(op) == pytest.approx(100.0)

    def test_qualifying_won(self):
        op = _transient_op([_bet("qualifying", "won")])
        assert money_in_bookmaker(op) == pytest.approx(200.0)

    def test_qualifying_lost_leaves_nothing(self):
        op = _transient_op([_bet("qualifying", "lost")])
        assert money_in_bookmaker(op) == 0.0

    def test_pending_qualifying_stake_still_in_account(self):
        op = _transient_op([_bet("qualifying", "lost"), _bet("qualifying", stake=30.0)])
        assert money_in_bookmaker(op) == pytest.approx(30.0)

    def test_freebet_won_counts_winnings_only(self):
        op = _transient_op([
            _bet("qualifying", "lost"),
            _bet("freebet", "won", stake=50.0, odds_back=5.0, odds_lay=5.2),
            _bet("freebet", stake=25.0, odds_back=3.0, odds_lay=3.1),
        ])
        assert money_in_bookmaker(op) == pytest.approx(200.0)

    def test_manual_profit(self):
        op = _transient_op([
            _bet("qualifying", "lost"),
            _bet("freebet", "won", stake=20.0, odds_back=0.0, odds_lay=0.0,
                 kind="manual", actual_profit=35.0),
        ])
        assert money_in_bookmaker(op) == pytest.approx(35.0)


# ---------------------------------------------------------------------------
# DB-backed summaries
# ---------------------------------------------------------------------------

@pytest.fixture
def resolved_operation(db, person, bookmaker, ledger):
    payload = OperationCreate(
        person_id=person.id,
        bookmaker_id=bookmaker.id,
        bizum_sent=100.0,
        commission=20.0,
        deposits=[DepositCreate(amount=100.0)],
        bets=[BetCreate(bet_type="qualifying", stake=100.0, odds_back=2.0, odds_lay=2.05)],
    )
    op = create_operation(db, payload, commission=C, default_retention=R)
    resolve_bet(db, op.bets[0].id, "won", commission=C, default_retention=R, ledger=ledger)
    return op


def test_dashboard_summary(db, resolved_operation):
    summary = dashboard_summary(db)

    assert summary["total_operations"] == 1
    assert summary["completed_operations"] == 1
    assert summary["pending_operations"] == 0
    assert summary["total_profit"] == pytest.approx(-5.0)
    assert summary["total_bizum_sent"] == pytest.approx(100.0)
    assert summary["pending_to_collect"] == pytest.approx(200.0)
    assert summary["total_liability"] == 0.0
    assert summary["persons_with_debt"] == [
        {"id": resolved_operation.person_id, "name": "Ana", "balance": 200.0}
    ]
    assert summary["recent_operations"][0]["bookmaker_name"] == "Bet365"
    assert summary["bookmaker_summary"][0]["operations_count"] == 1


def test_dashboard_empty(db):
    summary = dashboard_summary(db)
    assert summary["total_operations"] == 0
    assert summary["persons_with_debt"] == []
    assert summary["recent_operations"] == []


def test_open_liability_on_dashboard(db, person, bookmaker):
    payload = OperationCreate(
        person_id=person.id,
        bookmaker_id=bookmaker.id,
        bets=[BetCreate(bet_type="qualifying", stake=100.0, odds_back=2.0, odds_lay=2.05)],
    )
    create_operation(db, payload, commission=C, default_retention=R)
    assert dashboard_summary(db)["total_liability"] == pytest.approx(105.0)


def test_accounting_summary(db, resolved_operation):
    year = resolved_operation.created_at.year
    month = resolved_operation.created_at.month

    books = accounting_summary(db, year, commission=C)

    assert books["exchange"]["losses"] == pytest.approx(105.0)
    assert books["exchange"]["wins"] == 0.0
    assert books["exchange"]["net_result"] == pytest.approx(-105.0)
    assert books["exchange"]["current_balance"] == pytest.approx(-105.0)
    assert books["commissions"]["total_due"] == pytest.approx(20.0)
    assert books["commissions"]["pending"] == pytest.approx(20.0)
    assert books["cash_flow"]["net_flow"] == pytest.approx(-100.0)
    assert books["cash_flow"]["by_person"][0]["name"] == "Ana"
    assert len(books["monthly"]) == 12
    assert books["monthly"][month - 1]["exchange_result"] == pytest.approx(-105.0)
    assert books["summary"]["completed_operations"] == 1


def test_accounting_other_year_is_empty(db, resolved_operation):
    books = accounting_summary(db, resolved_operation.created_at.year - 1, commission=C)
    assert books["summary"]["total_operations"] == 0
    assert books["commissions"]["by_person"] == []
    assert all(m["exchange_result"] == 0.0 for m in books["monthly"])


class TestProfitStats:

    def test_total(self, db, resolved_operation):
        stats = profit_stats(db, "total")
        assert stats["profit_by_period"] == [{"period": "total", "profit": -5.0}]
        assert stats["cumulative_profit"][0]["cumulative"] == -5.0
        assert stats["totals"]["gross_profit"] == -5.0
        assert stats["totals"]["operations"] == 1
        assert stats["totals"]["persons"] == 1

    def test_monthly_key(self, db, resolved_operation):
        created = resolved_operation.created_at
        stats = profit_stats(db, "monthly")
        assert stats["profit_by_period"][0]["period"] == f"{created.year}-{created.month:02d}"

    def test_net_profit_subtracts_commission_paid(self, db, person, resolved_operation):
        person.commission_paid = 15.0
        db.commit()
        stats = profit_stats(db, "yearly")
        assert stats["totals"]["net_profit"] == pytest.approx(-20.0)

    def test_open_operations_excluded(self, db, person, bookmaker):
        payload = OperationCreate(person_id=person.id, bookmaker_id=bookmaker.id)
        create_operation(db, payload, commission=C, default_retention=R)
        assert profit_stats(db)["totals"]["operations"] == 0

    def test_unknown_period(self, db):
        with pytest.raises(ValueError):
            profit_stats(db, "weekly")


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

def test_pending_bets_by_event_date(db, person, bookmaker):
    payload = OperationCreate(
        person_id=person.id,
        bookmaker_id=bookmaker.id,
        bets=[
            BetCreate(bet_type="qualifying", stake=100.0, odds_back=2.0, odds_lay=2.05),
            BetCreate(bet_type="freebet", stake=50.0, odds_back=5.0, odds_lay=5.2,
                      event_name="Late", event_date=datetime(2030, 5, 2, 21, 0)),
            BetCreate(bet_type="freebet", stake=50.0, odds_back=5.0, odds_lay=5.2,
                      event_name="Early", event_date=datetime(2030, 5, 1, 18, 0)),
        ],
    )
    create_operation(db, payload, commission=C, default_retention=R)

    feed = pending_bets(db)

    assert [b["event_name"] for b in feed] == ["Early", "Late", None]
    assert feed[0]["person_name"] == "Ana"
    assert feed[0]["bookmaker_name"] == "Bet365"
    assert feed[0]["event_date"] == "2030-05-01T18:00:00"


def test_pending_bets_excludes_resolved(db, resolved_operation):
    assert pending_bets(db) == []


def test_active_bookmakers(db, bookmaker, refund_bookmaker):
    refund_bookmaker.is_active = False
    db.commit()

    rows = active_bookmakers(db)
    assert [r["name"] for r in rows] == ["Bet365"]
    assert rows[0]["bonus_type"] == "always"
