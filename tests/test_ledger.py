"""
Tests for the exchange balance ledger
Run with: pytest tests/test_ledger.py -v
"""

import pytest

from bonus_ledger.core.profit import ResolutionEvent
from bonus_ledger.models import LedgerEntry
from bonus_ledger.schemas import ExchangeBalanceUpdate
from bonus_ledger.services.ledger import ExchangeLedger, get_exchange_ledger


def test_balance_starts_at_zero(db, ledger):
    assert ledger.balance(db) == 0.0


def test_apply_moves_balance_and_journals(db, ledger):
    entry = ledger.apply(db, ResolutionEvent(type="lost", exchange_delta=95.0))
    db.commit()

    assert ledger.balance(db) == pytest.approx(95.0)
    assert entry.balance_after == pytest.approx(95.0)
    assert entry.event_type == "lost"


def test_zero_delta_not_journalled(db, ledger):
    assert ledger.apply(db, ResolutionEvent(type="won", exchange_delta=0.0)) is None
    assert db.query(LedgerEntry).count() == 0


def test_balance_equals_sum_of_deltas(db, ledger):
    for delta in (95.0, -105.0, 36.89, -12.5):
        ledger.apply(db, ResolutionEvent(type="won" if delta < 0 else "lost", exchange_delta=delta))
    db.commit()

    entries = ledger.entries(db)
    assert len(entries) == 4
    assert ledger.balance(db) == pytest.approx(sum(e.delta for e in entries))
    assert entries[-1].balance_after == pytest.approx(ledger.balance(db))


def test_rollback_discards_movement(db, ledger):
    ledger.apply(db, ResolutionEvent(type="lost", exchange_delta=50.0))
    db.rollback()

    assert ledger.balance(db) == 0.0
    assert ledger.entries(db) == []


def test_set_balance_records_adjustment(db, ledger):
    ledger.apply(db, ResolutionEvent(type="lost", exchange_delta=95.0))
    entry = ledger.set_balance(db, 500.0, reason="deposit to exchange")
    db.commit()

    assert ledger.balance(db) == pytest.approx(500.0)
    assert entry.event_type == "adjustment"
    assert entry.delta == pytest.approx(405.0)
    assert entry.reason == "deposit to exchange"


def test_singleton():
    assert get_exchange_ledger() is get_exchange_ledger()
    assert isinstance(get_exchange_ledger(), ExchangeLedger)


def test_update_balance_from_schema(db, ledger):
    entry = ledger.update_balance(db, ExchangeBalanceUpdate(exchange_balance=250.0, reason="withdrawal"))

    assert ledger.balance(db) == pytest.approx(250.0)
    assert entry.reason == "withdrawal"
    assert db.query(LedgerEntry).count() == 1
