"""
Tests for calculate_owes: money in the bookmaker and exchange position
Run with: pytest tests/test_owes.py -v
"""

import pytest

from bonus_ledger.core import HedgedBet, InvalidCommissionError, ManualBet, calculate_owes
from bonus_ledger.models import Bet

C = 0.05


def _qualifying(result=None, **kw):
    fields = dict(
        bet_type="qualifying", stake=100.0, back_odds=2.0, lay_odds=2.05,
        liability=105.0, lay_stake=100.0, result=result, bet_number=1,
    )
    fields.update(kw)
    return HedgedBet(**fields)


def _freebet(result=None, **kw):
    fields = dict(
        bet_type="freebet", stake=50.0, back_odds=5.0, lay_odds=5.2,
        liability=38.835 * 4.2, lay_stake=38.835, result=result, bet_number=1,
    )
    fields.update(kw)
    return HedgedBet(**fields)


def test_empty_input_is_all_zeros():
    owes = calculate_owes([], C)
    assert owes.total_owes == 0.0
    assert owes.liability_lost == 0.0
    assert owes.exchange_winnings == 0.0
    assert owes.exchange_balance == 0.0
    assert owes.pending_bets == 0
    assert owes.outstanding_liability == 0.0
    assert owes.breakdown == []


def test_qualifying_won_leaves_payout_in_bookmaker():
    owes = calculate_owes([_qualifying("won")], C)
    assert owes.total_owes == pytest.approx(200.0)
    assert owes.liability_lost == pytest.approx(105.0)
    assert owes.exchange_balance == pytest.approx(-105.0)


def test_qualifying_lost_wins_lay_on_exchange():
    owes = calculate_owes([_qualifying("lost")], C)
    assert owes.total_owes == 0.0
    assert owes.exchange_winnings == pytest.approx(95.0)
    assert owes.breakdown[0].result == "lost"


def test_freebet_won_keeps_only_winnings():
    owes = calculate_owes([_freebet("won")], C)
    assert owes.total_owes == pytest.approx(200.0)  # 50 x (5.0 - 1)


def test_lay_stake_derived_from_liability_when_missing():
    owes = calculate_owes([_qualifying("lost", lay_stake=None)], C)
    # 105 / (2.05 - 1) = 100
    assert owes.exchange_winnings == pytest.approx(95.0)


def test_pending_bets_count_liability_at_risk():
    owes = calculate_owes([_qualifying(), _freebet()], C)
    assert owes.pending_bets == 2
    assert owes.outstanding_liability == pytest.approx(105.0 + 38.835 * 4.2)
    assert owes.breakdown == []
    assert owes.total_owes == 0.0


def test_unknown_result_counts_as_pending():
    owes = calculate_owes([_qualifying("void")], C)
    assert owes.pending_bets == 1


class TestManualBets:

    def test_positive_profit_is_money_in_bookmaker(self):
        owes = calculate_owes([ManualBet("freebet", stake=20.0, supplied_profit=35.0)], C)
        assert owes.total_owes == pytest.approx(35.0)
        assert owes.breakdown[0].result == "won"
        assert owes.exchange_balance == 0.0

    def test_loss_contributes_zero_row(self):
        owes = calculate_owes([ManualBet("qualifying", stake=20.0, supplied_profit=-20.0)], C)
        assert owes.total_owes == 0.0
        assert len(owes.breakdown) == 1
        assert owes.breakdown[0].result == "lost"

    def test_resolved_row_without_profit_is_a_zero_loss(self):
        row = Bet(
            kind="manual", bet_type="freebet", stake=20.0,
            odds_back=0.0, odds_lay=0.0, result="lost", actual_profit=None,
        )
        owes = calculate_owes([row.to_engine()], C)
        assert owes.pending_bets == 0
        assert len(owes.breakdown) == 1
        assert owes.breakdown[0].result == "lost"
        assert owes.total_owes == 0.0

    def test_unresolved_manual_is_pending(self):
        owes = calculate_owes([ManualBet("qualifying", stake=20.0)], C)
        assert owes.pending_bets == 1
        assert owes.outstanding_liability == 0.0


def test_mixed_operation():
    bets = [
        _qualifying("lost"),
        _freebet("won"),
        ManualBet("freebet", stake=10.0, supplied_profit=12.0, bet_number=2),
        _freebet(bet_number=3),
    ]
    owes = calculate_owes(bets, C)
    assert owes.money_in_bookmaker == pytest.approx(200.0 + 12.0)
    assert owes.exchange_winnings == pytest.approx(95.0)
    assert owes.liability_lost == pytest.approx(38.835 * 4.2)
    assert owes.pending_bets == 1
    assert [row.bet_type for row in owes.breakdown] == ["qualifying", "freebet", "freebet"]


def test_idempotent():
    bets = [_qualifying("won"), _freebet("lost"), _freebet()]
    assert calculate_owes(bets, C) == calculate_owes(bets, C)


def test_to_dict_shape():
    d = calculate_owes([_qualifying("won")], C).to_dict()
    assert d["total_owes"] == pytest.approx(200.0)
    assert d["breakdown"][0]["money_in_bookmaker"] == pytest.approx(200.0)


def test_invalid_commission_rejected():
    with pytest.raises(InvalidCommissionError):
        calculate_owes([], 5)
