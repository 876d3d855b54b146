"""
Tests for lay stake sizing and liability
Run with: pytest tests/test_hedge.py -v
"""

import math

import pytest

from bonus_ledger.core import (
    InvalidCommissionError,
    InvalidOddsError,
    InvalidRegimeError,
    InvalidStakeError,
    hedge,
    lay_stake_free_bet,
    lay_stake_qualifying,
    lay_stake_refund,
    liability,
    select_lay_stake,
)

C = 0.05


class TestLayStakeQualifying:

    def test_tight_odds_pair(self):
        # (100 x 2.0) / (2.05 - 0.05)
        assert lay_stake_qualifying(100, 2.0, 2.05, C) == pytest.approx(100.0)

    def test_zero_commission(self):
        assert lay_stake_qualifying(10, 3.0, 3.0, 0.0) == pytest.approx(10.0)

    def test_scales_linearly_with_stake(self):
        one = lay_stake_qualifying(10, 2.5, 2.6, C)
        ten = lay_stake_qualifying(100, 2.5, 2.6, C)
        assert ten == pytest.approx(10 * one)

    def test_lay_odds_below_commission_rejected(self):
        with pytest.raises(InvalidOddsError):
            lay_stake_qualifying(100, 2.0, 0.03, C)

    def test_lay_odds_equal_to_commission_rejected(self):
        with pytest.raises(InvalidOddsError):
            lay_stake_qualifying(100, 2.0, 0.05, C)

    @pytest.mark.parametrize("stake", [0, -10])
    def test_non_positive_stake_rejected(self, stake):
        with pytest.raises(InvalidStakeError):
            lay_stake_qualifying(stake, 2.0, 2.05, C)

    @pytest.mark.parametrize("back_odds", [1.0, 0.5, -110])
    def test_non_decimal_back_odds_rejected(self, back_odds):
        with pytest.raises(InvalidOddsError):
            lay_stake_qualifying(100, back_odds, 2.05, C)

    @pytest.mark.parametrize("commission", [-0.01, 1.0, 5])
    def test_commission_out_of_range_rejected(self, commission):
        with pytest.raises(InvalidCommissionError):
            lay_stake_qualifying(100, 2.0, 2.05, commission)

    def test_commission_error_is_an_odds_error(self):
        with pytest.raises(InvalidOddsError):
            lay_stake_qualifying(100, 2.0, 2.05, 5)


class TestLayStakeFreeBet:

    def test_snr_freebet(self):
        # (50 x (5.0 - 1)) / (5.2 - 0.05) = 200 / 5.15
        assert lay_stake_free_bet(50, 5.0, 5.2, C) == pytest.approx(38.835, abs=1e-3)

    def test_smaller_than_qualifying_lay(self):
        assert lay_stake_free_bet(50, 5.0, 5.2, C) < lay_stake_qualifying(50, 5.0, 5.2, C)

    def test_invalid_lay_odds_rejected(self):
        with pytest.raises(InvalidOddsError):
            lay_stake_free_bet(50, 5.0, 0.03, C)


class TestLayStakeRefund:

    def test_refund_formula(self):
        # (100 x (2.0 - 0.75)) / (2.05 - 0.05)
        assert lay_stake_refund(100, 2.0, 2.05, 0.75, C) == pytest.approx(62.5)

    def test_less_hedged_than_qualifying(self):
        assert lay_stake_refund(100, 3.0, 3.1, 0.75, C) < lay_stake_qualifying(100, 3.0, 3.1, C)

    @pytest.mark.parametrize("retention", [None, 0.0, 1.0, 1.5])
    def test_retention_required_and_bounded(self, retention):
        with pytest.raises(InvalidRegimeError):
            lay_stake_refund(100, 2.0, 2.05, retention, C)


class TestLiability:

    def test_liability(self):
        assert liability(100.0, 2.05) == pytest.approx(105.0)

    @pytest.mark.parametrize("stake, lay_odds", [
        (100, 2.05),
        (38.83, 5.2),
        (0.01, 1.01),
        (5000, 1000.0),
    ])
    def test_liability_positive_and_finite(self, stake, lay_odds):
        value = liability(stake, lay_odds)
        assert value > 0
        assert math.isfinite(value)

    def test_lay_odds_of_one_rejected(self):
        with pytest.raises(InvalidOddsError):
            liability(100, 1.0)


class TestSelectLayStake:

    def test_freebet_ignores_regime(self):
        expected = lay_stake_free_bet(50, 5.0, 5.2, C)
        got = select_lay_stake(50, 5.0, 5.2, "freebet", C, regime="only_if_lost", retention=0.75)
        assert got == pytest.approx(expected)

    def test_qualifying_refund_regime(self):
        got = select_lay_stake(100, 2.0, 2.05, "qualifying", C, regime="only_if_lost", retention=0.75)
        assert got == pytest.approx(62.5)

    def test_qualifying_default_regime(self):
        assert select_lay_stake(100, 2.0, 2.05, "qualifying", C) == pytest.approx(100.0)

    def test_unknown_bet_type(self):
        with pytest.raises(ValueError):
            select_lay_stake(100, 2.0, 2.05, "accumulator", C)


def test_hedge_bundles_stake_and_liability():
    h = hedge(100, 2.0, 2.05, "qualifying", C)
    assert h.lay_stake == pytest.approx(100.0)
    assert h.liability == pytest.approx(105.0)
