"""Exception taxonomy for the matched-betting engine.

Every error raised by :mod:`bonus_ledger.core` derives from
:class:`MatchedBettingError`, which is itself a :class:`ValueError` so that
callers already catching ``ValueError`` around numeric input keep working.

The engine raises immediately on invalid input.  There is nothing to retry
and no partial result is ever returned.
"""

from __future__ import annotations


class MatchedBettingError(ValueError):
    """Base class for invalid engine input."""


class InvalidStakeError(MatchedBettingError):
    """A back stake, freebet stake or lay stake was zero or negative."""


class InvalidOddsError(MatchedBettingError):
    """Decimal odds ≤ 1, or lay odds too low for the hedge to be defined."""


class InvalidCommissionError(InvalidOddsError):
    """Exchange commission outside ``[0, 1)``.

    Subclasses :class:`InvalidOddsError` because the commission only ever
    enters the engine through the ``lay_odds − commission`` denominator.
    """


class InvalidOutcomeError(MatchedBettingError):
    """An outcome other than ``"won"`` or ``"lost"``."""


class InvalidRegimeError(MatchedBettingError):
    """Refund-regime math invoked without a retention fraction in ``(0, 1)``."""
