"""
Exchange balance ledger.

The exchange balance is only ever changed here.  Resolving a bet produces a
:class:`~bonus_ledger.core.profit.ResolutionEvent`; the bet service hands it
to :meth:`ExchangeLedger.apply`, which journals the delta and moves the
balance inside the caller's transaction.  Committing or rolling back that
transaction therefore commits or discards the bet update and the balance
update together.

Writers in one process are serialised by a lock so two resolutions can
never read the same starting balance.
"""

import logging
import threading
from typing import List, Optional

from sqlalchemy.orm import Session

from bonus_ledger.core.profit import ResolutionEvent
from bonus_ledger.models import LedgerEntry, Settings
from bonus_ledger.schemas import ExchangeBalanceUpdate

logger = logging.getLogger(__name__)

SETTINGS_ID = "global"
EVENT_ADJUSTMENT = "adjustment"


class ExchangeLedger:
    """Single writer for the exchange balance."""

    def __init__(self):
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _settings(db: Session) -> Settings:
        settings = db.get(Settings, SETTINGS_ID)
        if settings is None:
            settings = Settings(id=SETTINGS_ID, exchange_balance=0.0)
            db.add(settings)
            db.flush()
        return settings

    def balance(self, db: Session) -> float:
        """Current exchange balance (0.0 before the first movement)."""
        settings = db.get(Settings, SETTINGS_ID)
        return settings.exchange_balance if settings else 0.0

    def entries(self, db: Session, bet_id: Optional[int] = None) -> List[LedgerEntry]:
        q = db.query(LedgerEntry)
        if bet_id is not None:
            q = q.filter(LedgerEntry.bet_id == bet_id)
        return q.order_by(LedgerEntry.id.asc()).all()

    # ------------------------------------------------------------------
    # Writes (flush only; the caller owns the transaction)
    # ------------------------------------------------------------------

    def apply(
        self,
        db: Session,
        event: ResolutionEvent,
        *,
        bet_id: Optional[int] = None,
    ) -> Optional[LedgerEntry]:
        """Journal ``event`` and move the balance by its delta.

        Zero-delta events (manual bets) leave no entry and return ``None``.
        """
        if event.exchange_delta == 0.0:
            return None

        with self._lock:
            settings = self._settings(db)
            settings.exchange_balance = (settings.exchange_balance or 0.0) + event.exchange_delta
            entry = LedgerEntry(
                bet_id=bet_id,
                event_type=event.type,
                delta=event.exchange_delta,
                balance_after=settings.exchange_balance,
            )
            db.add(entry)
            db.flush()

        logger.info(
            "Exchange %s: bet %s | delta %+.2f | balance %.2f",
            event.type, bet_id, event.exchange_delta, entry.balance_after,
        )
        return entry

    def set_balance(self, db: Session, amount: float, reason: Optional[str] = None) -> LedgerEntry:
        """Record a manual correction that brings the balance to ``amount``."""
        with self._lock:
            settings = self._settings(db)
            delta = amount - (settings.exchange_balance or 0.0)
            settings.exchange_balance = amount
            entry = LedgerEntry(
                event_type=EVENT_ADJUSTMENT,
                delta=delta,
                balance_after=amount,
                reason=reason,
            )
            db.add(entry)
            db.flush()

        logger.info("Exchange balance set to %.2f (delta %+.2f): %s", amount, delta, reason)
        return entry

    def update_balance(self, db: Session, payload: ExchangeBalanceUpdate) -> LedgerEntry:
        """Apply a validated correction and commit it."""
        try:
            entry = self.set_balance(db, payload.exchange_balance, payload.reason)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return entry


_ledger: Optional[ExchangeLedger] = None


def get_exchange_ledger() -> ExchangeLedger:
    """Process-wide ledger instance."""
    global _ledger
    if _ledger is None:
        _ledger = ExchangeLedger()
    return _ledger
