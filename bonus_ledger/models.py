"""
Database models for Bonus Ledger
SQLAlchemy ORM (SQLite by default, PostgreSQL in production)
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Boolean,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from datetime import datetime

from bonus_ledger.config import load_config
from bonus_ledger.core.types import BonusRegime, HedgedBet, ManualBet

DATABASE_URL = load_config().database_url

# SQLite connections are per-thread unless told otherwise
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Operation lifecycle
STATUS_PENDING = "pending"
STATUS_QUALIFYING = "qualifying"
STATUS_FREEBET = "freebet"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

BET_KIND_HEDGED = "hedged"
BET_KIND_MANUAL = "manual"


class Person(Base):
    """Account holder who places bets on the operator's behalf"""

    __tablename__ = "persons"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    phone = Column(String)
    notes = Column(Text)

    # Agreed commission for the person, and what has been paid across all their operations
    commission = Column(Float, default=0.0, nullable=False)
    commission_paid = Column(Float, default=0.0, nullable=False)

    operations = relationship("Operation", back_populates="person")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Bookmaker(Base):
    """Bookmaker and the terms of its welcome offer"""

    __tablename__ = "bookmakers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    bonus_type = Column(String, default=BonusRegime.ALWAYS.value, nullable=False)  # "always" | "only_if_lost"
    retention = Column(Float)  # only_if_lost offers; NULL = use DEFAULT_RETENTION

    # Deposit terms
    min_deposit = Column(Float)
    max_deposit = Column(Float)
    num_deposits = Column(Integer, default=1)

    # Qualifying terms
    num_qualifying = Column(Integer, default=1)
    min_odds_qualifying = Column(Float)
    bonus_percentage = Column(Float)
    max_bonus = Column(Float)

    # Freebet terms
    num_freebets = Column(Integer, default=1)
    freebet_value = Column(Float)
    min_odds_freebet = Column(Float)
    max_odds_freebet = Column(Float)
    same_event = Column(Boolean, default=False)

    # Deadlines (days)
    days_to_deposit = Column(Integer)
    days_to_qualify = Column(Integer)
    days_freebet_valid = Column(Integer)

    promo_code = Column(String)
    notes = Column(Text)
    is_active = Column(Boolean, default=True, index=True)

    operations = relationship("Operation", back_populates="bookmaker")

    @property
    def regime(self) -> BonusRegime:
        return BonusRegime(self.bonus_type or BonusRegime.ALWAYS.value)


class Operation(Base):
    """One bonus claim: one person, one bookmaker offer"""

    __tablename__ = "operations"

    id = Column(Integer, primary_key=True, index=True)
    person_id = Column(Integer, ForeignKey("persons.id"), nullable=False, index=True)
    bookmaker_id = Column(Integer, ForeignKey("bookmakers.id"), nullable=False, index=True)

    status = Column(String, default=STATUS_PENDING, nullable=False, index=True)

    # Cash movements with the person
    bizum_sent = Column(Float, default=0.0, nullable=False)  # Sent to the person to fund deposits
    bizum_received = Column(Float, default=0.0, nullable=False)
    money_returned = Column(Float, default=0.0, nullable=False)  # Returned by the person

    # Commission owed to the person for this operation
    commission = Column(Float, default=0.0, nullable=False)
    commission_paid = Column(Float, default=0.0, nullable=False)

    notes = Column(Text)

    person = relationship("Person", back_populates="operations")
    bookmaker = relationship("Bookmaker", back_populates="operations")
    bets = relationship(
        "Bet", back_populates="operation", cascade="all, delete-orphan",
        order_by="Bet.id",
    )
    deposits = relationship(
        "Deposit", back_populates="operation", cascade="all, delete-orphan",
        order_by="Deposit.deposit_num",
    )

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Deposit(Base):
    """Money deposited into the bookmaker account"""

    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True, index=True)
    operation_id = Column(Integer, ForeignKey("operations.id"), nullable=False, index=True)
    deposit_num = Column(Integer, default=1, nullable=False)
    amount = Column(Float, nullable=False)

    operation = relationship("Operation", back_populates="deposits")

    created_at = Column(DateTime, default=datetime.utcnow)


class Bet(Base):
    """A back bet at the bookmaker, hedged on the exchange unless manual"""

    __tablename__ = "bets"

    id = Column(Integer, primary_key=True, index=True)
    operation_id = Column(Integer, ForeignKey("operations.id"), nullable=False, index=True)

    kind = Column(String, default=BET_KIND_HEDGED, nullable=False)  # "hedged" | "manual"
    bet_type = Column(String, nullable=False)  # "qualifying" | "freebet"
    bet_number = Column(Integer, default=1, nullable=False)

    # What was placed
    stake = Column(Float, nullable=False)
    odds_back = Column(Float, default=0.0, nullable=False)  # 0 on legacy manual rows
    odds_lay = Column(Float, default=0.0, nullable=False)

    # Derived at creation (or by a recalculation pass)
    lay_stake = Column(Float, default=0.0, nullable=False)
    liability = Column(Float, default=0.0, nullable=False)
    expected_profit = Column(Float, default=0.0, nullable=False)

    # Set once at resolution
    result = Column(String)  # "won" | "lost" | NULL = pending
    actual_profit = Column(Float)
    resolved_at = Column(DateTime)

    event_name = Column(String)
    event_date = Column(DateTime, index=True)

    operation = relationship("Operation", back_populates="bets")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (UniqueConstraint('operation_id', 'bet_type', 'bet_number', name='_operation_bet_number_uc'),)

    @property
    def is_manual(self) -> bool:
        return (
            self.kind == BET_KIND_MANUAL
            or not self.odds_back
            or not self.odds_lay
        )

    def to_engine(self) -> "HedgedBet | ManualBet":
        """Convert the stored row into the engine's bet variant."""
        if self.is_manual:
            return ManualBet(
                bet_type=self.bet_type,
                stake=self.stake or 0.0,
                supplied_profit=(self.actual_profit or 0.0) if self.result is not None else None,
                bet_number=self.bet_number,
            )
        return HedgedBet(
            bet_type=self.bet_type,
            stake=self.stake,
            back_odds=self.odds_back,
            lay_odds=self.odds_lay,
            liability=self.liability or 0.0,
            lay_stake=self.lay_stake or None,
            result=self.result,
            bet_number=self.bet_number,
        )


class LedgerEntry(Base):
    """Append-only journal of exchange balance movements"""

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    bet_id = Column(Integer, ForeignKey("bets.id"), index=True)  # NULL for manual adjustments
    event_type = Column(String, nullable=False)  # "won" | "lost" | "adjustment"
    delta = Column(Float, nullable=False)
    balance_after = Column(Float, nullable=False)
    reason = Column(String)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    bet = relationship("Bet")


class Settings(Base):
    """Global settings row (id = "global")"""

    __tablename__ = "settings"

    id = Column(String, primary_key=True, default="global")
    exchange_balance = Column(Float, default=0.0, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
