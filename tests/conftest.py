"""
Shared fixtures: an in-memory SQLite database per test.

Run with: pytest tests/ -v
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bonus_ledger.models import Base, Bookmaker, Person
from bonus_ledger.services.ledger import ExchangeLedger

RETENTION = 0.75


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def ledger():
    return ExchangeLedger()


@pytest.fixture
def person(db):
    p = Person(name="Ana")
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def bookmaker(db):
    bm = Bookmaker(name="Bet365", bonus_type="always")
    db.add(bm)
    db.commit()
    return bm


@pytest.fixture
def refund_bookmaker(db):
    bm = Bookmaker(name="Sportium", bonus_type="only_if_lost", retention=RETENTION)
    db.add(bm)
    db.commit()
    return bm
