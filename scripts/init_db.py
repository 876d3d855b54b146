#!/usr/bin/env python3
"""
Database initialization script
Creates all tables and optionally seeds bookmakers and a sample person
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from bonus_ledger.config import load_config
from bonus_ledger.models import Base, engine, SessionLocal
from bonus_ledger.models import Bookmaker, Person, Settings
from bonus_ledger.services.ledger import SETTINGS_ID
import logging
from sqlalchemy import text, inspect

logging.basicConfig(level=load_config().log_level)
logger = logging.getLogger(__name__)


SEED_BOOKMAKERS = [
    # name, bonus_type, retention, min_deposit, max_bonus, min_odds_qualifying, freebet_value
    ("Bet365", "always", None, 10.0, 30.0, 1.5, 30.0),
    ("Codere", "always", None, 10.0, 200.0, 1.5, 200.0),
    ("Sportium", "only_if_lost", 0.75, 10.0, 200.0, 1.5, 200.0),
    ("Bwin", "only_if_lost", 0.7, 10.0, 100.0, 1.7, 100.0),
]


def init_database(drop_existing: bool = False):
    """
    Initialize database tables

    Args:
        drop_existing: If True, drops all tables first (DANGER: data loss!)
    """
    logger.info("🔧 Initializing Bonus Ledger database...")

    if drop_existing:
        logger.warning("⚠️  Dropping all existing tables!")
        response = input("Are you sure? This will delete all data. Type 'yes' to confirm: ")
        if response.lower() != 'yes':
            logger.info("Aborted.")
            return

        Base.metadata.drop_all(bind=engine)
        logger.info("✅ Existing tables dropped")

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables created successfully")

    inspector = inspect(engine)
    tables = inspector.get_table_names()
    logger.info("📋 Tables: %s", ", ".join(tables))

    return True


def seed_test_data():
    """Add bookmakers, one person and the settings row for development"""
    logger.info("🌱 Seeding test data...")

    db = SessionLocal()

    try:
        existing = {name for (name,) in db.query(Bookmaker.name).all()}
        for name, bonus_type, retention, min_dep, max_bonus, min_odds, freebet in SEED_BOOKMAKERS:
            if name in existing:
                continue
            db.add(Bookmaker(
                name=name,
                bonus_type=bonus_type,
                retention=retention,
                min_deposit=min_dep,
                max_bonus=max_bonus,
                min_odds_qualifying=min_odds,
                freebet_value=freebet,
            ))

        if db.query(Person).count() == 0:
            db.add(Person(name="Test Person", notes="seeded by init_db.py"))

        if db.get(Settings, SETTINGS_ID) is None:
            db.add(Settings(id=SETTINGS_ID, exchange_balance=0.0))

        db.commit()
        logger.info("✅ Test data seeded")

    except Exception as e:
        logger.error("❌ Error seeding data: %s", e)
        db.rollback()

    finally:
        db.close()


def check_connection():
    """Test database connection"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("✅ Database connection successful")
        return True
    except Exception as e:
        logger.error("❌ Database connection failed: %s", e)
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize Bonus Ledger database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables (DANGER!)")
    parser.add_argument("--seed", action="store_true", help="Seed bookmakers and a test person")
    parser.add_argument("--check", action="store_true", help="Only check connection")

    args = parser.parse_args()

    if args.check:
        check_connection()
    else:
        if check_connection():
            init_database(drop_existing=args.drop)

            if args.seed:
                seed_test_data()

            logger.info("🎉 Database initialization complete!")
        else:
            logger.error("Cannot initialize database - connection failed")
            sys.exit(1)
