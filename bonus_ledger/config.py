"""Deployment configuration, read from the environment (and ``.env``).

All tunables that differ between deployments live here.  In particular the
exchange commission is defined **once**: every service passes
``config.commission`` explicitly into the engine, so stake sizing at bet
creation and settlement at resolution always use the same rate.

Typical usage::

    from bonus_ledger.config import load_config

    cfg = load_config()
    lay = lay_stake_qualifying(100, 2.0, 2.05, cfg.commission)

    # Override for a single run:
    from dataclasses import replace
    cfg = replace(cfg, commission=0.02)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from dotenv import load_dotenv

load_dotenv()

#: Betfair standard market base rate.
DEFAULT_COMMISSION: Final[float] = 0.05

#: Share of a refunded stake expected back once the refund freebet is
#: extracted.  0.75 is a conservative SNR extraction rate.
DEFAULT_RETENTION: Final[float] = 0.75

DEFAULT_DATABASE_URL: Final[str] = "sqlite:///./bonus_ledger.db"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name}={raw!r} is not a number") from None


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable configuration bundle.

    Attributes:
        database_url: SQLAlchemy URL for the record-keeping database.
        commission: Exchange commission on net lay winnings, in ``[0, 1)``.
        retention: Default retention fraction for ``only_if_lost`` offers
            whose bookmaker row does not set its own.
        log_level: Root log level for scripts.
    """

    database_url: str = DEFAULT_DATABASE_URL
    commission: float = DEFAULT_COMMISSION
    retention: float = DEFAULT_RETENTION
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not 0.0 <= self.commission < 1.0:
            raise ValueError(
                f"EXCHANGE_COMMISSION must be in [0, 1), got {self.commission!r}. "
                "Use 0.05 for 5%."
            )
        if not 0.0 < self.retention < 1.0:
            raise ValueError(
                f"DEFAULT_RETENTION must be in (0, 1), got {self.retention!r}."
            )


def load_config() -> LedgerConfig:
    """Build a :class:`LedgerConfig` from the current environment."""
    return LedgerConfig(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        commission=_env_float("EXCHANGE_COMMISSION", DEFAULT_COMMISSION),
        retention=_env_float("DEFAULT_RETENTION", DEFAULT_RETENTION),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
