"""Database layer for QuoteCalc with async SQLAlchemy."""

from quotecalc.db.connection import close_db, get_db, init_db
from quotecalc.db.models import Base, PricingSnapshotModel

__all__ = [
    "Base",
    "PricingSnapshotModel",
    "close_db",
    "get_db",
    "init_db",
]
