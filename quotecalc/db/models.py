"""SQLAlchemy async database models for QuoteCalc.

Snapshots are stored document-style: items and row errors live in JSON
columns on the snapshot row.
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, Text, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class PricingSnapshotModel(Base):
    """Point-in-time copy of the pricing sheet.

    Only `is_current` (and `promoted_at`) change after insert.
    """

    __tablename__ = "pricing_snapshots"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=lambda: str(uuid4()))

    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source_spreadsheet_id: Mapped[str] = mapped_column(Text, nullable=False)
    source_tab: Mapped[str] = mapped_column(Text, nullable=False)
    sheet_version: Mapped[str | None] = mapped_column(Text)

    item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    errors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # At most one current snapshot system-wide
        Index(
            "idx_pricing_snapshot_current_unique",
            "is_current",
            unique=True,
            postgresql_where=text("is_current = true"),
            sqlite_where=text("is_current = 1"),
        ),
        Index("idx_pricing_snapshot_fetched", "fetched_at"),
    )
