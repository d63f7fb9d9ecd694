"""
Database models for the knowledge base studio.

Only session persistence lives in the database: one key-value table that
backs the saved-session list and the autosave slot. Values are serialized
JSON text, so the same model works on PostgreSQL and SQLite.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class StoredValue(Base):
    """
    Serialized JSON stored under a fixed key.

    Keys are storage slots such as the saved-session list and the autosave
    slot; writes overwrite the whole value (last writer wins).
    """
    __tablename__ = "stored_values"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (Index("ix_stored_values_updated_at", "updated_at"),)

    def __repr__(self) -> str:
        return f"<StoredValue(key={self.key}, updated_at={self.updated_at})>"
