"""SQLAlchemy table for persisted transition records.

The schema is fixed: ``(id, ts, failure, description)`` with ``ts`` stored as
an ISO-8601 UTC string and ``failure`` as 0/1.
"""
from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

from .record import Record, format_ts, parse_ts

Base = declarative_base()


class RecordRow(Base):  # type: ignore[misc,valid-type]
    """Database row for a :class:`~netpinger.models.record.Record`."""
    __tablename__ = "records"
    __table_args__ = (
        CheckConstraint("failure IN (0, 1)", name="ck_records_failure"),
        Index("ix_records_failure_ts", "failure", "ts"),
    )

    id = Column(String(36), primary_key=True)
    ts = Column(String(40), nullable=False)
    failure = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)

    @classmethod
    def from_record(cls, record: Record) -> "RecordRow":
        return cls(
            id=record.id,
            ts=format_ts(record.timestamp),
            failure=1 if record.failure else 0,
            description=record.description,
        )

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            timestamp=parse_ts(self.ts),
            failure=bool(self.failure),
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<RecordRow {self.id} failure={self.failure} at {self.ts}>"


__all__ = ["Base", "RecordRow"]
