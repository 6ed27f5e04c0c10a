from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ReplayStatus(Base):
    __tablename__ = "replay_status"

    # Workflow stages ordered by ordinal; the minimum is the initial stage and the
    # maximum is the terminal (cancelled) stage.
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True)
    workflow: Mapped[int] = mapped_column(Integer, index=True)


class Replay(Base):
    __tablename__ = "replay"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, index=True)
    startdate: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    enddate: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Replays raised by the gap detector rather than an operator.
    automatic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ReplayJob(Base):
    __tablename__ = "replay_job"
    __table_args__ = (
        Index("ix_replay_job_replay_status", "replay_id", "replay_status_id"),
    )

    # Append-only status history; the current status is derived, never stored on replay.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    replay_id: Mapped[int] = mapped_column(Integer, ForeignKey("replay.id"), nullable=False)
    replay_status_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("replay_status.id"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, default="", nullable=False)


class HrdPacketGap(Base):
    __tablename__ = "hrd_packet_gap"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Detection time; list filters and default ordering apply to this column.
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, index=True)
    last_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_sequence_count: Mapped[int] = mapped_column(Integer)
    next_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    next_sequence_count: Mapped[int] = mapped_column(Integer)
    channel: Mapped[str] = mapped_column(String, index=True)
    replay_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("replay.id"), nullable=True)
    corrupted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class VmuPacketGap(Base):
    __tablename__ = "vmu_packet_gap"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, index=True)
    last_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_sequence_count: Mapped[int] = mapped_column(Integer)
    next_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    next_sequence_count: Mapped[int] = mapped_column(Integer)
    source: Mapped[int] = mapped_column(Integer, index=True)
    # Record phase (UPI) of the VMU stream.
    phase: Mapped[str] = mapped_column(String, index=True)
    replay_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("replay.id"), nullable=True)
    corrupted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Variable(Base):
    __tablename__ = "variable"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True)
    value: Mapped[str] = mapped_column(String, default="", nullable=False)
    range_json: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    # Flag variables whose change affects the running acquisition chain.
    hazardous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
