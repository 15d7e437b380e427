"""
Feeder models - registered receivers, their owners and hourly snapshots.

Write ownership is split between jobs:
- Liveness aggregator: Feeder totals, last_seen, is_online; User.api_tier
- Heartbeat ingestion: Feeder totals plus reported counters and receiver metadata
- Scoring engine: Feeder score/rank fields; FeederStats rows
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    String, Float, Integer, BigInteger, DateTime, Boolean, Index, ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedernet.models.base import Base


class ApiTier(str, Enum):
    """
    API access tier of a user.

    FREE and FEEDER are derived every liveness cycle from whether the
    user has at least one online feeder. PRO is paid and never changed
    by the pipeline.
    """
    FREE = 'FREE'
    FEEDER = 'FEEDER'
    PRO = 'PRO'


class User(Base):
    """Feeder owner."""

    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    api_tier: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=ApiTier.FREE.value,
        index=True,
    )

    feeders: Mapped[List['Feeder']] = relationship(back_populates='user')

    def __repr__(self) -> str:
        return f'<User {self.email} {self.api_tier}>'


class Feeder(Base):
    """
    A registered ADS-B receiver.

    Totals are lifetime counters. aircraft_seen is a high-water mark.
    is_online is derived, recomputed each liveness cycle from last_seen.
    """

    __tablename__ = 'feeders'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    uuid: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        unique=True,
        comment='Public feeder identifier used by heartbeats'
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Running totals
    messages_total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    positions_total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    aircraft_seen: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Liveness
    last_seen: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment='Unix timestamp of last attributed telemetry'
    )
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    # Heartbeat metadata
    reported_messages: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        comment='Last cumulative message counter reported by the feeder'
    )
    reported_positions: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        comment='Last cumulative position counter reported by the feeder'
    )
    rssi: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Average signal in dBFS')
    software_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    receiver_uptime: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment='Receiver uptime in seconds at last heartbeat'
    )

    # Scoring
    current_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    previous_rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
    )

    user: Mapped[User] = relationship(back_populates='feeders')

    def __repr__(self) -> str:
        status = 'online' if self.is_online else 'offline'
        return f'<Feeder {self.name} {status} score={self.current_score}>'

    @property
    def rank_change(self) -> Optional[int]:
        """Positions gained since the previous ranking pass (positive = improved)."""
        if self.previous_rank is None or self.current_rank is None:
            return None
        return self.previous_rank - self.current_rank


class FeederStats(Base):
    """
    Hourly measurement of one feeder.

    messages/positions are deltas since the previous snapshot;
    messages_total/positions_total record the feeder's running totals at
    snapshot time so the next delta has a baseline.
    """

    __tablename__ = 'feeder_stats'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    feeder_id: Mapped[int] = mapped_column(
        ForeignKey('feeders.id', ondelete='CASCADE'),
        nullable=False,
    )

    timestamp: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # First snapshot holds the full running total, so these need 64 bits too
    messages: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    positions: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    aircraft: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    messages_total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    positions_total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    message_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    position_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    uptime_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index('ix_feeder_stats_feeder_time', 'feeder_id', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<FeederStats feeder={self.feeder_id} @ {self.timestamp} score={self.score}>'
