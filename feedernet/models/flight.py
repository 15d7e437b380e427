"""
Flight model - one continuous observation of a single aircraft.

Flights are derived by the segmenter from AircraftPosition rows and are
never updated after creation. The (hex, start_time) pair identifies a
flight; the segmenter guarantees no flight for a hex starts within the
dedup tolerance of, or inside the span of, another flight for that hex.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Float, Integer, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from feedernet.models.base import Base


class Flight(Base):
    """
    Segmented flight with summary statistics and a downsampled track.

    The track is stored inline as a JSON list of compact points:
        {'lat': ..., 'lon': ..., 'alt': ..., 'hdg': ..., 'spd': ..., 'ts': ...}
    ordered by ts ascending.
    """

    __tablename__ = 'flights'

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    hex: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
        comment='ICAO24 hex address'
    )

    callsign: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        index=True,
        comment='Last non-null callsign seen in the segment'
    )

    start_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment='Unix timestamp of first position'
    )

    end_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Unix timestamp of last position'
    )

    duration_secs: Mapped[int] = mapped_column(Integer, nullable=False)

    max_altitude: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment='Highest reported altitude in feet'
    )

    total_distance: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment='Great-circle path length in nautical miles'
    )

    position_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Points in the stored track'
    )

    start_lat: Mapped[float] = mapped_column(Float, nullable=False)
    start_lon: Mapped[float] = mapped_column(Float, nullable=False)
    end_lat: Mapped[float] = mapped_column(Float, nullable=False)
    end_lon: Mapped[float] = mapped_column(Float, nullable=False)

    positions: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        comment='Downsampled track points'
    )

    segmented_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        # Dedup lookup: same hex, start time at or before the candidate
        Index('ix_flights_hex_start', 'hex', 'start_time'),
    )

    def __repr__(self) -> str:
        return f'<Flight {self.hex} {self.callsign or "?"} @ {self.start_time}>'
