"""
AircraftPosition model - time-series telemetry storage.

Every sampled aircraft position is recorded here. The flight segmenter
reconstructs discrete flights from this table.

Schema optimized for:
- Fast batch inserts (append-only pattern)
- Efficient time-range queries per aircraft
- Distinct-aircraft queries over a recent window
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from feedernet.models.base import Base


class AircraftPosition(Base):
    """
    One observed telemetry sample for one aircraft.

    Rows are immutable once written. Retention is handled outside
    the pipeline; no job here deletes positions.

    Units follow readsb: altitude in feet, speed in knots,
    heading in degrees true.
    """

    __tablename__ = 'aircraft_positions'

    # Using Integer for SQLite compatibility (autoincrement only works with INTEGER)
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment='Surrogate key'
    )

    hex: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
        comment='ICAO24 hex address (lowercase)'
    )

    lat: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Latitude in decimal degrees'
    )

    lon: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Longitude in decimal degrees'
    )

    altitude: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment='Barometric altitude in feet'
    )

    heading: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Track angle in degrees'
    )

    speed: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Ground speed in knots'
    )

    squawk: Mapped[Optional[str]] = mapped_column(
        String(4),
        nullable=True,
        comment='Transponder squawk code'
    )

    # Denormalized callsign so segmentation never needs a join
    callsign: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        comment='Callsign at time of observation'
    )

    # Integer Unix timestamp for cheap comparisons and indexing
    timestamp: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment='Unix timestamp of capture'
    )

    __table_args__ = (
        # Per-aircraft history in time order (segmentation fetch)
        Index('ix_aircraft_positions_hex_time', 'hex', 'timestamp'),
        # Distinct aircraft seen since a cutoff
        Index('ix_aircraft_positions_time_hex', 'timestamp', 'hex'),
    )

    def __repr__(self) -> str:
        return f'<AircraftPosition {self.hex} @ {self.timestamp}>'
