"""
Flight store - dedup lookups and inserts for segmented flights.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import sessionmaker

from feedernet.models import Flight, session_scope

logger = logging.getLogger(__name__)


class FlightStore:
    """Create-only access to segmented flights."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def flight_exists_near(self, hex: str, start_time: int, tolerance_seconds: int = 60) -> bool:
        """
        Check whether start_time is already covered by a flight of `hex`.

        A flight covers [its start - tolerance, its end + tolerance], so both
        near-duplicate starts and segments that begin part way through an
        already recorded flight (a later lookback window) count as recorded.
        """
        stmt = (
            select(Flight.id)
            .where(Flight.hex == hex)
            .where(Flight.start_time <= start_time + tolerance_seconds)
            .where(Flight.end_time >= start_time - tolerance_seconds)
            .limit(1)
        )
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).first() is not None

    def create_flight(self, record: dict) -> Flight:
        """Insert one flight record and return it."""
        flight = Flight(**record)
        with session_scope(self._session_factory) as session:
            session.add(flight)
        return flight

    def list_flights(self, hex: Optional[str] = None) -> List[Flight]:
        """Flights ordered by start time, optionally for one aircraft."""
        stmt = select(Flight).order_by(Flight.start_time.asc())
        if hex is not None:
            stmt = stmt.where(Flight.hex == hex)
        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def count_flights(self, hex: Optional[str] = None) -> int:
        stmt = select(func.count(Flight.id))
        if hex is not None:
            stmt = stmt.where(Flight.hex == hex)
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).scalar_one()
