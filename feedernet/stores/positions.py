"""
Position store - append and windowed reads over aircraft_positions.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from feedernet.models import AircraftPosition, session_scope

logger = logging.getLogger(__name__)


class PositionStore:
    """Append-only access to recorded aircraft positions."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def append_positions(self, records: Iterable[dict]) -> int:
        """
        Bulk insert position records.

        This is the append-only time-series pattern - rows are never
        updated after insert. Returns count inserted.
        """
        records = list(records)
        if not records:
            return 0

        with session_scope(self._session_factory) as session:
            session.execute(AircraftPosition.__table__.insert(), records)

        return len(records)

    def query_positions(
        self,
        hex: Optional[str] = None,
        since: int = 0,
        ascending: bool = True,
    ) -> List[AircraftPosition]:
        """
        Fetch positions captured at or after `since`.

        Results are ordered by timestamp (ascending by default), with id
        as a tiebreak so rows captured in the same sample keep insert order.
        """
        stmt = select(AircraftPosition).where(AircraftPosition.timestamp >= since)
        if hex is not None:
            stmt = stmt.where(AircraftPosition.hex == hex)

        if ascending:
            stmt = stmt.order_by(AircraftPosition.timestamp.asc(), AircraftPosition.id.asc())
        else:
            stmt = stmt.order_by(AircraftPosition.timestamp.desc(), AircraftPosition.id.desc())

        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def distinct_hexes_since(self, since: int) -> List[str]:
        """Aircraft with at least one position at or after `since`."""
        stmt = (
            select(AircraftPosition.hex)
            .where(AircraftPosition.timestamp >= since)
            .distinct()
            .order_by(AircraftPosition.hex)
        )
        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())
