"""
Feeder and FeederStats stores.

Every mutation is its own small transaction; no method holds a session
across more than one logical write.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, update, delete, func, case
from sqlalchemy.orm import sessionmaker

from feedernet.models import ApiTier, User, Feeder, FeederStats, session_scope

logger = logging.getLogger(__name__)

# Columns the liveness aggregator may overwrite
TOTALS_FIELDS = frozenset({
    'messages_total', 'positions_total', 'aircraft_seen', 'last_seen', 'is_online',
})

# Receiver metadata stamped by heartbeats
HEARTBEAT_FIELDS = frozenset({
    'reported_messages', 'reported_positions', 'rssi', 'software_version', 'receiver_uptime',
})


class FeederStore:
    """Feeder records and owner tier bookkeeping."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_feeders(self, online: Optional[bool] = None) -> List[Feeder]:
        """All feeders ordered by id, optionally filtered by online state."""
        stmt = select(Feeder).order_by(Feeder.id)
        if online is not None:
            stmt = stmt.where(Feeder.is_online.is_(online))
        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def get_feeder(self, feeder_id: int) -> Optional[Feeder]:
        with session_scope(self._session_factory) as session:
            return session.get(Feeder, feeder_id)

    def get_feeder_by_uuid(self, uuid: str) -> Optional[Feeder]:
        stmt = select(Feeder).where(Feeder.uuid == uuid.lower())
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).scalars().first()

    def stale_online_feeder_ids(self, cutoff: int) -> List[int]:
        """Online feeders whose last_seen is before cutoff or was never set."""
        stmt = (
            select(Feeder.id)
            .where(Feeder.is_online.is_(True))
            .where((Feeder.last_seen < cutoff) | (Feeder.last_seen.is_(None)))
            .order_by(Feeder.id)
        )
        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def network_totals(self) -> dict:
        """Network-wide feeder counts and summed totals."""
        stmt = select(
            func.count(Feeder.id),
            func.sum(case((Feeder.is_online.is_(True), 1), else_=0)),
            func.coalesce(func.sum(Feeder.messages_total), 0),
            func.coalesce(func.sum(Feeder.positions_total), 0),
            func.coalesce(func.sum(Feeder.aircraft_seen), 0),
        )
        with session_scope(self._session_factory) as session:
            total, online, messages, positions, aircraft = session.execute(stmt).one()

        return {
            'feeders': total or 0,
            'online': online or 0,
            'messages': int(messages),
            'positions': int(positions),
            'aircraft': int(aircraft),
        }

    # -------------------------------------------------------------------------
    # Liveness writes
    # -------------------------------------------------------------------------

    def update_feeder_totals(self, feeder_id: int, totals: dict) -> None:
        """Overwrite running totals / liveness fields of one feeder."""
        unknown = set(totals) - TOTALS_FIELDS
        if unknown:
            raise ValueError(f'Unknown feeder totals fields: {sorted(unknown)}')

        with session_scope(self._session_factory) as session:
            session.execute(
                update(Feeder).where(Feeder.id == feeder_id).values(**totals)
            )

    def record_heartbeat(
        self,
        feeder_id: int,
        messages: int,
        positions: int,
        aircraft_count: int,
        seen_at: int,
        metadata: Optional[dict] = None,
    ) -> None:
        """
        Add reconciled heartbeat deltas to a feeder's totals.

        aircraft_seen only ever rises (high-water mark). metadata holds
        HEARTBEAT_FIELDS values; None entries leave the stored value as is.
        """
        metadata = {k: v for k, v in (metadata or {}).items() if v is not None}
        unknown = set(metadata) - HEARTBEAT_FIELDS
        if unknown:
            raise ValueError(f'Unknown heartbeat fields: {sorted(unknown)}')

        with session_scope(self._session_factory) as session:
            session.execute(
                update(Feeder)
                .where(Feeder.id == feeder_id)
                .values(
                    messages_total=Feeder.messages_total + messages,
                    positions_total=Feeder.positions_total + positions,
                    aircraft_seen=case(
                        (Feeder.aircraft_seen < aircraft_count, aircraft_count),
                        else_=Feeder.aircraft_seen,
                    ),
                    last_seen=seen_at,
                    is_online=True,
                    **metadata,
                )
            )

    def set_online(self, feeder_ids: Iterable[int], online: bool) -> int:
        """Bulk set is_online. Returns rows touched."""
        feeder_ids = list(feeder_ids)
        if not feeder_ids:
            return 0

        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(Feeder).where(Feeder.id.in_(feeder_ids)).values(is_online=online)
            )
            return result.rowcount

    def sync_user_tiers(self) -> tuple:
        """
        Derive FREE/FEEDER tiers from current online state.

        Returns (upgraded_emails, downgraded_emails).
        """
        has_online = User.feeders.any(Feeder.is_online.is_(True))

        with session_scope(self._session_factory) as session:
            upgraded = list(session.execute(
                select(User).where(User.api_tier == ApiTier.FREE.value).where(has_online)
            ).scalars().all())
            downgraded = list(session.execute(
                select(User).where(User.api_tier == ApiTier.FEEDER.value).where(~has_online)
            ).scalars().all())

            if upgraded:
                session.execute(
                    update(User)
                    .where(User.id.in_([u.id for u in upgraded]))
                    .values(api_tier=ApiTier.FEEDER.value)
                )
            if downgraded:
                session.execute(
                    update(User)
                    .where(User.id.in_([u.id for u in downgraded]))
                    .values(api_tier=ApiTier.FREE.value)
                )

        return [u.email for u in upgraded], [u.email for u in downgraded]

    # -------------------------------------------------------------------------
    # Scoring writes
    # -------------------------------------------------------------------------

    def update_feeder_score(self, feeder_id: int, score: int) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                update(Feeder).where(Feeder.id == feeder_id).values(current_score=score)
            )

    def update_feeder_rank(
        self,
        feeder_id: int,
        previous_rank: Optional[int],
        current_rank: int,
    ) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                update(Feeder)
                .where(Feeder.id == feeder_id)
                .values(previous_rank=previous_rank, current_rank=current_rank)
            )


class FeederStatsStore:
    """Append-only hourly feeder snapshots."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def latest_snapshot(self, feeder_id: int) -> Optional[FeederStats]:
        stmt = (
            select(FeederStats)
            .where(FeederStats.feeder_id == feeder_id)
            .order_by(FeederStats.timestamp.desc(), FeederStats.id.desc())
            .limit(1)
        )
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).scalars().first()

    def create_snapshot(self, record: dict) -> FeederStats:
        snapshot = FeederStats(**record)
        with session_scope(self._session_factory) as session:
            session.add(snapshot)
        return snapshot

    def count_snapshots_since(self, feeder_id: int, since: int) -> int:
        stmt = (
            select(func.count(FeederStats.id))
            .where(FeederStats.feeder_id == feeder_id)
            .where(FeederStats.timestamp >= since)
        )
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).scalar_one()

    def delete_older_than(self, cutoff: int) -> int:
        """Delete snapshots captured before cutoff. Returns rows deleted."""
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(FeederStats).where(FeederStats.timestamp < cutoff)
            )
            return result.rowcount
