"""
Database models for FeederNet.

Schema designed for an append-only telemetry pipeline:
1. Fast ingestion (batch position inserts)
2. Efficient per-aircraft time-range queries
3. Small, individually committed feeder updates
"""

from feedernet.models.base import (
    Base,
    create_db_engine,
    create_session_factory,
    session_scope,
    init_db,
    utc_timestamp,
)
from feedernet.models.position import AircraftPosition
from feedernet.models.flight import Flight
from feedernet.models.feeder import ApiTier, User, Feeder, FeederStats

__all__ = [
    'Base',
    'create_db_engine',
    'create_session_factory',
    'session_scope',
    'init_db',
    'utc_timestamp',
    'AircraftPosition',
    'Flight',
    'ApiTier',
    'User',
    'Feeder',
    'FeederStats',
]
