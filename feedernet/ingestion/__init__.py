"""
Data ingestion module for FeederNet.

Handles polling the readsb feed, recording aircraft positions, and
validating feeder heartbeats at the ingestion boundary.
"""

from feedernet.ingestion.readsb_client import (
    ReadsbClient,
    ReceiverStats,
    AircraftReport,
    TelemetryUnavailable,
)
from feedernet.ingestion.recorder import PositionRecorder
from feedernet.ingestion.heartbeat import (
    HeartbeatPayload,
    HeartbeatError,
    apply_heartbeat,
    heartbeat_deltas,
    ingest_heartbeat,
    reconcile_counters,
    validate_feeder_uuid,
)

__all__ = [
    'ReadsbClient',
    'ReceiverStats',
    'AircraftReport',
    'TelemetryUnavailable',
    'PositionRecorder',
    'HeartbeatPayload',
    'HeartbeatError',
    'apply_heartbeat',
    'heartbeat_deltas',
    'ingest_heartbeat',
    'reconcile_counters',
    'validate_feeder_uuid',
]
