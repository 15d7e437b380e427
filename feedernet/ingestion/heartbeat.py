"""
Heartbeat ingestion boundary.

Feeders periodically POST their local readsb counters. Whatever transport
receives those bodies hands them to ingest_heartbeat, which validates and
reconciles them before anything touches the feeder totals:

1. Validate the feeder UUID and look the feeder up
2. Parse the body into a HeartbeatPayload
3. Reconcile counters into deltas (cumulative readings tolerate resets)
4. Add the deltas to the feeder, stamp metadata and mark it online
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from feedernet.models import Feeder, utc_timestamp

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)

VERSION_MAX_LENGTH = 50


class HeartbeatError(ValueError):
    """Heartbeat body or feeder identifier failed validation."""


def validate_feeder_uuid(value: str) -> str:
    """Return the normalized (lowercase) UUID or raise HeartbeatError."""
    if not isinstance(value, str) or not UUID_PATTERN.match(value):
        raise HeartbeatError(f'Invalid feeder UUID: {value!r}')
    return value.lower()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _counter(data: dict, key: str) -> int:
    value = data.get(key)
    if not _is_number(value):
        return 0
    return max(0, int(value))


def _optional_counter(data: dict, key: str) -> Optional[int]:
    if not _is_number(data.get(key)):
        return None
    return _counter(data, key)


@dataclass
class HeartbeatPayload:
    """
    Validated heartbeat body.

    messages/positions are deltas since the feeder's previous report.
    messages_total/positions_total, when sent, are the receiver's
    cumulative counters and take precedence over the deltas.
    Missing or malformed counters default to 0; negatives clamp to 0.
    """
    messages: int = 0
    positions: int = 0
    messages_total: Optional[int] = None
    positions_total: Optional[int] = None
    aircraft_count: int = 0
    rssi: Optional[float] = None
    version: Optional[str] = None
    uptime: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> 'HeartbeatPayload':
        if not isinstance(data, dict):
            raise HeartbeatError('Heartbeat payload must be a JSON object')

        aircraft = data.get('aircraft')
        if not isinstance(aircraft, list):
            aircraft = []

        if 'aircraft_count' in data:
            aircraft_count = _counter(data, 'aircraft_count')
        else:
            aircraft_count = len(aircraft)

        rssi = data.get('rssi')
        if not _is_number(rssi) or not rssi:
            rssi = _average_rssi(aircraft)

        version = data.get('version')
        if isinstance(version, str):
            version = version.strip()[:VERSION_MAX_LENGTH] or None
        else:
            version = None

        return cls(
            messages=_counter(data, 'messages'),
            positions=_counter(data, 'positions'),
            messages_total=_optional_counter(data, 'messages_total'),
            positions_total=_optional_counter(data, 'positions_total'),
            aircraft_count=aircraft_count,
            rssi=float(rssi) if rssi is not None else None,
            version=version,
            uptime=_optional_counter(data, 'uptime'),
        )


def _average_rssi(aircraft: list) -> Optional[float]:
    """Mean of the negative (valid dBFS) RSSI samples, if any."""
    samples = [
        a['rssi'] for a in aircraft
        if isinstance(a, dict) and _is_number(a.get('rssi')) and a['rssi'] < 0
    ]
    if not samples:
        return None
    return sum(samples) / len(samples)


def reconcile_counters(previous: Optional[int], current: int) -> int:
    """
    Convert two cumulative readings into a delta.

    A reading below the previous one means the receiver restarted and its
    counter reset; the whole current reading is then new data.
    """
    if current < 0:
        return 0
    if previous is None or current < previous:
        return current
    return current - previous


def heartbeat_deltas(feeder: Feeder, payload: HeartbeatPayload) -> Tuple[int, int]:
    """(messages, positions) to add to the feeder's totals for this report."""
    if payload.messages_total is not None:
        messages = reconcile_counters(feeder.reported_messages, payload.messages_total)
    else:
        messages = payload.messages

    if payload.positions_total is not None:
        positions = reconcile_counters(feeder.reported_positions, payload.positions_total)
    else:
        positions = payload.positions

    return messages, positions


def apply_heartbeat(
    feeder_store,
    feeder: Feeder,
    payload: HeartbeatPayload,
    clock: Optional[Callable[[], int]] = None,
) -> Tuple[int, int]:
    """
    Attribute a validated heartbeat to a feeder.

    Increments totals by the reconciled deltas, raises the aircraft-seen
    high-water mark, records the cumulative readings and receiver
    metadata, stamps last_seen and marks the feeder online.
    Returns (messages, positions) applied.
    """
    messages, positions = heartbeat_deltas(feeder, payload)
    seen_at = (clock or utc_timestamp)()

    feeder_store.record_heartbeat(
        feeder.id,
        messages=messages,
        positions=positions,
        aircraft_count=payload.aircraft_count,
        seen_at=seen_at,
        metadata={
            'reported_messages': payload.messages_total,
            'reported_positions': payload.positions_total,
            'rssi': payload.rssi,
            'software_version': payload.version,
            'receiver_uptime': payload.uptime,
        },
    )
    logger.debug(
        f'Heartbeat for feeder {feeder.id}: +{messages} msgs, '
        f'+{positions} pos, {payload.aircraft_count} aircraft'
    )
    return messages, positions


def ingest_heartbeat(
    feeder_store,
    uuid: str,
    body: Any,
    clock: Optional[Callable[[], int]] = None,
) -> Tuple[int, int]:
    """
    Validate and apply one heartbeat body for the feeder `uuid`.

    Raises HeartbeatError for a malformed UUID, an unknown feeder or a
    non-object body. Returns (messages, positions) applied.
    """
    uuid = validate_feeder_uuid(uuid)

    feeder = feeder_store.get_feeder_by_uuid(uuid)
    if feeder is None:
        raise HeartbeatError(f'Unknown feeder: {uuid}')

    payload = HeartbeatPayload.from_json(body)
    return apply_heartbeat(feeder_store, feeder, payload, clock)
