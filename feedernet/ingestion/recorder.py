"""
Position recorder - samples the live aircraft feed into the position store.

Each cycle:
1. Fetch: aircraft.json from readsb
2. Filter: drop entries without a valid hex or position (done by the client)
3. Append: one row per aircraft, all stamped with the capture time
"""

import logging
from typing import Callable, Optional

from feedernet.ingestion.readsb_client import ReadsbClient, TelemetryUnavailable
from feedernet.models import utc_timestamp

logger = logging.getLogger(__name__)


class PositionRecorder:
    """Append-only sampler of live aircraft positions."""

    def __init__(
        self,
        client: ReadsbClient,
        position_store,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.client = client
        self.positions = position_store
        self.clock = clock or utc_timestamp

    def run(self) -> int:
        """
        Record one sample.

        Returns count of positions appended; 0 when the feed is
        unreachable or empty.
        """
        try:
            _, reports = self.client.get_aircraft()
        except TelemetryUnavailable as e:
            logger.warning(f'Skipping position sample, feed unavailable: {e}')
            return 0

        if not reports:
            logger.debug('No aircraft with positions')
            return 0

        captured_at = self.clock()
        records = [
            {
                'hex': r.hex,
                'lat': r.lat,
                'lon': r.lon,
                'altitude': r.altitude,
                'heading': r.heading,
                'speed': r.speed,
                'squawk': r.squawk,
                'callsign': r.callsign,
                'timestamp': captured_at,
            }
            for r in reports
        ]

        recorded = self.positions.append_positions(records)
        logger.info(f'Recorded {recorded} aircraft positions')
        return recorded
