"""
Feeder liveness and stats aggregator.

Runs every minute:
1. Fetch receiver counters from readsb
   - unreachable: mark every online feeder offline and stop (no data means
     nothing is live)
2. If any messages arrived in the last minute, set each attributed
   feeder's totals from the cumulative counters and mark it seen
3. Mark feeders not seen within the offline threshold as offline
4. Re-derive FREE/FEEDER user tiers from the online set

readsb doesn't tag counters per feeder, so by default every feeder is
credited with the whole feed. A feeder_filter narrows attribution.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from feedernet.config import LivenessConfig, config
from feedernet.ingestion.readsb_client import ReceiverStats, TelemetryUnavailable
from feedernet.models import Feeder, utc_timestamp

logger = logging.getLogger(__name__)


@dataclass
class LivenessResult:
    """Outcome of one aggregator cycle."""
    reachable: bool = True
    receiving: bool = False
    updated: int = 0
    failed: int = 0
    marked_offline: int = 0
    upgraded: List[str] = field(default_factory=list)
    downgraded: List[str] = field(default_factory=list)


def totals_from_stats(stats: ReceiverStats, now: int) -> dict:
    """
    Feeder field values for a cycle with fresh data.

    Totals are set from cumulative counters rather than incremented.
    """
    return {
        'messages_total': stats.messages_total,
        'positions_total': stats.positions_total,
        'aircraft_seen': stats.aircraft_tracked,
        'last_seen': now,
        'is_online': True,
    }


class LivenessAggregator:
    """Batch job keeping feeder totals and online state current."""

    def __init__(
        self,
        feeder_store,
        telemetry_client,
        settings: Optional[LivenessConfig] = None,
        feeder_filter: Optional[Callable[[Feeder], bool]] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.feeders = feeder_store
        self.client = telemetry_client
        self.settings = settings or config.liveness
        self.feeder_filter = feeder_filter
        self.clock = clock or utc_timestamp

    def run(self) -> LivenessResult:
        now = self.clock()
        result = LivenessResult()

        try:
            stats = self.client.get_stats()
        except TelemetryUnavailable as e:
            result.reachable = False
            online_ids = [f.id for f in self.feeders.list_feeders(online=True)]
            result.marked_offline = self.feeders.set_online(online_ids, False)
            logger.warning(
                f'No stats available from telemetry feed ({e}); '
                f'marked {result.marked_offline} feeders offline'
            )
            return result

        feeders = self.feeders.list_feeders()
        if not feeders:
            logger.info('No feeders registered')
            return result

        result.receiving = stats.is_receiving
        if stats.is_receiving:
            self._attribute_totals(feeders, stats, now, result)
        else:
            logger.info('No data received in last minute')

        cutoff = now - self.settings.offline_threshold_seconds
        stale_ids = self.feeders.stale_online_feeder_ids(cutoff)
        result.marked_offline = self.feeders.set_online(stale_ids, False)
        if result.marked_offline:
            logger.info(f'Marked {result.marked_offline} feeders as offline')

        result.upgraded, result.downgraded = self.feeders.sync_user_tiers()
        for email in result.upgraded:
            logger.info(f'Upgraded {email} to FEEDER tier')
        for email in result.downgraded:
            logger.info(f'Downgraded {email} to FREE tier')

        self._log_network_totals()
        return result

    def _attribute_totals(
        self,
        feeders: List[Feeder],
        stats: ReceiverStats,
        now: int,
        result: LivenessResult,
    ) -> None:
        totals = totals_from_stats(stats, now)

        for feeder in feeders:
            if self.feeder_filter and not self.feeder_filter(feeder):
                continue
            try:
                self.feeders.update_feeder_totals(feeder.id, totals)
                result.updated += 1
                logger.debug(
                    f'Updated {feeder.name}: {stats.messages_total:,} msgs, '
                    f'{stats.positions_total:,} pos, {stats.aircraft_tracked} aircraft'
                )
            except Exception as e:
                result.failed += 1
                logger.error(f'Failed to update totals for feeder {feeder.id}: {e}')

    def _log_network_totals(self) -> None:
        totals = self.feeders.network_totals()
        logger.info(
            f'Network: {totals["online"]}/{totals["feeders"]} feeders online, '
            f'{totals["messages"]:,} msgs, {totals["positions"]:,} pos, '
            f'{totals["aircraft"]} aircraft'
        )
