"""
Feeder scoring and ranking using NumPy.

Runs hourly. For every online feeder:
1. Deltas: messages/positions since the previous snapshot (full totals
   for a feeder's first snapshot), clamped at zero for counter resets
2. Rates: delta / snapshot interval in minutes
3. Uptime: snapshots in the trailing window over the number expected at
   one per interval, capped at 100%
4. Score: each metric normalized against its target, capped at 100,
   combined with fixed weights and rounded
5. Persist: snapshot row + feeder.current_score

Then every feeder is re-ranked by score (current rank shifts into
previous rank) and snapshots past the retention window are deleted.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np

from feedernet.config import ScoringConfig, config
from feedernet.models import Feeder, FeederStats, utc_timestamp

logger = logging.getLogger(__name__)


@dataclass
class RankAssignment:
    """New rank for one feeder."""
    feeder_id: int
    previous_rank: Optional[int]
    current_rank: int


@dataclass
class ScoringResult:
    """Outcome of one scoring run."""
    scored: int = 0
    failed: int = 0
    ranked: int = 0
    pruned: int = 0


# -------------------------------------------------------------------------
# Transform stage (pure functions)
# -------------------------------------------------------------------------

def snapshot_delta(current_total: int, previous_total: Optional[int]) -> int:
    """
    Counter growth since the previous snapshot, never negative.

    With no previous snapshot the full running total counts.
    """
    if previous_total is None:
        return max(0, current_total)
    return max(0, current_total - previous_total)


def per_minute_rate(delta: int, interval_minutes: int = 60) -> float:
    return delta / interval_minutes


def uptime_percent(snapshot_count: int, expected_snapshots: float = 24) -> float:
    """Share of expected snapshots observed, capped at 100."""
    if expected_snapshots <= 0:
        return 0.0
    return min(100.0, snapshot_count / expected_snapshots * 100)


def normalize_metrics(
    uptime: float,
    message_rate: float,
    position_rate: float,
    aircraft: float,
    settings: ScoringConfig,
) -> np.ndarray:
    """Each metric scaled so its target maps to 100, clipped to [0, 100]."""
    values = np.array([uptime, message_rate, position_rate, aircraft], dtype=np.float64)
    targets = np.array([
        100.0,
        settings.message_rate_target,
        settings.position_rate_target,
        settings.aircraft_target,
    ])
    return np.clip(values / targets * 100, 0.0, 100.0)


def composite_score(
    uptime: float,
    message_rate: float,
    position_rate: float,
    aircraft: float,
    settings: Optional[ScoringConfig] = None,
) -> int:
    """Weighted sum of normalized metrics, rounded half-up to an int in [0, 100]."""
    settings = settings or config.scoring
    weights = np.array([
        settings.uptime_weight,
        settings.message_rate_weight,
        settings.position_rate_weight,
        settings.aircraft_weight,
    ])
    normalized = normalize_metrics(uptime, message_rate, position_rate, aircraft, settings)
    weighted = float(np.dot(normalized, weights))

    # Round half-up; the small epsilon absorbs float error at exact .5 / 100
    score = int(math.floor(weighted + 0.5 + 1e-9))
    return max(0, min(100, score))


def rank_feeders(feeders: Sequence[Feeder]) -> List[RankAssignment]:
    """
    Order every feeder by current score, best first.

    Unscored feeders rank after all scored ones. Ties are broken by
    lifetime messages, then id, so the ordering is stable between runs.
    """
    def sort_key(f: Feeder):
        score = f.current_score if f.current_score is not None else -1
        return (-score, -(f.messages_total or 0), f.id)

    ordered = sorted(feeders, key=sort_key)
    return [
        RankAssignment(feeder_id=f.id, previous_rank=f.current_rank, current_rank=rank)
        for rank, f in enumerate(ordered, start=1)
    ]


# -------------------------------------------------------------------------
# Job
# -------------------------------------------------------------------------

class ScoringEngine:
    """Batch job producing hourly snapshots, scores and network ranks."""

    def __init__(
        self,
        feeder_store,
        stats_store,
        settings: Optional[ScoringConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.feeders = feeder_store
        self.stats = stats_store
        self.settings = settings or config.scoring
        self.clock = clock or utc_timestamp

    def run(self) -> ScoringResult:
        now = self.clock()
        result = ScoringResult()

        online = self.feeders.list_feeders(online=True)
        logger.info(f'Scoring {len(online)} online feeders')

        for feeder in online:
            try:
                snapshot = self.score_feeder(feeder, now)
                result.scored += 1
                logger.info(
                    f'Snapshot for {feeder.name}: {snapshot["messages"]:,} msgs, '
                    f'{snapshot["positions"]:,} pos, uptime {snapshot["uptime_percent"]:.0f}%, '
                    f'score {snapshot["score"]}'
                )
            except Exception as e:
                result.failed += 1
                logger.error(f'Scoring failed for feeder {feeder.id}: {e}')

        result.ranked = self.rerank()

        cutoff = now - self.settings.retention_seconds
        result.pruned = self.stats.delete_older_than(cutoff)
        if result.pruned:
            logger.info(f'Cleaned up {result.pruned} old snapshots')

        return result

    def build_snapshot(
        self,
        feeder: Feeder,
        latest: Optional[FeederStats],
        snapshots_in_window: int,
        now: int,
    ) -> dict:
        """Compute the snapshot row for one feeder."""
        interval = self.settings.snapshot_interval_minutes

        messages = snapshot_delta(
            feeder.messages_total, latest.messages_total if latest else None
        )
        positions = snapshot_delta(
            feeder.positions_total, latest.positions_total if latest else None
        )
        message_rate = per_minute_rate(messages, interval)
        position_rate = per_minute_rate(positions, interval)
        uptime = uptime_percent(snapshots_in_window, self.settings.expected_snapshots)
        score = composite_score(
            uptime, message_rate, position_rate, feeder.aircraft_seen, self.settings
        )

        return {
            'feeder_id': feeder.id,
            'timestamp': now,
            'messages': messages,
            'positions': positions,
            'aircraft': feeder.aircraft_seen,
            'messages_total': feeder.messages_total,
            'positions_total': feeder.positions_total,
            'message_rate': message_rate,
            'position_rate': position_rate,
            'uptime_percent': uptime,
            'score': score,
        }

    def score_feeder(self, feeder: Feeder, now: int) -> dict:
        """Snapshot and score one feeder."""
        latest = self.stats.latest_snapshot(feeder.id)
        window_start = now - self.settings.uptime_window_hours * 3600
        observed = self.stats.count_snapshots_since(feeder.id, window_start)

        snapshot = self.build_snapshot(feeder, latest, observed, now)
        self.stats.create_snapshot(snapshot)
        self.feeders.update_feeder_score(feeder.id, snapshot['score'])
        return snapshot

    def rerank(self) -> int:
        """Assign network-wide ranks. Returns number of feeders ranked."""
        assignments = rank_feeders(self.feeders.list_feeders())

        for a in assignments:
            try:
                self.feeders.update_feeder_rank(a.feeder_id, a.previous_rank, a.current_rank)
            except Exception as e:
                logger.error(f'Rank update failed for feeder {a.feeder_id}: {e}')

        logger.info(f'Ranked {len(assignments)} feeders')
        return len(assignments)
