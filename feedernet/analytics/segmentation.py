"""
Flight segmentation - reconstructs discrete flights from raw positions.

Each run looks back over a short window (default 30 minutes) and, per
aircraft:

1. Fetch: positions since the cutoff, ordered by timestamp
2. Split: start a new segment wherever consecutive positions are more
   than the gap threshold apart; drop segments with fewer than 2 points
3. Dedup: skip segments starting within the tolerance of an existing
   flight for the same aircraft, or anywhere inside its time span
4. Summarize: max altitude, haversine path length, duration, callsign
5. Downsample: keep ~1 point per 30s plus significant altitude changes
6. Persist the flight record

Each run's lookback window overlaps the previous run's tail,
so the dedup step is what makes re-running safe.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from feedernet.analytics.geo import path_distance_nm
from feedernet.config import SegmentationConfig, config
from feedernet.models import AircraftPosition, utc_timestamp

logger = logging.getLogger(__name__)

Segment = List[AircraftPosition]


@dataclass
class FlightStats:
    """Summary statistics for one segment."""
    max_altitude: Optional[int]
    total_distance_nm: float
    duration_secs: int
    callsign: Optional[str]


@dataclass
class SegmentationResult:
    """Outcome of one segmentation run."""
    aircraft: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0


# -------------------------------------------------------------------------
# Transform stage (pure functions)
# -------------------------------------------------------------------------

def split_segments(positions: Sequence[AircraftPosition], gap_seconds: int) -> List[Segment]:
    """
    Split time-ordered positions wherever the gap exceeds gap_seconds.

    Segments with fewer than 2 points are dropped. Raises ValueError if
    the input is not ordered by timestamp.
    """
    if not positions:
        return []

    segments: List[Segment] = []
    current: Segment = [positions[0]]

    for prev, pos in zip(positions, positions[1:]):
        gap = pos.timestamp - prev.timestamp
        if gap < 0:
            raise ValueError(
                f'Positions for {pos.hex} are not ordered by timestamp '
                f'({prev.timestamp} -> {pos.timestamp})'
            )

        if gap > gap_seconds:
            if len(current) >= 2:
                segments.append(current)
            current = [pos]
        else:
            current.append(pos)

    if len(current) >= 2:
        segments.append(current)

    return segments


def _compact(pos: AircraftPosition) -> dict:
    return {
        'lat': pos.lat,
        'lon': pos.lon,
        'alt': pos.altitude,
        'hdg': pos.heading,
        'spd': pos.speed,
        'ts': pos.timestamp,
    }


def downsample_track(
    segment: Sequence[AircraftPosition],
    interval_seconds: int = 30,
    altitude_threshold_ft: int = 500,
) -> List[dict]:
    """
    Reduce a segment to compact track points.

    First and last points are always kept. An interior point is kept when
    at least interval_seconds have passed since the last kept point, or
    its altitude differs from the last kept altitude by more than
    altitude_threshold_ft (only when both altitudes are known).
    """
    if not segment:
        return []
    if len(segment) <= 2:
        return [_compact(p) for p in segment]

    track = [_compact(segment[0])]
    last_kept = segment[0]

    for pos in segment[1:-1]:
        keep_by_time = pos.timestamp - last_kept.timestamp >= interval_seconds

        keep_by_altitude = False
        if pos.altitude is not None and last_kept.altitude is not None:
            keep_by_altitude = abs(pos.altitude - last_kept.altitude) > altitude_threshold_ft

        if keep_by_time or keep_by_altitude:
            track.append(_compact(pos))
            last_kept = pos

    track.append(_compact(segment[-1]))
    return track


def compute_flight_stats(segment: Sequence[AircraftPosition]) -> FlightStats:
    """Max altitude, path length, duration and latest callsign of a segment."""
    altitudes = [p.altitude for p in segment if p.altitude is not None]

    callsign = None
    for pos in segment:
        if pos.callsign and pos.callsign.strip():
            callsign = pos.callsign.strip()

    return FlightStats(
        max_altitude=max(altitudes) if altitudes else None,
        total_distance_nm=path_distance_nm(
            [p.lat for p in segment],
            [p.lon for p in segment],
        ),
        duration_secs=int(segment[-1].timestamp - segment[0].timestamp),
        callsign=callsign,
    )


def build_flight_record(
    hex: str,
    segment: Sequence[AircraftPosition],
    settings: SegmentationConfig,
) -> dict:
    """Assemble the flight row for a segment."""
    stats = compute_flight_stats(segment)
    track = downsample_track(
        segment,
        interval_seconds=settings.downsample_interval_seconds,
        altitude_threshold_ft=settings.altitude_change_threshold_ft,
    )
    first, last = segment[0], segment[-1]

    return {
        'hex': hex,
        'callsign': stats.callsign,
        'start_time': first.timestamp,
        'end_time': last.timestamp,
        'duration_secs': stats.duration_secs,
        'max_altitude': stats.max_altitude,
        'total_distance': round(stats.total_distance_nm, 1),
        'position_count': len(track),
        'start_lat': first.lat,
        'start_lon': first.lon,
        'end_lat': last.lat,
        'end_lon': last.lon,
        'positions': track,
    }


# -------------------------------------------------------------------------
# Job
# -------------------------------------------------------------------------

class FlightSegmenter:
    """
    Batch job turning recent positions into Flight records.

    Depends only on a position store (read) and a flight store
    (dedup lookup + create). Safe to re-run over overlapping windows.
    """

    def __init__(
        self,
        position_store,
        flight_store,
        settings: Optional[SegmentationConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.positions = position_store
        self.flights = flight_store
        self.settings = settings or config.segmentation
        self.clock = clock or utc_timestamp

    def run(self) -> SegmentationResult:
        """
        Execute one segmentation pass over the lookback window.

        A failure on one aircraft is logged and does not stop the run.
        """
        cutoff = self.clock() - self.settings.lookback_seconds
        result = SegmentationResult()

        hexes = self.positions.distinct_hexes_since(cutoff)
        result.aircraft = len(hexes)
        logger.info(
            f'Segmenting {len(hexes)} aircraft since {cutoff} '
            f'(gap threshold {self.settings.gap_threshold_minutes} min)'
        )

        for processed, hex in enumerate(hexes, start=1):
            try:
                created, skipped = self.segment_hex(hex, cutoff)
                result.created += created
                result.skipped += skipped
                if created:
                    logger.info(f'{hex}: created {created} flight(s)')
            except Exception as e:
                result.failed += 1
                logger.error(f'Segmentation failed for {hex}: {e}')

            if processed % 100 == 0:
                logger.info(f'Progress: {processed}/{len(hexes)}')

        logger.info(
            f'Segmentation complete: {result.created} created, '
            f'{result.skipped} duplicates skipped, {result.failed} failed'
        )
        return result

    def segment_hex(self, hex: str, cutoff: int) -> tuple:
        """
        Segment one aircraft's recent history.

        Returns (created, skipped). Store errors propagate to run().
        """
        positions = self.positions.query_positions(hex=hex, since=cutoff, ascending=True)
        if len(positions) < 2:
            return 0, 0

        created = skipped = 0
        for segment in split_segments(positions, self.settings.gap_threshold_seconds):
            start_time = segment[0].timestamp
            if self.flights.flight_exists_near(
                hex, start_time, self.settings.dedup_tolerance_seconds
            ):
                skipped += 1
                continue

            self.flights.create_flight(build_flight_record(hex, segment, self.settings))
            created += 1

        return created, skipped
