"""
Analytics module for FeederNet.

Batch jobs that turn the raw telemetry stream into derived records:
- segmentation: positions -> discrete flights
- liveness: receiver counters -> feeder totals and online state
- scoring: feeder totals -> hourly snapshots, scores and ranks
"""

from feedernet.analytics.geo import haversine_nm, path_distance_nm
from feedernet.analytics.segmentation import FlightSegmenter, SegmentationResult
from feedernet.analytics.liveness import LivenessAggregator, LivenessResult
from feedernet.analytics.scoring import ScoringEngine, ScoringResult

__all__ = [
    'haversine_nm',
    'path_distance_nm',
    'FlightSegmenter',
    'SegmentationResult',
    'LivenessAggregator',
    'LivenessResult',
    'ScoringEngine',
    'ScoringResult',
]
