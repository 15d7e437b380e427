"""
Configuration management for FeederNet.

Loads settings from environment variables with sensible defaults.
Every pipeline tunable (windows, thresholds, cadences, scoring weights)
lives here so jobs never hard-code them.
"""

import math
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class ConfigError(Exception):
    """Fatal configuration problem detected at startup."""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///feedernet.db')
    pool_timeout_seconds: int = int(os.getenv('DB_POOL_TIMEOUT_SECONDS', '30'))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class TelemetryConfig:
    """readsb telemetry feed endpoints."""
    stats_url: str = os.getenv('READSB_STATS_URL', 'http://localhost:8080/data/stats.json')
    aircraft_url: str = os.getenv('READSB_JSON_URL', 'http://localhost:8080/data/aircraft.json')
    timeout_seconds: float = float(os.getenv('TELEMETRY_TIMEOUT_SECONDS', '10'))


@dataclass(frozen=True)
class RecorderConfig:
    """Position recorder cadence."""
    interval_seconds: int = int(os.getenv('RECORDER_INTERVAL_SECONDS', '10'))


@dataclass(frozen=True)
class SegmentationConfig:
    """Flight segmentation settings."""
    lookback_minutes: int = int(os.getenv('LOOKBACK_MINUTES', '30'))
    gap_threshold_minutes: int = int(os.getenv('GAP_THRESHOLD_MINUTES', '15'))
    downsample_interval_seconds: int = int(os.getenv('DOWNSAMPLE_INTERVAL_SECONDS', '30'))
    altitude_change_threshold_ft: int = int(os.getenv('ALTITUDE_CHANGE_THRESHOLD_FT', '500'))
    dedup_tolerance_seconds: int = int(os.getenv('DEDUP_TOLERANCE_SECONDS', '60'))
    interval_seconds: int = int(os.getenv('SEGMENTER_INTERVAL_SECONDS', '300'))

    @property
    def lookback_seconds(self) -> int:
        return self.lookback_minutes * 60

    @property
    def gap_threshold_seconds(self) -> int:
        return self.gap_threshold_minutes * 60


@dataclass(frozen=True)
class LivenessConfig:
    """Feeder liveness aggregator settings."""
    interval_seconds: int = int(os.getenv('LIVENESS_INTERVAL_SECONDS', '60'))
    offline_threshold_minutes: int = int(os.getenv('OFFLINE_THRESHOLD_MINUTES', '5'))

    @property
    def offline_threshold_seconds(self) -> int:
        return self.offline_threshold_minutes * 60


@dataclass(frozen=True)
class ScoringConfig:
    """
    Scoring and ranking settings.

    Each metric is normalized against its target (target = score of 100)
    and capped at 100 before weighting. Weights must sum to 1.0.
    """
    snapshot_interval_minutes: int = int(os.getenv('SNAPSHOT_INTERVAL_MINUTES', '60'))
    uptime_window_hours: int = int(os.getenv('UPTIME_WINDOW_HOURS', '24'))
    retention_days: int = int(os.getenv('STATS_RETENTION_DAYS', '30'))

    uptime_weight: float = float(os.getenv('SCORE_UPTIME_WEIGHT', '0.30'))
    message_rate_weight: float = float(os.getenv('SCORE_MESSAGE_RATE_WEIGHT', '0.25'))
    position_rate_weight: float = float(os.getenv('SCORE_POSITION_RATE_WEIGHT', '0.25'))
    aircraft_weight: float = float(os.getenv('SCORE_AIRCRAFT_WEIGHT', '0.20'))

    message_rate_target: float = float(os.getenv('SCORE_MESSAGE_RATE_TARGET', '1000'))  # messages/min
    position_rate_target: float = float(os.getenv('SCORE_POSITION_RATE_TARGET', '500'))  # positions/min
    aircraft_target: float = float(os.getenv('SCORE_AIRCRAFT_TARGET', '50'))

    def __post_init__(self):
        weights = (
            self.uptime_weight, self.message_rate_weight,
            self.position_rate_weight, self.aircraft_weight,
        )
        if any(w < 0 for w in weights):
            raise ConfigError(f'Scoring weights must not be negative, got {weights}')
        total = sum(weights)
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ConfigError(f'Scoring weights must sum to 1.0, got {total:.4f}')

        targets = {
            'SCORE_MESSAGE_RATE_TARGET': self.message_rate_target,
            'SCORE_POSITION_RATE_TARGET': self.position_rate_target,
            'SCORE_AIRCRAFT_TARGET': self.aircraft_target,
        }
        for name, value in targets.items():
            if value <= 0:
                raise ConfigError(f'{name} must be positive, got {value}')

    @property
    def interval_seconds(self) -> int:
        return self.snapshot_interval_minutes * 60

    @property
    def expected_snapshots(self) -> float:
        """Snapshots expected in the uptime window at the nominal cadence."""
        return self.uptime_window_hours * 60 / self.snapshot_interval_minutes

    @property
    def retention_seconds(self) -> int:
        return self.retention_days * 24 * 3600


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    telemetry: TelemetryConfig
    recorder: RecorderConfig
    segmentation: SegmentationConfig
    liveness: LivenessConfig
    scoring: ScoringConfig

    environment: str
    internal_secret: Optional[str]
    debug: bool

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'


def load_config() -> AppConfig:
    """Load all configuration from the environment."""
    return AppConfig(
        database=DatabaseConfig(),
        telemetry=TelemetryConfig(),
        recorder=RecorderConfig(),
        segmentation=SegmentationConfig(),
        liveness=LivenessConfig(),
        scoring=ScoringConfig(),
        environment=os.getenv('APP_ENV', 'development').lower(),
        internal_secret=os.getenv('INTERNAL_CRON_SECRET') or None,
        debug=os.getenv('DEBUG', '0') == '1',
    )


def validate_config(cfg: AppConfig) -> None:
    """
    Reject configurations the workers cannot run with.

    Raises ConfigError. Called once at worker startup; never retried.
    """
    if cfg.is_production and not cfg.internal_secret:
        raise ConfigError('INTERNAL_CRON_SECRET must be set when APP_ENV=production')

    positive = {
        'RECORDER_INTERVAL_SECONDS': cfg.recorder.interval_seconds,
        'LOOKBACK_MINUTES': cfg.segmentation.lookback_minutes,
        'GAP_THRESHOLD_MINUTES': cfg.segmentation.gap_threshold_minutes,
        'DOWNSAMPLE_INTERVAL_SECONDS': cfg.segmentation.downsample_interval_seconds,
        'SEGMENTER_INTERVAL_SECONDS': cfg.segmentation.interval_seconds,
        'LIVENESS_INTERVAL_SECONDS': cfg.liveness.interval_seconds,
        'OFFLINE_THRESHOLD_MINUTES': cfg.liveness.offline_threshold_minutes,
        'SNAPSHOT_INTERVAL_MINUTES': cfg.scoring.snapshot_interval_minutes,
        'UPTIME_WINDOW_HOURS': cfg.scoring.uptime_window_hours,
        'STATS_RETENTION_DAYS': cfg.scoring.retention_days,
        'TELEMETRY_TIMEOUT_SECONDS': cfg.telemetry.timeout_seconds,
    }
    for name, value in positive.items():
        if value <= 0:
            raise ConfigError(f'{name} must be positive, got {value}')


# Singleton instance
config = load_config()
