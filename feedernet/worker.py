"""
FeederNet pipeline worker.

Main entry point for the batch jobs. Initializes:
- Configuration validation (fatal on error)
- Database schema
- Stores and the readsb client
- One PeriodicJob per pipeline component

Usage:
    python -m feedernet.worker all            # every job, each on its own thread
    python -m feedernet.worker segmenter      # one job, looping at its cadence
    python -m feedernet.worker scoring --once # single run, for cron-style scheduling
"""

import argparse
import logging
import signal
import sys
import threading
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from feedernet.config import AppConfig, ConfigError, config, validate_config
from feedernet.models import create_db_engine, create_session_factory, init_db
from feedernet.stores import PositionStore, FlightStore, FeederStore, FeederStatsStore
from feedernet.ingestion import ReadsbClient, PositionRecorder
from feedernet.analytics import FlightSegmenter, LivenessAggregator, ScoringEngine
from feedernet.scheduler import PeriodicJob

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)

JOB_NAMES = ('recorder', 'segmenter', 'liveness', 'scoring')


def build_jobs(
    cfg: AppConfig,
    session_factory: sessionmaker,
    client: Optional[ReadsbClient] = None,
) -> Dict[str, PeriodicJob]:
    """
    Wire stores and clients into the four pipeline jobs.

    Jobs share nothing in-process except the session factory; all
    coordination goes through the database.
    """
    client = client or ReadsbClient(
        stats_url=cfg.telemetry.stats_url,
        aircraft_url=cfg.telemetry.aircraft_url,
        timeout=cfg.telemetry.timeout_seconds,
    )
    positions = PositionStore(session_factory)
    flights = FlightStore(session_factory)
    feeders = FeederStore(session_factory)
    stats = FeederStatsStore(session_factory)

    recorder = PositionRecorder(client, positions)
    segmenter = FlightSegmenter(positions, flights, cfg.segmentation)
    liveness = LivenessAggregator(feeders, client, cfg.liveness)
    scoring = ScoringEngine(feeders, stats, cfg.scoring)

    return {
        'recorder': PeriodicJob('recorder', recorder.run, cfg.recorder.interval_seconds),
        'segmenter': PeriodicJob('segmenter', segmenter.run, cfg.segmentation.interval_seconds),
        'liveness': PeriodicJob('liveness', liveness.run, cfg.liveness.interval_seconds),
        'scoring': PeriodicJob('scoring', scoring.run, cfg.scoring.interval_seconds),
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='feedernet-worker', description='FeederNet pipeline worker')
    parser.add_argument('job', choices=JOB_NAMES + ('all',), help='Job to run')
    parser.add_argument('--once', action='store_true', help='Run a single pass and exit')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, cfg: Optional[AppConfig] = None) -> int:
    args = parse_args(argv)
    cfg = cfg or config

    try:
        validate_config(cfg)
    except ConfigError as e:
        logger.error(f'Configuration error: {e}')
        return 2

    logger.info('Initializing database...')
    engine = create_db_engine(
        cfg.database.url,
        echo=cfg.debug,
        pool_timeout=cfg.database.pool_timeout_seconds,
    )
    init_db(engine)

    jobs = build_jobs(cfg, create_session_factory(engine))
    selected = list(JOB_NAMES) if args.job == 'all' else [args.job]

    if args.once:
        failed = 0
        for name in selected:
            job = jobs[name]
            job.run_once()
            failed += job.stats['error_count']
        return 1 if failed else 0

    stop = threading.Event()

    def handle_signal(signum, frame):
        logger.info('Shutting down...')
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    for name in selected:
        jobs[name].start_background()

    stop.wait()

    for name in selected:
        jobs[name].stop()

    return 0


if __name__ == '__main__':
    sys.exit(main())
