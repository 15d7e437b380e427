"""
FeederNet pipeline package.

Batch analytics for a community ADS-B feeder network, built with
SQLAlchemy, NumPy and requests.

Modules:
    models/      SQLAlchemy ORM models (AircraftPosition, Flight, Feeder, FeederStats)
    stores/      Store objects over the models, injected into each job
    ingestion/   readsb client, position recorder, heartbeat validation
    analytics/   Flight segmentation, feeder liveness, scoring and ranking
    scheduler.py Periodic job loop
    worker.py    Command-line entry point for the jobs
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
