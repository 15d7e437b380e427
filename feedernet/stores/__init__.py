"""
Store layer for FeederNet.

Thin SQLAlchemy-backed collaborators injected into each batch job.
Each store wraps a session factory; jobs never touch sessions directly.
"""

from feedernet.stores.positions import PositionStore
from feedernet.stores.flights import FlightStore
from feedernet.stores.feeders import FeederStore, FeederStatsStore

__all__ = ['PositionStore', 'FlightStore', 'FeederStore', 'FeederStatsStore']
