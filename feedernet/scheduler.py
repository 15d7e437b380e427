"""
Periodic job runner.

Each pipeline job runs single-threaded on its own cadence. A PeriodicJob
wraps one job's run() in a loop on a daemon thread (start_background).
A failing run is logged and the loop waits for the next tick; there are
no in-run retries.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicJob:
    """Runs a callable every `interval` seconds."""

    def __init__(self, name: str, run: Callable[[], Any], interval: float):
        self.name = name
        self._run = run
        self.interval = interval

        # State tracking
        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_run_time: float = 0
        self._run_count: int = 0
        self._error_count: int = 0

    def run_once(self) -> Any:
        """
        Execute one run, swallowing and logging any error.

        Returns the job's result, or None if it raised.
        """
        started = time.perf_counter()
        try:
            result = self._run()
        except Exception as e:
            self._error_count += 1
            logger.error(f'{self.name} run failed: {e}')
            return None
        finally:
            self._run_count += 1
            self._last_run_time = time.time()

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f'{self.name} run finished in {elapsed_ms:.0f}ms')
        return result

    def _loop(self) -> None:
        logger.info(f'Starting {self.name} (interval={self.interval}s)')

        while self._running:
            self.run_once()
            self._stop_event.wait(self.interval)

        logger.info(f'{self.name} stopped')

    def start_background(self) -> None:
        """Start the loop in a daemon thread."""
        if self._thread and self._thread.is_alive():
            logger.warning(f'{self.name} already running')
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name=self.name,
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5) -> None:
        """Stop the loop and wait for the current run to finish."""
        self._running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)

    @property
    def stats(self) -> dict:
        """Get run statistics."""
        return {
            'name': self.name,
            'run_count': self._run_count,
            'error_count': self._error_count,
            'last_run_time': self._last_run_time,
            'interval': self.interval,
            'running': self._running,
        }
