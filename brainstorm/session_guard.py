"""
In-flight guard: at most one running turn per key (conversation or session store).

A second submission for a key whose turn is still being
processed is rejected with TurnInProgressError rather than queued.
"""

import logging
import threading
from contextlib import contextmanager

from brainstorm.errors import TurnInProgressError

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Tracks keys with a turn currently running"""

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight = set()

    @contextmanager
    def acquire(self, key: str):
        """
        Hold the turn slot for key for the duration of the block.

        Raises:
            TurnInProgressError: If a turn for key is already running
        """
        with self._lock:
            if key in self._in_flight:
                logger.warning(f"Rejected concurrent turn for {key}")
                raise TurnInProgressError(
                    f"A turn is already in progress for {key}"
                )
            self._in_flight.add(key)

        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)
