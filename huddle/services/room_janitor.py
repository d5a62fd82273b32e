"""
Background janitor that drops rooms nobody has touched for their TTL.

Runs as a daemon thread so an abandoned session does not keep its segment
log in memory forever.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from huddle.services.room_store import RoomStore

_logger = logging.getLogger(__name__)


class RoomJanitor:
    def __init__(self, room_store: "RoomStore", *, interval: float = 60.0) -> None:
        self._room_store = room_store
        self._interval = interval
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the sweep thread."""
        if self._running:
            _logger.warning("RoomJanitor already running")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop,
            name="RoomJanitor",
            daemon=True,
        )
        self._thread.start()
        _logger.info("RoomJanitor started interval=%.0fs", self._interval)

    def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        _logger.info("RoomJanitor stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                expired = self._room_store.sweep_expired()
                if expired:
                    _logger.info("RoomJanitor expired %d room(s): %s", len(expired), expired)
            except Exception:
                _logger.exception("RoomJanitor sweep failed")
