import logging
import threading
from typing import Callable, Dict, Optional


class TickHandle:
    """Cancellation handle for one room's periodic task."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        # Safe to call any number of times
        self._cancelled.set()


class TickScheduler:
    """Owns one periodic background task per active room.

    - ``spawn``/``sleep`` come from the Socket.IO server so the tasks run on
      whatever async mode it picked (threading, eventlet, gevent)
    - ``enabled=False`` keeps handle bookkeeping but never spawns work; tests
      drive ticks and delayed callbacks by hand
    """

    def __init__(self, spawn: Callable, sleep: Callable, interval: float = 1.0,
                 enabled: bool = True, logger: Optional[logging.Logger] = None):
        self._spawn = spawn
        self._sleep = sleep
        self.interval = interval
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)
        self._handles: Dict[str, TickHandle] = {}
        self._lock = threading.Lock()

    def start(self, room_id: str, callback: Callable[[str, TickHandle], None]) -> TickHandle:
        """Start ticking ``room_id``, replacing any task it already had."""
        handle = TickHandle(room_id)
        with self._lock:
            previous = self._handles.get(room_id)
            self._handles[room_id] = handle
        if previous is not None:
            previous.cancel()
        self.logger.info(f"[tick-start] room={room_id} interval={self.interval}s enabled={self.enabled}")
        if self.enabled:
            self._spawn(self._run, handle, callback)
        return handle

    def stop(self, room_id: str) -> bool:
        """Cancel the room's task. Returns False when nothing was running."""
        with self._lock:
            handle = self._handles.pop(room_id, None)
        if handle is None:
            return False
        handle.cancel()
        self.logger.info(f"[tick-stop] room={room_id}")
        return True

    def is_running(self, room_id: str) -> bool:
        with self._lock:
            handle = self._handles.get(room_id)
        return handle is not None and not handle.cancelled

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for h in self._handles.values() if not h.cancelled)

    def call_later(self, delay: float, callback: Callable, *args) -> None:
        """Run ``callback(*args)`` once after ``delay`` seconds."""
        if not self.enabled:
            return

        def _runner():
            self._sleep(delay)
            try:
                callback(*args)
            except Exception:
                self.logger.exception(f"[timer-fail] delayed callback {getattr(callback, '__name__', callback)} failed")

        self._spawn(_runner)

    def _run(self, handle: TickHandle, callback: Callable[[str, TickHandle], None]) -> None:
        while True:
            self._sleep(self.interval)
            if handle.cancelled:
                return
            try:
                callback(handle.room_id, handle)
            except Exception:
                self.logger.exception(f"[tick-fail] room={handle.room_id}")
