"""
Event Bus

Inbox for the control flow. Worker threads (process watcher, timer ticker)
publish events from wherever they run; the control thread drains the inbox
with process_pending() and the handlers run there, one at a time.
"""

import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Tuple

# Event types
ENGINE_EXITED = "engine_exited"
TIMER_TICK = "timer_tick"


class EventBus:
    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.subscribers: Dict[str, List[Callable[[Any], None]]] = {}
        self.event_queue: "queue.Queue[Tuple[str, Any]]" = queue.Queue()
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, callback: Callable[[Any], None]) -> None:
        """Register a handler; handlers run on the thread that drains the inbox"""
        with self._lock:
            self.subscribers.setdefault(event_type, []).append(callback)
        self.logger.debug(f"Subscribed handler to {event_type}")

    def publish(self, event_type: str, data: Any = None) -> None:
        """Post an event. Safe to call from any thread; never blocks."""
        self.event_queue.put((event_type, data))

    def process_pending(self, timeout: float = 0.0) -> int:
        """
        Dispatch queued events on the calling thread.

        Args:
            timeout: How long to wait for the first event (0 = don't wait)

        Returns:
            Number of events dispatched
        """
        processed = 0
        block = timeout > 0

        while True:
            try:
                if block:
                    event_type, data = self.event_queue.get(timeout=timeout)
                    block = False
                else:
                    event_type, data = self.event_queue.get_nowait()
            except queue.Empty:
                return processed

            with self._lock:
                handlers = list(self.subscribers.get(event_type, []))

            for handler in handlers:
                try:
                    handler(data)
                except Exception as e:
                    self.logger.error(
                        f"Error handling {event_type}: {e}", exc_info=True
                    )

            processed += 1

    def clear(self) -> None:
        """Drop any undelivered events"""
        while True:
            try:
                self.event_queue.get_nowait()
            except queue.Empty:
                return
