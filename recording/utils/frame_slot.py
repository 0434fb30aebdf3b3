"""
Latest Frame Slot

Single-slot buffer for the most recent preview frame.

The capture thread replaces the contents; the control thread reads a copy
for snapshots. Last write wins, at most one frame is held, never a queue.
"""

import copy
import logging
import threading
from typing import Any, Optional


def _dispose(frame: Any) -> None:
    close = getattr(frame, "close", None)
    if callable(close):
        close()


class LatestFrameSlot:
    """
    Lock-guarded holder for one frame.

    Usage:
        slot = LatestFrameSlot()
        device.set_frame_callback(slot.put)   # capture thread
        frame = slot.get_copy()               # control thread
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._frame: Optional[Any] = None
        self._frames_seen = 0

    def put(self, frame: Any) -> None:
        """
        Store a copy of a delivered frame, disposing the previous one.

        The adapter's frame reference is only valid during its callback,
        so a copy is taken before the lock is held.
        """
        retained = copy.copy(frame)
        with self._lock:
            previous, self._frame = self._frame, retained
            self._frames_seen += 1

        if previous is not None:
            try:
                _dispose(previous)
            except Exception as e:
                self.logger.debug(f"Error disposing previous frame: {e}")

    def get_copy(self) -> Optional[Any]:
        """Get a private copy of the latest frame, or None"""
        with self._lock:
            if self._frame is None:
                return None
            return copy.copy(self._frame)

    def clear(self) -> None:
        """Drop the held frame (no ghost frame after preview stops)"""
        with self._lock:
            previous, self._frame = self._frame, None

        if previous is not None:
            try:
                _dispose(previous)
            except Exception as e:
                self.logger.debug(f"Error disposing frame: {e}")

    @property
    def has_frame(self) -> bool:
        with self._lock:
            return self._frame is not None

    @property
    def frames_seen(self) -> int:
        with self._lock:
            return self._frames_seen
