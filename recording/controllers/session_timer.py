"""
Session Timer

Elapsed-time display and max-duration auto-stop for a recording.

The timer itself never stops anything: tick() reports when the limit is
reached, and the orchestrator decides what to do. Ticks come from an
optional background ticker thread whose only job is to call on_tick(),
which the orchestrator turns into an inbox event so the real work happens
on the control thread.
"""

import logging
import threading
import time
from typing import Callable, Optional

from config.settings import TIMER_TICK_INTERVAL
from recording.constants import format_elapsed


class SessionTimer:
    """
    Recording clock with an auto-stop latch.

    Usage:
        timer = SessionTimer()
        timer.max_duration = 60
        timer.start()
        timer.arm_auto_stop()
        ...
        if timer.tick():
            orchestrator.stop_recording()
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = TIMER_TICK_INTERVAL,
    ):
        """
        Initialize timer.

        Args:
            clock: Monotonic time source (injectable for tests)
            tick_interval: Seconds between on_tick calls (0 = no ticker thread)
        """
        self.logger = logging.getLogger(__name__)
        self.clock = clock
        self.tick_interval = tick_interval

        self._lock = threading.RLock()
        self._started_at: Optional[float] = None
        self._elapsed_before = 0.0
        self._display = format_elapsed(0)
        self._max_duration: Optional[float] = None
        self._auto_stop_armed = False

        # Ticker thread
        self._ticker: Optional[threading.Thread] = None
        self._ticker_stop = threading.Event()

        # Called from the ticker thread
        self.on_tick: Optional[Callable[[], None]] = None

    # =========================================================================
    # CLOCK
    # =========================================================================

    def start(self) -> None:
        """Reset elapsed time and start counting"""
        with self._lock:
            self._stop_ticker()
            self._elapsed_before = 0.0
            self._started_at = self.clock()
            self._display = format_elapsed(0)
            self._start_ticker()
        self.logger.debug("Timer started")

    def restart(self) -> None:
        self.start()

    def stop(self) -> None:
        """Freeze elapsed time and stop ticking"""
        with self._lock:
            if self._started_at is not None:
                self._elapsed_before += self.clock() - self._started_at
                self._started_at = None
            self._stop_ticker()

    def reset(self) -> None:
        """Stop and return to zero"""
        with self._lock:
            self.stop()
            self._elapsed_before = 0.0
            self._display = format_elapsed(0)

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        with self._lock:
            if self._started_at is None:
                return self._elapsed_before
            return self._elapsed_before + (self.clock() - self._started_at)

    @property
    def display(self) -> str:
        return self._display

    # =========================================================================
    # AUTO-STOP
    # =========================================================================

    @property
    def max_duration(self) -> Optional[float]:
        return self._max_duration

    @max_duration.setter
    def max_duration(self, seconds: Optional[float]) -> None:
        if seconds is not None and seconds <= 0:
            raise ValueError(f"max_duration must be positive, got {seconds}")
        self._max_duration = seconds
        if seconds is None:
            self._auto_stop_armed = False

    def arm_auto_stop(self) -> bool:
        """
        Arm auto-stop if a max duration is configured.

        Returns:
            True if armed
        """
        with self._lock:
            self._auto_stop_armed = self._max_duration is not None
            return self._auto_stop_armed

    def disarm_auto_stop(self) -> None:
        with self._lock:
            self._auto_stop_armed = False

    @property
    def auto_stop_armed(self) -> bool:
        return self._auto_stop_armed

    def tick(self) -> bool:
        """
        Refresh the display and check the limit.

        Returns:
            True exactly once when auto-stop is armed and elapsed has reached
            max_duration. Auto-stop is disarmed before returning, so a tick
            arriving during the stop sequence cannot trigger it again.
        """
        with self._lock:
            elapsed = self.elapsed
            self._display = format_elapsed(elapsed)

            if (
                self._auto_stop_armed
                and self._max_duration is not None
                and elapsed >= self._max_duration
            ):
                self._auto_stop_armed = False
                self.logger.info(
                    f"Max duration reached ({format_elapsed(self._max_duration)})"
                )
                return True
        return False

    # =========================================================================
    # TICKER THREAD
    # =========================================================================

    def _start_ticker(self) -> None:
        if self.tick_interval <= 0:
            return
        self._ticker_stop = threading.Event()
        self._ticker = threading.Thread(
            target=self._tick_loop,
            args=(self._ticker_stop,),
            daemon=True,
            name="SessionTimer-Ticker",
        )
        self._ticker.start()

    def _stop_ticker(self) -> None:
        self._ticker_stop.set()
        ticker = self._ticker
        self._ticker = None
        if ticker and ticker.is_alive() and ticker is not threading.current_thread():
            ticker.join(timeout=self.tick_interval + 1.0)

    def _tick_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.tick_interval):
            if self.on_tick:
                try:
                    self.on_tick()
                except Exception as e:
                    self.logger.error(f"Error in tick callback: {e}")
