"""
Mock Recording Supervisor

Simulated engine supervision for testing without FFmpeg.
Mimics the real supervisor's contract: one handle at a time, on_exit once
per process, idempotent stop.

This is a "Fake" (test double) - it has working logic but no real process.
"""

import itertools
import logging
import threading
from typing import Callable, List, Optional

from config.settings import POLITE_STOP_TIMEOUT
from recording.constants import EncoderCandidate
from recording.interfaces.recorder_interface import (
    AlreadyRunning,
    DeviceContentionFailure,
    EngineNotFound,
    ProcessStartFailure,
    RecorderInterface,
)
from recording.models.capture import ProcessHandle, SessionConfig
from recording.utils.recording_utils import ensure_mp4_suffix

CONTENTION_OUTPUT = "Could not run graph: Device or resource busy"
CRASH_OUTPUT = "Error while decoding stream #0:0: Invalid data found"

_fake_pids = itertools.count(40000)


class MockSupervisor(RecorderInterface):
    """
    Mock engine supervisor for testing.

    Creates small fake MP4 files so keep/delete logic can be exercised.

    Usage:
        supervisor = MockSupervisor()
        supervisor.simulate_start_failure(times=1, contention=True)
        handle = supervisor.start(config, EncoderCandidate.X264)
        assert not supervisor.is_running()
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.on_exit: Optional[Callable[[], None]] = None

        # State tracking
        self._lock = threading.RLock()
        self._handle: Optional[ProcessHandle] = None
        self._running = False
        self._output: List[str] = []

        # Call tracking for assertions
        self.start_calls = 0
        self.stop_calls = 0
        self.forced_kills = 0
        self.last_config: Optional[SessionConfig] = None
        self.last_encoder: Optional[EncoderCandidate] = None

        # Configuration for test scenarios
        self._failures_left = 0
        self._fail_with_contention = False
        self._engine_missing = False
        self._hung_stop = False
        self._stop_gate: Optional[threading.Event] = None
        self.stop_threads: List[str] = []

        self.logger.info("Mock Supervisor initialized")

    def start(self, config: SessionConfig, encoder: EncoderCandidate) -> ProcessHandle:
        """Simulate launching the engine"""
        with self._lock:
            if self._handle is not None:
                raise AlreadyRunning(f"Engine already running (PID: {self._handle.pid})")
            if self._engine_missing:
                raise EngineNotFound(f"Engine not found: {config.engine_binary_path}")

            self.start_calls += 1
            self.last_config = config
            self.last_encoder = encoder

            output_path = ensure_mp4_suffix(config.output_path)
            handle = ProcessHandle(
                pid=next(_fake_pids), output_path=output_path, encoder=encoder
            )

            if self._failures_left > 0:
                # Spawned, then died before the settling check
                self._failures_left -= 1
                self._output = [
                    CONTENTION_OUTPUT if self._fail_with_contention else CRASH_OUTPUT
                ]
                self.logger.info(f"[MOCK] Engine exited during startup (PID: {handle.pid})")
                exited = True
            else:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_bytes(b"\x00\x00\x00\x20ftypisom")
                self._output = []
                self._handle = handle
                self._running = True
                self.logger.info(f"[MOCK] Engine started (PID: {handle.pid})")
                exited = False

        if exited:
            self._trigger_exit()
        return handle

    def stop(self, polite_timeout: float = POLITE_STOP_TIMEOUT) -> bool:
        """Simulate quit token (or forced kill when configured to hang)"""
        self.stop_threads.append(threading.current_thread().name)
        gate = self._stop_gate
        if gate is not None:
            gate.wait()

        with self._lock:
            if self._handle is None:
                return False
            self.stop_calls += 1
            if self._hung_stop:
                self.forced_kills += 1
                self.logger.warning(
                    f"[MOCK] Engine ignored quit token for {polite_timeout}s, terminating"
                )
            else:
                self.logger.info("[MOCK] Engine stopped gracefully")
            was_running = self._running
            self._handle = None
            self._running = False

        if was_running:
            self._trigger_exit()
        return True

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def get_handle(self) -> Optional[ProcessHandle]:
        with self._lock:
            return self._handle

    def recent_output(self) -> List[str]:
        return list(self._output)

    def startup_failure(self) -> ProcessStartFailure:
        detail = self._output[-1] if self._output else "no engine output"
        if self._fail_with_contention:
            return DeviceContentionFailure(f"Capture device busy: {detail}")
        return ProcessStartFailure(f"Engine exited during startup: {detail}")

    def is_available(self) -> bool:
        """Mock supervisor is available unless configured otherwise"""
        return not self._engine_missing

    def cleanup(self) -> None:
        self.logger.debug("[MOCK] Cleanup")
        self.stop()

    def _trigger_exit(self) -> None:
        if self.on_exit:
            try:
                self.on_exit()
            except Exception as e:
                self.logger.error(f"Error in exit callback: {e}")

    # =========================================================================
    # TESTING HELPER METHODS (not part of RecorderInterface)
    # =========================================================================
    # These methods are ONLY for testing - configure mock behavior

    def simulate_start_failure(self, times: int = 1, contention: bool = False) -> None:
        """
        Make the next `times` starts die before the settling check.

        Example:
            mock.simulate_start_failure(times=2, contention=True)
        """
        self._failures_left = times
        self._fail_with_contention = contention
        self.logger.debug(f"[MOCK] Configured to fail next {times} start(s)")

    def simulate_engine_missing(self) -> None:
        """Make start() raise EngineNotFound"""
        self._engine_missing = True

    def simulate_hung_stop(self) -> None:
        """Make stop() go through the forced-kill path"""
        self._hung_stop = True

    def simulate_stuck_stop(self) -> None:
        """Make stop() block until release_stuck_stop()"""
        self._stop_gate = threading.Event()

    def release_stuck_stop(self) -> None:
        if self._stop_gate is not None:
            self._stop_gate.set()

    def simulate_crash(self) -> None:
        """
        Kill the running engine from outside (device yanked, crash).

        Fires on_exit like the real watcher thread does.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._handle = None
            self._output = [CRASH_OUTPUT]
            self.logger.warning("[MOCK] Simulating engine crash")
        self._trigger_exit()

    def reset_test_config(self) -> None:
        """Reset test configuration to normal operation"""
        self._failures_left = 0
        self._fail_with_contention = False
        self._engine_missing = False
        self._hung_stop = False
        self.release_stuck_stop()
        self._stop_gate = None
        self.logger.debug("[MOCK] Test configuration reset")
