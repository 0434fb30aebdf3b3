"""
FFmpeg Recording Process Supervisor

Real engine supervision using an FFmpeg subprocess.
Owns at most one engine process: launches it, drains its output, notices
when it exits, and stops it cleanly (quit token) or forcefully (tree kill).

This wraps FFmpeg to match our RecorderInterface.
"""

import logging
import os
import subprocess
import threading
from collections import deque
from typing import Callable, List, Optional

import psutil

from config.settings import (
    DEVICE_STOP_TIMEOUT,
    ENGINE_BINARY_PATH,
    ENGINE_OUTPUT_HISTORY,
    POLITE_STOP_TIMEOUT,
)
from recording.constants import (
    DEVICE_CONTENTION_MARKERS,
    ENGINE_ERROR_MARKERS,
    ENGINE_QUIT_TOKEN,
    EncoderCandidate,
)
from recording.implementations.ffmpeg_engine import resolve_binary
from recording.interfaces.recorder_interface import (
    AlreadyRunning,
    DeviceContentionFailure,
    EngineNotFound,
    ProcessStartFailure,
    RecorderInterface,
    StopTimeout,
)
from recording.models.capture import ProcessHandle, SessionConfig
from recording.utils.engine_command import build_engine_command
from recording.utils.recording_utils import ensure_mp4_suffix

ENGINE_LOGGER_NAME = "recording.engine"
DRAIN_JOIN_TIMEOUT = 1.0


class RecordingProcessSupervisor(RecorderInterface):
    """
    Engine supervisor using FFmpeg.

    Non-blocking - the engine runs in a background process, with daemon
    threads draining stdout/stderr and one watcher thread per process
    waiting for it to exit.

    Usage:
        supervisor = RecordingProcessSupervisor()
        supervisor.on_exit = lambda: events.publish(ENGINE_EXITED)
        supervisor.start(config, EncoderCandidate.X264)
        # ... recording happens in background ...
        supervisor.stop()
        supervisor.cleanup()
    """

    def __init__(
        self,
        input_format: Optional[str] = None,
        log_sink: Optional[Callable[[str], None]] = None,
        history: int = ENGINE_OUTPUT_HISTORY,
    ):
        """
        Initialize supervisor.

        Args:
            input_format: Capture backend override (None = config/platform)
            log_sink: Optional callback receiving every engine output line
            history: Number of recent output lines kept for diagnostics
        """
        self.logger = logging.getLogger(__name__)
        self.engine_logger = logging.getLogger(ENGINE_LOGGER_NAME)

        self.input_format = input_format
        self.log_sink = log_sink
        self.on_exit: Optional[Callable[[], None]] = None

        # State tracking
        self._lock = threading.RLock()
        self._process: Optional[subprocess.Popen] = None
        self._handle: Optional[ProcessHandle] = None
        self._output: deque = deque(maxlen=history)
        self._drains: List[threading.Thread] = []

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, config: SessionConfig, encoder: EncoderCandidate) -> ProcessHandle:
        """
        Launch the engine for one recording attempt.

        Returns as soon as the process is spawned; the caller decides
        whether it survived by checking is_running() after a settling delay.
        """
        with self._lock:
            if self._handle is not None:
                raise AlreadyRunning(
                    f"Engine already running (PID: {self._handle.pid})"
                )

            binary = resolve_binary(config.engine_binary_path)
            if binary is None:
                raise EngineNotFound(
                    f"Engine not found: {config.engine_binary_path}"
                )

            output_path = ensure_mp4_suffix(config.output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)

            command = build_engine_command(
                config, encoder, binary=binary, input_format=self.input_format
            )
            self.logger.info(
                f"Starting engine ({encoder.codec_name}) to: {output_path}"
            )
            self.logger.debug(f"Engine command: {' '.join(command)}")

            self._output.clear()
            try:
                # stdin stays open: it carries the quit token.
                # New session on POSIX so a terminal Ctrl+C reaches us, not
                # the engine; we decide how it stops.
                process = subprocess.Popen(
                    command,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    errors="replace",
                    bufsize=1,
                    start_new_session=(os.name == "posix"),
                )
            except OSError as e:
                raise ProcessStartFailure(f"Failed to launch engine: {e}") from e

            handle = ProcessHandle(
                pid=process.pid, output_path=output_path, encoder=encoder
            )
            self._process = process
            self._handle = handle

        drains = [
            self._spawn(self._drain, process.stdout, False, name="engine-stdout"),
            self._spawn(self._drain, process.stderr, True, name="engine-stderr"),
        ]
        self._drains = drains
        self._spawn(self._watch, process, drains, name="engine-watcher")

        self.logger.info(f"Engine started (PID: {process.pid})")
        return handle

    def stop(self, polite_timeout: float = POLITE_STOP_TIMEOUT) -> bool:
        """
        Stop the engine.

        Writes the quit token so the engine can finalize the file, waits
        polite_timeout seconds, then kills the whole process tree.
        """
        with self._lock:
            process = self._process
        if process is None:
            return False

        self.logger.info(f"Stopping engine (PID: {process.pid})...")
        try:
            self._send_quit(process)
            try:
                process.wait(timeout=polite_timeout)
                self.logger.info(
                    f"Engine stopped gracefully (exit code {process.returncode})"
                )
            except subprocess.TimeoutExpired:
                self.logger.warning(
                    f"Engine ignored quit token for {polite_timeout}s, "
                    f"terminating process tree"
                )
                self._kill_tree(process)
        finally:
            with self._lock:
                if self._process is process:
                    self._release()
        return True

    def _send_quit(self, process: subprocess.Popen) -> None:
        if process.stdin is None:
            return
        try:
            process.stdin.write(ENGINE_QUIT_TOKEN + "\n")
            process.stdin.flush()
        except (BrokenPipeError, OSError, ValueError) as e:
            # Engine already gone or closed its stdin
            self.logger.debug(f"Could not send quit token: {e}")

    def _kill_tree(self, process: subprocess.Popen) -> None:
        """Kill children first, then the engine itself"""
        try:
            parent = psutil.Process(process.pid)
            victims = parent.children(recursive=True) + [parent]
        except psutil.NoSuchProcess:
            victims = []

        for victim in victims:
            try:
                victim.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                self.logger.debug(f"Kill of PID {victim.pid} skipped: {e}")

        if victims:
            psutil.wait_procs(victims, timeout=DEVICE_STOP_TIMEOUT)

        try:
            process.wait(timeout=DEVICE_STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            raise StopTimeout(
                f"Engine (PID: {process.pid}) did not terminate after kill"
            )
        self.logger.warning(f"Engine terminated (exit code {process.returncode})")

    def _release(self) -> None:
        """Drop the current process/handle. Caller holds the lock."""
        process = self._process
        self._process = None
        self._handle = None
        if process is not None and process.stdin is not None:
            try:
                process.stdin.close()
            except OSError:
                pass

    # =========================================================================
    # BACKGROUND THREADS
    # =========================================================================

    def _spawn(self, target, *args, name: str) -> threading.Thread:
        thread = threading.Thread(target=target, args=args, name=name, daemon=True)
        thread.start()
        return thread

    def _drain(self, stream, is_stderr: bool) -> None:
        """Forward engine output line by line until the pipe closes"""
        if stream is None:
            return
        try:
            for raw in stream:
                line = raw.rstrip()
                if not line:
                    continue
                self._output.append(line)

                lowered = line.lower()
                if is_stderr and any(m in lowered for m in ENGINE_ERROR_MARKERS):
                    self.engine_logger.warning(line)
                else:
                    self.engine_logger.info(line)

                if self.log_sink:
                    try:
                        self.log_sink(line)
                    except Exception as e:
                        self.logger.error(f"Error in log sink: {e}")
        except (OSError, ValueError) as e:
            self.logger.debug(f"Engine output stream closed: {e}")

    def _watch(self, process: subprocess.Popen, drains: List[threading.Thread]) -> None:
        """Wait for exit, release the handle if still current, notify once"""
        returncode = process.wait()
        for drain in drains:
            drain.join(timeout=DRAIN_JOIN_TIMEOUT)

        with self._lock:
            if self._process is process:
                self._release()

        self.logger.info(f"[engine] exited (PID: {process.pid}, code {returncode})")
        self._trigger_exit()

    def _trigger_exit(self) -> None:
        if self.on_exit:
            try:
                self.on_exit()
            except Exception as e:
                self.logger.error(f"Error in exit callback: {e}")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def is_running(self) -> bool:
        with self._lock:
            if self._process is None:
                return False
            return self._process.poll() is None

    def get_handle(self) -> Optional[ProcessHandle]:
        with self._lock:
            return self._handle

    def recent_output(self) -> List[str]:
        return list(self._output)

    def startup_failure(self) -> ProcessStartFailure:
        """Classify the last attempt's failure from recent engine output"""
        # Let the drains catch up with what the dead process wrote
        for drain in self._drains:
            drain.join(timeout=DRAIN_JOIN_TIMEOUT)

        lines = self.recent_output()
        detail = lines[-1] if lines else "no engine output"
        text = "\n".join(lines).lower()

        if any(marker in text for marker in DEVICE_CONTENTION_MARKERS):
            return DeviceContentionFailure(f"Capture device busy: {detail}")
        return ProcessStartFailure(f"Engine exited during startup: {detail}")

    def is_available(self) -> bool:
        if resolve_binary(ENGINE_BINARY_PATH) is None:
            self.logger.warning(f"Engine not found: {ENGINE_BINARY_PATH}")
            return False
        return True

    def cleanup(self) -> None:
        """Stop any running engine and clean up resources"""
        self.logger.info("Cleaning up recording supervisor")
        try:
            self.stop()
        except StopTimeout as e:
            self.logger.error(f"Engine could not be stopped: {e}")
        self.logger.info("Recording supervisor cleanup complete")
