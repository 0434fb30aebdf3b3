"""
Session Orchestrator

Owns the session: preview device, engine process, timer and review, all
behind one explicit state machine.

Every operator action is a guarded operation: it is only accepted from its
allowed states, holds BUSY while it works, and always resolves to Idle,
Previewing or Recording. Background threads (engine watcher, timer ticker)
never touch session state directly; they post events to the inbox, and
process_events() handles them on the control thread.

SOLID Principles:
- Single Responsibility: Session lifecycle only; encoding, device I/O and
  review are delegated
- Dependency Inversion: Depends on RecorderInterface,
  CaptureDeviceInterface and ReviewGateInterface
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from config.settings import (
    DEVICE_STOP_TIMEOUT,
    POLITE_STOP_TIMEOUT,
    SETTLE_DELAY_SECONDS,
    VIDEO_FPS,
    VIDEO_HEIGHT,
    VIDEO_WIDTH,
)
from core.event_bus import ENGINE_EXITED, TIMER_TICK, EventBus
from core.state_machine import SessionState, SessionStateMachine
from recording.constants import EncoderCandidate
from recording.controllers.capability_resolver import CapabilityResolver
from recording.controllers.encoder_selector import EncoderSelector
from recording.controllers.session_timer import SessionTimer
from recording.implementations.ffmpeg_engine import FFmpegEngine
from recording.interfaces.capture_device_interface import (
    CaptureDeviceHandle,
    CaptureDeviceInterface,
)
from recording.interfaces.recorder_interface import (
    InvalidSelection,
    PreviewError,
    ProcessStartFailure,
    RecorderInterface,
    SessionError,
    StopTimeout,
    UnexpectedProcessExit,
)
from recording.interfaces.review_gate_interface import (
    AutoReviewGate,
    ReviewGateInterface,
)
from recording.models.capture import (
    DEFAULT_PRESET_LABEL,
    ProcessHandle,
    SessionConfig,
)
from recording.utils.frame_slot import LatestFrameSlot
from recording.utils.recording_utils import describe_output, safe_delete

IDLE = SessionState.IDLE
PREVIEWING = SessionState.PREVIEWING
RECORDING = SessionState.RECORDING


class SessionOrchestrator:
    """
    Preview / record / stop for one booth.

    Usage:
        orchestrator = SessionOrchestrator(device_adapter, supervisor, selector)
        orchestrator.on_status = print

        orchestrator.start_preview("mock-camera-0", "HD")
        orchestrator.start_recording(config)
        orchestrator.run_until(lambda: not orchestrator.is_recording)
        orchestrator.cleanup()
    """

    def __init__(
        self,
        device_adapter: CaptureDeviceInterface,
        supervisor: RecorderInterface,
        encoder_selector: EncoderSelector,
        engine: Optional[FFmpegEngine] = None,
        timer: Optional[SessionTimer] = None,
        review_gate: Optional[ReviewGateInterface] = None,
        events: Optional[EventBus] = None,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        polite_timeout: float = POLITE_STOP_TIMEOUT,
        countdown_seconds: int = 0,
        blocking_timeout: float = DEVICE_STOP_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize orchestrator.

        Args:
            device_adapter: Capture device adapter feeding the preview
            supervisor: Engine process supervisor
            encoder_selector: Chooses the encoder per attempt
            engine: Introspection helper for optional mode validation
            timer: Session timer (default: real clock, 1 s ticks)
            review_gate: Keep/discard decision after each recording
            events: Control inbox (default: private EventBus)
            settle_delay: Wait after launch before checking the engine
            polite_timeout: Quit-token wait before forced termination
            countdown_seconds: Operator countdown before the first attempt
            blocking_timeout: Bound for device stop waits
            sleep: Sleep function (injectable for tests)
        """
        self.logger = logging.getLogger(__name__)

        # Collaborators
        self.device_adapter = device_adapter
        self.supervisor = supervisor
        self.encoder_selector = encoder_selector
        self.engine = engine
        self.timer = timer or SessionTimer()
        self.review_gate = review_gate or AutoReviewGate()
        self.events = events or EventBus()
        self.state_machine = SessionStateMachine()
        self.resolver = CapabilityResolver()
        self.frame_slot = LatestFrameSlot()

        # Timing
        self.settle_delay = settle_delay
        self.polite_timeout = polite_timeout
        self.countdown_seconds = countdown_seconds
        self.blocking_timeout = blocking_timeout
        self._sleep = sleep

        # Preview
        self._device: Optional[CaptureDeviceHandle] = None
        self._preview_camera_id: Optional[str] = None
        self._preview_preset: Any = DEFAULT_PRESET_LABEL

        # Recording defaults, mirrored from the preview capability
        self.default_width = VIDEO_WIDTH
        self.default_height = VIDEO_HEIGHT
        self.default_frame_rate: Optional[int] = VIDEO_FPS

        # Session
        self.active_config: Optional[SessionConfig] = None
        self.chosen_encoder: Optional[EncoderCandidate] = None
        self.process_handle: Optional[ProcessHandle] = None
        self.must_restore_preview_after_stop = False
        self.last_output: Optional[Path] = None
        self.last_output_kept: Optional[bool] = None
        self.last_error: Optional[Exception] = None
        self.status_message = "Ready"

        # Blocking waits run here, never on the control thread
        self._executor = ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="booth-worker"
        )

        # Callbacks for events
        self.on_status: Optional[Callable[[str], None]] = None
        self.on_timer: Optional[Callable[[str], None]] = None
        self.on_countdown: Optional[Callable[[int], None]] = None

        # Background threads only post to the inbox
        self.supervisor.on_exit = lambda: self.events.publish(ENGINE_EXITED)
        self.timer.on_tick = lambda: self.events.publish(TIMER_TICK)
        self.events.subscribe(ENGINE_EXITED, self._handle_engine_exit)
        self.events.subscribe(TIMER_TICK, self._handle_timer_tick)

        self.logger.info("Session Orchestrator initialized")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self.state_machine.get_current_state()

    @property
    def is_recording(self) -> bool:
        return self.state == RECORDING

    @property
    def is_previewing(self) -> bool:
        return self.state == PREVIEWING

    # =========================================================================
    # PREVIEW
    # =========================================================================

    def start_preview(self, camera_id: str, preset: Any = DEFAULT_PRESET_LABEL) -> bool:
        """
        Open a camera and start the live preview.

        Args:
            camera_id: Device id from the adapter's enumeration
            preset: ResolutionPreset or preset label prefix

        Returns:
            True if previewing, False if rejected or failed
        """
        guard = self.state_machine.begin("start_preview", {IDLE})
        if guard is None:
            self.logger.warning(f"Cannot start preview in state {self.state.value}")
            return False

        with guard:
            try:
                self._open_preview(camera_id, preset)
                guard.complete(PREVIEWING, f"preview on {camera_id}")
            except Exception as e:
                self._report_failure("Preview failed", e)

        return guard.completed

    def stop_preview(self) -> bool:
        """
        Stop the live preview and release the camera.

        Returns:
            True if preview was stopped, False if not previewing
        """
        guard = self.state_machine.begin("stop_preview", {PREVIEWING})
        if guard is None:
            return False

        with guard:
            self._close_preview()
            self._preview_camera_id = None
            self._set_status("Preview stopped")
            guard.complete(IDLE, "preview stopped")
        return True

    def _open_preview(self, camera_id: str, preset: Any) -> None:
        if not camera_id:
            raise InvalidSelection("Select a camera.")

        handle = self.device_adapter.open_device(camera_id)
        try:
            choice = self.resolver.resolve(handle.capabilities(), preset)
            if choice is None:
                raise PreviewError(f"{camera_id} advertises no capture modes")

            handle.set_capability(choice)
            handle.set_frame_callback(self.frame_slot.put)
            handle.start()
        except Exception:
            self._stop_device(handle)
            raise

        self._device = handle
        self._preview_camera_id = camera_id
        self._preview_preset = preset
        self.default_width = choice.width
        self.default_height = choice.height
        self.default_frame_rate = choice.frame_rate
        self._set_status(f"Preview: {choice}")

    def _close_preview(self) -> None:
        """Release the device (if any) and drop the held frame"""
        handle, self._device = self._device, None
        if handle is not None:
            self._stop_device(handle)
        self.frame_slot.clear()

    def _stop_device(self, handle: CaptureDeviceHandle) -> bool:
        """
        Unhook frames, signal stop, wait on a worker with a timeout.

        Returns:
            True if the device confirmed the stop in time
        """
        try:
            handle.set_frame_callback(None)
            handle.signal_stop()
        except Exception as e:
            self.logger.error(f"Error signaling capture device stop: {e}")

        future = self._executor.submit(handle.wait_for_stop)
        try:
            future.result(timeout=self.blocking_timeout)
            return True
        except FutureTimeout:
            self.logger.warning(
                f"Capture device did not stop within {self.blocking_timeout}s, "
                f"abandoning handle"
            )
        except Exception as e:
            self.logger.error(f"Error waiting for capture device stop: {e}")
        return False

    def _restore_preview(self) -> None:
        """Bring the preview back after it was suspended for a recording"""
        camera_id = self._preview_camera_id
        if not camera_id:
            return
        self.logger.info(f"Restoring preview on {camera_id}")
        self.start_preview(camera_id, self._preview_preset)

    def _resume_preview(self, restore: bool) -> None:
        """
        Return to Previewing after a recording ended in Idle.

        A suspended preview is reopened; a preview that kept running as
        confidence monitor only needs its state back.
        """
        if restore:
            self._restore_preview()
            return
        if self._device is None:
            return

        guard = self.state_machine.begin("resume_preview", {IDLE})
        if guard is None:
            return
        with guard:
            guard.complete(PREVIEWING, "preview kept running")

    def take_snapshot(self) -> Optional[Any]:
        """
        Copy of the latest preview frame.

        Returns:
            Frame copy while previewing, None otherwise
        """
        if self.state != PREVIEWING:
            return None
        return self.frame_slot.get_copy()

    # =========================================================================
    # RECORDING
    # =========================================================================

    def make_config(
        self,
        camera_id: str,
        output_path: Path,
        microphone_id: Optional[str] = None,
        **overrides,
    ) -> SessionConfig:
        """
        Build an attempt config from the current recording defaults.

        Example:
            config = orchestrator.make_config("cam", Path("take.mp4"), "mic")
        """
        values = {
            "width": self.default_width,
            "height": self.default_height,
            "frame_rate": self.default_frame_rate,
        }
        values.update(overrides)
        return SessionConfig(
            camera_id=camera_id,
            output_path=output_path,
            microphone_id=microphone_id,
            **values,
        )

    def start_recording(self, config: SessionConfig) -> bool:
        """
        Start recording, suspending the preview only if the device needs it.

        Attempt 1 keeps the preview running. If it fails while the preview
        holds the device, the preview is stopped and one more attempt is
        made; the preview is then restored after the recording. Any failure
        closes the preview and leaves the session Idle.

        Args:
            config: Immutable attempt configuration

        Returns:
            True if recording, False if rejected or failed
        """
        try:
            config.validate()
        except InvalidSelection as e:
            self.last_error = e
            self._set_status(str(e))
            return False

        guard = self.state_machine.begin("start_recording", {IDLE, PREVIEWING})
        if guard is None:
            self.logger.warning(f"Cannot start recording in state {self.state.value}")
            return False

        with guard:
            preview_active = self._device is not None
            self.must_restore_preview_after_stop = False
            try:
                self._run_countdown()
                encoder = self.encoder_selector.select(
                    config.engine_binary_path,
                    config.prefer_hardware_encoder,
                    config.use_low_compression_fallback_codec,
                )
                self._validate_mode(config)

                try:
                    self._attempt_start(config, encoder)
                except ProcessStartFailure as first_failure:
                    if not preview_active:
                        raise
                    self.logger.warning(
                        f"Attempt 1 failed with preview running ({first_failure}), "
                        f"retrying with preview stopped"
                    )
                    self._close_preview()
                    self.must_restore_preview_after_stop = True
                    self._attempt_start(config, encoder)

                self.active_config = config
                self.chosen_encoder = encoder
                self.process_handle = self.supervisor.get_handle()
                self.last_error = None

                self.timer.restart()
                self.timer.arm_auto_stop()
                self._trigger_timer(self.timer.display)

                output_name = config.output_path.name
                self._set_status(f"Recording {output_name} ({encoder.codec_name})")
                guard.complete(RECORDING, f"recording with {encoder.codec_name}")

            except Exception as e:
                self._report_failure("Recording failed", e)
                self._stop_engine()
                self._clear_session()
                self._close_preview()
                self.must_restore_preview_after_stop = False

        return guard.completed and self.state == RECORDING

    def _run_countdown(self) -> None:
        for remaining in range(self.countdown_seconds, 0, -1):
            self._trigger_countdown(remaining)
            self._sleep(1.0)

    def _validate_mode(self, config: SessionConfig) -> None:
        if not config.validate_mode_before_start or self.engine is None:
            return

        supported = self.engine.check_mode_supported(config)
        mode = f"{config.width}x{config.height}@{config.frame_rate or 'default'}"
        if supported is False:
            self.logger.warning(f"Device does not list mode {mode}, trying anyway")
        elif supported is None:
            self.logger.info(f"Could not verify mode {mode}")

    def _attempt_start(self, config: SessionConfig, encoder: EncoderCandidate) -> None:
        """
        One launch plus settling check.

        Raises:
            ProcessStartFailure / DeviceContentionFailure: engine died while settling
            EngineNotFound, AlreadyRunning: from the supervisor
        """
        self.supervisor.start(config, encoder)
        self._sleep(self.settle_delay)

        if not self.supervisor.is_running():
            failure = self.supervisor.startup_failure()
            self._stop_engine()
            raise failure

    def stop_recording(self) -> bool:
        """
        Stop recording, run the review gate, return to Idle.

        The review decision only decides whether the file is deleted.

        Returns:
            True if a recording was stopped, False if not recording
        """
        guard = self.state_machine.begin("stop_recording", {RECORDING})
        if guard is None:
            return False

        restore_preview = False
        with guard:
            output_path = self.process_handle.output_path if self.process_handle else None
            try:
                self._stop_engine()
            finally:
                self.timer.disarm_auto_stop()
                self.timer.stop()
                restore_preview = self.must_restore_preview_after_stop
                self.must_restore_preview_after_stop = False

            self._review(output_path)
            self.timer.reset()
            self._trigger_timer(self.timer.display)
            self._clear_session()
            guard.complete(IDLE, "recording stopped")

        self._resume_preview(restore_preview)
        return True

    def _stop_engine(self) -> bool:
        """
        Stop the engine on a worker, bounded by polite plus kill timeouts.

        A failed forced kill is reported, not raised. A stop that outlives
        the bound is abandoned; its late exit event is ignored outside
        Recording.

        Returns:
            True if the stop finished in time
        """
        bound = self.polite_timeout + 2 * self.blocking_timeout
        future = self._executor.submit(self.supervisor.stop, self.polite_timeout)
        try:
            future.result(timeout=bound)
            return True
        except FutureTimeout:
            self.logger.warning(f"Engine did not stop within {bound}s, abandoning wait")
        except StopTimeout as e:
            self._report_failure("Engine could not be stopped", e)
        except Exception as e:
            self.logger.error(f"Error stopping engine: {e}", exc_info=True)
        return False

    def _review(self, output_path: Optional[Path]) -> None:
        if output_path is None:
            return

        self.logger.info(f"Recording finished: {describe_output(output_path)}")
        try:
            keep = self.review_gate.review(output_path)
        except Exception as e:
            self.logger.error(f"Review gate failed, keeping recording: {e}", exc_info=True)
            keep = True

        self.last_output = output_path
        self.last_output_kept = keep
        if keep:
            self._set_status(f"Saved {output_path.name}")
        elif safe_delete(output_path):
            self._set_status(f"Discarded {output_path.name}")
        else:
            self._set_status(f"Could not delete {output_path.name}")

    def set_max_duration(self, seconds: Optional[float]) -> None:
        """
        Configure auto-stop (None = unlimited).

        Takes effect immediately when a recording is running.
        """
        self.timer.max_duration = seconds
        if seconds is not None and self.state == RECORDING:
            self.timer.arm_auto_stop()
        self.logger.info(f"Max duration: {seconds if seconds else 'unlimited'}")

    # =========================================================================
    # INBOX HANDLERS (control thread)
    # =========================================================================

    def _handle_engine_exit(self, _data: Any = None) -> None:
        """Reconcile an engine exit that no stop() asked for"""
        if self.state != RECORDING:
            self.logger.debug(f"Engine exit ignored in state {self.state.value}")
            return
        if self.supervisor.is_running():
            # Exit of an earlier attempt, delivered late
            self.logger.debug("Stale engine exit ignored")
            return

        guard = self.state_machine.begin("engine_exit", {RECORDING})
        if guard is None:
            return

        restore_preview = False
        with guard:
            output = self.supervisor.recent_output()
            error = UnexpectedProcessExit(
                f"Engine exited unexpectedly: {output[-1] if output else 'no output'}"
            )
            self.logger.error(str(error))
            self.last_error = error

            self._stop_engine()
            self.timer.disarm_auto_stop()
            self.timer.reset()
            self._trigger_timer(self.timer.display)

            if self.process_handle is not None:
                self.last_output = self.process_handle.output_path
                self.last_output_kept = True
                self.logger.info(f"Partial recording: {describe_output(self.last_output)}")

            restore_preview = self.must_restore_preview_after_stop
            self.must_restore_preview_after_stop = False
            self._clear_session()
            self._set_status("Recording stopped unexpectedly")
            guard.complete(IDLE, "engine exited")

        self._resume_preview(restore_preview)

    def _handle_timer_tick(self, _data: Any = None) -> None:
        if self.state != RECORDING:
            return

        should_stop = self.timer.tick()
        self._trigger_timer(self.timer.display)
        if should_stop:
            self.logger.info("Auto-stopping recording")
            self.stop_recording()

    def process_events(self, timeout: float = 0.0) -> int:
        """
        Handle queued inbox events on the calling (control) thread.

        Returns:
            Number of events handled
        """
        return self.events.process_pending(timeout)

    def run_until(
        self,
        predicate: Callable[[], bool],
        poll: float = 0.1,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Service the inbox until predicate() is true.

        Returns:
            True if the predicate was met, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            if deadline is not None and time.monotonic() >= deadline:
                return False
            self.process_events(timeout=poll)
        return True

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> Dict:
        """Get session status for display/monitoring"""
        return {
            "state": self.state.value,
            "status_message": self.status_message,
            "camera": self._preview_camera_id,
            "output_path": str(self.active_config.output_path) if self.active_config else None,
            "encoder": self.chosen_encoder.codec_name if self.chosen_encoder else None,
            "pid": self.process_handle.pid if self.process_handle else None,
            "elapsed": self.timer.elapsed,
            "display": self.timer.display,
            "max_duration": self.timer.max_duration,
            "auto_stop_armed": self.timer.auto_stop_armed,
            "must_restore_preview_after_stop": self.must_restore_preview_after_stop,
            "frames_seen": self.frame_slot.frames_seen,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    def _clear_session(self) -> None:
        self.active_config = None
        self.chosen_encoder = None
        self.process_handle = None

    def _report_failure(self, prefix: str, error: Exception) -> None:
        self.last_error = error
        if isinstance(error, SessionError):
            self.logger.error(f"{prefix}: {error}")
        else:
            self.logger.error(f"{prefix}: {error}", exc_info=True)
        self._set_status(f"{prefix}: {error}")

    def _set_status(self, message: str) -> None:
        self.status_message = message
        if self.on_status:
            try:
                self.on_status(message)
            except Exception as e:
                self.logger.error(f"Error in status callback: {e}")

    def _trigger_timer(self, display: str) -> None:
        if self.on_timer:
            try:
                self.on_timer(display)
            except Exception as e:
                self.logger.error(f"Error in timer callback: {e}")

    def _trigger_countdown(self, remaining: int) -> None:
        self.logger.info(f"Recording in {remaining}...")
        if self.on_countdown:
            try:
                self.on_countdown(remaining)
            except Exception as e:
                self.logger.error(f"Error in countdown callback: {e}")

    # =========================================================================
    # CLEANUP
    # =========================================================================

    def cleanup(self) -> None:
        """
        Stop recording and preview, release everything.

        This should never raise exceptions.
        """
        self.logger.info("Cleaning up Session Orchestrator")
        try:
            if self.state == RECORDING:
                self.stop_recording()
            if self.state == PREVIEWING:
                self.stop_preview()
            self.supervisor.cleanup()
            self.timer.reset()
        except Exception as e:
            self.logger.error(f"Error during cleanup: {e}", exc_info=True)
        finally:
            self._executor.shutdown(wait=False)
        self.logger.info("Session Orchestrator cleanup complete")
