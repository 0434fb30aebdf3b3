"""
Recorder Interface

Abstract interface for whatever supervises the external encoding engine.
Defines the contract SessionOrchestrator relies on, plus the session
error taxonomy.

This demonstrates Dependency Inversion Principle - the orchestrator
depends on this abstraction, not on a particular engine binary.

Why an interface?
1. Testability: Can use MockSupervisor instead of a real engine process
2. Flexibility: Another engine only needs a new implementation
3. Clear contract: Documents the single-process and exit-notification rules
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, List, Optional

if TYPE_CHECKING:
    from recording.constants import EncoderCandidate
    from recording.models.capture import ProcessHandle, SessionConfig


class RecorderInterface(ABC):
    """
    Abstract base class for engine process supervisors.

    Invariants every implementation must keep:
    - At most one live process handle at any time
    - on_exit fires exactly once per process, however it ended
    - stop() is idempotent and always releases the handle
    """

    # Called with no arguments once the process is gone. May be invoked
    # from a background thread.
    on_exit: Optional[Callable[[], None]] = None

    @abstractmethod
    def start(
        self,
        config: "SessionConfig",
        encoder: "EncoderCandidate",
    ) -> "ProcessHandle":
        """
        Launch the engine for one recording attempt.

        This is NON-BLOCKING - returns as soon as the process is spawned.
        Launch success does not mean the recording works; callers wait a
        settling delay and then check is_running().

        Args:
            config: Immutable attempt configuration
            encoder: Encoder chosen by EncoderSelector

        Returns:
            Handle for the running process

        Raises:
            AlreadyRunning: A process handle already exists
            EngineNotFound: Engine binary missing
            ProcessStartFailure: Spawn failed

        Example:
            handle = supervisor.start(config, EncoderCandidate.X264)
        """
        pass

    @abstractmethod
    def stop(self, polite_timeout: float = 1.5) -> bool:
        """
        Stop the engine: quit token, bounded wait, then forced termination.

        No-op when nothing is running. Always releases the handle.

        Args:
            polite_timeout: Seconds to wait after the quit token

        Returns:
            True if a process was stopped, False if there was none

        Example:
            supervisor.stop(polite_timeout=1.5)
        """
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """
        Check if the engine process is alive.

        Returns:
            True if a process exists and has not exited
        """
        pass

    @abstractmethod
    def get_handle(self) -> Optional["ProcessHandle"]:
        """
        Get the current process handle.

        Returns:
            Handle if one is held, None otherwise
        """
        pass

    @abstractmethod
    def recent_output(self) -> List[str]:
        """
        Get the last lines the engine wrote (stdout and stderr interleaved).

        Returns:
            Recent output lines, oldest first
        """
        pass

    @abstractmethod
    def startup_failure(self) -> "ProcessStartFailure":
        """
        Classify why the last attempt did not survive the settling delay.

        Returns:
            DeviceContentionFailure when the output points at a device held
            elsewhere, ProcessStartFailure otherwise
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the engine can be launched at all.

        Returns:
            True if the supervisor can be used, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """
        Stop any running process and release resources.

        This should never raise exceptions.
        """
        pass


class SessionError(Exception):
    """
    Base class for session orchestration errors.

    Examples:
    - No camera selected
    - Engine binary missing
    - Engine died right after launch
    """
    pass


class InvalidSelection(SessionError):
    """No device/microphone chosen; fix the selection and try again"""
    pass


class EngineNotFound(SessionError):
    """Engine binary missing at start"""
    pass


class AlreadyRunning(SessionError):
    """A process handle already exists"""
    pass


class ProcessStartFailure(SessionError):
    """Engine launched but exited immediately or failed the settling check"""
    pass


class DeviceContentionFailure(ProcessStartFailure):
    """Engine could not open the capture device because it is held elsewhere"""
    pass


class StopTimeout(SessionError):
    """Engine ignored the quit token and had to be terminated"""
    pass


class UnexpectedProcessExit(SessionError):
    """Engine exited outside a stop() call (crash, external kill, device yank)"""
    pass


class PreviewError(SessionError):
    """Capture device could not be opened or started for preview"""
    pass
