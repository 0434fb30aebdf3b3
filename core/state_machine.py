import logging
import threading
import time
from enum import Enum
from typing import Callable, Dict, Iterable, Optional


class SessionState(Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    RECORDING = "recording"
    BUSY = "busy"


class BusyGuard:
    """
    Holds the BUSY state for the duration of one multi-step operation.

    Leaving the ``with`` block always releases BUSY exactly once: to the state
    passed to complete(), or to the failure state when the operation did not
    complete or raised. Exceptions are not swallowed.
    """

    def __init__(
        self,
        machine: "SessionStateMachine",
        operation: str,
        previous_state: SessionState,
        failure_state: SessionState,
    ):
        self.machine = machine
        self.operation = operation
        self.previous_state = previous_state
        self.failure_state = failure_state
        self._target: Optional[SessionState] = None
        self._reason = ""
        self._released = False

    def complete(self, new_state: SessionState, reason: str = "") -> None:
        """Record the state to enter when the operation finishes"""
        if new_state == SessionState.BUSY:
            raise ValueError("An operation cannot complete into BUSY")
        self._target = new_state
        self._reason = reason

    @property
    def completed(self) -> bool:
        return self._target is not None

    def release(self, failed: bool = False) -> SessionState:
        if self._released:
            return self.machine.get_current_state()
        self._released = True

        if self._target is not None and not failed:
            target, reason = self._target, self._reason or f"{self.operation} done"
        else:
            target, reason = self.failure_state, f"{self.operation} failed"

        self.machine.transition_to(target, reason)
        return target

    def __enter__(self) -> "BusyGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release(failed=exc_type is not None)
        return False


class SessionStateMachine:
    """
    Single authoritative session state.

    Every session-mutating operation passes through BUSY, and begin() refuses
    to start one unless the current state is in the operation's allowed set.
    That check-and-enter is atomic, so duplicate triggers become no-ops.
    """

    def __init__(self):
        self.current_state = SessionState.IDLE
        self.previous_state: Optional[SessionState] = None
        self.state_start_time = time.time()
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()

        # Called as on_state_change(old_state, new_state)
        self.on_state_change: Optional[
            Callable[[SessionState, SessionState], None]
        ] = None

        self.logger.info("State machine initialized in IDLE state")

    def get_current_state(self) -> SessionState:
        """Get the current session state"""
        return self.current_state

    def get_state_duration(self) -> float:
        """Get how long we've been in the current state (seconds)"""
        return time.time() - self.state_start_time

    @property
    def is_busy(self) -> bool:
        return self.current_state == SessionState.BUSY

    def begin(
        self,
        operation: str,
        allowed_states: Iterable[SessionState],
        failure_state: SessionState = SessionState.IDLE,
    ) -> Optional[BusyGuard]:
        """
        Enter BUSY for an operation if the precondition holds.

        Args:
            operation: Name used in log messages
            allowed_states: States the operation may start from
            failure_state: State to fall back to if the operation fails

        Returns:
            BusyGuard to use as a context manager, or None if rejected
        """
        allowed = frozenset(allowed_states)
        with self._lock:
            current = self.current_state
            if current not in allowed:
                self.logger.debug(
                    f"Rejected {operation} in state {current.value}"
                )
                return None
            self.transition_to(SessionState.BUSY, operation)
            return BusyGuard(self, operation, current, failure_state)

    def transition_to(self, new_state: SessionState, reason: str = "") -> None:
        """
        Transition to a new state with logging and callback notification
        """
        with self._lock:
            if new_state == self.current_state:
                self.logger.debug(f"Already in state {new_state.value}")
                return

            old_state = self.current_state
            self.previous_state = old_state
            self.current_state = new_state
            self.state_start_time = time.time()

        log_msg = f"State transition: {old_state.value} -> {new_state.value}"
        if reason:
            log_msg += f" ({reason})"
        self.logger.info(log_msg)

        # Notify listeners of state change
        if self.on_state_change:
            try:
                self.on_state_change(old_state, new_state)
            except Exception as e:
                self.logger.error(f"Error in state change callback: {e}")

    def get_status_info(self) -> Dict:
        """Get detailed status information for debugging/monitoring"""
        return {
            "current_state": self.current_state.value,
            "previous_state": (
                self.previous_state.value if self.previous_state else None
            ),
            "state_duration": self.get_state_duration(),
        }
