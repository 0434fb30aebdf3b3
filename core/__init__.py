"""
Core session primitives.

Public API:
    - SessionStateMachine: Authoritative session state with the BUSY guard
    - SessionState: Idle / Previewing / Recording / Busy
    - EventBus: Control-flow inbox for events posted by worker threads

Usage:
    from core import SessionStateMachine, SessionState

    machine = SessionStateMachine()
    guard = machine.begin("start preview", {SessionState.IDLE})
    if guard:
        with guard:
            ...
            guard.complete(SessionState.PREVIEWING)
"""

from core.event_bus import ENGINE_EXITED, TIMER_TICK, EventBus
from core.state_machine import BusyGuard, SessionState, SessionStateMachine

__all__ = [
    "BusyGuard",
    "ENGINE_EXITED",
    "EventBus",
    "SessionState",
    "SessionStateMachine",
    "TIMER_TICK",
]
