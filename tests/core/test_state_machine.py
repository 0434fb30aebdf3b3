"""
Session State Machine Tests

Tests for SessionStateMachine and BusyGuard showing:
- Precondition gating
- BUSY always released
- Duplicate triggers are no-ops

To run:
    pytest tests/core/test_state_machine.py -v
"""

import threading

import pytest

from core.state_machine import SessionState, SessionStateMachine

IDLE = SessionState.IDLE
PREVIEWING = SessionState.PREVIEWING
RECORDING = SessionState.RECORDING
BUSY = SessionState.BUSY


@pytest.fixture
def machine():
    return SessionStateMachine()


# =============================================================================
# BEGIN / COMPLETE
# =============================================================================


@pytest.mark.unit
def test_starts_idle(machine):
    assert machine.get_current_state() == IDLE
    assert not machine.is_busy


@pytest.mark.unit
def test_begin_enters_busy(machine):
    guard = machine.begin("start_preview", {IDLE})

    assert guard is not None
    assert machine.is_busy
    assert guard.previous_state == IDLE


@pytest.mark.unit
def test_begin_rejected_outside_allowed_states(machine):
    assert machine.begin("stop_recording", {RECORDING}) is None
    assert machine.get_current_state() == IDLE


@pytest.mark.unit
def test_begin_rejected_while_busy(machine):
    machine.begin("start_preview", {IDLE})

    assert machine.begin("start_recording", {IDLE, PREVIEWING}) is None
    assert machine.is_busy


@pytest.mark.unit
def test_complete_sets_target(machine):
    with machine.begin("start_preview", {IDLE}) as guard:
        guard.complete(PREVIEWING)

    assert machine.get_current_state() == PREVIEWING
    assert guard.completed


@pytest.mark.unit
def test_incomplete_operation_falls_back(machine):
    with machine.begin("start_preview", {IDLE}):
        pass

    assert machine.get_current_state() == IDLE


@pytest.mark.unit
def test_custom_failure_state(machine):
    machine.transition_to(PREVIEWING)

    with machine.begin("start_recording", {PREVIEWING}, failure_state=PREVIEWING):
        pass

    assert machine.get_current_state() == PREVIEWING


@pytest.mark.unit
def test_exception_releases_busy_and_propagates(machine):
    with pytest.raises(RuntimeError):
        with machine.begin("start_recording", {IDLE}) as guard:
            guard.complete(RECORDING)
            raise RuntimeError("boom")

    # An exception overrides the completed target
    assert machine.get_current_state() == IDLE


@pytest.mark.unit
def test_cannot_complete_into_busy(machine):
    guard = machine.begin("start_preview", {IDLE})

    with pytest.raises(ValueError):
        guard.complete(BUSY)
    guard.release()

    assert machine.get_current_state() == IDLE


@pytest.mark.unit
def test_release_is_idempotent(machine):
    guard = machine.begin("start_preview", {IDLE})
    guard.complete(PREVIEWING)
    guard.release()
    machine.transition_to(RECORDING)

    guard.release()

    assert machine.get_current_state() == RECORDING


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@pytest.mark.unit
def test_state_change_callback(machine):
    changes = []
    machine.on_state_change = lambda old, new: changes.append((old, new))

    with machine.begin("start_preview", {IDLE}) as guard:
        guard.complete(PREVIEWING)

    assert changes == [(IDLE, BUSY), (BUSY, PREVIEWING)]


@pytest.mark.unit
def test_same_state_transition_is_silent(machine):
    changes = []
    machine.on_state_change = lambda old, new: changes.append(new)

    machine.transition_to(IDLE)

    assert changes == []


@pytest.mark.unit
def test_status_info(machine):
    machine.transition_to(PREVIEWING)

    info = machine.get_status_info()

    assert info["current_state"] == "previewing"
    assert info["previous_state"] == "idle"
    assert info["state_duration"] >= 0


# =============================================================================
# CONCURRENCY
# =============================================================================


@pytest.mark.unit_integration
def test_only_one_concurrent_begin_wins(machine):
    barrier = threading.Barrier(8)
    winners = []

    def contender():
        barrier.wait()
        guard = machine.begin("start_recording", {IDLE})
        if guard is not None:
            winners.append(guard)

    threads = [threading.Thread(target=contender) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1
    winners[0].release()
    assert machine.get_current_state() == IDLE
