"""
Session Timer Tests

Tests for SessionTimer showing:
- Elapsed tracking on an injected clock
- Display formatting
- One-shot auto-stop latch
- Ticker thread callbacks

To run:
    pytest tests/recording/controllers/test_session_timer.py -v
"""

import threading

import pytest

from recording.constants import format_elapsed
from recording.controllers.session_timer import SessionTimer

# =============================================================================
# CLOCK TESTS
# =============================================================================


@pytest.mark.unit
def test_elapsed_follows_clock(session_timer, fake_clock):
    session_timer.start()
    fake_clock.advance(12.5)

    assert session_timer.elapsed == pytest.approx(12.5)


@pytest.mark.unit
def test_stop_freezes_elapsed(session_timer, fake_clock):
    session_timer.start()
    fake_clock.advance(3)
    session_timer.stop()
    fake_clock.advance(10)

    assert session_timer.elapsed == pytest.approx(3)
    assert not session_timer.running


@pytest.mark.unit
def test_restart_resets_elapsed(session_timer, fake_clock):
    session_timer.start()
    fake_clock.advance(30)
    session_timer.restart()
    fake_clock.advance(2)

    assert session_timer.elapsed == pytest.approx(2)


@pytest.mark.unit
def test_reset_shows_zero(session_timer, fake_clock):
    session_timer.start()
    fake_clock.advance(65)
    session_timer.tick()
    assert session_timer.display == "01:05"

    session_timer.reset()

    assert session_timer.elapsed == 0
    assert session_timer.display == "00:00"


@pytest.mark.unit
@pytest.mark.parametrize("seconds,expected", [
    (0, "00:00"),
    (59.9, "00:59"),
    (75, "01:15"),
    (3599, "59:59"),
    (3600, "01:00:00"),
    (3725, "01:02:05"),
])
def test_format_elapsed(seconds, expected):
    assert format_elapsed(seconds) == expected


# =============================================================================
# AUTO-STOP TESTS
# =============================================================================


@pytest.mark.unit
def test_arm_requires_max_duration(session_timer):
    assert session_timer.arm_auto_stop() is False
    assert not session_timer.auto_stop_armed

    session_timer.max_duration = 5
    assert session_timer.arm_auto_stop() is True


@pytest.mark.unit
def test_tick_fires_once_at_limit(session_timer, fake_clock):
    session_timer.max_duration = 5
    session_timer.start()
    session_timer.arm_auto_stop()

    fake_clock.advance(4)
    assert session_timer.tick() is False

    fake_clock.advance(1)
    assert session_timer.tick() is True
    assert not session_timer.auto_stop_armed

    fake_clock.advance(1)
    assert session_timer.tick() is False


@pytest.mark.unit
def test_tick_without_arming_never_fires(session_timer, fake_clock):
    session_timer.max_duration = 1
    session_timer.start()
    fake_clock.advance(10)

    assert session_timer.tick() is False


@pytest.mark.unit
def test_clearing_max_duration_disarms(session_timer):
    session_timer.max_duration = 5
    session_timer.arm_auto_stop()

    session_timer.max_duration = None

    assert not session_timer.auto_stop_armed


@pytest.mark.unit
def test_invalid_max_duration_rejected(session_timer):
    with pytest.raises(ValueError):
        session_timer.max_duration = 0


# =============================================================================
# TICKER THREAD TESTS
# =============================================================================


@pytest.mark.unit_integration
def test_ticker_calls_on_tick():
    timer = SessionTimer(tick_interval=0.02)
    ticked = threading.Event()
    timer.on_tick = ticked.set

    timer.start()
    try:
        assert ticked.wait(timeout=2.0)
    finally:
        timer.reset()


@pytest.mark.unit_integration
def test_ticker_errors_do_not_kill_thread():
    timer = SessionTimer(tick_interval=0.02)
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    timer.on_tick = flaky
    timer.start()
    try:
        deadline = threading.Event()
        for _ in range(100):
            if len(calls) >= 2:
                break
            deadline.wait(0.02)
        assert len(calls) >= 2
    finally:
        timer.reset()
