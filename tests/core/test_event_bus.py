"""
Event Bus Tests

To run:
    pytest tests/core/test_event_bus.py -v
"""

import threading

import pytest

from core.event_bus import ENGINE_EXITED, TIMER_TICK, EventBus


@pytest.fixture
def bus():
    return EventBus()


@pytest.mark.unit
def test_events_wait_for_process_pending(bus):
    seen = []
    bus.subscribe(TIMER_TICK, seen.append)

    bus.publish(TIMER_TICK, 1)
    assert seen == []

    assert bus.process_pending() == 1
    assert seen == [1]


@pytest.mark.unit
def test_events_dispatched_in_order(bus):
    seen = []
    bus.subscribe(TIMER_TICK, lambda data: seen.append(("tick", data)))
    bus.subscribe(ENGINE_EXITED, lambda data: seen.append(("exit", data)))

    bus.publish(TIMER_TICK, 1)
    bus.publish(ENGINE_EXITED)
    bus.publish(TIMER_TICK, 2)
    bus.process_pending()

    assert seen == [("tick", 1), ("exit", None), ("tick", 2)]


@pytest.mark.unit
def test_handler_error_does_not_stop_dispatch(bus):
    seen = []

    def broken(data):
        raise RuntimeError("handler bug")

    bus.subscribe(TIMER_TICK, broken)
    bus.subscribe(TIMER_TICK, seen.append)

    bus.publish(TIMER_TICK, "a")
    bus.process_pending()

    assert seen == ["a"]


@pytest.mark.unit
def test_events_published_by_handlers_are_processed(bus):
    seen = []
    bus.subscribe(TIMER_TICK, lambda data: bus.publish(ENGINE_EXITED))
    bus.subscribe(ENGINE_EXITED, seen.append)

    bus.publish(TIMER_TICK)

    assert bus.process_pending() == 2
    assert seen == [None]


@pytest.mark.unit
def test_clear_drops_pending(bus):
    bus.publish(TIMER_TICK)
    bus.publish(TIMER_TICK)

    bus.clear()

    assert bus.process_pending() == 0


@pytest.mark.unit_integration
def test_process_pending_waits_for_worker_event(bus):
    handled_on = []
    bus.subscribe(ENGINE_EXITED, lambda data: handled_on.append(threading.current_thread()))

    worker = threading.Timer(0.05, bus.publish, args=(ENGINE_EXITED,))
    worker.start()
    processed = bus.process_pending(timeout=2.0)
    worker.join()

    assert processed == 1
    assert handled_on == [threading.current_thread()]
