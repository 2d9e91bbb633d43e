import pytest

from arena.clock import ManualTimeSource, PausableClock
from arena.sim.systems import events
from arena.sim.systems.events import EventBus


def test_events_are_queued_until_flush():
    bus = EventBus()
    received = []
    bus.subscribe(events.CONSUMED, lambda name, payload: received.append(payload))

    bus.publish(events.CONSUMED, eater_id=1, eaten_id=2, points=20)
    bus.publish(events.GAME_OVER, final_score=20, killer_id=3)
    assert received == []
    assert bus.pending == 2

    assert bus.flush() == 2
    assert received == [{"eater_id": 1, "eaten_id": 2, "points": 20}]
    assert bus.pending == 0


def test_unknown_event_names_are_rejected():
    with pytest.raises(ValueError):
        EventBus().subscribe("exploded", lambda name, payload: None)


def test_unsubscribe_and_clear():
    bus = EventBus()
    received = []

    def handler(name, payload):
        received.append(name)

    bus.subscribe_all(handler)
    bus.publish(events.RESTARTED)
    bus.clear()
    bus.flush()
    bus.unsubscribe(events.AGENT_SPAWNED, handler)
    bus.publish(events.AGENT_SPAWNED, agent_id=4)
    bus.publish(events.RESTARTED)
    bus.flush()
    assert received == [events.RESTARTED]


def test_pausable_clock_skips_suspended_time():
    source = ManualTimeSource(100.0)
    clock = PausableClock(source)

    source.advance(5.0)
    clock.pause()
    source.advance(50.0)
    assert clock.now() == 5.0
    assert clock.paused
    clock.resume()
    source.advance(1.0)
    assert clock.now() == 6.0

    clock.reset()
    assert clock.now() == 0.0
    assert not clock.paused
