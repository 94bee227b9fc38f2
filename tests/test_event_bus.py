import pytest

from rebindkit.events import EventBus, EventType


def test_publish_reaches_subscribers_in_order():
    bus = EventBus()
    got = []
    bus.subscribe(EventType.KEYBINDS_UPDATED, lambda e: got.append(("a", e.payload)))
    bus.subscribe(EventType.KEYBINDS_UPDATED, lambda e: got.append(("b", e.payload)))
    bus.publish(EventType.KEYBINDS_UPDATED, {"count": 3})
    assert got == [("a", {"count": 3}), ("b", {"count": 3})]


def test_failing_subscriber_does_not_block_others():
    bus = EventBus()
    got = []

    def bad(event):
        raise RuntimeError("nope")

    bus.subscribe(EventType.REBIND_STARTED, bad)
    bus.subscribe(EventType.REBIND_STARTED, lambda e: got.append(e.name))
    bus.publish(EventType.REBIND_STARTED, {})
    assert got == [EventType.REBIND_STARTED]


def test_unsubscribe():
    bus = EventBus()
    got = []

    def cb(event):
        got.append(event)

    bus.subscribe(EventType.REBIND_CANCELED, cb)
    bus.unsubscribe(EventType.REBIND_STARTED, cb)
    bus.unsubscribe(EventType.REBIND_CANCELED, cb)
    bus.publish(EventType.REBIND_CANCELED, {})
    assert got == []
    with pytest.raises(TypeError):
        bus.subscribe(EventType.REBIND_CANCELED, "not callable")
