"""Tests for the event bus."""

from folio.core.bus import EventBus


class TestEventBus:
    def test_subscribe_publish(self):
        bus = EventBus()
        received = []
        bus.subscribe("test", received.append)
        bus.publish("test", 42)
        assert received == [42]

    def test_multiple_subscribers(self):
        bus = EventBus()
        results = []
        bus.subscribe("evt", lambda _: results.append("a"))
        bus.subscribe("evt", lambda _: results.append("b"))
        bus.publish("evt")
        assert results == ["a", "b"]

    def test_no_crosstalk(self):
        bus = EventBus()
        results = []
        bus.subscribe("a", lambda _: results.append("a"))
        bus.subscribe("b", lambda _: results.append("b"))
        bus.publish("a")
        assert results == ["a"]

    def test_unsubscribe(self):
        bus = EventBus()
        results = []
        cb = lambda _: results.append(1)  # noqa: E731
        bus.subscribe("evt", cb)
        bus.publish("evt")
        bus.unsubscribe("evt", cb)
        bus.publish("evt")
        assert results == [1]

    def test_unsubscribe_handle(self):
        bus = EventBus()
        results = []
        off = bus.subscribe("evt", results.append)
        off()
        off()  # second call is harmless
        bus.publish("evt", 1)
        assert results == []
        assert bus.subscriber_count("evt") == 0

    def test_publish_no_subscribers(self):
        bus = EventBus()
        bus.publish("nonexistent")  # Should not raise

    def test_failing_callback_does_not_break_others(self):
        bus = EventBus()
        results = []

        def boom(_):
            raise RuntimeError("listener bug")

        bus.subscribe("evt", boom)
        bus.subscribe("evt", results.append)
        bus.publish("evt", "x")
        assert results == ["x"]

    def test_listener_may_unsubscribe_itself(self):
        bus = EventBus()
        results = []

        def once(payload):
            results.append(payload)
            off()

        off = bus.subscribe("evt", once)
        bus.publish("evt", 1)
        bus.publish("evt", 2)
        assert results == [1]

    def test_clear(self):
        bus = EventBus()
        bus.subscribe("a", print)
        bus.subscribe("b", print)
        bus.clear()
        assert bus.subscriber_count("a") == 0
        assert bus.subscriber_count("b") == 0
