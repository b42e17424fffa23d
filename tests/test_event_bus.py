"""
Tests for the EventBus — sequencing, replay, subscriber lifecycle.
"""

from __future__ import annotations

from sitepipe.core.services.event_bus import RELOAD_CSS, RELOAD_PAGE, EventBus


class TestPublish:
    def test_sequence_and_shape(self):
        bus = EventBus()
        first = bus.reload_css("styles.css")
        second = bus.reload_page("markup")

        assert second["seq"] == first["seq"] + 1
        assert first["type"] == RELOAD_CSS
        assert first["key"] == "styles.css"
        assert second["type"] == RELOAD_PAGE
        assert set(first) >= {"v", "ts", "seq", "type", "key", "data"}

    def test_recent_since(self):
        bus = EventBus()
        events = [bus.reload_page(str(i)) for i in range(3)]
        assert [e["key"] for e in bus.recent(since=events[0]["seq"])] == ["1", "2"]

    def test_ring_buffer_bounded(self):
        bus = EventBus(buffer_size=2)
        for i in range(5):
            bus.reload_page(str(i))
        assert [e["key"] for e in bus.recent()] == ["3", "4"]


class TestSubscribe:
    def test_ready_then_live_events(self):
        bus = EventBus()
        stream = bus.subscribe()
        assert next(stream)["type"] == "sys:ready"
        assert bus.subscriber_count == 1

        bus.reload_css("styles.css")
        event = next(stream)
        assert event["type"] == RELOAD_CSS

        stream.close()
        assert bus.subscriber_count == 0

    def test_replay_after_reconnect(self):
        bus = EventBus()
        first = bus.reload_page("a")
        bus.reload_page("b")
        bus.reload_page("c")

        stream = bus.subscribe(since=first["seq"])
        assert next(stream)["type"] == "sys:ready"
        assert next(stream)["key"] == "b"
        assert next(stream)["key"] == "c"
        stream.close()

    def test_heartbeat_when_idle(self):
        bus = EventBus()
        stream = bus.subscribe(heartbeat_interval=0.01)
        next(stream)
        assert next(stream)["type"] == "sys:heartbeat"
        stream.close()
        assert bus.recent() == []
        assert bus.seq == 0

    def test_heartbeat_stays_with_its_connection(self):
        bus = EventBus()
        idle = bus.subscribe(heartbeat_interval=0.01)
        other = bus.subscribe(heartbeat_interval=5.0)
        next(idle)
        next(other)
        for _ in range(3):
            assert next(idle)["type"] == "sys:heartbeat"

        bus.reload_page("markup")
        assert next(other)["type"] == RELOAD_PAGE
        idle.close()
        other.close()

    def test_ready_carries_last_broadcast_seq(self):
        bus = EventBus()
        last = bus.reload_page("a")
        stream = bus.subscribe()
        ready = next(stream)
        assert ready["seq"] == last["seq"]
        assert ready["data"]["instance_id"]
        stream.close()

    def test_slow_subscriber_dropped(self):
        bus = EventBus(subscriber_queue_size=2)
        stream = bus.subscribe()
        next(stream)
        for i in range(3):
            bus.reload_page(str(i))
        assert bus.subscriber_count == 0
        stream.close()
