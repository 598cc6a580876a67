"""Tests for EventBus and EventStore."""

from __future__ import annotations

from tot_research.domain.events import (
    DepthCompleted,
    DomainEvent,
    ExplorationFinished,
)
from tot_research.infrastructure.event_bus import EventBus, EventStore


class TestEventBus:

    def test_subscribe_and_publish(self) -> None:
        bus = EventBus()
        received: list[DomainEvent] = []
        bus.subscribe(DepthCompleted, received.append)

        event = DepthCompleted(source_id="test", depth=1)
        bus.publish(event)
        bus.publish(ExplorationFinished(source_id="test"))

        assert received == [event]

    def test_global_handlers_run_first(self) -> None:
        bus = EventBus()
        order: list[str] = []
        bus.subscribe(DepthCompleted, lambda e: order.append("typed"))
        bus.subscribe_all(lambda e: order.append("global"))
        bus.publish(DepthCompleted())
        assert order == ["global", "typed"]

    def test_failing_handler_is_isolated(self) -> None:
        bus = EventBus()
        received: list[DomainEvent] = []

        def broken(event: DomainEvent) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe(DepthCompleted, broken)
        bus.subscribe(DepthCompleted, received.append)
        bus.publish(DepthCompleted())
        assert len(received) == 1

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        handler = lambda e: None  # noqa: E731
        bus.subscribe(DepthCompleted, handler)
        assert bus.handler_count(DepthCompleted) == 1
        assert bus.unsubscribe(DepthCompleted, handler) is True
        assert bus.unsubscribe(DepthCompleted, handler) is False
        assert bus.handler_count() == 0

    def test_clear(self) -> None:
        bus = EventBus()
        bus.subscribe_all(lambda e: None)
        bus.subscribe(DepthCompleted, lambda e: None)
        bus.clear()
        assert bus.handler_count() == 0


class TestEventStore:

    def test_query_by_type_and_time(self) -> None:
        store = EventStore()
        store.append(DepthCompleted(timestamp=1.0, depth=1))
        store.append(ExplorationFinished(timestamp=2.0))
        store.append(DepthCompleted(timestamp=3.0, depth=2))

        assert len(store) == 3
        assert [e.depth for e in store.query(DepthCompleted)] == [1, 2]
        assert len(store.query(since=2.0)) == 2
        assert store.query(limit=1)[0].timestamp == 3.0

    def test_max_size_evicts_oldest(self) -> None:
        store = EventStore(max_size=2)
        for i in range(4):
            store.append(DepthCompleted(depth=i))
        assert [e.depth for e in store.query()] == [2, 3]

    def test_clear(self) -> None:
        store = EventStore()
        store.append(DepthCompleted())
        store.clear()
        assert len(store) == 0
