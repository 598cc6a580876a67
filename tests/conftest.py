"""Shared fixtures for the tot_research test suite."""

from __future__ import annotations

import pytest

from tot_research.domain.values import ExplorationState, ThoughtNode
from tot_research.infrastructure.event_bus import EventBus, EventStore
from tot_research.services.store import ThoughtGraph

# ---------------------------------------------------------------------------
# Thought fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def query() -> str:
    return "solid-state batteries"


@pytest.fixture
def roots() -> list[ThoughtNode]:
    """Three root thoughts with distinct scores."""
    return [
        ThoughtNode(node_id="r1", content="Survey battery chemistry", score=8.0),
        ThoughtNode(node_id="r2", content="Compare battery manufacturing", score=6.0),
        ThoughtNode(node_id="r3", content="Track market adoption", score=7.0),
    ]


@pytest.fixture
def initial_state(query: str, roots: list[ThoughtNode]) -> ExplorationState:
    return ExplorationState.initial(query, roots)


@pytest.fixture
def thought_graph(roots: list[ThoughtNode]) -> ThoughtGraph:
    return ThoughtGraph(roots)


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def event_store(event_bus: EventBus) -> EventStore:
    """An event store subscribed to every event on ``event_bus``."""
    store = EventStore()
    event_bus.subscribe_all(store.append)
    return store
