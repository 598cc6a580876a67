"""Tests for the BeamSearchEngine exploration loop."""

from __future__ import annotations

import asyncio

import pytest

from tot_research.domain.enums import StopReason
from tot_research.domain.events import (
    CandidateDropped,
    DepthCompleted,
    ExplorationFinished,
    ExplorationStarted,
)
from tot_research.domain.exceptions import InvalidConfigurationError
from tot_research.domain.values import ExplorationState, HistoryEntry, ThoughtNode
from tot_research.infrastructure.config import TotConfig
from tot_research.infrastructure.event_bus import EventBus, EventStore
from tot_research.services.beam_search import BeamSearchEngine, best_path

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def expand(state: ExplorationState, branching: int = 2) -> list[ExplorationState]:
    """Each thought gets *branching* children scored one point apart."""
    out = []
    for node in state.thoughts:
        for i in range(branching):
            child = node.child(f"{node.content}.{i}", max(0.0, node.score - i))
            out.append(
                ExplorationState(query=state.query, depth=state.depth + 1, thoughts=(child,))
            )
    return out


def by_score(state: ExplorationState) -> float:
    return state.thoughts[0].score / 10


def five_roots() -> ExplorationState:
    roots = [ThoughtNode(content=f"root{i}", score=5.0 + i) for i in range(5)]
    return ExplorationState.initial("q", roots)


# ---------------------------------------------------------------------------
# Core loop
# ---------------------------------------------------------------------------


class TestBeamSearchCore:

    @pytest.mark.asyncio
    async def test_five_roots_beam_three_depth_two(self) -> None:
        engine = BeamSearchEngine()
        final = await engine.run(five_roots(), expand, by_score, beam_width=3, max_depth=2)

        assert final.stop_reason is StopReason.MAX_DEPTH
        assert final.depth == 2
        assert len(final.history) == 3
        assert [e.depth for e in final.history] == [0, 1, 2]
        assert len(final.history[0].thoughts) == 5
        assert final.value == max(final.history[-1].values)

    @pytest.mark.asyncio
    async def test_beam_width_invariant(self) -> None:
        engine = BeamSearchEngine()
        final = await engine.run(five_roots(), expand, by_score, beam_width=2, max_depth=3)
        for entry in final.history[1:]:
            assert len(entry.thoughts) <= 2
            assert list(entry.values) == sorted(entry.values, reverse=True)

    @pytest.mark.asyncio
    async def test_retained_thoughts_descend_from_previous_depth(self) -> None:
        engine = BeamSearchEngine()
        final = await engine.run(five_roots(), expand, by_score, beam_width=3, max_depth=3)
        for prev, entry in zip(final.history, final.history[1:]):
            parents = {t.node_id for t in prev.thoughts}
            assert all(t.parent_id in parents for t in entry.thoughts)
            assert all(t.depth == entry.depth for t in entry.thoughts)

    @pytest.mark.asyncio
    async def test_ties_keep_generation_order(self) -> None:
        root = ThoughtNode(content="root", score=5.0)

        def abc(state: ExplorationState) -> list[ExplorationState]:
            return [
                ExplorationState(
                    query=state.query, depth=1, thoughts=(root.child(name, 5.0),)
                )
                for name in ("A", "B", "C")
            ]

        engine = BeamSearchEngine()
        final = await engine.run(
            ExplorationState.initial("q", [root]), abc, beam_width=2, max_depth=1
        )
        assert [t.content for t in final.history[1].thoughts] == ["A", "B"]
        assert final.thoughts[0].content == "A"

    @pytest.mark.asyncio
    async def test_ties_ignore_evaluation_completion_order(self) -> None:
        root = ThoughtNode(content="root", score=5.0)

        def ab(state: ExplorationState) -> list[ExplorationState]:
            return [
                ExplorationState(
                    query=state.query, depth=1, thoughts=(root.child(name, 5.0),)
                )
                for name in ("A", "B")
            ]

        async def a_finishes_last(state: ExplorationState) -> float:
            if state.thoughts[0].content == "A":
                await asyncio.sleep(0.1)
            return 0.5

        final = await BeamSearchEngine().run(
            ExplorationState.initial("q", [root]), ab, a_finishes_last, 1, 1
        )
        assert [t.content for t in final.history[1].thoughts] == ["A"]

    @pytest.mark.asyncio
    async def test_ties_ignore_generation_completion_order(self) -> None:
        root = ThoughtNode(content="root", score=5.0)

        async def first_branch_is_slow(state: ExplorationState) -> list[ExplorationState]:
            node = state.thoughts[0]
            if node.depth == 0:
                names = ["first", "second"]
            else:
                if node.content == "first":
                    await asyncio.sleep(0.1)
                names = [f"{node.content}.child"]
            return [
                ExplorationState(
                    query=state.query,
                    depth=state.depth + 1,
                    thoughts=(node.child(name, 5.0),),
                )
                for name in names
            ]

        async def flat(state: ExplorationState) -> float:
            return 0.5

        final = await BeamSearchEngine().run(
            ExplorationState.initial("q", [root]), first_branch_is_slow, flat, 2, 2
        )
        assert [t.content for t in final.history[2].thoughts] == [
            "first.child",
            "second.child",
        ]
        assert final.thoughts[0].content == "first.child"

    @pytest.mark.asyncio
    async def test_multi_thought_candidates_keep_beam_width_states(self) -> None:
        def pairs(state: ExplorationState) -> list[ExplorationState]:
            node = state.thoughts[0]
            return [
                ExplorationState(
                    query=state.query,
                    depth=state.depth + 1,
                    thoughts=(node.child(f"{i}a", 5.0), node.child(f"{i}b", 5.0)),
                )
                for i in range(3)
            ]

        final = await BeamSearchEngine().run(five_roots(), pairs, beam_width=2, max_depth=1)
        entry = final.history[1]
        assert len(entry.values) == 2
        assert len(entry.thoughts) == 4

    @pytest.mark.asyncio
    async def test_async_callbacks(self) -> None:
        async def gen(state: ExplorationState) -> list[ExplorationState]:
            await asyncio.sleep(0)
            return expand(state)

        async def evaluate(state: ExplorationState) -> float:
            await asyncio.sleep(0)
            return by_score(state)

        final = await BeamSearchEngine().run(five_roots(), gen, evaluate, 3, 2)
        assert final.depth == 2

    @pytest.mark.asyncio
    async def test_max_depth_zero_returns_initial(self) -> None:
        initial = five_roots()
        final = await BeamSearchEngine().run(initial, expand, by_score, max_depth=0)
        assert final.depth == 0
        assert final.thoughts == initial.thoughts
        assert final.stop_reason is StopReason.MAX_DEPTH
        assert len(final.history) == 1

    def test_run_sync(self) -> None:
        final = BeamSearchEngine().run_sync(five_roots(), expand, by_score, 3, 1)
        assert final.depth == 1
        assert len(final.history) == 2


# ---------------------------------------------------------------------------
# Failures and termination
# ---------------------------------------------------------------------------


class TestBeamSearchTermination:

    @pytest.mark.asyncio
    async def test_exhausted(self) -> None:
        final = await BeamSearchEngine().run(five_roots(), lambda s: [], by_score, 3, 2)
        assert final.stop_reason is StopReason.EXHAUSTED
        assert final.depth == 0

    @pytest.mark.asyncio
    async def test_all_generation_failures(self) -> None:
        def boom(state: ExplorationState) -> list[ExplorationState]:
            raise RuntimeError("generator down")

        final = await BeamSearchEngine().run(five_roots(), boom, by_score, 3, 2)
        assert final.stop_reason is StopReason.ALL_FAILED
        assert final.depth == 0

    @pytest.mark.asyncio
    async def test_failed_branch_is_dropped(self) -> None:
        def flaky(state: ExplorationState) -> list[ExplorationState]:
            if state.depth == 1 and state.thoughts[0].content.startswith("root4"):
                raise RuntimeError("flaky branch")
            return expand(state)

        final = await BeamSearchEngine().run(five_roots(), flaky, by_score, 2, 2)
        assert final.stop_reason is StopReason.MAX_DEPTH
        assert final.depth == 2
        assert all(not t.content.startswith("root4") for t in final.history[2].thoughts)

    @pytest.mark.asyncio
    async def test_failed_evaluation_is_dropped(self) -> None:
        def picky(state: ExplorationState) -> float:
            if state.thoughts[0].content == "root4.0":
                raise ValueError("cannot score")
            return by_score(state)

        final = await BeamSearchEngine().run(five_roots(), expand, picky, 3, 1)
        contents = [t.content for t in final.history[1].thoughts]
        assert contents == ["root3.0", "root4.1", "root2.0"]

    @pytest.mark.asyncio
    async def test_all_evaluations_fail(self) -> None:
        def broken(state: ExplorationState) -> float:
            raise ValueError("evaluator down")

        final = await BeamSearchEngine().run(five_roots(), expand, broken, 3, 2)
        assert final.stop_reason is StopReason.ALL_FAILED

    @pytest.mark.asyncio
    async def test_timeout_returns_best_so_far(self) -> None:
        async def slow(state: ExplorationState) -> list[ExplorationState]:
            if state.depth >= 1:
                await asyncio.sleep(5)
            return expand(state)

        final = await BeamSearchEngine().run(
            five_roots(), slow, by_score, 3, 3, timeout=0.2
        )
        assert final.stop_reason is StopReason.TIMEOUT
        assert final.depth == 1
        assert len(final.history) == 2

    @pytest.mark.asyncio
    async def test_cancel_event_during_depth(self) -> None:
        cancel = asyncio.Event()

        async def slow(state: ExplorationState) -> list[ExplorationState]:
            if state.depth >= 1:
                await asyncio.sleep(5)
            return expand(state)

        async def trigger() -> None:
            await asyncio.sleep(0.1)
            cancel.set()

        task = asyncio.ensure_future(trigger())
        final = await BeamSearchEngine().run(
            five_roots(), slow, by_score, 3, 3, cancel_event=cancel
        )
        await task
        assert final.stop_reason is StopReason.CANCELLED
        assert final.depth == 1

    @pytest.mark.asyncio
    async def test_cancel_event_set_before_start(self) -> None:
        cancel = asyncio.Event()
        cancel.set()
        final = await BeamSearchEngine().run(
            five_roots(), expand, by_score, 3, 3, cancel_event=cancel
        )
        assert final.stop_reason is StopReason.CANCELLED
        assert final.depth == 0

    @pytest.mark.asyncio
    async def test_cost_budget(self) -> None:
        engine = BeamSearchEngine(TotConfig(cost_budget=4))
        final = await engine.run(five_roots(), expand, by_score, 3, 5)
        assert final.stop_reason is StopReason.BUDGET_EXCEEDED
        assert final.depth == 2

    @pytest.mark.asyncio
    async def test_depth_hook_failure_does_not_abort(self) -> None:
        seen: list[int] = []

        def hook(entry: HistoryEntry) -> None:
            seen.append(entry.depth)
            raise RuntimeError("hook failed")

        final = await BeamSearchEngine().run(
            five_roots(), expand, by_score, 3, 2, on_depth_complete=hook
        )
        assert seen == [1, 2]
        assert final.depth == 2

    @pytest.mark.asyncio
    async def test_slow_depth_hook_is_bounded_by_timeout(self) -> None:
        async def slow_hook(entry: HistoryEntry) -> None:
            await asyncio.sleep(5)

        loop = asyncio.get_running_loop()
        started = loop.time()
        final = await BeamSearchEngine().run(
            five_roots(), expand, by_score, 3, 3, timeout=0.2, on_depth_complete=slow_hook
        )
        assert loop.time() - started < 2.0
        assert final.stop_reason is StopReason.TIMEOUT
        assert final.depth == 1
        assert len(final.history) == 2
        assert len(final.history[1].thoughts) == 3

    @pytest.mark.asyncio
    async def test_cancel_event_during_depth_hook(self) -> None:
        cancel = asyncio.Event()

        async def hook(entry: HistoryEntry) -> None:
            cancel.set()
            await asyncio.sleep(5)

        final = await BeamSearchEngine().run(
            five_roots(), expand, by_score, 3, 3, cancel_event=cancel, on_depth_complete=hook
        )
        assert final.stop_reason is StopReason.CANCELLED
        assert final.depth == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    async def test_non_finite_value_is_dropped(
        self, bad: float, event_bus: EventBus, event_store: EventStore
    ) -> None:
        def picky(state: ExplorationState) -> float:
            if state.thoughts[0].content == "root4.0":
                return bad
            return by_score(state)

        final = await BeamSearchEngine(bus=event_bus).run(five_roots(), expand, picky, 3, 1)
        contents = [t.content for t in final.history[1].thoughts]
        assert contents == ["root3.0", "root4.1", "root2.0"]
        dropped = event_store.query(CandidateDropped)
        assert len(dropped) == 1
        assert dropped[0].phase == "evaluation"
        assert dropped[0].error_type == "ValueError"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestBeamSearchConfig:

    def test_invalid_config(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            BeamSearchEngine(TotConfig(beam_width=0))

    @pytest.mark.asyncio
    async def test_invalid_beam_width_argument(self) -> None:
        with pytest.raises(InvalidConfigurationError) as info:
            await BeamSearchEngine().run(five_roots(), expand, by_score, beam_width=0)
        assert info.value.field_name == "beam_width"

    @pytest.mark.asyncio
    async def test_invalid_max_depth_argument(self) -> None:
        with pytest.raises(InvalidConfigurationError) as info:
            await BeamSearchEngine().run(five_roots(), expand, by_score, max_depth=-1)
        assert info.value.field_name == "max_depth"

    @pytest.mark.asyncio
    async def test_invalid_timeout_argument(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            await BeamSearchEngine().run(five_roots(), expand, by_score, timeout=0)


# ---------------------------------------------------------------------------
# Events and path reconstruction
# ---------------------------------------------------------------------------


class TestBeamSearchEvents:

    @pytest.mark.asyncio
    async def test_lifecycle_events(
        self, event_bus: EventBus, event_store: EventStore
    ) -> None:
        engine = BeamSearchEngine(bus=event_bus)
        await engine.run(five_roots(), expand, by_score, 3, 2)

        assert len(event_store.query(ExplorationStarted)) == 1
        depths = event_store.query(DepthCompleted)
        assert [e.depth for e in depths] == [1, 2]
        assert depths[0].candidate_count == 10
        assert depths[0].frontier_size == 3
        finished = event_store.query(ExplorationFinished)
        assert finished[0].stop_reason == "max_depth"

    @pytest.mark.asyncio
    async def test_dropped_candidate_event(
        self, event_bus: EventBus, event_store: EventStore
    ) -> None:
        def boom(state: ExplorationState) -> list[ExplorationState]:
            raise RuntimeError("down")

        await BeamSearchEngine(bus=event_bus).run(five_roots(), boom, by_score, 3, 1)
        dropped = event_store.query(CandidateDropped)
        assert len(dropped) == 1
        assert dropped[0].phase == "generation"
        assert dropped[0].error_type == "RuntimeError"


class TestBestPath:

    @pytest.mark.asyncio
    async def test_root_to_leaf(self) -> None:
        final = await BeamSearchEngine().run(five_roots(), expand, by_score, 3, 3)
        path = best_path(final)
        assert [n.depth for n in path] == [0, 1, 2, 3]
        assert path[-1] == final.thoughts[0]
        for parent, child in zip(path, path[1:]):
            assert child.parent_id == parent.node_id

    def test_empty_state(self) -> None:
        assert best_path(ExplorationState(query="q")) == []

    def test_stops_at_unresolved_parent(self) -> None:
        orphan = ThoughtNode(content="x", depth=2, parent_id="gone")
        assert best_path(ExplorationState(query="q", depth=2, thoughts=(orphan,))) == [orphan]
