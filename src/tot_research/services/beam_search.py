"""Beam search engine for Tree-of-Thoughts exploration.

The engine explores a tree of thoughts depth by depth:

    expand every retained state -> evaluate every candidate -> stable sort
    -> keep the top ``beam_width`` -> append a history snapshot -> descend

Within one depth all generation calls run concurrently (bounded by
``TotConfig.max_concurrency``), then all evaluation calls; both phases are
joined before selection, so beam selection always compares the complete
candidate set of a depth.  Candidates are recorded in generation order --
frontier order, then the order each state's expansion returned them -- and
never in completion order, which makes ties deterministic: the
first-generated candidate wins.

A failing expansion drops that state's branch; a failing evaluation, or one
returning a non-finite value, drops that candidate.  Neither aborts the run.  The engine only raises
``InvalidConfigurationError``; every other way a run can end is reported
through ``ExplorationState.stop_reason``.

Classes
-------
BeamSearchEngine
    The exploration loop.

Functions
---------
best_path
    Rebuild the root-to-leaf path of a final state.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import math
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, Union

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
from tot_research.services.evaluation import HeuristicStateEvaluator

if TYPE_CHECKING:
    from tot_research.infrastructure.event_bus import EventBus
    from tot_research.services.store import ThoughtGraph

logger = logging.getLogger(__name__)

GenerateNextStates = Callable[
    [ExplorationState],
    Union[Iterable[ExplorationState], Awaitable[Iterable[ExplorationState]]],
]
EvaluateState = Callable[[ExplorationState], Union[float, Awaitable[float]]]
DepthHook = Callable[[HistoryEntry], Union[None, Awaitable[None]]]


# ===================================================================== #
#  Depth outcome                                                         #
# ===================================================================== #


@dataclasses.dataclass
class _DepthOutcome:
    """What one depth of fan-out produced, before selection."""

    scored: list[tuple[ExplorationState, float]]
    candidate_count: int = 0
    dropped_count: int = 0


async def _maybe_await(result: Any) -> Any:
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        return await result
    return result


async def _call_hook(hook: DepthHook, entry: HistoryEntry) -> None:
    await _maybe_await(hook(entry))


# ===================================================================== #
#  Engine                                                                #
# ===================================================================== #


class BeamSearchEngine:
    """Depth-by-depth beam search over exploration states.

    Parameters
    ----------
    config:
        Search parameters.  Per-call ``beam_width`` / ``max_depth`` arguments
        to :meth:`run` override the configured values.
    bus:
        Optional event bus for ``ExplorationStarted``, ``DepthCompleted``,
        ``CandidateDropped`` and ``ExplorationFinished`` events.

    Raises
    ------
    InvalidConfigurationError
        If *config* fails validation.
    """

    def __init__(
        self,
        config: TotConfig | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._config = config or TotConfig()
        self._validate_config(self._config)
        self._bus = bus

    @property
    def config(self) -> TotConfig:
        return self._config

    # -- validation -----------------------------------------------------------

    @staticmethod
    def _validate_config(config: TotConfig) -> None:
        try:
            config.validate()
        except ValueError as exc:
            raise InvalidConfigurationError(str(exc)) from exc

    def _resolve_limits(
        self, beam_width: int | None, max_depth: int | None
    ) -> tuple[int, int]:
        width = self._config.beam_width if beam_width is None else beam_width
        depth = self._config.max_depth if max_depth is None else max_depth
        if width < 1:
            raise InvalidConfigurationError(
                f"beam_width must be >= 1, got {width}", field_name="beam_width"
            )
        if depth < 0:
            raise InvalidConfigurationError(
                f"max_depth must be >= 0, got {depth}", field_name="max_depth"
            )
        return width, depth

    # -- public API -----------------------------------------------------------

    async def run(
        self,
        initial_state: ExplorationState,
        generate_next_states: GenerateNextStates,
        evaluate_state: EvaluateState | None = None,
        beam_width: int | None = None,
        max_depth: int | None = None,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
        on_depth_complete: DepthHook | None = None,
    ) -> ExplorationState:
        """Explore from *initial_state* and return the best state reached.

        Parameters
        ----------
        initial_state:
            Depth-0 state holding the root thoughts.
        generate_next_states:
            ``state -> candidate states``; sync or async.  Each candidate
            should hold exactly one new thought.  ``beam_width`` bounds the
            number of retained states, and a history entry records the
            thoughts of every retained state, so multi-thought candidates
            produce entries with more than ``beam_width`` thoughts.
        evaluate_state:
            ``state -> number``; sync or async.  Defaults to
            ``HeuristicStateEvaluator``.  A non-finite value counts as an
            evaluation failure.
        beam_width, max_depth:
            Override the configured limits for this run.
        timeout:
            Wall-clock budget in seconds covering both the fan-out and the
            depth hook; defaults to ``TotConfig.timeout_seconds``.
        cancel_event:
            Setting this event stops the run at the next opportunity.
        on_depth_complete:
            Called with each depth's history entry after selection and
            before the next depth starts; sync or async.  A hook still
            running at the deadline is cancelled, and the run stops with
            that depth's entry kept.

        Returns
        -------
        ExplorationState
            The highest-valued retained state, carrying the full history and
            the ``stop_reason``.  On timeout or cancellation this is the best
            state of the last completed depth.
        """
        width, depth_limit = self._resolve_limits(beam_width, max_depth)
        evaluate = evaluate_state or HeuristicStateEvaluator()
        if timeout is None:
            timeout = self._config.timeout_seconds
        if timeout is not None and timeout <= 0:
            raise InvalidConfigurationError(
                f"timeout must be positive, got {timeout}", field_name="timeout"
            )

        loop = asyncio.get_running_loop()
        started = time.time()
        deadline = None if timeout is None else loop.time() + timeout
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        history: list[HistoryEntry] = list(initial_state.history) or [
            HistoryEntry(depth=initial_state.depth, thoughts=initial_state.thoughts)
        ]
        beam: list[ExplorationState] = [initial_state]
        best = initial_state
        depth = initial_state.depth
        explored = 0
        stop_reason = StopReason.MAX_DEPTH

        self._publish(
            ExplorationStarted(
                source_id="beam_search",
                query=initial_state.query,
                beam_width=width,
                max_depth=depth_limit,
                initial_frontier_size=initial_state.frontier_size,
            )
        )
        logger.info(
            "BeamSearchEngine: exploring %r (beam_width=%d, max_depth=%d)",
            initial_state.query,
            width,
            depth_limit,
        )

        while depth < depth_limit:
            if cancel_event is not None and cancel_event.is_set():
                stop_reason = StopReason.CANCELLED
                break

            step = asyncio.ensure_future(
                self._expand_depth(beam, depth, generate_next_states, evaluate, semaphore)
            )
            interrupted = await self._race(step, loop, deadline, cancel_event)
            if interrupted is not None:
                stop_reason = interrupted
                logger.warning(
                    "BeamSearchEngine: %s during depth %d; returning best state so far",
                    stop_reason.value,
                    depth + 1,
                )
                break

            outcome = step.result()
            if not outcome.scored:
                stop_reason = (
                    StopReason.ALL_FAILED if outcome.dropped_count else StopReason.EXHAUSTED
                )
                logger.info(
                    "BeamSearchEngine: no candidates survived at depth %d (%s)",
                    depth + 1,
                    stop_reason.value,
                )
                break

            # Stable sort: equal values keep generation order.
            ranked = sorted(outcome.scored, key=lambda pair: -pair[1])
            retained = ranked[:width]
            depth += 1

            entry = HistoryEntry(
                depth=depth,
                thoughts=tuple(t for state, _ in retained for t in state.thoughts),
                values=tuple(value for _, value in retained),
            )
            history.append(entry)
            explored += len(entry.thoughts)
            beam = [
                dataclasses.replace(
                    state,
                    query=initial_state.query,
                    depth=depth,
                    value=value,
                    history=tuple(history),
                    stop_reason=None,
                )
                for state, value in retained
            ]
            best = beam[0]

            logger.debug(
                "BeamSearchEngine: depth %d kept %d/%d candidates (best=%.4f)",
                depth,
                len(retained),
                len(outcome.scored),
                best.value,
            )
            self._publish(
                DepthCompleted(
                    source_id="beam_search",
                    depth=depth,
                    max_depth=depth_limit,
                    candidate_count=outcome.candidate_count,
                    dropped_count=outcome.dropped_count,
                    frontier_size=len(retained),
                    best_value=best.value,
                    explored_count=explored,
                )
            )

            if on_depth_complete is not None:
                hook = asyncio.ensure_future(_call_hook(on_depth_complete, entry))
                interrupted = await self._race(hook, loop, deadline, cancel_event)
                if interrupted is not None:
                    stop_reason = interrupted
                    logger.warning(
                        "BeamSearchEngine: %s in depth hook at depth %d; "
                        "returning best state so far",
                        stop_reason.value,
                        depth,
                    )
                    break
                try:
                    hook.result()
                except Exception:
                    logger.exception(
                        "BeamSearchEngine: depth hook failed at depth %d", depth
                    )

            budget = self._config.cost_budget
            if budget is not None and explored > budget:
                stop_reason = StopReason.BUDGET_EXCEEDED
                logger.info(
                    "BeamSearchEngine: cost budget %d exceeded (%d thoughts explored)",
                    budget,
                    explored,
                )
                break

        final = dataclasses.replace(
            best,
            history=tuple(history),
            stop_reason=stop_reason,
        )
        elapsed = time.time() - started
        self._publish(
            ExplorationFinished(
                source_id="beam_search",
                query=initial_state.query,
                final_depth=final.depth,
                stop_reason=stop_reason.value,
                best_value=final.value,
                elapsed_seconds=elapsed,
            )
        )
        logger.info(
            "BeamSearchEngine: finished at depth %d (%s) in %.2fs",
            final.depth,
            stop_reason.value,
            elapsed,
        )
        return final

    def run_sync(
        self,
        initial_state: ExplorationState,
        generate_next_states: GenerateNextStates,
        evaluate_state: EvaluateState | None = None,
        beam_width: int | None = None,
        max_depth: int | None = None,
        **kwargs: Any,
    ) -> ExplorationState:
        """Blocking wrapper around :meth:`run` for callers without a loop."""
        return asyncio.run(
            self.run(
                initial_state,
                generate_next_states,
                evaluate_state,
                beam_width,
                max_depth,
                **kwargs,
            )
        )

    # -- one depth ------------------------------------------------------------

    async def _expand_depth(
        self,
        beam: Sequence[ExplorationState],
        depth: int,
        generate_next_states: GenerateNextStates,
        evaluate: EvaluateState,
        semaphore: asyncio.Semaphore,
    ) -> _DepthOutcome:
        """Fan out generation then evaluation; join both before returning."""

        async def _generate(state: ExplorationState) -> list[ExplorationState]:
            async with semaphore:
                return list(await _maybe_await(generate_next_states(state)))

        async def _evaluate(state: ExplorationState) -> float:
            async with semaphore:
                value = float(await _maybe_await(evaluate(state)))
            if not math.isfinite(value):
                raise ValueError(f"evaluation returned a non-finite value: {value}")
            return value

        dropped = 0
        generated = await asyncio.gather(
            *(_generate(state) for state in beam), return_exceptions=True
        )
        candidates: list[ExplorationState] = []
        for state, result in zip(beam, generated):
            if isinstance(result, Exception):
                dropped += 1
                self._drop(depth + 1, "generation", result)
                continue
            if isinstance(result, BaseException):
                raise result
            candidates.extend(result)

        values = await asyncio.gather(
            *(_evaluate(candidate) for candidate in candidates), return_exceptions=True
        )
        scored: list[tuple[ExplorationState, float]] = []
        for candidate, value in zip(candidates, values):
            if isinstance(value, Exception):
                dropped += 1
                self._drop(depth + 1, "evaluation", value)
                continue
            if isinstance(value, BaseException):
                raise value
            scored.append((candidate, value))

        return _DepthOutcome(
            scored=scored,
            candidate_count=len(candidates),
            dropped_count=dropped,
        )

    async def _race(
        self,
        step: asyncio.Future[Any],
        loop: asyncio.AbstractEventLoop,
        deadline: float | None,
        cancel_event: asyncio.Event | None,
    ) -> StopReason | None:
        """Wait for *step* unless the deadline passes or the run is cancelled.

        Returns ``None`` once *step* is done; otherwise cancels it and
        returns the reason.
        """
        waiters: set[asyncio.Future[Any]] = {step}
        cancel_waiter: asyncio.Future[Any] | None = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)
        remaining = None if deadline is None else max(0.0, deadline - loop.time())

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if step in done:
            return None

        step.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await step
        if cancel_waiter is not None and cancel_waiter in done:
            return StopReason.CANCELLED
        return StopReason.TIMEOUT

    # -- helpers --------------------------------------------------------------

    def _drop(self, depth: int, phase: str, exc: Exception) -> None:
        logger.warning(
            "BeamSearchEngine: dropping candidate at depth %d after %s failure: %s",
            depth,
            phase,
            exc,
        )
        self._publish(
            CandidateDropped(
                source_id="beam_search",
                depth=depth,
                phase=phase,
                error_type=type(exc).__name__,
                error_message=str(exc),
            )
        )

    def _publish(self, event: Any) -> None:
        if self._bus is not None:
            self._bus.publish(event)


# ===================================================================== #
#  Path reconstruction                                                   #
# ===================================================================== #


def best_path(
    state: ExplorationState,
    graph: ThoughtGraph | None = None,
) -> list[ThoughtNode]:
    """Return the root-to-leaf thoughts ending at *state*'s best thought.

    Parents are resolved from the nodes recorded in ``state.history`` and,
    when given, from *graph*.  The walk stops at the first parent that
    cannot be resolved, so the path may start below depth 0 after a
    partially recorded run.
    """
    known: dict[str, ThoughtNode] = {}
    for entry in state.history:
        for thought in entry.thoughts:
            known.setdefault(thought.node_id, thought)
    for thought in state.thoughts:
        known.setdefault(thought.node_id, thought)

    if state.thoughts:
        leaf: ThoughtNode | None = state.thoughts[0]
    else:
        leaf = next(
            (e.thoughts[0] for e in reversed(state.history) if e.thoughts), None
        )
    if leaf is None:
        return []

    path = [leaf]
    seen = {leaf.node_id}
    node = leaf
    while node.parent_id is not None and node.parent_id not in seen:
        parent = known.get(node.parent_id)
        if parent is None and graph is not None:
            parent = graph.get(node.parent_id)
        if parent is None:
            break
        path.append(parent)
        seen.add(parent.node_id)
        node = parent
    path.reverse()
    return path
