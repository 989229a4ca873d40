"""Store: single state cell fed by hot and cold action streams.

Actions reach the state through two pipelines that share one ReplayCell:

- hot: dispatch() plus every hot source. Subscribed at construction and
  kept for the store's lifetime; results are written straight to the cell.
- cold: every cold source. Subscribed only while something observes
  `state`, shared across observers with the cell as the multicast point.

Cold sources thereby learn that their output is being watched simply by
being subscribed. The cell keeps the last state across the gaps when
nobody is watching.

Thread safety: call set_scheduler() once from the owning thread. After
that, dispatch() from any other thread is handed to the scheduler.
Dispatch on the owning thread stays synchronous.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Sequence, TypeVar

from duxstream.cell import ReplayCell
from duxstream.debug import DebugHook, StateChange
from duxstream.reducer import ReductionStage, Reducer
from duxstream.stream import Disposer, EventStream, Observer, Stream, merge, never

S = TypeVar("S")
R = TypeVar("R")

logger = logging.getLogger("duxstream.store")

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread dispatch.

    Call once from the main/UI thread:
        duxstream.set_scheduler(app.call_from_thread)

    After this, any Store.dispatch() from a background thread is
    marshaled. Main-thread dispatches remain synchronous.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread()


def _identity(value):
    return value


class Store(Generic[S]):
    """Reducer-driven state container with hot and cold action sources."""

    def __init__(
        self,
        reducer: Reducer,
        initial_state: S,
        cold_actions: Sequence[Stream] | None = None,
        hot_actions: Sequence[Stream] | None = None,
        debug: DebugHook | None = None,
    ) -> None:
        cold_actions = list(cold_actions or [])
        hot_actions = list(hot_actions or [])
        self._cell: ReplayCell[S] = ReplayCell(initial_state)
        self._dispatched: EventStream = EventStream()
        self._applied: EventStream = EventStream()
        self._lock = threading.RLock()

        self.actions: Stream = self._applied.as_stream()
        self.state: Stream[S] = self._create_state(reducer, cold_actions, debug)
        self._hot_disposer = self._start_hot_actions(reducer, hot_actions, debug)
        logger.debug(
            "Store created: %d cold, %d hot action sources",
            len(cold_actions), len(hot_actions),
        )
        if debug is not None:
            debug(StateChange(None, initial_state, None))

    def dispatch(self, action: Any) -> None:
        """Apply an action. Auto-marshals from background threads."""
        if _scheduler is not None and threading.current_thread() != _scheduler_thread:
            logger.debug("Marshaling dispatch of %r to the scheduler thread", action)
            _scheduler(lambda a=action: self._dispatched.emit(a))
        else:
            self._dispatched.emit(action)

    def select(self, selector: Callable[[S], R] = _identity) -> Stream[R]:
        """Stream a slice of state, skipping repeats of the same object.

        Usage:
            store.select(lambda s: s["user"]).subscribe(render_user)
        """
        return self.state.map(selector).distinct_until_changed()

    def _reduction_stage(self, reducer: Reducer, debug: DebugHook | None) -> ReductionStage[S]:
        return ReductionStage(self._cell, reducer, self._applied, debug, self._lock)

    def _start_hot_actions(
        self, reducer: Reducer, hot_actions: list[Stream], debug: DebugHook | None
    ) -> Disposer:
        """Subscribe the hot pipeline for the store's lifetime."""
        actions = merge(self._dispatched, *(s.skip_errors() for s in hot_actions))
        reduce = self._reduction_stage(reducer, debug)
        return reduce(actions).subscribe(self._cell.write)

    def _create_state(
        self, reducer: Reducer, cold_actions: list[Stream], debug: DebugHook | None
    ) -> Stream[S]:
        """Build the ref-counted cold pipeline, multicast through the cell.

        never() keeps the merge open when every cold source has completed.
        """
        merged = merge(*(s.skip_errors() for s in cold_actions), never())
        count = len(cold_actions)

        def _connect(obs: Observer) -> Disposer:
            logger.debug("State observed: connecting %d cold action sources", count)
            unsubscribe = merged._observe(obs)

            def _disconnect() -> None:
                logger.debug("State unobserved: disconnecting %d cold action sources", count)
                unsubscribe()

            return _disconnect

        reduce = self._reduction_stage(reducer, debug)
        return reduce(Stream(_connect)).share(self._cell, self._lock)

    def __repr__(self) -> str:
        return f"Store({self._cell.read()!r})"
