"""Reduction stage: turns a stream of actions into a stream of new states.

For each action, in order:
  1. the action goes out on the applied-actions stream,
  2. the reducer runs against the cell's value at that moment,
  3. the debug hook sees the change, whether or not anything changed,
  4. the new state is forwarded only if it is not the cell's current value.

The stage never writes the cell; whoever subscribes to it does. Both
pipelines of a store read the same cell, so the reducer always starts from
the latest value either of them wrote, not from a private running total.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, TypeVar

from duxstream.cell import ReplayCell
from duxstream.debug import DebugHook, StateChange
from duxstream.errors import ReducerError
from duxstream.stream import Disposer, EventStream, Observer, Stream

S = TypeVar("S")

Reducer = Callable[[S, Any], S]


class ReductionStage(Generic[S]):
    """Reusable reducer operator bound to one cell."""

    def __init__(
        self,
        cell: ReplayCell[S],
        reducer: Reducer,
        applied: EventStream,
        debug: DebugHook | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self._cell = cell
        self._reducer = reducer
        self._applied = applied
        self._debug = debug
        self._lock = lock or threading.RLock()

    def __call__(self, actions: Stream) -> Stream[S]:
        def _subscribe(obs: Observer[S]) -> Disposer:
            def _on_action(action: Any) -> None:
                with self._lock:
                    self._apply(action, obs)

            return actions.subscribe(_on_action, obs.error, obs.complete)

        return Stream(_subscribe)

    def _apply(self, action: Any, obs: Observer[S]) -> None:
        self._applied.emit(action)
        old_state = self._cell.read()
        try:
            new_state = self._reducer(old_state, action)
        except Exception as exc:
            raise ReducerError(action) from exc
        if self._debug is not None:
            self._debug(StateChange(old_state, new_state, action))
        # compare against the cell as it is now, not old_state
        if new_state is self._cell.read():
            return
        obs.next(new_state)
