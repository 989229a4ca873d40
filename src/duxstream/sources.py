"""Ready-made action producers.

of() and from_iterable() replay fixed values on every subscription.
poll() runs a function on a managed daemon thread for as long as it is
subscribed. Used as a cold source, it only does work while somebody
observes the store's state.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable, TypeVar

from duxstream.stream import Disposer, Observer, Stream, _noop

T = TypeVar("T")


def from_iterable(items: Iterable[T]) -> Stream[T]:
    """Emit every item synchronously on subscribe, then complete."""

    def _subscribe(obs: Observer[T]) -> Disposer:
        for item in items:
            if obs.stopped:
                break
            obs.next(item)
        obs.complete()
        return _noop

    return Stream(_subscribe)


def of(*values: T) -> Stream[T]:
    """Emit the given values synchronously on subscribe, then complete."""
    return from_iterable(values)


class PollHandle:
    """Disposable handle for one polling thread."""

    __slots__ = ("_stop",)

    def __init__(self) -> None:
        self._stop = threading.Event()

    @property
    def disposed(self) -> bool:
        return self._stop.is_set()

    def dispose(self) -> None:
        """Signal the thread to stop after its current call."""
        self._stop.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to seconds. True if disposed meanwhile."""
        return self._stop.wait(seconds)


def poll(fn: Callable[[], T], interval: float) -> Stream[T]:
    """Call fn every interval seconds on a daemon thread and emit the results.

    Each subscription gets its own thread, started on subscribe and stopped
    on dispose. fn is never called while nothing is subscribed. An
    exception from fn ends the stream with that error.

    Usage:
        refresh = poll(lambda: Action("Refresh", fetch_prices()), 5.0)
        store = Store(reducer, {}, cold_actions=[refresh])
    """

    def _subscribe(obs: Observer[T]) -> Disposer:
        handle = PollHandle()

        def _run() -> None:
            while not handle.disposed:
                try:
                    value = fn()
                except Exception as exc:
                    if not handle.disposed:
                        obs.error(exc)
                    return
                if handle.disposed:
                    return
                obs.next(value)
                if handle.wait(interval):
                    return

        threading.Thread(target=_run, daemon=True).start()
        return handle.dispose

    return Stream(_subscribe)
