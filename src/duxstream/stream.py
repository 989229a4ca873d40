"""Push-based streams with subscription lifecycles.

Stream is lazy: nothing runs until subscribe(), and every subscription
returns a disposer that tears it down. EventStream is the hot end: values
pushed with emit() go to whoever is subscribed right now.

Operators return new Streams (immutable chain). A subscription follows the
grammar next* (error | complete)?; an error with no on_error handler is
re-raised at the emitter.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

from duxstream.errors import StoreError

T = TypeVar("T")
U = TypeVar("U")

Disposer = Callable[[], None]

logger = logging.getLogger("duxstream.stream")


def _noop() -> None:
    pass


class Observer(Generic[T]):
    """Callback triple for one subscription. Drops events once stopped."""

    __slots__ = ("_on_next", "_on_error", "_on_complete", "stopped")

    def __init__(
        self,
        on_next: Callable[[T], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        self._on_next = on_next
        self._on_error = on_error
        self._on_complete = on_complete
        self.stopped = False

    def next(self, value: T) -> None:
        if not self.stopped and self._on_next is not None:
            self._on_next(value)

    def error(self, exc: BaseException) -> None:
        if self.stopped:
            return
        self.stopped = True
        if self._on_error is None:
            raise exc
        self._on_error(exc)

    def complete(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        if self._on_complete is not None:
            self._on_complete()


class Stream(Generic[T]):
    """Lazy stream defined by a subscribe function."""

    def __init__(self, subscribe_fn: Callable[[Observer[T]], Disposer]) -> None:
        self._subscribe_fn = subscribe_fn

    def subscribe(
        self,
        on_next: Callable[[T], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> Disposer:
        """Start a subscription. Returns a function that ends it.

        A producer that raises while subscribing is treated as a stream
        error. StoreError (a reducer fault hit by a synchronous emission)
        is re-raised to the subscriber instead.
        """
        observer = Observer(on_next, on_error, on_complete)
        try:
            inner = self._subscribe_fn(observer)
        except StoreError:
            observer.stopped = True
            raise
        except Exception as exc:
            observer.error(exc)
            return _noop
        disposed = [False]

        def _dispose() -> None:
            if disposed[0]:
                return
            disposed[0] = True
            observer.stopped = True
            inner()

        return _dispose

    def _observe(self, observer: Observer) -> Disposer:
        """Subscribe an operator's downstream observer to this stream."""
        return self.subscribe(observer.next, observer.error, observer.complete)

    # --- Operators ---

    def map(self, fn: Callable[[T], U]) -> Stream[U]:
        """Transform values through fn."""
        return Stream(
            lambda obs: self.subscribe(lambda v: obs.next(fn(v)), obs.error, obs.complete)
        )

    def filter(self, fn: Callable[[T], bool]) -> Stream[T]:
        """Only pass values where fn returns True."""
        return Stream(
            lambda obs: self.subscribe(
                lambda v: obs.next(v) if fn(v) else None, obs.error, obs.complete
            )
        )

    def distinct_until_changed(self) -> Stream[T]:
        """Drop a value when it is the same object as the previous one."""

        def _subscribe(obs: Observer[T]) -> Disposer:
            last: list = []

            def _on_next(value: T) -> None:
                if last and last[0] is value:
                    return
                last[:] = [value]
                obs.next(value)

            return self.subscribe(_on_next, obs.error, obs.complete)

        return Stream(_subscribe)

    def debounce(self, seconds: float) -> Stream[T]:
        """Coalesce rapid values, emitting after a quiet period.

        Uses threading.Timer (daemon=True). Each new value cancels the
        previous timer, so only the last value in a burst fires.
        """

        def _subscribe(obs: Observer[T]) -> Disposer:
            timer_lock = threading.Lock()
            # (timer, [value]) of the pending emission; the list is the identity token
            timer_ref: list[tuple[threading.Timer, list] | None] = [None]

            def _fire(token: list) -> None:
                with timer_lock:
                    if timer_ref[0] is None or timer_ref[0][1] is not token:
                        return
                    timer_ref[0] = None
                obs.next(token[0])

            def _take_pending() -> list | None:
                with timer_lock:
                    pending, timer_ref[0] = timer_ref[0], None
                if pending is None:
                    return None
                pending[0].cancel()
                return pending[1]

            def _on_next(value: T) -> None:
                with timer_lock:
                    if timer_ref[0] is not None:
                        timer_ref[0][0].cancel()
                    token = [value]
                    t = threading.Timer(seconds, _fire, args=[token])
                    t.daemon = True
                    timer_ref[0] = (t, token)
                    t.start()

            def _on_error(exc: BaseException) -> None:
                _take_pending()
                obs.error(exc)

            def _on_complete() -> None:
                token = _take_pending()
                if token is not None:
                    obs.next(token[0])
                obs.complete()

            unsubscribe = self.subscribe(_on_next, _on_error, _on_complete)

            def _dispose() -> None:
                _take_pending()
                unsubscribe()

            return _dispose

        return Stream(_subscribe)

    def skip_errors(self) -> Stream[T]:
        """Isolate faults: an upstream error ends this stream quietly.

        Nothing is emitted for the error and no error propagates; the
        subscriber sees a plain completion. Meant to be applied to each
        producer before merging, so one failing producer cannot end the
        merged stream.
        """

        def _subscribe(obs: Observer[T]) -> Disposer:
            def _on_error(exc: BaseException) -> None:
                logger.warning(
                    "Action source %r failed; it will no longer contribute",
                    self,
                    exc_info=exc,
                )
                obs.complete()

            return self.subscribe(obs.next, _on_error, obs.complete)

        return Stream(_subscribe)

    def share(
        self, subject: EventStream[T], lock: threading.RLock | None = None
    ) -> Stream[T]:
        """Multicast through subject with a reference-counted connection.

        The first subscriber connects this stream to subject; the last one
        to leave disconnects it. subject outlives the connection, so a
        replaying subject keeps its value across a zero-subscriber gap.
        Pass the lock that guards whatever feeds subject to keep
        subscribe/dispose ordered with it.
        """
        lock = lock or threading.RLock()
        count = [0]
        connection: list[Disposer | None] = [None]

        def _subscribe(obs: Observer[T]) -> Disposer:
            with lock:
                count[0] += 1
                unsubscribe = _noop
                try:
                    unsubscribe = subject._observe(obs)
                    if count[0] == 1:
                        connection[0] = self.subscribe(
                            subject.emit, subject.error, subject.complete
                        )
                except Exception:
                    # leave the count as if this subscriber never arrived
                    count[0] -= 1
                    unsubscribe()
                    if count[0] == 0:
                        connection[0] = None
                    raise

            def _dispose() -> None:
                with lock:
                    unsubscribe()
                    count[0] -= 1
                    if count[0] == 0 and connection[0] is not None:
                        disconnect, connection[0] = connection[0], None
                        disconnect()

            return _dispose

        return Stream(_subscribe)


class _Subscription:
    __slots__ = ("observer", "active")

    def __init__(self, observer: Observer) -> None:
        self.observer = observer
        self.active = True


class EventStream(Stream[T]):
    """Hot multicast stream: emit values to the current subscribers."""

    def __init__(self) -> None:
        super().__init__(self._add_observer)
        self._subscriptions: list[_Subscription] = []
        self._terminal: tuple[str, BaseException | None] | None = None
        self._disposed = False

    def emit(self, value: T) -> None:
        """Push a value to all subscribers."""
        if self._disposed or self._terminal is not None:
            return
        for sub in list(self._subscriptions):
            if sub.active:
                sub.observer.next(value)

    def error(self, exc: BaseException) -> None:
        """End the stream with an error."""
        if self._disposed or self._terminal is not None:
            return
        self._terminal = ("error", exc)
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            if sub.active:
                sub.observer.error(exc)

    def complete(self) -> None:
        """End the stream normally."""
        if self._disposed or self._terminal is not None:
            return
        self._terminal = ("complete", None)
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            if sub.active:
                sub.observer.complete()

    def dispose(self) -> None:
        """Drop all subscribers silently. Later emits are no-ops."""
        self._disposed = True
        for sub in self._subscriptions:
            sub.active = False
        self._subscriptions.clear()

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscriptions)

    def as_stream(self) -> Stream[T]:
        """A read-only view: subscribable, but with no emit()."""
        return Stream(self._add_observer)

    def _add_observer(self, observer: Observer[T]) -> Disposer:
        if self._terminal is not None:
            kind, exc = self._terminal
            if kind == "error":
                observer.error(exc)
            else:
                observer.complete()
            return _noop
        sub = _Subscription(observer)
        self._subscriptions.append(sub)

        def _unsubscribe() -> None:
            sub.active = False
            try:
                self._subscriptions.remove(sub)
            except ValueError:
                pass  # already removed

        return _unsubscribe


def merge(*streams: Stream[T]) -> Stream[T]:
    """Interleave several streams into one.

    Completes once every input has completed. An error from any input
    disposes the rest and is forwarded.
    """

    def _subscribe(obs: Observer[T]) -> Disposer:
        disposers: list[Disposer] = []
        remaining = [len(streams)]
        stopped = [False]

        def _dispose_all() -> None:
            for d in disposers:
                d()
            disposers.clear()

        def _on_error(exc: BaseException) -> None:
            if stopped[0]:
                return
            stopped[0] = True
            _dispose_all()
            obs.error(exc)

        def _on_complete() -> None:
            remaining[0] -= 1
            if remaining[0] == 0 and not stopped[0]:
                stopped[0] = True
                obs.complete()

        if not streams:
            obs.complete()
            return _noop
        try:
            for stream in streams:
                if stopped[0]:
                    break
                disposers.append(stream.subscribe(obs.next, _on_error, _on_complete))
                # an input that errored while subscribing already ran _dispose_all
                if stopped[0]:
                    _dispose_all()
        except Exception:
            stopped[0] = True
            _dispose_all()
            raise
        return _dispose_all

    return Stream(_subscribe)


def never() -> Stream:
    """A stream that never emits and never ends."""
    return Stream(lambda obs: _noop)
