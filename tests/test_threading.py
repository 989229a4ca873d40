"""Tests for cross-thread dispatch: set_scheduler marshaling and the store lock."""

import threading

import duxstream.store as _store_mod
from duxstream import Action, EventStream, Store


def _add(state, action):
    return state + action.payload


class _SchedulerPatch:
    """Install a scheduler for the duration of a test, then restore."""

    def __init__(self, scheduler, thread=None):
        self._scheduler = scheduler
        self._thread = thread or threading.current_thread()

    def __enter__(self):
        self._old = _store_mod._scheduler, _store_mod._scheduler_thread
        _store_mod._scheduler = self._scheduler
        _store_mod._scheduler_thread = self._thread
        return self

    def __exit__(self, *exc):
        _store_mod._scheduler, _store_mod._scheduler_thread = self._old


class TestSetScheduler:
    def test_records_calling_thread(self):
        old = _store_mod._scheduler, _store_mod._scheduler_thread
        try:
            _store_mod.set_scheduler(lambda f: f())
            assert _store_mod._scheduler_thread is threading.current_thread()
        finally:
            _store_mod._scheduler, _store_mod._scheduler_thread = old


class TestAutoMarshal:
    """Store.dispatch() auto-marshals from background threads."""

    def test_main_thread_is_synchronous(self):
        calls = []
        with _SchedulerPatch(lambda f: (calls.append(f), f())):
            store = Store(_add, 0)
            states = []
            store.state.subscribe(states.append)
            store.dispatch(Action("Add", 1))
            assert states == [0, 1]
            assert calls == []

    def test_background_thread_marshals(self):
        calls = []
        with _SchedulerPatch(lambda f: (calls.append(f), f())):
            store = Store(_add, 0)
            states = []
            store.state.subscribe(states.append)
            done = threading.Event()

            def bg():
                store.dispatch(Action("Add", 5))
                done.set()

            threading.Thread(target=bg).start()
            assert done.wait(timeout=2)
            assert len(calls) == 1
            assert states == [0, 5]

    def test_marshaled_dispatch_is_deferred_to_scheduler(self):
        queue = []
        with _SchedulerPatch(queue.append):
            store = Store(_add, 0)
            states = []
            store.state.subscribe(states.append)
            t = threading.Thread(target=lambda: store.dispatch(Action("Add", 2)))
            t.start()
            t.join()
            assert states == [0]
            queue.pop()()
            assert states == [0, 2]

    def test_no_scheduler_is_direct(self):
        with _SchedulerPatch(None):
            store = Store(_add, 0)
            states = []
            store.state.subscribe(states.append)
            t = threading.Thread(target=lambda: store.dispatch(Action("Add", 3)))
            t.start()
            t.join()
            assert states == [0, 3]


class TestSerializedReduction:
    def test_concurrent_producers_lose_no_updates(self):
        hot, cold = EventStream(), EventStream()
        store = Store(_add, 0, cold_actions=[cold], hot_actions=[hot])
        store.state.subscribe(lambda s: None)
        n = 200

        def pump(stream):
            for _ in range(n):
                stream.emit(Action("Add", 1))

        threads = [
            threading.Thread(target=pump, args=(hot,)),
            threading.Thread(target=pump, args=(cold,)),
            threading.Thread(target=lambda: [store.dispatch(Action("Add", 1)) for _ in range(n)]),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = []
        store.state.subscribe(final.append)
        assert final == [3 * n]
