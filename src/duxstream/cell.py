"""Replay cell: the single holder of current state.

A ReplayCell is an EventStream that always holds exactly one value. New
subscribers receive the held value at the moment they subscribe, then every
later write. Writes with nobody subscribed still update the value, so it
survives gaps with zero observers.
"""

from __future__ import annotations

from typing import TypeVar

from duxstream.stream import Disposer, EventStream, Observer

T = TypeVar("T")


class ReplayCell(EventStream[T]):
    """A value cell that replays its current value to new subscribers."""

    def __init__(self, value: T) -> None:
        super().__init__()
        self._value = value

    def read(self) -> T:
        """The last written value, or the initial one."""
        return self._value

    @property
    def value(self) -> T:
        return self._value

    def write(self, value: T) -> None:
        """Replace the held value and notify current subscribers."""
        self._value = value
        super().emit(value)

    def emit(self, value: T) -> None:
        self.write(value)

    def _add_observer(self, observer: Observer[T]) -> Disposer:
        unsubscribe = super()._add_observer(observer)
        observer.next(self._value)
        return unsubscribe

    def __repr__(self) -> str:
        return f"ReplayCell({self._value!r})"
