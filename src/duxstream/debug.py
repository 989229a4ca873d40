"""State change records for the store's debug hook."""

from __future__ import annotations

import logging
from typing import Any, Callable, NamedTuple


class StateChange(NamedTuple):
    """One reduction: the state before, the state after, and the action.

    The record emitted at construction has old_state and action set to None.
    """

    old_state: Any
    new_state: Any
    action: Any


DebugHook = Callable[[StateChange], None]


def log_state_changes(
    logger: logging.Logger | None = None, level: int = logging.DEBUG
) -> DebugHook:
    """Build a debug hook that logs every state change.

    Usage:
        store = Store(reducer, initial, debug=log_state_changes())
    """
    log = logger or logging.getLogger("duxstream.debug")

    def hook(change: StateChange) -> None:
        if not log.isEnabledFor(level):
            return
        if change.action is None:
            log.log(level, "Initial state: %r", change.new_state)
        elif change.new_state is change.old_state:
            log.log(level, "%s: state unchanged", getattr(change.action, "type", change.action))
        else:
            log.log(
                level,
                "%s: %r -> %r",
                getattr(change.action, "type", change.action),
                change.old_state,
                change.new_state,
            )

    return hook
