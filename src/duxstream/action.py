"""Actions: typed events describing an intended state change.

The store never inspects an action beyond handing it to the reducer, so any
object with `type` and `payload` attributes can be dispatched. Action is the
stock immutable shape.
"""

from __future__ import annotations

from typing import Any, Callable, NamedTuple


class Action(NamedTuple):
    type: str
    payload: Any = None


def action_creator(action_type: str) -> Callable[[Any], Action]:
    """Factory for actions of one type.

    Usage:
        update = action_creator("Update")
        store.dispatch(update({"id": 1}))
        update.type  # "Update"
    """

    def create(payload: Any = None) -> Action:
        return Action(action_type, payload)

    create.type = action_type
    create.__name__ = f"create_{action_type}"
    return create


def of_type(*action_types: str) -> Callable[[Any], bool]:
    """Predicate matching actions by type, for use with Stream.filter().

    Usage:
        store.actions.filter(of_type("Update", "Reset")).subscribe(log.append)
    """
    wanted = frozenset(action_types)
    return lambda action: getattr(action, "type", None) in wanted
