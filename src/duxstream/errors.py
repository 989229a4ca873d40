"""Exception types for duxstream stores."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for store failures."""


class ReducerError(StoreError):
    """The reducer raised while applying an action.

    The reducer's exception is chained as __cause__. The state is left as it
    was before the action.
    """

    def __init__(self, action: object) -> None:
        action_type = getattr(action, "type", None)
        super().__init__(f"Reducer failed on action {action_type!r}")
        self.action = action
