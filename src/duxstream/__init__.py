"""duxstream: a reducer store with demand-driven action sources."""

from importlib.metadata import version as _version

__version__ = _version("duxstream")

from duxstream.action import Action, action_creator, of_type
from duxstream.cell import ReplayCell
from duxstream.debug import StateChange, log_state_changes
from duxstream.errors import ReducerError, StoreError
from duxstream.reducer import ReductionStage
from duxstream.sources import from_iterable, of, poll
from duxstream.store import Store, set_scheduler
from duxstream.stream import EventStream, Stream, merge, never
# textual NOT auto-imported: opt-in only

__all__ = [
    "Action",
    "action_creator",
    "of_type",
    "ReplayCell",
    "StateChange",
    "log_state_changes",
    "ReducerError",
    "StoreError",
    "ReductionStage",
    "from_iterable",
    "of",
    "poll",
    "Store",
    "set_scheduler",
    "EventStream",
    "Stream",
    "merge",
    "never",
]
