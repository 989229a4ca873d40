"""Textual integration for duxstream. Opt-in, requires textual.

Store streams may emit from any thread a producer runs on, and a widget
may be mid-replacement when they do. subscribe() guards an effect against
both, so call sites stay plain `stx.subscribe(app, store.select(...), fn)`.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

logger = logging.getLogger("duxstream.textual")

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded subscriptions during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def subscribe(app, stream, effect):
    """Subscribe effect to a store stream, bridged safely to Textual widgets.

    Values arriving while the app is paused or not running are skipped.
    NoMatches from widget queries is swallowed; values from other threads
    are marshaled through app.call_from_thread. Returns the disposer.
    """
    _main = threading.get_ident()

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            effect(value)
        except NoMatches:
            logger.debug("Skipped update: widget not mounted")

    return stream.subscribe(_guarded)
