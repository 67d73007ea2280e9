"""Textual integration for structrx. Opt-in — requires textual.

Observation sites whose effects touch widgets go through here: runs are
skipped while the app is not running or inside pause(app), and NoMatches
from widget queries racing a widget replacement is swallowed. A skipped run
keeps its previous subscriptions, so the site picks up again on the next
change once the app is safe.
"""

import logging
from contextlib import contextmanager

from textual.css.query import NoMatches

from structrx.subscriber import autorun as _autorun, reaction as _reaction

logger = logging.getLogger("structrx.textual")

# Pause state keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded observation sites during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _swallow_no_matches(fn):
    def _safe(*args):
        try:
            fn(*args)
        except NoMatches as exc:
            logger.debug("skipped run, widget not mounted: %s", exc)

    return _safe


def reaction(app, data_fn, effect_fn, *, fire_immediately=False):
    """reaction() whose effect safely updates Textual widgets.

    data_fn always runs, so its dependencies stay tracked; only effect_fn is
    guarded.

    Usage:
        stx.reaction(
            app,
            lambda: todos.items.use_size(),
            lambda n: app.query_one("#count", Static).update(f"{n} items"),
        )
    """
    safe = _swallow_no_matches(effect_fn)

    def _guarded(value):
        if is_safe(app):
            safe(value)

    return _reaction(data_fn, _guarded, fire_immediately=fire_immediately)


def autorun(app, fn):
    """autorun() whose body safely reads state and updates Textual widgets.

    The first run always happens so the site learns its dependencies. Later
    runs are skipped while the app is unsafe.
    """
    subscriber = _autorun(_swallow_no_matches(fn))
    react = subscriber.reaction

    def _guarded():
        if is_safe(app):
            react()

    subscriber.reaction = _guarded
    return subscriber
