"""Actions and transactions — batched state mutations.

Every update() and remove_key() already flushes once at the end. Wrapping
several of them in an @action or `with transaction()` joins them into a
single mutation, so subscribers run once after the outermost scope exits.
This prevents glitchy intermediate states where some dependents have seen
one write but not the next.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from structrx._tracking import mutation

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all state writes inside fn.

    Subscribers only run after fn returns, not during.

    Usage:
        pair = create_state({"a": 0, "b": 0})

        @action
        def swap():
            a, b = pair.a.read(), pair.b.read()
            pair.a.update(b)
            pair.b.update(a)
            # subscribers see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with mutation():
            return fn(*args, **kwargs)

    return wrapper


@contextmanager
def transaction() -> Iterator[None]:
    """Context manager for batching writes.

    Usage:
        with transaction():
            todos.filter.update("done")
            todos.page.update(0)
            # subscribers run here, after both are written
    """
    with mutation():
        yield
