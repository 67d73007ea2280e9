"""Dependency tracking engine — the heart of structrx.

Uses contextvars to track which Topics are read during an observation site's
evaluation, building the dependency set automatically.

Batching: every mutation runs inside a MutationContext. Topic.set() marks
subscribers dirty in the active context; when the outermost context exits,
the dirty subscribers are flushed once each. Subscribers that mutate while
being flushed are queued for the next round, and rounds are drained before
control returns to the caller.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from structrx.subscriber import Subscriber
    from structrx.topic import Topic

logger = logging.getLogger("structrx.tracking")

# Topics collected by the currently-evaluating observation site.
# When set, use*() calls on State register the Topics they visit here.
current_topics: contextvars.ContextVar[list[Topic] | None] = contextvars.ContextVar(
    "current_topics", default=None
)


class MutationContext:
    """Accumulates dirty subscribers for one outermost mutating call."""

    __slots__ = ("depth", "dirty")

    def __init__(self) -> None:
        self.depth = 0
        self.dirty: set[Subscriber] = set()

    def mark_dirty(self, subscriber: Subscriber) -> None:
        self.dirty.add(subscriber)

    def flush(self) -> None:
        """Run dirty subscribers round by round until none are left."""
        rounds = 0
        try:
            while self.dirty:
                # Swap out; subscribers may mark new ones during run.
                batch = self.dirty
                self.dirty = set()
                rounds += 1
                logger.debug("flush round %d: %d subscriber(s)", rounds, len(batch))
                for subscriber in batch:
                    if subscriber.active:
                        subscriber.run()
        finally:
            self.dirty.clear()


_active: contextvars.ContextVar[MutationContext | None] = contextvars.ContextVar(
    "active_mutation", default=None
)


@contextmanager
def mutation() -> Iterator[MutationContext]:
    """Acquire the mutation context. Nested scopes join the outermost one.

    The outermost scope flushes on exit, including exits by exception, and
    releases the context before returning.
    """
    ctx = _active.get()
    if ctx is not None:
        ctx.depth += 1
        try:
            yield ctx
        finally:
            ctx.depth -= 1
        return

    ctx = MutationContext()
    ctx.depth = 1
    token = _active.set(ctx)
    try:
        yield ctx
    finally:
        ctx.depth = 0
        try:
            ctx.flush()
        finally:
            _active.reset(token)


def active_context() -> MutationContext | None:
    return _active.get()


def track(topics: list[Topic]) -> bool:
    """Register topics with the running observation site, if any."""
    collected = current_topics.get()
    if collected is None:
        return False
    collected.extend(topics)
    return True


def is_tracking() -> bool:
    return current_topics.get() is not None


def get_pending_count() -> int:
    """Number of subscribers waiting to run. Useful for testing."""
    ctx = _active.get()
    return len(ctx.dirty) if ctx is not None else 0
