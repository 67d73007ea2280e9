"""Subscribers — reactions bound to a replaceable set of Topics.

A Subscriber is created once per long-lived observation site. Every time its
reaction fires it re-runs the producing computation, which may read a
differently shaped part of the tree, so the whole dependency set is swapped
on each run.

Two flavors of observation site:
- autorun(fn): runs fn immediately, re-runs when any Topic it used changes.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new
  value only when data_fn's result changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, TypeVar

from structrx._tracking import current_topics

if TYPE_CHECKING:
    from structrx.topic import Topic

T = TypeVar("T")


class Subscriber:
    """A reaction plus the Topics it currently depends on."""

    __slots__ = ("reaction", "topics", "active")

    def __init__(self, reaction: Callable[[], None]) -> None:
        self.reaction = reaction
        self.topics: list[Topic] = []
        self.active = False

    def subscribe(self) -> None:
        self.active = True
        for topic in self.topics:
            topic.subscribe(self)

    def unsubscribe(self) -> None:
        self.active = False
        for topic in self.topics:
            topic.unsubscribe(self)

    def resubscribe(self, topics: Iterable[Topic]) -> None:
        """Swap the whole dependency set."""
        self.unsubscribe()
        self.topics = list(topics)
        self.subscribe()

    def run(self) -> None:
        """Called by the flush when a dependency changed."""
        self.reaction()

    def dispose(self) -> None:
        """Stop observing. Disconnects from all dependencies."""
        self.unsubscribe()
        self.topics = []

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        name = getattr(self.reaction, "__name__", "reaction")
        return f"Subscriber({name}, {state}, {len(self.topics)} topic(s))"


def collect(produce: Callable[[], T]) -> tuple[T, list[Topic]]:
    """Run produce, returning its result and every Topic its use*() calls visited."""
    topics: list[Topic] = []
    token = current_topics.set(topics)
    try:
        value = produce()
    finally:
        current_topics.reset(token)
    return value, topics


def observe(
    produce: Callable[[], T], on_value: Callable[[T], None]
) -> tuple[Subscriber, T]:
    """The tracked-read lifecycle shared by every observation site.

    The first evaluation subscribes to its dependency set. Each notification
    unsubscribes, re-evaluates, subscribes to the new set and hands the new
    value to on_value. Teardown is Subscriber.dispose().
    """

    def _react() -> None:
        # Unsubscribe first so speculative nodes from the last run can detach.
        subscriber.unsubscribe()
        topics: list[Topic] = []
        token = current_topics.set(topics)
        try:
            value = produce()
        finally:
            current_topics.reset(token)
            # A failed run keeps watching whatever it read before raising.
            subscriber.topics = topics
            subscriber.subscribe()
        on_value(value)

    _react.__name__ = getattr(produce, "__name__", "reaction")
    subscriber = Subscriber(_react)
    value, topics = collect(produce)
    subscriber.resubscribe(topics)
    return subscriber, value


def autorun(fn: Callable[[], None]) -> Subscriber:
    """Run fn immediately, then re-run whenever any state it used changes.

    Returns the Subscriber (call .dispose() to stop).

    Usage:
        todos = create_state({"items": ["a"]})
        log = []

        sub = autorun(lambda: log.append(todos.items.use()))
        # log == [["a"]] — ran immediately

        todos.items.update(["a", "b"])
        # log == [["a"], ["a", "b"]]

        sub.dispose()
    """
    subscriber, _ = observe(fn, lambda _: None)
    return subscriber


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> Subscriber:
    """Track data_fn's state reads; call effect_fn when the result changes.

    Unlike autorun, effect_fn only fires when data_fn's *return value* changes,
    not on every dependency notification.

    Usage:
        user = create_state({"first": "Alice", "last": "Smith"})
        names = []
        r = reaction(
            lambda: f"{user.first.use()} {user.last.use()}",
            names.append,
        )
        user.first.update("Bob")
        # names == ["Bob Smith"]
        r.dispose()
    """
    last: list = []

    def _effect(value: T) -> None:
        if last and last[0] == value:
            return
        last[:] = [value]
        effect_fn(value)

    subscriber, value = observe(data_fn, _effect)
    last.append(value)
    if fire_immediately:
        effect_fn(value)
    return subscriber
