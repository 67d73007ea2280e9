"""Topics — single observable cells, the unit of change notification.

A Topic holds one value and the set of Subscribers depending on it. Setting
a different value marks every subscriber dirty in the active mutation
context; the subscribers run when that context flushes.

A Topic may carry a detach callback supplied by its owner. Once the Topic has
no subscribers and an empty value, the callback fires (once) so the owner can
drop its storage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from structrx._tracking import active_context, mutation

if TYPE_CHECKING:
    from structrx.subscriber import Subscriber

T = TypeVar("T")


def changed(old: object, new: object) -> bool:
    """Identity for containers, same-type equality for atomics."""
    if old is new:
        return False
    return type(old) is not type(new) or old != new


class Topic(Generic[T]):
    """An observable single-value cell."""

    __slots__ = ("_value", "_subscribers", "_detach")

    def __init__(self, value: T, detach: Callable[[], None] | None = None) -> None:
        self._value = value
        self._subscribers: set[Subscriber] = set()
        self._detach = detach

    def get(self) -> T:
        """Read the value. Never tracks."""
        return self._value

    def set(self, value: T) -> None:
        """Write a new value, notifying subscribers if it changed."""
        ctx = active_context()
        if ctx is None:
            with mutation():
                self._set_in_context(value)
        else:
            self._set_in_context(value)

    def _set_in_context(self, value: T) -> None:
        old = self._value
        self._value = value
        if changed(old, value):
            ctx = active_context()
            for subscriber in self._subscribers:
                ctx.mark_dirty(subscriber)
        self._try_detach()

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)
        self._try_detach()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _try_detach(self) -> None:
        if self._detach is not None and not self._subscribers and self._value is None:
            detach, self._detach = self._detach, None
            detach()

    def __repr__(self) -> str:
        return f"Topic({self._value!r})"
