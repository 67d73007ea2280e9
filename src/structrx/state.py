"""State — the path navigation façade over a state tree.

A State wraps a deep reference. Navigation (get, attribute access, item
access) only builds a longer reference; nothing is resolved until one of the
read/use/update operations runs.

Attribute access is sugar for get(): ``todo.title`` is ``todo.get("title")``
unless "title" is an attribute of State itself, i.e. an operation name such
as ``update`` or ``read_keys``. Operation names always shadow data keys;
reach such keys with ``get("update")`` or ``state["update"]``.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Generic, Iterator, TypeVar

from structrx._tracking import is_tracking, mutation, track
from structrx.exceptions import InvalidStateInput
from structrx.ref import DeepRef
from structrx.tree import ContentKind, Key, Node, key_str

T = TypeVar("T")


class StateKind(str, enum.Enum):
    ATOMIC = "atomic"
    ARRAY = "array"
    OBJECT = "object"
    EMPTY = "empty"


def _kind_of(node: Node | None) -> StateKind:
    if node is None or node.kind is ContentKind.EMPTY:
        return StateKind.EMPTY
    if node.kind is ContentKind.LEAF:
        return StateKind.ATOMIC
    return StateKind.ARRAY if node.branch.is_array else StateKind.OBJECT


def _public_keys(node: Node | None) -> list[Key]:
    branch = node.branch if node is not None else None
    if branch is None:
        return []
    keys = branch.keys.get()
    return [int(k) for k in keys] if branch.is_array else list(keys)


def is_atomic_value(value: Any) -> bool:
    return isinstance(value, (bool, int, float, str)) or (
        callable(value) and not isinstance(value, type)
    )


def validate_state_input(value: Any, path: tuple = ()) -> None:
    """Reject anything but None, atomics, lists and plain str-keyed dicts.

    Runs over the whole value before anything is written, so a rejected
    update leaves the tree untouched.
    """
    if value is None or is_atomic_value(value):
        return
    if type(value) is list:
        for i, item in enumerate(value):
            validate_state_input(item, path + (i,))
        return
    if type(value) is dict:
        for k, item in value.items():
            if not isinstance(k, str):
                raise InvalidStateInput(k, path)
            validate_state_input(item, path + (k,))
        return
    raise InvalidStateInput(value, path)


class State(Generic[T]):
    """A lazily resolved handle on one position of a state tree."""

    __slots__ = ("_ref",)

    def __init__(self, ref: DeepRef) -> None:
        object.__setattr__(self, "_ref", ref)

    # --- navigation ---

    def get(self, key: Key) -> State:
        """Handle on the child at key. Never creates anything."""
        return State(self._ref.child(key))

    def __getattr__(self, name: str) -> State:
        if name.startswith("_"):
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            )
        return self.get(name)

    def __getitem__(self, key: Key) -> State:
        return self.get(key)

    def __iter__(self) -> Iterator[State]:
        """Handles on the current children, in key order. Never tracks."""
        return iter([self.get(k) for k in self.read_keys()])

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(
            f"'{type(self).__name__}' is read-only; use .get({name!r}).update(...)"
        )

    # --- untracked reads ---

    def read(self) -> T:
        node = self._ref.resolve()
        return node.extract_value() if node is not None else None

    def read_keys(self) -> list[Key]:
        return _public_keys(self._ref.resolve())

    def read_size(self) -> int:
        node = self._ref.resolve()
        branch = node.branch if node is not None else None
        return len(branch.keys.get()) if branch is not None else 0

    def read_kind(self) -> StateKind:
        return _kind_of(self._ref.resolve())

    # --- tracked reads ---

    def use(self) -> T:
        """Read the value and depend on every Topic under it."""

        def _produce(node, topics):
            if node is None:
                return None
            node.collect_topics_into(topics)
            return node.extract_value()

        return self._use(_produce, State.read)

    def use_keys(self) -> list[Key]:
        """Read the keys and depend on the key set only."""

        def _produce(node, topics):
            branch = node.branch if node is not None else None
            if branch is not None:
                topics.append(branch.keys)
            return _public_keys(node)

        return self._use(_produce, State.read_keys)

    def use_size(self) -> int:
        """Read the size and depend on the key set only, not on the children."""

        def _produce(node, topics):
            branch = node.branch if node is not None else None
            if branch is None:
                return 0
            topics.append(branch.keys)
            return len(branch.keys.get())

        return self._use(_produce, State.read_size)

    def use_kind(self) -> StateKind:
        return self._use(lambda node, topics: _kind_of(node), State.read_kind)

    def _use(
        self,
        produce: Callable[[Node | None, list], Any],
        untracked: Callable[[State], Any],
    ) -> Any:
        if not is_tracking():
            return untracked(self)
        node, topics = self._ref.resolve_tracked()
        value = produce(node, topics)
        track(topics)
        return value

    # --- writes ---

    def update(self, value: T) -> None:
        """Replace the value here, notifying only what actually changed.

        Raises:
            InvalidStateInput: value contains an unsupported shape. Nothing
                is written in that case.
        """
        validate_state_input(value, self._ref.path)
        with mutation():
            if value is None:
                node = self._ref.resolve()
                if node is not None:
                    node.update(None)
            else:
                self._ref.resolve_for_write().update(value)

    def remove_key(self, key: Key) -> None:
        """Remove key from the dict or list here. No-op if nothing is here."""
        with mutation():
            node = self._ref.resolve()
            branch = node.branch if node is not None else None
            if branch is not None:
                branch.remove_key(key_str(key))

    # --- identity ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self._ref == other._ref

    def __hash__(self) -> int:
        return hash(self._ref)

    def __repr__(self) -> str:
        where = ".".join(self._ref.path) or "<root>"
        return f"State({where})"


def create_state(value: T) -> State[T]:
    """Create a state tree holding value and return a State on its root.

    Usage:
        todos = create_state({"items": [{"title": "milk", "done": False}]})
        todos.items[0].title.read()  # "milk"
        todos.items[0].done.update(True)
    """
    state: State[T] = State(DeepRef(Node()))
    state.update(value)
    return state
