"""The recursive state tree.

A Node is a tree position. It is itself a Topic whose value is its content:
nothing, a leaf Topic holding an atomic value, or a Branch. Swapping one kind
of content for another is therefore an observable change.

A Branch is the structural content of a Node: an ordered key set (a Topic, so
"the set of children changed" is observable) and the child Nodes it owns.

Structural update never touches a child whose sub-value did not change, so
that child's Topics never fire and its dependents are never notified even
though the whole tree was logically replaced.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Iterable, NamedTuple, Sequence

from structrx.topic import Topic

logger = logging.getLogger("structrx.tree")

Key = str | int


def key_str(key: Key) -> str:
    return key if isinstance(key, str) else str(key)


class ContentKind(enum.Enum):
    EMPTY = "empty"
    LEAF = "leaf"
    BRANCH = "branch"


class ParentLink(NamedTuple):
    """Where a child Node sits. The Branch owns the child, not the reverse."""

    key: str
    branch: Branch


class Branch:
    """Structural content: ordered keys plus the child Nodes they name."""

    __slots__ = ("is_array", "keys", "nodes")

    def __init__(self, is_array: bool = False) -> None:
        self.is_array = is_array
        self.keys: Topic[tuple[str, ...]] = Topic(())
        self.nodes: dict[str, Node] = {}

    def get_or_create_node(self, key: str) -> Node:
        """Child for a write. The key joins the key set if missing."""
        node = self.nodes.get(key)
        if node is None:
            node = self.nodes[key] = self._create_child(key)
        keys = self.keys.get()
        if key not in keys:
            self.keys.set(keys + (key,))
        return node

    def get_or_create_child(self, key: str) -> Node:
        """Child for a write whose key set is managed by the caller."""
        node = self.nodes.get(key)
        if node is None:
            node = self.nodes[key] = self._create_child(key)
        return node

    def create_volatile_node(self, key: str) -> Node:
        """Speculative child so a tracked read can watch for the key appearing."""
        node = self._create_child(key)
        self.nodes[key] = node
        return node

    def remove_key(self, key: str) -> None:
        keys = self.keys.get()
        if key in keys:
            self.keys.set(tuple(k for k in keys if k != key))
        node = self.nodes.get(key)
        if node is not None:
            node.clear()

    def _create_child(self, key: str) -> Node:
        def _detach() -> None:
            if self.nodes.get(key) is child:
                del self.nodes[key]
                logger.debug("detached node %r", key)

        child = Node(_detach)
        child.parent = ParentLink(key, self)
        return child

    def __repr__(self) -> str:
        kind = "array" if self.is_array else "object"
        return f"Branch({kind}, keys={list(self.keys.get())!r})"


class Node(Topic["Topic[Any] | Branch | None"]):
    """A tree position holding exactly one of: nothing, a leaf Topic, a Branch."""

    __slots__ = ("parent", "kind")

    def __init__(self, detach: Callable[[], None] | None = None) -> None:
        super().__init__(None, detach)
        self.parent: ParentLink | None = None
        self.kind = ContentKind.EMPTY

    # --- content transitions ---

    def _replace(self, kind: ContentKind, content: Topic | Branch | None) -> None:
        self.kind = kind
        self.set(content)

    def clear(self) -> None:
        self._replace(ContentKind.EMPTY, None)

    def get_or_create_branch(self, is_array: bool = False) -> Branch:
        if self.kind is not ContentKind.BRANCH:
            self._replace(ContentKind.BRANCH, Branch(is_array))
        return self.get()

    def get_or_create_topic(self) -> Topic:
        if self.kind is not ContentKind.LEAF:
            self._replace(ContentKind.LEAF, Topic(None))
        return self.get()

    @property
    def branch(self) -> Branch | None:
        return self.get() if self.kind is ContentKind.BRANCH else None

    # --- navigation ---

    def get_node(self, path: Sequence[Key]) -> Node | None:
        """Read-only walk. Creates nothing."""
        actual = self
        for k in path:
            branch = actual.branch
            if branch is None:
                return None
            actual = branch.nodes.get(key_str(k))
            if actual is None:
                return None
        return actual

    def get_or_create_node(self, path: Sequence[Key]) -> Node:
        """Walk for a write, creating Branches and Nodes along the way."""
        actual = self
        for k in path:
            actual = actual.get_or_create_branch().get_or_create_node(key_str(k))
        return actual

    def get_node_and_topics(self, path: Sequence[Key]) -> tuple[Node | None, list[Topic]]:
        """Walk for a tracked read.

        Missing keys get volatile Nodes so the read can subscribe to their
        future appearance. Returns every Node visited, so a change of shape
        anywhere along the path re-evaluates the read.
        """
        actual = self
        topics: list[Topic] = [actual]
        for k in path:
            branch = actual.branch
            if branch is None:
                return None, topics
            ks = key_str(k)
            actual = branch.nodes.get(ks) or branch.create_volatile_node(ks)
            topics.append(actual)
        return actual, topics

    def collect_topics_into(self, topics: list[Topic]) -> None:
        content = self.get()
        if self.kind is ContentKind.LEAF:
            topics.append(content)
        elif self.kind is ContentKind.BRANCH:
            topics.append(content.keys)
            for child in content.nodes.values():
                topics.append(child)
                child.collect_topics_into(topics)

    # --- values ---

    def extract_value(self) -> Any:
        content = self.get()
        if self.kind is ContentKind.EMPTY:
            return None
        if self.kind is ContentKind.LEAF:
            return content.get()
        if content.is_array:
            return [content.nodes[k].extract_value() for k in content.keys.get()]
        return {k: content.nodes[k].extract_value() for k in content.keys.get()}

    def update(self, value: Any) -> None:
        if value is None:
            if self.parent is not None:
                self.parent.branch.remove_key(self.parent.key)
            else:
                self.clear()
        elif isinstance(value, (dict, list)):
            self._update_branch(value)
        else:
            self.get_or_create_topic().set(value)

    def _update_branch(self, value: dict | list) -> None:
        is_array = isinstance(value, list)
        branch = self.branch
        if branch is not None and branch.is_array != is_array:
            # list <-> dict is a change of content kind.
            self._replace(ContentKind.BRANCH, Branch(is_array))
        branch = self.get_or_create_branch(is_array)

        items = _items(value)
        new_keys = tuple(k for k, v in items if v is not None)
        old_keys = branch.keys.get()
        if new_keys != old_keys:
            kept = set(new_keys)
            for k in old_keys:
                if k not in kept:
                    node = branch.nodes.get(k)
                    if node is not None:
                        node.clear()
            branch.keys.set(new_keys)

        for k, v in items:
            if v is not None:
                branch.get_or_create_child(k).update(v)

    def __repr__(self) -> str:
        return f"Node({self.kind.value})"


def _items(value: dict | list) -> Iterable[tuple[str, Any]]:
    if isinstance(value, list):
        return [(str(i), v) for i, v in enumerate(value)]
    return list(value.items())
