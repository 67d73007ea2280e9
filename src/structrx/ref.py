"""Deep references — lazy addresses into a state tree."""

from __future__ import annotations

from dataclasses import dataclass

from structrx.topic import Topic
from structrx.tree import Key, Node, key_str


@dataclass(frozen=True, slots=True, eq=False)
class DeepRef:
    """An immutable (root, path) pair, resolved to a Node only when used.

    Two references with the same root and path are interchangeable.
    """

    root: Node
    path: tuple[str, ...] = ()

    def child(self, key: Key) -> DeepRef:
        return DeepRef(self.root, self.path + (key_str(key),))

    def resolve(self) -> Node | None:
        return self.root.get_node(self.path)

    def resolve_for_write(self) -> Node:
        return self.root.get_or_create_node(self.path)

    def resolve_tracked(self) -> tuple[Node | None, list[Topic]]:
        return self.root.get_node_and_topics(self.path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeepRef):
            return NotImplemented
        return self.root is other.root and self.path == other.path

    def __hash__(self) -> int:
        return hash((id(self.root), self.path))
