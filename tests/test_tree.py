"""Tests for Node and Branch: structural update, extraction, navigation."""

from structrx import Subscriber, transaction
from structrx.tree import ContentKind, Node


def _tree(value):
    root = Node()
    with transaction():
        root.update(value)
    return root


def _watch(topics, log, name):
    s = Subscriber(lambda: log.append(name))
    s.resubscribe(topics)
    return s


def _watch_subtree(root, path, log, name):
    node, topics = root.get_node_and_topics(path)
    if node is not None:
        node.collect_topics_into(topics)
    return _watch(topics, log, name)


class TestExtractValue:
    def test_atomic(self):
        assert _tree(5).extract_value() == 5

    def test_empty(self):
        assert Node().extract_value() is None

    def test_nested(self):
        value = {"a": [1, {"b": "x"}], "c": True, "f": 1.5}
        assert _tree(value).extract_value() == value

    def test_keeps_value_key_order(self):
        root = _tree({"a": 1, "b": 2})
        with transaction():
            root.update({"b": 2, "a": 1})
        assert list(root.extract_value()) == ["b", "a"]

    def test_none_entries_are_absent(self):
        assert _tree({"a": None, "b": 1}).extract_value() == {"b": 1}


class TestContentKind:
    def test_transitions(self):
        root = _tree(5)
        assert root.kind is ContentKind.LEAF
        with transaction():
            root.update({"x": 1})
        assert root.kind is ContentKind.BRANCH
        with transaction():
            root.update(None)
        assert root.kind is ContentKind.EMPTY

    def test_array_object_switch_replaces_branch(self):
        root = _tree([])
        before = root.branch
        log = []
        _watch([root], log, "root")
        with transaction():
            root.update({})
        assert root.branch is not before
        assert root.branch.is_array is False
        assert log == ["root"]


class TestUpdate:
    def test_idempotent(self):
        value = {"a": {"x": 1, "y": [1, 2]}, "b": "s"}
        root = _tree(value)
        log = []
        _watch_subtree(root, (), log, "all")
        with transaction():
            root.update({"a": {"x": 1, "y": [1, 2]}, "b": "s"})
        assert log == []

    def test_locality(self):
        root = _tree({"a": {"x": 1, "y": 2}, "b": 3})
        log = []
        _watch_subtree(root, ("a", "y"), log, "a.y")
        _watch_subtree(root, ("a",), log, "a")
        _watch_subtree(root, ("a", "x"), log, "a.x")
        _watch_subtree(root, ("b",), log, "b")
        with transaction():
            root.update({"a": {"x": 1, "y": 9}, "b": 3})
        assert sorted(log) == ["a", "a.y"]

    def test_unchanged_children_untouched(self):
        root = _tree({"a": {"x": 1}, "b": 3})
        a_branch = root.get_node(("a",)).branch
        with transaction():
            root.update({"a": {"x": 1}, "b": 4})
        assert root.get_node(("a",)).branch is a_branch

    def test_dropped_keys_are_cleared(self):
        root = _tree({"a": 1, "b": 2})
        with transaction():
            root.update({"b": 2})
        assert root.branch.keys.get() == ("b",)
        assert "a" not in root.branch.nodes

    def test_none_child_removes_key(self):
        root = _tree({"a": 1, "b": 2})
        with transaction():
            root.get_node(("a",)).update(None)
        assert root.extract_value() == {"b": 2}

    def test_key_set_unchanged_keeps_tuple(self):
        root = _tree({"a": 1})
        keys = root.branch.keys.get()
        with transaction():
            root.update({"a": 2})
        assert root.branch.keys.get() is keys


class TestNavigation:
    def test_get_node_creates_nothing(self):
        root = _tree({"a": 1})
        assert root.get_node(("missing", "deeper")) is None
        assert root.get_node(("a", "x")) is None
        assert list(root.branch.nodes) == ["a"]

    def test_get_node_accepts_int_keys(self):
        root = _tree([10, 20])
        assert root.get_node((1,)).extract_value() == 20

    def test_get_or_create_node(self):
        root = Node()
        with transaction():
            root.get_or_create_node(("a", "b")).update(1)
        assert root.extract_value() == {"a": {"b": 1}}

    def test_get_node_and_topics_creates_volatile(self):
        root = _tree({})
        node, topics = root.get_node_and_topics(("later",))
        assert node is not None
        assert node.kind is ContentKind.EMPTY
        assert topics == [root, node]
        # Volatile: present as a node, absent from the key set.
        assert "later" in root.branch.nodes
        assert root.branch.keys.get() == ()

    def test_get_node_and_topics_stops_at_leaf(self):
        root = _tree({"a": 1})
        node, topics = root.get_node_and_topics(("a", "b", "c"))
        assert node is None
        assert topics == [root, root.get_node(("a",))]

    def test_unused_volatile_node_detaches(self):
        root = _tree({})
        node, topics = root.get_node_and_topics(("later",))
        s = Subscriber(lambda: None)
        s.resubscribe(topics)
        s.dispose()
        assert "later" not in root.branch.nodes


class TestNodeDetach:
    def test_detach_passed_at_construction(self):
        calls = []
        node = Node(lambda: calls.append(1))
        with transaction():
            node.update(5)
        assert calls == []
        with transaction():
            node.clear()
        assert calls == [1]

    def test_child_nodes_know_their_slot(self):
        root = _tree({"a": 1})
        child = root.get_node(("a",))
        assert child.parent.key == "a"
        assert child.parent.branch is root.branch
        assert root.parent is None


class TestBranchRemoveKey:
    def test_remove_key(self):
        root = _tree({"a": 1, "b": 2})
        with transaction():
            root.branch.remove_key("a")
        assert root.branch.keys.get() == ("b",)
        assert root.get_node(("a",)) is None

    def test_removed_node_kept_while_subscribed(self):
        root = _tree({"a": 1, "b": 2})
        log = []
        s = _watch_subtree(root, ("a",), log, "a")
        with transaction():
            root.branch.remove_key("a")
        assert log == ["a"]
        assert root.branch.nodes["a"].kind is ContentKind.EMPTY
        s.dispose()
        assert "a" not in root.branch.nodes
