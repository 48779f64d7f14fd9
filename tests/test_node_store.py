"""
Node store tests: lookups, path-copy mutations and failure reporting.
"""

import pytest

from mindmap_canvas.errors import CommandStatus, MalformedTreeError
from mindmap_canvas.models import ROOT_ID, CounterIdGenerator, Node
from mindmap_canvas.node_store import NodeStore


class TestLookup:
    """find, find_path and find_parent over a small tree."""

    def test_root_only_map(self, store):
        """A new store holds only the root with the reserved id."""
        assert store.root.id == ROOT_ID
        assert store.root.text == "Python"
        assert len(store) == 1

    def test_root_id_is_enforced(self):
        """A tree whose root does not use the reserved id is rejected."""
        with pytest.raises(MalformedTreeError):
            NodeStore(Node("other", "Topic"))

    def test_find_and_path(self, store):
        """Paths run from the root down to the requested node."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        _, loops, _ = store.insert_child(basics.id, store.new_node("Loops"))

        assert store.find(loops.id).text == "Loops"
        assert [n.text for n in store.find_path(loops.id)] == ["Python", "Basics", "Loops"]
        assert store.find_parent(loops.id).id == basics.id
        assert store.find_parent(ROOT_ID) is None
        assert store.find("missing") is None
        assert store.find_path("missing") is None
        assert loops.id in store

    def test_ids_come_from_the_injected_generator(self):
        """Ids are produced by the supplied generator in order."""
        store = NodeStore.from_topic("Topic", CounterIdGenerator(prefix="n"))
        assert store.new_node("a").id == "n-1"
        assert store.new_node("b").id == "n-2"


class TestInsert:
    """insert_child and insert_children."""

    def test_insert_child_appends_in_order(self, store):
        """Children keep insertion order."""
        for label in ("Basics", "OOP", "Libraries"):
            status, _, _ = store.insert_child(ROOT_ID, store.new_node(label))
            assert status == CommandStatus.SUCCESS
        assert [c.text for c in store.root.children] == ["Basics", "OOP", "Libraries"]

    def test_insert_child_trims_label(self, store):
        """Surrounding whitespace is removed from labels."""
        _, node, _ = store.insert_child(ROOT_ID, store.new_node("  Basics  "))
        assert node.text == "Basics"

    def test_insert_child_rejects_blank_label(self, store):
        """A blank label leaves the tree unchanged."""
        before = store.root
        status, node, _ = store.insert_child(ROOT_ID, store.new_node("   "))
        assert status == CommandStatus.INVALID_LABEL
        assert node is None
        assert store.root is before

    def test_insert_child_unknown_parent(self, store):
        """Inserting under a missing parent reports PARENT_NOT_FOUND."""
        status, _, _ = store.insert_child("nope", store.new_node("Basics"))
        assert status == CommandStatus.PARENT_NOT_FOUND
        assert len(store) == 1

    def test_insert_expands_collapsed_parent(self, store):
        """Adding under a collapsed node expands it."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        store.toggle_collapse(basics.id)
        store.insert_child(basics.id, store.new_node("Loops"))
        assert store.find(basics.id).collapsed is False

    def test_insert_children_drops_blank_labels(self, store):
        """Blank entries of a batch are skipped."""
        nodes = [store.new_node(label) for label in ("A", "", "  ", "B")]
        status, accepted, _ = store.insert_children(ROOT_ID, nodes)
        assert status == CommandStatus.SUCCESS
        assert [n.text for n in accepted] == ["A", "B"]
        assert [c.text for c in store.root.children] == ["A", "B"]

    def test_insert_children_all_blank(self, store):
        """A batch with no usable label is rejected as a whole."""
        status, accepted, _ = store.insert_children(ROOT_ID, [store.new_node(""), store.new_node(" ")])
        assert status == CommandStatus.EMPTY_BATCH
        assert accepted == []
        assert store.root.children == ()

    def test_non_text_labels_count_as_blank(self, store):
        """Labels that are not strings are dropped like blank ones."""
        status, node, _ = store.insert_child(ROOT_ID, store.new_node(7))
        assert status == CommandStatus.INVALID_LABEL
        assert node is None
        status, accepted, _ = store.insert_children(ROOT_ID, [store.new_node("A"), store.new_node(7)])
        assert status == CommandStatus.SUCCESS
        assert [n.text for n in accepted] == ["A"]
        status, _, _ = store.set_text(ROOT_ID, 7)
        assert status == CommandStatus.INVALID_LABEL

    def test_insert_children_unknown_parent_checked_first(self, store):
        """A missing parent is reported even for an all-blank batch."""
        status, _, _ = store.insert_children("nope", [store.new_node("")])
        assert status == CommandStatus.PARENT_NOT_FOUND

    def test_duplicate_id_is_malformed(self, store):
        """Re-inserting an id already in the tree raises."""
        _, node, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        with pytest.raises(MalformedTreeError):
            store.insert_child(ROOT_ID, Node(node.id, "Again"))


class TestStructuralSharing:
    """Mutations copy only the path to the changed node."""

    def test_old_snapshot_is_untouched(self, store):
        """A root captured before a mutation still describes the old tree."""
        store.insert_child(ROOT_ID, store.new_node("Basics"))
        snapshot = store.root
        store.insert_child(ROOT_ID, store.new_node("OOP"))
        assert [c.text for c in snapshot.children] == ["Basics"]
        assert [c.text for c in store.root.children] == ["Basics", "OOP"]

    def test_sibling_subtrees_are_shared(self, store):
        """Subtrees off the mutated path are the same objects."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        _, oop, _ = store.insert_child(ROOT_ID, store.new_node("OOP"))
        store.insert_child(basics.id, store.new_node("Loops"))
        untouched = store.find(oop.id)
        store.insert_child(basics.id, store.new_node("Functions"))
        assert store.find(oop.id) is untouched


class TestDelete:
    """delete_subtree."""

    def test_delete_removes_descendants(self, store):
        """Deleting a node removes its whole subtree."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        _, loops, _ = store.insert_child(basics.id, store.new_node("Loops"))
        status, removed, _ = store.delete_subtree(basics.id)
        assert status == CommandStatus.SUCCESS
        assert removed.id == basics.id
        assert store.find(basics.id) is None
        assert store.find(loops.id) is None
        assert len(store) == 1

    def test_root_cannot_be_deleted(self, store):
        """The root is protected."""
        status, _, _ = store.delete_subtree(ROOT_ID)
        assert status == CommandStatus.ROOT_DELETION_FORBIDDEN
        assert store.root.id == ROOT_ID

    def test_delete_missing_node(self, store):
        """Deleting an unknown id reports NODE_NOT_FOUND."""
        status, _, _ = store.delete_subtree("ghost")
        assert status == CommandStatus.NODE_NOT_FOUND


class TestEdits:
    """Collapse toggling, renaming and manual positions."""

    def test_toggle_collapse_keeps_children(self, store):
        """Collapsing hides nothing from the store itself."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        store.insert_child(basics.id, store.new_node("Loops"))
        _, node, _ = store.toggle_collapse(basics.id)
        assert node.collapsed is True
        assert len(node.children) == 1
        _, node, _ = store.toggle_collapse(basics.id)
        assert node.collapsed is False

    def test_toggle_collapse_missing(self, store):
        status, _, _ = store.toggle_collapse("ghost")
        assert status == CommandStatus.NODE_NOT_FOUND

    def test_set_text_returns_old_text(self, store):
        """Renaming reports the previous label."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        status, old_text, _ = store.set_text(basics.id, "Fundamentals")
        assert status == CommandStatus.SUCCESS
        assert old_text == "Basics"
        assert store.find(basics.id).text == "Fundamentals"

    def test_set_text_rejects_blank(self, store):
        status, _, _ = store.set_text(ROOT_ID, "  ")
        assert status == CommandStatus.INVALID_LABEL
        assert store.root.text == "Python"

    def test_set_position(self, store):
        """Manual positions land in the node's position cache."""
        status, node, _ = store.set_position(ROOT_ID, 12, -4.5)
        assert status == CommandStatus.SUCCESS
        assert node.position == (12.0, -4.5)

    def test_apply_positions_keeps_missing_entries(self, store):
        """Nodes absent from a layout result keep their cached position."""
        _, basics, _ = store.insert_child(ROOT_ID, store.new_node("Basics"))
        store.set_position(basics.id, 5, 5)
        store.apply_positions({ROOT_ID: (0.0, 0.0)})
        assert store.root.position == (0.0, 0.0)
        assert store.find(basics.id).position == (5.0, 5.0)


class TestInvariants:

    def test_mixed_edits_keep_ids_unique(self, store):
        """A run of inserts and deletes never produces duplicate ids."""
        parent = "root"
        created = []
        for i in range(30):
            _, node, _ = store.insert_child(parent, store.new_node(f"n{i}"))
            created.append(node.id)
            if i % 4 == 3:
                store.delete_subtree(created[i - 2])
            parent = node.id if i % 3 == 0 and store.find(node.id) else "root"
            if store.find(parent) is None:
                parent = "root"
        ids = [node.id for node in store.iter_nodes()]
        assert len(ids) == len(set(ids))
        assert all(len(store.find_path(node_id)) >= 1 for node_id in ids)
