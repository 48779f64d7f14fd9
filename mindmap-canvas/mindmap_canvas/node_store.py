# mindmap-canvas/mindmap_canvas/node_store.py
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import CommandStatus, MalformedTreeError
from .models import ROOT_ID, CounterIdGenerator, IdGenerator, Node

logger = logging.getLogger(__name__)

StoreResult = Tuple[str, Any, str]


class NodeStore:
    """Owns the canonical mind-map tree.

    Every mutation builds a new root by copying only the path from the root
    down to the changed node (untouched subtrees are shared), then swaps it in
    as `self.root`. A caller holding an earlier root keeps a consistent
    snapshot. Ordinary failures are reported as `(status, data, message)`
    tuples and leave `self.root` untouched.
    """
    def __init__(self, root: Node, id_generator: Optional[IdGenerator] = None):
        if root.id != ROOT_ID:
            raise MalformedTreeError(f"Root node must use the reserved id '{ROOT_ID}', got '{root.id}'.", root.id)
        self.root: Node = root
        self.id_generator: IdGenerator = id_generator or CounterIdGenerator()

    @classmethod
    def from_topic(cls, topic: str, id_generator: Optional[IdGenerator] = None) -> 'NodeStore':
        """Creates a store holding a single root labeled with the topic."""
        return cls(Node(ROOT_ID, topic.strip()), id_generator)

    def new_node(self, text: str, shape: Optional[str] = None,
                 presentation_hint: Optional[str] = None) -> Node:
        """Creates a detached node with a fresh id; insert it with insert_child(ren)."""
        return Node(self.id_generator(), text, shape=shape, presentation_hint=presentation_hint)

    # --- Lookup ---

    def find(self, node_id: str) -> Optional[Node]:
        """Depth-first search from the root; returns the first match or None."""
        for node in self.root.iter_subtree():
            if node.id == node_id:
                return node
        return None

    def __contains__(self, node_id: str) -> bool:
        return self.find(node_id) is not None

    def __len__(self) -> int:
        return sum(1 for _ in self.root.iter_subtree())

    def iter_nodes(self) -> Iterator[Node]:
        return self.root.iter_subtree()

    def find_path(self, node_id: str) -> Optional[List[Node]]:
        """Returns the nodes from the root down to node_id, or None if absent."""
        path: List[Node] = []

        def walk(node: Node) -> bool:
            path.append(node)
            if node.id == node_id:
                return True
            for child in node.children:
                if walk(child):
                    return True
            path.pop()
            return False

        return path if walk(self.root) else None

    def find_parent(self, node_id: str) -> Optional[Node]:
        path = self.find_path(node_id)
        if not path or len(path) < 2:
            return None
        return path[-2]

    # --- Mutations ---

    def insert_child(self, parent_id: str, new_node: Node) -> StoreResult:
        """Appends new_node under parent_id and expands the parent."""
        text = new_node.text.strip() if isinstance(new_node.text, str) else ""
        if not text:
            return CommandStatus.INVALID_LABEL, None, "Node text cannot be empty."
        if self.find(parent_id) is None:
            return CommandStatus.PARENT_NOT_FOUND, None, f"Parent node with ID '{parent_id}' not found."

        node = new_node.replace(text=text)
        self._check_new_ids([node])
        self.root = self._rebuild(parent_id, lambda parent: parent.replace(
            collapsed=False, children=parent.children + (node,)))
        logger.debug("Inserted node %s under %s", node.id, parent_id)
        return CommandStatus.SUCCESS, node, f"Added node '{text}' (ID: {node.id}) under '{parent_id}'."

    def insert_children(self, parent_id: str, new_nodes: Sequence[Node]) -> StoreResult:
        """Batch insert; blank labels are dropped, an all-blank batch is rejected."""
        if self.find(parent_id) is None:
            return CommandStatus.PARENT_NOT_FOUND, [], f"Parent node with ID '{parent_id}' not found."

        accepted = [n.replace(text=n.text.strip()) for n in new_nodes if isinstance(n.text, str) and n.text.strip()]
        if not accepted:
            return CommandStatus.EMPTY_BATCH, [], "No non-empty labels to add."

        self._check_new_ids(accepted)
        self.root = self._rebuild(parent_id, lambda parent: parent.replace(
            collapsed=False, children=parent.children + tuple(accepted)))
        logger.debug("Inserted %d node(s) under %s", len(accepted), parent_id)
        return CommandStatus.SUCCESS, accepted, f"Added {len(accepted)} node(s) under '{parent_id}'."

    def delete_subtree(self, node_id: str) -> StoreResult:
        """Removes a node and all of its descendants. The root cannot be deleted."""
        if node_id == ROOT_ID:
            return CommandStatus.ROOT_DELETION_FORBIDDEN, None, "The root node cannot be deleted."
        path = self.find_path(node_id)
        if path is None:
            return CommandStatus.NODE_NOT_FOUND, None, f"Node with ID '{node_id}' not found for deletion."

        removed, parent = path[-1], path[-2]
        self.root = self._rebuild(parent.id, lambda p: p.replace(
            children=tuple(c for c in p.children if c.id != node_id)))
        count = sum(1 for _ in removed.iter_subtree())
        logger.debug("Deleted subtree %s (%d node(s))", node_id, count)
        return CommandStatus.SUCCESS, removed, f"Deleted node ID '{node_id}' and its children ({count} node(s))."

    def toggle_collapse(self, node_id: str) -> StoreResult:
        node = self.find(node_id)
        if node is None:
            return CommandStatus.NODE_NOT_FOUND, None, f"Node with ID '{node_id}' not found."
        self.root = self._rebuild(node_id, lambda n: n.replace(collapsed=not n.collapsed))
        updated = self.find(node_id)
        state = "collapsed" if updated.collapsed else "expanded"
        return CommandStatus.SUCCESS, updated, f"Node '{updated.text}' (ID: {node_id}) {state}."

    def set_position(self, node_id: str, x: float, y: float) -> StoreResult:
        """Records a manual (drag) position; the next layout pass overwrites it."""
        if self.find(node_id) is None:
            return CommandStatus.NODE_NOT_FOUND, None, f"Node with ID '{node_id}' not found."
        self.root = self._rebuild(node_id, lambda n: n.replace(x=float(x), y=float(y)))
        return CommandStatus.SUCCESS, self.find(node_id), f"Node ID '{node_id}' moved to ({x:g}, {y:g})."

    def set_text(self, node_id: str, text: str) -> StoreResult:
        """Edits a node's label. Returns the old text as data."""
        new_text = text.strip() if isinstance(text, str) else ""
        if not new_text:
            return CommandStatus.INVALID_LABEL, None, "Node text cannot be empty."
        node = self.find(node_id)
        if node is None:
            return CommandStatus.NODE_NOT_FOUND, None, f"Node with ID '{node_id}' not found for editing."
        old_text = node.text
        self.root = self._rebuild(node_id, lambda n: n.replace(text=new_text))
        return CommandStatus.SUCCESS, old_text, f"Node ID '{node_id}' text changed from '{old_text}' to '{new_text}'."

    def apply_positions(self, positions: Dict[str, Tuple[float, float]]) -> None:
        """Writes a layout result into the node position cache.

        Nodes missing from `positions` (hidden under a collapsed ancestor)
        keep whatever position they had.
        """
        def rebuild(node: Node) -> Node:
            children = tuple(rebuild(child) for child in node.children)
            x, y = positions.get(node.id, (node.x, node.y))
            return node.replace(children=children, x=x, y=y)

        self.root = rebuild(self.root)

    # --- Internals ---

    def _rebuild(self, target_id: str, update: Callable[[Node], Node]) -> Node:
        """Path-copies the tree, replacing target_id with update(target)."""
        path = self.find_path(target_id)
        if path is None:
            raise MalformedTreeError(f"Node '{target_id}' vanished during update.", target_id)

        replacement = update(path[-1])
        for parent, original in zip(reversed(path[:-1]), reversed(path[1:])):
            children = tuple(replacement if c is original else c for c in parent.children)
            replacement = parent.replace(children=children)
        return replacement

    def _check_new_ids(self, nodes: Sequence[Node]) -> None:
        existing = {node.id for node in self.root.iter_subtree()}
        for node in nodes:
            for incoming in node.iter_subtree():
                if incoming.id in existing:
                    raise MalformedTreeError(f"Duplicate node id '{incoming.id}'.", incoming.id)
                existing.add(incoming.id)
