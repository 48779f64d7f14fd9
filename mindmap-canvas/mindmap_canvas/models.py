# mindmap-canvas/mindmap_canvas/models.py
import itertools
import uuid
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple

ROOT_ID = "root" # Reserved id of the single root node

# An id generator is any zero-argument callable returning a fresh string id.
IdGenerator = Callable[[], str]


class CounterIdGenerator:
    """Monotonic id supplier producing 'node-1', 'node-2', ..."""
    def __init__(self, prefix: str = "node", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


def uuid_id_generator() -> str:
    return str(uuid.uuid4())


class Node:
    """A single labeled entry in the mind-map tree.

    Nodes are treated as immutable values: the store never edits a node in
    place, it builds a replacement with `replace()` and re-links the path up
    to the root. `x`/`y` are the last computed layout position (a cache).
    """
    def __init__(self, node_id: str, text: str, children: Sequence['Node'] = (),
                 collapsed: bool = False, x: Optional[float] = None, y: Optional[float] = None,
                 shape: Optional[str] = None, presentation_hint: Optional[str] = None):
        self.id: str = node_id
        self.text: str = text
        self.children: Tuple['Node', ...] = tuple(children)
        self.collapsed: bool = collapsed
        self.x: Optional[float] = x
        self.y: Optional[float] = y
        self.shape: Optional[str] = shape # Opaque to the layout, passed to renderers
        self.presentation_hint: Optional[str] = presentation_hint

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_ID

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        if self.x is None or self.y is None:
            return None
        return (self.x, self.y)

    def replace(self, **changes: Any) -> 'Node':
        """Returns a copy of this node with the given attributes changed."""
        fields = {
            "node_id": self.id,
            "text": self.text,
            "children": self.children,
            "collapsed": self.collapsed,
            "x": self.x,
            "y": self.y,
            "shape": self.shape,
            "presentation_hint": self.presentation_hint,
        }
        if "id" in changes:
            changes["node_id"] = changes.pop("id")
        unknown = set(changes) - set(fields)
        if unknown:
            raise TypeError(f"Unknown node attribute(s): {', '.join(sorted(unknown))}")
        fields.update(changes)
        return Node(**fields)

    def iter_subtree(self) -> Iterator['Node']:
        """Yields this node and all descendants in pre-order, ignoring collapse."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the node and its subtree to plain JSON-ready data."""
        return {
            "id": self.id,
            "text": self.text,
            "collapsed": self.collapsed,
            "x": self.x,
            "y": self.y,
            "shape": self.shape,
            "presentation_hint": self.presentation_hint,
            "children": [child.to_dict() for child in self.children],
        }

    def __repr__(self) -> str:
        return f"Node(id={self.id}, text='{self.text}', collapsed={self.collapsed}, children={len(self.children)})"
