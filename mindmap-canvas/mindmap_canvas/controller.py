# mindmap-canvas/mindmap_canvas/controller.py
"""Orchestration of user intents over the store, layout engine and viewport.

Every intent returns the `(status, data, message)` tuple used across the
package. After each structural mutation the layout is recomputed, written
back into the tree's position cache and published as a RenderScene to the
subscribed renderers. Inside `batch()` the relayout is deferred to a single
commit when the block exits.
"""
import contextlib
import logging
import math
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from .config import LayoutConfig
from .errors import CollaboratorFailure, CommandStatus
from .generation import OutlineNode, StaticGenerator, TextGenerator, clean_labels, fallback_labels
from .layout import LayoutEngine, LayoutResult
from .models import ROOT_ID, CounterIdGenerator, IdGenerator, Node
from .node_store import NodeStore
from .viewport import ViewportController

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Result = Tuple[str, Any, str]
SceneListener = Callable[['RenderScene'], None]


class ExpandState:
    IDLE = "idle"
    AWAITING_GENERATION = "awaiting_generation"
    APPLIED = "applied"
    FAILED = "failed"


class SceneNode:
    """What a renderer needs to draw one visible node."""
    def __init__(self, node_id: str, x: float, y: float, text: str, collapsed: bool,
                 has_children: bool, shape: Optional[str] = None, presentation_hint: Optional[str] = None):
        self.id = node_id
        self.x = x
        self.y = y
        self.text = text
        self.collapsed = collapsed
        self.has_children = has_children
        self.shape = shape
        self.presentation_hint = presentation_hint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "text": self.text,
            "collapsed": self.collapsed,
            "has_children": self.has_children,
            "shape": self.shape,
            "presentation_hint": self.presentation_hint,
        }


class SceneEdge:
    """A parent-child connector between two node boundary points."""
    def __init__(self, parent_id: str, child_id: str, start: Point, end: Point):
        self.parent_id = parent_id
        self.child_id = child_id
        self.start = start
        self.end = end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parent_id": self.parent_id,
            "child_id": self.child_id,
            "start": list(self.start),
            "end": list(self.end),
        }


class RenderScene:
    def __init__(self, nodes: List[SceneNode], edges: List[SceneEdge], mode: str,
                 bounds: Optional[Tuple[float, float, float, float]]):
        self.nodes = nodes
        self.edges = edges
        self.mode = mode
        self.bounds = bounds
        self._by_id = {node.id: node for node in nodes}

    def node(self, node_id: str) -> Optional[SceneNode]:
        return self._by_id.get(node_id)

    def positions(self) -> Dict[str, Point]:
        return {node.id: (node.x, node.y) for node in self.nodes}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._by_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "bounds": list(self.bounds) if self.bounds else None,
        }


class MindMapController:
    """Turns user and collaborator events into consistent tree updates.

    One controller owns one map. All calls are expected from a single
    event loop; `expand()` is the only intent that suspends, and while it
    waits the map stays editable. At most one generation request is in
    flight per node.
    """
    def __init__(self, generator: Optional[TextGenerator] = None,
                 layout_engine: Optional[LayoutEngine] = None,
                 viewport: Optional[ViewportController] = None,
                 id_generator: Optional[IdGenerator] = None,
                 fallback_on_failure: bool = False):
        self.generator: TextGenerator = generator or StaticGenerator()
        self.layout_engine = layout_engine or LayoutEngine()
        self.viewport = viewport or ViewportController()
        self.id_generator: IdGenerator = id_generator or CounterIdGenerator()
        self.fallback_on_failure = fallback_on_failure
        self.store: Optional[NodeStore] = None
        self.scene: Optional[RenderScene] = None
        self.last_layout: Optional[LayoutResult] = None
        self._listeners: List[SceneListener] = []
        self._pending: Set[str] = set()
        self._expand_states: Dict[str, str] = {}
        self._map_version = 0 # Bumped whenever a new map replaces the current one
        self._batch_depth = 0
        self._dirty = False

    @property
    def layout_config(self) -> LayoutConfig:
        return self.layout_engine.config

    @property
    def root(self) -> Optional[Node]:
        return self.store.root if self.store else None

    # --- Map lifecycle ---

    def new_empty_map(self, topic: str) -> Result:
        """Seeds a map holding only the root node."""
        text = topic.strip() if isinstance(topic, str) else ""
        if not text:
            return CommandStatus.INVALID_LABEL, None, "Topic cannot be empty."
        self._start_map(text)
        self.commit()
        return CommandStatus.SUCCESS, self.store.root, f"Created new mind map '{text}'."

    async def new_map(self, topic: str, depth: int = 2) -> Result:
        """Seeds a map from a topic and fills it from the collaborator's outline.

        Up to `depth` outline levels below the root are inserted. A failed
        collaborator leaves a root-only map.
        """
        text = topic.strip() if isinstance(topic, str) else ""
        if not text:
            return CommandStatus.INVALID_LABEL, None, "Topic cannot be empty."
        version = self._start_map(text)
        self.commit()
        if depth < 1:
            return CommandStatus.SUCCESS, self.store.root, f"Created new mind map '{text}'."

        try:
            outline = await self.generator.generate_outline(text)
        except CollaboratorFailure as e:
            logger.warning("Outline generation for '%s' failed: %s", text, e)
            return CommandStatus.SUCCESS, self.store.root, f"Created new mind map '{text}' (generation failed: {e})."

        if version != self._map_version:
            logger.warning("Discarding outline for '%s': the map was replaced meanwhile", text)
            return CommandStatus.DISCARDED, None, f"Map '{text}' was replaced before generation finished."

        branches = [child for child in outline.children if child.text.strip()]
        if not branches:
            branches = [OutlineNode(label) for label in fallback_labels(text)]
        with self.batch():
            self._insert_outline(ROOT_ID, branches, depth)
        return CommandStatus.SUCCESS, self.store.root, f"Created new mind map '{text}' with {len(self.store) - 1} node(s)."

    def _start_map(self, topic: str) -> int:
        self.store = NodeStore.from_topic(topic, self.id_generator)
        self._pending.clear()
        self._expand_states.clear()
        self._map_version += 1
        logger.info("Started mind map '%s'", topic)
        return self._map_version

    def _insert_outline(self, parent_id: str, branches: Sequence[OutlineNode], depth: int) -> None:
        nodes = [self.store.new_node(branch.text) for branch in branches]
        status, inserted, _ = self.store.insert_children(parent_id, nodes)
        if status != CommandStatus.SUCCESS:
            return
        self._dirty = True
        if depth <= 1:
            return
        outline_by_id = {node.id: branch for node, branch in zip(nodes, branches)}
        for node in inserted:
            children = [c for c in outline_by_id[node.id].children if c.text.strip()]
            if children:
                self._insert_outline(node.id, children, depth - 1)

    # --- Intents ---

    def add_nodes(self, parent_id: str, labels: Union[str, Sequence[str]]) -> Result:
        """Manual label submission: one label or a batch under the same parent."""
        if self.store is None:
            return CommandStatus.NO_MAP, None, "No mind map loaded."
        if not _is_label_input(labels):
            return CommandStatus.INVALID_LABEL, [], "Labels must be a string or a list of strings."
        rejected = self._depth_check(parent_id)
        if rejected:
            return rejected
        if isinstance(labels, str):
            status, node, msg = self.store.insert_child(parent_id, self.store.new_node(labels))
            data: Any = [node] if node is not None else []
        else:
            status, data, msg = self.store.insert_children(parent_id, [self.store.new_node(label or "") for label in labels])
        if status == CommandStatus.SUCCESS:
            self._structure_changed()
        return status, data, msg

    def _depth_check(self, parent_id: str) -> Optional[Result]:
        """Rejects children that would sit deeper than the layout accepts."""
        path = self.store.find_path(parent_id)
        if path is not None and len(path) > self.layout_config.max_depth:
            return (CommandStatus.INVALID_OPTION, [],
                    f"Node '{parent_id}' is at the maximum depth of {self.layout_config.max_depth} levels.")
        return None

    async def expand(self, node_id: str) -> Result:
        """Asks the collaborator for children of a node and inserts them.

        Idle -> AwaitingGeneration -> Applied | Failed. A second request for
        a node that is still awaiting generation is rejected; a reply for a
        node deleted in the meantime is discarded.
        """
        if self.store is None:
            return CommandStatus.NO_MAP, None, "No mind map loaded."
        node = self.store.find(node_id)
        if node is None:
            return CommandStatus.NODE_NOT_FOUND, None, f"Node with ID '{node_id}' not found."
        if node_id in self._pending:
            return CommandStatus.PENDING, None, f"Generation for '{node.text}' is already in progress."
        rejected = self._depth_check(node_id)
        if rejected:
            return rejected

        self._pending.add(node_id)
        self._expand_states[node_id] = ExpandState.AWAITING_GENERATION
        version = self._map_version
        failure: Optional[CollaboratorFailure] = None
        try:
            raw_labels = await self.generator.generate_labels(node.text)
        except CollaboratorFailure as e:
            raw_labels, failure = [], e
        finally:
            if version == self._map_version:
                self._pending.discard(node_id)

        if version != self._map_version or self.store.find(node_id) is None:
            if version == self._map_version:
                self._expand_states.pop(node_id, None)
            logger.warning("Discarding generation result for node %s: it no longer exists", node_id)
            return CommandStatus.DISCARDED, None, f"Node '{node_id}' was removed before generation finished."

        if failure is not None:
            logger.warning("Generation for node %s failed: %s", node_id, failure)
            if not self.fallback_on_failure:
                self._expand_states[node_id] = ExpandState.FAILED
                return CommandStatus.COLLABORATOR_FAILURE, None, f"Could not generate children for '{node.text}': {failure}"

        labels = clean_labels(raw_labels if isinstance(raw_labels, (list, tuple)) else [])
        if not labels:
            logger.info("Collaborator gave no usable labels for '%s'; using fallback set", node.text)
            labels = fallback_labels(node.text)

        status, inserted, msg = self.store.insert_children(node_id, [self.store.new_node(label) for label in labels])
        if status == CommandStatus.SUCCESS:
            self._expand_states[node_id] = ExpandState.APPLIED
            self._structure_changed()
        else:
            self._expand_states[node_id] = ExpandState.FAILED
        return status, inserted, msg

    def expand_state(self, node_id: str) -> str:
        return self._expand_states.get(node_id, ExpandState.IDLE)

    def is_pending(self, node_id: str) -> bool:
        return node_id in self._pending

    def delete(self, node_id: str) -> Result:
        if self.store is None:
            return CommandStatus.NO_MAP, None, "No mind map loaded."
        status, removed, msg = self.store.delete_subtree(node_id)
        if status == CommandStatus.SUCCESS:
            for gone in removed.iter_subtree():
                self._expand_states.pop(gone.id, None)
            self._structure_changed()
        return status, removed, msg

    def toggle_collapse(self, node_id: str) -> Result:
        if self.store is None:
            return CommandStatus.NO_MAP, None, "No mind map loaded."
        status, node, msg = self.store.toggle_collapse(node_id)
        if status == CommandStatus.SUCCESS:
            self._structure_changed()
        return status, node, msg

    def move(self, node_id: str, x: float, y: float) -> Result:
        """Drag override: honored until the next structural change relayouts."""
        if self.store is None:
            return CommandStatus.NO_MAP, None, "No mind map loaded."
        status, node, msg = self.store.set_position(node_id, x, y)
        if status == CommandStatus.SUCCESS:
            self._publish()
        return status, node, msg

    def rename(self, node_id: str, text: str) -> Result:
        if self.store is None:
            return CommandStatus.NO_MAP, None, "No mind map loaded."
        status, old_text, msg = self.store.set_text(node_id, text)
        if status == CommandStatus.SUCCESS:
            self._publish()
        return status, old_text, msg

    # --- Layout and publishing ---

    @contextlib.contextmanager
    def batch(self) -> Iterator['MindMapController']:
        """Defers relayout until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self.commit()

    def commit(self) -> Optional[RenderScene]:
        """Recomputes the layout, caches positions in the tree and publishes."""
        if self.store is None:
            return None
        self.last_layout = self.layout_engine.layout(self.store.root)
        self.store.apply_positions(self.last_layout.positions)
        self._dirty = False
        return self._publish()

    def _structure_changed(self) -> None:
        if self._batch_depth:
            self._dirty = True
        else:
            self.commit()

    def set_layout_mode(self, mode: str) -> Result:
        """Switches between the 'tree' and 'radial' layouts and relayouts."""
        try:
            config = self.layout_config.replace(mode=mode)
        except ValueError as e:
            return CommandStatus.INVALID_OPTION, None, str(e)
        self.layout_engine = LayoutEngine(config)
        self.commit()
        return CommandStatus.SUCCESS, config, f"Layout mode set to '{mode}'."

    def subscribe(self, listener: SceneListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SceneListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self) -> RenderScene:
        self.scene = self.build_scene()
        for listener in list(self._listeners):
            listener(self.scene)
        return self.scene

    def build_scene(self) -> RenderScene:
        """Builds the renderer view of the visible tree from cached positions."""
        nodes: List[SceneNode] = []
        edges: List[SceneEdge] = []
        config = self.layout_config

        def visit(node: Node) -> None:
            if node.x is None or node.y is None:
                return
            nodes.append(SceneNode(node.id, node.x, node.y, node.text, node.collapsed,
                                   bool(node.children), node.shape, node.presentation_hint))
            if node.collapsed:
                return
            for child in node.children:
                if child.x is None or child.y is None:
                    continue
                start, end = connector_points(node, child, config)
                edges.append(SceneEdge(node.id, child.id, start, end))
                visit(child)

        if self.store is not None:
            visit(self.store.root)

        bounds = None
        if nodes:
            half_w, half_h = config.node_width / 2, config.node_height / 2
            bounds = (min(n.x for n in nodes) - half_w, min(n.y for n in nodes) - half_h,
                      max(n.x for n in nodes) + half_w, max(n.y for n in nodes) + half_h)
        return RenderScene(nodes, edges, config.mode, bounds)

    def center_on_root(self, screen_width: float, screen_height: float) -> None:
        """Places the root at the horizontal centre, a third of the way down."""
        root = self.root
        if root is None or root.position is None:
            self.viewport.center_on(0.0, 0.0, 0.0, 0.0)
            return
        self.viewport.center_on(root.x, root.y, screen_width / 2, screen_height / 3)

    # --- Queries ---

    def find_by_text(self, query: str) -> List[Tuple[Node, List[Node]]]:
        """Case-insensitive substring search; returns (node, path from root) pairs."""
        if self.store is None or not query:
            return []
        needle = query.lower()
        return [(node, self.store.find_path(node.id) or [node])
                for node in self.store.iter_nodes() if needle in node.text.lower()]

    def export_text(self) -> str:
        """Renders the visible tree as an indented text tree."""
        if self.store is None:
            return ""
        lines = [f"{self.store.root.text} (ID: {ROOT_ID}){' [+]' if self.store.root.collapsed else ''}"]

        def walk(node: Node, indent: str) -> None:
            if node.collapsed:
                return
            for i, child in enumerate(node.children):
                last = i == len(node.children) - 1
                marker = " [+]" if child.collapsed and child.children else ""
                lines.append(f"{indent}{'└── ' if last else '├── '}{child.text} (ID: {child.id}){marker}")
                walk(child, indent + ("    " if last else "│   "))

        walk(self.store.root, "")
        return "\n".join(lines)


def connector_points(parent: Node, child: Node, config: LayoutConfig) -> Tuple[Point, Point]:
    """Boundary points joining parent and child boxes.

    Tree mode joins the parent's bottom centre to the child's top centre.
    Radial mode cuts each box along the centre-to-centre line.
    """
    half_h = config.node_height / 2
    if config.mode == "tree":
        return (parent.x, parent.y + half_h), (child.x, child.y - half_h)
    start = _box_exit(parent.x, parent.y, child.x - parent.x, child.y - parent.y, config)
    end = _box_exit(child.x, child.y, parent.x - child.x, parent.y - child.y, config)
    return start, end


def _box_exit(cx: float, cy: float, dx: float, dy: float, config: LayoutConfig) -> Point:
    if dx == 0 and dy == 0:
        return (cx, cy)
    half_w, half_h = config.node_width / 2, config.node_height / 2
    t = min(half_w / abs(dx) if dx else math.inf, half_h / abs(dy) if dy else math.inf)
    return (cx + dx * t, cy + dy * t)


def _is_label_input(labels: Any) -> bool:
    if isinstance(labels, str):
        return True
    return isinstance(labels, (list, tuple)) and all(label is None or isinstance(label, str) for label in labels)
