# mindmap-canvas/mindmap_canvas/layout.py
"""Deterministic layout of a mind-map tree.

Two passes over the visible tree (a node under a collapsed ancestor is not
visible):

1. Width pass (post-order): every visible node gets a `subtree_width`. A
   leaf or collapsed node reserves one node footprint (node width plus half
   the sibling gap); an expanded node reserves the larger of its footprint
   and its children's widths laid side by side with half-gap spacing.
2. Position pass (pre-order): starting from the root anchor, each block of
   children is centred under its parent, every child centred in its own
   width slice, one level height further down.

The radial mode reuses the width pass: a node's share of its parent's
angular wedge is proportional to its subtree width, and depth maps to
radius instead of vertical band.
"""
import logging
import math
from typing import Dict, List, Optional, Set, Tuple

from .config import LayoutConfig
from .errors import MalformedTreeError
from .models import Node

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class LayoutResult:
    """Coordinates produced by one layout pass, keyed by node id in pre-order."""
    def __init__(self, positions: Dict[str, Point], subtree_widths: Dict[str, float],
                 depths: Dict[str, int], config: LayoutConfig):
        self.positions = positions
        self.subtree_widths = subtree_widths
        self.depths = depths
        self.config = config

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.positions

    def __len__(self) -> int:
        return len(self.positions)

    def span(self, node_id: str) -> Tuple[float, float]:
        """Horizontal extent reserved for a node's subtree."""
        x, _ = self.positions[node_id]
        half = self.subtree_widths[node_id] / 2
        return (x - half, x + half)

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """(min_x, min_y, max_x, max_y) covering every laid-out node box."""
        if not self.positions:
            return None
        half_w = self.config.node_width / 2
        half_h = self.config.node_height / 2
        xs = [x for x, _ in self.positions.values()]
        ys = [y for _, y in self.positions.values()]
        return (min(xs) - half_w, min(ys) - half_h, max(xs) + half_w, max(ys) + half_h)


class LayoutEngine:
    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def layout(self, root: Node, anchor: Optional[Point] = None) -> LayoutResult:
        """Lays out the visible tree under `root`.

        `anchor` overrides the configured root position. Raises
        MalformedTreeError if the tree contains a cycle, a duplicate id or
        is deeper than `config.max_depth`.
        """
        anchor_x, anchor_y = anchor if anchor is not None else (self.config.root_x, self.config.root_y)
        widths: Dict[str, float] = {}
        depths: Dict[str, int] = {}
        self._measure(root, widths, depths)

        positions: Dict[str, Point] = {}
        if self.config.mode == "radial":
            self._place_radial(root, anchor_x, anchor_y, 0.0, 2 * math.pi, 0, widths, positions, anchor_x, anchor_y)
        else:
            self._place_tree(root, float(anchor_x), float(anchor_y), widths, positions)
        logger.debug("Laid out %d visible node(s) in %s mode", len(positions), self.config.mode)
        return LayoutResult(positions, widths, depths, self.config)

    def subtree_widths(self, root: Node) -> Dict[str, float]:
        """Runs only the width pass."""
        widths: Dict[str, float] = {}
        self._measure(root, widths, {})
        return widths

    def children_block_width(self, children: List[Node], widths: Dict[str, float]) -> float:
        if not children:
            return 0.0
        return sum(widths[child.id] for child in children) + (len(children) - 1) * self.config.half_gap

    # --- Width pass ---

    def _measure(self, root: Node, widths: Dict[str, float], depths: Dict[str, int]) -> float:
        # Explicit stack so only max_depth limits how deep a tree may be
        footprint = self.config.footprint
        on_path: Set[int] = set()
        stack: List[Tuple[Node, int, bool]] = [(root, 0, False)]
        while stack:
            node, depth, children_done = stack.pop()
            if children_done:
                on_path.discard(id(node))
                children_width = sum(widths[child.id] for child in node.children)
                children_width += (len(node.children) - 1) * self.config.half_gap
                widths[node.id] = max(footprint, children_width)
                continue

            if depth > self.config.max_depth:
                raise MalformedTreeError(f"Tree is deeper than {self.config.max_depth} levels at node '{node.id}'.", node.id)
            if id(node) in on_path:
                raise MalformedTreeError(f"Cycle detected at node '{node.id}'.", node.id)
            if node.id in depths:
                raise MalformedTreeError(f"Duplicate node id '{node.id}'.", node.id)

            depths[node.id] = depth
            if node.collapsed or not node.children:
                widths[node.id] = footprint
                continue

            on_path.add(id(node))
            stack.append((node, depth, True))
            stack.extend((child, depth + 1, False) for child in reversed(node.children))
        return widths[root.id]

    # --- Position passes ---

    def _place_tree(self, node: Node, x: float, y: float, widths: Dict[str, float],
                    positions: Dict[str, Point]) -> None:
        positions[node.id] = (x, y)
        if node.collapsed or not node.children:
            return

        running_x = x - self.children_block_width(list(node.children), widths) / 2
        child_y = y + self.config.level_height
        for child in node.children:
            child_width = widths[child.id]
            self._place_tree(child, running_x + child_width / 2, child_y, widths, positions)
            running_x += child_width + self.config.half_gap

    def _place_radial(self, node: Node, x: float, y: float, start_angle: float, end_angle: float,
                      depth: int, widths: Dict[str, float], positions: Dict[str, Point],
                      center_x: float, center_y: float) -> None:
        positions[node.id] = (x, y)
        if node.collapsed or not node.children:
            return

        total = self.children_block_width(list(node.children), widths)
        sweep = end_angle - start_angle
        radius = (depth + 1) * self.config.level_height
        angle = start_angle
        for child in node.children:
            share = sweep * widths[child.id] / total
            mid = angle + share / 2
            child_x = center_x + radius * math.cos(mid)
            child_y = center_y + radius * math.sin(mid)
            self._place_radial(child, child_x, child_y, angle, angle + share, depth + 1,
                               widths, positions, center_x, center_y)
            # Gaps between siblings take their share of the wedge too
            angle += share + sweep * self.config.half_gap / total
