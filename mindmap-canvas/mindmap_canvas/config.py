# mindmap-canvas/mindmap_canvas/config.py
"""Configuration for the mind-map engine.

Layout constants live in `LayoutConfig`; everything read from the
environment (and an optional `.env` file) goes through `Settings`, whose
properties are evaluated on access so tests and long-running servers see
updated variables.

Environment variables:
- GEMINI_API_KEY: enables the Gemini text-generation collaborator
- GEMINI_MODEL, GEMINI_TIMEOUT
- MINDMAP_LOG_LEVEL
- MINDMAP_LAYOUT_MODE ("tree" or "radial")
- MINDMAP_NODE_WIDTH, MINDMAP_NODE_HEIGHT, MINDMAP_HORIZONTAL_GAP, MINDMAP_LEVEL_HEIGHT
"""
import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

LAYOUT_MODES = ("tree", "radial")

DEFAULT_NODE_WIDTH = 160.0
DEFAULT_NODE_HEIGHT = 80.0
DEFAULT_HORIZONTAL_GAP = 120.0 # Full gap between sibling subtrees is split in half per side
DEFAULT_LEVEL_HEIGHT = 200.0
DEFAULT_MAX_DEPTH = 200

ZOOM_STEP = 1.1 # Scale factor per wheel notch

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_TIMEOUT = 30.0


class LayoutConfig:
    """Numeric layout constants plus the layout mode."""
    def __init__(self, node_width: float = DEFAULT_NODE_WIDTH, node_height: float = DEFAULT_NODE_HEIGHT,
                 horizontal_gap: float = DEFAULT_HORIZONTAL_GAP, level_height: float = DEFAULT_LEVEL_HEIGHT,
                 root_x: float = 0.0, root_y: float = 0.0, mode: str = "tree",
                 max_depth: int = DEFAULT_MAX_DEPTH):
        if mode not in LAYOUT_MODES:
            raise ValueError(f"Unknown layout mode '{mode}'. Expected one of: {', '.join(LAYOUT_MODES)}.")
        for name, value in (("node_width", node_width), ("node_height", node_height),
                            ("level_height", level_height)):
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}.")
        if horizontal_gap < 0:
            raise ValueError(f"horizontal_gap cannot be negative, got {horizontal_gap}.")
        self.node_width = float(node_width)
        self.node_height = float(node_height)
        self.horizontal_gap = float(horizontal_gap)
        self.level_height = float(level_height)
        self.root_x = float(root_x)
        self.root_y = float(root_y)
        self.mode = mode
        self.max_depth = int(max_depth)

    @property
    def half_gap(self) -> float:
        return self.horizontal_gap / 2

    @property
    def footprint(self) -> float:
        """Width reserved for a single node (leaf or collapsed subtree)."""
        return self.node_width + self.half_gap

    def replace(self, **changes: Any) -> 'LayoutConfig':
        fields = {
            "node_width": self.node_width,
            "node_height": self.node_height,
            "horizontal_gap": self.horizontal_gap,
            "level_height": self.level_height,
            "root_x": self.root_x,
            "root_y": self.root_y,
            "mode": self.mode,
            "max_depth": self.max_depth,
        }
        fields.update(changes)
        return LayoutConfig(**fields)

    def __repr__(self) -> str:
        return (f"LayoutConfig(mode={self.mode}, node={self.node_width:g}x{self.node_height:g}, "
                f"gap={self.horizontal_gap:g}, level={self.level_height:g})")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid value %r for %s; using %s", raw, name, default)
        return default


class Settings:
    """Environment-backed settings."""

    @property
    def GEMINI_API_KEY(self) -> Optional[str]:
        return os.getenv("GEMINI_API_KEY") or None

    @property
    def GEMINI_MODEL(self) -> str:
        return os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)

    @property
    def GEMINI_TIMEOUT(self) -> float:
        return _env_float("GEMINI_TIMEOUT", DEFAULT_GEMINI_TIMEOUT)

    @property
    def LOG_LEVEL(self) -> str:
        return os.getenv("MINDMAP_LOG_LEVEL", "INFO").upper()

    @property
    def FALLBACK_ON_FAILURE(self) -> bool:
        """Insert the generic label set when generation for an expand fails."""
        return os.getenv("MINDMAP_FALLBACK_ON_FAILURE", "false").strip().lower() in ("1", "true", "yes", "on")

    @property
    def LAYOUT_MODE(self) -> str:
        mode = os.getenv("MINDMAP_LAYOUT_MODE", "tree").lower()
        if mode not in LAYOUT_MODES:
            logger.warning("Ignoring unknown layout mode %r; using 'tree'", mode)
            return "tree"
        return mode

    def layout_config(self, mode: Optional[str] = None) -> LayoutConfig:
        """Builds a LayoutConfig from the environment, falling back to defaults."""
        try:
            return LayoutConfig(
                node_width=_env_float("MINDMAP_NODE_WIDTH", DEFAULT_NODE_WIDTH),
                node_height=_env_float("MINDMAP_NODE_HEIGHT", DEFAULT_NODE_HEIGHT),
                horizontal_gap=_env_float("MINDMAP_HORIZONTAL_GAP", DEFAULT_HORIZONTAL_GAP),
                level_height=_env_float("MINDMAP_LEVEL_HEIGHT", DEFAULT_LEVEL_HEIGHT),
                mode=mode or self.LAYOUT_MODE,
            )
        except ValueError as e:
            logger.warning("Invalid layout settings (%s); using defaults", e)
            return LayoutConfig(mode=mode if mode in LAYOUT_MODES else "tree")


settings = Settings()
