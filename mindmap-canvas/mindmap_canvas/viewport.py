# mindmap-canvas/mindmap_canvas/viewport.py
from typing import Any, Dict, Optional, Tuple

from .config import ZOOM_STEP

Point = Tuple[float, float]


class ViewportController:
    """Pan offset and zoom scale of the canvas.

    screen = offset + world * scale
    """
    def __init__(self, scale: float = 1.0, offset_x: float = 0.0, offset_y: float = 0.0):
        if scale <= 0:
            raise ValueError(f"Scale must be positive, got {scale}.")
        self.scale = float(scale)
        self.offset_x = float(offset_x)
        self.offset_y = float(offset_y)

    def world_to_screen(self, x: float, y: float) -> Point:
        return (self.offset_x + x * self.scale, self.offset_y + y * self.scale)

    def screen_to_world(self, x: float, y: float) -> Point:
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)

    def zoom_at(self, screen_x: float, screen_y: float, new_scale: float) -> None:
        """Sets the scale while keeping the world point under (screen_x, screen_y) fixed."""
        if new_scale <= 0:
            raise ValueError(f"Scale must be positive, got {new_scale}.")
        world_x, world_y = self.screen_to_world(screen_x, screen_y)
        self.scale = float(new_scale)
        self.offset_x = screen_x - world_x * self.scale
        self.offset_y = screen_y - world_y * self.scale

    def zoom_by(self, screen_x: float, screen_y: float, factor: float,
                min_scale: Optional[float] = None, max_scale: Optional[float] = None) -> None:
        """Multiplies the scale by `factor`; clamping is up to the caller."""
        new_scale = self.scale * factor
        if min_scale is not None:
            new_scale = max(min_scale, new_scale)
        if max_scale is not None:
            new_scale = min(max_scale, new_scale)
        self.zoom_at(screen_x, screen_y, new_scale)

    def wheel(self, screen_x: float, screen_y: float, delta_y: float, step: float = ZOOM_STEP,
              min_scale: Optional[float] = None, max_scale: Optional[float] = None) -> None:
        """Mouse-wheel zoom: scrolling up (negative delta) zooms in one step."""
        if delta_y == 0:
            return
        factor = step if delta_y < 0 else 1 / step
        self.zoom_by(screen_x, screen_y, factor, min_scale, max_scale)

    def pan(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy

    def center_on(self, world_x: float, world_y: float, screen_x: float, screen_y: float) -> None:
        """Pans so that the world point lands on the given screen point."""
        self.offset_x = screen_x - world_x * self.scale
        self.offset_y = screen_y - world_y * self.scale

    def reset(self) -> None:
        self.scale = 1.0
        self.offset_x = 0.0
        self.offset_y = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"scale": self.scale, "offset_x": self.offset_x, "offset_y": self.offset_y}

    def __repr__(self) -> str:
        return f"ViewportController(scale={self.scale:g}, offset=({self.offset_x:g}, {self.offset_y:g}))"
