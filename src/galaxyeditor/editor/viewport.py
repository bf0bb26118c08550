from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

MIN_SCALE = 0.1
MAX_SCALE = 500.0
DEFAULT_SCALE = 5.0
DEFAULT_OFFSET_X = 400.0
DEFAULT_OFFSET_Y = 300.0
DEFAULT_VIEWPORT_SIZE = (800, 600)
CENTER_FILL_RATIO = 0.8
WHEEL_ZOOM_OUT_FACTOR = 0.9
WHEEL_ZOOM_IN_FACTOR = 1.1


def clamp_scale(scale: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, scale))


@dataclass
class ViewportTransform:
    """Screen <-> map transform. Map Y grows upward, screen Y grows downward."""

    scale: float = DEFAULT_SCALE
    offset_x: float = DEFAULT_OFFSET_X
    offset_y: float = DEFAULT_OFFSET_Y
    width: int = DEFAULT_VIEWPORT_SIZE[0]
    height: int = DEFAULT_VIEWPORT_SIZE[1]

    def __post_init__(self) -> None:
        self.scale = clamp_scale(self.scale)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"viewport size must be positive: {self.width}x{self.height}")

    def map_to_screen(self, map_x: float, map_y: float) -> tuple[float, float]:
        return map_x * self.scale + self.offset_x, map_y * -self.scale + self.offset_y

    def screen_to_map(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        return (screen_x - self.offset_x) / self.scale, (screen_y - self.offset_y) / -self.scale

    def zoom_to(self, anchor: tuple[float, float], new_scale: float) -> None:
        """Set the scale while keeping the map point under ``anchor`` fixed on screen."""
        anchor_x, anchor_y = anchor
        before_x, before_y = self.screen_to_map(anchor_x, anchor_y)
        self.scale = clamp_scale(new_scale)
        self.offset_x = anchor_x - before_x * self.scale
        self.offset_y = anchor_y + before_y * self.scale

    def zoom_at(self, anchor: tuple[float, float], factor: float) -> None:
        if factor <= 0:
            raise ValueError(f"zoom factor must be > 0: {factor}")
        self.zoom_to(anchor, self.scale * factor)

    def wheel_zoom(self, anchor: tuple[float, float], delta: float) -> None:
        factor = WHEEL_ZOOM_OUT_FACTOR if delta > 0 else WHEEL_ZOOM_IN_FACTOR
        self.zoom_at(anchor, factor)

    def zoom_at_center(self, factor: float) -> None:
        self.zoom_at(self.center, factor)

    def pan_by(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy

    def resize(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"viewport size must be positive: {width}x{height}")
        self.width = width
        self.height = height

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    def center_on_bounds(self, min_x: float, min_y: float, max_x: float, max_y: float) -> None:
        """Fit the box into 80% of the viewport and center it.

        A zero-extent axis does not constrain the scale; when both axes are
        degenerate the current scale is kept.
        """
        span_x = max_x - min_x
        span_y = max_y - min_y
        candidates: list[float] = []
        if span_x > 0:
            candidates.append(self.width * CENTER_FILL_RATIO / span_x)
        if span_y > 0:
            candidates.append(self.height * CENTER_FILL_RATIO / span_y)
        if candidates:
            self.scale = clamp_scale(min(candidates))
        center_x = (min_x + max_x) / 2.0
        center_y = (min_y + max_y) / 2.0
        self.offset_x = self.width / 2.0 - center_x * self.scale
        self.offset_y = self.height / 2.0 + center_y * self.scale

    def center_on_points(self, points: Iterable[tuple[float, float]]) -> bool:
        materialized = list(points)
        if not materialized:
            return False
        xs = [x for x, _ in materialized]
        ys = [y for _, y in materialized]
        self.center_on_bounds(min(xs), min(ys), max(xs), max(ys))
        return True

    def visible_map_bounds(self) -> tuple[float, float, float, float]:
        """Return (min_x, min_y, max_x, max_y) of the map area currently on screen."""
        left, top = self.screen_to_map(0, 0)
        right, bottom = self.screen_to_map(self.width, self.height)
        return min(left, right), min(top, bottom), max(left, right), max(top, bottom)

    def is_on_screen(self, screen_x: float, screen_y: float, margin: float = 0.0) -> bool:
        return -margin <= screen_x <= self.width + margin and -margin <= screen_y <= self.height + margin

    def to_dict(self) -> dict[str, Any]:
        return {
            "scale": self.scale,
            "offset_x": self.offset_x,
            "offset_y": self.offset_y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ViewportTransform":
        return cls(
            scale=float(data.get("scale", DEFAULT_SCALE)),
            offset_x=float(data.get("offset_x", DEFAULT_OFFSET_X)),
            offset_y=float(data.get("offset_y", DEFAULT_OFFSET_Y)),
            width=int(data.get("width", DEFAULT_VIEWPORT_SIZE[0])),
            height=int(data.get("height", DEFAULT_VIEWPORT_SIZE[1])),
        )
