from __future__ import annotations

from typing import Iterable, Sequence

from galaxyeditor.editor.model import System
from galaxyeditor.editor.viewport import ViewportTransform

PICK_RADIUS_PX = 10.0


def find_system_at(
    systems: Sequence[System],
    viewport: ViewportTransform,
    screen_pos: tuple[float, float],
    *,
    radius_px: float = PICK_RADIUS_PX,
) -> System | None:
    """Return the topmost system within ``radius_px`` of ``screen_pos``.

    Systems are drawn in list order, so the scan runs from the end and the
    last-inserted qualifying system wins.
    """
    for system in reversed(systems):
        if system.coordinates is None:
            continue
        px, py = viewport.map_to_screen(*system.coordinates)
        dx = screen_pos[0] - px
        dy = screen_pos[1] - py
        distance_sq = (dx * dx) + (dy * dy)
        if distance_sq <= radius_px * radius_px:
            return system
    return None


def normalized_rect(
    start: tuple[float, float], end: tuple[float, float]
) -> tuple[float, float, float, float]:
    """Return (left, top, right, bottom) for a drag from ``start`` to ``end``."""
    return (
        min(start[0], end[0]),
        min(start[1], end[1]),
        max(start[0], end[0]),
        max(start[1], end[1]),
    )


def systems_in_screen_rect(
    systems: Iterable[System],
    viewport: ViewportTransform,
    start: tuple[float, float],
    end: tuple[float, float],
) -> list[System]:
    """Every drawable system inside the rectangle, bounds inclusive, locked ones too."""
    left, top, right, bottom = normalized_rect(start, end)
    selected: list[System] = []
    for system in systems:
        if system.coordinates is None:
            continue
        px, py = viewport.map_to_screen(*system.coordinates)
        if left <= px <= right and top <= py <= bottom:
            selected.append(system)
    return selected
