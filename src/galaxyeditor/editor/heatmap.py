from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable

from galaxyeditor.content.catalog import GALAXY_GRID_SPACING
from galaxyeditor.editor.model import System
from galaxyeditor.editor.viewport import ViewportTransform

logger = logging.getLogger(__name__)

# Cell rows are keyed by their upper edge: floor(y / g) + 1. A system at map y
# therefore sits in the drawn square spanning [(row - 1) * g, row * g), whose
# top-left corner maps to screen through (col * g, row * g).
HEATMAP_ROW_OFFSET = 1

HEATMAP_ALPHA = 0.7
EMPTY_CELL_RGBA = (0, 0, 0, 0.2)
HEATMAP_GLOW_THRESHOLD = 75.0
HEATMAP_MAX_VIEWPORT_CELLS = 40_000
HEATMAP_SEARCH_RADIUS_CELLS = 2
MULTI_RESOURCE_INTENSITY_STEP = 0.25
MULTI_RESOURCE_INTENSITY_CAP = 2.0

# (upper bound of abundance band, ramp position at that bound)
ABUNDANCE_BANDS: tuple[tuple[float, float], ...] = (
    (5.0, 0.16),
    (15.0, 0.33),
    (30.0, 0.5),
    (50.0, 0.67),
    (75.0, 0.83),
    (100.0, 1.0),
)
ABUNDANCE_CAP = 100.0

LEGEND_TITLE = "Resource Abundance Heatmap"
LEGEND_SUBTITLE = "Brighter colors indicate multiple resource types"
LEGEND_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (5.0, "Low (5)"),
    (15.0, "Medium (15)"),
    (30.0, "High (30)"),
    (50.0, "Very High (50)"),
    (75.0, "Extreme (75)"),
    (100.0, "Ultra (100+)"),
)

CellKey = tuple[int, int]


@dataclass
class HeatmapCell:
    grid_x: int
    grid_y: int
    combined_score: float = 0.0
    resource_scores: dict[str, float] = field(default_factory=dict)
    system_keys: list[str] = field(default_factory=list)

    @property
    def key(self) -> CellKey:
        return self.grid_x, self.grid_y

    @property
    def resource_types_count(self) -> int:
        return len(self.resource_scores)

    @property
    def has_glow(self) -> bool:
        return self.combined_score > HEATMAP_GLOW_THRESHOLD


def cell_key(map_x: float, map_y: float, grid_size: float = GALAXY_GRID_SPACING) -> CellKey:
    return math.floor(map_x / grid_size), math.floor(map_y / grid_size) + HEATMAP_ROW_OFFSET


def cell_map_bounds(key: CellKey, grid_size: float = GALAXY_GRID_SPACING) -> tuple[float, float, float, float]:
    """Return (min_x, min_y, max_x, max_y) of the square drawn for ``key``."""
    grid_x, grid_y = key
    return (
        grid_x * grid_size,
        (grid_y - HEATMAP_ROW_OFFSET) * grid_size,
        (grid_x + 1) * grid_size,
        (grid_y - HEATMAP_ROW_OFFSET + 1) * grid_size,
    )


def aggregate_cells(
    systems: Iterable[System],
    *,
    grid_size: float = GALAXY_GRID_SPACING,
    is_resource_visible: Callable[[str], bool] | None = None,
) -> dict[CellKey, HeatmapCell]:
    """Bin visible resource richness into grid cells.

    A zero richness counts as 1 so that a present but unrated resource still
    registers. Systems without coordinates or without a visible resource are
    left out.
    """
    cells: dict[CellKey, HeatmapCell] = {}
    for system in systems:
        if system.coordinates is None or not system.planets:
            continue
        system_scores: dict[str, float] = {}
        for planet in system.planets:
            for resource in planet.resources:
                if is_resource_visible is not None and not is_resource_visible(resource.name):
                    continue
                score = resource.richness if resource.richness else 1.0
                system_scores[resource.name] = system_scores.get(resource.name, 0.0) + score
        if not system_scores:
            continue
        key = cell_key(system.coordinates[0], system.coordinates[1], grid_size)
        cell = cells.get(key)
        if cell is None:
            cell = HeatmapCell(grid_x=key[0], grid_y=key[1])
            cells[key] = cell
        cell.system_keys.append(system.key)
        for name, score in system_scores.items():
            cell.combined_score += score
            cell.resource_scores[name] = cell.resource_scores.get(name, 0.0) + score
    logger.debug("heatmap aggregated cells=%d grid_size=%s", len(cells), grid_size)
    return cells


def normalize_abundance(score: float) -> float:
    """Map an absolute abundance score onto [0, 1] through the fixed bands."""
    lower_bound = 0.0
    lower_position = 0.0
    capped = min(max(score, 0.0), ABUNDANCE_CAP)
    for upper_bound, upper_position in ABUNDANCE_BANDS:
        if capped <= upper_bound:
            span = upper_bound - lower_bound
            return lower_position + ((capped - lower_bound) / span) * (upper_position - lower_position)
        lower_bound = upper_bound
        lower_position = upper_position
    return 1.0


def ramp_color(value: float) -> tuple[int, int, int]:
    """Blue, cyan, green, yellow, orange, red, bright red over [0, 1]."""
    if value < 0.16:
        t = value * 6.25
        return 0, math.floor(255 * t), 255
    if value < 0.33:
        t = (value - 0.16) * 5.88
        return 0, 255, math.floor(255 * (1 - t))
    if value < 0.5:
        t = (value - 0.33) * 5.88
        return math.floor(255 * t), 255, 0
    if value < 0.67:
        t = (value - 0.5) * 5.88
        return 255, math.floor(255 * (1 - t * 0.5)), 0
    if value < 0.83:
        t = (value - 0.67) * 6.25
        return 255, math.floor(127 * (1 - t)), 0
    t = (value - 0.83) * 5.88
    return 255, math.floor(t * 100), math.floor(t * 100)


def intensity_factor(resource_types_count: int) -> float:
    return min(1.0 + (resource_types_count - 1) * MULTI_RESOURCE_INTENSITY_STEP, MULTI_RESOURCE_INTENSITY_CAP)


def intensify(color: tuple[int, int, int], resource_types_count: int) -> tuple[int, int, int]:
    if resource_types_count <= 1:
        return color
    factor = intensity_factor(resource_types_count)
    r, g, b = color
    return (
        min(math.floor(r * factor), 255),
        min(math.floor(g * factor), 255),
        min(math.floor(b * factor), 255),
    )


def cell_color(cell: HeatmapCell) -> tuple[int, int, int]:
    return intensify(ramp_color(normalize_abundance(cell.combined_score)), cell.resource_types_count)


def viewport_cell_range(
    viewport: ViewportTransform, grid_size: float = GALAXY_GRID_SPACING
) -> tuple[int, int, int, int]:
    """Cell index range covering the viewport plus one cell of padding on every side."""
    min_x, min_y, max_x, max_y = viewport.visible_map_bounds()
    return (
        math.floor(min_x / grid_size) - 1,
        math.floor(min_y / grid_size) + HEATMAP_ROW_OFFSET - 1,
        math.ceil(max_x / grid_size) + 1,
        math.floor(max_y / grid_size) + HEATMAP_ROW_OFFSET + 1,
    )


@dataclass(frozen=True)
class HeatmapLayout:
    empty_cells: tuple[CellKey, ...]
    data_cells: tuple[HeatmapCell, ...]
    bounded: bool


def layout_cells(
    cells: dict[CellKey, HeatmapCell],
    viewport: ViewportTransform,
    *,
    grid_size: float = GALAXY_GRID_SPACING,
    max_cells: int = HEATMAP_MAX_VIEWPORT_CELLS,
    search_radius: int = HEATMAP_SEARCH_RADIUS_CELLS,
) -> HeatmapLayout:
    """Decide which cells to draw for the current view.

    Normally every cell in the padded viewport range is evaluated. When that
    range is larger than ``max_cells`` only data cells and their neighbours
    within ``search_radius`` are. Data cells are ordered by ascending score so
    the richest are drawn last.
    """
    min_gx, min_gy, max_gx, max_gy = viewport_cell_range(viewport, grid_size)

    def in_range(key: CellKey) -> bool:
        return min_gx <= key[0] <= max_gx and min_gy <= key[1] <= max_gy

    visible_data = [cell for key, cell in cells.items() if in_range(key)]
    range_cells = (max_gx - min_gx + 1) * (max_gy - min_gy + 1)
    bounded = range_cells > max_cells
    empty: list[CellKey] = []
    if not bounded:
        for grid_x in range(min_gx, max_gx + 1):
            for grid_y in range(min_gy, max_gy + 1):
                if (grid_x, grid_y) not in cells:
                    empty.append((grid_x, grid_y))
    else:
        seen: set[CellKey] = set()
        for cell in visible_data:
            for dx in range(-search_radius, search_radius + 1):
                for dy in range(-search_radius, search_radius + 1):
                    neighbour = (cell.grid_x + dx, cell.grid_y + dy)
                    if neighbour in seen or neighbour in cells or not in_range(neighbour):
                        continue
                    seen.add(neighbour)
                    empty.append(neighbour)
        empty.sort()
        logger.debug("heatmap bounded evaluation range_cells=%d evaluated=%d", range_cells, len(empty) + len(visible_data))
    visible_data.sort(key=lambda cell: (cell.combined_score, cell.grid_x, cell.grid_y))
    return HeatmapLayout(empty_cells=tuple(empty), data_cells=tuple(visible_data), bounded=bounded)


def legend_entries() -> list[tuple[str, float, tuple[int, int, int]]]:
    """(label, bar position in [0, 1], color) for each absolute threshold."""
    return [
        (label, threshold / ABUNDANCE_CAP, ramp_color(normalize_abundance(threshold)))
        for threshold, label in LEGEND_THRESHOLDS
    ]
