from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from galaxyeditor.content.catalog import FACTION_COLORS, GALAXY_GRID_SPACING, faction_color
from galaxyeditor.editor.geometry import Point, centroid, convex_hull
from galaxyeditor.editor.heatmap import (
    EMPTY_CELL_RGBA,
    HEATMAP_ALPHA,
    LEGEND_SUBTITLE,
    LEGEND_TITLE,
    aggregate_cells,
    cell_color,
    layout_cells,
    legend_entries,
    ramp_color,
    viewport_cell_range,
)
from galaxyeditor.editor.model import Region, System, system_matches_search
from galaxyeditor.editor.state import MODE_BOX_SELECTING, EditorState
from galaxyeditor.editor.statistics import faction_statistics, region_statistics

logger = logging.getLogger(__name__)

RGBA = tuple[int, int, int, float]

LAYER_GRID = "grid"
LAYER_FACTION_AREAS = "faction_areas"
LAYER_REGION_BLOBS = "region_blobs"
LAYER_REGION_POLYGONS = "region_polygons"
LAYER_LINKS = "links"
LAYER_SYSTEMS = "systems"
LAYER_HEATMAP = "heatmap"
LAYER_INTERACTION = "interaction"
LAYER_HIGHLIGHTS = "highlights"
LAYER_LABELS = "labels"
LAYER_ORDER = (
    LAYER_GRID,
    LAYER_FACTION_AREAS,
    LAYER_REGION_BLOBS,
    LAYER_REGION_POLYGONS,
    LAYER_LINKS,
    LAYER_SYSTEMS,
    LAYER_HEATMAP,
    LAYER_INTERACTION,
    LAYER_HIGHLIGHTS,
    LAYER_LABELS,
)

GRID_LINE_COLOR = "#333333"
GRID_AXIS_COLOR = "#555555"
GRID_LABEL_COLOR = "#777777"
GRID_ORIGIN_COLOR = "#FF5555"
GRID_DASH = (5.0, 3.0)
GRID_LABEL_MIN_SCALE = 2.0
GRID_LABEL_STEP = 5
GRID_MIN_PIXEL_SPACING = 3.0
LINK_COLOR = "#888888"
LINK_SELECTED_COLOR = "#FFFF00"
LINK_LABEL_COLOR = "#AAAAAA"
LINK_LABEL_MIN_SCALE = 3.0
DANGLING_LINK_COLOR = "#FF3333"
DANGLING_STUB_PX = 8.0
LABEL_BACKGROUND: RGBA = (0, 0, 0, 0.7)
OFFSCREEN_MARGIN_PX = 20.0
SYSTEM_RADIUS_PX = 5.0
SYSTEM_GLYPH_SIZE_PX = 10.0
KING_GLYPH_SCALE = 1.3
HOVER_RING: RGBA = (255, 255, 255, 0.3)
SELECTION_RING: RGBA = (255, 255, 0, 0.5)
SELECTION_BOX_STROKE: RGBA = (255, 255, 0, 0.8)
SELECTION_BOX_FILL: RGBA = (255, 255, 0, 0.1)
LINK_PREVIEW: RGBA = (255, 255, 0, 0.8)
KING_BADGE_BACKGROUND: RGBA = (155, 89, 182, 0.5)
LOCK_BADGE_BACKGROUND: RGBA = (255, 204, 0, 0.3)
LOCK_BADGE_COLOR = "#FFCC00"
RESOURCE_LABEL_COLOR = "#CCCCCC"
FACTION_AREA_FILL_ALPHA = 0.1
REGION_POLYGON_FILL_ALPHA = 0.15
REGION_BLOB_MAX_ALPHA = 0.25
REGION_BLOB_INFLUENCE_CELLS = 10

CROWN_OUTLINE: tuple[Point, ...] = (
    (-0.5, -1.0),
    (-0.5, -1.3),
    (-0.3, -1.1),
    (0.0, -1.5),
    (0.3, -1.1),
    (0.5, -1.3),
    (0.5, -1.0),
    (0.6, 0.2),
    (-0.6, 0.2),
)


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    text = value.lstrip("#")
    if len(text) == 3:
        text = "".join(char * 2 for char in text)
    if len(text) != 6:
        raise ValueError(f"unsupported color: {value}")
    return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)


def rgba(value: str | tuple[int, int, int], alpha: float = 1.0) -> RGBA:
    r, g, b = hex_to_rgb(value) if isinstance(value, str) else value
    return r, g, b, alpha


def lighten(value: str, amount: int) -> RGBA:
    r, g, b = hex_to_rgb(value)
    return min(255, r + amount), min(255, g + amount), min(255, b + amount), 1.0


def star_points(cx: float, cy: float, outer: float, inner: float, points: int = 8) -> list[Point]:
    vertices: list[Point] = []
    for index in range(points * 2):
        radius = outer if index % 2 == 0 else inner
        angle = index * math.pi / points
        vertices.append((cx + math.cos(angle) * radius, cy + math.sin(angle) * radius))
    return vertices


def crown_points(cx: float, cy: float, size: float) -> list[Point]:
    return [(cx + px * size, cy + py * size) for px, py in CROWN_OUTLINE]


class Renderer:
    """Immediate-mode drawing surface.

    Every call uses logical pixels, the units of the viewport. ``pixel_ratio``
    is the number of device pixels per logical pixel: a backend allocates
    ``device_size`` pixels and scales each primitive on its own, so the map
    drawing code never sees device pixels. Colors are ``(r, g, b, alpha)``
    with alpha in [0, 1].
    """

    pixel_ratio: float = 1.0

    def device_size(self, width: int, height: int) -> tuple[int, int]:
        if self.pixel_ratio <= 0:
            raise ValueError(f"pixel_ratio must be > 0: {self.pixel_ratio}")
        return max(1, math.ceil(width * self.pixel_ratio)), max(1, math.ceil(height * self.pixel_ratio))

    def to_logical(self, x: float, y: float) -> Point:
        """Convert a device-pixel position, such as a mouse event, to logical pixels."""
        return x / self.pixel_ratio, y / self.pixel_ratio

    def begin_frame(self, width: int, height: int) -> None:
        """Called once before any layer is drawn."""

    def begin_layer(self, name: str) -> None:
        """Marks the start of a named layer; later layers overwrite earlier ones."""

    def end_frame(self) -> None:
        """Called once after the last layer."""

    def line(self, start: Point, end: Point, color: RGBA, width: float = 1.0, dash: tuple[float, float] | None = None) -> None:
        raise NotImplementedError

    def polygon(self, points: Sequence[Point], *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        raise NotImplementedError

    def circle(self, center: Point, radius: float, *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        raise NotImplementedError

    def rect(self, x: float, y: float, w: float, h: float, *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        raise NotImplementedError

    def text(self, value: str, x: float, y: float, color: RGBA, *, size: int = 12, bold: bool = False, align: str = "center") -> None:
        """Draw ``value`` with its baseline at ``y``; ``align`` is left, center or right."""
        raise NotImplementedError

    def measure_text(self, value: str, *, size: int = 12, bold: bool = False) -> float:
        raise NotImplementedError


@dataclass
class RecordingRenderer(Renderer):
    """Backend that keeps every call; used by tests and the batch render summary."""

    pixel_ratio: float = 1.0
    calls: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    layers: list[str] = field(default_factory=list)
    frame_size: tuple[int, int] | None = None
    device_frame_size: tuple[int, int] | None = None

    def _record(self, op: str, **kwargs: Any) -> None:
        layer = self.layers[-1] if self.layers else ""
        self.calls.append((layer, op, kwargs))

    def begin_frame(self, width: int, height: int) -> None:
        self.calls = []
        self.layers = []
        self.frame_size = (width, height)
        self.device_frame_size = self.device_size(width, height)

    def begin_layer(self, name: str) -> None:
        self.layers.append(name)

    def line(self, start: Point, end: Point, color: RGBA, width: float = 1.0, dash: tuple[float, float] | None = None) -> None:
        self._record("line", start=start, end=end, color=color, width=width, dash=dash)

    def polygon(self, points: Sequence[Point], *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        self._record("polygon", points=list(points), fill=fill, stroke=stroke, width=width)

    def circle(self, center: Point, radius: float, *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        self._record("circle", center=center, radius=radius, fill=fill, stroke=stroke, width=width)

    def rect(self, x: float, y: float, w: float, h: float, *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        self._record("rect", x=x, y=y, w=w, h=h, fill=fill, stroke=stroke, width=width)

    def text(self, value: str, x: float, y: float, color: RGBA, *, size: int = 12, bold: bool = False, align: str = "center") -> None:
        self._record("text", value=value, x=x, y=y, color=color, size=size, bold=bold, align=align)

    def measure_text(self, value: str, *, size: int = 12, bold: bool = False) -> float:
        return len(value) * size * (0.62 if bold else 0.55)

    def ops_in(self, layer: str, op: str | None = None) -> list[dict[str, Any]]:
        return [kwargs for name, current, kwargs in self.calls if name == layer and (op is None or current == op)]

    def texts(self, layer: str | None = None) -> list[str]:
        return [
            kwargs["value"]
            for name, op, kwargs in self.calls
            if op == "text" and (layer is None or name == layer)
        ]


class MapRenderer:
    """Decides what to draw, in which order and with which colors for one frame."""

    def __init__(self, renderer: Renderer, *, grid_size: float = GALAXY_GRID_SPACING) -> None:
        self.renderer = renderer
        self.grid_size = grid_size

    def draw(self, state: EditorState) -> None:
        viewport = state.viewport
        self.renderer.begin_frame(viewport.width, viewport.height)
        visible = self._visible_systems(state)
        region_points = self._region_members(state) if state.show_regions else {}

        self.renderer.begin_layer(LAYER_GRID)
        if state.show_grid and not state.show_heatmap:
            self._draw_grid(state)
        self.renderer.begin_layer(LAYER_FACTION_AREAS)
        if state.show_faction_area:
            self._draw_faction_areas(state)
        self.renderer.begin_layer(LAYER_REGION_BLOBS)
        if region_points and state.label_enabled("RegionalBlob"):
            self._draw_region_blobs(state, region_points)
        self.renderer.begin_layer(LAYER_REGION_POLYGONS)
        if region_points and state.label_enabled("RegionalPolygon"):
            self._draw_region_polygons(state, region_points)
        self.renderer.begin_layer(LAYER_LINKS)
        self._draw_links(state)
        self.renderer.begin_layer(LAYER_SYSTEMS)
        for system in visible:
            self._draw_system(state, system)
        self.renderer.begin_layer(LAYER_HEATMAP)
        if state.show_heatmap:
            self._draw_heatmap(state)
        self.renderer.begin_layer(LAYER_INTERACTION)
        self._draw_interaction(state)
        self.renderer.begin_layer(LAYER_HIGHLIGHTS)
        self._draw_highlights(state)
        self.renderer.begin_layer(LAYER_LABELS)
        for system in visible:
            self._draw_system_labels(state, system)
        if region_points:
            self._draw_region_labels(state, region_points)
        if state.show_faction_area:
            self._draw_faction_table(state)
        if state.show_heatmap:
            self._draw_heatmap_legend(state)
        self.renderer.end_frame()

    def _visible_systems(self, state: EditorState) -> list[System]:
        """Systems that pass the search filter and land within the off-screen margin."""
        region_ids = state.model.matching_region_ids(state.search_term)
        visible: list[System] = []
        for system in state.model.systems:
            if system.coordinates is None:
                continue
            if not system_matches_search(system, state.search_term, region_ids):
                continue
            sx, sy = state.viewport.map_to_screen(*system.coordinates)
            if not state.viewport.is_on_screen(sx, sy, OFFSCREEN_MARGIN_PX):
                continue
            visible.append(system)
        return visible

    def _region_members(self, state: EditorState) -> dict[str, tuple[Region, list[System]]]:
        region_ids = state.model.matching_region_ids(state.search_term)
        members: dict[str, tuple[Region, list[System]]] = {
            region.region_id: (region, []) for region in state.model.regions
        }
        for system in state.model.systems:
            if system.coordinates is None or system.region_id not in members:
                continue
            if system_matches_search(system, state.search_term, region_ids):
                members[system.region_id][1].append(system)
        return members

    def _label_box(self, text: str, x: float, y: float, *, size: int, bold: bool = False, height: float = 14.0, top_offset: float = 10.0, background: RGBA = LABEL_BACKGROUND, pad: float = 2.0) -> None:
        width = self.renderer.measure_text(text, size=size, bold=bold)
        self.renderer.rect(x - width / 2 - pad, y - top_offset, width + pad * 2, height, fill=background)

    def _draw_grid(self, state: EditorState) -> None:
        viewport = state.viewport
        spacing = self.grid_size
        min_x, min_y, max_x, max_y = viewport.visible_map_bounds()
        draw_minor = spacing * viewport.scale >= GRID_MIN_PIXEL_SPACING
        line = rgba(GRID_LINE_COLOR)
        axis = rgba(GRID_AXIS_COLOR)
        label_color = rgba(GRID_LABEL_COLOR)
        show_labels = viewport.scale > GRID_LABEL_MIN_SCALE

        for index in range(math.floor(min_x / spacing), math.ceil(max_x / spacing) + 1):
            sx, _ = viewport.map_to_screen(index * spacing, 0.0)
            if index == 0:
                self.renderer.line((sx, 0.0), (sx, float(viewport.height)), axis, 1.5, GRID_DASH)
            elif draw_minor:
                self.renderer.line((sx, 0.0), (sx, float(viewport.height)), line, 0.5)
            if show_labels and draw_minor and index % GRID_LABEL_STEP == 0:
                self.renderer.text(_format_grid_value(index * spacing), sx + 2, 12.0, label_color, size=10, align="left")

        for index in range(math.floor(min_y / spacing), math.ceil(max_y / spacing) + 1):
            _, sy = viewport.map_to_screen(0.0, index * spacing)
            if index == 0:
                self.renderer.line((0.0, sy), (float(viewport.width), sy), axis, 1.5, GRID_DASH)
            elif draw_minor:
                self.renderer.line((0.0, sy), (float(viewport.width), sy), line, 0.5)
            if show_labels and draw_minor and index % GRID_LABEL_STEP == 0:
                self.renderer.text(_format_grid_value(index * spacing), 2.0, sy - 2, label_color, size=10, align="left")

        self.renderer.circle(viewport.map_to_screen(0.0, 0.0), 5.0, stroke=rgba(GRID_ORIGIN_COLOR), width=1.0)

    def _draw_faction_areas(self, state: EditorState) -> None:
        for faction, stats in faction_statistics(state.model).items():
            if len(stats.hull) < 3:
                continue
            color = FACTION_COLORS[faction]
            points = [state.viewport.map_to_screen(x, y) for x, y in stats.hull]
            self.renderer.polygon(points, fill=rgba(color, FACTION_AREA_FILL_ALPHA), stroke=rgba(color), width=1.5)

    def _draw_region_polygons(self, state: EditorState, region_points: dict[str, tuple[Region, list[System]]]) -> None:
        for region, members in region_points.values():
            points = [member.coordinates for member in members if member.coordinates is not None]
            if len(points) < 3:
                continue
            hull = convex_hull(points)
            if len(hull) < 3:
                continue
            screen = [state.viewport.map_to_screen(x, y) for x, y in hull]
            self.renderer.polygon(screen, fill=rgba(region.color, REGION_POLYGON_FILL_ALPHA), stroke=rgba(region.color), width=2.0)

    def _draw_region_blobs(self, state: EditorState, region_points: dict[str, tuple[Region, list[System]]]) -> None:
        viewport = state.viewport
        for region, center, cell_size, distance, max_distance in region_blob_cells(state, region_points, self.grid_size):
            opacity = REGION_BLOB_MAX_ALPHA * (1 - (distance / max_distance) * 0.5)
            left, top = viewport.map_to_screen(center[0] - cell_size / 2, center[1] + cell_size / 2)
            side = cell_size * viewport.scale
            self.renderer.rect(left, top, side, side, fill=rgba(region.color, opacity))

    def _draw_links(self, state: EditorState) -> None:
        viewport = state.viewport
        selected = set(state.selected_keys)
        for source, target in state.model.link_pairs():
            if source.coordinates is None or target.coordinates is None:
                continue
            start = viewport.map_to_screen(*source.coordinates)
            end = viewport.map_to_screen(*target.coordinates)
            highlighted = source.key in selected or target.key in selected
            self.renderer.line(
                start,
                end,
                rgba(LINK_SELECTED_COLOR if highlighted else LINK_COLOR),
                2.0 if highlighted else 1.0,
            )
            if viewport.scale > LINK_LABEL_MIN_SCALE:
                distance = math.dist(source.coordinates, target.coordinates)
                label = f"{distance:.2f}"
                mid_x = (start[0] + end[0]) / 2
                mid_y = (start[1] + end[1]) / 2
                self._label_box(label, mid_x, mid_y, size=10, height=12.0, top_offset=6.0)
                self.renderer.text(label, mid_x, mid_y + 3, rgba(LINK_LABEL_COLOR), size=10)

        for source_key, _ in state.model.dangling_links():
            source = state.model.get_system(source_key)
            if source is None or source.coordinates is None:
                continue
            sx, sy = viewport.map_to_screen(*source.coordinates)
            self.renderer.line((sx, sy), (sx + DANGLING_STUB_PX, sy - DANGLING_STUB_PX), rgba(DANGLING_LINK_COLOR), 2.0, GRID_DASH)

    def _draw_system(self, state: EditorState, system: System) -> None:
        if system.coordinates is None:
            return
        x, y = state.viewport.map_to_screen(*system.coordinates)
        multiplier = state.system_size_multiplier
        root = math.sqrt(multiplier)
        color = faction_color(system.faction)

        region = state.model.get_region(system.region_id) if system.region_id is not None else None
        if region is not None and state.show_regions and state.label_enabled("RegionalIndicator"):
            region_color = rgba(region.color)
            if system.is_king:
                self.renderer.polygon(star_points(x, y, 20 * root, 12 * root), stroke=region_color, width=3.0)
            elif system.is_core:
                self.renderer.polygon(crown_points(x, y, 15 * root), stroke=region_color, width=2.0)
            else:
                self.renderer.circle((x, y), 10 * root, stroke=region_color, width=2.0)

        if system.is_king:
            size = SYSTEM_GLYPH_SIZE_PX * multiplier * KING_GLYPH_SCALE
            self.renderer.polygon(star_points(x, y, size, size * 0.5), fill=rgba(color), stroke=(0, 0, 0, 0.8), width=2.0)
            diamond = size * 0.4
            self.renderer.polygon(
                [(x, y - diamond), (x + diamond, y), (x, y + diamond), (x - diamond, y)],
                fill=lighten(color, 50),
                stroke=(255, 255, 255, 0.5),
                width=1.0,
            )
        elif system.is_core:
            self.renderer.polygon(crown_points(x, y, SYSTEM_GLYPH_SIZE_PX * multiplier), fill=rgba(color), stroke=(0, 0, 0, 0.8), width=1.0)
        else:
            self.renderer.circle((x, y), SYSTEM_RADIUS_PX * multiplier, fill=rgba(color), stroke=(0, 0, 0, 1.0), width=1.0)

    def _draw_heatmap(self, state: EditorState) -> None:
        viewport = state.viewport
        cells = aggregate_cells(state.model.systems, grid_size=self.grid_size, is_resource_visible=state.is_resource_visible)
        if not cells:
            return
        layout = layout_cells(cells, viewport, grid_size=self.grid_size)
        side = self.grid_size * viewport.scale

        if state.show_grid and side >= GRID_MIN_PIXEL_SPACING:
            min_gx, min_gy, max_gx, max_gy = viewport_cell_range(viewport, self.grid_size)
            for grid_x in range(min_gx, max_gx + 2):
                sx, _ = viewport.map_to_screen(grid_x * self.grid_size, 0.0)
                if grid_x == 0:
                    self.renderer.line((sx, 0.0), (sx, float(viewport.height)), rgba(GRID_AXIS_COLOR), 1.5, GRID_DASH)
                else:
                    self.renderer.line((sx, 0.0), (sx, float(viewport.height)), rgba(GRID_LINE_COLOR), 0.5)
            for grid_y in range(min_gy, max_gy + 2):
                _, sy = viewport.map_to_screen(0.0, grid_y * self.grid_size)
                if grid_y == 0:
                    self.renderer.line((0.0, sy), (float(viewport.width), sy), rgba(GRID_AXIS_COLOR), 1.5, GRID_DASH)
                else:
                    self.renderer.line((0.0, sy), (float(viewport.width), sy), rgba(GRID_LINE_COLOR), 0.5)

        r, g, b, a = EMPTY_CELL_RGBA
        empty_fill: RGBA = (r, g, b, a * HEATMAP_ALPHA)
        for grid_x, grid_y in layout.empty_cells:
            left, top = viewport.map_to_screen(grid_x * self.grid_size, grid_y * self.grid_size)
            self.renderer.rect(left, top, side, side, fill=empty_fill)
        for cell in layout.data_cells:
            left, top = viewport.map_to_screen(cell.grid_x * self.grid_size, cell.grid_y * self.grid_size)
            stroke = (255, 255, 255, HEATMAP_ALPHA) if cell.has_glow else None
            self.renderer.rect(left, top, side, side, fill=rgba(cell_color(cell), HEATMAP_ALPHA), stroke=stroke, width=2.0)

    def _draw_interaction(self, state: EditorState) -> None:
        if state.mode == MODE_BOX_SELECTING and state.box_start is not None and state.box_end is not None:
            (x1, y1), (x2, y2) = state.box_start, state.box_end
            self.renderer.rect(
                min(x1, x2),
                min(y1, y2),
                abs(x2 - x1),
                abs(y2 - y1),
                fill=SELECTION_BOX_FILL,
                stroke=SELECTION_BOX_STROKE,
                width=1.0,
            )
        if state.is_linking and state.link_source_key is not None and state.pointer_pos is not None:
            source = state.model.get_system(state.link_source_key)
            if source is not None and source.coordinates is not None:
                start = state.viewport.map_to_screen(*source.coordinates)
                self.renderer.line(start, state.pointer_pos, LINK_PREVIEW, 2.0, GRID_DASH)

    def _draw_ring(self, state: EditorState, system: System, color: RGBA, radius: float) -> None:
        if system.coordinates is None:
            return
        x, y = state.viewport.map_to_screen(*system.coordinates)
        root = math.sqrt(state.system_size_multiplier)
        if system.is_core:
            self.renderer.polygon(crown_points(x, y, 13 * root), stroke=color, width=2.0)
        else:
            self.renderer.circle((x, y), radius * root, stroke=color, width=2.0)

    def _draw_highlights(self, state: EditorState) -> None:
        if state.hovered_key is not None and not state.is_selected(state.hovered_key):
            hovered = state.model.get_system(state.hovered_key)
            if hovered is not None:
                self._draw_ring(state, hovered, HOVER_RING, 15.0)
        for system in state.selected_systems():
            self._draw_ring(state, system, SELECTION_RING, 12.0)

    def _draw_system_labels(self, state: EditorState, system: System) -> None:
        if system.coordinates is None:
            return
        x, y = state.viewport.map_to_screen(*system.coordinates)
        selected = state.is_selected(system.key)
        hovered = state.hovered_key == system.key
        emphasized = selected or hovered
        text_color = rgba("#FFFF00") if selected else rgba("#FFDDDD") if hovered else rgba("#FFFFFF")

        if state.show_system_labels or emphasized:
            if state.label_enabled("SystemName") or emphasized:
                name = system.name or "Unknown System"
                if system.is_locked and not state.label_enabled("LockStatus"):
                    name = f"[L] {name}"
                self._label_box(name, x, y, size=12, bold=selected, top_offset=20.0)
                self.renderer.text(name, x, y - 10, text_color, size=12, bold=selected)
            if system.is_locked and (state.label_enabled("LockStatus") or emphasized):
                self._label_box("LOCKED", x, y - 35, size=11, background=LOCK_BADGE_BACKGROUND)
                self.renderer.text("LOCKED", x, y - 35, rgba(LOCK_BADGE_COLOR), size=11)
            if system.is_king and (state.label_enabled("KingStatus") or emphasized):
                king_y = y - 50 if system.is_locked else y - 35
                self._label_box("KING", x, king_y, size=11, bold=True, height=16.0, background=KING_BADGE_BACKGROUND, pad=4.0)
                self.renderer.text("KING", x, king_y, rgba("#FFFFFF"), size=11, bold=True)

            stats_text = system_stats_text(state, system, emphasized)
            if stats_text and (state.show_system_stats or emphasized):
                self._label_box(stats_text, x, y + 16, size=12, top_offset=10.0)
                self.renderer.text(stats_text, x, y + 16, text_color if emphasized else rgba("#CCCCCC"), size=12)

        if state.label_enabled("Planets"):
            label_y = y + 30 + (15 if emphasized or state.show_system_stats else 0)
            for planet in system.planets:
                for resource in planet.resources:
                    if not state.is_resource_visible(resource.name):
                        continue
                    label = f"{resource.name} (R{_format_richness(resource.richness)})"
                    self._label_box(label, x, label_y, size=10, height=12.0, top_offset=8.0)
                    self.renderer.text(label, x, label_y, rgba(RESOURCE_LABEL_COLOR), size=10)
                    label_y += 14

    def _draw_region_labels(self, state: EditorState, region_points: dict[str, tuple[Region, list[System]]]) -> None:
        highlighted_ids = state.model.matching_region_ids(state.search_term)
        for region_id, (region, members) in region_points.items():
            points = [member.coordinates for member in members if member.coordinates is not None]
            if not points or not region.name:
                continue
            cx, cy = centroid(points)
            sx, sy = state.viewport.map_to_screen(cx, cy)
            highlighted = region_id in highlighted_ids
            if state.label_enabled("RegionalName"):
                size = 16 if highlighted else 14
                self._label_box(region.name, sx, sy - 5, size=size, bold=True, height=20.0, top_offset=15.0, pad=4.0)
                self.renderer.text(region.name, sx, sy - 5, rgba("#FFFFFF") if highlighted else rgba(region.color), size=size, bold=True)

            stats = region_statistics(state.model, region_id)
            lines: list[str] = []
            if state.label_enabled("RegionalSystems"):
                lines.append(f"Systems: {len(members)}")
            if state.label_enabled("RegionalCore"):
                lines.append(f"Core Systems: {sum(1 for member in members if member.is_core)}")
            if state.label_enabled("RegionalKing"):
                kings = sum(1 for member in members if member.is_king)
                if kings > 0:
                    lines.append(f"KING Systems: {kings}")
            if state.label_enabled("RegionalArea") and len(stats.hull) > 2:
                lines.append(f"Area: {stats.area:.2f}")
            if state.label_enabled("RegionalDistance") and len(points) > 1:
                lines.append(f"Avg Distance: {stats.average_distance:.2f}")
            stat_y = sy + 15
            for line in lines:
                self._label_box(line, sx, stat_y, size=12, height=15.0, top_offset=12.0)
                self.renderer.text(line, sx, stat_y, rgba("#FFFFFF"), size=12)
                stat_y += 15

    def _draw_faction_table(self, state: EditorState) -> None:
        stats = {faction: row for faction, row in faction_statistics(state.model).items() if row.systems > 0}
        padding = 15.0
        box_width = 350.0
        row_height = 22.0
        header_height = 40.0
        rows = faction_table_rows(stats)
        box_height = header_height + row_height * len(rows) + padding * 2 + 10
        self.renderer.rect(padding, padding, box_width, box_height, fill=(0, 0, 0, 0.8), stroke=rgba("#555555"), width=1.0)
        self.renderer.text("Faction Areas", padding + box_width / 2, padding + 25, rgba("#FFFFFF"), size=14, bold=True)
        label_width = 120.0
        column_width = (box_width - label_width - padding * 2) / max(1, len(stats))
        y = padding + header_height + 15
        self.renderer.text("Statistic", padding + 15, y, rgba("#FFFFFF"), size=13, align="left")
        for index, faction in enumerate(stats):
            x = padding + label_width + column_width * index + column_width / 2
            self.renderer.text(faction, x, y, rgba(faction_color(faction)), size=13)
        y += row_height
        for row_index, (label, values) in enumerate(rows):
            row_y = y + row_height * row_index
            self.renderer.text(label, padding + 15, row_y, rgba("#FFFFFF"), size=13, align="left")
            for index, value in enumerate(values):
                x = padding + label_width + column_width * index + column_width / 2
                self.renderer.text(value, x, row_y, rgba("#FFFFFF"), size=13)

    def _draw_heatmap_legend(self, state: EditorState) -> None:
        legend_width = 360.0
        legend_height = 80.0
        bar_height = 20.0
        padding = 15.0
        legend_x = state.viewport.width - legend_width - padding
        legend_y = padding
        self.renderer.rect(legend_x, legend_y, legend_width, legend_height, fill=(0, 0, 0, 0.9), stroke=(255, 255, 255, 0.9), width=2.0)
        self.renderer.text(LEGEND_TITLE, legend_x + legend_width / 2, legend_y + 18, rgba("#FFFFFF"), size=14, bold=True)
        self.renderer.text(LEGEND_SUBTITLE, legend_x + legend_width / 2, legend_y + 35, rgba("#FFFFFF"), size=11)
        bar_width = legend_width - 30
        bar_y = legend_y + 45
        steps = 60
        step_width = bar_width / steps
        for step in range(steps):
            color = ramp_color(step / steps)
            self.renderer.rect(legend_x + 15 + step * step_width, bar_y, step_width + 0.5, bar_height, fill=rgba(color))
        self.renderer.rect(legend_x + 15, bar_y, bar_width, bar_height, stroke=(255, 255, 255, 0.9), width=1.0)
        entries = legend_entries()
        for index, (label, position, _) in enumerate(entries):
            marker_x = legend_x + 15 + position * bar_width
            self.renderer.line((marker_x, bar_y - 2), (marker_x, bar_y + bar_height + 2), rgba("#FFFFFF"), 1.0)
            label_x = legend_x + 15 + index * (bar_width / (len(entries) - 1))
            self.renderer.text(label, label_x, bar_y + bar_height + 15, rgba("#FFFFFF"), size=10)


def _format_grid_value(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _format_richness(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def system_stats_text(state: EditorState, system: System, emphasized: bool) -> str:
    """The ``{faction} P:n S:n SB:Tn`` line under a system, honoring the label filters."""
    parts: list[str] = []
    if system.faction and (state.label_enabled("FactionLabel") or emphasized):
        parts.append(system.faction)
    if system.planets and (state.label_enabled("PlanetCount") or emphasized):
        parts.append(f"P:{len(system.planets)}")
    if system.stars and (state.label_enabled("StarCount") or emphasized):
        parts.append(f"S:{len(system.stars)}")
    if system.starbase_tier > 0 and (state.label_enabled("StarbaseTier") or emphasized):
        parts.append(f"SB:T{system.starbase_tier}")
    return " ".join(parts)


def faction_table_rows(stats: dict[str, Any]) -> list[tuple[str, list[str]]]:
    factions = list(stats.values())
    return [
        ("Systems", [str(row.systems) for row in factions]),
        ("CORE Systems", [str(row.core_systems) for row in factions]),
        ("Planets", [str(row.planets) for row in factions]),
        ("Stars", [str(row.stars) for row in factions]),
        ("Resources", [str(row.resources) for row in factions]),
        ("Territory", [f"{row.territory:.0f} sq" for row in factions]),
        ("Planets/System", [f"{row.planets_per_system:.1f}" for row in factions]),
        ("Resources/Planet", [f"{row.resources_per_planet:.1f}" for row in factions]),
    ]


def region_blob_cell_size(scale: float, grid_size: float = GALAXY_GRID_SPACING) -> float:
    base = grid_size / 2
    if scale < 2:
        return base * 2
    if scale < 5:
        return base
    return base / 2


def region_blob_cells(
    state: EditorState,
    region_points: dict[str, tuple[Region, list[System]]],
    grid_size: float = GALAXY_GRID_SPACING,
) -> list[tuple[Region, Point, float, float, float]]:
    """Assign grid cells near region members to the nearest region.

    Returns ``(region, cell_center, cell_size, distance, max_distance)`` for every
    owned cell. A cell belongs to the region whose closest member is nearest,
    provided that member lies within the influence radius; on equal distances
    the region listed first wins. Each member only visits the cells within its
    own radius, so the cost follows the member count rather than the viewport.
    """
    cell_size = region_blob_cell_size(state.viewport.scale, grid_size)
    max_distance = grid_size * REGION_BLOB_INFLUENCE_CELLS
    reach = math.ceil(max_distance / cell_size)
    min_x, min_y, max_x, max_y = state.viewport.visible_map_bounds()
    bounds = (
        math.floor(min_x / cell_size) - 2,
        math.floor(min_y / cell_size) - 2,
        math.ceil(max_x / cell_size) + 2,
        math.ceil(max_y / cell_size) + 2,
    )

    regions: list[Region] = []
    # cell -> (distance, region order)
    best: dict[tuple[int, int], tuple[float, int]] = {}
    for region, members in region_points.values():
        order = len(regions)
        regions.append(region)
        seen: set[Point] = set()
        for member in members:
            if member.coordinates is None or member.coordinates in seen:
                continue
            seen.add(member.coordinates)
            px, py = member.coordinates
            gx = math.floor(px / cell_size)
            gy = math.floor(py / cell_size)
            for cx in range(max(bounds[0], gx - reach), min(bounds[2], gx + reach) + 1):
                dx = cx * cell_size - px
                if abs(dx) > max_distance:
                    continue
                for cy in range(max(bounds[1], gy - reach), min(bounds[3], gy + reach) + 1):
                    distance = math.hypot(dx, cy * cell_size - py)
                    if distance > max_distance:
                        continue
                    current = best.get((cx, cy))
                    if current is None or (distance, order) < current:
                        best[(cx, cy)] = (distance, order)

    return [
        (regions[order], (cx * cell_size, cy * cell_size), cell_size, distance, max_distance)
        for (cx, cy), (distance, order) in sorted(best.items())
    ]
