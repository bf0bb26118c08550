from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from galaxyeditor.content.catalog import GALAXY_GRID_SPACING, LABEL_FILTER_DEFAULTS, is_label_filter_key
from galaxyeditor.editor.model import MapModel, System
from galaxyeditor.editor.viewport import ViewportTransform

MODE_IDLE = "idle"
MODE_PANNING = "panning"
MODE_DRAGGING = "dragging"
MODE_BOX_SELECTING = "boxSelecting"
MODE_LINKING = "linking"
GESTURE_MODES = (MODE_IDLE, MODE_PANNING, MODE_DRAGGING, MODE_BOX_SELECTING, MODE_LINKING)


def snap_to_grid(map_x: float, map_y: float, spacing: float = GALAXY_GRID_SPACING) -> tuple[float, float]:
    """Round to the nearest grid intersection, halves rounding up."""
    return math.floor(map_x / spacing + 0.5) * spacing, math.floor(map_y / spacing + 0.5) * spacing


@dataclass
class EditorState:
    """Everything the editor mutates between frames, owned in one place."""

    model: MapModel = field(default_factory=MapModel)
    viewport: ViewportTransform = field(default_factory=ViewportTransform)
    selected_keys: list[str] = field(default_factory=list)
    hovered_key: str | None = None
    mode: str = MODE_IDLE
    link_source_key: str | None = None
    drag_key: str | None = None
    drag_offset: tuple[float, float] = (0.0, 0.0)
    drag_moved: bool = False
    pan_anchor: tuple[float, float] | None = None
    box_start: tuple[float, float] | None = None
    box_end: tuple[float, float] | None = None
    pointer_pos: tuple[float, float] | None = None
    clipboard: dict[str, Any] | None = None
    show_grid: bool = True
    show_system_labels: bool = True
    show_system_stats: bool = True
    show_faction_area: bool = False
    show_regions: bool = True
    show_heatmap: bool = False
    snap_to_grid: bool = True
    system_size_multiplier: float = 1.0
    search_term: str = ""
    label_filters: dict[str, bool] = field(default_factory=lambda: dict(LABEL_FILTER_DEFAULTS))

    def __post_init__(self) -> None:
        if self.mode not in GESTURE_MODES:
            raise ValueError(f"unsupported gesture mode: {self.mode}")
        if self.system_size_multiplier <= 0:
            raise ValueError(f"system_size_multiplier must be > 0: {self.system_size_multiplier}")

    def selected_systems(self) -> list[System]:
        systems: list[System] = []
        for key in self.selected_keys:
            system = self.model.get_system(key)
            if system is not None:
                systems.append(system)
        return systems

    def is_selected(self, key: str) -> bool:
        return key in self.selected_keys

    def select_only(self, key: str) -> None:
        self.selected_keys = [key]

    def add_to_selection(self, key: str) -> None:
        if key not in self.selected_keys:
            self.selected_keys.append(key)

    def toggle_selection(self, key: str) -> None:
        if key in self.selected_keys:
            self.selected_keys.remove(key)
        else:
            self.selected_keys.append(key)

    def clear_selection(self) -> None:
        self.selected_keys = []

    def set_selection(self, keys: list[str]) -> None:
        self.selected_keys = list(dict.fromkeys(key for key in keys if self.model.has_system(key)))

    def prune_selection(self) -> None:
        self.selected_keys = [key for key in self.selected_keys if self.model.has_system(key)]
        if self.hovered_key is not None and not self.model.has_system(self.hovered_key):
            self.hovered_key = None

    @property
    def is_linking(self) -> bool:
        return self.mode == MODE_LINKING

    def reset_transient(self) -> None:
        """Drop hover, drag, link, pan and box state, back to idle."""
        self.hovered_key = None
        self.mode = MODE_IDLE
        self.link_source_key = None
        self.drag_key = None
        self.drag_offset = (0.0, 0.0)
        self.drag_moved = False
        self.pan_anchor = None
        self.box_start = None
        self.box_end = None

    def snap_point(self, map_x: float, map_y: float) -> tuple[float, float]:
        if not self.snap_to_grid:
            return map_x, map_y
        return snap_to_grid(map_x, map_y)

    def label_enabled(self, key: str) -> bool:
        return self.label_filters.get(key, LABEL_FILTER_DEFAULTS.get(key, True))

    def set_label_filter(self, key: str, enabled: bool) -> None:
        self.label_filters[key] = enabled

    def is_resource_visible(self, resource_name: str) -> bool:
        """Resources are shown unless their name is explicitly filtered out."""
        if is_label_filter_key(resource_name):
            return False
        return self.label_filters.get(resource_name, True)
