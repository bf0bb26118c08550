from __future__ import annotations

import logging
from dataclasses import dataclass

from galaxyeditor.editor.commands import EditorCommands
from galaxyeditor.editor.hit_testing import find_system_at, systems_in_screen_rect
from galaxyeditor.editor.model import System
from galaxyeditor.editor.state import (
    MODE_BOX_SELECTING,
    MODE_DRAGGING,
    MODE_IDLE,
    MODE_LINKING,
    MODE_PANNING,
    EditorState,
)

logger = logging.getLogger(__name__)

BUTTON_LEFT = 1
BUTTON_MIDDLE = 2
BUTTON_RIGHT = 3

KEYBOARD_ZOOM_IN = 1.2
KEYBOARD_ZOOM_IN_FAST = 2.0
KEYBOARD_ZOOM_OUT = 0.8
KEYBOARD_ZOOM_OUT_FAST = 0.5


@dataclass(frozen=True)
class PointerEvent:
    x: float
    y: float
    button: int = BUTTON_LEFT
    shift: bool = False
    ctrl: bool = False
    alt: bool = False

    @property
    def pos(self) -> tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class KeyEvent:
    """A key press; ``key`` is the lower-case character or a name like ``escape``."""

    key: str
    shift: bool = False
    ctrl: bool = False
    alt: bool = False


class GestureController:
    """Pointer and keyboard state machine: idle, panning, dragging, boxSelecting, linking.

    A drag is armed on pointer down and becomes ``dragging`` on the first move;
    pointer up commits one "Moved System" entry only when something moved.
    Linking survives pointer up and ends on the next left click, right click or
    Escape.
    """

    def __init__(self, commands: EditorCommands) -> None:
        self.commands = commands
        self._drag_armed = False

    @property
    def state(self) -> EditorState:
        return self.commands.state

    @property
    def mode(self) -> str:
        return self.state.mode

    def _system_at(self, pos: tuple[float, float]) -> System | None:
        return find_system_at(self.state.model.systems, self.state.viewport, pos)

    def _start_pan(self, pos: tuple[float, float]) -> None:
        self.state.mode = MODE_PANNING
        self.state.pan_anchor = pos

    def _end_linking(self) -> None:
        self.state.mode = MODE_IDLE
        self.state.link_source_key = None

    def pointer_down(self, event: PointerEvent) -> None:
        state = self.state
        state.pointer_pos = event.pos
        if event.button == BUTTON_MIDDLE:
            self._start_pan(event.pos)
            return
        if event.button == BUTTON_RIGHT:
            self._right_down(event)
            return
        if event.button == BUTTON_LEFT:
            self._left_down(event)

    def _right_down(self, event: PointerEvent) -> None:
        state = self.state
        if state.is_linking:
            self._end_linking()
            return
        system = self._system_at(event.pos)
        if system is None:
            map_x, map_y = state.viewport.screen_to_map(*event.pos)
            self.commands.create_system(map_x, map_y)
            return
        if state.is_selected(system.key):
            if len(state.selected_keys) == 1 and not system.is_locked:
                state.mode = MODE_LINKING
                state.link_source_key = system.key
                logger.debug("linking started source=%s", system.key)
            return
        state.select_only(system.key)

    def _left_down(self, event: PointerEvent) -> None:
        state = self.state
        system = self._system_at(event.pos)
        if system is None:
            if state.is_linking:
                return
            if not event.shift:
                state.clear_selection()
            if event.ctrl:
                state.mode = MODE_BOX_SELECTING
                state.box_start = event.pos
                state.box_end = event.pos
            else:
                self._start_pan(event.pos)
            return

        if system.is_locked:
            if event.shift:
                state.toggle_selection(system.key)
            else:
                state.select_only(system.key)
            return

        if state.is_linking:
            source_key = state.link_source_key
            if source_key is not None and source_key != system.key and state.model.has_system(source_key):
                self.commands.toggle_link(source_key, system.key)
            self._end_linking()
            return

        if event.shift:
            state.toggle_selection(system.key)
            return

        if not state.is_selected(system.key):
            state.select_only(system.key)
        if any(selected.is_locked for selected in state.selected_systems()):
            return
        if system.coordinates is None:
            return
        screen_x, screen_y = state.viewport.map_to_screen(*system.coordinates)
        state.drag_key = system.key
        state.drag_offset = (event.x - screen_x, event.y - screen_y)
        state.drag_moved = False
        self._drag_armed = True

    def pointer_move(self, event: PointerEvent) -> None:
        state = self.state
        state.pointer_pos = event.pos
        if state.mode == MODE_PANNING and state.pan_anchor is not None:
            state.viewport.pan_by(event.x - state.pan_anchor[0], event.y - state.pan_anchor[1])
            state.pan_anchor = event.pos
            return
        if self._drag_armed and state.drag_key is not None:
            state.mode = MODE_DRAGGING
            self._drag_to(event)
            return
        if state.mode == MODE_BOX_SELECTING:
            state.box_end = event.pos
            return
        if state.mode == MODE_IDLE:
            hovered = self._system_at(event.pos)
            state.hovered_key = hovered.key if hovered is not None else None

    def _drag_to(self, event: PointerEvent) -> None:
        state = self.state
        dragged = state.model.get_system(state.drag_key) if state.drag_key is not None else None
        if dragged is None or dragged.coordinates is None:
            return
        map_x, map_y = state.viewport.screen_to_map(event.x - state.drag_offset[0], event.y - state.drag_offset[1])
        map_x, map_y = state.snap_point(map_x, map_y)
        dx = map_x - dragged.coordinates[0]
        dy = map_y - dragged.coordinates[1]
        if dx == 0 and dy == 0:
            return
        keys = list(state.selected_keys) if state.is_selected(dragged.key) else [dragged.key]
        if self.commands.translate_systems(keys, dx, dy):
            state.drag_moved = True

    def pointer_up(self, event: PointerEvent) -> None:
        state = self.state
        state.pointer_pos = event.pos
        if state.mode == MODE_BOX_SELECTING and state.box_start is not None:
            inside = systems_in_screen_rect(state.model.systems, state.viewport, state.box_start, event.pos)
            if inside:
                if event.shift:
                    for system in inside:
                        state.add_to_selection(system.key)
                else:
                    state.set_selection([system.key for system in inside])
            state.box_start = None
            state.box_end = None
            state.mode = MODE_IDLE
            return
        if self._drag_armed:
            if state.drag_moved:
                self.commands.commit_move()
            self._drag_armed = False
            state.drag_key = None
            state.drag_moved = False
            state.drag_offset = (0.0, 0.0)
            state.mode = MODE_IDLE
            return
        if state.mode == MODE_PANNING:
            state.pan_anchor = None
            state.mode = MODE_IDLE

    def wheel(self, pos: tuple[float, float], delta: float) -> None:
        """Zoom at the cursor; positive ``delta`` scrolls away from the user and zooms out."""
        self.state.viewport.wheel_zoom(pos, delta)

    def double_click(self, event: PointerEvent) -> bool:
        system = self._system_at(event.pos)
        if system is None:
            return False
        return self.commands.select_region_of(system.key)

    def key_down(self, event: KeyEvent) -> bool:
        """Apply a keyboard shortcut; returns True when the key was handled."""
        key = event.key.lower() if len(event.key) > 1 else event.key
        state = self.state
        commands = self.commands
        viewport = state.viewport

        if key == "escape":
            if state.is_linking:
                self._end_linking()
            else:
                state.clear_selection()
            return True
        if key in ("delete", "backspace"):
            commands.delete_selected()
            return True
        if event.ctrl:
            lowered = key.lower()
            if lowered == "z" and event.shift:
                commands.redo()
                return True
            if lowered == "z":
                commands.undo()
                return True
            if lowered == "y":
                commands.redo()
                return True
            if lowered == "c":
                commands.copy_selected()
                return True
            if lowered == "v":
                pointer = state.pointer_pos if state.pointer_pos is not None else viewport.center
                commands.paste(*viewport.screen_to_map(*pointer))
                return True
            if lowered == "a":
                commands.select_all()
                return True
            if key == "0":
                commands.center_on_all()
                return True
        if key in ("+", "="):
            viewport.zoom_at_center(KEYBOARD_ZOOM_IN_FAST if event.ctrl else KEYBOARD_ZOOM_IN)
            return True
        if key in ("-", "_"):
            viewport.zoom_at_center(KEYBOARD_ZOOM_OUT_FAST if event.ctrl else KEYBOARD_ZOOM_OUT)
            return True
        if event.ctrl or event.alt:
            return False
        if key == "g":
            state.show_grid = not state.show_grid
            return True
        if key == "h":
            state.show_heatmap = not state.show_heatmap
            return True
        if key == "f":
            state.show_faction_area = not state.show_faction_area
            return True
        if key == "r":
            state.show_regions = not state.show_regions
            return True
        return False
