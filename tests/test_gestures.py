import random

import pytest

from galaxyeditor.editor.commands import EditorCommands
from galaxyeditor.editor.gestures import (
    BUTTON_LEFT,
    BUTTON_MIDDLE,
    BUTTON_RIGHT,
    GestureController,
    KeyEvent,
    PointerEvent,
)
from galaxyeditor.editor.model import MapModel, Region, System
from galaxyeditor.editor.state import (
    MODE_BOX_SELECTING,
    MODE_DRAGGING,
    MODE_IDLE,
    MODE_LINKING,
    MODE_PANNING,
    EditorState,
)
from galaxyeditor.editor.viewport import ViewportTransform


def _controller(*systems: System, regions: tuple[Region, ...] = ()) -> GestureController:
    # scale 10 around (400, 300): map (x, y) lands on screen (400 + 10x, 300 - 10y)
    state = EditorState(viewport=ViewportTransform(scale=10.0))
    commands = EditorCommands(state, rng=random.Random(5))
    commands.load_model(MapModel(list(systems), list(regions)))
    return GestureController(commands)


def _pair() -> GestureController:
    return _controller(
        System(key="a", name="Alpha", coordinates=(0.0, 0.0)),
        System(key="b", name="Beta", coordinates=(5.0, 0.0)),
    )


def _left(x: float, y: float, **modifiers: bool) -> PointerEvent:
    return PointerEvent(x, y, BUTTON_LEFT, **modifiers)


def _right(x: float, y: float) -> PointerEvent:
    return PointerEvent(x, y, BUTTON_RIGHT)


def test_right_click_on_empty_space_creates_snapped_system() -> None:
    controller = _controller()

    controller.pointer_down(_right(433.0, 288.0))

    [system] = controller.state.model.systems
    assert system.coordinates == (3.0, 1.0)
    assert controller.state.selected_keys == [system.key]
    assert controller.commands.history.descriptions()[-1] == "Created System System-1"


def test_drag_moves_live_and_commits_once_on_release() -> None:
    controller = _pair()
    alpha = controller.state.model.require_system("a")

    controller.pointer_down(_left(400.0, 300.0))
    assert controller.mode == MODE_IDLE
    controller.pointer_move(_left(420.0, 290.0))
    assert controller.mode == MODE_DRAGGING
    assert alpha.coordinates == (2.0, 1.0)
    controller.pointer_move(_left(430.0, 280.0))
    controller.pointer_up(_left(430.0, 280.0))

    assert alpha.coordinates == (3.0, 2.0)
    assert controller.mode == MODE_IDLE
    assert controller.commands.history.descriptions() == ["Import Map", "Moved System"]
    controller.commands.undo()
    assert controller.state.model.require_system("a").coordinates == (0.0, 0.0)


def test_click_without_movement_commits_nothing() -> None:
    controller = _pair()

    controller.pointer_down(_left(401.0, 301.0))
    controller.pointer_up(_left(401.0, 301.0))

    assert controller.state.selected_keys == ["a"]
    assert len(controller.commands.history) == 1
    assert controller.mode == MODE_IDLE


def test_drag_moves_whole_selection() -> None:
    controller = _pair()
    controller.pointer_down(_left(400.0, 300.0))
    controller.pointer_up(_left(400.0, 300.0))
    controller.pointer_down(_left(450.0, 300.0, shift=True))
    controller.pointer_up(_left(450.0, 300.0, shift=True))
    assert controller.state.selected_keys == ["a", "b"]

    controller.pointer_down(_left(450.0, 300.0))
    controller.pointer_move(_left(450.0, 270.0))
    controller.pointer_up(_left(450.0, 270.0))

    model = controller.state.model
    assert model.require_system("a").coordinates == (0.0, 3.0)
    assert model.require_system("b").coordinates == (5.0, 3.0)
    assert controller.commands.history.descriptions()[-1] == "Moved System"


def test_box_select_replaces_or_extends_selection() -> None:
    controller = _controller(
        System(key="a", name="Alpha", coordinates=(0.0, 0.0)),
        System(key="b", name="Beta", coordinates=(5.0, 0.0)),
        System(key="c", name="Gamma", coordinates=(0.0, 5.0)),
    )
    controller.state.selected_keys = ["c"]

    controller.pointer_down(_left(380.0, 320.0, ctrl=True))
    assert controller.mode == MODE_BOX_SELECTING
    assert controller.state.selected_keys == []
    controller.pointer_move(_left(460.0, 280.0, ctrl=True))
    assert controller.state.box_end == (460.0, 280.0)
    controller.pointer_up(_left(460.0, 280.0, ctrl=True))

    assert controller.state.selected_keys == ["a", "b"]
    assert controller.mode == MODE_IDLE
    assert controller.state.box_start is None

    controller.pointer_down(_left(390.0, 240.0, ctrl=True, shift=True))
    controller.pointer_up(_left(410.0, 260.0, ctrl=True, shift=True))
    assert controller.state.selected_keys == ["a", "b", "c"]
    assert len(controller.commands.history) == 1


def test_right_click_selected_system_starts_linking_then_left_click_links() -> None:
    controller = _pair()
    controller.pointer_down(_left(400.0, 300.0))
    controller.pointer_up(_left(400.0, 300.0))

    controller.pointer_down(_right(400.0, 300.0))
    assert controller.mode == MODE_LINKING
    assert controller.state.link_source_key == "a"
    controller.pointer_up(_right(400.0, 300.0))
    assert controller.mode == MODE_LINKING

    controller.pointer_down(_left(450.0, 300.0))

    assert controller.state.model.are_linked("a", "b")
    assert controller.mode == MODE_IDLE
    assert controller.state.link_source_key is None
    assert controller.commands.history.descriptions()[-1] == "Added Link: Alpha - Beta"


def test_linking_is_cancelled_by_right_click_or_escape() -> None:
    controller = _pair()
    controller.state.selected_keys = ["a"]

    controller.pointer_down(_right(400.0, 300.0))
    controller.pointer_down(_right(450.0, 300.0))
    assert controller.mode == MODE_IDLE

    controller.pointer_down(_right(400.0, 300.0))
    assert controller.key_down(KeyEvent("escape")) is True
    assert controller.mode == MODE_IDLE
    assert controller.state.selected_keys == ["a"]
    assert not controller.state.model.are_linked("a", "b")


def test_right_click_unselected_system_only_selects_it() -> None:
    controller = _pair()

    controller.pointer_down(_right(450.0, 300.0))

    assert controller.state.selected_keys == ["b"]
    assert controller.mode == MODE_IDLE


def test_locked_system_can_be_selected_but_not_dragged_or_linked() -> None:
    controller = _controller(
        System(key="a", name="Alpha", coordinates=(0.0, 0.0), is_locked=True),
        System(key="b", name="Beta", coordinates=(5.0, 0.0)),
    )

    controller.pointer_down(_left(400.0, 300.0))
    controller.pointer_move(_left(430.0, 300.0))
    controller.pointer_up(_left(430.0, 300.0))
    controller.pointer_down(_right(400.0, 300.0))

    assert controller.state.selected_keys == ["a"]
    assert controller.state.model.require_system("a").coordinates == (0.0, 0.0)
    assert controller.mode != MODE_LINKING
    assert len(controller.commands.history) == 1


def test_left_drag_on_empty_space_pans() -> None:
    controller = _pair()
    viewport = controller.state.viewport

    controller.pointer_down(_left(100.0, 100.0))
    assert controller.mode == MODE_PANNING
    controller.pointer_move(_left(130.0, 110.0))
    controller.pointer_up(_left(130.0, 110.0))

    assert (viewport.offset_x, viewport.offset_y) == (430.0, 310.0)
    assert controller.mode == MODE_IDLE

    controller.pointer_down(PointerEvent(450.0, 300.0, BUTTON_MIDDLE))
    assert controller.mode == MODE_PANNING


def test_hover_tracks_system_under_pointer_when_idle() -> None:
    controller = _pair()

    controller.pointer_move(_left(452.0, 303.0))
    assert controller.state.hovered_key == "b"
    controller.pointer_move(_left(200.0, 200.0))
    assert controller.state.hovered_key is None


def test_double_click_selects_whole_region() -> None:
    controller = _controller(
        System(key="a", name="Alpha", coordinates=(0.0, 0.0), region_id="r1"),
        System(key="b", name="Beta", coordinates=(5.0, 0.0), region_id="r1"),
        System(key="c", name="Gamma", coordinates=(0.0, 5.0)),
        regions=(Region(region_id="r1", name="Core", color="#FF5733"),),
    )

    assert controller.double_click(_left(400.0, 300.0)) is True
    assert controller.state.selected_keys == ["a", "b"]
    assert controller.double_click(_left(400.0, 250.0)) is False


def test_wheel_zooms_out_for_positive_delta() -> None:
    controller = _pair()

    controller.wheel((450.0, 300.0), 1.0)

    assert controller.state.viewport.scale == pytest.approx(9.0)
    assert controller.state.viewport.map_to_screen(5.0, 0.0) == pytest.approx((450.0, 300.0))


def test_keyboard_shortcuts() -> None:
    controller = _pair()
    state = controller.state
    state.selected_keys = ["b"]

    assert controller.key_down(KeyEvent("delete")) is True
    assert state.model.get_system("b") is None
    assert controller.key_down(KeyEvent("z", ctrl=True)) is True
    assert state.model.get_system("b") is not None
    assert controller.key_down(KeyEvent("z", ctrl=True, shift=True)) is True
    assert state.model.get_system("b") is None
    assert controller.key_down(KeyEvent("y", ctrl=True)) is True

    controller.key_down(KeyEvent("a", ctrl=True))
    assert state.selected_keys == ["a"]
    controller.key_down(KeyEvent("escape"))
    assert state.selected_keys == []

    before = state.viewport.screen_to_map(*state.viewport.center)
    assert controller.key_down(KeyEvent("+")) is True
    assert state.viewport.scale == pytest.approx(12.0)
    assert state.viewport.screen_to_map(*state.viewport.center) == pytest.approx(before)

    assert controller.key_down(KeyEvent("g")) is True
    assert state.show_grid is False
    assert controller.key_down(KeyEvent("h")) is True
    assert state.show_heatmap is True
    assert controller.key_down(KeyEvent("g", ctrl=True)) is False
    assert controller.key_down(KeyEvent("q")) is False


def test_copy_paste_lands_under_pointer() -> None:
    controller = _pair()
    controller.state.selected_keys = ["a"]
    controller.key_down(KeyEvent("c", ctrl=True))

    controller.pointer_move(_left(300.0, 200.0))
    controller.key_down(KeyEvent("v", ctrl=True))

    pasted = controller.state.model.systems[-1]
    assert pasted.name == "Alpha (Copy)"
    assert pasted.coordinates == (-10.0, 10.0)
