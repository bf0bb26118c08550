import pytest

from galaxyeditor.editor.model import MapModel, System
from galaxyeditor.editor.state import MODE_DRAGGING, MODE_IDLE, EditorState, snap_to_grid


def _state() -> EditorState:
    return EditorState(
        model=MapModel(
            [
                System(key="a", name="Alpha", coordinates=(0.0, 0.0)),
                System(key="b", name="Beta", coordinates=(2.0, 2.0)),
            ]
        )
    )


def test_snap_to_grid_rounds_halves_up() -> None:
    assert snap_to_grid(0.5, -0.5) == (1.0, 0.0)
    assert snap_to_grid(2.4, -2.6) == (2.0, -3.0)
    assert snap_to_grid(7.5, 12.4, 5.0) == (10.0, 10.0)


def test_snap_point_honors_toggle() -> None:
    state = _state()
    assert state.snap_point(1.4, 1.6) == (1.0, 2.0)

    state.snap_to_grid = False
    assert state.snap_point(1.4, 1.6) == (1.4, 1.6)


def test_selection_helpers() -> None:
    state = _state()

    state.set_selection(["b", "ghost", "b", "a"])
    assert state.selected_keys == ["b", "a"]
    state.toggle_selection("b")
    assert state.selected_keys == ["a"]
    state.add_to_selection("a")
    state.add_to_selection("b")
    assert [system.key for system in state.selected_systems()] == ["a", "b"]

    state.model.remove_systems(["b"])
    state.hovered_key = "b"
    state.prune_selection()
    assert state.selected_keys == ["a"]
    assert state.hovered_key is None


def test_reset_transient_returns_to_idle() -> None:
    state = _state()
    state.mode = MODE_DRAGGING
    state.drag_key = "a"
    state.drag_moved = True
    state.box_start = (1.0, 1.0)
    state.selected_keys = ["a"]

    state.reset_transient()

    assert state.mode == MODE_IDLE
    assert state.drag_key is None
    assert state.drag_moved is False
    assert state.box_start is None
    assert state.selected_keys == ["a"]


def test_label_filters_and_resource_visibility() -> None:
    state = _state()

    assert state.label_enabled("SystemName") is True
    assert state.label_enabled("RegionalBlob") is False
    assert state.is_resource_visible("Iron Ore") is True
    assert state.is_resource_visible("SystemName") is False

    state.set_label_filter("Iron Ore", False)
    assert state.is_resource_visible("Iron Ore") is False
    assert state.label_enabled("Iron Ore") is False


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"mode": "spinning"}, "unsupported gesture mode"),
        ({"system_size_multiplier": 0.0}, "system_size_multiplier"),
    ],
)
def test_invalid_state_is_rejected(kwargs: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        EditorState(**kwargs)
