import math
import time

import pytest

from galaxyeditor.content.io import load_map_json
from galaxyeditor.editor.model import MapModel, Region, System
from galaxyeditor.editor.render import (
    LAYER_ORDER,
    MapRenderer,
    RecordingRenderer,
    Renderer,
    hex_to_rgb,
    lighten,
    region_blob_cell_size,
    region_blob_cells,
    rgba,
    system_stats_text,
)
from galaxyeditor.editor.state import MODE_BOX_SELECTING, EditorState
from galaxyeditor.editor.viewport import ViewportTransform

SAMPLE_MAP = "content/examples/sample_galaxy.json"


def _draw(state: EditorState) -> RecordingRenderer:
    recorder = RecordingRenderer()
    MapRenderer(recorder).draw(state)
    return recorder


def _sample_state() -> EditorState:
    return EditorState(model=load_map_json(SAMPLE_MAP))


def test_layers_are_emitted_in_fixed_order() -> None:
    recorder = _draw(_sample_state())

    assert recorder.layers == list(LAYER_ORDER)
    assert recorder.frame_size == (800, 600)
    assert {layer for layer, _, _ in recorder.calls} <= set(LAYER_ORDER)


def test_system_labels_are_drawn_in_the_last_layer() -> None:
    recorder = _draw(_sample_state())

    labels = recorder.texts("labels")
    for index in range(1, 8):
        assert f"System-{index}" in labels
    assert recorder.texts("systems") == []
    assert "LOCKED" in labels
    assert labels.count("KING") == 2
    assert "Inner Reach" in labels
    assert "MUD P:1 S:1 SB:T2" in labels
    assert "Iron Ore (R3)" in labels


def test_grid_is_replaced_by_heatmap() -> None:
    state = _sample_state()
    plain = _draw(state)
    assert plain.ops_in("grid", "line")
    assert plain.ops_in("heatmap") == []

    state.show_heatmap = True
    heat = _draw(state)

    assert heat.ops_in("grid") == []
    assert heat.ops_in("heatmap", "rect")
    assert heat.ops_in("heatmap", "line")
    assert "Resource Abundance Heatmap" in heat.texts("labels")


def test_links_highlight_when_an_endpoint_is_selected() -> None:
    state = _sample_state()
    state.selected_keys = ["sys-000002"]

    lines = _draw(state).ops_in("links", "line")

    assert len(lines) == 6
    highlighted = [line for line in lines if line["color"] == (255, 255, 0, 1.0)]
    assert len(highlighted) == 2
    assert all(line["width"] == 2.0 for line in highlighted)


def test_dangling_link_is_drawn_as_red_dashed_stub() -> None:
    state = _sample_state()
    state.model.require_system("sys-000007").links.append("ghost")

    lines = _draw(state).ops_in("links", "line")

    stub = [line for line in lines if line["color"] == (255, 51, 51, 1.0)]
    assert len(stub) == 1
    assert stub[0]["start"] == (435.0, 320.0)
    assert stub[0]["end"] == (443.0, 312.0)
    assert stub[0]["dash"] is not None


def test_search_filters_systems_and_region_members() -> None:
    state = _sample_state()
    state.search_term = "outer"

    labels = _draw(state).texts("labels")

    assert {"System-4", "System-5", "System-6"} <= set(labels)
    assert "System-1" not in labels
    assert "Outer Drift" in labels
    assert "Inner Reach" not in labels


def test_lock_status_filter_moves_marker_into_name() -> None:
    state = _sample_state()
    state.set_label_filter("LockStatus", False)

    labels = _draw(state).texts("labels")

    assert "[L] System-4" in labels
    assert "LOCKED" not in labels


def test_region_polygons_and_blobs_follow_filters() -> None:
    state = _sample_state()
    recorder = _draw(state)
    assert len(recorder.ops_in("region_polygons", "polygon")) == 2
    assert recorder.ops_in("region_blobs") == []

    state.set_label_filter("RegionalBlob", True)
    state.set_label_filter("RegionalPolygon", False)
    recorder = _draw(state)
    assert recorder.ops_in("region_polygons") == []
    assert recorder.ops_in("region_blobs", "rect")

    state.show_regions = False
    recorder = _draw(state)
    assert recorder.ops_in("region_blobs") == []
    assert "Inner Reach" not in recorder.texts("labels")


def test_faction_table_is_drawn_with_faction_areas() -> None:
    state = _sample_state()
    state.show_faction_area = True

    labels = _draw(state).texts("labels")

    assert "Faction Areas" in labels
    assert {"MUD", "ONI", "UST"} <= set(labels)
    assert "Territory" in labels


def test_interaction_and_highlight_layers() -> None:
    state = _sample_state()
    state.mode = MODE_BOX_SELECTING
    state.box_start = (10.0, 20.0)
    state.box_end = (30.0, 5.0)
    state.selected_keys = ["sys-000002"]
    state.hovered_key = "sys-000003"

    recorder = _draw(state)

    [box] = recorder.ops_in("interaction", "rect")
    assert (box["x"], box["y"], box["w"], box["h"]) == (10.0, 5.0, 20.0, 15.0)
    rings = recorder.ops_in("highlights", "circle")
    assert sorted(ring["radius"] for ring in rings) == [12.0, 15.0]


def test_link_preview_follows_pointer_while_linking() -> None:
    state = _sample_state()
    state.mode = "linking"
    state.link_source_key = "sys-000001"
    state.pointer_pos = (50.0, 60.0)

    [preview] = _draw(state).ops_in("interaction", "line")

    assert preview["start"] == (400.0, 300.0)
    assert preview["end"] == (50.0, 60.0)


def test_system_stats_text_honors_filters() -> None:
    state = _sample_state()
    system = state.model.require_system("sys-000001")

    assert system_stats_text(state, system, False) == "MUD P:1 S:1 SB:T2"
    state.set_label_filter("FactionLabel", False)
    state.set_label_filter("StarbaseTier", False)
    assert system_stats_text(state, system, False) == "P:1 S:1"
    assert system_stats_text(state, system, True) == "MUD P:1 S:1 SB:T2"


def test_region_blob_cells_belong_to_nearest_region() -> None:
    state = EditorState(
        model=MapModel(
            [
                System(key="a", name="A", coordinates=(0.0, 0.0), region_id="r1"),
                System(key="b", name="B", coordinates=(6.0, 0.0), region_id="r2"),
            ],
            [Region("r1", "West", "#FF5733"), Region("r2", "East", "#33FF57")],
        ),
        viewport=ViewportTransform(scale=10.0),
    )
    members = {
        region.region_id: (region, state.model.region_members(region.region_id))
        for region in state.model.regions
    }

    cells = region_blob_cells(state, members)

    owner = {center: region.region_id for region, center, _, _, _ in cells}
    assert owner[(1.0, 0.0)] == "r1"
    assert owner[(5.0, 0.0)] == "r2"
    assert all(size == 0.25 and max_distance == 10.0 for _, _, size, _, max_distance in cells)
    assert all(distance <= max_distance for _, _, _, distance, max_distance in cells)


def test_region_blob_cell_size_tracks_zoom() -> None:
    assert region_blob_cell_size(1.0) == 1.0
    assert region_blob_cell_size(3.0) == 0.5
    assert region_blob_cell_size(8.0) == 0.25


def test_color_helpers() -> None:
    assert hex_to_rgb("#abc") == (170, 187, 204)
    assert rgba("#FF5733", 0.5) == (255, 87, 51, 0.5)
    assert lighten("#F0F0F0", 50) == (255, 255, 255, 1.0)
    with pytest.raises(ValueError, match="unsupported color"):
        hex_to_rgb("#12345")


def test_base_renderer_requires_backend() -> None:
    with pytest.raises(NotImplementedError):
        Renderer().circle((0.0, 0.0), 1.0)


def test_systems_without_coordinates_are_skipped_by_every_layer() -> None:
    state = _sample_state()
    state.model.add_system(
        System(key="lost", name="Lost", coordinates=None, region_id="region-1", links=["sys-000001"], is_core=True)
    )
    state.model.require_system("sys-000001").links.append("lost")
    state.model.require_system("sys-000002").links.append("ghost")
    state.selected_keys = ["lost", "sys-000002"]
    state.hovered_key = "lost"
    state.show_faction_area = True
    state.set_label_filter("RegionalBlob", True)

    recorder = _draw(state)

    assert recorder.layers == list(LAYER_ORDER)
    assert "Lost" not in recorder.texts()
    assert len(recorder.ops_in("highlights")) == 1


def test_pixel_ratio_scales_device_size_but_not_drawing_calls() -> None:
    logical = _draw(_sample_state())
    recorder = RecordingRenderer(pixel_ratio=2.0)
    MapRenderer(recorder).draw(_sample_state())

    assert recorder.frame_size == (800, 600)
    assert recorder.device_frame_size == (1600, 1200)
    assert logical.device_frame_size == (800, 600)
    assert recorder.calls == logical.calls
    assert recorder.to_logical(300.0, 50.0) == (150.0, 25.0)
    assert RecordingRenderer(pixel_ratio=1.5).device_size(101, 11) == (152, 17)
    with pytest.raises(ValueError, match="pixel_ratio"):
        RecordingRenderer(pixel_ratio=0.0).device_size(10, 10)


def test_region_blob_cells_match_nearest_member_rule() -> None:
    layout = [
        ("r1", [(0.0, 0.0)]),
        ("r2", [(4.0, 0.0)]),
        ("r3", [(0.0, 5.0), (1.0, 5.0)]),
    ]
    systems = [
        System(key=f"{region_id}-{index}", name=region_id, coordinates=point, region_id=region_id)
        for region_id, points in layout
        for index, point in enumerate(points)
    ]
    regions = [Region(region_id, region_id, "#FF5733") for region_id, _ in layout]
    state = EditorState(model=MapModel(systems, regions), viewport=ViewportTransform(scale=20.0))
    members = {
        region.region_id: (region, state.model.region_members(region.region_id))
        for region in state.model.regions
    }

    cells = region_blob_cells(state, members)

    size = region_blob_cell_size(20.0)
    min_x, min_y, max_x, max_y = state.viewport.visible_map_bounds()
    expected = {}
    for cx in range(math.floor(min_x / size) - 2, math.ceil(max_x / size) + 3):
        for cy in range(math.floor(min_y / size) - 2, math.ceil(max_y / size) + 3):
            center = (cx * size, cy * size)
            choice = None
            for region_id, points in layout:
                nearest = min(math.dist(center, point) for point in points)
                if nearest <= 10.0 and (choice is None or nearest < choice[1]):
                    choice = (region_id, nearest)
            if choice is not None:
                expected[center] = choice
    owner = {center: (region.region_id, distance) for region, center, _, distance, _ in cells}
    assert owner == expected
    # equidistant from r1 and r2: the first listed region keeps it
    assert owner[(2.0, 0.0)] == ("r1", 2.0)


def test_region_blobs_for_a_large_map_draw_in_bounded_time() -> None:
    systems = [
        System(
            key=f"s{index}",
            name=f"S{index}",
            coordinates=((index % 40) * 15.0 - 300.0, (index // 40) * 15.0 - 225.0),
            region_id=f"r{index % 10}",
        )
        for index in range(1200)
    ]
    regions = [Region(f"r{index}", f"Region {index}", "#33FF57") for index in range(10)]
    state = EditorState(
        model=MapModel(systems, regions),
        viewport=ViewportTransform(scale=1.0, offset_x=640.0, offset_y=400.0, width=1280, height=800),
    )
    state.set_label_filter("RegionalBlob", True)
    recorder = RecordingRenderer()

    started = time.perf_counter()
    MapRenderer(recorder).draw(state)
    elapsed = time.perf_counter() - started

    assert recorder.ops_in("region_blobs", "rect")
    assert elapsed < 10.0
