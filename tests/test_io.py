import json
from pathlib import Path

import pytest

from galaxyeditor.content.io import (
    load_map_json,
    load_map_payload,
    map_hash,
    save_map_json,
    upgrade_map_payload,
)
from galaxyeditor.content.schema import validate_map_payload

SAMPLE_MAP = "content/examples/sample_galaxy.json"


def test_sample_map_loads_and_derives_kings() -> None:
    model = load_map_json(SAMPLE_MAP)

    assert model.title == "Sample Galaxy"
    assert len(model.systems) == 7
    assert [region.name for region in model.regions] == ["Inner Reach", "Outer Drift"]
    assert [system.key for system in model.systems if system.is_king] == ["sys-000001", "sys-000005"]
    assert model.dangling_links() == []


def test_save_then_load_round_trip_matches_map_hash(tmp_path: Path) -> None:
    model = load_map_json(SAMPLE_MAP)
    out_path = tmp_path / "maps" / "galaxy.json"

    save_map_json(out_path, model)
    loaded = load_map_json(out_path)

    assert map_hash(loaded) == map_hash(model)
    assert list(out_path.parent.glob("*.tmp")) == []


def test_canonical_json_stable_across_save_load_cycles(tmp_path: Path) -> None:
    first_path = tmp_path / "first.json"
    second_path = tmp_path / "second.json"

    save_map_json(first_path, load_map_json(SAMPLE_MAP))
    save_map_json(second_path, load_map_json(first_path))

    text = first_path.read_text(encoding="utf-8")
    assert text == second_path.read_text(encoding="utf-8")
    assert text.startswith('{\n  "regionDefinitions": [')
    assert list(json.loads(text)) == ["regionDefinitions", "systems", "title"]


def test_map_hash_tracks_content() -> None:
    model = load_map_json(SAMPLE_MAP)
    before = map_hash(model)

    model.require_system("sys-000002").name = "Renamed"

    assert map_hash(model) != before
    assert len(before) == 64


def test_legacy_payload_is_upgraded_without_touching_input() -> None:
    raw = {
        "mapData": [
            {
                "key": "sys-a",
                "name": "Old A",
                "coordinates": [1, 2],
                "closestFaction": "ONI",
                "star": {"name": "Old Star", "type": 4, "scale": 1.5},
                "links": [{"key": "sys-b"}],
                "planets": [
                    {
                        "name": "Old P",
                        "type": 3,
                        "location": 2.5,
                        "polarCoordinates": 90,
                        "resources": [{"name": "Iron Ore", "hardness": 4}],
                    }
                ],
            },
            {"name": "Keyless", "coordinates": [3, 4], "links": ["sys-a"]},
            {"key": "sys-b", "name": "Old B", "coordinates": [0, 0], "links": ["sys-a"]},
        ]
    }
    snapshot = json.loads(json.dumps(raw))

    payload = upgrade_map_payload(raw)

    assert raw == snapshot
    first = payload["systems"][0]
    assert first["faction"] == "ONI"
    assert first["stars"] == [{"name": "Old Star", "type": 4, "scale": 1.5}]
    assert first["links"] == ["sys-b"]
    assert first["isLocked"] is False
    planet = first["planets"][0]
    assert (planet["orbit"], planet["angle"]) == (2.5, 90)
    assert planet["resources"][0]["richness"] == 4
    assert payload["systems"][1]["key"] == "sys-import-0001"
    assert payload["regionDefinitions"] == []
    assert payload["title"] == "Galaxy Map"


def test_bare_system_list_loads() -> None:
    model = load_map_payload(
        [
            {"key": "a", "name": "A", "coordinates": [0, 0], "links": ["b"]},
            {"key": "b", "name": "B", "coordinates": [1, 0], "links": ["a"]},
        ]
    )

    assert [system.key for system in model.systems] == ["a", "b"]
    assert model.are_linked("a", "b")
    assert model.regions == []


def test_stale_king_flags_are_recomputed_on_load() -> None:
    model = load_map_payload(
        {
            "systems": [
                {"key": "a", "name": "A", "coordinates": [0, 0], "regionId": "r", "isKing": True, "links": []},
                {"key": "b", "name": "B", "coordinates": [1, 0], "regionId": "r", "links": ["c"]},
                {"key": "c", "name": "C", "coordinates": [2, 0], "links": ["b"], "isKing": True},
            ],
            "regionDefinitions": [{"id": "r", "name": "R", "color": "#FF5733"}],
        }
    )

    assert [system.key for system in model.systems if system.is_king] == ["b"]


def test_malformed_coordinates_load_but_are_not_drawable() -> None:
    model = load_map_payload([{"key": "a", "name": "A", "coordinates": ["x", None]}])

    assert model.require_system("a").coordinates is None


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"systems": {}}, r"systems must be a list"),
        ({"systems": [{"key": "a", "starbase": {"tier": 9}}]}, r"systems\[0\]\.starbase\.tier"),
        ({"systems": [{"key": "a", "isCore": "yes"}]}, r"systems\[0\]\.isCore must be a boolean"),
        ({"systems": [{"key": "a"}, {"key": "a"}]}, r"systems\[1\]\.key duplicate system key"),
        ({"systems": [{"key": "a", "stars": [{}, {}, {}, {}]}]}, r"systems\[0\]\.stars must hold at most 3"),
        ({"systems": [{"key": "a", "links": [""]}]}, r"systems\[0\]\.links\[0\]"),
        (
            {"systems": [{"key": "a", "planets": [{"resources": [{"name": "X"}, {"name": "X"}]}]}]},
            r"systems\[0\]\.planets\[0\]\.resources\[1\] duplicate resource name",
        ),
        (
            {"systems": [{"key": "a", "planets": [{"resources": [{"name": "X", "richness": -1}]}]}]},
            r"richness must be a number >= 0",
        ),
        (
            {"systems": [], "regionDefinitions": [{"id": "r", "name": "A", "color": "#FFF"}, {"id": "r", "name": "B", "color": "#000"}]},
            r"regionDefinitions\[1\]\.id duplicate region id",
        ),
    ],
)
def test_invalid_payloads_report_dotted_paths(payload: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        load_map_payload(payload)


def test_validate_rejects_non_object_payload() -> None:
    with pytest.raises(ValueError, match="map payload must be an object"):
        validate_map_payload([])
    with pytest.raises(ValueError, match="map payload must be an object or a list"):
        load_map_payload("systems")
