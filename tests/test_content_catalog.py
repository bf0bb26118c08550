import json
from pathlib import Path

import pytest

from galaxyeditor.content.archetypes import (
    PlanetArchetypeTable,
    default_archetype_table,
    load_archetype_table_json,
)
from galaxyeditor.content.catalog import (
    PLANET_TYPES,
    REGION_COLORS,
    STAR_TYPES,
    default_planet_type_for_faction,
    faction_color,
    is_asteroid_belt,
    is_label_filter_key,
    planet_archetype,
    planet_type_name,
    region_color_for_index,
    star_type_name,
)


def test_planet_types_are_grouped_in_faction_blocks_of_eight() -> None:
    assert len(PLANET_TYPES) == 32
    assert planet_type_name(0) == "ONI Terrestrial Planet"
    assert planet_type_name(8) == "MUD Terrestrial Planet"
    assert planet_type_name(19) == "USTUR System Asteroid Belt"
    assert planet_type_name(99) == "Unknown Planet (99)"
    assert planet_archetype(9) == ("MUD", "Volcanic")
    assert planet_archetype(24) == (None, "Terrestrial")
    assert planet_archetype(-1) == (None, None)
    assert is_asteroid_belt(11) is True
    assert is_asteroid_belt(8) is False


def test_default_planet_type_follows_system_faction() -> None:
    assert default_planet_type_for_faction("ONI") == 0
    assert default_planet_type_for_faction("MUD") == 8
    assert default_planet_type_for_faction("UST") == 16
    assert default_planet_type_for_faction(None) == 0


def test_colors_and_names() -> None:
    assert faction_color("MUD") == "#FF5722"
    assert faction_color(None) == "#FFFFFF"
    assert faction_color("Pirates") == "#CCCCCC"
    assert region_color_for_index(len(REGION_COLORS)) == REGION_COLORS[0]
    assert star_type_name(2) == "Solar"
    assert star_type_name(len(STAR_TYPES)) == f"Unknown Star ({len(STAR_TYPES)})"
    assert is_label_filter_key("RegionalBlob") is True
    assert is_label_filter_key("Iron Ore") is False


def test_default_archetype_table_lists_faction_resources() -> None:
    table = default_archetype_table()

    assert table.schema_version == 1
    assert table.table_id == "planet_archetype_resources"
    assert set(table.entries) == {"MUD", "ONI", "USTUR"}
    terrestrial = table.resources_for("MUD", "Terrestrial")
    assert terrestrial[0].name == "Swiftvine"
    assert terrestrial[0].to_dict() == {"type": 9, "name": "Swiftvine", "richness": 2.0}
    assert table.resources_for(None, "Terrestrial") == ()
    assert table.resources_for("MUD", "Nebula") == ()
    names = table.resource_names()
    assert names == sorted(names)
    assert "Magmaroot" in names


def test_archetype_table_loads_from_custom_path(tmp_path: Path) -> None:
    path = tmp_path / "archetypes.json"
    path.write_text(
        json.dumps(
            {
                "schema_version": 1,
                "table_id": "custom",
                "factions": {"ONI": {"Dark": [{"name": "Void Salt", "richness": 1, "type": 200}]}},
            }
        ),
        encoding="utf-8",
    )

    table = load_archetype_table_json(path)

    assert table.table_id == "custom"
    assert [row.name for row in table.resources_for("ONI", "Dark")] == ["Void Salt"]


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"schema_version": 2, "table_id": "t", "factions": {}}, "unsupported archetype table schema_version"),
        ({"schema_version": 1, "table_id": "", "factions": {}}, "table_id"),
        ({"schema_version": 1, "table_id": "t", "factions": []}, "factions must be an object"),
        (
            {
                "schema_version": 1,
                "table_id": "t",
                "factions": {"MUD": {"Barren": [{"name": "A", "richness": 1, "type": 1}, {"name": "A", "richness": 1, "type": 2}]}},
            },
            "duplicate resource name in factions.MUD.Barren",
        ),
        (
            {"schema_version": 1, "table_id": "t", "factions": {"MUD": {"Barren": [{"name": "A", "richness": -1, "type": 1}]}}},
            r"factions.MUD.Barren\[0\].richness",
        ),
    ],
)
def test_invalid_archetype_tables_are_rejected(payload: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        PlanetArchetypeTable.from_payload(payload)
