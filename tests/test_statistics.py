import pytest

from galaxyeditor.content.io import load_map_json
from galaxyeditor.editor.statistics import faction_statistics, region_statistics

SAMPLE_MAP = "content/examples/sample_galaxy.json"


def test_faction_statistics_for_sample_map() -> None:
    stats = faction_statistics(load_map_json(SAMPLE_MAP))

    assert list(stats) == ["MUD", "ONI", "UST"]
    mud = stats["MUD"]
    assert (mud.systems, mud.core_systems, mud.planets, mud.stars, mud.resources) == (2, 1, 2, 2, 3)
    assert mud.territory == 0.0
    assert mud.hull == ()
    assert mud.planets_per_system == pytest.approx(1.0)
    assert mud.resources_per_planet == pytest.approx(1.5)
    oni = stats["ONI"]
    assert (oni.systems, oni.stars, oni.resources) == (2, 3, 2)
    assert oni.resources_per_planet == pytest.approx(2.0)
    assert stats["UST"].to_dict()["faction"] == "UST"


def test_region_statistics_for_sample_map() -> None:
    model = load_map_json(SAMPLE_MAP)

    inner = region_statistics(model, "region-1")

    assert (inner.systems, inner.core_systems, inner.king_systems) == (3, 1, 1)
    assert inner.area == pytest.approx(5.5)
    assert inner.centroid == pytest.approx((4 / 3, 5 / 3))
    assert len(inner.hull) == 3
    assert inner.average_distance > 0


def test_region_statistics_for_empty_region() -> None:
    stats = region_statistics(load_map_json(SAMPLE_MAP), "region-404")

    assert stats.systems == 0
    assert stats.area == 0.0
    assert stats.centroid is None
    assert stats.to_dict()["centroid"] is None
