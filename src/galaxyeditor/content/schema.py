from __future__ import annotations

import math
from typing import Any

from galaxyeditor.editor.model import MAX_STARBASE_TIER, MAX_STARS_PER_SYSTEM


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_string(value: Any, *, field_name: str, allow_empty: bool = True) -> None:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    if not allow_empty and not value:
        raise ValueError(f"{field_name} must be a non-empty string")


def _require_list(value: Any, *, field_name: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list")
    return value


def _validate_star(star: Any, *, field_name: str) -> None:
    if not isinstance(star, dict):
        raise ValueError(f"{field_name} must be an object")
    if "name" in star:
        _require_string(star["name"], field_name=f"{field_name}.name")
    if "type" in star and (not isinstance(star["type"], int) or isinstance(star["type"], bool)):
        raise ValueError(f"{field_name}.type must be an integer")
    if "scale" in star and (not _is_number(star["scale"]) or star["scale"] <= 0):
        raise ValueError(f"{field_name}.scale must be a number > 0")


def _validate_resource(resource: Any, *, field_name: str) -> None:
    if not isinstance(resource, dict):
        raise ValueError(f"{field_name} must be an object")
    _require_string(resource.get("name"), field_name=f"{field_name}.name", allow_empty=False)
    richness = resource.get("richness", 0)
    if not _is_number(richness) or richness < 0:
        raise ValueError(f"{field_name}.richness must be a number >= 0")


def _validate_planet(planet: Any, *, field_name: str) -> None:
    if not isinstance(planet, dict):
        raise ValueError(f"{field_name} must be an object")
    if "name" in planet:
        _require_string(planet["name"], field_name=f"{field_name}.name")
    if "type" in planet and (not isinstance(planet["type"], int) or isinstance(planet["type"], bool)):
        raise ValueError(f"{field_name}.type must be an integer")
    for numeric in ("orbit", "angle", "scale"):
        if numeric in planet and not _is_number(planet[numeric]):
            raise ValueError(f"{field_name}.{numeric} must be a number")
    if planet.get("orbit", 0) < 0:
        raise ValueError(f"{field_name}.orbit must be >= 0")
    if planet.get("scale", 1) <= 0:
        raise ValueError(f"{field_name}.scale must be > 0")
    resources = _require_list(planet.get("resources", []), field_name=f"{field_name}.resources")
    names: set[str] = set()
    for index, resource in enumerate(resources):
        _validate_resource(resource, field_name=f"{field_name}.resources[{index}]")
        if resource["name"] in names:
            raise ValueError(f"{field_name}.resources[{index}] duplicate resource name: {resource['name']}")
        names.add(resource["name"])


def _validate_system(system: Any, *, field_name: str) -> None:
    if not isinstance(system, dict):
        raise ValueError(f"{field_name} must be an object")
    _require_string(system.get("key"), field_name=f"{field_name}.key", allow_empty=False)
    if "name" in system:
        _require_string(system["name"], field_name=f"{field_name}.name")
    for flag in ("isCore", "isKing", "isLocked"):
        if flag in system and not isinstance(system[flag], bool):
            raise ValueError(f"{field_name}.{flag} must be a boolean")
    faction = system.get("faction")
    if faction is not None and not isinstance(faction, str):
        raise ValueError(f"{field_name}.faction must be a string or null")
    region_id = system.get("regionId")
    if region_id is not None and not isinstance(region_id, str):
        raise ValueError(f"{field_name}.regionId must be a string or null")

    starbase = system.get("starbase")
    if starbase is not None:
        if not isinstance(starbase, dict):
            raise ValueError(f"{field_name}.starbase must be an object")
        tier = starbase.get("tier", 0)
        if not isinstance(tier, int) or isinstance(tier, bool) or not 0 <= tier <= MAX_STARBASE_TIER:
            raise ValueError(f"{field_name}.starbase.tier must be an integer within [0, {MAX_STARBASE_TIER}]")

    stars = _require_list(system.get("stars", []), field_name=f"{field_name}.stars")
    if len(stars) > MAX_STARS_PER_SYSTEM:
        raise ValueError(f"{field_name}.stars must hold at most {MAX_STARS_PER_SYSTEM} entries")
    for index, star in enumerate(stars):
        _validate_star(star, field_name=f"{field_name}.stars[{index}]")

    planets = _require_list(system.get("planets", []), field_name=f"{field_name}.planets")
    for index, planet in enumerate(planets):
        _validate_planet(planet, field_name=f"{field_name}.planets[{index}]")

    links = _require_list(system.get("links", []), field_name=f"{field_name}.links")
    for index, link in enumerate(links):
        _require_string(link, field_name=f"{field_name}.links[{index}]", allow_empty=False)


def validate_region_definitions(regions: Any, *, field_name: str = "regionDefinitions") -> None:
    rows = _require_list(regions, field_name=field_name)
    seen: set[str] = set()
    for index, region in enumerate(rows):
        row_name = f"{field_name}[{index}]"
        if not isinstance(region, dict):
            raise ValueError(f"{row_name} must be an object")
        _require_string(region.get("id"), field_name=f"{row_name}.id", allow_empty=False)
        _require_string(region.get("name"), field_name=f"{row_name}.name")
        _require_string(region.get("color"), field_name=f"{row_name}.color", allow_empty=False)
        if region["id"] in seen:
            raise ValueError(f"{row_name}.id duplicate region id: {region['id']}")
        seen.add(region["id"])


def validate_map_payload(payload: Any) -> None:
    """Validate a canonical map document.

    Coordinates are not checked here: a system whose coordinates cannot be
    parsed still loads, it simply is not drawn or hit-tested.
    """
    if not isinstance(payload, dict):
        raise ValueError("map payload must be an object")
    title = payload.get("title")
    if title is not None and not isinstance(title, str):
        raise ValueError("title must be a string")
    systems = _require_list(payload.get("systems"), field_name="systems")
    seen: set[str] = set()
    for index, system in enumerate(systems):
        _validate_system(system, field_name=f"systems[{index}]")
        if system["key"] in seen:
            raise ValueError(f"systems[{index}].key duplicate system key: {system['key']}")
        seen.add(system["key"])
    validate_region_definitions(payload.get("regionDefinitions", []))
