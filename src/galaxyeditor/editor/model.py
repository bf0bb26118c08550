from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from galaxyeditor.content.catalog import DEFAULT_STAR_TYPE, NEUTRAL_FACTION

logger = logging.getLogger(__name__)

MAX_STARS_PER_SYSTEM = 3
MAX_STARBASE_TIER = 5
SYSTEM_KEY_PREFIX = "sys-"
REGION_ID_PREFIX = "region-"
DEFAULT_MAP_TITLE = "Galaxy Map"
SYSTEM_NAME_PATTERN = re.compile(r"System-(\d+)")


def parse_coordinates(value: Any) -> tuple[float, float] | None:
    """Return finite (x, y) or None for anything that cannot be drawn."""
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    parsed: list[float] = []
    for component in value:
        if isinstance(component, bool) or not isinstance(component, (int, float)):
            return None
        if not math.isfinite(component):
            return None
        parsed.append(float(component))
    return parsed[0], parsed[1]


@dataclass
class Star:
    name: str
    star_type: int = DEFAULT_STAR_TYPE
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError(f"star.scale must be > 0: {self.scale}")

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.star_type, "scale": self.scale}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Star":
        return cls(
            name=str(data.get("name", "")),
            star_type=int(data.get("type", DEFAULT_STAR_TYPE)),
            scale=float(data.get("scale", 1.0)),
        )


@dataclass
class Resource:
    name: str
    richness: float
    resource_type: int | None = None

    def __post_init__(self) -> None:
        if self.richness < 0:
            raise ValueError(f"resource.richness must be >= 0: {self.richness}")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "richness": self.richness}
        if self.resource_type is not None:
            payload["type"] = self.resource_type
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Resource":
        raw_type = data.get("type")
        return cls(
            name=str(data["name"]),
            richness=float(data.get("richness", 0.0)),
            resource_type=int(raw_type) if raw_type is not None else None,
        )


@dataclass
class Planet:
    name: str
    planet_type: int
    orbit: float = 1.0
    angle: float = 0.0
    scale: float = 1.0
    resources: list[Resource] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.orbit < 0:
            raise ValueError(f"planet.orbit must be >= 0: {self.orbit}")
        if self.scale <= 0:
            raise ValueError(f"planet.scale must be > 0: {self.scale}")
        self.angle = self.angle % 360.0
        names = [resource.name for resource in self.resources]
        if len(names) != len(set(names)):
            raise ValueError(f"planet {self.name} has duplicate resource names")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.planet_type,
            "orbit": self.orbit,
            "angle": self.angle,
            "scale": self.scale,
            "resources": [resource.to_dict() for resource in self.resources],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Planet":
        return cls(
            name=str(data.get("name", "")),
            planet_type=int(data.get("type", 0)),
            orbit=float(data.get("orbit", 1.0)),
            angle=float(data.get("angle", 0.0)),
            scale=float(data.get("scale", 1.0)),
            resources=[Resource.from_dict(row) for row in data.get("resources", [])],
        )


@dataclass
class Region:
    region_id: str
    name: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.region_id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Region":
        return cls(region_id=str(data["id"]), name=str(data["name"]), color=str(data["color"]))


@dataclass
class System:
    """A node of the map graph. ``links`` holds neighbour keys, mirrored on both ends."""

    key: str
    name: str
    coordinates: tuple[float, float] | None
    faction: str | None = None
    controlling_faction: str = NEUTRAL_FACTION
    is_core: bool = False
    is_king: bool = False
    is_locked: bool = False
    region_id: str | None = None
    starbase_tier: int = 0
    stars: list[Star] = field(default_factory=list)
    planets: list[Planet] = field(default_factory=list)
    links: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not 0 <= self.starbase_tier <= MAX_STARBASE_TIER:
            raise ValueError(f"starbase.tier must be within [0, {MAX_STARBASE_TIER}]: {self.starbase_tier}")
        if len(self.stars) > MAX_STARS_PER_SYSTEM:
            raise ValueError(f"system {self.key} has more than {MAX_STARS_PER_SYSTEM} stars")
        self.links = list(dict.fromkeys(link for link in self.links if link != self.key))

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None

    def is_linked_to(self, key: str) -> bool:
        return key in self.links

    def add_link(self, key: str) -> None:
        if key != self.key and key not in self.links:
            self.links.append(key)

    def remove_link(self, key: str) -> None:
        if key in self.links:
            self.links.remove(key)

    def resource_count(self) -> int:
        return sum(len(planet.resources) for planet in self.planets)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "coordinates": list(self.coordinates) if self.coordinates is not None else None,
            "faction": self.faction,
            "controllingFaction": self.controlling_faction,
            "isCore": self.is_core,
            "isKing": self.is_king,
            "isLocked": self.is_locked,
            "starbase": {"tier": self.starbase_tier},
            "stars": [star.to_dict() for star in self.stars],
            "planets": [planet.to_dict() for planet in self.planets],
            "links": list(self.links),
        }
        if self.region_id is not None:
            payload["regionId"] = self.region_id
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "System":
        coordinates = parse_coordinates(data.get("coordinates"))
        if coordinates is None and data.get("coordinates") is not None:
            logger.warning("system %s has malformed coordinates; it will not be drawn", data.get("key"))
        starbase = data.get("starbase") or {}
        return cls(
            key=str(data["key"]),
            name=str(data.get("name", "")),
            coordinates=coordinates,
            faction=data.get("faction"),
            controlling_faction=str(data.get("controllingFaction") or NEUTRAL_FACTION),
            is_core=bool(data.get("isCore", False)),
            is_king=bool(data.get("isKing", False)),
            is_locked=bool(data.get("isLocked", False)),
            region_id=data.get("regionId"),
            starbase_tier=int(starbase.get("tier", 0)),
            stars=[Star.from_dict(row) for row in data.get("stars", [])],
            planets=[Planet.from_dict(row) for row in data.get("planets", [])],
            links=[str(link) for link in data.get("links", [])],
        )


def designate_king(systems: Iterable[System]) -> System | None:
    """Mark the unlocked system with strictly the most links as KING.

    Unlocked systems lose any previous KING flag; locked systems keep theirs.
    Ties keep the first candidate seen. Returns the new KING, if any.
    """
    candidates = list(systems)
    king: System | None = None
    max_links = 0
    for system in candidates:
        if not system.is_locked and len(system.links) > max_links:
            max_links = len(system.links)
            king = system
    for system in candidates:
        if not system.is_locked:
            system.is_king = False
    if king is not None:
        king.is_king = True
    return king


def system_matches_search(system: System, term: str, matching_region_ids: set[str] | None = None) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    if needle in system.name.lower() or needle in system.key.lower():
        return True
    if system.faction and needle in system.faction.lower():
        return True
    return bool(matching_region_ids) and system.region_id in matching_region_ids


class MapModel:
    """Authoritative in-memory galaxy graph: systems in draw order plus region definitions."""

    def __init__(
        self,
        systems: Iterable[System] = (),
        regions: Iterable[Region] = (),
        *,
        title: str = DEFAULT_MAP_TITLE,
    ) -> None:
        self.title = title
        self.systems: list[System] = []
        self.regions: list[Region] = []
        self._by_key: dict[str, System] = {}
        self._issued_keys: set[str] = set()
        self._key_sequence = 0
        self._region_sequence = 0
        self.system_counter = 0
        self.replace_contents(systems, regions)
        self.system_counter = self._highest_system_name_counter()

    def __len__(self) -> int:
        return len(self.systems)

    def replace_contents(self, systems: Iterable[System], regions: Iterable[Region]) -> None:
        """Swap in new systems and regions; key and name counters are never rewound."""
        new_systems = list(systems)
        by_key: dict[str, System] = {}
        for system in new_systems:
            if system.key in by_key:
                raise ValueError(f"duplicate system key: {system.key}")
            by_key[system.key] = system
        self.systems = new_systems
        self._by_key = by_key
        self.regions = list(regions)
        self._issued_keys.update(by_key)
        self._issued_keys.update(region.region_id for region in self.regions)

    def _highest_system_name_counter(self) -> int:
        highest = 0
        for system in self.systems:
            match = SYSTEM_NAME_PATTERN.search(system.name)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def get_system(self, key: str) -> System | None:
        return self._by_key.get(key)

    def require_system(self, key: str) -> System:
        system = self._by_key.get(key)
        if system is None:
            raise KeyError(f"unknown system key: {key}")
        return system

    def has_system(self, key: str) -> bool:
        return key in self._by_key

    def next_system_key(self) -> str:
        while True:
            self._key_sequence += 1
            key = f"{SYSTEM_KEY_PREFIX}{self._key_sequence:06d}"
            if key not in self._issued_keys:
                self._issued_keys.add(key)
                return key

    def next_system_name(self) -> str:
        self.system_counter += 1
        return f"System-{self.system_counter}"

    def add_system(self, system: System) -> System:
        if system.key in self._by_key:
            raise ValueError(f"duplicate system key: {system.key}")
        self.systems.append(system)
        self._by_key[system.key] = system
        self._issued_keys.add(system.key)
        return system

    def remove_systems(self, keys: Iterable[str]) -> list[System]:
        """Remove systems and every link that references them, on both ends."""
        doomed = {key for key in keys if key in self._by_key}
        if not doomed:
            return []
        for system in self.systems:
            if any(link in doomed for link in system.links):
                system.links = [link for link in system.links if link not in doomed]
        removed = [system for system in self.systems if system.key in doomed]
        self.systems = [system for system in self.systems if system.key not in doomed]
        for key in doomed:
            del self._by_key[key]
        return removed

    def are_linked(self, key_a: str, key_b: str) -> bool:
        system_a = self._by_key.get(key_a)
        system_b = self._by_key.get(key_b)
        return bool(
            (system_a is not None and system_a.is_linked_to(key_b))
            or (system_b is not None and system_b.is_linked_to(key_a))
        )

    def link(self, key_a: str, key_b: str) -> None:
        if key_a == key_b:
            raise ValueError(f"cannot link system {key_a} to itself")
        system_a = self.require_system(key_a)
        system_b = self.require_system(key_b)
        system_a.add_link(key_b)
        system_b.add_link(key_a)

    def unlink(self, key_a: str, key_b: str) -> None:
        system_a = self._by_key.get(key_a)
        system_b = self._by_key.get(key_b)
        if system_a is not None:
            system_a.remove_link(key_b)
        if system_b is not None:
            system_b.remove_link(key_a)

    def link_pairs(self) -> list[tuple[System, System]]:
        """Each resolvable link once, ordered by first appearance."""
        seen: set[tuple[str, str]] = set()
        pairs: list[tuple[System, System]] = []
        for system in self.systems:
            for link in system.links:
                target = self._by_key.get(link)
                if target is None:
                    continue
                pair_id = (system.key, link) if system.key < link else (link, system.key)
                if pair_id in seen:
                    continue
                seen.add(pair_id)
                pairs.append((system, target))
        return pairs

    def dangling_links(self) -> list[tuple[str, str]]:
        return [
            (system.key, link)
            for system in self.systems
            for link in system.links
            if link not in self._by_key
        ]

    def remove_dangling_links(self, *, include_locked: bool = False) -> int:
        removed = 0
        for system in self.systems:
            if system.is_locked and not include_locked:
                continue
            kept = [link for link in system.links if link in self._by_key]
            removed += len(system.links) - len(kept)
            system.links = kept
        return removed

    def get_region(self, region_id: str) -> Region | None:
        for region in self.regions:
            if region.region_id == region_id:
                return region
        return None

    def next_region_id(self) -> str:
        while True:
            self._region_sequence += 1
            region_id = f"{REGION_ID_PREFIX}{self._region_sequence}"
            if region_id not in self._issued_keys:
                self._issued_keys.add(region_id)
                return region_id

    def add_region(self, region: Region) -> Region:
        if self.get_region(region.region_id) is not None:
            raise ValueError(f"duplicate region id: {region.region_id}")
        self.regions.append(region)
        self._issued_keys.add(region.region_id)
        return region

    def remove_region(self, region_id: str, *, clear_members: bool = False) -> Region | None:
        region = self.get_region(region_id)
        if region is None:
            return None
        self.regions = [row for row in self.regions if row.region_id != region_id]
        if clear_members:
            for system in self.region_members(region_id):
                system.region_id = None
        return region

    def region_members(self, region_id: str) -> list[System]:
        return [system for system in self.systems if system.region_id == region_id]

    def matching_region_ids(self, term: str) -> set[str]:
        needle = term.strip().lower()
        if not needle:
            return set()
        return {region.region_id for region in self.regions if needle in region.name.lower()}

    def search(self, term: str) -> list[System]:
        region_ids = self.matching_region_ids(term)
        return [system for system in self.systems if system_matches_search(system, term, region_ids)]

    def refresh_king_designations(self, region_ids: Iterable[str] | None = None) -> None:
        """Re-derive KING flags per region; unassigned unlocked systems are never KING."""
        targets = set(region_ids) if region_ids is not None else {region.region_id for region in self.regions}
        for region_id in sorted(targets):
            designate_king(self.region_members(region_id))
        if region_ids is None:
            for system in self.systems:
                if not system.is_locked and (system.region_id is None or self.get_region(system.region_id) is None):
                    system.is_king = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "systems": [system.to_dict() for system in self.systems],
            "regionDefinitions": [region.to_dict() for region in self.regions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MapModel":
        return cls(
            systems=[System.from_dict(row) for row in data.get("systems", [])],
            regions=[Region.from_dict(row) for row in data.get("regionDefinitions", [])],
            title=str(data.get("title") or DEFAULT_MAP_TITLE),
        )
