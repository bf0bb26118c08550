from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from galaxyeditor.content.catalog import FACTIONS
from galaxyeditor.editor.geometry import Point, centroid, convex_hull, hull_area, mean_pairwise_distance
from galaxyeditor.editor.model import MapModel


@dataclass(frozen=True)
class RegionStatistics:
    region_id: str
    systems: int
    core_systems: int
    king_systems: int
    area: float
    average_distance: float
    centroid: Point | None
    hull: tuple[Point, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "region_id": self.region_id,
            "systems": self.systems,
            "core_systems": self.core_systems,
            "king_systems": self.king_systems,
            "area": self.area,
            "average_distance": self.average_distance,
            "centroid": list(self.centroid) if self.centroid is not None else None,
        }


@dataclass(frozen=True)
class FactionStatistics:
    faction: str
    systems: int
    core_systems: int
    planets: int
    stars: int
    resources: int
    territory: float
    hull: tuple[Point, ...]

    @property
    def planets_per_system(self) -> float:
        return self.planets / self.systems if self.systems else 0.0

    @property
    def resources_per_planet(self) -> float:
        return self.resources / self.planets if self.planets else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "faction": self.faction,
            "systems": self.systems,
            "core_systems": self.core_systems,
            "planets": self.planets,
            "stars": self.stars,
            "resources": self.resources,
            "territory": self.territory,
            "planets_per_system": self.planets_per_system,
            "resources_per_planet": self.resources_per_planet,
        }


def region_statistics(model: MapModel, region_id: str) -> RegionStatistics:
    members = model.region_members(region_id)
    points = [member.coordinates for member in members if member.coordinates is not None]
    hull: tuple[Point, ...] = tuple(convex_hull(points)) if len(points) >= 3 else ()
    return RegionStatistics(
        region_id=region_id,
        systems=len(members),
        core_systems=sum(1 for member in members if member.is_core),
        king_systems=sum(1 for member in members if member.is_king),
        area=hull_area(points),
        average_distance=mean_pairwise_distance(points),
        centroid=centroid(points) if points else None,
        hull=hull,
    )


def faction_statistics(model: MapModel) -> dict[str, FactionStatistics]:
    """Per-faction totals for MUD, ONI and UST; territory is the hull area of members."""
    result: dict[str, FactionStatistics] = {}
    for faction in FACTIONS:
        members = [system for system in model.systems if system.faction == faction]
        points = [system.coordinates for system in members if system.coordinates is not None]
        hull: tuple[Point, ...] = tuple(convex_hull(points)) if len(points) >= 3 else ()
        result[faction] = FactionStatistics(
            faction=faction,
            systems=len(members),
            core_systems=sum(1 for system in members if system.is_core),
            planets=sum(len(system.planets) for system in members),
            stars=sum(len(system.stars) for system in members),
            resources=sum(system.resource_count() for system in members),
            territory=hull_area(points),
            hull=hull,
        )
    return result
