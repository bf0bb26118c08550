from __future__ import annotations

import logging
import random
from typing import Any, Iterable

from galaxyeditor.content.archetypes import PlanetArchetypeTable, default_archetype_table
from galaxyeditor.content.catalog import (
    CONTROLLING_FACTIONS,
    DEFAULT_STAR_TYPE,
    FACTIONS,
    NEUTRAL_FACTION,
    PLANET_TYPES,
    STAR_TYPES,
    default_planet_type_for_faction,
    planet_archetype,
    region_color_for_index,
)
from galaxyeditor.editor.falloff import FALLOFF_FIBONACCI, apply_richness_falloff
from galaxyeditor.editor.history import HistoryManager
from galaxyeditor.editor.model import (
    MAX_STARBASE_TIER,
    MAX_STARS_PER_SYSTEM,
    MapModel,
    Planet,
    Region,
    Resource,
    Star,
    System,
)
from galaxyeditor.editor.state import EditorState, snap_to_grid

logger = logging.getLogger(__name__)

DEFAULT_STAR_NAME = "Solar"
STAR_SUFFIXES = ("A", "B", "C")
STAR_PROPERTIES = {"name": "name", "type": "star_type", "scale": "scale"}
PLANET_PROPERTIES = {
    "name": "name",
    "type": "planet_type",
    "orbit": "orbit",
    "angle": "angle",
    "scale": "scale",
}
LOADED_MAP_DESCRIPTION = "Import Map"


def _format_value(value: Any) -> str:
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _validated_star_value(prop: str, value: Any) -> Any:
    if prop == "name":
        if not isinstance(value, str) or not value.strip():
            raise ValueError("star.name must be a non-empty string")
        return value
    if prop == "type":
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < len(STAR_TYPES):
            raise ValueError(f"star.type must be an integer within [0, {len(STAR_TYPES) - 1}]: {value}")
        return value
    if prop == "scale":
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"star.scale must be a number > 0: {value}")
        return float(value)
    raise ValueError(f"unsupported star property: {prop}")


def _validated_planet_value(prop: str, value: Any) -> Any:
    if prop == "name":
        if not isinstance(value, str) or not value.strip():
            raise ValueError("planet.name must be a non-empty string")
        return value
    if prop == "type":
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < len(PLANET_TYPES):
            raise ValueError(f"planet.type must be an integer within [0, {len(PLANET_TYPES) - 1}]: {value}")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"planet.{prop} must be a number: {value}")
    if prop == "orbit":
        if value < 0:
            raise ValueError(f"planet.orbit must be >= 0: {value}")
        return float(value)
    if prop == "angle":
        return float(value) % 360.0
    if prop == "scale":
        if value <= 0:
            raise ValueError(f"planet.scale must be > 0: {value}")
        return float(value)
    raise ValueError(f"unsupported planet property: {prop}")


class EditorCommands:
    """Every mutating editor operation.

    Each command refuses to touch locked systems, and each accepted change is
    paired with exactly one history commit. Rejected commands return ``False``,
    ``None`` or ``0`` and leave both the model and the history untouched.
    """

    def __init__(
        self,
        state: EditorState,
        history: HistoryManager | None = None,
        *,
        archetypes: PlanetArchetypeTable | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.state = state
        self.history = history if history is not None else HistoryManager(state)
        self._archetypes = archetypes
        self.rng = rng if rng is not None else random.Random()
        if not self.history.states:
            self.history.clear()

    @property
    def model(self) -> MapModel:
        return self.state.model

    @property
    def archetypes(self) -> PlanetArchetypeTable:
        if self._archetypes is None:
            self._archetypes = default_archetype_table()
        return self._archetypes

    def _commit(self, description: str, *, group_key: str | None = None) -> None:
        self.history.commit(description, group_with_previous=group_key is not None, group_key=group_key)

    def _editable(self, key: str) -> System | None:
        system = self.model.require_system(key)
        if system.is_locked:
            logger.debug("rejected mutation of locked system key=%s", key)
            return None
        return system

    def _refresh_kings(self, region_ids: Iterable[str | None]) -> None:
        targets = {region_id for region_id in region_ids if region_id is not None}
        if targets:
            self.model.refresh_king_designations(targets)

    def load_model(self, model: MapModel, *, description: str = LOADED_MAP_DESCRIPTION) -> None:
        """Swap in a freshly loaded map and start a new history."""
        self.state.model = model
        self.state.reset_transient()
        self.state.clear_selection()
        self.state.clipboard = None
        self.history.clear(description)

    # Systems

    def create_system(self, map_x: float, map_y: float, *, snap: bool | None = None) -> System:
        use_snap = self.state.snap_to_grid if snap is None else snap
        x, y = snap_to_grid(map_x, map_y) if use_snap else (map_x, map_y)
        system = System(
            key=self.model.next_system_key(),
            name=self.model.next_system_name(),
            coordinates=(x, y),
            faction=None,
            controlling_faction=NEUTRAL_FACTION,
            stars=[Star(name=DEFAULT_STAR_NAME, star_type=DEFAULT_STAR_TYPE, scale=1.0)],
        )
        self.model.add_system(system)
        self.state.select_only(system.key)
        self._commit(f"Created System {system.name}")
        return system

    def delete_systems(self, keys: Iterable[str]) -> int:
        targets = [key for key in dict.fromkeys(keys) if self.model.has_system(key)]
        unlocked = [key for key in targets if not self.model.require_system(key).is_locked]
        if not unlocked:
            return 0
        doomed = set(unlocked)
        affected_regions = {
            system.region_id
            for system in self.model.systems
            if system.key in doomed or any(link in doomed for link in system.links)
        }
        removed = self.model.remove_systems(unlocked)
        self.state.clear_selection()
        self._refresh_kings(affected_regions)
        self._commit(f"Deleted {len(removed)} System(s)")
        return len(removed)

    def delete_selected(self) -> int:
        return self.delete_systems(list(self.state.selected_keys))

    def toggle_link(self, key_a: str, key_b: str) -> bool:
        if key_a == key_b:
            return False
        system_a = self.model.require_system(key_a)
        system_b = self.model.require_system(key_b)
        if system_a.is_locked or system_b.is_locked:
            logger.debug("rejected link toggle with locked endpoint %s - %s", key_a, key_b)
            return False
        if self.model.are_linked(key_a, key_b):
            self.model.unlink(key_a, key_b)
            description = f"Removed Link: {system_a.name} - {system_b.name}"
        else:
            self.model.link(key_a, key_b)
            description = f"Added Link: {system_a.name} - {system_b.name}"
        self._refresh_kings((system_a.region_id, system_b.region_id))
        self._commit(description)
        return True

    def translate_systems(self, keys: Iterable[str], dx: float, dy: float) -> int:
        """Live move used while dragging; commits nothing."""
        moved = 0
        for key in keys:
            system = self.model.get_system(key)
            if system is None or system.is_locked or system.coordinates is None:
                continue
            system.coordinates = (system.coordinates[0] + dx, system.coordinates[1] + dy)
            moved += 1
        return moved

    def commit_move(self) -> None:
        self._commit("Moved System")

    def set_coordinates(self, key: str, map_x: float, map_y: float) -> bool:
        system = self._editable(key)
        if system is None or system.coordinates == (map_x, map_y):
            return False
        system.coordinates = (float(map_x), float(map_y))
        self._commit("Moved System")
        return True

    def copy_selected(self) -> bool:
        selected = self.state.selected_systems()
        if len(selected) != 1:
            return False
        self.state.clipboard = selected[0].to_dict()
        return True

    def paste(self, map_x: float, map_y: float) -> System | None:
        if self.state.clipboard is None:
            return None
        x, y = self.state.snap_point(map_x, map_y)
        payload = dict(self.state.clipboard)
        payload.update(
            {
                "key": self.model.next_system_key(),
                "name": f"{payload.get('name', '')} (Copy)",
                "coordinates": [x, y],
                "links": [],
                "isLocked": False,
                "isKing": False,
            }
        )
        system = System.from_dict(payload)
        if system.region_id is not None and self.model.get_region(system.region_id) is None:
            system.region_id = None
        self.model.add_system(system)
        self.state.select_only(system.key)
        self._refresh_kings((system.region_id,))
        self._commit(f"Pasted System {system.name}")
        return system

    # Locking

    def _set_locked(self, systems: Iterable[System], locked: bool) -> int:
        changed = 0
        for system in systems:
            if system.is_locked != locked:
                system.is_locked = locked
                changed += 1
        return changed

    def lock_selected(self) -> int:
        changed = self._set_locked(self.state.selected_systems(), True)
        if changed:
            self._commit(f"Locked {changed} system(s)")
        return changed

    def unlock_selected(self) -> int:
        changed = self._set_locked(self.state.selected_systems(), False)
        if changed:
            self._commit(f"Unlocked {changed} system(s)")
        return changed

    def lock_all(self) -> int:
        changed = self._set_locked(self.model.systems, True)
        if changed:
            self._commit("Locked all systems")
        return changed

    def unlock_all(self) -> int:
        changed = self._set_locked(self.model.systems, False)
        if changed:
            self._commit("Unlocked all systems")
        return changed

    # Regions

    def _unlocked_selection(self) -> list[System]:
        return [system for system in self.state.selected_systems() if not system.is_locked]

    def create_region(self, name: str, *, color: str | None = None, from_selection: bool = True) -> Region:
        if not name.strip():
            raise ValueError("region.name must be a non-empty string")
        region = Region(
            region_id=self.model.next_region_id(),
            name=name,
            color=color if color is not None else region_color_for_index(len(self.model.regions)),
        )
        self.model.add_region(region)
        previous_regions: set[str | None] = set()
        if from_selection:
            for system in self._unlocked_selection():
                previous_regions.add(system.region_id)
                system.region_id = region.region_id
        self._refresh_kings(previous_regions | {region.region_id})
        self._commit(f"Created Region {name}")
        return region

    def add_selected_to_region(self, region_id: str) -> int:
        region = self.model.get_region(region_id)
        if region is None:
            raise KeyError(f"unknown region id: {region_id}")
        moved = [system for system in self._unlocked_selection() if system.region_id != region_id]
        if not moved:
            return 0
        previous_regions = {system.region_id for system in moved}
        for system in moved:
            system.region_id = region_id
        self._refresh_kings(previous_regions | {region_id})
        self._commit(f"Added {len(moved)} Systems to Region {region.name}")
        return len(moved)

    def remove_selected_from_region(self) -> int:
        members = [system for system in self._unlocked_selection() if system.region_id is not None]
        if not members:
            return 0
        previous_regions = {system.region_id for system in members}
        for system in members:
            system.region_id = None
            system.is_king = False
        self._refresh_kings(previous_regions)
        self._commit(f"Removed {len(members)} system(s) from their region")
        return len(members)

    def delete_region(self, region_id: str, *, clear_members: bool = False) -> bool:
        """Drop a region definition.

        Members keep their now-dangling ``region_id`` unless ``clear_members``
        is set, in which case unlocked members are released.
        """
        region = self.model.remove_region(region_id)
        if region is None:
            return False
        if clear_members:
            for system in self.model.region_members(region_id):
                if not system.is_locked:
                    system.region_id = None
                    system.is_king = False
        self._commit(f"Deleted Region {region.name}")
        return True

    def designate_kings(self, region_ids: Iterable[str] | None = None) -> int:
        before = [system.is_king for system in self.model.systems]
        self.model.refresh_king_designations(region_ids)
        if [system.is_king for system in self.model.systems] != before:
            self._commit("Designated KING systems")
        return sum(1 for system in self.model.systems if system.is_king)

    # Properties

    def rename_system(self, key: str, name: str) -> bool:
        if not name.strip():
            raise ValueError("system.name must be a non-empty string")
        system = self._editable(key)
        if system is None or system.name == name:
            return False
        system.name = name
        self._commit(f"Renamed System to {name}")
        return True

    def set_faction(self, key: str, faction: str | None) -> bool:
        if faction is not None and faction not in FACTIONS:
            raise ValueError(f"unsupported faction: {faction}")
        system = self._editable(key)
        if system is None or system.faction == faction:
            return False
        system.faction = faction
        self._commit(f"Changed System Faction to {faction or 'None'}")
        return True

    def set_controlling_faction(self, key: str, faction: str) -> bool:
        if faction not in CONTROLLING_FACTIONS:
            raise ValueError(f"unsupported controlling faction: {faction}")
        system = self._editable(key)
        if system is None or system.controlling_faction == faction:
            return False
        system.controlling_faction = faction
        self._commit(f"Changed Controlling Faction to {faction}")
        return True

    def set_core(self, key: str, is_core: bool) -> bool:
        system = self._editable(key)
        if system is None or system.is_core == is_core:
            return False
        system.is_core = is_core
        self._commit(f"Set System Core Status to {_format_value(is_core)}")
        return True

    def set_starbase_tier(self, key: str, tier: int) -> bool:
        if isinstance(tier, bool) or not isinstance(tier, int) or not 0 <= tier <= MAX_STARBASE_TIER:
            raise ValueError(f"starbase.tier must be an integer within [0, {MAX_STARBASE_TIER}]: {tier}")
        system = self._editable(key)
        if system is None or system.starbase_tier == tier:
            return False
        system.starbase_tier = tier
        self._commit(f"Changed Starbase Tier to {tier}")
        return True

    # Stars

    def add_star(self, key: str) -> Star | None:
        system = self._editable(key)
        if system is None or len(system.stars) >= MAX_STARS_PER_SYSTEM:
            return None
        index = len(system.stars)
        star = Star(name=f"{system.name} {STAR_SUFFIXES[index]}", star_type=DEFAULT_STAR_TYPE, scale=1.0)
        system.stars.append(star)
        self._commit(f"Added star {index + 1} to system {system.name}")
        return star

    def remove_star(self, key: str, index: int) -> bool:
        system = self._editable(key)
        if system is None:
            return False
        if not 0 <= index < len(system.stars):
            raise IndexError(f"star index out of range: {index}")
        del system.stars[index]
        self._commit(f"Removed star from {system.name}")
        return True

    def update_star(self, key: str, index: int, prop: str, value: Any) -> bool:
        """Edit one star field; consecutive edits of the same star share one undo step."""
        new_value = _validated_star_value(prop, value)
        system = self._editable(key)
        if system is None:
            return False
        if not 0 <= index < len(system.stars):
            raise IndexError(f"star index out of range: {index}")
        star = system.stars[index]
        attribute = STAR_PROPERTIES[prop]
        old_value = getattr(star, attribute)
        if old_value == new_value:
            return False
        setattr(star, attribute, new_value)
        target = f"Star {index + 1} in system {system.name}"
        self._commit(
            f"Updated {prop} of {target} ({_format_value(old_value)} → {_format_value(new_value)})",
            group_key=f"star:{system.key}:{index}",
        )
        return True

    # Planets

    def _archetype_resources(self, planet_type_id: int) -> list[Resource]:
        faction, archetype = planet_archetype(planet_type_id)
        return [
            Resource(name=row.name, richness=row.richness, resource_type=row.type_id)
            for row in self.archetypes.resources_for(faction, archetype)
        ]

    def add_planet(self, key: str) -> Planet | None:
        system = self._editable(key)
        if system is None:
            return None
        orbit = max((planet.orbit for planet in system.planets), default=0.0) + 1.0
        planet_type_id = default_planet_type_for_faction(system.faction)
        planet = Planet(
            name=f"{system.name or 'SYS'}-P{len(system.planets) + 1}",
            planet_type=planet_type_id,
            orbit=orbit,
            angle=float(self.rng.randrange(360)),
            scale=1.0,
            resources=self._archetype_resources(planet_type_id),
        )
        system.planets.append(planet)
        self._commit(f"Added Planet {planet.name} to {system.name}")
        return planet

    def remove_planet(self, key: str, index: int) -> bool:
        system = self._editable(key)
        if system is None:
            return False
        if not 0 <= index < len(system.planets):
            raise IndexError(f"planet index out of range: {index}")
        planet = system.planets.pop(index)
        self._commit(f"Removed planet {planet.name} from {system.name}")
        return True

    def update_planet(self, key: str, index: int, prop: str, value: Any) -> bool:
        """Edit one planet field; a type change reloads the archetype resources."""
        new_value = _validated_planet_value(prop, value)
        system = self._editable(key)
        if system is None:
            return False
        if not 0 <= index < len(system.planets):
            raise IndexError(f"planet index out of range: {index}")
        planet = system.planets[index]
        attribute = PLANET_PROPERTIES[prop]
        old_value = getattr(planet, attribute)
        if old_value == new_value:
            return False
        setattr(planet, attribute, new_value)
        if prop == "type":
            resources = self._archetype_resources(new_value)
            if resources:
                planet.resources = resources
        target = f"Planet {index + 1} in system {system.name}"
        self._commit(
            f"Updated {prop} of {target} ({_format_value(old_value)} → {_format_value(new_value)})",
            group_key=f"planet:{system.key}:{index}",
        )
        return True

    # Resources

    def _editable_planet(self, key: str, planet_index: int) -> tuple[System, Planet] | None:
        system = self._editable(key)
        if system is None:
            return None
        if not 0 <= planet_index < len(system.planets):
            raise IndexError(f"planet index out of range: {planet_index}")
        return system, system.planets[planet_index]

    def add_resource(self, key: str, planet_index: int, name: str, richness: float, resource_type: int | None = None) -> bool:
        target = self._editable_planet(key, planet_index)
        if target is None:
            return False
        _, planet = target
        if any(resource.name.lower() == name.lower() for resource in planet.resources):
            return False
        planet.resources.append(Resource(name=name, richness=float(richness), resource_type=resource_type))
        self._commit(f"Added Resource {name} to {planet.name}")
        return True

    def remove_resource(self, key: str, planet_index: int, resource_index: int) -> bool:
        target = self._editable_planet(key, planet_index)
        if target is None:
            return False
        _, planet = target
        if not 0 <= resource_index < len(planet.resources):
            raise IndexError(f"resource index out of range: {resource_index}")
        resource = planet.resources.pop(resource_index)
        self._commit(f"Removed Resource {resource.name}")
        return True

    def set_resource_richness(self, key: str, planet_index: int, resource_index: int, richness: float) -> bool:
        if isinstance(richness, bool) or not isinstance(richness, (int, float)) or richness < 0:
            raise ValueError(f"resource.richness must be a number >= 0: {richness}")
        target = self._editable_planet(key, planet_index)
        if target is None:
            return False
        _, planet = target
        if not 0 <= resource_index < len(planet.resources):
            raise IndexError(f"resource index out of range: {resource_index}")
        resource = planet.resources[resource_index]
        if resource.richness == richness:
            return False
        resource.richness = float(richness)
        self._commit(f"Updated richness of {resource.name} to {_format_value(richness)}")
        return True

    def reset_planet_resources(self, key: str, planet_index: int) -> bool:
        target = self._editable_planet(key, planet_index)
        if target is None:
            return False
        _, planet = target
        resources = self._archetype_resources(planet.planet_type)
        if not resources:
            return False
        planet.resources = resources
        self._commit(f"Updated Resources for {planet.name}")
        return True

    def clear_planet_resources(self, key: str, planet_index: int) -> bool:
        target = self._editable_planet(key, planet_index)
        if target is None:
            return False
        _, planet = target
        if not planet.resources:
            return False
        planet.resources = []
        self._commit(f"Cleared Resources from {planet.name}")
        return True

    # Batch tools

    def remove_dangling_links(self) -> int:
        removed = self.model.remove_dangling_links()
        if removed:
            self._commit(f"Removed {removed} dangling link(s)")
        return removed

    def apply_falloff(
        self,
        min_richness: float,
        max_richness: float,
        curve: str = FALLOFF_FIBONACCI,
        *,
        selected_only: bool = False,
        use_filters: bool = False,
        asteroid_multiplier: float = 1.0,
    ) -> int:
        systems = self.state.selected_systems() if selected_only else list(self.model.systems)
        changed = apply_richness_falloff(
            systems,
            min_richness,
            max_richness,
            curve,
            is_resource_visible=self.state.is_resource_visible if use_filters else None,
            asteroid_multiplier=asteroid_multiplier,
        )
        if changed:
            self._commit(f"Applied Resource Richness Falloff to {changed} resources")
        return changed

    # Selection and view, never recorded in history

    def select_all(self) -> None:
        self.state.set_selection([system.key for system in self.model.systems])

    def deselect_all(self) -> None:
        self.state.clear_selection()

    def select_region_of(self, key: str) -> bool:
        system = self.model.get_system(key)
        if system is None or system.region_id is None:
            return False
        self.state.set_selection([member.key for member in self.model.region_members(system.region_id)])
        return True

    def select_matching(self, term: str) -> int:
        matches = self.model.search(term)
        self.state.set_selection([system.key for system in matches])
        return len(matches)

    def center_on_selection(self) -> bool:
        points = [system.coordinates for system in self.state.selected_systems() if system.coordinates is not None]
        return self.state.viewport.center_on_points(points)

    def center_on_all(self) -> bool:
        points = [system.coordinates for system in self.model.systems if system.coordinates is not None]
        return self.state.viewport.center_on_points(points)

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

