from __future__ import annotations

from dataclasses import dataclass

GALAXY_GRID_SPACING = 1.0

FACTIONS = ("MUD", "ONI", "UST")
CONTROLLING_FACTIONS = ("MUD", "ONI", "UST", "Neutral")
NEUTRAL_FACTION = "Neutral"

FACTION_COLORS: dict[str, str] = {
    "MUD": "#FF5722",
    "ONI": "#2196F3",
    "UST": "#FFC107",
    "USTUR": "#FFC107",
    "Neutral": "#999999",
}
DEFAULT_FACTION_COLOR = "#CCCCCC"
UNALIGNED_SYSTEM_COLOR = "#FFFFFF"

REGION_COLORS: tuple[str, ...] = (
    "#FF5733",
    "#33FF57",
    "#3357FF",
    "#F033FF",
    "#FF33A8",
    "#33FFF5",
    "#FFD733",
    "#8C33FF",
    "#FF8C33",
    "#33FFBD",
    "#3390FF",
    "#CEFF33",
)

# Label-kind toggles; every other key in a filter mapping is a resource name.
LABEL_FILTER_DEFAULTS: dict[str, bool] = {
    "SystemName": True,
    "FactionLabel": True,
    "PlanetCount": True,
    "StarCount": True,
    "StarbaseTier": True,
    "LockStatus": True,
    "KingStatus": True,
    "Planets": True,
    "RegionalPolygon": True,
    "RegionalBlob": False,
    "RegionalName": True,
    "RegionalSystems": True,
    "RegionalCore": True,
    "RegionalKing": True,
    "RegionalArea": True,
    "RegionalDistance": True,
    "RegionalIndicator": True,
}
LABEL_FILTER_KEYS = frozenset(LABEL_FILTER_DEFAULTS)


@dataclass(frozen=True)
class StarType:
    type_id: int
    name: str


@dataclass(frozen=True)
class PlanetType:
    type_id: int
    name: str
    faction: str
    archetype: str
    default_scale: float


STAR_TYPES: tuple[StarType, ...] = tuple(
    StarType(type_id=index, name=name)
    for index, name in enumerate(
        (
            "White Dwarf",
            "Red Dwarf",
            "Solar",
            "Hot Blue",
            "Red Giant",
            "Blue Giant",
            "Blue Supergiant",
            "Yellow Giant",
            "Orange Dwarf",
            "Brown Dwarf",
            "Neutron Star",
            "Black Hole",
            "Pulsar",
            "Binary Pulsar",
            "Magnetar",
            "Protostar",
            "T Tauri",
            "Wolf-Rayet",
            "Cepheid Variable",
            "Blue-White Dwarf",
        )
    )
)
DEFAULT_STAR_TYPE = 2

PLANET_TYPE_FACTION_BLOCKS = ("ONI", "MUD", "USTUR", "Neutral")
PLANET_ARCHETYPES: tuple[tuple[str, str, float], ...] = (
    # (catalog suffix, archetype table key, default scale)
    ("Terrestrial Planet", "Terrestrial", 0.3),
    ("Volcanic Planet", "Volcanic", 0.2),
    ("Barren Planet", "Barren", 0.1),
    ("System Asteroid Belt", "Asteroid Belt", 0.5),
    ("Gas Giant", "Gas Giant", 0.4),
    ("Ice Giant", "Ice Giant", 0.4),
    ("Dark Planet", "Dark", 0.3),
    ("Oceanic Planet", "Oceanic", 0.3),
)
ASTEROID_BELT_ARCHETYPE = "Asteroid Belt"

PLANET_TYPES: tuple[PlanetType, ...] = tuple(
    PlanetType(
        type_id=block_index * len(PLANET_ARCHETYPES) + offset,
        name=f"{faction} {suffix}",
        faction=faction,
        archetype=archetype,
        default_scale=default_scale,
    )
    for block_index, faction in enumerate(PLANET_TYPE_FACTION_BLOCKS)
    for offset, (suffix, archetype, default_scale) in enumerate(PLANET_ARCHETYPES)
)

# Terrestrial planet type offered to a new planet, keyed by system faction.
DEFAULT_PLANET_TYPE_BY_FACTION: dict[str | None, int] = {
    "ONI": 0,
    "MUD": 8,
    "UST": 16,
    "Neutral": 24,
}


def faction_color(faction: str | None) -> str:
    if not faction:
        return UNALIGNED_SYSTEM_COLOR
    return FACTION_COLORS.get(faction, DEFAULT_FACTION_COLOR)


def region_color_for_index(index: int) -> str:
    return REGION_COLORS[index % len(REGION_COLORS)]


def star_type_name(type_id: int) -> str:
    if 0 <= type_id < len(STAR_TYPES):
        return STAR_TYPES[type_id].name
    return f"Unknown Star ({type_id})"


def planet_type(type_id: int) -> PlanetType | None:
    if 0 <= type_id < len(PLANET_TYPES):
        return PLANET_TYPES[type_id]
    return None


def planet_type_name(type_id: int) -> str:
    entry = planet_type(type_id)
    return entry.name if entry is not None else f"Unknown Planet ({type_id})"


def planet_archetype(type_id: int) -> tuple[str | None, str | None]:
    """Return the (faction, archetype) pair used to look up default resources."""
    entry = planet_type(type_id)
    if entry is None:
        return None, None
    faction = entry.faction if entry.faction != NEUTRAL_FACTION else None
    return faction, entry.archetype


def is_asteroid_belt(type_id: int) -> bool:
    entry = planet_type(type_id)
    return entry is not None and entry.archetype == ASTEROID_BELT_ARCHETYPE


def default_planet_type_for_faction(faction: str | None) -> int:
    return DEFAULT_PLANET_TYPE_BY_FACTION.get(faction, 0)


def is_label_filter_key(key: str) -> bool:
    return key in LABEL_FILTER_KEYS
