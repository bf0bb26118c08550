from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

ARCHETYPE_TABLE_SCHEMA_VERSION = 1
DEFAULT_ARCHETYPE_TABLE_PATH = Path(__file__).resolve().parent / "data" / "planet_archetypes.json"


@dataclass(frozen=True)
class ArchetypeResource:
    type_id: int
    name: str
    richness: float

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_id, "name": self.name, "richness": self.richness}


@dataclass(frozen=True)
class PlanetArchetypeTable:
    schema_version: int
    table_id: str
    entries: dict[str, dict[str, tuple[ArchetypeResource, ...]]]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PlanetArchetypeTable":
        validate_archetype_table_payload(payload)
        entries: dict[str, dict[str, tuple[ArchetypeResource, ...]]] = {}
        for faction in sorted(payload["factions"]):
            archetypes = payload["factions"][faction]
            entries[faction] = {
                archetype: tuple(
                    ArchetypeResource(
                        type_id=int(row["type"]),
                        name=str(row["name"]),
                        richness=float(row["richness"]),
                    )
                    for row in rows
                )
                for archetype, rows in sorted(archetypes.items())
            }
        return cls(
            schema_version=int(payload["schema_version"]),
            table_id=payload["table_id"],
            entries=entries,
        )

    def resources_for(self, faction: str | None, archetype: str | None) -> tuple[ArchetypeResource, ...]:
        if faction is None or archetype is None:
            return ()
        return self.entries.get(faction, {}).get(archetype, ())

    def resource_names(self) -> list[str]:
        names = {
            resource.name
            for archetypes in self.entries.values()
            for rows in archetypes.values()
            for resource in rows
        }
        return sorted(names)


def validate_archetype_table_payload(payload: dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise ValueError("archetype table payload must be an object")

    schema_version = payload.get("schema_version")
    if not isinstance(schema_version, int):
        raise ValueError("archetype table must contain integer field: schema_version")
    if schema_version != ARCHETYPE_TABLE_SCHEMA_VERSION:
        raise ValueError(f"unsupported archetype table schema_version: {schema_version}")

    table_id = payload.get("table_id")
    if not isinstance(table_id, str) or not table_id:
        raise ValueError("archetype table must contain non-empty string field: table_id")

    factions = payload.get("factions")
    if not isinstance(factions, dict):
        raise ValueError("archetype table field factions must be an object")

    for faction, archetypes in factions.items():
        if not isinstance(archetypes, dict):
            raise ValueError(f"factions.{faction} must be an object")
        for archetype, rows in archetypes.items():
            field_name = f"factions.{faction}.{archetype}"
            if not isinstance(rows, list):
                raise ValueError(f"{field_name} must be a list")
            seen_names: set[str] = set()
            for index, row in enumerate(rows):
                if not isinstance(row, dict):
                    raise ValueError(f"{field_name}[{index}] must be an object")
                name = row.get("name")
                if not isinstance(name, str) or not name:
                    raise ValueError(f"{field_name}[{index}].name must be a non-empty string")
                if name in seen_names:
                    raise ValueError(f"duplicate resource name in {field_name}: {name}")
                seen_names.add(name)
                resource_type = row.get("type")
                if isinstance(resource_type, bool) or not isinstance(resource_type, int):
                    raise ValueError(f"{field_name}[{index}].type must be an integer")
                richness = row.get("richness")
                if isinstance(richness, bool) or not isinstance(richness, (int, float)) or richness < 0:
                    raise ValueError(f"{field_name}[{index}].richness must be a number >= 0")


def load_archetype_table_json(path: str | Path) -> PlanetArchetypeTable:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return PlanetArchetypeTable.from_payload(payload)


@lru_cache(maxsize=1)
def default_archetype_table() -> PlanetArchetypeTable:
    return load_archetype_table_json(DEFAULT_ARCHETYPE_TABLE_PATH)
