from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from galaxyeditor.content.schema import validate_map_payload
from galaxyeditor.editor.model import DEFAULT_MAP_TITLE, SYSTEM_KEY_PREFIX, MapModel

logger = logging.getLogger(__name__)

CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")
IMPORTED_KEY_PREFIX = f"{SYSTEM_KEY_PREFIX}import-"

# legacy field name -> current field name
LEGACY_SYSTEM_FIELDS = {"closestFaction": "faction"}
LEGACY_PLANET_FIELDS = {"location": "orbit", "polarCoordinates": "angle"}
LEGACY_RESOURCE_FIELDS = {"hardness": "richness"}


def _rename_fields(row: dict[str, Any], renames: dict[str, str]) -> None:
    for old, new in renames.items():
        if old in row:
            value = row.pop(old)
            row.setdefault(new, value)


def _upgrade_links(links: Any) -> list[Any]:
    if not isinstance(links, list):
        return []
    upgraded: list[Any] = []
    for link in links:
        if isinstance(link, dict):
            if link.get("key") is not None:
                upgraded.append(str(link["key"]))
        else:
            upgraded.append(link)
    return upgraded


def _upgrade_system(system: dict[str, Any]) -> None:
    _rename_fields(system, LEGACY_SYSTEM_FIELDS)
    if "star" in system:
        legacy_star = system.pop("star")
        if "stars" not in system:
            if isinstance(legacy_star, list):
                system["stars"] = legacy_star
            elif isinstance(legacy_star, dict):
                system["stars"] = [legacy_star]
    system.setdefault("isLocked", False)
    system["links"] = _upgrade_links(system.get("links", []))
    for planet in system.get("planets") or []:
        if not isinstance(planet, dict):
            continue
        _rename_fields(planet, LEGACY_PLANET_FIELDS)
        for resource in planet.get("resources") or []:
            if isinstance(resource, dict):
                _rename_fields(resource, LEGACY_RESOURCE_FIELDS)


def upgrade_map_payload(raw: Any) -> dict[str, Any]:
    """Return a canonical map document for any accepted import shape.

    Accepted shapes are the canonical object, the older object that keeps its
    systems under ``mapData``, and a bare list of systems. The input is not
    modified.
    """
    if isinstance(raw, list):
        payload: dict[str, Any] = {"systems": copy.deepcopy(raw), "regionDefinitions": []}
    elif isinstance(raw, dict):
        payload = copy.deepcopy(raw)
        if "systems" not in payload and "mapData" in payload:
            payload["systems"] = payload.pop("mapData")
        payload.setdefault("regionDefinitions", [])
    else:
        raise ValueError("map payload must be an object or a list of systems")

    systems = payload.get("systems")
    if not isinstance(systems, list):
        raise ValueError("systems must be a list")

    existing = {row.get("key") for row in systems if isinstance(row, dict)}
    generated = 0
    for system in systems:
        if not isinstance(system, dict):
            continue
        _upgrade_system(system)
        if not system.get("key"):
            while True:
                generated += 1
                key = f"{IMPORTED_KEY_PREFIX}{generated:04d}"
                if key not in existing:
                    break
            existing.add(key)
            system["key"] = key
    if generated:
        logger.info("generated %d missing system keys on import", generated)
    payload.setdefault("title", DEFAULT_MAP_TITLE)
    return payload


def load_map_payload(raw: Any) -> MapModel:
    payload = upgrade_map_payload(raw)
    validate_map_payload(payload)
    model = MapModel.from_dict(payload)
    model.refresh_king_designations()
    return model


def load_map_json(path: str | Path) -> MapModel:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    model = load_map_payload(raw)
    logger.info("loaded map %s systems=%d regions=%d", path, len(model.systems), len(model.regions))
    return model


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def _write_atomic_json(path: str | Path, payload: dict[str, Any]) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    serialized = _canonical_json(payload)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def save_map_json(path: str | Path, model: MapModel) -> None:
    payload = model.to_dict()
    validate_map_payload(payload)
    _write_atomic_json(path, payload)
    logger.info("saved map %s systems=%d", path, len(model.systems))


def map_hash(model: MapModel) -> str:
    encoded = json.dumps(model.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
