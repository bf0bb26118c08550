from __future__ import annotations

import logging
import math
from typing import Callable, Iterable

from galaxyeditor.content.catalog import is_asteroid_belt
from galaxyeditor.editor.model import System

logger = logging.getLogger(__name__)

FALLOFF_LINEAR = "linear"
FALLOFF_EXPONENTIAL = "exponential"
FALLOFF_LOGARITHMIC = "logarithmic"
FALLOFF_FIBONACCI = "fibonacci"
FALLOFF_CURVES = (FALLOFF_LINEAR, FALLOFF_EXPONENTIAL, FALLOFF_LOGARITHMIC, FALLOFF_FIBONACCI)
GOLDEN_RATIO_EXPONENT = 0.618
FINE_ROUNDING_THRESHOLD = 0.1


def falloff_factor(curve: str, normalized_distance: float) -> float:
    """1.0 at the origin falling toward 0.0 at the farthest system."""
    d = normalized_distance
    if curve == FALLOFF_LINEAR:
        return 1.0 - d
    if curve == FALLOFF_EXPONENTIAL:
        return 1.0 - d**2
    if curve == FALLOFF_LOGARITHMIC:
        return 0.0 if d >= 1.0 else 1.0 - math.log10(d * 9.0 + 1.0)
    if curve == FALLOFF_FIBONACCI:
        return 1.0 - d**GOLDEN_RATIO_EXPONENT
    raise ValueError(f"unsupported falloff curve: {curve}")


def _round_half_up(value: float, digits: int) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_richness(value: float) -> float:
    if value < FINE_ROUNDING_THRESHOLD:
        return _round_half_up(value, 2)
    return _round_half_up(value, 1)


def apply_richness_falloff(
    systems: Iterable[System],
    min_richness: float,
    max_richness: float,
    curve: str = FALLOFF_FIBONACCI,
    *,
    is_resource_visible: Callable[[str], bool] | None = None,
    asteroid_multiplier: float = 1.0,
) -> int:
    """Rewrite resource richness by distance from the map origin.

    Locked systems, systems without coordinates and systems without planets
    are left untouched. Returns the number of resources whose richness
    actually changed.
    """
    if curve not in FALLOFF_CURVES:
        raise ValueError(f"unsupported falloff curve: {curve}")
    if min_richness < 0 or max_richness < 0:
        raise ValueError("richness bounds must be >= 0")
    if max_richness < min_richness:
        raise ValueError(f"max_richness must be >= min_richness: {max_richness} < {min_richness}")
    if asteroid_multiplier < 0:
        raise ValueError(f"asteroid_multiplier must be >= 0: {asteroid_multiplier}")

    candidates = list(systems)
    max_distance = max(
        (math.hypot(*system.coordinates) for system in candidates if system.coordinates is not None),
        default=0.0,
    )
    if max_distance == 0:
        logger.debug("falloff skipped: no system away from the origin")
        return 0

    changed = 0
    for system in candidates:
        if system.is_locked or system.coordinates is None or not system.planets:
            continue
        normalized = math.hypot(*system.coordinates) / max_distance
        base_value = min_richness + falloff_factor(curve, normalized) * (max_richness - min_richness)
        for planet in system.planets:
            value = base_value * asteroid_multiplier if is_asteroid_belt(planet.planet_type) else base_value
            for resource in planet.resources:
                if is_resource_visible is not None and not is_resource_visible(resource.name):
                    continue
                new_richness = max(0.0, round_richness(value))
                if new_richness != resource.richness:
                    resource.richness = new_richness
                    changed += 1
    logger.debug("falloff curve=%s changed=%d", curve, changed)
    return changed
