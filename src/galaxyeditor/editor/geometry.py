from __future__ import annotations

import math
from typing import Iterable, Sequence

Point = tuple[float, float]


def _cross(origin: Point, a: Point, b: Point) -> float:
    return (a[0] - origin[0]) * (b[1] - origin[1]) - (a[1] - origin[1]) * (b[0] - origin[0])


def convex_hull(points: Iterable[Point]) -> list[Point]:
    """Andrew's monotone chain, counter-clockwise, without repeating the first point.

    Fewer than three input points is a caller error. Collinear or coincident
    input yields only the extreme points (a degenerate one or two vertex polygon).
    """
    candidates = [(float(x), float(y)) for x, y in points]
    if len(candidates) < 3:
        raise ValueError(f"convex_hull requires at least 3 points, got {len(candidates)}")
    unique = sorted(set(candidates))
    if len(unique) <= 2:
        return unique

    lower: list[Point] = []
    for point in unique:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], point) <= 0:
            lower.pop()
        lower.append(point)

    upper: list[Point] = []
    for point in reversed(unique):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], point) <= 0:
            upper.pop()
        upper.append(point)

    return lower[:-1] + upper[:-1]


def polygon_area(vertices: Sequence[Point]) -> float:
    """Shoelace area; winding order does not matter."""
    if len(vertices) < 3:
        return 0.0
    total = 0.0
    for index, (x1, y1) in enumerate(vertices):
        x2, y2 = vertices[(index + 1) % len(vertices)]
        total += x1 * y2 - x2 * y1
    return abs(total) / 2.0


def hull_area(points: Sequence[Point]) -> float:
    if len(points) < 3:
        return 0.0
    return polygon_area(convex_hull(points))


def point_in_convex_polygon(point: Point, vertices: Sequence[Point], tolerance: float = 1e-9) -> bool:
    """Inside-or-on test against a counter-clockwise convex polygon."""
    if not vertices:
        return False
    if len(vertices) == 1:
        return math.dist(point, vertices[0]) <= tolerance
    if len(vertices) == 2:
        a, b = vertices
        if abs(_cross(a, b, point)) > tolerance * max(1.0, math.dist(a, b)):
            return False
        return (
            min(a[0], b[0]) - tolerance <= point[0] <= max(a[0], b[0]) + tolerance
            and min(a[1], b[1]) - tolerance <= point[1] <= max(a[1], b[1]) + tolerance
        )
    for index, vertex in enumerate(vertices):
        following = vertices[(index + 1) % len(vertices)]
        if _cross(vertex, following, point) < -tolerance:
            return False
    return True


def centroid(points: Sequence[Point]) -> Point:
    """Arithmetic mean of the points, used to anchor region labels."""
    if not points:
        raise ValueError("centroid requires at least 1 point")
    return (
        sum(x for x, _ in points) / len(points),
        sum(y for _, y in points) / len(points),
    )


def mean_pairwise_distance(points: Sequence[Point]) -> float:
    if len(points) < 2:
        return 0.0
    total = 0.0
    pairs = 0
    for index, first in enumerate(points):
        for second in points[index + 1 :]:
            total += math.dist(first, second)
            pairs += 1
    return total / pairs


def bounding_box(points: Iterable[Point]) -> tuple[float, float, float, float] | None:
    """Return (min_x, min_y, max_x, max_y) or None for no points."""
    materialized = list(points)
    if not materialized:
        return None
    xs = [x for x, _ in materialized]
    ys = [y for _, y in materialized]
    return min(xs), min(ys), max(xs), max(ys)
