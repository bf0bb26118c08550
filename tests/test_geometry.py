import pytest

from galaxyeditor.editor.geometry import (
    bounding_box,
    centroid,
    convex_hull,
    hull_area,
    mean_pairwise_distance,
    point_in_convex_polygon,
    polygon_area,
)


def test_convex_hull_drops_interior_points_and_is_counter_clockwise() -> None:
    hull = convex_hull([(0, 0), (1, 0), (1, 1), (0, 1), (0.5, 0.5)])

    assert hull == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    signed = sum(x1 * y2 - x2 * y1 for (x1, y1), (x2, y2) in zip(hull, hull[1:] + hull[:1]))
    assert signed > 0


def test_convex_hull_contains_every_input_point() -> None:
    points = [(0, 0), (4, 1), (3, 5), (-1, 3), (1, 2), (2, 2), (0, 1)]
    hull = convex_hull(points)

    for point in points:
        assert point_in_convex_polygon(point, hull)


def test_convex_hull_requires_three_points() -> None:
    with pytest.raises(ValueError, match="at least 3 points"):
        convex_hull([(0, 0), (1, 1)])


def test_collinear_points_collapse_to_extremes() -> None:
    hull = convex_hull([(0, 0), (1, 1), (2, 2), (3, 3)])

    assert hull == [(0.0, 0.0), (3.0, 3.0)]
    assert hull_area([(0, 0), (1, 1), (2, 2)]) == 0.0


def test_polygon_area_matches_shoelace() -> None:
    assert polygon_area([(0, 0), (4, 0), (0, 3)]) == pytest.approx(6.0)
    assert polygon_area([(0, 3), (4, 0), (0, 0)]) == pytest.approx(6.0)
    assert polygon_area([(0, 0), (1, 1)]) == 0.0
    assert hull_area([(0, 0), (2, 0), (2, 2), (0, 2), (1, 1)]) == pytest.approx(4.0)


def test_centroid_and_mean_pairwise_distance() -> None:
    assert centroid([(0, 0), (3, 0), (0, 3)]) == pytest.approx((1.0, 1.0))
    assert mean_pairwise_distance([(0, 0), (3, 0), (0, 4)]) == pytest.approx(4.0)
    assert mean_pairwise_distance([(1, 1)]) == 0.0
    with pytest.raises(ValueError, match="centroid"):
        centroid([])


def test_point_in_convex_polygon_edges_and_outside() -> None:
    square = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]

    assert point_in_convex_polygon((1.0, 1.0), square)
    assert point_in_convex_polygon((2.0, 1.0), square)
    assert not point_in_convex_polygon((2.1, 1.0), square)


def test_bounding_box() -> None:
    assert bounding_box([(1, 5), (-2, 3), (4, -1)]) == (-2, -1, 4, 5)
    assert bounding_box([]) is None


def test_triangle_hull_keeps_all_three_points_and_area_fifty() -> None:
    hull = convex_hull([(0, 0), (10, 0), (5, 10)])

    assert len(hull) == 3
    assert set(hull) == {(0.0, 0.0), (10.0, 0.0), (5.0, 10.0)}
    assert polygon_area(hull) == pytest.approx(50.0)
    assert hull_area([(0, 0), (10, 0), (5, 10)]) == pytest.approx(50.0)
