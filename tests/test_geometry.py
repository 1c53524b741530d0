import math

import numpy as np
import pytest

from trespasser.geometry import (
    CENTER,
    POLYGON_RADIUS,
    SIDES,
    aligned_edge,
    angle_diff,
    angle_to_slot,
    beam_angle,
    edge_at_angle,
    edge_center_angle,
    is_same_or_opposite,
    mod360,
    polygon_edges,
    polygon_vertices,
    ray_circle_distances,
    ray_circle_intersection,
    ray_segment_distances,
    ray_segment_intersection,
    rotation_steps,
    rotation_to_edge,
    slot_to_angle,
)


@pytest.mark.parametrize('slot', range(12))
def test_slot_angle_round_trip(slot):
    angle = slot_to_angle(slot)
    assert angle == pytest.approx(15.0 + 30.0 * slot)
    assert angle_to_slot(angle) == slot
    # off-grid angles snap to the nearest slot
    assert slot_to_angle(angle_to_slot(angle + 9.0)) == pytest.approx(angle)
    assert slot_to_angle(angle_to_slot(angle - 9.0 + 360.0)) == pytest.approx(angle)


def test_angle_helpers():
    assert mod360(-30.0) == pytest.approx(330.0)
    assert angle_diff(350.0, 10.0) == pytest.approx(20.0)
    assert np.allclose(angle_diff(np.array([0.0, 90.0]), np.array([180.0, 270.0])), [180.0, 180.0])
    assert is_same_or_opposite(105.0, 285.0)
    assert is_same_or_opposite(105.0, 105.5)
    assert not is_same_or_opposite(105.0, 135.0)


def test_angle_to_slot_on_unshifted_grid():
    assert [angle_to_slot(30.0 * k, offset=0.0) for k in range(12)] == list(range(12))
    assert angle_to_slot(-30.0, offset=0.0) == 11


def test_polygon_has_twelve_points_and_chained_edges():
    vertices = polygon_vertices(SIDES, POLYGON_RADIUS, CENTER, 15.0)
    edges = polygon_edges(SIDES, POLYGON_RADIUS, CENTER, 15.0)

    assert vertices.shape == (12, 2)
    assert edges.shape == (12, 2, 2)
    for i in range(SIDES):
        assert np.allclose(edges[i, 0], vertices[i])
        assert np.allclose(edges[i, 1], vertices[(i + 1) % SIDES])
        assert math.hypot(vertices[i, 0] - CENTER[0], vertices[i, 1] - CENTER[1]) == pytest.approx(POLYGON_RADIUS)


def test_edge_centres_match_vertex_midpoints():
    vertices = polygon_vertices()
    for edge in range(SIDES):
        mid = (vertices[edge] + vertices[(edge + 1) % SIDES]) / 2.0
        angle = math.degrees(math.atan2(mid[1] - CENTER[1], mid[0] - CENTER[0]))
        assert angle_diff(angle, edge_center_angle(edge)) == pytest.approx(0.0, abs=1e-9)
        assert edge_at_angle(edge_center_angle(edge)) == edge


@pytest.mark.parametrize('slot', range(12))
def test_beam_alignment_is_consistent(slot):
    for rotation in range(12):
        edge = aligned_edge(slot, rotation)
        assert edge == (slot + rotation + 9) % 12
        assert angle_diff(beam_angle(slot, rotation), edge_center_angle(edge)) == pytest.approx(0.0, abs=1e-9)
    for edge in range(12):
        assert aligned_edge(slot, rotation_to_edge(slot, edge)) == edge


def test_rotation_steps_are_bidirectional():
    assert rotation_steps(0) == 0
    assert rotation_steps(1) == 1
    assert rotation_steps(11) == 1
    assert rotation_steps(6) == 6
    assert rotation_steps(-2) == 2


def test_ray_circle_intersection():
    assert ray_circle_intersection((0.0, 0.0), (1.0, 0.0), (10.0, 0.0), 2.0) == pytest.approx(8.0)
    # circles behind the origin never count
    assert ray_circle_intersection((0.0, 0.0), (1.0, 0.0), (-10.0, 0.0), 2.0) is None
    assert ray_circle_intersection((0.0, 0.0), (1.0, 0.0), (10.0, 3.0), 2.0) is None


def test_ray_segment_intersection():
    assert ray_segment_intersection((0.0, 0.0), (1.0, 0.0), (5.0, -1.0), (5.0, 1.0)) == pytest.approx(5.0)
    assert ray_segment_intersection((0.0, 0.0), (1.0, 0.0), (5.0, 1.0), (5.0, 2.0)) is None
    assert ray_segment_intersection((0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (5.0, 1.0)) is None
    assert ray_segment_intersection((0.0, 0.0), (1.0, 0.0), (-5.0, -1.0), (-5.0, 1.0)) is None


def test_vectorised_intersections_match_scalar_forms():
    origins = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 1.0]])
    directions = np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
    centre = np.array([10.0, 0.0])

    distances = ray_circle_distances(origins, directions, centre, 2.0)
    for i in range(3):
        scalar = ray_circle_intersection(tuple(origins[i]), tuple(directions[i]), tuple(centre), 2.0)
        if scalar is None:
            assert np.isinf(distances[i])
        else:
            assert distances[i] == pytest.approx(scalar)

    starts = np.array([5.0, -1.0])
    ends = np.array([5.0, 1.0])
    seg = ray_segment_distances(origins, directions, starts, ends)
    assert seg[0] == pytest.approx(5.0)
    assert np.isinf(seg[1])
    assert np.isinf(seg[2])
