"""Geometry kernel: board constants, angle/slot conversions and ray tests."""

from __future__ import annotations

import math
from typing import Optional, Tuple, Union

import numpy as np

Point = Tuple[float, float]
AngleLike = Union[float, np.ndarray]

SIDES = 12
SLOT_COUNT = 12
SLOT_STEP_DEG = 360.0 / SLOT_COUNT
SLOT_OFFSET_DEG = 15.0
SHAPE_ROTATION_DEG = 15.0
POLYGON_RADIUS = 180.0
CENTER: Point = (200.0, 200.0)
ANGLE_TOLERANCE_DEG = 1.0

_PARALLEL_EPS = 1e-6


def deg_to_rad(deg: AngleLike) -> AngleLike:
    return deg * math.pi / 180.0


def mod360(angle: AngleLike) -> AngleLike:
    """Normalise ``angle`` into ``[0, 360)``; works on scalars and arrays."""

    if isinstance(angle, np.ndarray):
        return np.mod(angle, 360.0)
    return float(angle) % 360.0


def angle_diff(a: AngleLike, b: AngleLike) -> AngleLike:
    """Return the minimal absolute difference between two angles (0..180)."""

    diff = mod360(a) - mod360(b)
    if isinstance(diff, np.ndarray):
        diff = np.abs(diff)
        return np.minimum(diff, 360.0 - diff)
    diff = abs(diff)
    return min(diff, 360.0 - diff)


def is_same_or_opposite(a: float, b: float, tolerance: float = ANGLE_TOLERANCE_DEG) -> bool:
    return angle_diff(a, b) < tolerance or angle_diff(a, b + 180.0) < tolerance


def slot_to_angle(slot: int) -> float:
    return (int(slot) * SLOT_STEP_DEG + SLOT_OFFSET_DEG) % 360.0


def angle_to_slot(angle: float, offset: float = SLOT_OFFSET_DEG) -> int:
    """Nearest slot to ``angle`` on a grid whose slot 0 sits at ``offset`` degrees."""

    normalized = mod360(float(angle) - offset)
    return int(round(normalized / SLOT_STEP_DEG)) % SLOT_COUNT


def rotation_steps(rotation: int) -> int:
    """Shortest number of 30 degree turns, either direction, for ``rotation``."""

    r = int(rotation) % SLOT_COUNT
    return min(r, SLOT_COUNT - r)


# -- beam geometry ---------------------------------------------------------


def emitter_angle(slot: AngleLike, rotation: AngleLike = 0) -> AngleLike:
    """World angle of a slot after ``rotation`` steps, including shape rotation."""

    base = slot * SLOT_STEP_DEG + SLOT_OFFSET_DEG
    return mod360(base + rotation * SLOT_STEP_DEG + SHAPE_ROTATION_DEG)


def beam_angle(slot: AngleLike, rotation: AngleLike = 0) -> AngleLike:
    """Direction of the beam fired from ``slot``: through the centre."""

    return mod360(emitter_angle(slot, rotation) + 180.0)


def edge_center_angle(edge: int, sides: int = SIDES) -> float:
    step = 360.0 / sides
    return mod360(edge * step - 90.0 + SHAPE_ROTATION_DEG + step / 2.0)


def edge_at_angle(angle: float, sides: int = SIDES) -> int:
    step = 360.0 / sides
    offset = mod360(float(angle) - edge_center_angle(0, sides))
    return int(round(offset / step)) % sides


def aligned_edge(slot: int, rotation: int = 0) -> int:
    """Edge whose centre the beam of ``slot`` crosses after ``rotation`` steps."""

    return edge_at_angle(beam_angle(slot, rotation))


def rotation_to_edge(slot: int, edge: int) -> int:
    """Rotation (0..11) that aligns the beam of ``slot`` with ``edge``."""

    return (int(edge) - aligned_edge(slot, 0)) % SLOT_COUNT


def point_on_circle(center: Point, radius: float, angle_deg: float) -> Point:
    rad = deg_to_rad(angle_deg)
    return (center[0] + radius * math.cos(rad), center[1] + radius * math.sin(rad))


def unit_vector(angle_deg: float) -> Point:
    rad = deg_to_rad(angle_deg)
    return (math.cos(rad), math.sin(rad))


# -- polygon ---------------------------------------------------------------


def polygon_vertices(
    sides: int = SIDES,
    radius: float = POLYGON_RADIUS,
    center: Point = CENTER,
    rotation_offset: float = SHAPE_ROTATION_DEG,
) -> np.ndarray:
    """Return the ``(sides, 2)`` vertex array; edge ``i`` runs from vertex ``i`` to ``i + 1``."""

    idx = np.arange(sides, dtype=float)
    angles = 2.0 * np.pi * idx / sides - np.pi / 2.0 + np.deg2rad(rotation_offset)
    return np.column_stack(
        (center[0] + radius * np.cos(angles), center[1] + radius * np.sin(angles))
    )


def polygon_edges(
    sides: int = SIDES,
    radius: float = POLYGON_RADIUS,
    center: Point = CENTER,
    rotation_offset: float = SHAPE_ROTATION_DEG,
) -> np.ndarray:
    """Return edge segments as a ``(sides, 2, 2)`` array of start/end points."""

    vertices = polygon_vertices(sides, radius, center, rotation_offset)
    return np.stack((vertices, np.roll(vertices, -1, axis=0)), axis=1)


# -- ray intersections -----------------------------------------------------


def ray_circle_intersection(
    origin: Point, direction: Point, center: Point, radius: float
) -> Optional[float]:
    """Return the ray parameter of the first contact with a circle, or ``None``.

    Circles behind the origin (non-positive projection) are ignored.
    """

    cx = center[0] - origin[0]
    cy = center[1] - origin[1]
    proj = cx * direction[0] + cy * direction[1]
    if proj <= 0.0:
        return None
    perp2 = (cx * cx + cy * cy) - proj * proj
    r2 = radius * radius
    if perp2 >= r2:
        return None
    return proj - math.sqrt(r2 - perp2)


def ray_segment_intersection(
    origin: Point, direction: Point, a: Point, b: Point
) -> Optional[float]:
    dx, dy = direction
    ex = b[0] - a[0]
    ey = b[1] - a[1]
    denom = dx * ey - dy * ex
    if abs(denom) < _PARALLEL_EPS:
        return None
    wx = a[0] - origin[0]
    wy = a[1] - origin[1]
    t = (wx * ey - wy * ex) / denom
    u = (wx * dy - wy * dx) / denom
    if t > 0.0 and 0.0 <= u <= 1.0:
        return t
    return None


def ray_circle_distances(
    origins: np.ndarray, directions: np.ndarray, centers: np.ndarray, radius: float
) -> np.ndarray:
    """Vectorised :func:`ray_circle_intersection`; misses come back as ``inf``.

    All arrays carry coordinates on the last axis and must broadcast together.
    """

    offset = centers - origins
    proj = np.sum(offset * directions, axis=-1)
    perp2 = np.sum(offset * offset, axis=-1) - proj * proj
    r2 = float(radius) * float(radius)
    hit = (proj > 0.0) & (perp2 < r2)
    t = proj - np.sqrt(np.clip(r2 - perp2, 0.0, None))
    return np.where(hit, t, np.inf)


def ray_segment_distances(
    origins: np.ndarray, directions: np.ndarray, starts: np.ndarray, ends: np.ndarray
) -> np.ndarray:
    """Vectorised :func:`ray_segment_intersection`; misses come back as ``inf``."""

    dx = directions[..., 0]
    dy = directions[..., 1]
    ex = ends[..., 0] - starts[..., 0]
    ey = ends[..., 1] - starts[..., 1]
    wx = starts[..., 0] - origins[..., 0]
    wy = starts[..., 1] - origins[..., 1]
    denom = dx * ey - dy * ex
    parallel = np.abs(denom) < _PARALLEL_EPS
    safe = np.where(parallel, 1.0, denom)
    t = (wx * ey - wy * ex) / safe
    u = (wx * dy - wy * dx) / safe
    hit = ~parallel & (t > 0.0) & (u >= 0.0) & (u <= 1.0)
    return np.where(hit, t, np.inf)


__all__ = [
    "ANGLE_TOLERANCE_DEG",
    "CENTER",
    "POLYGON_RADIUS",
    "Point",
    "SHAPE_ROTATION_DEG",
    "SIDES",
    "SLOT_COUNT",
    "SLOT_OFFSET_DEG",
    "SLOT_STEP_DEG",
    "aligned_edge",
    "angle_diff",
    "angle_to_slot",
    "beam_angle",
    "deg_to_rad",
    "edge_at_angle",
    "edge_center_angle",
    "emitter_angle",
    "is_same_or_opposite",
    "mod360",
    "point_on_circle",
    "polygon_edges",
    "polygon_vertices",
    "ray_circle_distances",
    "ray_circle_intersection",
    "ray_segment_distances",
    "ray_segment_intersection",
    "rotation_steps",
    "rotation_to_edge",
    "slot_to_angle",
    "unit_vector",
]
