"""Solvability oracle: beam tracing over ring rotation vectors."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .codec import canonical_key
from .geometry import (
    ANGLE_TOLERANCE_DEG,
    CENTER,
    SIDES,
    SLOT_COUNT,
    angle_diff,
    beam_angle,
    edge_center_angle,
    emitter_angle,
    is_same_or_opposite,
    point_on_circle,
    polygon_edges,
    ray_circle_distances,
    ray_circle_intersection,
    ray_segment_distances,
    ray_segment_intersection,
    slot_to_angle,
    unit_vector,
)
from .logging_utils import debug_log_call
from .model import BLOCKER_RADIUS, EMITTER_RADIUS, RING_COUNT, Puzzle, Rotation, normalize_rotation, opposite_edge

logger = logging.getLogger(__name__)

ROTATION_COUNT = SLOT_COUNT ** RING_COUNT


@dataclass
class OracleOptions:
    """Search options for :func:`find_solution`."""

    exhaustive: bool = True
    samples: int = 500
    random_seed: Optional[int] = None
    time_budget: Optional[float] = None
    chunk_size: int = 144


@dataclass(frozen=True)
class BeamHit:
    """Outcome of a single traced beam.

    ``kind`` is ``"edge"``, ``"blocker"``, ``"emitter"`` or ``"none"``;
    ``index`` is the edge index or the slot of the obstacle on ``ring``.
    """

    kind: str
    index: Optional[int]
    distance: float
    origin: Tuple[float, float]
    end: Tuple[float, float]
    ring: Optional[int] = None


_ROTATIONS: Optional[np.ndarray] = None
_EDGES = polygon_edges()


def rotation_space() -> np.ndarray:
    """Every rotation vector as a read-only ``(1728, 3)`` array, lexicographic."""

    global _ROTATIONS
    if _ROTATIONS is None:
        grid = np.array(list(itertools.product(range(SLOT_COUNT), repeat=RING_COUNT)), dtype=int)
        grid.setflags(write=False)
        _ROTATIONS = grid
    return _ROTATIONS


@dataclass
class _Layout:
    radii: np.ndarray
    emitter_ring: np.ndarray
    emitter_slot: np.ndarray
    blocker_ring: np.ndarray
    blocker_slot: np.ndarray
    blocker_mask: np.ndarray  # (E, B): blocker can occlude the emitter's beam


def _layout(puzzle: Puzzle) -> _Layout:
    e_ring: List[int] = []
    e_slot: List[int] = []
    b_ring: List[int] = []
    b_slot: List[int] = []
    for idx, ring in enumerate(puzzle.rings):
        e_ring.extend([idx] * len(ring.emitters))
        e_slot.extend(ring.emitters)
        b_ring.extend([idx] * len(ring.blockers))
        b_slot.extend(ring.blockers)
    mask = np.ones((len(e_slot), len(b_slot)), dtype=bool)
    for i, (er, es) in enumerate(zip(e_ring, e_slot)):
        for j, (br, bs) in enumerate(zip(b_ring, b_slot)):
            if er == br:
                # same ring blockers rotate with the emitter; only the beam line matters
                mask[i, j] = is_same_or_opposite(slot_to_angle(es), slot_to_angle(bs))
    return _Layout(
        radii=np.array([ring.radius for ring in puzzle.rings], dtype=float),
        emitter_ring=np.array(e_ring, dtype=int),
        emitter_slot=np.array(e_slot, dtype=int),
        blocker_ring=np.array(b_ring, dtype=int),
        blocker_slot=np.array(b_slot, dtype=int),
        blocker_mask=mask,
    )


def _positions(layout: _Layout, rings: np.ndarray, slots: np.ndarray, rotations: np.ndarray) -> np.ndarray:
    angles = np.deg2rad(emitter_angle(slots[None, :], rotations[:, rings]))
    radius = layout.radii[rings][None, :]
    return np.stack(
        (CENTER[0] + radius * np.cos(angles), CENTER[1] + radius * np.sin(angles)), axis=-1
    )


def _hit_matrix(layout: _Layout, rotations: np.ndarray) -> np.ndarray:
    n = rotations.shape[0]
    e_count = layout.emitter_slot.size
    hits = np.zeros((n, SIDES), dtype=bool)
    if e_count == 0 or n == 0:
        return hits

    origins = _positions(layout, layout.emitter_ring, layout.emitter_slot, rotations)
    beams = np.deg2rad(beam_angle(layout.emitter_slot[None, :], rotations[:, layout.emitter_ring]))
    directions = np.stack((np.cos(beams), np.sin(beams)), axis=-1)
    o = origins[:, :, None, :]
    d = directions[:, :, None, :]

    edge_t = ray_segment_distances(o, d, _EDGES[None, None, :, 0, :], _EDGES[None, None, :, 1, :])
    edge_idx = np.argmin(edge_t, axis=-1)
    edge_best = np.min(edge_t, axis=-1)

    other = ray_circle_distances(o, d, origins[:, None, :, :], EMITTER_RADIUS)
    other[:, np.arange(e_count), np.arange(e_count)] = np.inf
    blocked = np.min(other, axis=-1)

    if layout.blocker_slot.size:
        blockers = _positions(layout, layout.blocker_ring, layout.blocker_slot, rotations)
        bt = ray_circle_distances(o, d, blockers[:, None, :, :], BLOCKER_RADIUS)
        bt = np.where(layout.blocker_mask[None, :, :], bt, np.inf)
        blocked = np.minimum(blocked, np.min(bt, axis=-1))

    reached = np.isfinite(edge_best) & (edge_best < blocked)
    rows, cols = np.nonzero(reached)
    hits[rows, edge_idx[rows, cols]] = True
    return hits


def hit_matrix(puzzle: Puzzle, rotations: np.ndarray) -> np.ndarray:
    """Boolean ``(N, 12)`` matrix of edges reached under each rotation row."""

    rotations = np.mod(np.atleast_2d(np.asarray(rotations, dtype=int)), SLOT_COUNT)
    if rotations.shape[-1] != len(puzzle.rings):
        raise ValueError(f"rotation rows need {len(puzzle.rings)} entries, got {rotations.shape[-1]}")
    return _hit_matrix(_layout(puzzle), rotations)


def edges_hit(puzzle: Puzzle, rotation: Sequence[int]) -> Tuple[int, ...]:
    rot = normalize_rotation(rotation, len(puzzle.rings))
    row = hit_matrix(puzzle, np.array([rot]))[0]
    return tuple(int(e) for e in np.flatnonzero(row))


def is_hit_by_rotation(puzzle: Puzzle, rotation: Sequence[int]) -> Tuple[int, ...]:
    """Return the lit edges reached under ``rotation``."""

    reached = set(edges_hit(puzzle, rotation))
    return tuple(edge for edge in puzzle.lit_edges if edge in reached)


def _candidate_rotations(options: OracleOptions) -> np.ndarray:
    space = rotation_space()
    if options.exhaustive or options.samples >= ROTATION_COUNT:
        return space
    rng = np.random.default_rng(options.random_seed)
    picks = rng.choice(ROTATION_COUNT, size=max(1, int(options.samples)), replace=False)
    return space[picks]


@debug_log_call(logger)
def find_solution(puzzle: Puzzle, options: Optional[OracleOptions] = None) -> Optional[Rotation]:
    """First rotation vector lighting every lit edge, or ``None``.

    Returns ``None`` as well when ``options.time_budget`` expires before a
    solution turns up.
    """

    options = options or OracleOptions()
    if not puzzle.lit_edges:
        return (0,) * len(puzzle.rings)
    if puzzle.total_emitters < len(puzzle.lit_edges):
        return None

    layout = _layout(puzzle)
    lit = np.array(puzzle.lit_edges, dtype=int)
    candidates = _candidate_rotations(options)
    chunk = max(1, int(options.chunk_size))
    deadline = None
    if options.time_budget is not None:
        deadline = time.perf_counter() + float(options.time_budget)

    for start in range(0, candidates.shape[0], chunk):
        block = candidates[start:start + chunk]
        solved = _hit_matrix(layout, block)[:, lit].all(axis=1)
        if solved.any():
            return tuple(int(v) for v in block[int(np.argmax(solved))])
        if deadline is not None and time.perf_counter() > deadline:
            logger.warning(
                "Solvability search hit its %.3fs budget after %d of %d rotations",
                options.time_budget,
                start + block.shape[0],
                candidates.shape[0],
            )
            return None
    return None


def solving_rotations(puzzle: Puzzle) -> List[Rotation]:
    """Every rotation vector lighting all lit edges."""

    space = rotation_space()
    if not puzzle.lit_edges:
        return [tuple(int(v) for v in row) for row in space]
    hits = _hit_matrix(_layout(puzzle), space)
    solved = hits[:, np.array(puzzle.lit_edges, dtype=int)].all(axis=1)
    return [tuple(int(v) for v in row) for row in space[solved]]


def is_heuristically_solvable(puzzle: Puzzle) -> bool:
    """Cheap necessary conditions; ``False`` means unsolvable for certain."""

    lit = puzzle.lit_edges
    if not lit:
        return True
    if puzzle.total_emitters < len(lit):
        return False
    # opposite edges share one beam line, so they can never be lit together
    lit_set = set(lit)
    if any(opposite_edge(edge) in lit_set for edge in lit):
        return False
    window = 180.0 / SIDES
    for edge in lit:
        target = edge_center_angle(edge)
        if not any(
            angle_diff(beam_angle(slot, rot), target) < window
            for ring in puzzle.rings
            for slot in ring.emitters
            for rot in range(SLOT_COUNT)
        ):
            return False
    return True


def is_solvable(puzzle: Puzzle, options: Optional[OracleOptions] = None) -> bool:
    if not puzzle.lit_edges:
        return True
    if not is_heuristically_solvable(puzzle):
        return False
    return find_solution(puzzle, options) is not None


def trace_beam(puzzle: Puzzle, rotation: Sequence[int], ring: int, slot: int) -> BeamHit:
    """Trace the beam of the emitter at ``slot`` on ``ring`` with scalar geometry."""

    rot = normalize_rotation(rotation, len(puzzle.rings))
    source = puzzle.rings[ring]
    if slot not in source.emitters:
        raise ValueError(f"ring {ring} has no emitter at slot {slot}")
    origin = point_on_circle(CENTER, source.radius, emitter_angle(slot, rot[ring]))
    direction = unit_vector(beam_angle(slot, rot[ring]))

    best = BeamHit("none", None, float("inf"), origin, origin)
    for idx, (a, b) in enumerate(_EDGES):
        t = ray_segment_intersection(origin, direction, tuple(a), tuple(b))
        if t is not None and t < best.distance:
            best = BeamHit("edge", idx, t, origin, origin)

    def consider(kind: str, ring_idx: int, other: int, radius: float) -> None:
        nonlocal best
        center = point_on_circle(CENTER, puzzle.rings[ring_idx].radius, emitter_angle(other, rot[ring_idx]))
        t = ray_circle_intersection(origin, direction, center, radius)
        # ties go to the obstacle
        if t is not None and t <= best.distance:
            best = BeamHit(kind, other, t, origin, origin, ring_idx)

    for ring_idx, other_ring in enumerate(puzzle.rings):
        for other in other_ring.emitters:
            if ring_idx == ring and other == slot:
                continue
            consider("emitter", ring_idx, other, EMITTER_RADIUS)
        for other in other_ring.blockers:
            if ring_idx == ring and not is_same_or_opposite(
                slot_to_angle(slot), slot_to_angle(other), ANGLE_TOLERANCE_DEG
            ):
                continue
            consider("blocker", ring_idx, other, BLOCKER_RADIUS)

    if best.kind == "none":
        return best
    end = (origin[0] + direction[0] * best.distance, origin[1] + direction[1] * best.distance)
    return BeamHit(best.kind, best.index, best.distance, origin, end, best.ring)


class SolvabilityCache:
    """Memoised :func:`is_solvable` keyed by the puzzle's canonical form."""

    def __init__(self, options: Optional[OracleOptions] = None) -> None:
        self.options = options or OracleOptions()
        self._entries: Dict[str, bool] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def record(self, puzzle: Puzzle, solvable: bool) -> None:
        """Store a verdict proven elsewhere, e.g. by construction."""

        self._entries[canonical_key(puzzle)] = bool(solvable)

    def is_solvable(self, puzzle: Puzzle) -> bool:
        key = canonical_key(puzzle)
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        result = is_solvable(puzzle, self.options)
        self._entries[key] = result
        return result


__all__ = [
    "BeamHit",
    "OracleOptions",
    "ROTATION_COUNT",
    "SolvabilityCache",
    "edges_hit",
    "find_solution",
    "hit_matrix",
    "is_heuristically_solvable",
    "is_hit_by_rotation",
    "is_solvable",
    "rotation_space",
    "solving_rotations",
    "trace_beam",
]
