"""Core data structures shared by the oracle, analyzers and generators."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence, Tuple

from .geometry import SIDES, SLOT_COUNT

RING_RADII: Tuple[float, float, float] = (50.0, 90.0, 130.0)
RING_COUNT = len(RING_RADII)
BLOCKER_RADIUS = 12.0
EMITTER_RADIUS = 13.0

Rotation = Tuple[int, ...]
Slots = Tuple[int, ...]


def _slots(values: Iterable[int]) -> Slots:
    return tuple(sorted({int(v) for v in values}))


@dataclass(frozen=True)
class Ring:
    """One rotatable ring; emitter and blocker positions are slot indices."""

    radius: float
    emitters: Slots = ()
    blockers: Slots = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "radius", float(self.radius))
        object.__setattr__(self, "emitters", _slots(self.emitters))
        object.__setattr__(self, "blockers", _slots(self.blockers))

    @property
    def occupied(self) -> Slots:
        return tuple(sorted(set(self.emitters) | set(self.blockers)))

    def free_slots(self) -> Slots:
        used = set(self.emitters) | set(self.blockers)
        return tuple(slot for slot in range(SLOT_COUNT) if slot not in used)

    def element_count(self) -> int:
        return len(self.emitters) + len(self.blockers)


@dataclass(frozen=True)
class Puzzle:
    """Target edges plus the three rings, innermost first."""

    lit_edges: Slots
    rings: Tuple[Ring, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "lit_edges", _slots(self.lit_edges))
        object.__setattr__(self, "rings", tuple(self.rings))

    @classmethod
    def from_slots(
        cls,
        lit_edges: Iterable[int],
        emitters: Sequence[Iterable[int]],
        blockers: Optional[Sequence[Iterable[int]]] = None,
        radii: Sequence[float] = RING_RADII,
    ) -> "Puzzle":
        if blockers is None:
            blockers = [()] * len(emitters)
        rings = tuple(
            Ring(radius=radius, emitters=tuple(em), blockers=tuple(bl))
            for radius, em, bl in zip(radii, emitters, blockers)
        )
        return cls(lit_edges=tuple(lit_edges), rings=rings)

    @classmethod
    def empty(cls, radii: Sequence[float] = RING_RADII) -> "Puzzle":
        return cls(lit_edges=(), rings=tuple(Ring(radius=r) for r in radii))

    def with_ring(self, index: int, ring: Ring) -> "Puzzle":
        rings = list(self.rings)
        rings[index] = ring
        return replace(self, rings=tuple(rings))

    def with_lit_edges(self, lit_edges: Iterable[int]) -> "Puzzle":
        return replace(self, lit_edges=tuple(lit_edges))

    @property
    def total_emitters(self) -> int:
        return sum(len(ring.emitters) for ring in self.rings)

    @property
    def total_blockers(self) -> int:
        return sum(len(ring.blockers) for ring in self.rings)

    def emitter_counts(self) -> Tuple[int, ...]:
        return tuple(len(ring.emitters) for ring in self.rings)

    def blocker_counts(self) -> Tuple[int, ...]:
        return tuple(len(ring.blockers) for ring in self.rings)

    def element_counts(self) -> Tuple[int, ...]:
        return tuple(ring.element_count() for ring in self.rings)

    def describe(self) -> str:
        parts = [f"lit={list(self.lit_edges)}"]
        for idx, ring in enumerate(self.rings):
            parts.append(f"r{idx}(e={list(ring.emitters)}, b={list(ring.blockers)})")
        return "Puzzle(" + " ".join(parts) + ")"


def normalize_rotation(rotation: Sequence[int], ring_count: int = RING_COUNT) -> Rotation:
    values = tuple(int(r) % SLOT_COUNT for r in rotation)
    if len(values) != ring_count:
        raise ValueError(f"rotation vector needs {ring_count} entries, got {len(values)}")
    return values


def opposite_edge(edge: int) -> int:
    return (int(edge) + SIDES // 2) % SIDES


__all__ = [
    "BLOCKER_RADIUS",
    "EMITTER_RADIUS",
    "Puzzle",
    "RING_COUNT",
    "RING_RADII",
    "Ring",
    "Rotation",
    "Slots",
    "normalize_rotation",
    "opposite_edge",
]
