"""Reverse reachability index: which emitter placements light which edge."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..geometry import SIDES, SLOT_COUNT, angle_diff, beam_angle, edge_center_angle, rotation_steps
from ..logging_utils import debug_log_call

logger = logging.getLogger(__name__)


@dataclass
class SolutionSpaceConfig:
    ring_count: int = 3
    slot_count: int = SLOT_COUNT
    ring_tolerances: Tuple[float, ...] = (25.0, 20.0, 15.0)

    def tolerance(self, ring: int) -> float:
        if ring < len(self.ring_tolerances):
            return self.ring_tolerances[ring]
        return self.ring_tolerances[-1]


@dataclass(frozen=True)
class Placement:
    """An emitter at ``slot`` on ``ring`` that reaches an edge after ``rotation``."""

    ring: int
    slot: int
    rotation: int
    steps: int


@dataclass(frozen=True)
class EdgeDifficulty:
    solution_count: int
    min_rotation_steps: int
    difficulty: float


@dataclass
class SolutionSpaceIndex:
    """Forward and reverse reachability maps, read-only once built."""

    forward: Dict[Tuple[int, int, int], Tuple[int, ...]]
    reverse: Dict[int, List[Placement]] = field(default_factory=dict)

    def reachable_edges(self, ring: int, slot: int, rotation: int) -> Tuple[int, ...]:
        return self.forward.get((ring, slot % SLOT_COUNT, rotation % SLOT_COUNT), ())

    def placements_for(
        self, edge: int, ring: Optional[int] = None, rotation: Optional[int] = None
    ) -> List[Placement]:
        placements = self.reverse.get(edge % SIDES, [])
        if ring is not None:
            placements = [p for p in placements if p.ring == ring]
        if rotation is not None:
            placements = [p for p in placements if p.rotation == rotation % SLOT_COUNT]
        return list(placements)

    def edge_difficulty(self, edge: int) -> EdgeDifficulty:
        placements = self.reverse.get(edge % SIDES, [])
        count = len(placements)
        min_steps = min((p.steps for p in placements), default=SLOT_COUNT // 2)
        return EdgeDifficulty(
            solution_count=count,
            min_rotation_steps=min_steps,
            difficulty=1.0 / max(1, count),
        )


class SolutionSpaceAnalyzer:
    """Builds and memoises a :class:`SolutionSpaceIndex`.

    Reachability ignores occlusion: a beam reaches every edge whose centre
    lies within the ring's angular tolerance of the beam direction.
    """

    def __init__(self, config: Optional[SolutionSpaceConfig] = None) -> None:
        self.config = config or SolutionSpaceConfig()
        self._index: Optional[SolutionSpaceIndex] = None
        self.cache_hits = 0
        self.cache_misses = 0

    def clear(self) -> None:
        self._index = None

    @debug_log_call(logger, log_result=False)
    def build_index(self) -> SolutionSpaceIndex:
        if self._index is not None:
            self.cache_hits += 1
            return self._index
        self.cache_misses += 1

        cfg = self.config
        centres = [edge_center_angle(edge) for edge in range(SIDES)]
        forward: Dict[Tuple[int, int, int], Tuple[int, ...]] = {}
        reverse: Dict[int, List[Placement]] = {edge: [] for edge in range(SIDES)}
        for ring in range(cfg.ring_count):
            tol = cfg.tolerance(ring)
            for slot in range(cfg.slot_count):
                for rotation in range(cfg.slot_count):
                    beam = beam_angle(slot, rotation)
                    edges = tuple(e for e, c in enumerate(centres) if angle_diff(beam, c) < tol)
                    forward[(ring, slot, rotation)] = edges
                    for edge in edges:
                        reverse[edge].append(
                            Placement(ring, slot, rotation, rotation_steps(rotation))
                        )
        for placements in reverse.values():
            placements.sort(key=lambda p: (p.steps, p.ring, p.slot))

        self._index = SolutionSpaceIndex(forward=forward, reverse=reverse)
        logger.info(
            "Built solution-space index: %d placements over %d edges",
            len(forward),
            sum(1 for v in reverse.values() if v),
        )
        return self._index

    def edge_difficulty(self, edge: int) -> EdgeDifficulty:
        return self.build_index().edge_difficulty(edge)


__all__ = [
    "EdgeDifficulty",
    "Placement",
    "SolutionSpaceAnalyzer",
    "SolutionSpaceConfig",
    "SolutionSpaceIndex",
]
