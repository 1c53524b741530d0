"""Post-hoc difficulty report for finished puzzles.

Every element-dependent term grows (or, for aesthetics, shrinks) as emitters
and blockers are added, so a denser puzzle never scores easier than a
sparser one with the same lit edges.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence

from .geometry import SIDES, SLOT_COUNT
from .generator.fitness import estimate_rotations
from .logging_utils import debug_log_call
from .model import Puzzle

logger = logging.getLogger(__name__)

POSITIONS = SLOT_COUNT * 3
MAX_ROTATIONS = 20
CONFLICT_WINDOW_DEG = 45.0
CONFLICT_SCALE = 6.0
CONGESTION_SCALE = 6.0


@dataclass
class BasicMetrics:
    score: float
    total_emitters: int
    total_blockers: int
    num_lit_edges: int
    emitter_density: float
    blocker_density: float
    lit_edge_density: float


@dataclass
class SolutionComplexity:
    score: float
    min_rotations: int
    interdependency: float
    spread: float
    congestion: float
    uniqueness: float
    estimated_solve_time: float


@dataclass
class CognitiveLoad:
    score: float
    working_memory: float
    visual_complexity: float
    pattern_difficulty: float
    estimated_effort: float


@dataclass
class AestheticScore:
    score: float
    symmetry: float
    balance: float
    elegance: float


@dataclass
class DifficultyReport:
    basic_metrics: BasicMetrics
    solution_complexity: SolutionComplexity
    cognitive_load: CognitiveLoad
    aesthetic_score: AestheticScore
    overall_difficulty: float
    difficulty_level: str
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -- basic -------------------------------------------------------------------


def basic_metrics(puzzle: Puzzle) -> BasicMetrics:
    emitters = puzzle.total_emitters
    blockers = puzzle.total_blockers
    lit = len(puzzle.lit_edges)
    score = (min(emitters / 12.0, 1.0) + min(blockers / 8.0, 1.0) + min(lit / 8.0, 1.0)) / 3.0
    return BasicMetrics(
        score=score,
        total_emitters=emitters,
        total_blockers=blockers,
        num_lit_edges=lit,
        emitter_density=emitters / POSITIONS,
        blocker_density=blockers / POSITIONS,
        lit_edge_density=lit / SIDES,
    )


# -- solution complexity -----------------------------------------------------


def _slot_gap(a: int, b: int) -> int:
    d = abs(a - b) % SLOT_COUNT
    return min(d, SLOT_COUNT - d)


def interdependency(puzzle: Puzzle) -> float:
    """Emitters sitting within 45 degrees of a blocker on another ring."""

    window = CONFLICT_WINDOW_DEG / (360.0 / SLOT_COUNT)
    conflicts = 0
    for i, ring in enumerate(puzzle.rings):
        for j, other in enumerate(puzzle.rings):
            if i == j:
                continue
            conflicts += sum(
                1 for e in ring.emitters for b in other.blockers if _slot_gap(e, b) < window
            )
    return min(conflicts / CONFLICT_SCALE, 1.0)


def edge_groups(lit_edges: Sequence[int]) -> int:
    """Number of runs of cyclically consecutive lit edges."""

    lit = set(lit_edges)
    if not lit:
        return 0
    if len(lit) == SIDES:
        return 1
    return sum(1 for edge in lit if (edge - 1) % SIDES not in lit)


def spread(lit_edges: Sequence[int]) -> float:
    count = len(set(lit_edges))
    if count <= 1:
        return 0.0
    return (edge_groups(lit_edges) - 1) / (count - 1)


def congestion(puzzle: Puzzle) -> float:
    """Same-ring elements facing each other across the centre."""

    half = SLOT_COUNT // 2
    pairs = 0
    for ring in puzzle.rings:
        occupied = set(ring.occupied)
        pairs += sum(1 for slot in occupied if slot < half and slot + half in occupied)
    return min(pairs / CONGESTION_SCALE, 1.0)


def uniqueness(puzzle: Puzzle) -> float:
    lit = len(puzzle.lit_edges)
    if lit == 0:
        return 1.0
    return min(puzzle.total_emitters / lit / 3.0, 1.0)


def solution_complexity(puzzle: Puzzle) -> SolutionComplexity:
    rotations = min(estimate_rotations(puzzle), MAX_ROTATIONS)
    inter = interdependency(puzzle)
    scatter = spread(puzzle.lit_edges)
    crowd = congestion(puzzle)
    return SolutionComplexity(
        score=0.4 * inter + 0.3 * scatter + 0.3 * crowd,
        min_rotations=rotations,
        interdependency=inter,
        spread=scatter,
        congestion=crowd,
        uniqueness=uniqueness(puzzle),
        estimated_solve_time=rotations * 2.0 + inter * 5.0,
    )


# -- cognitive load ----------------------------------------------------------


def has_rotational_symmetry(lit_edges: Sequence[int], fold: int) -> bool:
    lit = set(lit_edges)
    step = SIDES // fold
    return bool(lit) and all(
        any((edge + i * step) % SIDES in lit for i in range(1, fold)) for edge in lit
    )


def symmetry_factor(lit_edges: Sequence[int]) -> float:
    best = 0.0
    for fold in (2, 3, 4, 6):
        if has_rotational_symmetry(lit_edges, fold):
            best = max(best, 1.0 / fold)
    return best


def _common_patterns(lit_edges: Sequence[int]) -> float:
    score = 0.0
    if edge_groups(lit_edges) <= 2:
        score += 0.3
    lit = set(lit_edges)
    opposite = sum(1 for edge in lit if (edge + SIDES // 2) % SIDES in lit)
    if opposite >= 2:
        score += 0.3
    return min(score, 1.0)


def _spacing_regularity(lit_edges: Sequence[int]) -> float:
    edges = sorted(set(lit_edges))
    if len(edges) < 2:
        return 1.0
    gaps = [(edges[(i + 1) % len(edges)] - edge) % SIDES or SIDES for i, edge in enumerate(edges)]
    mean = sum(gaps) / len(gaps)
    variance = sum((g - mean) ** 2 for g in gaps) / len(gaps)
    return max(0.0, 1.0 - variance / 10.0)


def cognitive_load(puzzle: Puzzle) -> CognitiveLoad:
    lit = len(puzzle.lit_edges)
    items = lit + puzzle.total_emitters * 0.5 + puzzle.total_blockers * 0.3
    memory = min(items / 9.0, 1.0)
    elements = lit + sum(puzzle.element_counts())
    visual = min(elements / 20.0, 1.0) * (1.0 - symmetry_factor(puzzle.lit_edges) * 0.3)
    pattern = (1.0 - _common_patterns(puzzle.lit_edges)) * 0.6 + (1.0 - _spacing_regularity(puzzle.lit_edges)) * 0.4
    score = (memory + visual + pattern) / 3.0
    return CognitiveLoad(
        score=score,
        working_memory=memory,
        visual_complexity=visual,
        pattern_difficulty=pattern,
        estimated_effort=score * 10.0,
    )


# -- aesthetics --------------------------------------------------------------


def aesthetic_score(puzzle: Puzzle) -> AestheticScore:
    symmetry = symmetry_factor(puzzle.lit_edges)
    # headroom on the busiest ring
    balance = 1.0 - max(puzzle.element_counts(), default=0) / SLOT_COUNT
    total = sum(puzzle.element_counts())
    if total == 0:
        elegance = 1.0
    else:
        penalty = max(0.0, (total - 15) / 10.0)
        elegance = max(0.0, min(1.0, len(puzzle.lit_edges) / total - penalty))
    return AestheticScore(
        score=(symmetry + balance + elegance) / 3.0,
        symmetry=symmetry,
        balance=balance,
        elegance=elegance,
    )


# -- report ------------------------------------------------------------------


def difficulty_level(score: float) -> str:
    if score < 0.3:
        return "easy"
    if score < 0.7:
        return "medium"
    return "hard"


def _recommendations(
    basic: BasicMetrics, complexity: SolutionComplexity, cognitive: CognitiveLoad, aesthetic: AestheticScore
) -> List[str]:
    notes = []
    if basic.emitter_density > 0.8:
        notes.append("Consider reducing the number of emitters for a cleaner puzzle")
    if basic.blocker_density > 0.6:
        notes.append("Too many blockers might make the puzzle frustrating")
    if complexity.min_rotations > 15:
        notes.append("Puzzle might require too many moves; consider simplifying")
    if cognitive.working_memory > 0.8:
        notes.append("High cognitive load; consider reducing visual complexity")
    if aesthetic.symmetry < 0.2:
        notes.append("Adding some symmetry could improve visual appeal")
    if complexity.uniqueness > 0.8:
        notes.append("Many possible solutions; consider adding constraints for focus")
    return notes


@debug_log_call(logger)
def analyze_difficulty(puzzle: Puzzle) -> DifficultyReport:
    basic = basic_metrics(puzzle)
    complexity = solution_complexity(puzzle)
    cognitive = cognitive_load(puzzle)
    aesthetic = aesthetic_score(puzzle)
    overall = (
        basic.score * 0.3
        + complexity.score * 0.4
        + cognitive.score * 0.2
        + (1.0 - aesthetic.score) * 0.1
    )
    overall = min(max(overall, 0.0), 1.0)
    return DifficultyReport(
        basic_metrics=basic,
        solution_complexity=complexity,
        cognitive_load=cognitive,
        aesthetic_score=aesthetic,
        overall_difficulty=overall,
        difficulty_level=difficulty_level(overall),
        recommendations=_recommendations(basic, complexity, cognitive, aesthetic),
    )


__all__ = [
    "AestheticScore",
    "BasicMetrics",
    "CognitiveLoad",
    "DifficultyReport",
    "SolutionComplexity",
    "aesthetic_score",
    "analyze_difficulty",
    "basic_metrics",
    "cognitive_load",
    "congestion",
    "difficulty_level",
    "edge_groups",
    "interdependency",
    "solution_complexity",
    "spread",
]
