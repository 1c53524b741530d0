"""Objective terms scored by the evolutionary generator."""

from __future__ import annotations

import math
from typing import Dict, Iterable, Sequence, Tuple

from ..geometry import SIDES, rotation_steps, rotation_to_edge
from ..model import Puzzle
from ..oracle import SolvabilityCache, is_heuristically_solvable
from .presets import DifficultyPreset

SYMMETRY_FOLDS = (2, 3, 4, 6)
CROWDED_RING = 4
UNREACHED_EDGE_COST = 3
DIFFICULTY_SIGMA = 2.0


def symmetric_partner_fraction(lit_edges: Sequence[int], folds: Iterable[int] = SYMMETRY_FOLDS) -> float:
    """Best share of lit edges having a rotational partner under any fold."""

    lit = set(lit_edges)
    if not lit:
        return 0.0
    best = 0.0
    for fold in folds:
        step = SIDES // fold
        paired = sum(
            1 for edge in lit if any((edge + i * step) % SIDES in lit for i in range(1, fold))
        )
        best = max(best, paired / len(lit))
    return best


def element_balance(puzzle: Puzzle) -> float:
    counts = puzzle.element_counts()
    total = sum(counts)
    if total == 0:
        return 0.0
    return 1.0 - (max(counts) - min(counts)) / total


def estimate_rotations(puzzle: Puzzle) -> int:
    """Sum over lit edges of the cheapest turn any emitter needs to reach it."""

    slots = [slot for ring in puzzle.rings for slot in ring.emitters]
    total = 0
    for edge in puzzle.lit_edges:
        if not slots:
            total += UNREACHED_EDGE_COST
            continue
        total += min(rotation_steps(rotation_to_edge(slot, edge)) for slot in slots)
    return total


def solvability(puzzle: Puzzle, cache: SolvabilityCache) -> float:
    if not is_heuristically_solvable(puzzle):
        return 0.0
    return 1.0 if cache.is_solvable(puzzle) else 0.0


def difficulty_match(puzzle: Puzzle, target: Tuple[int, int]) -> float:
    estimated = estimate_rotations(puzzle)
    lo, hi = target
    if lo <= estimated <= hi:
        return 1.0
    distance = estimated - (lo + hi) / 2.0
    return math.exp(-distance * distance / (2.0 * DIFFICULTY_SIGMA * DIFFICULTY_SIGMA))


def distribution(puzzle: Puzzle) -> float:
    counts = puzzle.emitter_counts()
    total = sum(counts)
    if total == 0 or min(counts) == 0:
        return 0.0
    return 1.0 - (max(counts) - min(counts)) / total


def variety(puzzle: Puzzle) -> float:
    score = 1.0
    for ring in puzzle.rings:
        if len(ring.emitters) > CROWDED_RING:
            score -= 0.2
    slots = [slot for ring in puzzle.rings for slot in ring.emitters]
    if not slots:
        return 0.0
    return max(0.0, score * len(set(slots)) / len(slots))


def aesthetics(puzzle: Puzzle) -> float:
    return (symmetric_partner_fraction(puzzle.lit_edges) + element_balance(puzzle)) / 2.0


def evaluate(puzzle: Puzzle, preset: DifficultyPreset, cache: SolvabilityCache) -> Tuple[float, Dict[str, float]]:
    """Weighted fitness of ``puzzle`` and its per-term breakdown."""

    breakdown = {
        "solvability": solvability(puzzle, cache),
        "difficulty": difficulty_match(puzzle, preset.target_rotations),
        "distribution": distribution(puzzle),
        "variety": variety(puzzle),
        "aesthetics": aesthetics(puzzle),
    }
    weights = preset.weights.as_dict()
    score = sum(weights[name] * value for name, value in breakdown.items())
    return score, breakdown


__all__ = [
    "aesthetics",
    "difficulty_match",
    "distribution",
    "element_balance",
    "estimate_rotations",
    "evaluate",
    "solvability",
    "symmetric_partner_fraction",
    "variety",
]
