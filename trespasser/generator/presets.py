"""Difficulty presets shared by the constructor and the evolutionary generator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..validate import DEFAULT_DIFFICULTY, normalize_difficulty

logger = logging.getLogger(__name__)

Range = Tuple[int, int]


@dataclass(frozen=True)
class FitnessWeights:
    solvability: float = 0.45
    difficulty: float = 0.2
    distribution: float = 0.15
    variety: float = 0.1
    aesthetics: float = 0.1

    def total(self) -> float:
        return self.solvability + self.difficulty + self.distribution + self.variety + self.aesthetics

    def as_dict(self) -> Dict[str, float]:
        return {
            "solvability": self.solvability,
            "difficulty": self.difficulty,
            "distribution": self.distribution,
            "variety": self.variety,
            "aesthetics": self.aesthetics,
        }


@dataclass(frozen=True)
class DifficultyPreset:
    """Tuning surface for one tier; every range is inclusive."""

    name: str
    lit_edges: Range
    target_rotations: Range
    emitters: Range
    blockers: Range
    planted_steps: Range
    blockers_per_ring: Range
    weights: FitnessWeights = field(default_factory=FitnessWeights)


PRESETS: Dict[str, DifficultyPreset] = {
    "easy": DifficultyPreset(
        name="easy",
        lit_edges=(2, 3),
        target_rotations=(2, 4),
        emitters=(4, 6),
        blockers=(1, 3),
        planted_steps=(0, 2),
        blockers_per_ring=(1, 1),
        weights=FitnessWeights(0.5, 0.15, 0.15, 0.1, 0.1),
    ),
    "medium": DifficultyPreset(
        name="medium",
        lit_edges=(3, 5),
        target_rotations=(4, 7),
        emitters=(5, 8),
        blockers=(2, 4),
        planted_steps=(1, 3),
        blockers_per_ring=(1, 1),
        weights=FitnessWeights(0.45, 0.2, 0.15, 0.1, 0.1),
    ),
    "hard": DifficultyPreset(
        name="hard",
        lit_edges=(4, 6),
        target_rotations=(6, 10),
        emitters=(6, 9),
        blockers=(3, 6),
        planted_steps=(2, 5),
        blockers_per_ring=(1, 2),
        weights=FitnessWeights(0.4, 0.25, 0.15, 0.1, 0.1),
    ),
}


def get_preset(name) -> DifficultyPreset:
    """Return the preset for ``name``; unknown names resolve to medium."""

    return PRESETS.get(normalize_difficulty(name), PRESETS[DEFAULT_DIFFICULTY])


__all__ = ["DifficultyPreset", "FitnessWeights", "PRESETS", "Range", "get_preset"]
