"""Result containers returned by the generators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..codec import puzzle_to_dict
from ..model import Puzzle, Rotation


@dataclass
class GenerationMetadata:
    algorithm: str
    difficulty: str
    elapsed_ms: float = 0.0
    iterations: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    solvable: bool = False
    fitness: Optional[float] = None
    fitness_breakdown: Dict[str, float] = field(default_factory=dict)
    fallback: bool = False
    solution: Optional[Rotation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "difficulty": self.difficulty,
            "elapsedMs": round(self.elapsed_ms, 3),
            "iterations": self.iterations,
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
            "solvable": self.solvable,
            "fitness": self.fitness,
            "fitnessBreakdown": dict(self.fitness_breakdown),
            "fallback": self.fallback,
            "solution": list(self.solution) if self.solution is not None else None,
        }


@dataclass
class GenerationResult:
    puzzle: Puzzle
    metadata: GenerationMetadata

    def to_dict(self, *, legacy: bool = False) -> Dict[str, Any]:
        return {
            "puzzle": puzzle_to_dict(self.puzzle, legacy=legacy),
            "metadata": self.metadata.to_dict(),
        }


__all__ = ["GenerationMetadata", "GenerationResult"]
