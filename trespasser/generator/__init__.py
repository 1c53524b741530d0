"""Generation facade over the constraint constructor and the evolutionary search."""

from __future__ import annotations

import logging
from typing import Optional

from ..logging_utils import debug_log_call
from ..model import Puzzle
from ..validate import ValidationError, normalize_generation_params
from .constructor import ConstraintConstructor
from .evolution import Chromosome, EvolutionConfig, EvolutionaryGenerator
from .model import GenerationMetadata, GenerationResult
from .presets import PRESETS, DifficultyPreset, FitnessWeights, get_preset
from .solution_space import (
    EdgeDifficulty,
    Placement,
    SolutionSpaceAnalyzer,
    SolutionSpaceConfig,
    SolutionSpaceIndex,
)

logger = logging.getLogger(__name__)

METHODS = ("constraint", "evolutionary")


@debug_log_call(logger, log_result=False)
def generate_result(
    min_lit,
    max_lit,
    difficulty="medium",
    *,
    method: str = "constraint",
    random_seed: Optional[int] = None,
    config: Optional[EvolutionConfig] = None,
    analyzer: Optional[SolutionSpaceAnalyzer] = None,
) -> GenerationResult:
    """Generate one puzzle and report how it was produced.

    ``method="evolutionary"`` runs the genetic search; when its best genome
    turns out unsolvable the constructor's output is returned instead, with
    ``metadata.fallback`` set.
    """

    if method not in METHODS:
        raise ValidationError(f"unknown generation method {method!r}; expected one of {METHODS}")
    lo, hi, level = normalize_generation_params(min_lit, max_lit, difficulty)
    analyzer = analyzer or SolutionSpaceAnalyzer()

    if method == "constraint":
        return ConstraintConstructor(analyzer=analyzer, random_seed=random_seed).construct(lo, hi, level)

    generator = EvolutionaryGenerator(config=config, analyzer=analyzer, random_seed=random_seed)
    result = generator.generate_puzzle(level, lo, hi)
    if result.metadata.solvable:
        return result

    logger.warning(
        "Evolutionary result %s is not solvable; falling back to construction",
        result.puzzle.describe(),
    )
    constructor = ConstraintConstructor(analyzer=analyzer, random_seed=random_seed)
    fallback = constructor.construct(lo, hi, level)
    fallback.metadata.fallback = True
    fallback.metadata.iterations += result.metadata.iterations
    fallback.metadata.elapsed_ms += result.metadata.elapsed_ms
    fallback.metadata.cache_hits += result.metadata.cache_hits
    fallback.metadata.cache_misses += result.metadata.cache_misses
    return fallback


def generate(
    min_lit,
    max_lit,
    difficulty="medium",
    *,
    method: str = "constraint",
    random_seed: Optional[int] = None,
    config: Optional[EvolutionConfig] = None,
) -> Puzzle:
    return generate_result(
        min_lit, max_lit, difficulty, method=method, random_seed=random_seed, config=config
    ).puzzle


__all__ = [
    "Chromosome",
    "ConstraintConstructor",
    "DifficultyPreset",
    "EdgeDifficulty",
    "EvolutionConfig",
    "EvolutionaryGenerator",
    "FitnessWeights",
    "GenerationMetadata",
    "GenerationResult",
    "METHODS",
    "PRESETS",
    "Placement",
    "SolutionSpaceAnalyzer",
    "SolutionSpaceConfig",
    "SolutionSpaceIndex",
    "generate",
    "generate_result",
    "get_preset",
]
