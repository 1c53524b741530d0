from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pytest

from trespasser import (
    ConstraintConstructor,
    EvolutionConfig,
    EvolutionaryGenerator,
    SolutionSpaceAnalyzer,
    analyze_difficulty,
    generate_result,
    is_hit_by_rotation,
    is_solvable,
)


@dataclass
class StatisticsCase:
    case_id: str
    difficulty: str
    runs: int
    min_solvable: int


EVOLUTION_CASES = [
    StatisticsCase("medium-simplified", "medium", runs=50, min_solvable=45),
]


@pytest.fixture(scope="module")
def analyzer() -> SolutionSpaceAnalyzer:
    return SolutionSpaceAnalyzer()


@pytest.mark.parametrize("case", EVOLUTION_CASES, ids=lambda case: case.case_id)
def test_simplified_evolution_is_mostly_solvable(case: StatisticsCase, analyzer) -> None:
    solvable = 0
    for seed in range(case.runs):
        generator = EvolutionaryGenerator(EvolutionConfig.simplified(), analyzer=analyzer, random_seed=seed)
        result = generator.generate_puzzle(case.difficulty)
        assert all(ring.emitters for ring in result.puzzle.rings)
        if result.metadata.solvable:
            solvable += 1
    assert solvable >= case.min_solvable, f"{solvable}/{case.runs} solvable"


@pytest.mark.parametrize("difficulty", ["easy", "medium", "hard"])
def test_constructor_always_solvable(difficulty: str, analyzer) -> None:
    constructor = ConstraintConstructor(analyzer=analyzer, random_seed=99)
    for _ in range(100):
        result = constructor.construct(1, 6, difficulty)
        assert result.metadata.solvable
        assert is_hit_by_rotation(result.puzzle, result.metadata.solution) == result.puzzle.lit_edges


def test_facade_never_returns_unsolvable(analyzer) -> None:
    config = EvolutionConfig.simplified(population_size=10, max_generations=5)
    for seed in range(10):
        result = generate_result(3, 5, "hard", method="evolutionary", random_seed=seed, config=config, analyzer=analyzer)
        assert is_solvable(result.puzzle)


def test_denser_tiers_report_higher_difficulty(analyzer) -> None:
    averages: List[float] = []
    for difficulty in ("easy", "hard"):
        constructor = ConstraintConstructor(analyzer=analyzer, random_seed=7)
        scores = [
            analyze_difficulty(constructor.construct(*_tier_range(difficulty), difficulty).puzzle).overall_difficulty
            for _ in range(40)
        ]
        averages.append(sum(scores) / len(scores))
    assert averages[0] < averages[1]


def _tier_range(difficulty: str):
    return (2, 3) if difficulty == "easy" else (4, 6)
