import numpy as np
import pytest

from trespasser import is_solvable, validate_puzzle
from trespasser.generator import Chromosome, EvolutionConfig, EvolutionaryGenerator, PRESETS, get_preset
from trespasser.generator import fitness
from trespasser.model import Puzzle
from trespasser.oracle import OracleOptions, SolvabilityCache


def _small_config(**overrides):
    params = dict(population_size=8, max_generations=4, seed_fraction=0.25)
    params.update(overrides)
    return EvolutionConfig(**params)


def _assert_invariants(chrom, lit_range):
    assert lit_range[0] <= len(chrom.lit_edges) <= lit_range[1]
    assert chrom.lit_edges == sorted(set(chrom.lit_edges))
    for ring in range(3):
        assert chrom.emitters[ring]
        assert not set(chrom.emitters[ring]) & set(chrom.blockers[ring])
        assert all(0 <= s < 12 for s in chrom.emitters[ring] + chrom.blockers[ring])


def test_presets_are_ordered_and_weighted():
    easy, medium, hard = PRESETS['easy'], PRESETS['medium'], PRESETS['hard']
    for attr in ('lit_edges', 'target_rotations', 'emitters', 'blockers', 'planted_steps'):
        assert getattr(easy, attr) <= getattr(medium, attr) <= getattr(hard, attr)
    for preset in PRESETS.values():
        assert preset.weights.total() == pytest.approx(1.0)
    assert get_preset('bogus') is medium


def test_config_presets():
    full = EvolutionConfig.full()
    simple = EvolutionConfig.simplified()
    assert (full.population_size, full.max_generations) == (60, 50)
    assert full.oracle.exhaustive
    assert (simple.population_size, simple.max_generations) == (20, 15)
    assert not simple.oracle.exhaustive
    assert simple.oracle.samples == 500
    assert EvolutionConfig.simplified(patience=3).patience == 3


def test_fitness_terms():
    balanced = Puzzle.from_slots([0, 6], [[3], [4], [5]], [[1], [2], [0]])
    lopsided = Puzzle.from_slots([0], [[1, 2, 3, 4, 5], [], []])

    assert fitness.distribution(balanced) == pytest.approx(1.0)
    assert fitness.distribution(lopsided) == 0.0
    assert fitness.variety(balanced) == pytest.approx(1.0)
    assert fitness.variety(lopsided) == pytest.approx(0.8)
    assert fitness.symmetric_partner_fraction([0, 6]) == pytest.approx(1.0)
    assert fitness.symmetric_partner_fraction([0, 1]) == 0.0
    assert fitness.symmetric_partner_fraction([]) == 0.0
    assert fitness.aesthetics(balanced) == pytest.approx(1.0)


def test_rotation_estimate_counts_turns_in_either_direction():
    puzzle = Puzzle.from_slots([0, 1, 11], [[3], [], []])
    assert fitness.estimate_rotations(puzzle) == 2
    assert fitness.estimate_rotations(Puzzle.from_slots([0, 1], [[], [], []])) == 6


def test_difficulty_match_is_gaussian_outside_target():
    inside = Puzzle.from_slots([0, 1, 11], [[3], [], []])
    assert fitness.difficulty_match(inside, (2, 4)) == 1.0
    below = fitness.difficulty_match(inside, (6, 10))
    assert 0.0 < below < 1.0
    assert below == pytest.approx(np.exp(-(2 - 8) ** 2 / 8.0))


def test_solvability_term_uses_cache():
    cache = SolvabilityCache()
    puzzle = Puzzle.from_slots([0], [[3], [], []])
    assert fitness.solvability(puzzle, cache) == 1.0
    assert fitness.solvability(puzzle, cache) == 1.0
    assert cache.hits == 1
    assert fitness.solvability(Puzzle.from_slots([0, 6], [[3], [9], []]), cache) == 0.0


def test_repair_restores_invariants():
    generator = EvolutionaryGenerator(_small_config(), random_seed=0)
    chrom = Chromosome(
        lit_edges=[0, 1, 2, 3, 4, 5, 7],
        emitters=[[], [3, 3, 15], []],
        blockers=[[1], [3, 4], list(range(12))],
    )
    generator.repair(chrom, (3, 5))
    _assert_invariants(chrom, (3, 5))
    assert chrom.emitters[1] == [3]
    assert chrom.blockers[1] == [4]


def test_operators_keep_genomes_valid():
    generator = EvolutionaryGenerator(_small_config(), random_seed=1)
    preset = get_preset('medium')
    lit_range = preset.lit_edges
    parents = [generator._random_chromosome(preset, lit_range) for _ in range(6)]
    for parent in parents:
        _assert_invariants(generator.repair(parent, lit_range), lit_range)
    for i in range(200):
        child = generator._crossover(parents[i % 6], parents[(i + 1) % 6], lit_range)
        generator._mutate(child, lit_range)
        generator.repair(child, lit_range)
        _assert_invariants(child, lit_range)


def test_generate_puzzle_returns_valid_puzzle_and_metadata():
    generator = EvolutionaryGenerator(_small_config(), random_seed=4)
    result = generator.generate_puzzle('medium')
    puzzle = result.puzzle
    meta = result.metadata

    validate_puzzle(puzzle)
    assert all(ring.emitters for ring in puzzle.rings)
    assert 3 <= len(puzzle.lit_edges) <= 5
    assert meta.algorithm == 'evolutionary'
    assert 1 <= meta.iterations <= 4
    assert meta.cache_hits + meta.cache_misses > 0
    assert set(meta.fitness_breakdown) == {'solvability', 'difficulty', 'distribution', 'variety', 'aesthetics'}
    assert meta.solvable == is_solvable(puzzle)
    assert len(generator.history) == meta.iterations


def test_explicit_lit_range_overrides_preset():
    generator = EvolutionaryGenerator(_small_config(max_generations=2), random_seed=2)
    result = generator.generate_puzzle('hard', min_lit=2, max_lit=2)
    assert len(result.puzzle.lit_edges) == 2


def test_time_budget_stops_early():
    config = _small_config(max_generations=50, patience=100, quality_threshold=2.0, time_budget=0.0)
    result = EvolutionaryGenerator(config, random_seed=3).generate_puzzle('easy')
    assert result.metadata.iterations == 1


def test_every_ring_stays_populated_across_generations():
    config = _small_config(
        population_size=6,
        max_generations=100,
        patience=1000,
        quality_threshold=2.0,
        seed_fraction=0.0,
        oracle=OracleOptions(exhaustive=False, samples=40),
    )
    generator = EvolutionaryGenerator(config, random_seed=9)
    seen = []
    breed = generator._next_generation

    def _checked(population, lit_range):
        offspring = breed(population, lit_range)
        for chrom in offspring:
            _assert_invariants(chrom, lit_range)
        seen.append(len(offspring))
        return offspring

    generator._next_generation = _checked
    result = generator.generate_puzzle('medium')

    assert result.metadata.iterations == 100
    assert len(seen) == 99
    assert all(ring.emitters for ring in result.puzzle.rings)
