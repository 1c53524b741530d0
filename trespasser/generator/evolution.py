"""Genetic search over whole puzzle genomes."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import numpy as np

from ..geometry import SIDES, SLOT_COUNT
from ..logging_utils import debug_log_call
from ..model import RING_COUNT, RING_RADII, Puzzle
from ..oracle import OracleOptions, SolvabilityCache, find_solution
from ..validate import normalize_difficulty, normalize_generation_params
from . import fitness
from .constructor import MAX_SOLVABLE_LIT, ConstraintConstructor
from .model import GenerationMetadata, GenerationResult
from .presets import DifficultyPreset, Range, get_preset
from .solution_space import SolutionSpaceAnalyzer

logger = logging.getLogger(__name__)

LIT_MUTATION_P = 0.1
EMITTER_MUTATION_P = 0.15
BLOCKER_MUTATION_P = 0.1


@dataclass
class EvolutionConfig:
    population_size: int = 60
    max_generations: int = 50
    elite_ratio: float = 0.2
    crossover_rate: float = 0.8
    mutation_rate: float = 0.3
    tournament_size: int = 3
    patience: int = 10
    quality_threshold: float = 0.7
    seed_fraction: float = 0.2
    time_budget: Optional[float] = None
    oracle: OracleOptions = field(default_factory=OracleOptions)

    @classmethod
    def full(cls, **overrides) -> "EvolutionConfig":
        return cls(**overrides)

    @classmethod
    def simplified(cls, **overrides) -> "EvolutionConfig":
        """Smaller population with the sampled oracle."""

        params = dict(
            population_size=20,
            max_generations=15,
            oracle=OracleOptions(exhaustive=False, samples=500),
        )
        params.update(overrides)
        return cls(**params)


@dataclass
class Chromosome:
    lit_edges: List[int]
    emitters: List[List[int]]
    blockers: List[List[int]]
    fitness: float = 0.0
    breakdown: Dict[str, float] = field(default_factory=dict)
    solvable: bool = False
    evaluated: bool = False

    @classmethod
    def from_puzzle(cls, puzzle: Puzzle) -> "Chromosome":
        return cls(
            lit_edges=list(puzzle.lit_edges),
            emitters=[list(ring.emitters) for ring in puzzle.rings],
            blockers=[list(ring.blockers) for ring in puzzle.rings],
        )

    def to_puzzle(self) -> Puzzle:
        return Puzzle.from_slots(self.lit_edges, self.emitters, self.blockers, RING_RADII)

    def copy(self, keep_score: bool = True) -> "Chromosome":
        clone = Chromosome(
            lit_edges=list(self.lit_edges),
            emitters=[list(slots) for slots in self.emitters],
            blockers=[list(slots) for slots in self.blockers],
        )
        if keep_score:
            clone.fitness = self.fitness
            clone.breakdown = dict(self.breakdown)
            clone.solvable = self.solvable
            clone.evaluated = self.evaluated
        return clone

    def free_slots(self, ring: int) -> List[int]:
        used = set(self.emitters[ring]) | set(self.blockers[ring])
        return [slot for slot in range(SLOT_COUNT) if slot not in used]


class EvolutionaryGenerator:
    """Evolves puzzles towards a difficulty preset.

    Each instance owns its random generator and its solvability cache; the
    cache is cleared at the start of every :meth:`generate_puzzle` call.
    """

    def __init__(
        self,
        config: Optional[EvolutionConfig] = None,
        analyzer: Optional[SolutionSpaceAnalyzer] = None,
        random_seed: Optional[int] = None,
    ) -> None:
        self.config = config or EvolutionConfig.full()
        self.analyzer = analyzer or SolutionSpaceAnalyzer()
        self.rng = np.random.default_rng(random_seed)
        self.cache = SolvabilityCache(self.config.oracle)
        self.history: List[float] = []

    # -- public API --------------------------------------------------------

    @debug_log_call(logger)
    def generate_puzzle(self, difficulty="medium", min_lit=None, max_lit=None) -> GenerationResult:
        start = time.perf_counter()
        level = normalize_difficulty(difficulty)
        preset = get_preset(level)
        lit_range = self._lit_range(preset, min_lit, max_lit)
        cfg = self.config

        oracle = cfg.oracle
        if not oracle.exhaustive and oracle.random_seed is None:
            oracle = replace(oracle, random_seed=int(self.rng.integers(2 ** 31)))
        self.cache.options = oracle
        self.cache.clear()
        self.history = []

        deadline = start + cfg.time_budget if cfg.time_budget is not None else None
        logger.info(
            "Evolving %s puzzle: population=%d generations=%d lit=%s",
            level,
            cfg.population_size,
            cfg.max_generations,
            lit_range,
        )
        population = self._init_population(preset, lit_range, level)

        best: Optional[Chromosome] = None
        stale = 0
        generation = 0
        while generation < cfg.max_generations:
            self._evaluate(population, preset)
            population.sort(key=lambda c: c.fitness, reverse=True)
            current = population[0]
            if best is None or current.fitness > best.fitness:
                best = current.copy()
                stale = 0
            else:
                stale += 1
            self.history.append(current.fitness)
            if generation % 10 == 0:
                logger.info("Generation %d: best fitness %.3f", generation, current.fitness)
            else:
                logger.debug("Generation %d: best fitness %.3f", generation, current.fitness)
            generation += 1

            if best.solvable and best.fitness > cfg.quality_threshold:
                logger.debug("Quality threshold reached at generation %d", generation)
                break
            if stale > cfg.patience:
                logger.debug("No improvement for %d generations; stopping", stale)
                break
            if deadline is not None and time.perf_counter() > deadline:
                logger.warning("Evolution hit its %.3fs budget after %d generation(s)", cfg.time_budget, generation)
                break
            if generation < cfg.max_generations:
                population = self._next_generation(population, lit_range)

        assert best is not None
        puzzle = best.to_puzzle()
        solution = find_solution(puzzle)
        elapsed = (time.perf_counter() - start) * 1000.0
        logger.info(
            "Evolution finished: fitness=%.3f generations=%d solvable=%s time=%.0fms",
            best.fitness,
            generation,
            solution is not None,
            elapsed,
        )
        meta = GenerationMetadata(
            algorithm="evolutionary",
            difficulty=level,
            elapsed_ms=elapsed,
            iterations=generation,
            cache_hits=self.cache.hits,
            cache_misses=self.cache.misses,
            solvable=solution is not None,
            fitness=best.fitness,
            fitness_breakdown=dict(best.breakdown),
            solution=solution,
        )
        return GenerationResult(puzzle, meta)

    # -- population --------------------------------------------------------

    def _lit_range(self, preset: DifficultyPreset, min_lit, max_lit) -> Range:
        lo, hi = preset.lit_edges
        if min_lit is not None or max_lit is not None:
            lo, hi, _ = normalize_generation_params(
                lo if min_lit is None else min_lit,
                hi if max_lit is None else max_lit,
                preset.name,
            )
        return min(lo, MAX_SOLVABLE_LIT), min(hi, MAX_SOLVABLE_LIT)

    def _random_chromosome(self, preset: DifficultyPreset, lit_range: Range) -> Chromosome:
        count = int(self.rng.integers(lit_range[0], lit_range[1] + 1))
        lit = sorted(int(e) for e in self.rng.choice(SIDES, size=count, replace=False))
        chrom = Chromosome(lit_edges=lit, emitters=[[] for _ in range(RING_COUNT)], blockers=[[] for _ in range(RING_COUNT)])

        total = int(self.rng.integers(preset.emitters[0], preset.emitters[1] + 1))
        for ring in range(RING_COUNT):
            chrom.emitters[ring].append(int(self.rng.integers(SLOT_COUNT)))
        for _ in range(max(0, total - RING_COUNT)):
            self._add_to_ring(chrom, chrom.emitters, int(self.rng.integers(RING_COUNT)))

        blockers = int(self.rng.integers(preset.blockers[0], preset.blockers[1] + 1))
        for _ in range(blockers):
            self._add_to_ring(chrom, chrom.blockers, int(self.rng.integers(RING_COUNT)))
        return chrom

    def _init_population(self, preset: DifficultyPreset, lit_range: Range, level: str) -> List[Chromosome]:
        size = max(2, int(self.config.population_size))
        seeded = min(size, int(round(size * self.config.seed_fraction)))
        population: List[Chromosome] = []
        if seeded:
            constructor = ConstraintConstructor(
                analyzer=self.analyzer, random_seed=int(self.rng.integers(2 ** 31))
            )
            for _ in range(seeded):
                built = constructor.construct(lit_range[0], lit_range[1], level)
                # proven at the planted rotation; a sampled oracle could miss it
                self.cache.record(built.puzzle, built.metadata.solvable)
                population.append(Chromosome.from_puzzle(built.puzzle))
        while len(population) < size:
            population.append(self._random_chromosome(preset, lit_range))
        logger.debug("Initial population: %d seeded, %d random", seeded, size - seeded)
        return population

    def _evaluate(self, population: List[Chromosome], preset: DifficultyPreset) -> None:
        for chrom in population:
            if chrom.evaluated:
                continue
            score, breakdown = fitness.evaluate(chrom.to_puzzle(), preset, self.cache)
            chrom.fitness = score
            chrom.breakdown = breakdown
            chrom.solvable = breakdown["solvability"] >= 1.0
            chrom.evaluated = True

    def _next_generation(self, population: List[Chromosome], lit_range: Range) -> List[Chromosome]:
        cfg = self.config
        size = len(population)
        elite = max(1, int(size * cfg.elite_ratio))
        offspring = [chrom.copy() for chrom in population[:elite]]
        while len(offspring) < size:
            first = self._tournament(population)
            second = self._tournament(population)
            if self.rng.random() < cfg.crossover_rate:
                child = self._crossover(first, second, lit_range)
            else:
                child = first.copy(keep_score=False)
            if self.rng.random() < cfg.mutation_rate:
                self._mutate(child, lit_range)
            self.repair(child, lit_range)
            offspring.append(child)
        return offspring

    # -- operators ---------------------------------------------------------

    def _tournament(self, population: List[Chromosome]) -> Chromosome:
        picks = self.rng.integers(len(population), size=max(1, self.config.tournament_size))
        return max((population[int(i)] for i in picks), key=lambda c: c.fitness)

    def _crossover(self, first: Chromosome, second: Chromosome, lit_range: Range) -> Chromosome:
        edges: List[int] = []
        for edge in first.lit_edges + second.lit_edges:
            if edge not in edges:
                edges.append(edge)
        target = int(self.rng.integers(lit_range[0], lit_range[1] + 1))
        child = Chromosome(lit_edges=sorted(edges[:target]), emitters=[], blockers=[])
        for ring in range(RING_COUNT):
            parent = first if self.rng.random() < 0.5 else second
            child.emitters.append(list(parent.emitters[ring]))
            child.blockers.append(list(parent.blockers[ring]))
        return child

    def _add_to_ring(self, chrom: Chromosome, slots: List[List[int]], ring: int) -> bool:
        free = chrom.free_slots(ring)
        if not free:
            return False
        slots[ring].append(int(self.rng.choice(free)))
        return True

    def _mutate_slots(self, chrom: Chromosome, slots: List[List[int]], ring: int) -> None:
        items = slots[ring]
        if items and self.rng.random() < 0.5:
            free = chrom.free_slots(ring)
            if free:
                items[int(self.rng.integers(len(items)))] = int(self.rng.choice(free))
        elif items and self.rng.random() < 0.5:
            items.pop(int(self.rng.integers(len(items))))
        else:
            self._add_to_ring(chrom, slots, ring)

    def _mutate(self, chrom: Chromosome, lit_range: Range) -> None:
        if self.rng.random() < LIT_MUTATION_P:
            if self.rng.random() < 0.5 and len(chrom.lit_edges) > lit_range[0]:
                chrom.lit_edges.pop(int(self.rng.integers(len(chrom.lit_edges))))
            elif len(chrom.lit_edges) < lit_range[1]:
                spare = [e for e in range(SIDES) if e not in chrom.lit_edges]
                chrom.lit_edges.append(int(self.rng.choice(spare)))
                chrom.lit_edges.sort()
        for ring in range(RING_COUNT):
            if self.rng.random() < EMITTER_MUTATION_P:
                self._mutate_slots(chrom, chrom.emitters, ring)
            if self.rng.random() < BLOCKER_MUTATION_P:
                self._mutate_slots(chrom, chrom.blockers, ring)
        chrom.evaluated = False

    def repair(self, chrom: Chromosome, lit_range: Range) -> Chromosome:
        """Restore the genome invariants in place."""

        lit = sorted(set(int(e) % SIDES for e in chrom.lit_edges))
        while len(lit) > lit_range[1]:
            lit.pop(int(self.rng.integers(len(lit))))
        while len(lit) < lit_range[0]:
            spare = [e for e in range(SIDES) if e not in lit]
            lit.append(int(self.rng.choice(spare)))
        chrom.lit_edges = sorted(lit)

        for ring in range(RING_COUNT):
            emitters = sorted(set(int(s) % SLOT_COUNT for s in chrom.emitters[ring]))
            blockers = sorted(set(int(s) % SLOT_COUNT for s in chrom.blockers[ring]) - set(emitters))
            if not emitters:
                if len(blockers) >= SLOT_COUNT:
                    blockers.pop(int(self.rng.integers(len(blockers))))
                free = [s for s in range(SLOT_COUNT) if s not in blockers]
                emitters = [int(self.rng.choice(free))]
            chrom.emitters[ring] = emitters
            chrom.blockers[ring] = blockers

        assert lit_range[0] <= len(chrom.lit_edges) <= lit_range[1]
        assert all(chrom.emitters[ring] for ring in range(RING_COUNT))
        assert all(not set(chrom.emitters[r]) & set(chrom.blockers[r]) for r in range(RING_COUNT))
        chrom.evaluated = False
        return chrom


__all__ = ["Chromosome", "EvolutionConfig", "EvolutionaryGenerator"]
