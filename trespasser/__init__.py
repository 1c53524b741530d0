from .model import Puzzle, Ring, RING_RADII, normalize_rotation
from .validate import validate_puzzle, normalize_generation_params, ValidationError
from .codec import puzzle_to_dict, puzzle_from_dict, dumps, loads, canonical_key
from .geometry import polygon_vertices, polygon_edges, slot_to_angle, angle_to_slot
from .oracle import (
    OracleOptions,
    BeamHit,
    SolvabilityCache,
    edges_hit,
    find_solution,
    hit_matrix,
    is_heuristically_solvable,
    is_hit_by_rotation,
    is_solvable,
    rotation_space,
    solving_rotations,
    trace_beam,
)
from .generator import (
    generate,
    generate_result,
    ConstraintConstructor,
    EvolutionaryGenerator,
    EvolutionConfig,
    GenerationMetadata,
    GenerationResult,
    SolutionSpaceAnalyzer,
    SolutionSpaceConfig,
)
from .difficulty import analyze_difficulty, DifficultyReport

__all__ = [
    'Puzzle',
    'Ring',
    'RING_RADII',
    'normalize_rotation',
    'validate_puzzle',
    'normalize_generation_params',
    'ValidationError',
    'puzzle_to_dict',
    'puzzle_from_dict',
    'dumps',
    'loads',
    'canonical_key',
    'polygon_vertices',
    'polygon_edges',
    'slot_to_angle',
    'angle_to_slot',
    'OracleOptions',
    'BeamHit',
    'SolvabilityCache',
    'edges_hit',
    'find_solution',
    'hit_matrix',
    'is_heuristically_solvable',
    'is_hit_by_rotation',
    'is_solvable',
    'rotation_space',
    'solving_rotations',
    'trace_beam',
    'generate',
    'generate_result',
    'ConstraintConstructor',
    'EvolutionaryGenerator',
    'EvolutionConfig',
    'GenerationMetadata',
    'GenerationResult',
    'SolutionSpaceAnalyzer',
    'SolutionSpaceConfig',
    'analyze_difficulty',
    'DifficultyReport',
]
