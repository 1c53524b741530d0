import logging
import numbers
from typing import Tuple

from .geometry import SIDES, SLOT_COUNT
from .model import RING_COUNT, Puzzle

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = ('easy', 'medium', 'hard')
DEFAULT_DIFFICULTY = 'medium'
MAX_LIT_EDGES = SIDES


class ValidationError(ValueError):
    pass


def _check_slots(values, label: str, limit: int) -> None:
    for value in values:
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise ValidationError(f'{label} must hold integers, got {value!r}')
        if not 0 <= int(value) < limit:
            raise ValidationError(f'{label} value {value} outside 0..{limit - 1}')


def validate_puzzle(puzzle: Puzzle) -> None:
    _check_slots(puzzle.lit_edges, 'lit edges', SIDES)
    if len(puzzle.rings) != RING_COUNT:
        raise ValidationError(f'puzzle needs {RING_COUNT} rings, got {len(puzzle.rings)}')
    radii = [ring.radius for ring in puzzle.rings]
    if len(set(radii)) != len(radii):
        raise ValidationError(f'ring radii must be distinct, got {radii}')
    if any(r <= 0 for r in radii):
        raise ValidationError(f'ring radii must be positive, got {radii}')
    for idx, ring in enumerate(puzzle.rings):
        _check_slots(ring.emitters, f'ring {idx} emitters', SLOT_COUNT)
        _check_slots(ring.blockers, f'ring {idx} blockers', SLOT_COUNT)
        shared = set(ring.emitters) & set(ring.blockers)
        if shared:
            raise ValidationError(
                f'ring {idx} has emitters and blockers sharing slots {sorted(shared)}'
            )


def _as_count(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(f'{name} must be a number, got {type(value).__name__} {value!r}')
    if value != value:  # NaN
        raise ValidationError(f'{name} must be a number, got NaN')
    # inf and huge ints overflow float()
    bound = MAX_LIT_EDGES + 1
    value = min(max(value, -bound), bound)
    return int(round(float(value)))


def normalize_difficulty(difficulty) -> str:
    if isinstance(difficulty, str) and difficulty.strip().lower() in DIFFICULTY_LEVELS:
        return difficulty.strip().lower()
    logger.warning('Unknown difficulty %r; falling back to %s', difficulty, DEFAULT_DIFFICULTY)
    return DEFAULT_DIFFICULTY


def normalize_generation_params(min_lit, max_lit, difficulty) -> Tuple[int, int, str]:
    """Clamp generation parameters into ``1 <= min_lit <= max_lit <= 12``.

    Non-numeric counts raise :class:`ValidationError`; out-of-range numbers and
    unknown difficulty names are corrected instead of rejected.
    """

    lo = _as_count(min_lit, 'min_lit')
    hi = _as_count(max_lit, 'max_lit')
    clamped_lo = min(max(lo, 1), MAX_LIT_EDGES)
    clamped_hi = min(max(hi, clamped_lo), MAX_LIT_EDGES)
    if (clamped_lo, clamped_hi) != (lo, hi):
        logger.info('Clamped lit range (%s, %s) to (%d, %d)', min_lit, max_lit, clamped_lo, clamped_hi)
    return clamped_lo, clamped_hi, normalize_difficulty(difficulty)
