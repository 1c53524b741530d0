import logging

import pytest

from trespasser import Puzzle, Ring, ValidationError, normalize_generation_params, validate_puzzle
from trespasser.validate import normalize_difficulty


@pytest.mark.parametrize(
    'args, expected',
    [
        ((3, 5, 'easy'), (3, 5, 'easy')),
        ((5, 3, 'hard'), (5, 5, 'hard')),
        ((0, 20, 'medium'), (1, 12, 'medium')),
        ((-4, -2, 'medium'), (1, 1, 'medium')),
        ((2.6, 4.2, 'Easy '), (3, 4, 'easy')),
        ((13, 14, 'hard'), (12, 12, 'hard')),
        ((3, float('inf'), 'easy'), (3, 12, 'easy')),
        ((float('-inf'), 2, 'easy'), (1, 2, 'easy')),
        ((3, 10 ** 400, 'easy'), (3, 12, 'easy')),
        ((-(10 ** 400), 4, 'medium'), (1, 4, 'medium')),
    ],
)
def test_generation_params_are_clamped(args, expected):
    assert normalize_generation_params(*args) == expected


def test_unknown_difficulty_falls_back_to_medium(caplog):
    with caplog.at_level(logging.WARNING):
        assert normalize_generation_params(3, 4, 'nightmare') == (3, 4, 'medium')
    assert 'nightmare' in caplog.text
    assert normalize_difficulty(None) == 'medium'


@pytest.mark.parametrize('bad', ['3', None, True, float('nan'), [3]])
def test_non_numeric_counts_fail_fast(bad):
    with pytest.raises(ValidationError) as exc:
        normalize_generation_params(bad, 5, 'medium')

    assert 'min_lit' in str(exc.value)


def test_validate_puzzle_accepts_well_formed_puzzle():
    validate_puzzle(Puzzle.from_slots([0, 3], [[3], [1, 2], [7]], [[9], [], [0]]))


def test_validate_puzzle_rejects_structural_errors():
    with pytest.raises(ValidationError):
        validate_puzzle(Puzzle(lit_edges=(0,), rings=(Ring(50.0, (1,)), Ring(90.0, (2,)))))
    with pytest.raises(ValidationError):
        validate_puzzle(Puzzle.from_slots([0], [[1], [], []], [[1], [], []]))
    with pytest.raises(ValidationError):
        validate_puzzle(Puzzle.from_slots([0], [[12], [], []]))
    with pytest.raises(ValidationError):
        validate_puzzle(Puzzle.from_slots([0], [[1], [], []], radii=(50.0, 0.0, 130.0)))
