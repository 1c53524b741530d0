import json

import pytest

from trespasser import Puzzle, Ring, RING_RADII, ValidationError
from trespasser.codec import canonical_key, dumps, loads, puzzle_from_dict, puzzle_to_dict
from trespasser.model import normalize_rotation, opposite_edge


def _sample():
    return Puzzle.from_slots([4, 1], [[3, 0], [5], [11, 2]], [[7], [], [6]])


def test_puzzle_normalises_slots():
    puzzle = _sample()
    assert puzzle.lit_edges == (1, 4)
    assert puzzle.rings[0].emitters == (0, 3)
    assert [ring.radius for ring in puzzle.rings] == list(RING_RADII)
    assert puzzle.total_emitters == 5
    assert puzzle.total_blockers == 2
    assert puzzle.emitter_counts() == (2, 1, 2)
    assert puzzle.element_counts() == (3, 1, 3)
    assert puzzle.rings[1].free_slots() == tuple(s for s in range(12) if s != 5)


def test_with_ring_returns_a_new_puzzle():
    puzzle = _sample()
    changed = puzzle.with_ring(1, Ring(90.0, (5, 6), ()))
    assert changed.rings[1].emitters == (5, 6)
    assert puzzle.rings[1].emitters == (5,)
    assert changed.with_lit_edges([2]).lit_edges == (2,)


def test_rotation_helpers():
    assert normalize_rotation([13, -1, 4]) == (1, 11, 4)
    with pytest.raises(ValueError):
        normalize_rotation([1, 2])
    assert opposite_edge(3) == 9
    assert opposite_edge(9) == 3


def test_canonical_dict_round_trip():
    puzzle = _sample()
    data = puzzle_to_dict(puzzle)
    assert data == {
        'litEdges': [1, 4],
        'rings': [
            {'radius': 50.0, 'emitters': [0, 3], 'blockers': [7]},
            {'radius': 90.0, 'emitters': [5], 'blockers': []},
            {'radius': 130.0, 'emitters': [2, 11], 'blockers': [6]},
        ],
    }
    assert puzzle_from_dict(data) == puzzle
    assert loads(dumps(puzzle)) == puzzle


def test_legacy_shape_uses_angles():
    puzzle = _sample()
    data = puzzle_to_dict(puzzle, legacy=True)
    assert 'circles' in data and 'rings' not in data
    assert data['circles'][0]['lasers'] == [15.0, 105.0]
    assert data['circles'][0]['blockers'] == [225.0]
    assert puzzle_from_dict(data) == puzzle
    assert loads(dumps(puzzle, legacy=True, indent=2)) == puzzle


def test_legacy_angles_snap_to_slots():
    data = {
        'litEdges': [0],
        'circles': [
            {'radius': 50, 'lasers': [104.0], 'blockers': []},
            {'radius': 90, 'lasers': [], 'blockers': []},
            {'radius': 130, 'lasers': [], 'blockers': []},
        ],
    }
    assert puzzle_from_dict(data).rings[0].emitters == (3,)


def test_legacy_angles_on_thirty_degree_grid():
    data = {
        'litEdges': [0],
        'circles': [
            {'radius': 50, 'lasers': [0, 30], 'blockers': [90]},
            {'radius': 90, 'lasers': [60, 330], 'blockers': []},
            {'radius': 130, 'lasers': [180], 'blockers': [0]},
        ],
    }
    puzzle = puzzle_from_dict(data)
    assert puzzle.rings[0].emitters == (0, 1)
    assert puzzle.rings[0].blockers == (3,)
    assert puzzle.rings[1].emitters == (2, 11)
    assert puzzle.rings[2].emitters == (6,)
    assert loads(json.dumps(data)) == puzzle


def test_mixed_legacy_angles_use_canonical_grid():
    data = {
        'litEdges': [0],
        'circles': [
            {'radius': 50, 'lasers': [15, 45], 'blockers': []},
            {'radius': 90, 'lasers': [74], 'blockers': []},
            {'radius': 130, 'lasers': [], 'blockers': []},
        ],
    }
    puzzle = puzzle_from_dict(data)
    assert puzzle.rings[0].emitters == (0, 1)
    assert puzzle.rings[1].emitters == (2,)


def test_canonical_key_ignores_input_order():
    a = Puzzle.from_slots([3, 1], [[2, 1], [], [4]])
    b = Puzzle.from_slots([1, 3], [[1, 2], [], [4]])
    assert canonical_key(a) == canonical_key(b)
    assert json.loads(canonical_key(a))['litEdges'] == [1, 3]


@pytest.mark.parametrize(
    'data, message_part',
    [
        ({'litEdges': [0, 0], 'rings': []}, 'duplicate'),
        ({'litEdges': [12], 'rings': []}, 'outside'),
        ({'litEdges': [0]}, 'rings'),
        ({'litEdges': ['a'], 'rings': []}, 'integers'),
        ({'litEdges': [0], 'rings': [{'emitters': [1]}, {'emitters': [2]}]}, 'needs 3 rings'),
        (
            {
                'litEdges': [0],
                'rings': [
                    {'radius': 50, 'emitters': [1], 'blockers': [1]},
                    {'radius': 90, 'emitters': [], 'blockers': []},
                    {'radius': 130, 'emitters': [], 'blockers': []},
                ],
            },
            'sharing slots',
        ),
        (
            {
                'litEdges': [0],
                'rings': [
                    {'radius': 50, 'emitters': [1, 1], 'blockers': []},
                    {'radius': 90, 'emitters': [], 'blockers': []},
                    {'radius': 130, 'emitters': [], 'blockers': []},
                ],
            },
            'more than one element',
        ),
        (
            {
                'litEdges': [0],
                'rings': [
                    {'radius': 50, 'emitters': [14], 'blockers': []},
                    {'radius': 90, 'emitters': [], 'blockers': []},
                    {'radius': 130, 'emitters': [], 'blockers': []},
                ],
            },
            'outside',
        ),
        (
            {
                'litEdges': [0],
                'rings': [
                    {'radius': 50, 'emitters': [], 'blockers': []},
                    {'radius': 50, 'emitters': [], 'blockers': []},
                    {'radius': 130, 'emitters': [], 'blockers': []},
                ],
            },
            'distinct',
        ),
    ],
)
def test_malformed_input_is_rejected(data, message_part):
    with pytest.raises(ValidationError) as exc:
        puzzle_from_dict(data)

    assert message_part in str(exc.value)


def test_loads_rejects_invalid_json():
    with pytest.raises(ValidationError):
        loads('{not json')
    with pytest.raises(ValidationError):
        loads('[1, 2, 3]')
