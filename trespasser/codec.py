"""Plain-data and JSON serialisation of puzzles."""

from __future__ import annotations

import json
import numbers
from typing import Any, Dict, List, Mapping, Optional

from .geometry import SLOT_OFFSET_DEG, SLOT_STEP_DEG, angle_to_slot, slot_to_angle
from .model import RING_RADII, Puzzle, Ring
from .validate import ValidationError, validate_puzzle


def _ring_to_dict(ring: Ring, legacy: bool) -> Dict[str, Any]:
    if legacy:
        return {
            "radius": ring.radius,
            "lasers": [slot_to_angle(slot) for slot in ring.emitters],
            "blockers": [slot_to_angle(slot) for slot in ring.blockers],
        }
    return {
        "radius": ring.radius,
        "emitters": list(ring.emitters),
        "blockers": list(ring.blockers),
    }


def puzzle_to_dict(puzzle: Puzzle, *, legacy: bool = False) -> Dict[str, Any]:
    """Return ``puzzle`` as nested plain data.

    ``legacy=True`` emits the rendering layer's shape: ``circles`` holding
    ``lasers``/``blockers`` as angles in degrees instead of slot indices.
    """

    rings = [_ring_to_dict(ring, legacy) for ring in puzzle.rings]
    key = "circles" if legacy else "rings"
    return {"litEdges": list(puzzle.lit_edges), key: rings}


def _int_list(value: Any, label: str) -> List[int]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{label} must be a list, got {type(value).__name__}")
    out: List[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, numbers.Integral):
            raise ValidationError(f"{label} must hold integers, got {item!r}")
        out.append(int(item))
    return out


def _angle_list(value: Any, label: str, offset: float) -> List[int]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{label} must be a list, got {type(value).__name__}")
    out: List[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, numbers.Real):
            raise ValidationError(f"{label} must hold angles, got {item!r}")
        out.append(angle_to_slot(float(item), offset))
    return out


def _legacy_offset(raw_rings: Any) -> float:
    """Grid offset of a legacy file: ``0`` when every angle is a multiple of 30."""

    angles = [
        item
        for ring in raw_rings
        if isinstance(ring, Mapping)
        for key in ("lasers", "emitters", "blockers")
        if isinstance(ring.get(key), (list, tuple))
        for item in ring[key]
        if isinstance(item, numbers.Real) and not isinstance(item, bool)
    ]
    if angles and all(angle % SLOT_STEP_DEG == 0 for angle in angles):
        return 0.0
    return SLOT_OFFSET_DEG


def _ring_from_dict(data: Any, index: int, legacy: bool, offset: float = SLOT_OFFSET_DEG) -> Ring:
    if not isinstance(data, Mapping):
        raise ValidationError(f"ring {index} must be an object, got {type(data).__name__}")
    radius = data.get("radius", RING_RADII[index] if index < len(RING_RADII) else None)
    if isinstance(radius, bool) or not isinstance(radius, numbers.Real):
        raise ValidationError(f"ring {index} radius must be a number, got {radius!r}")
    if legacy or "lasers" in data:
        emitters = _angle_list(data.get("lasers", data.get("emitters", [])), f"ring {index} lasers", offset)
        blockers = _angle_list(data.get("blockers", []), f"ring {index} blockers", offset)
    else:
        emitters = _int_list(data.get("emitters", []), f"ring {index} emitters")
        blockers = _int_list(data.get("blockers", []), f"ring {index} blockers")
    return Ring(radius=float(radius), emitters=tuple(emitters), blockers=tuple(blockers))


def puzzle_from_dict(data: Mapping[str, Any]) -> Puzzle:
    """Build a validated :class:`Puzzle` from either serialised shape."""

    if not isinstance(data, Mapping):
        raise ValidationError(f"puzzle must be an object, got {type(data).__name__}")
    lit_edges = _int_list(data.get("litEdges", data.get("lit_edges", [])), "litEdges")
    legacy = "circles" in data and "rings" not in data
    raw_rings = data.get("circles") if legacy else data.get("rings")
    if not isinstance(raw_rings, (list, tuple)):
        raise ValidationError("puzzle needs a 'rings' (or legacy 'circles') list")
    for idx, edge in enumerate(lit_edges):
        if edge in lit_edges[:idx]:
            raise ValidationError(f"litEdges contains duplicate edge {edge}")
    for edge in lit_edges:
        if not 0 <= edge < 12:
            raise ValidationError(f"lit edges value {edge} outside 0..11")
    offset = _legacy_offset(raw_rings) if legacy else SLOT_OFFSET_DEG
    rings = tuple(_ring_from_dict(item, idx, legacy, offset) for idx, item in enumerate(raw_rings))
    puzzle = Puzzle(lit_edges=tuple(lit_edges), rings=rings)
    for idx, (item, ring) in enumerate(zip(raw_rings, rings)):
        declared = len(item.get("lasers", item.get("emitters", []))) + len(item.get("blockers", []))
        if declared != ring.element_count():
            raise ValidationError(f"ring {idx} assigns more than one element to a slot")
    validate_puzzle(puzzle)
    return puzzle


def dumps(puzzle: Puzzle, *, legacy: bool = False, indent: Optional[int] = None) -> str:
    return json.dumps(puzzle_to_dict(puzzle, legacy=legacy), indent=indent)


def loads(text: str) -> Puzzle:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"invalid puzzle JSON: {exc}") from exc
    return puzzle_from_dict(data)


def canonical_key(puzzle: Puzzle) -> str:
    """Compact, order-independent text form used as a cache key."""

    return json.dumps(puzzle_to_dict(puzzle), sort_keys=True, separators=(",", ":"))


__all__ = [
    "canonical_key",
    "dumps",
    "loads",
    "puzzle_from_dict",
    "puzzle_to_dict",
]
