import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from trespasser import (
    EvolutionConfig,
    OracleOptions,
    ValidationError,
    analyze_difficulty,
    edges_hit,
    find_solution,
    generate_result,
    loads,
    puzzle_to_dict,
)
from trespasser.generator import METHODS
from trespasser.validate import DIFFICULTY_LEVELS

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )


def _emit(payload: Dict[str, Any], output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote %s", path)
    else:
        print(text)


def _read_puzzle(path: str):
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Cannot read %s: %s", path, exc)
        raise SystemExit(1)
    try:
        return loads(text)
    except ValidationError as exc:
        logger.error("Invalid puzzle in %s: %s", path, exc)
        raise SystemExit(1)


def _cmd_generate(args: argparse.Namespace) -> None:
    config = None
    if args.method == "evolutionary":
        config = EvolutionConfig.simplified() if args.simplified else EvolutionConfig.full()
    try:
        result = generate_result(
            args.min_lit,
            args.max_lit,
            args.difficulty,
            method=args.method,
            random_seed=args.seed,
            config=config,
        )
    except ValidationError as exc:
        logger.error("Invalid generation parameters: %s", exc)
        raise SystemExit(2)
    logger.info(
        "Generated %s puzzle via %s (fallback=%s) in %.0fms",
        result.metadata.difficulty,
        result.metadata.algorithm,
        result.metadata.fallback,
        result.metadata.elapsed_ms,
    )
    _emit(result.to_dict(legacy=args.legacy), args.output)


def _cmd_check(args: argparse.Namespace) -> None:
    puzzle = _read_puzzle(args.path)
    options = OracleOptions(
        exhaustive=not args.sampled,
        random_seed=args.seed,
        time_budget=args.time_budget,
    )
    solution = find_solution(puzzle, options)
    payload: Dict[str, Any] = {
        "solvable": solution is not None,
        "solution": list(solution) if solution is not None else None,
        "edgesHit": list(edges_hit(puzzle, solution)) if solution is not None else [],
    }
    _emit(payload, args.output)


def _cmd_analyze(args: argparse.Namespace) -> None:
    puzzle = _read_puzzle(args.path)
    report = analyze_difficulty(puzzle)
    _emit({"puzzle": puzzle_to_dict(puzzle), "report": report.to_dict()}, args.output)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Generate and inspect rotating-ring laser puzzles")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for generation and sampled checks",
    )
    parser.add_argument("--output", help="Write JSON to this path instead of stdout")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a puzzle")
    gen.add_argument("--min-lit", type=int, default=3)
    gen.add_argument("--max-lit", type=int, default=5)
    gen.add_argument("--difficulty", default="medium", help=f"One of {', '.join(DIFFICULTY_LEVELS)}")
    gen.add_argument("--method", choices=METHODS, default="constraint")
    gen.add_argument(
        "--simplified",
        action="store_true",
        help="Use the small evolutionary configuration with the sampled oracle",
    )
    gen.add_argument(
        "--legacy",
        action="store_true",
        help="Emit the rendering layer's circles/lasers format",
    )
    gen.set_defaults(handler=_cmd_generate)

    check = sub.add_parser("check", help="Search a puzzle file for a solving rotation")
    check.add_argument("path", help="Puzzle JSON file")
    check.add_argument("--sampled", action="store_true", help="Sample rotations instead of a full search")
    check.add_argument("--time-budget", type=float, default=None, help="Search deadline in seconds")
    check.set_defaults(handler=_cmd_check)

    analyze = sub.add_parser("analyze", help="Print the difficulty report of a puzzle file")
    analyze.add_argument("path", help="Puzzle JSON file")
    analyze.set_defaults(handler=_cmd_analyze)

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    args.handler(args)


if __name__ == "__main__":
    main(sys.argv[1:])
