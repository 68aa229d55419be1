#!/usr/bin/env python3
"""
Skyscraper puzzle solver.

Each cell holds a building height 1..N, every row and column is a permutation
of 1..N, and a border clue says how many buildings are visible looking into
that line (taller buildings hide shorter ones behind them).

Rules at https://www.gmpuzzles.com/blog/skyscrapers-rules-and-info/
"""
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, List, Optional, Tuple

from sessions import ENGINES, SolverSession, Status
from skyscraper_puzzle import Direction, Skyscraper, format_layout, load_puzzle
from visibility import visibility_condition, visible_count

log = logging.getLogger(__name__)

PUZZLE_DIR = Path(__file__).resolve().parent / "puzzles"


class SolveError(Exception):
    """The puzzle has no solution (UNSAT) or the solver could not decide (UNKNOWN)."""

    def __init__(self, status: Status) -> None:
        super().__init__(f"Failed to solve ({status.value})")
        self.status = status


# ------------------------
# Constraint assembly
# ------------------------

def _line(X: List[List[Any]], N: int, direction: Direction, index: int) -> List[Any]:
    """Cells of one row/column ordered from the viewer's side."""
    if direction is Direction.EAST:
        return list(X[index])
    if direction is Direction.WEST:
        return list(reversed(X[index]))
    col = [X[r][index] for r in range(N)]
    if direction is Direction.NORTH:
        col.reverse()
    return col


def build_constraints(session: SolverSession, puzzle: Skyscraper) -> Tuple[List[List[Any]], Any]:
    """
    Create one integer term per cell and the formula tying them to the puzzle.
    Returns (X, formula) where X[r][c] is the term for row r, column c.
    """
    N = puzzle.n

    # NxN matrix of integer variables
    X = [[session.int_var(f"x_{r + 1}_{c + 1}", 1, N) for c in range(N)] for r in range(N)]

    # Domain constraints: 1..N
    one, top = session.const(1), session.const(N)
    cells_c = [session.and_([session.le(one, X[r][c]), session.le(X[r][c], top)])
               for r in range(N) for c in range(N)]

    # Rows, columns distinct
    rows_c = [session.distinct(X[r]) for r in range(N)]
    cols_c = [session.distinct([X[r][c] for r in range(N)]) for c in range(N)]

    # Visibility rules
    vis_c = []
    for direction in Direction:
        for i in range(N):
            clue = puzzle.clue(direction, i)
            if clue is not None:
                vis_c.append(visibility_condition(session, clue, _line(X, N, direction, i)))

    # Givens
    instance_c = [session.eq(X[r][c], session.const(puzzle.given(r, c)))
                  for r in range(N) for c in range(N)
                  if puzzle.given(r, c) is not None]

    log.debug("N=%d: %d visibility rules, %d givens", N, len(vis_c), len(instance_c))
    return X, session.and_(cells_c + rows_c + cols_c + vis_c + instance_c)


def extract_grid(session: SolverSession, X: List[List[Any]]) -> List[List[int]]:
    return [[session.value(x) for x in row] for row in X]


# ------------------------
# Solving
# ------------------------

def open_session(
    engine: str = "z3",
    *,
    timeout: Optional[int] = None,
    encoding: str = "pairwise",
    solver_name: str = "g3",
    conflict_budget: Optional[int] = None,
) -> SolverSession:
    """Fresh session for one puzzle. timeout (ms) is z3 only, the rest pysat only."""
    if engine == "z3":
        return ENGINES[engine](timeout=timeout)
    if engine == "pysat":
        return ENGINES[engine](solver_name=solver_name, encoding=encoding,
                               conflict_budget=conflict_budget)
    raise ValueError(f"Unknown engine: {engine!r} (expected one of {sorted(ENGINES)})")


def solve(
    puzzle: Skyscraper,
    *,
    engine: str = "z3",
    timeout: Optional[int] = None,
    encoding: str = "pairwise",
    solver_name: str = "g3",
    conflict_budget: Optional[int] = None,
) -> List[List[int]]:
    """
    Solve a skyscraper puzzle and return the N×N grid of heights, indexed
    [row][col]. Raises SolveError if the puzzle is unsolvable or undecided.
    """
    start = time.perf_counter()
    with open_session(engine, timeout=timeout, encoding=encoding,
                      solver_name=solver_name, conflict_budget=conflict_budget) as session:
        X, formula = build_constraints(session, puzzle)
        session.add(formula)
        status = session.check()
        if status is not Status.SAT:
            log.info("%d×%d puzzle: %s after %.1fms", puzzle.n, puzzle.n, status.value,
                     (time.perf_counter() - start) * 1000)
            raise SolveError(status)
        grid = extract_grid(session, X)
    log.info("%d×%d puzzle solved with %s in %.1fms", puzzle.n, puzzle.n, engine,
             (time.perf_counter() - start) * 1000)
    return grid


def check_solution(puzzle: Skyscraper, grid: List[List[int]]) -> List[str]:
    """List every rule the grid breaks; empty when it is a valid answer."""
    N = puzzle.n
    problems = []
    if len(grid) != N or any(len(row) != N for row in grid):
        return [f"grid is not {N}×{N}"]
    expected = set(range(1, N + 1))
    for r in range(N):
        if set(grid[r]) != expected:
            problems.append(f"row {r + 1} is not a permutation of 1..{N}")
    for c in range(N):
        if {grid[r][c] for r in range(N)} != expected:
            problems.append(f"column {c + 1} is not a permutation of 1..{N}")
    for r in range(N):
        for c in range(N):
            v = puzzle.given(r, c)
            if v is not None and grid[r][c] != v:
                problems.append(f"cell ({r + 1},{c + 1}) is {grid[r][c]}, given {v}")
    for direction in Direction:
        for i in range(N):
            clue = puzzle.clue(direction, i)
            if clue is None:
                continue
            seen = visible_count(_line(grid, N, direction, i))
            if seen != clue:
                problems.append(f"looking {direction.value} into line {i + 1}: "
                                f"{seen} visible, clue {clue}")
    return problems


def print_grid(grid: List[List[int]]) -> None:
    for row in grid:
        print(" " + " ".join(str(v) for v in row))
    print()


# ------------------------
# Command line
# ------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Solve skyscraper puzzles")
    parser.add_argument("puzzles", nargs="*", type=Path,
                        help="Puzzle layout files (default: the bundled examples)")
    parser.add_argument("--engine", choices=sorted(ENGINES), default="z3",
                        help="Constraint engine")
    parser.add_argument("--timeout", type=int, default=None,
                        help="z3 timeout in milliseconds")
    parser.add_argument("--encoding", choices=["pairwise", "seq", "cardnet"], default="pairwise",
                        help="pysat at-most-one encoding")
    parser.add_argument("--solver", default="g3", help="pysat solver name")
    parser.add_argument("--conflict-budget", type=int, default=None,
                        help="pysat conflict budget")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")
    paths = args.puzzles or sorted(PUZZLE_DIR.glob("*.txt"))
    start = time.perf_counter()
    failures = 0
    for path in paths:
        try:
            puzzle = load_puzzle(path)
            print(f"Solving {path}:")
            for s in format_layout(puzzle):
                print(" " + s)
            grid = solve(puzzle, engine=args.engine, timeout=args.timeout,
                         encoding=args.encoding, solver_name=args.solver,
                         conflict_budget=args.conflict_budget)
        except (OSError, ValueError, SolveError) as e:
            log.error("%s: %s", path, e)
            failures += 1
            continue
        print("Solution:")
        print_grid(grid)
    log.info("Finished in %.0fms", (time.perf_counter() - start) * 1000)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
