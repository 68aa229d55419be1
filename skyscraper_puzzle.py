#!/usr/bin/env python3
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

Clues = Tuple[Optional[int], ...]


class Direction(Enum):
    """Which way the viewer looks into a line of the grid."""
    SOUTH = "south"  # from above each column, top-to-bottom
    NORTH = "north"  # from below each column, bottom-to-top
    EAST = "east"    # from the left of each row, left-to-right
    WEST = "west"    # from the right of each row, right-to-left


# ------------------------
# Grid model
# ------------------------

@dataclass(frozen=True)
class Skyscraper:
    """
    An N×N skyscraper puzzle. Cell values are 1..N.
    initial_values is indexed [row][col]; None marks an unknown cell.
    Clue arrays are indexed by column (south/north) or row (east/west).
    """
    n: int
    initial_values: Tuple[Tuple[Optional[int], ...], ...]
    col_looking_south: Clues
    col_looking_north: Clues
    row_looking_east: Clues
    row_looking_west: Clues

    def __post_init__(self) -> None:
        N = self.n
        if N < 1:
            raise ValueError(f"Grid size must be at least 1; got N={N}")

        rows = tuple(tuple(row) for row in self.initial_values)
        if len(rows) != N or any(len(row) != N for row in rows):
            raise ValueError(f"Initial values must be a {N}×{N} grid")
        for r in range(N):
            for c in range(N):
                v = rows[r][c]
                if v is not None and not (1 <= v <= N):
                    raise ValueError(f"Cell ({r},{c}) value {v} out of range 1..{N}")
        object.__setattr__(self, "initial_values", rows)

        for direction in Direction:
            attr = _CLUE_ATTRS[direction]
            clues = tuple(getattr(self, attr))
            if len(clues) != N:
                raise ValueError(f"{attr} must have {N} entries; got {len(clues)}")
            for i, clue in enumerate(clues):
                if clue is not None and not (1 <= clue <= N):
                    raise ValueError(f"{attr}[{i}] clue {clue} out of range 1..{N}")
            object.__setattr__(self, attr, clues)

    @classmethod
    def empty(cls, n: int) -> "Skyscraper":
        """A puzzle with no given values and no clues."""
        blank = (None,) * n
        return cls(n, (blank,) * n, blank, blank, blank, blank)

    def given(self, row: int, col: int) -> Optional[int]:
        return self.initial_values[row][col]

    def clue(self, direction: Direction, index: int) -> Optional[int]:
        return getattr(self, _CLUE_ATTRS[direction])[index]


_CLUE_ATTRS = {
    Direction.SOUTH: "col_looking_south",
    Direction.NORTH: "col_looking_north",
    Direction.EAST: "row_looking_east",
    Direction.WEST: "row_looking_west",
}


# ------------------------
# Layout parsing
# ------------------------

def _digit_or_none(ch: str, *, interior: bool) -> Optional[int]:
    if ch in " .":
        return None
    if ch.isdigit():
        return int(ch)
    where = "cell" if interior else "clue"
    raise ValueError(f"Unexpected {where} character {ch!r}")


def parse_layout(lines: Sequence[str]) -> Skyscraper:
    """
    Parse a bordered layout, e.g. a 6×6 puzzle:

        "   3 33 "
        " ...... "
        "2......4"
        ...
        "  5 5   "

    The first and last lines hold column clues (looking south / north), the
    first and last characters of every other line hold row clues (looking
    east / west). Clues and cells are digits, or ' ' / '.' when absent;
    the four corners must be ' '.
    """
    if len(lines) < 3:
        raise ValueError("Layout needs at least 3 lines (one row plus borders)")
    width = len(lines[0]) - 2
    height = len(lines) - 2
    if width != height:
        raise ValueError(f"Layout is not square: {width} wide, {height} high")
    N = width
    for i, s in enumerate(lines):
        if len(s) != N + 2:
            raise ValueError(f"Line {i} has length {len(s)}; expected {N + 2}")
    for ch in (lines[0][0], lines[0][N + 1], lines[N + 1][0], lines[N + 1][N + 1]):
        if ch != " ":
            raise ValueError("Layout corners must be blank")

    south = [_digit_or_none(lines[0][c + 1], interior=False) for c in range(N)]
    north = [_digit_or_none(lines[N + 1][c + 1], interior=False) for c in range(N)]
    east = [_digit_or_none(lines[r + 1][0], interior=False) for r in range(N)]
    west = [_digit_or_none(lines[r + 1][N + 1], interior=False) for r in range(N)]
    values = [[_digit_or_none(lines[r + 1][c + 1], interior=True) for c in range(N)]
              for r in range(N)]
    return Skyscraper(N, values, south, north, east, west)


def load_puzzle(path: Union[str, Path]) -> Skyscraper:
    """
    Read a layout file. Lines starting with '#' are comments and trailing
    empty lines are ignored. Shorter lines are right-padded with blanks, but at
    least one line must span the full width: write '.' for a blank border
    cell if an editor would strip it.
    """
    text = Path(path).read_text(encoding="utf-8")
    lines = [s for s in text.splitlines() if not s.startswith("#")]
    while lines and lines[-1] == "":
        lines.pop()
    width = max((len(s) for s in lines), default=0)
    if width != len(lines):
        raise ValueError(f"{path}: layout is {width} wide but {len(lines)} lines high")
    return parse_layout([s.ljust(width) for s in lines])


def format_layout(puzzle: Skyscraper) -> List[str]:
    """Render a puzzle back into its bordered layout lines."""
    N = puzzle.n

    def sym(v: Optional[int], blank: str) -> str:
        return blank if v is None else str(v)

    top = " " + "".join(sym(v, " ") for v in puzzle.col_looking_south) + " "
    bottom = " " + "".join(sym(v, " ") for v in puzzle.col_looking_north) + " "
    body = [
        sym(puzzle.row_looking_east[r], " ")
        + "".join(sym(v, ".") for v in puzzle.initial_values[r])
        + sym(puzzle.row_looking_west[r], " ")
        for r in range(N)
    ]
    return [top] + body + [bottom]
