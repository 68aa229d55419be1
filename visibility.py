#!/usr/bin/env python3
import logging
from typing import Any, Iterable, Sequence

log = logging.getLogger(__name__)


def visibility_condition(session, visible_count: int, cells: Sequence[Any]):
    """
    Formula that holds exactly when `visible_count` buildings are visible
    looking along `cells` from index 0. Callers reverse the line when the
    clue looks from the far end.

    With two or more visible, the line splits into a first run (the front
    cell followed by shorter ones) ended by a taller cell, and the rest of
    the line must show one building fewer from its own front.
    """
    if not (1 <= visible_count <= len(cells)):
        raise ValueError(f"visible_count {visible_count} out of range 1..{len(cells)}")
    if len(cells) == 1:
        return session.true()

    first = cells[0]
    if visible_count == 1:
        # only one building visible: first must be highest
        return session.and_([session.gt(first, other) for other in cells[1:]])

    # each later run takes at least one building
    first_run_max_len = 1 + len(cells) - visible_count
    options = []
    for first_run_len in range(1, first_run_max_len + 1):
        conds = [session.gt(first, cells[i]) for i in range(1, first_run_len)]
        conds.append(session.lt(first, cells[first_run_len]))
        conds.append(visibility_condition(session, visible_count - 1, cells[first_run_len:]))
        options.append(session.and_(conds))
    log.debug("visible=%d over %d cells: %d run shapes", visible_count, len(cells), len(options))
    return options[0] if len(options) == 1 else session.or_(options)


def visible_count(heights: Iterable[int]) -> int:
    """Number of buildings visible from the front (left-to-right maxima)."""
    visible = 0
    tallest = None
    for h in heights:
        if tallest is None or h > tallest:
            visible += 1
            tallest = h
    return visible
