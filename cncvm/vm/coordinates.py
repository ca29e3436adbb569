"""
Coordinate resolution for the interpreter.

Turns the axis and arc-centre words of a statement into absolute metric
coordinates. Distance mode for moves (G90/G91) and for arc centres
(G90.1/G91.1) are resolved independently.
"""

from typing import NamedTuple

from cncvm.config import MM_PER_INCH
from .state import Position
from .statement import Statement


class Target(NamedTuple):
    """Resolved end point and absolute arc centre"""

    x: float
    y: float
    z: float
    i: float
    j: float
    k: float


def _to_metric(value: float, metric: bool) -> float:
    return value if metric else value * MM_PER_INCH


def resolve_target(
    stmt: Statement,
    current: Position,
    metric: bool,
    absolute_moves: bool,
    absolute_arcs: bool,
) -> Target:
    """
    Calculate the absolute target of a statement

    Args:
        stmt: Statement holding X/Y/Z and optionally I/J/K
        current: Position the move starts from
        metric: False when program units are inches
        absolute_moves: G90 (True) or G91 (False)
        absolute_arcs: G90.1 (True) or G91.1 (False)

    Returns:
        Target with absolute metric x/y/z and arc centre i/j/k

    Raises:
        AmbiguousOrMissingFieldError: an axis word is repeated
    """
    start = (current.x, current.y, current.z)

    axes = []
    for axis, origin in zip("XYZ", start):
        if stmt.includes(axis):
            value = _to_metric(stmt.get(axis), metric)
            if not absolute_moves:
                value += origin
        else:
            value = origin
        axes.append(value)

    centre = []
    for axis, origin in zip("IJK", start):
        value = _to_metric(stmt.get(axis), metric) if stmt.includes(axis) else 0.0
        if not absolute_arcs:
            value += origin
        centre.append(value)

    return Target(*axes, *centre)
