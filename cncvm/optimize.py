"""
Optimization passes over a resolved position trace.

Every pass takes a list of Positions and returns a new list; the first
entry (the synthetic start position) is never removed.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace

import numpy as np

from cncvm import config
from cncvm.vm.state import MoveMode, Position

logger = logging.getLogger(__name__)

Pass = Callable[[list[Position], float], list[Position]]

STRAIGHT_MODES = (MoveMode.RAPID, MoveMode.LINEAR)


def remove_redundant_moves(positions: Sequence[Position], tolerance: float = config.TOLERANCE) -> list[Position]:
    """Drop entries identical in coordinates and state to their predecessor"""
    if not positions:
        return []
    result = [positions[0]]
    for pos in positions[1:]:
        prev = result[-1]
        if pos.state == prev.state and pos.same_coordinates(prev, tolerance):
            continue
        result.append(pos)
    return result


def _continues_straight(a: np.ndarray, b: np.ndarray, c: np.ndarray, tolerance: float) -> bool:
    """True if b lies on segment a->c, within tolerance"""
    ab = b - a
    bc = c - b
    len_ab = np.linalg.norm(ab)
    len_bc = np.linalg.norm(bc)
    if len_ab <= tolerance or len_bc <= tolerance:
        return False
    if np.dot(ab, bc) <= 0:
        # Direction reverses
        return False
    ac = c - a
    distance = np.linalg.norm(np.cross(ac, ab)) / np.linalg.norm(ac)
    return bool(distance <= tolerance)


def merge_collinear_moves(positions: Sequence[Position], tolerance: float = config.TOLERANCE) -> list[Position]:
    """
    Remove intermediate points of straight runs

    The middle point of three consecutive moves is dropped when both moves
    carry the same state, are rapid or linear, and continue along one line.
    """
    if len(positions) < 3:
        return list(positions)
    result = [positions[0], positions[1]]
    for pos in positions[2:]:
        before, mid = result[-2], result[-1]
        if (
            mid.state == pos.state
            and pos.state.move_mode in STRAIGHT_MODES
            and _continues_straight(
                before.coordinates(), mid.coordinates(), pos.coordinates(), tolerance
            )
        ):
            result[-1] = pos
            continue
        result.append(pos)
    return result


def promote_lifts(positions: Sequence[Position], tolerance: float = config.TOLERANCE) -> list[Position]:
    """Linear moves that only raise Z become rapid moves"""
    if not positions:
        return []
    result = [positions[0]]
    for prev, pos in zip(positions, positions[1:]):
        if (
            pos.state.move_mode == MoveMode.LINEAR
            and abs(pos.x - prev.x) <= tolerance
            and abs(pos.y - prev.y) <= tolerance
            and pos.z - prev.z > tolerance
        ):
            pos = replace(pos, state=replace(pos.state, move_mode=MoveMode.RAPID))
        result.append(pos)
    return result


DEFAULT_PASSES: tuple[Pass, ...] = (
    remove_redundant_moves,
    promote_lifts,
    merge_collinear_moves,
)


def optimize(
    positions: Sequence[Position],
    tolerance: float = config.TOLERANCE,
    passes: Sequence[Pass] | None = None,
) -> list[Position]:
    """
    Run optimization passes in order

    Args:
        positions: Resolved position trace
        tolerance: Coordinate tolerance (mm)
        passes: Passes to run, defaults to DEFAULT_PASSES

    Returns:
        Optimized list of positions
    """
    result = list(positions)
    for opt_pass in passes if passes is not None else DEFAULT_PASSES:
        before = len(result)
        result = opt_pass(result, tolerance)
        logger.debug(f"{opt_pass.__name__}: {before} -> {len(result)} positions")
    return result
