"""
Arc approximation.

Expands a circular (or helical) arc into straight segments. All math is done
in a canonical frame (s1, s2) with a linearly interpolated height s3; the
active plane only decides which physical axis lands on which canonical one.
"""

import math
from collections.abc import Sequence

import numpy as np

from cncvm import config
from cncvm.utils.errors import DegenerateArcError, RadiusMismatchError
from .state import Plane

# Physical axis index (x=0, y=1, z=2) for canonical s1, s2, s3.
# G18 runs Z->X so that clockwise matches the view from +Y.
PLANE_AXES: dict[Plane, tuple[int, int, int]] = {
    Plane.XY: (0, 1, 2),
    Plane.XZ: (2, 0, 1),
    Plane.YZ: (1, 2, 0),
}

TWO_PI = 2.0 * math.pi


def plane_axes(plane: Plane) -> tuple[int, int, int]:
    """Axis permutation for the given plane"""
    return PLANE_AXES[plane]


def arc_sweep(theta_start: float, theta_end: float, clockwise: bool, turns: int = 0) -> float:
    """
    Signed angle travelled from theta_start to theta_end

    Negative for clockwise travel. Each extra turn adds one revolution in
    the direction of travel. Coincident angles with no extra turns are one
    full circle.
    """
    sweep = theta_end - theta_start
    if sweep < 0 and not clockwise:
        sweep += TWO_PI
    elif sweep > 0 and clockwise:
        sweep -= TWO_PI
    elif sweep == 0 and turns == 0:
        turns = 1

    if clockwise:
        sweep -= turns * TWO_PI
    else:
        sweep += turns * TWO_PI
    return sweep


def arc_segment_count(
    radius: float,
    sweep: float,
    height: float = 0.0,
    max_deviation: float = config.ARC_MAX_DEVIATION,
    min_segment_length: float = config.ARC_MIN_SEGMENT_LENGTH,
) -> int:
    """
    Number of line segments used for an arc

    The smaller of the chordal-deviation bound and the minimum-segment-length
    bound, never less than one.

    Args:
        radius: Arc radius (mm)
        sweep: Signed sweep angle (radians)
        height: Travel along the helix axis (mm)
        max_deviation: Largest allowed distance between chord and arc (mm)
        min_segment_length: Shortest segment worth emitting (mm)
    """
    cos_half = min(1.0, max(-1.0, 1.0 - max_deviation / radius))
    segment_angle = 2.0 * math.acos(cos_half)
    angular_steps = math.ceil(abs(sweep) / segment_angle)

    arc_length = math.hypot(abs(sweep) * radius, height)
    length_steps = int(arc_length / min_segment_length)

    return max(1, min(angular_steps, length_steps))


def approximate_arc(
    start: Sequence[float],
    end: Sequence[float],
    center: Sequence[float],
    plane: Plane,
    clockwise: bool,
    turns: int = 0,
    max_deviation: float = config.ARC_MAX_DEVIATION,
    min_segment_length: float = config.ARC_MIN_SEGMENT_LENGTH,
    radius_tolerance: float = config.ARC_RADIUS_TOLERANCE,
) -> np.ndarray:
    """
    Generate the points of a linearised arc

    Args:
        start: Start point [x, y, z] (mm)
        end: End point [x, y, z] (mm)
        center: Absolute arc centre [i, j, k] (mm); only the in-plane pair is used
        plane: Active plane
        clockwise: G2 (True) or G3 (False)
        turns: Extra full revolutions (P word)
        max_deviation: Chordal deviation bound (mm)
        min_segment_length: Minimum segment length (mm)
        radius_tolerance: Allowed relative start/end radius difference

    Returns:
        Array of shape (steps + 1, 3): the interpolated points followed by
        the exact end point

    Raises:
        DegenerateArcError: start or end coincides with the centre
        RadiusMismatchError: centre not equidistant from start and end
    """
    a1, a2, a3 = plane_axes(plane)
    s1, s2, s3 = start[a1], start[a2], start[a3]
    e1, e2, e3 = end[a1], end[a2], end[a3]
    c1, c2 = center[a1], center[a2]

    radius_start = math.hypot(s1 - c1, s2 - c2)
    radius_end = math.hypot(e1 - c1, e2 - c2)
    if radius_start == 0 or radius_end == 0:
        raise DegenerateArcError("arc radius is zero")

    deviation = abs(radius_end - radius_start) / radius_start
    if deviation > radius_tolerance:
        raise RadiusMismatchError(
            f"start radius {radius_start:.4f} and end radius {radius_end:.4f} "
            f"differ by {deviation * 100:.2f}%"
        )

    theta_start = math.atan2(s2 - c2, s1 - c1)
    theta_end = math.atan2(e2 - c2, e1 - c1)
    sweep = arc_sweep(theta_start, theta_end, clockwise, turns)

    steps = arc_segment_count(radius_start, sweep, e3 - s3, max_deviation, min_segment_length)

    fraction = np.arange(1, steps + 1, dtype=float) / steps
    angles = theta_start + sweep * fraction

    canonical = np.empty((steps + 1, 3), dtype=float)
    canonical[:-1, 0] = c1 + radius_start * np.cos(angles)
    canonical[:-1, 1] = c2 + radius_start * np.sin(angles)
    canonical[:-1, 2] = s3 + (e3 - s3) * fraction
    canonical[-1] = (e1, e2, e3)

    points = np.empty_like(canonical)
    points[:, [a1, a2, a3]] = canonical
    return points
