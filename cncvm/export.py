"""
G-code export.

Renders a resolved (and possibly optimized) position trace back into
G-code text: absolute, metric, straight moves only.
"""

from collections.abc import Sequence
from pathlib import Path

from cncvm import config
from cncvm.vm.state import MachineState, MoveMode, Position

HEADER = ("G21", "G90")
TRAILER = ("M2",)


def format_number(value: float, precision: int = config.EXPORT_PRECISION) -> str:
    """
    Format number for G-code output

    Args:
        value: Numeric value
        precision: Number of decimal places

    Returns:
        Formatted string without trailing zeros
    """
    formatted = f"{value:.{precision}f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    if formatted in ("-0", ""):
        formatted = "0"
    return formatted


def _state_words(prev: MachineState, state: MachineState, precision: int) -> list[str]:
    words = []

    spindle_changed = (
        state.spindle_enabled != prev.spindle_enabled
        or (state.spindle_enabled and state.spindle_clockwise != prev.spindle_clockwise)
    )
    if state.spindle_speed != prev.spindle_speed:
        words.append(f"S{format_number(state.spindle_speed, precision)}")
    if spindle_changed:
        if not state.spindle_enabled:
            words.append("M5")
        elif state.spindle_clockwise:
            words.append("M3")
        else:
            words.append("M4")

    coolant_off = (prev.mist_coolant and not state.mist_coolant) or (
        prev.flood_coolant and not state.flood_coolant
    )
    if coolant_off:
        # M9 clears both, so re-enable whatever stays on
        words.append("M9")
        if state.mist_coolant:
            words.append("M7")
        if state.flood_coolant:
            words.append("M8")
    else:
        if state.mist_coolant and not prev.mist_coolant:
            words.append("M7")
        if state.flood_coolant and not prev.flood_coolant:
            words.append("M8")

    return words


def render_positions(positions: Sequence[Position], precision: int = config.EXPORT_PRECISION) -> list[str]:
    """
    Render positions as G-code lines

    Args:
        positions: Position trace; the first entry is taken as the start point
        precision: Decimal places for coordinates and feed

    Returns:
        List of G-code lines, header and trailer included
    """
    lines = list(HEADER)
    if not positions:
        lines.extend(TRAILER)
        return lines

    prev = positions[0]
    emitted_mode: MoveMode | None = None
    emitted_feed: float | None = None

    for pos in positions[1:]:
        words = _state_words(prev.state, pos.state, precision)
        if words:
            lines.append(" ".join(words))

        axes = []
        for axis, old, new in (("X", prev.x, pos.x), ("Y", prev.y, pos.y), ("Z", prev.z, pos.z)):
            if format_number(old, precision) != format_number(new, precision):
                axes.append(f"{axis}{format_number(new, precision)}")

        mode = pos.state.move_mode
        if axes and mode in (MoveMode.RAPID, MoveMode.LINEAR):
            move = []
            if mode != emitted_mode:
                move.append("G0" if mode == MoveMode.RAPID else "G1")
                emitted_mode = mode
            move.extend(axes)
            if mode == MoveMode.LINEAR and pos.state.feedrate != emitted_feed and pos.state.feedrate > 0:
                move.append(f"F{format_number(pos.state.feedrate, precision)}")
                emitted_feed = pos.state.feedrate
            lines.append(" ".join(move))
            prev = pos
        else:
            # State-only entry; keep the last emitted coordinates
            prev = Position(pos.state, prev.x, prev.y, prev.z)

    lines.extend(TRAILER)
    return lines


def write_program(path: str | Path, lines: Sequence[str]) -> None:
    """Write G-code lines to a file"""
    with open(path, "w") as f:
        for line in lines:
            f.write(line + "\n")
