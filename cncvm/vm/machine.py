"""
Main G-code interpreter ("VM") for cncvm

Executes statements one by one against a modal machine state and records
every reached position, with the state active at that moment, on an
append-only position stack.

Supported codes:
- G0/G1/G2/G3 rapid, linear, clockwise and counter-clockwise arc moves
- G17/G18/G19 plane selection
- G20/G21 inch and millimetre units
- G80 cancel move mode
- G90/G91 absolute/incremental moves, G90.1/G91.1 for arc centres
- M2/M30 program end, M3/M4/M5 spindle, M7/M8/M9 coolant
- F feed rate, S spindle speed, P extra arc turns
"""

import logging
from collections.abc import Iterable

from cncvm import config
from cncvm.gcode.parser import Block
from cncvm.utils.errors import (
    ArcGeometryError,
    InvalidArcTurnsError,
    InvalidFeedrateError,
    InvalidSpindleSpeedError,
    NoActiveMoveModeError,
    UnsupportedCodeError,
    VMError,
)
from .arcs import approximate_arc
from .coordinates import Target, resolve_target
from .state import MachineState, MoveMode, Plane, Position, PositionStack
from .statement import Statement

logger = logging.getLogger(__name__)

MOTION_CODES = {
    0: MoveMode.RAPID,
    1: MoveMode.LINEAR,
    2: MoveMode.CW_ARC,
    3: MoveMode.CCW_ARC,
    80: MoveMode.NONE,
}

PLANE_CODES = {
    17: Plane.XY,
    18: Plane.XZ,
    19: Plane.YZ,
}


class Machine:
    """Interpreter state for one program run"""

    def __init__(
        self,
        max_arc_deviation: float | None = None,
        min_arc_segment_length: float | None = None,
        tolerance: float | None = None,
        arc_radius_tolerance: float | None = None,
    ):
        """
        Initialize the machine with default modal state

        Args:
            max_arc_deviation: Chordal deviation bound for arcs (mm)
            min_arc_segment_length: Minimum arc segment length (mm)
            tolerance: General coordinate tolerance (mm)
            arc_radius_tolerance: Allowed relative arc radius mismatch
        """
        self.max_arc_deviation = (
            config.ARC_MAX_DEVIATION if max_arc_deviation is None else float(max_arc_deviation)
        )
        self.min_arc_segment_length = (
            config.ARC_MIN_SEGMENT_LENGTH
            if min_arc_segment_length is None
            else float(min_arc_segment_length)
        )
        self.tolerance = config.TOLERANCE if tolerance is None else float(tolerance)
        self.arc_radius_tolerance = (
            config.ARC_RADIUS_TOLERANCE
            if arc_radius_tolerance is None
            else float(arc_radius_tolerance)
        )
        if self.max_arc_deviation <= 0:
            raise ValueError("max_arc_deviation must be positive")
        if self.min_arc_segment_length <= 0:
            raise ValueError("min_arc_segment_length must be positive")
        if self.tolerance < 0 or self.arc_radius_tolerance < 0:
            raise ValueError("tolerances must not be negative")

        self.state = MachineState()
        self.metric = True
        self.absolute_moves = True
        self.absolute_arcs = False
        self.plane = Plane.XY
        self.completed = False
        self.positions = PositionStack()

    # ------------------------------------------------------------------
    # Positioning
    # ------------------------------------------------------------------

    def current_position(self) -> Position:
        return self.positions.top()

    def _resolve(self, stmt: Statement) -> Target:
        return resolve_target(
            stmt,
            self.current_position(),
            self.metric,
            self.absolute_moves,
            self.absolute_arcs,
        )

    def _move(self, x: float, y: float, z: float) -> None:
        self.positions.push(Position(self.state.copy(), float(x), float(y), float(z)))

    def positioning(self, stmt: Statement) -> None:
        """Append the straight-line target of a statement to the stack"""
        target = self._resolve(stmt)
        self._move(target.x, target.y, target.z)

    def arc(self, stmt: Statement) -> None:
        """Append the linearised arc described by a statement to the stack"""
        turns = stmt.get("P") if stmt.includes("P") else 0.0
        if turns < 0 or turns != int(turns):
            raise InvalidArcTurnsError(f"P must be a non-negative whole number, got {turns:g}")

        start = self.current_position()
        target = self._resolve(stmt)
        arc_mode = self.state.move_mode

        points = approximate_arc(
            (start.x, start.y, start.z),
            (target.x, target.y, target.z),
            (target.i, target.j, target.k),
            self.plane,
            clockwise=arc_mode == MoveMode.CW_ARC,
            turns=int(turns),
            max_deviation=self.max_arc_deviation,
            min_segment_length=self.min_arc_segment_length,
            radius_tolerance=self.arc_radius_tolerance,
        )
        logger.trace(f"Arc {arc_mode.value} expanded into {len(points)} points")

        # The trace only ever holds straight segments. The last interpolated
        # point coincides with the exact end point, so every arc ends in a
        # zero-length entry; optimize.remove_redundant_moves drops it.
        self.state.move_mode = MoveMode.LINEAR
        try:
            for x, y, z in points:
                self._move(x, y, z)
        finally:
            self.state.move_mode = arc_mode

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _apply_g(self, value: float) -> None:
        code = round(value, 1)
        if code in MOTION_CODES:
            self.state.move_mode = MOTION_CODES[code]
        elif code in PLANE_CODES:
            self.plane = PLANE_CODES[code]
        elif code == 20:
            self.metric = False
        elif code == 21:
            self.metric = True
        elif code == 90:
            self.absolute_moves = True
        elif code == 91:
            self.absolute_moves = False
        elif code == 90.1:
            self.absolute_arcs = True
        elif code == 91.1:
            self.absolute_arcs = False
        else:
            raise UnsupportedCodeError(f"unsupported G-code G{value:g}")

    def _apply_m(self, value: float) -> None:
        code = round(value, 1)
        if code in (2, 30):
            self.completed = True
        elif code == 3:
            self.state.spindle_enabled = True
            self.state.spindle_clockwise = True
        elif code == 4:
            self.state.spindle_enabled = True
            self.state.spindle_clockwise = False
        elif code == 5:
            self.state.spindle_enabled = False
        elif code == 7:
            self.state.mist_coolant = True
        elif code == 8:
            self.state.flood_coolant = True
        elif code == 9:
            self.state.mist_coolant = False
            self.state.flood_coolant = False
        else:
            raise UnsupportedCodeError(f"unsupported M-code M{value:g}")

    def run(self, stmt: Statement) -> None:
        """
        Execute one statement

        G-codes, M-codes, F, S and finally motion are applied in that order,
        whatever the order of the words on the line.

        Raises:
            VMError: the statement could not be executed
        """
        if self.completed:
            # A program end had previously been issued
            return

        for g in stmt.get_all("G"):
            self._apply_g(g)

        for m in stmt.get_all("M"):
            self._apply_m(m)

        for f in stmt.get_all("F"):
            feedrate = f if self.metric else f * config.MM_PER_INCH
            if feedrate <= 0:
                raise InvalidFeedrateError(f"feedrate must be positive, got {f:g}")
            self.state.feedrate = feedrate

        for s in stmt.get_all("S"):
            if s < 0:
                raise InvalidSpindleSpeedError(f"spindle speed must not be negative, got {s:g}")
            self.state.spindle_speed = s

        if not stmt.includes("X", "Y", "Z"):
            return

        mode = self.state.move_mode
        if mode.is_arc:
            try:
                self.arc(stmt)
            except (ArithmeticError, ValueError) as e:
                raise ArcGeometryError(f"arc evaluation failed: {e}") from e
        elif mode in (MoveMode.RAPID, MoveMode.LINEAR):
            self.positioning(stmt)
        else:
            raise NoActiveMoveModeError("motion words without an active move mode")

    # ------------------------------------------------------------------
    # Program
    # ------------------------------------------------------------------

    def finalize(self) -> None:
        """Record a trailing state change that had no move attached"""
        top = self.current_position()
        if self.state != top.state:
            self.state.move_mode = MoveMode.NONE
            self._move(top.x, top.y, top.z)

    def process(self, blocks: Iterable[Block]) -> PositionStack:
        """
        Execute a parsed program and finalize the trace

        Args:
            blocks: Parsed program blocks; deleted blocks are skipped

        Returns:
            The completed position stack

        Raises:
            VMError: first failing statement, annotated with its line number
        """
        count = 0
        for block in blocks:
            if block.deleted:
                continue
            try:
                self.run(Statement(block.words))
            except VMError as e:
                if e.line_number is None:
                    e.line_number = block.line_number
                logger.debug(f"Stopped at line {block.line_number}: {e.original_message}")
                raise
            count += 1

        self.finalize()
        logger.debug(f"Processed {count} statements into {len(self.positions)} positions")
        return self.positions

    def get_status(self) -> dict:
        """Get machine status as a dictionary"""
        top = self.current_position()
        return {
            "state": self.state.get_status(),
            "metric": self.metric,
            "absolute_moves": self.absolute_moves,
            "absolute_arcs": self.absolute_arcs,
            "plane": self.plane.value,
            "completed": self.completed,
            "position": [top.x, top.y, top.z],
            "positions": len(self.positions),
        }


def process(blocks: Iterable[Block], **settings) -> Machine:
    """
    Run a program on a fresh Machine

    Args:
        blocks: Parsed program blocks
        **settings: Machine tolerances (see Machine.__init__)

    Returns:
        The machine after processing; its positions hold the trace
    """
    machine = Machine(**settings)
    machine.process(blocks)
    return machine
