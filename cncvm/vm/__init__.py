"""
G-code interpreter ("VM") for cncvm

Main components:
- statement.py: Word lookup for one program line
- state.py: Modal state, positions and the position stack
- coordinates.py: Unit and distance-mode resolution
- arcs.py: Arc approximation into line segments
- machine.py: Statement dispatch and program processing
"""

from .arcs import approximate_arc, arc_segment_count
from .coordinates import Target, resolve_target
from .machine import Machine, process
from .state import MachineState, MoveMode, Plane, Position, PositionStack
from .statement import Statement

__all__ = [
    "Machine",
    "MachineState",
    "MoveMode",
    "Plane",
    "Position",
    "PositionStack",
    "Statement",
    "Target",
    "approximate_arc",
    "arc_segment_count",
    "process",
    "resolve_target",
]
