"""
cncvm Python Package

Interprets G-code into a fully resolved motion trace, optimizes it and
streams the result to a GRBL controller.

Key components:
- GcodeParser: Tokenizes program text into blocks of words
- Machine / process: Modal interpreter producing the position stack
- optimize: Trace optimization passes
- render_positions: Renders a trace back into G-code
- GrblStreamer: Character-counting streamer over pyserial
"""

from ._version import __version__
from .export import render_positions
from .gcode import Block, GcodeParser, Word
from .optimize import optimize
from .streaming import GrblStreamer, create_streamer
from .vm import Machine, MachineState, MoveMode, Plane, Position, PositionStack, process

__all__ = [
    "__version__",
    "Block",
    "GcodeParser",
    "GrblStreamer",
    "Machine",
    "MachineState",
    "MoveMode",
    "Plane",
    "Position",
    "PositionStack",
    "Word",
    "create_streamer",
    "optimize",
    "process",
    "render_positions",
]
