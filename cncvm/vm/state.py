"""
Machine State for the cncvm interpreter

Tracks modal settings snapshotted into every resolved position:
- Feed rate and spindle speed
- Spindle enable/direction
- Mist/flood coolant
- Active move mode (G0/G1/G2/G3/G80)
"""

from dataclasses import dataclass, field, replace
from enum import Enum

import numpy as np


class MoveMode(Enum):
    NONE = "G80"
    RAPID = "G0"
    LINEAR = "G1"
    CW_ARC = "G2"
    CCW_ARC = "G3"

    @property
    def is_arc(self) -> bool:
        return self in (MoveMode.CW_ARC, MoveMode.CCW_ARC)


class Plane(Enum):
    XY = "G17"
    XZ = "G18"
    YZ = "G19"


@dataclass
class MachineState:
    """Modal state carried by each position"""

    feedrate: float = 0.0  # mm/min
    spindle_speed: float = 0.0  # RPM
    move_mode: MoveMode = MoveMode.NONE
    spindle_enabled: bool = False
    spindle_clockwise: bool = True
    mist_coolant: bool = False
    flood_coolant: bool = False

    def copy(self) -> "MachineState":
        """Snapshot of this state"""
        return replace(self)

    def get_status(self) -> dict:
        """Get state as dictionary for status reporting"""
        return {
            "feedrate": self.feedrate,
            "spindle_speed": self.spindle_speed,
            "move_mode": self.move_mode.value,
            "spindle_enabled": self.spindle_enabled,
            "spindle_clockwise": self.spindle_clockwise,
            "mist_coolant": self.mist_coolant,
            "flood_coolant": self.flood_coolant,
        }


@dataclass
class Position:
    """Absolute metric coordinates plus the state active when they were reached"""

    state: MachineState = field(default_factory=MachineState)
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def coordinates(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def same_coordinates(self, other: "Position", tolerance: float = 0.0) -> bool:
        return bool(np.all(np.abs(self.coordinates() - other.coordinates()) <= tolerance))


class PositionStack:
    """
    Append-only trace of resolved positions.

    Starts with a single zero position carrying the default state.
    """

    def __init__(self):
        self._positions: list[Position] = [Position()]

    def push(self, position: Position) -> None:
        self._positions.append(position)

    def top(self) -> Position:
        return self._positions[-1]

    def __len__(self):
        return len(self._positions)

    def __iter__(self):
        return iter(self._positions)

    def __getitem__(self, index):
        return self._positions[index]

    def to_list(self) -> list[Position]:
        return list(self._positions)

    def to_array(self) -> np.ndarray:
        """Coordinates as an (N, 3) array"""
        return np.array([[p.x, p.y, p.z] for p in self._positions], dtype=float)
