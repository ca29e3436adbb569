"""
Custom exception types for the cncvm interpret/optimize/stream pipeline.
Keep this focused and non-redundant; prefer built-ins where appropriate.
"""


class CncError(RuntimeError):
    """Base class for every failure reported by cncvm."""

    prefix = "CNC Error"

    def __init__(self, message: str, line_number: int | None = None):
        self.original_message = message
        self.line_number = line_number
        super().__init__(f"{self.prefix}: {message}")

    def __str__(self):
        if self.line_number is not None:
            return f"Line {self.line_number}: {self.prefix}: {self.original_message}"
        return f"{self.prefix}: {self.original_message}"


class GcodeParseError(CncError):
    """Malformed word or unknown address letter in the program text."""

    prefix = "Parse Error"


class VMError(CncError):
    """A statement could not be executed by the interpreter."""

    prefix = "VM Error"


class AmbiguousOrMissingFieldError(VMError):
    """A single-valued address appears zero or more than one times."""

    def __init__(self, address: str, count: int, line_number: int | None = None):
        self.address = address
        self.count = count
        if count == 0:
            message = f"missing required field {address}"
        else:
            message = f"field {address} appears {count} times"
        super().__init__(message, line_number)


class InvalidFeedrateError(VMError):
    """Feedrate is zero or negative."""


class InvalidSpindleSpeedError(VMError):
    """Spindle speed is negative."""


class NoActiveMoveModeError(VMError):
    """Motion words given while no rapid, linear or arc mode is active."""


class DegenerateArcError(VMError):
    """Arc start or end coincides with its centre."""


class RadiusMismatchError(VMError):
    """Arc centre is not equidistant from start and end."""


class ArcGeometryError(VMError):
    """Numeric fault while evaluating arc geometry."""


class InvalidArcTurnsError(VMError):
    """P word of an arc is not a non-negative whole number of turns."""


class UnsupportedCodeError(VMError):
    """G or M code the interpreter does not implement."""


class StreamingError(CncError):
    """Controller rejected a line or the link to it failed."""

    prefix = "Streaming Error"
