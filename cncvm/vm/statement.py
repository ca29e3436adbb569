"""
Statement lookup for the interpreter.

Coordinate addresses (X/Y/Z/I/J/K/P) must be unambiguous per line, while
command addresses (G/M/F/S) may repeat and are all applied in order.
"""

from collections.abc import Iterable

from cncvm.gcode.parser import Word
from cncvm.utils.errors import AmbiguousOrMissingFieldError


class Statement:
    """Ordered words of one non-deleted program line"""

    def __init__(self, words: Iterable[Word] = ()):
        self.words: tuple[Word, ...] = tuple(words)

    def __len__(self):
        return len(self.words)

    def __iter__(self):
        return iter(self.words)

    def __repr__(self):
        return f"Statement({' '.join(str(w) for w in self.words)!r})"

    def get_all(self, address: str) -> list[float]:
        """All values for an address, in the order they appear"""
        return [w.value for w in self.words if w.address == address]

    def get(self, address: str) -> float:
        """
        Value of a single-valued address

        Raises:
            AmbiguousOrMissingFieldError: address absent or repeated
        """
        values = self.get_all(address)
        if len(values) != 1:
            raise AmbiguousOrMissingFieldError(address, len(values))
        return values[0]

    def get_default(self, address: str, default: float) -> float:
        """Value when the address occurs exactly once, otherwise the default"""
        values = self.get_all(address)
        if len(values) != 1:
            return default
        return values[0]

    def includes(self, *addresses: str) -> bool:
        """True if any of the addresses occurs at least once"""
        return any(w.address in addresses for w in self.words)
