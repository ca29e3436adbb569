"""
G-code Parser for cncvm

Tokenizes G-code text into blocks of address/value words.
Comments, tape markers and line numbers are stripped; a leading slash
marks the block as deleted.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from cncvm.utils.errors import GcodeParseError

logger = logging.getLogger(__name__)

ADDRESSES = frozenset("GMFSXYZIJKP")


@dataclass(frozen=True)
class Word:
    """A single address letter paired with its numeric value"""

    address: str
    value: float

    def __str__(self):
        return f"{self.address}{self.value:.10g}"


@dataclass
class Block:
    """One program line after parsing"""

    words: list[Word] = field(default_factory=list)
    deleted: bool = False
    line_number: int | None = None
    comment: str | None = None

    def __str__(self):
        result = " ".join(str(w) for w in self.words)
        if self.deleted:
            result = "/" + result
        if self.comment:
            result += f" ; {self.comment}"
        return result


class GcodeParser:
    """G-code parser that tokenizes lines into Blocks"""

    # Regex patterns for parsing
    COMMENT_PATTERN = re.compile(r"\((.*?)\)|;(.*)$")
    LINE_NUMBER_PATTERN = re.compile(r"^N\s*\d+", re.IGNORECASE)
    WORD_PATTERN = re.compile(r"([A-Z])\s*([+-]?(?:\d+\.?\d*|\.\d+))")

    def parse_line(self, line: str, line_number: int | None = None) -> Block | None:
        """
        Parse a single line of G-code into a Block

        Args:
            line: Raw G-code line
            line_number: 1-based source line, used in error messages

        Returns:
            Block, or None for lines carrying nothing (blank, tape marker)
        """
        stripped = line.strip()
        if not stripped or stripped.startswith("%"):
            return None

        # Extract and remove comments
        comments = []
        for match in self.COMMENT_PATTERN.finditer(stripped):
            text = match.group(1) if match.group(1) is not None else match.group(2)
            comments.append(text.strip())
        text = self.COMMENT_PATTERN.sub(" ", stripped).strip()
        comment = " ".join(c for c in comments if c) or None

        deleted = text.startswith("/")
        if deleted:
            text = text[1:].lstrip()

        text = text.upper()
        line_num_match = self.LINE_NUMBER_PATTERN.match(text)
        if line_num_match:
            text = text[line_num_match.end():]

        words: list[Word] = []
        pos = 0
        for match in self.WORD_PATTERN.finditer(text):
            gap = text[pos:match.start()]
            if gap.strip():
                raise GcodeParseError(f"Unexpected text {gap.strip()!r}", line_number)
            address = match.group(1)
            if address not in ADDRESSES:
                raise GcodeParseError(f"Unsupported address {address}", line_number)
            words.append(Word(address, float(match.group(2))))
            pos = match.end()
        rest = text[pos:]
        if rest.strip():
            raise GcodeParseError(f"Unexpected text {rest.strip()!r}", line_number)

        if not words and comment is None and not deleted:
            return None
        return Block(words=words, deleted=deleted, line_number=line_number, comment=comment)

    def parse_program(self, program: str | Iterable[str]) -> list[Block]:
        """
        Parse a complete G-code program

        Args:
            program: Either a string with newlines or an iterable of lines

        Returns:
            List of Blocks in program order
        """
        if isinstance(program, str):
            lines: Iterable[str] = program.splitlines()
        else:
            lines = program

        blocks = []
        for line_number, line in enumerate(lines, 1):
            block = self.parse_line(line, line_number)
            if block is not None:
                blocks.append(block)

        logger.debug(f"Parsed {len(blocks)} blocks")
        return blocks

    def parse_file(self, filepath: str | Path) -> list[Block]:
        """Read and parse a G-code file"""
        with open(filepath) as f:
            return self.parse_program(f.read())
