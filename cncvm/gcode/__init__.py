"""
G-code text handling for cncvm

- parser.py: tokenization of program text into blocks of words
"""

from .parser import ADDRESSES, Block, GcodeParser, Word

__all__ = [
    "ADDRESSES",
    "Block",
    "GcodeParser",
    "Word",
]
