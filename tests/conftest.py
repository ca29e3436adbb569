"""
Pytest configuration and shared fixtures for cncvm tests.

Provides a parser fixture and a helper that runs a G-code program text on a
fresh Machine.
"""

import os
import sys

import pytest

# Add the parent directory to Python path so we can import the package
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from cncvm.gcode.parser import GcodeParser
from cncvm.vm import Machine


@pytest.fixture
def parser() -> GcodeParser:
    return GcodeParser()


@pytest.fixture
def run_program(parser):
    """
    Run program text on a new Machine and return the machine.

    Errors propagate; build the Machine directly when its partial trace is
    needed after a failure.
    """

    def _run(text: str, **settings) -> Machine:
        machine = Machine(**settings)
        machine.process(parser.parse_program(text))
        return machine

    return _run
