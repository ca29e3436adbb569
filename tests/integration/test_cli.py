"""
End-to-end tests of the cncvm command.
"""

import pytest
from cncvm.cli.main import build_parser, main

pytestmark = pytest.mark.integration

PROGRAM = """\
%
(square pocket)
G21 G90
M3 S12000
G0 Z5
G0 X0 Y0
G1 Z-1 F300
G1 X10 F800
X20
Y10
G2 X10 Y0 I-10 J0
G0 Z5
M5
M30
%
"""


@pytest.fixture
def program_file(tmp_path):
    path = tmp_path / "pocket.nc"
    path.write_text(PROGRAM)
    return path


def test_writes_processed_program(program_file, tmp_path):
    output = tmp_path / "out.nc"
    assert main([str(program_file), "-o", str(output), "-q"]) == 0

    lines = output.read_text().splitlines()
    assert lines[:2] == ["G21", "G90"]
    assert lines[-1] == "M2"
    assert "S12000 M3" in lines
    assert "M5" in lines
    # The X10 -> X20 run is merged and Z5 lifts stay rapid
    assert "X20" in "\n".join(lines)
    assert not any(line.startswith(("G2", "G3")) for line in lines)


def test_writes_to_stdout(program_file, capsys):
    assert main([str(program_file), "--no-optimize", "-q"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "G21"
    assert out[-1] == "M2"


def test_streams_to_mock_controller(program_file):
    assert main([str(program_file), "--fake-serial", "-q"]) == 0


def test_bad_program_fails(tmp_path):
    path = tmp_path / "bad.nc"
    path.write_text("G1 X1 F100\nG1 F0\n")
    assert main([str(path), "-q"]) == 1


def test_unparseable_program_fails(tmp_path):
    path = tmp_path / "bad.nc"
    path.write_text("G1 X1 Q5\n")
    assert main([str(path), "-q"]) == 1


def test_missing_file_fails(tmp_path):
    assert main([str(tmp_path / "missing.nc"), "-q"]) == 1


def test_parser_defaults():
    args = build_parser().parse_args(["program.nc"])
    assert args.precision == 4
    assert not args.fake_serial
    assert args.port is None
