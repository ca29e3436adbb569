import pytest
from cncvm.export import HEADER, TRAILER, format_number, render_positions, write_program
from cncvm.vm import MachineState, MoveMode, Position


@pytest.mark.parametrize("value, precision, expected", [
    (1.5, 4, "1.5"),
    (2.0, 4, "2"),
    (10, 0, "10"),
    (3.14159, 2, "3.14"),
    (-0.00001, 4, "0"),
    (-2.5, 4, "-2.5"),
])
def test_format_number(value, precision, expected):
    assert format_number(value, precision) == expected


def _render(run_program, text, **kwargs):
    machine = run_program(text)
    return render_positions(machine.positions.to_list(), **kwargs)


def test_header_and_trailer():
    lines = render_positions([Position()])
    assert lines == list(HEADER) + list(TRAILER)
    assert render_positions([]) == list(HEADER) + list(TRAILER)


def test_modal_words_only_on_change(run_program):
    lines = _render(run_program, "G1 X1 F100\nX2 Y1\nX3 F200")
    assert lines[2:-1] == ["G1 X1 F100", "X2 Y1", "X3 F200"]


def test_rapid_then_feed(run_program):
    lines = _render(run_program, "G0 Z5\nG1 X1 F200\nG0 Z10")
    assert lines[2:-1] == ["G0 Z5", "G1 X1 F200", "G0 Z10"]


def test_imperial_program_renders_metric(run_program):
    lines = _render(run_program, "G20 G1 X1 F10")
    assert lines[2:-1] == ["G1 X25.4 F254"]


def test_spindle_state_changes(run_program):
    lines = _render(run_program, "M3 S1000\nG1 X1 F100\nM5")
    assert lines[2:-1] == ["S1000 M3", "G1 X1 F100", "M5"]


def test_counter_clockwise_spindle(run_program):
    lines = _render(run_program, "M4 S500 G0 X1")
    assert lines[2] == "S500 M4"


def test_coolant_off_reenables_remaining():
    both = MachineState(move_mode=MoveMode.RAPID, mist_coolant=True, flood_coolant=True)
    flood = MachineState(move_mode=MoveMode.RAPID, flood_coolant=True)
    trace = [Position(), Position(both, 1, 0, 0), Position(flood, 2, 0, 0)]
    lines = render_positions(trace)
    assert lines[2:-1] == ["M7 M8", "G0 X1", "M9 M8", "X2"]


def test_changes_below_precision_are_not_emitted():
    linear = MachineState(feedrate=100.0, move_mode=MoveMode.LINEAR)
    trace = [Position(), Position(linear, 0.00001, 0, 0), Position(linear, 1, 0, 0)]
    lines = render_positions(trace, precision=3)
    assert lines[2:-1] == ["G1 X1 F100"]


def test_write_program(tmp_path):
    path = tmp_path / "out.nc"
    write_program(path, ["G21", "G0 X1", "M2"])
    assert path.read_text() == "G21\nG0 X1\nM2\n"
