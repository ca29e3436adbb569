import pytest
from cncvm.optimize import (
    DEFAULT_PASSES,
    merge_collinear_moves,
    optimize,
    promote_lifts,
    remove_redundant_moves,
)
from cncvm.vm import MachineState, MoveMode, Position

LINEAR = MachineState(feedrate=100.0, move_mode=MoveMode.LINEAR)
RAPID = MachineState(move_mode=MoveMode.RAPID)


def _pos(x=0.0, y=0.0, z=0.0, state=LINEAR):
    return Position(state.copy(), x, y, z)


def _coords(positions):
    return [(p.x, p.y, p.z) for p in positions]


class TestRemoveRedundantMoves:
    def test_drops_repeated_position(self):
        trace = [Position(), _pos(1), _pos(1), _pos(1.0005), _pos(2)]
        result = remove_redundant_moves(trace, tolerance=0.001)
        assert _coords(result) == [(0, 0, 0), (1, 0, 0), (2, 0, 0)]

    def test_keeps_state_changes(self):
        stopped = MachineState(feedrate=100.0, move_mode=MoveMode.NONE)
        trace = [Position(), _pos(1), _pos(1, state=stopped)]
        assert len(remove_redundant_moves(trace)) == 3

    def test_first_entry_is_kept(self):
        trace = [Position(), Position()]
        result = remove_redundant_moves(trace)
        assert result == [trace[0]]
        assert remove_redundant_moves([]) == []


class TestMergeCollinearMoves:
    def test_straight_run_collapses(self):
        trace = [Position(), _pos(1), _pos(2), _pos(3)]
        assert _coords(merge_collinear_moves(trace)) == [(0, 0, 0), (3, 0, 0)]

    def test_diagonal_run_collapses(self):
        trace = [Position(), _pos(1, 1, 1), _pos(2, 2, 2)]
        assert _coords(merge_collinear_moves(trace)) == [(0, 0, 0), (2, 2, 2)]

    def test_corner_is_kept(self):
        trace = [Position(), _pos(1), _pos(1, 1)]
        assert len(merge_collinear_moves(trace)) == 3

    def test_reversal_is_kept(self):
        trace = [Position(), _pos(2), _pos(1)]
        assert len(merge_collinear_moves(trace)) == 3

    def test_state_change_is_kept(self):
        faster = MachineState(feedrate=200.0, move_mode=MoveMode.LINEAR)
        trace = [Position(), _pos(1), _pos(2, state=faster)]
        assert len(merge_collinear_moves(trace)) == 3

    def test_rapid_runs_collapse(self):
        trace = [Position(), _pos(z=1, state=RAPID), _pos(z=2, state=RAPID)]
        assert _coords(merge_collinear_moves(trace)) == [(0, 0, 0), (0, 0, 2)]

    def test_short_traces_unchanged(self):
        trace = [Position(), _pos(1)]
        assert merge_collinear_moves(trace) == trace


class TestPromoteLifts:
    def test_pure_lift_becomes_rapid(self):
        trace = [Position(), _pos(z=5)]
        result = promote_lifts(trace)
        assert result[1].state.move_mode == MoveMode.RAPID
        assert result[1].state.feedrate == 100.0
        # Input is left untouched
        assert trace[1].state.move_mode == MoveMode.LINEAR

    @pytest.mark.parametrize("target", [(0, 0, -1), (1, 0, 5), (0, 0, 0.0001)])
    def test_other_moves_stay_linear(self, target):
        trace = [Position(), _pos(*target)]
        assert promote_lifts(trace)[1].state.move_mode == MoveMode.LINEAR


class TestOptimize:
    def test_default_pass_order(self):
        assert DEFAULT_PASSES == (remove_redundant_moves, promote_lifts, merge_collinear_moves)

    def test_no_passes_copies_trace(self):
        trace = [Position(), _pos(1), _pos(1)]
        result = optimize(trace, passes=[])
        assert result == trace
        assert result is not trace

    def test_program_trace(self, run_program):
        machine = run_program("G1 F100\nX1\nX2\nX2\nX3 Y0\nZ5")
        result = optimize(machine.positions.to_list())
        assert _coords(result) == [(0, 0, 0), (3, 0, 0), (3, 0, 5)]
        assert result[-1].state.move_mode == MoveMode.RAPID

    def test_arc_end_point_kept(self, run_program):
        machine = run_program("G0 X5\nG2 X5 I-5 F100")
        trace = machine.positions.to_list()
        result = optimize(trace)
        assert len(result) < len(trace)
        assert _coords(result)[-1] == (5.0, 0.0, 0.0)
