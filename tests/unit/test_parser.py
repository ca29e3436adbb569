import pytest
from cncvm.gcode.parser import Block, GcodeParser, Word
from cncvm.utils.errors import GcodeParseError


def test_parse_line_words_in_order(parser):
    block = parser.parse_line("G1 X1.5 Y-2 F100", 1)
    assert block.words == [Word("G", 1), Word("X", 1.5), Word("Y", -2), Word("F", 100)]
    assert not block.deleted
    assert block.line_number == 1


def test_parse_compact_lowercase_and_decimal_codes(parser):
    block = parser.parse_line("g0x1y.5 g90.1")
    assert [(w.address, w.value) for w in block.words] == [
        ("G", 0),
        ("X", 1),
        ("Y", 0.5),
        ("G", 90.1),
    ]


def test_comments_and_line_numbers_are_stripped(parser):
    block = parser.parse_line("N20 G0 (rapid) X1 ; to start")
    assert block.words == [Word("G", 0), Word("X", 1)]
    assert block.comment == "rapid to start"


def test_comment_only_line_is_empty_block(parser):
    block = parser.parse_line("(just a comment)")
    assert block is not None
    assert block.words == []
    assert block.comment == "just a comment"


def test_block_delete(parser):
    block = parser.parse_line("/G1 X5")
    assert block.deleted
    assert block.words == [Word("G", 1), Word("X", 5)]


@pytest.mark.parametrize("line", ["", "   ", "%"])
def test_blank_and_tape_marker_lines_are_skipped(parser, line):
    assert parser.parse_line(line) is None


def test_unknown_address_raises_with_line_number(parser):
    with pytest.raises(GcodeParseError) as exc:
        parser.parse_program("G0 X1\nT1 M6\n")
    assert exc.value.line_number == 2
    assert "T" in str(exc.value)


def test_garbage_text_raises(parser):
    with pytest.raises(GcodeParseError):
        parser.parse_line("G1 X1 hello")


def test_parse_program_keeps_source_line_numbers(parser):
    blocks = parser.parse_program("%\nG21\n\nG0 X1\n%")
    assert [b.line_number for b in blocks] == [2, 4]
    assert all(isinstance(b, Block) for b in blocks)


def test_parse_program_accepts_line_list():
    blocks = GcodeParser().parse_program(["G90", "G1 X1 F10"])
    assert len(blocks) == 2
    assert str(blocks[1]) == "G1 X1 F10"


def test_parse_file(tmp_path, parser):
    path = tmp_path / "part.nc"
    path.write_text("G21\nG0 X1 Y2\n")
    blocks = parser.parse_file(path)
    assert [str(b) for b in blocks] == ["G21", "G0 X1 Y2"]
