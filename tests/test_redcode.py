import pytest

from corewar.redcode import (
    AddressMode,
    Instruction,
    Modifier,
    OpCode,
    ParseError,
    UnknownOpcodeError,
    WARRIORS,
    parse_instruction,
    parse_program,
    program_to_string,
    read_metadata,
)


def test_parse_imp():
    instr = parse_instruction("MOV 0, 1", owner=3)
    assert instr == Instruction(
        owner=3,
        opcode=OpCode.MOV,
        modifier=Modifier.I,
        a_mode=AddressMode.DIRECT,
        a_value=0,
        b_mode=AddressMode.DIRECT,
        b_value=1,
    )


@pytest.mark.parametrize(
    "operand, mode, value",
    [
        ("#5", AddressMode.IMMEDIATE, 5),
        ("@-2", AddressMode.INDIRECT_B, -2),
        ("<7", AddressMode.PREDECREMENT, 7),
        ("$3", AddressMode.DIRECT, 3),
        ("3", AddressMode.DIRECT, 3),
        ("+4", AddressMode.DIRECT, 4),
    ],
)
def test_parse_operand_modes(operand, mode, value):
    instr = parse_instruction(f"ADD {operand}, {operand}")
    assert (instr.a_mode, instr.a_value) == (mode, value)
    assert (instr.b_mode, instr.b_value) == (mode, value)


def test_parse_is_case_insensitive_and_strips_comments():
    instr = parse_instruction("  mov #4, @2   ; bomb the target")
    assert instr.opcode == OpCode.MOV
    assert (instr.a_mode, instr.a_value) == (AddressMode.IMMEDIATE, 4)
    assert (instr.b_mode, instr.b_value) == (AddressMode.INDIRECT_B, 2)


@pytest.mark.parametrize("line", ["MOV 0,1", "MOV 0 , 1", "MOV   0,   1"])
def test_parse_tolerates_comma_spacing(line):
    instr = parse_instruction(line)
    assert (instr.a_value, instr.b_value) == (0, 1)


def test_missing_fields_default_to_direct_zero():
    instr = parse_instruction("JMP -1")
    assert (instr.a_mode, instr.a_value) == (AddressMode.DIRECT, -1)
    assert (instr.b_mode, instr.b_value) == (AddressMode.DIRECT, 0)

    instr = parse_instruction("NOP")
    assert (instr.a_mode, instr.a_value) == (AddressMode.DIRECT, 0)
    assert (instr.b_mode, instr.b_value) == (AddressMode.DIRECT, 0)


def test_bad_numbers_become_zero():
    instr = parse_instruction("MOV #abc, 12xyz")
    assert (instr.a_mode, instr.a_value) == (AddressMode.IMMEDIATE, 0)
    assert instr.b_value == 12

    instr = parse_instruction("ADD #, @")
    assert instr.a_value == 0
    assert instr.b_value == 0


@pytest.mark.parametrize("line", ["FOO 1, 2", "MUL 1, 2", "", "   ", "; only a comment"])
def test_unknown_opcode_or_empty_line_fails(line):
    with pytest.raises(UnknownOpcodeError):
        parse_instruction(line)


def test_unknown_opcode_is_a_parse_error():
    with pytest.raises(ParseError, match="unknown opcode"):
        parse_instruction("JMZ 1, 2")


def test_parse_program_skips_blank_and_comment_lines():
    source = """;name Dwarf
; comment

ADD #4, 3
MOV 2, @2
JMP -2
DAT #0, #2
"""
    program = parse_program(source, owner=2)
    assert [i.opcode for i in program] == [OpCode.ADD, OpCode.MOV, OpCode.JMP, OpCode.DAT]
    assert all(i.owner == 2 for i in program)


def test_parse_program_reports_failing_line():
    source = "MOV 0, 1\n\nBOGUS 1\nDAT #0, #0\n"
    with pytest.raises(ParseError) as excinfo:
        parse_program(source)
    assert excinfo.value.line_number == 3
    assert excinfo.value.line == "BOGUS 1"
    assert "line 3" in str(excinfo.value)


_MODES = list(AddressMode)


@pytest.mark.parametrize("opcode", list(OpCode))
@pytest.mark.parametrize("a_mode", _MODES)
@pytest.mark.parametrize("b_mode", _MODES)
def test_rendered_instruction_parses_back(opcode, a_mode, b_mode):
    original = Instruction(
        opcode=opcode,
        a_mode=a_mode,
        a_value=-17,
        b_mode=b_mode,
        b_value=42,
    )
    assert parse_instruction(str(original)) == original


def test_program_to_string_and_metadata():
    program = parse_program(WARRIORS["dwarf"])
    assert program_to_string(program).splitlines() == [
        "ADD #4, 3",
        "MOV 2, @2",
        "JMP -2, 0",
        "DAT #0, #2",
    ]
    assert read_metadata(WARRIORS["dwarf"]) == {"name": "Dwarf", "author": "A.K. Dewdney"}


@pytest.mark.parametrize("key", sorted(WARRIORS))
def test_bundled_warriors_parse(key):
    assert parse_program(WARRIORS[key])


def test_default_instruction_is_neutral_dat():
    cell = Instruction()
    assert cell.owner == 0
    assert cell.opcode == OpCode.DAT
    assert str(cell) == "DAT #0, #0"
