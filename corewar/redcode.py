"""
Redcode Parser and Instruction Set

Implements the simplified Redcode dialect understood by the MARS:
seven opcodes, four addressing modes and a single modifier.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import re


class OpCode(Enum):
    """Redcode operation codes."""
    DAT = auto()  # Data - kills process if executed
    MOV = auto()  # Move - copy from A to B
    ADD = auto()  # Add - add A to B-field of B
    SUB = auto()  # Subtract - subtract A from B-field of B
    JMP = auto()  # Jump - transfer execution to A
    SPL = auto()  # Split - spawn new process at A
    NOP = auto()  # No Operation


class Modifier(Enum):
    """Instruction modifiers. Only whole-instruction is supported."""
    I = "I"


class AddressMode(Enum):
    """Addressing modes for operands."""
    IMMEDIATE = "#"      # Immediate value
    DIRECT = "$"         # Direct address (default)
    INDIRECT_B = "@"     # B-field indirect
    PREDECREMENT = "<"   # Resolved exactly like DIRECT


_MODE_PREFIXES: Dict[str, AddressMode] = {
    "#": AddressMode.IMMEDIATE,
    "@": AddressMode.INDIRECT_B,
    "<": AddressMode.PREDECREMENT,
    "$": AddressMode.DIRECT,
}

_LEADING_INT = re.compile(r"^[+-]?\d+")


class ParseError(ValueError):
    """A line of Redcode could not be turned into an Instruction."""

    def __init__(self, message: str, line: str = "", line_number: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.line_number = line_number

    def __str__(self) -> str:
        message = super().__str__()
        if self.line_number is not None:
            return f"line {self.line_number}: {message}"
        return message


class UnknownOpcodeError(ParseError):
    """The first token is not a supported opcode, or the line is empty."""


@dataclass
class Instruction:
    """A single core cell."""
    owner: int = 0
    opcode: OpCode = OpCode.DAT
    modifier: Modifier = Modifier.I
    a_mode: AddressMode = AddressMode.IMMEDIATE
    a_value: int = 0
    b_mode: AddressMode = AddressMode.IMMEDIATE
    b_value: int = 0

    def copy(self) -> "Instruction":
        """Create a copy of this instruction."""
        return Instruction(
            owner=self.owner,
            opcode=self.opcode,
            modifier=self.modifier,
            a_mode=self.a_mode,
            a_value=self.a_value,
            b_mode=self.b_mode,
            b_value=self.b_value,
        )

    @property
    def mnemonic(self) -> str:
        name = self.opcode.name if isinstance(self.opcode, OpCode) else str(self.opcode)
        return (
            f"{name} "
            f"{_mode_prefix(self.a_mode)}{self.a_value}, "
            f"{_mode_prefix(self.b_mode)}{self.b_value}"
        )

    def __str__(self) -> str:
        """Convert instruction to Redcode text."""
        return self.mnemonic


def _mode_prefix(mode: AddressMode) -> str:
    if mode == AddressMode.DIRECT or not isinstance(mode, AddressMode):
        return ""
    return mode.value


def _parse_value(text: str) -> int:
    """Lenient integer parse: a leading signed integer, otherwise 0."""
    match = _LEADING_INT.match(text.strip())
    if not match:
        return 0
    return int(match.group(0))


def _parse_operand(operand: str) -> Tuple[AddressMode, int]:
    """Parse an operand string into mode and value."""
    operand = operand.strip()
    if not operand:
        return AddressMode.DIRECT, 0

    mode = _MODE_PREFIXES.get(operand[0])
    if mode is None:
        return AddressMode.DIRECT, _parse_value(operand)
    return mode, _parse_value(operand[1:])


def parse_instruction(line: str, owner: int = 0) -> Instruction:
    """
    Parse a single Redcode line.

    Args:
        line: Source line, e.g. ``MOV 0, 1 ; imp``
        owner: Warrior id stamped on the instruction

    Returns:
        The parsed Instruction

    Raises:
        UnknownOpcodeError: if the line is empty or the opcode is not supported
    """
    code = line.split(";", 1)[0].upper()
    tokens = code.split()
    if not tokens:
        raise UnknownOpcodeError("empty instruction", line=line)

    try:
        opcode = OpCode[tokens[0]]
    except KeyError:
        raise UnknownOpcodeError(f"unknown opcode {tokens[0]!r}", line=line) from None

    fields = " ".join(tokens[1:]).split(",")
    a_mode, a_value = _parse_operand(fields[0])
    if len(fields) > 1:
        b_mode, b_value = _parse_operand(fields[1])
    else:
        b_mode, b_value = AddressMode.DIRECT, 0

    return Instruction(
        owner=owner,
        opcode=opcode,
        modifier=Modifier.I,
        a_mode=a_mode,
        a_value=a_value,
        b_mode=b_mode,
        b_value=b_value,
    )


def parse_program(source: str, owner: int = 0) -> List[Instruction]:
    """
    Parse a complete Redcode program, one instruction per line.

    Blank lines and lines starting with ``;`` are skipped. The first
    line that fails aborts the whole program.

    Raises:
        ParseError: carrying the 1-based source line number
    """
    instructions = []
    for line_number, raw in enumerate(source.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(";"):
            continue
        try:
            instructions.append(parse_instruction(line, owner))
        except ParseError as e:
            e.line = line
            e.line_number = line_number
            raise
    return instructions


def read_metadata(source: str) -> Dict[str, str]:
    """Collect ``;name`` and ``;author`` comment values."""
    metadata = {}
    for raw in source.splitlines():
        line = raw.strip()
        for key in ("name", "author"):
            if line.lower().startswith(f";{key}"):
                value = line[len(key) + 1:].strip()
                if value:
                    metadata[key] = value
    return metadata


def program_to_string(instructions: List[Instruction]) -> str:
    """Convert a list of instructions back to Redcode source."""
    return "\n".join(str(instr) for instr in instructions)


# Classic warriors, rewritten for the simplified dialect
WARRIORS = {
    "imp": """;name Imp
;author A.K. Dewdney
; copies itself one cell ahead forever
MOV 0, 1
""",

    "dwarf": """;name Dwarf
;author A.K. Dewdney
; drops a DAT every four cells
ADD #4, 3
MOV 2, @2
JMP -2
DAT #0, #2
""",

    "twin_imp": """;name Twin Imp
; two processes walking the same imp
SPL 1
MOV 0, 1
""",

    "sitting_duck": """;name Sitting Duck
DAT #0, #0
""",
}
