"""
Core War Simulator - a small MARS for the simplified Redcode dialect.

This package provides the instruction set, parser, execution engine,
scheduler and loader used by the web interface and the battle CLI.
"""

from .redcode import (
    Instruction,
    OpCode,
    Modifier,
    AddressMode,
    ParseError,
    UnknownOpcodeError,
    parse_instruction,
    parse_program,
    program_to_string,
    WARRIORS,
)
from .mars import (
    MARS,
    Process,
    Warrior,
    MatchStatus,
    CORE_SIZE,
    MAX_PROCESSES,
    effective_address,
    operand_value,
    execute_instruction,
)
from .loader import WarriorDefinition, LoadError, load_warriors
from .battle import Battle, BattleResult
from .config import SimulatorConfig

__all__ = [
    "Instruction",
    "OpCode",
    "Modifier",
    "AddressMode",
    "ParseError",
    "UnknownOpcodeError",
    "parse_instruction",
    "parse_program",
    "program_to_string",
    "WARRIORS",
    "MARS",
    "Process",
    "Warrior",
    "MatchStatus",
    "CORE_SIZE",
    "MAX_PROCESSES",
    "effective_address",
    "operand_value",
    "execute_instruction",
    "WarriorDefinition",
    "LoadError",
    "load_warriors",
    "Battle",
    "BattleResult",
    "SimulatorConfig",
]
