"""
Warrior Loader - parses warrior sources and places them in a fresh core.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import random

from .redcode import Instruction, ParseError, parse_program
from .mars import CORE_SIZE, Process, Warrior, new_core

MAX_WARRIORS = 4
WARRIOR_COLORS = ["#4ade80", "#f87171", "#fbbf24", "#60a5fa", "#c084fc"]


@dataclass
class WarriorDefinition:
    """Unparsed warrior source plus display metadata."""
    id: int
    source: str
    name: str = ""
    color: str = ""

    @property
    def display_name(self) -> str:
        return self.name or f"Warrior {self.id}"


class LoadError(Exception):
    """A warrior failed to parse; nothing was loaded."""

    def __init__(
        self,
        message: str,
        warrior_id: Optional[int] = None,
        warrior_name: str = "",
        line_number: Optional[int] = None,
        line: str = "",
    ):
        super().__init__(message)
        self.warrior_id = warrior_id
        self.warrior_name = warrior_name
        self.line_number = line_number
        self.line = line

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "warrior_id": self.warrior_id,
            "warrior_name": self.warrior_name,
            "line_number": self.line_number,
            "line": self.line,
        }


def generate_positions(
    num_warriors: int,
    core_size: int = CORE_SIZE,
    rng: Optional[random.Random] = None,
) -> List[int]:
    """
    Generate evenly spaced, jittered start addresses.

    Warrior i starts at ``base + i * spacing + jitter_i`` where the
    jitter is below half the spacing, so no two starts coincide.
    """
    rng = rng or random.Random()
    spacing = core_size // num_warriors
    base = rng.randrange(core_size)
    jitter_range = max(1, spacing // 2)

    positions = []
    for i in range(num_warriors):
        jitter = rng.randrange(jitter_range)
        positions.append((base + i * spacing + jitter) % core_size)
    return positions


def load_warriors(
    definitions: Sequence[WarriorDefinition],
    core_size: int = CORE_SIZE,
    rng: Optional[random.Random] = None,
    max_warriors: int = MAX_WARRIORS,
) -> Tuple[List[Instruction], List[Warrior]]:
    """
    Build a fresh core with every warrior written into it.

    All programs are parsed before anything is placed, so a parse
    failure leaves no partial roster behind.

    Args:
        definitions: Warriors to load, in turn order
        core_size: Size of the new core
        rng: Random source for placement
        max_warriors: Largest roster accepted

    Returns:
        Tuple of (core, warriors)

    Raises:
        LoadError: on an empty or oversized roster, or a parse failure
    """
    if not definitions:
        raise LoadError("No warriors to load")
    if len(definitions) > max_warriors:
        raise LoadError(f"At most {max_warriors} warriors can be loaded, got {len(definitions)}")
    if core_size < len(definitions):
        raise LoadError(f"Core of {core_size} cells cannot hold {len(definitions)} warriors")

    ids = [d.id for d in definitions]
    if any(warrior_id <= 0 for warrior_id in ids):
        raise LoadError("Warrior ids must be positive; 0 marks neutral cells")
    if len(set(ids)) != len(ids):
        raise LoadError(f"Duplicate warrior ids: {ids}")

    programs = []
    for definition in definitions:
        try:
            programs.append(parse_program(definition.source, definition.id))
        except ParseError as e:
            raise LoadError(
                f"{definition.display_name}: {e}",
                warrior_id=definition.id,
                warrior_name=definition.display_name,
                line_number=e.line_number,
                line=e.line,
            ) from e

    core = new_core(core_size)
    positions = generate_positions(len(definitions), core_size, rng)
    warriors = []

    for i, (definition, program, start) in enumerate(zip(definitions, programs, positions)):
        # Later warriors may overwrite earlier ones if they overlap
        for offset, instr in enumerate(program):
            core[(start + offset) % core_size] = instr.copy()

        warriors.append(Warrior(
            warrior_id=definition.id,
            name=definition.display_name,
            start_address=start,
            processes=[Process(pc=start, process_id=i + 1)],
            color=definition.color or WARRIOR_COLORS[i % len(WARRIOR_COLORS)],
            length=len(program),
        ))

    return core, warriors
