import random

import pytest

from corewar.loader import (
    LoadError,
    MAX_WARRIORS,
    WARRIOR_COLORS,
    WarriorDefinition,
    generate_positions,
    load_warriors,
)
from corewar.redcode import ParseError, WARRIORS


class FixedRandom:
    """Returns queued values from randrange."""

    def __init__(self, *values):
        self.values = list(values)

    def randrange(self, stop):
        value = self.values.pop(0)
        assert 0 <= value < stop
        return value


@pytest.mark.parametrize("num_warriors", [1, 2, 3, 4])
@pytest.mark.parametrize("seed", range(20))
def test_positions_are_spread_and_distinct(num_warriors, seed):
    core_size = 8000
    positions = generate_positions(num_warriors, core_size, random.Random(seed))
    spacing = core_size // num_warriors

    assert len(set(positions)) == num_warriors
    for first, second in zip(positions, positions[1:]):
        gap = (second - first) % core_size
        assert spacing - spacing // 2 < gap < spacing + spacing // 2


def test_same_seed_same_positions():
    assert generate_positions(3, 8000, random.Random(42)) == generate_positions(3, 8000, random.Random(42))


def test_load_writes_programs_and_initial_processes():
    definitions = [
        WarriorDefinition(id=1, source=WARRIORS["imp"], name="Imp"),
        WarriorDefinition(id=2, source=WARRIORS["dwarf"]),
    ]
    core, warriors = load_warriors(definitions, rng=random.Random(7))

    assert len(core) == 8000
    assert [w.name for w in warriors] == ["Imp", "Warrior 2"]
    assert [w.color for w in warriors] == WARRIOR_COLORS[:2]
    assert [w.length for w in warriors] == [1, 4]

    imp, dwarf = warriors
    assert str(core[imp.start_address]) == "MOV 0, 1"
    assert core[imp.start_address].owner == 1
    assert [str(core[(dwarf.start_address + i) % 8000]) for i in range(4)] == [
        "ADD #4, 3", "MOV 2, @2", "JMP -2, 0", "DAT #0, #2",
    ]
    assert all(core[(dwarf.start_address + i) % 8000].owner == 2 for i in range(4))
    assert [p.pc for p in dwarf.processes] == [dwarf.start_address]
    assert sum(1 for cell in core if cell.owner) == 5


def test_program_wraps_around_end_of_core():
    definitions = [WarriorDefinition(id=1, source="NOP\nNOP\nNOP\nJMP -3")]
    core, warriors = load_warriors(definitions, core_size=10, rng=FixedRandom(8, 0))
    assert warriors[0].start_address == 8
    assert [core[a].owner for a in (8, 9, 0, 1)] == [1, 1, 1, 1]
    assert str(core[1]) == "JMP -3, 0"


def test_parse_failure_aborts_whole_load():
    definitions = [
        WarriorDefinition(id=1, source=WARRIORS["imp"], name="Imp"),
        WarriorDefinition(id=2, source="MOV 0, 1\nLDP 1, 2", name="Broken"),
    ]
    with pytest.raises(LoadError) as excinfo:
        load_warriors(definitions, rng=random.Random(1))

    error = excinfo.value
    assert error.warrior_id == 2
    assert error.warrior_name == "Broken"
    assert error.line_number == 2
    assert error.line == "LDP 1, 2"
    assert isinstance(error.__cause__, ParseError)
    assert error.to_dict()["line_number"] == 2


@pytest.mark.parametrize(
    "definitions, pattern",
    [
        ([], "No warriors"),
        ([WarriorDefinition(id=i + 1, source="NOP") for i in range(MAX_WARRIORS + 1)], "At most"),
        ([WarriorDefinition(id=0, source="NOP")], "positive"),
        ([WarriorDefinition(id=1, source="NOP"), WarriorDefinition(id=1, source="NOP")], "Duplicate"),
    ],
)
def test_rejects_bad_rosters(definitions, pattern):
    with pytest.raises(LoadError, match=pattern):
        load_warriors(definitions)


def test_empty_program_still_gets_a_process():
    core, warriors = load_warriors([WarriorDefinition(id=1, source="; nothing here")], rng=random.Random(1))
    assert warriors[0].length == 0
    assert len(warriors[0].processes) == 1
    assert core[warriors[0].start_address].owner == 0
