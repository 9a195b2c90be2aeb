import pytest

from corewar.battle import Battle
from corewar.loader import LoadError, WarriorDefinition
from corewar.redcode import WARRIORS


def _defs(*keys):
    return [WarriorDefinition(id=i + 1, source=WARRIORS[k], name=k) for i, k in enumerate(keys)]


def test_imp_beats_sitting_duck():
    battle = Battle(num_rounds=3, seed=1)
    result = battle.run(_defs("sitting_duck", "imp"))

    assert result.winner_id == 2
    assert result.get_winner_name() == "imp"
    assert result.wins == {1: 0, 2: 3}
    assert result.draws == 0
    assert result.cycles == 1


def test_two_imps_draw_at_cycle_cap():
    battle = Battle(max_cycles=200, num_rounds=2, seed=1)
    result = battle.run(_defs("imp", "imp"))

    assert result.is_draw()
    assert result.get_winner_name() == "Draw"
    assert result.draws == 2
    assert result.cycles == 200


def test_battle_is_repeatable_with_seed():
    first = Battle(max_cycles=3000, num_rounds=2, seed=5).run(_defs("dwarf", "imp"))
    second = Battle(max_cycles=3000, num_rounds=2, seed=5).run(_defs("dwarf", "imp"))
    assert first == second


def test_bad_source_raises_load_error():
    with pytest.raises(LoadError):
        Battle().run([WarriorDefinition(id=1, source="NOP"), WarriorDefinition(id=2, source="HCF")])


def test_tournament_points():
    battle = Battle(max_cycles=200, seed=3, num_rounds=4)
    stats = battle.run_tournament(_defs("imp", "sitting_duck", "twin_imp"), rounds_per_match=2)

    assert stats[1] == {"wins": 1, "losses": 0, "draws": 1, "points": 4.0}
    assert stats[2] == {"wins": 0, "losses": 2, "draws": 0, "points": 0.0}
    assert stats[3] == {"wins": 1, "losses": 0, "draws": 1, "points": 4.0}
    assert battle.num_rounds == 4
