"""
Battle Module - Runs Core War matches to completion without a UI.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .loader import WarriorDefinition
from .mars import MARS, CORE_SIZE, DEFAULT_MAX_CYCLES, MAX_PROCESSES


@dataclass
class BattleResult:
    """Result of a Core War battle."""
    winner_id: Optional[int]  # None for draw
    warrior_ids: List[int]
    warrior_names: Dict[int, str]
    cycles: int

    wins: Dict[int, int] = field(default_factory=dict)
    draws: int = 0

    def is_draw(self) -> bool:
        return self.winner_id is None

    def get_winner_name(self) -> str:
        if self.winner_id is None:
            return "Draw"
        return self.warrior_names.get(self.winner_id, "Unknown")


class Battle:
    """
    Manages Core War battles between warriors.

    Every round reloads the warriors into a fresh MARS with a seed
    derived from ``seed`` and the round number, so results repeat.
    """

    def __init__(
        self,
        core_size: int = CORE_SIZE,
        max_cycles: int = DEFAULT_MAX_CYCLES,
        max_processes: int = MAX_PROCESSES,
        num_rounds: int = 1,
        seed: Optional[int] = None,
    ):
        """
        Initialize battle configuration.

        Args:
            core_size: Size of core memory
            max_cycles: Maximum cycles before draw
            max_processes: Max processes per warrior
            num_rounds: Number of rounds to run
            seed: Base seed for placement
        """
        self.core_size = core_size
        self.max_cycles = max_cycles
        self.max_processes = max_processes
        self.num_rounds = num_rounds
        self.seed = seed

    def _round_seed(self, round_number: int) -> Optional[int]:
        if self.seed is None:
            return None
        return self.seed + round_number

    def run(self, definitions: Sequence[WarriorDefinition]) -> BattleResult:
        """
        Run a battle between warriors.

        Raises:
            LoadError: if any warrior fails to load
        """
        wins = {d.id: 0 for d in definitions}
        draws = 0
        total_cycles = 0

        for round_number in range(self.num_rounds):
            mars = MARS(
                core_size=self.core_size,
                max_processes=self.max_processes,
                max_cycles=self.max_cycles,
            )
            mars.load(definitions, seed=self._round_seed(round_number))

            winner = mars.run()
            total_cycles += mars.cycle

            if winner is not None:
                wins[winner] += 1
            else:
                draws += 1

        # Overall winner: most wins, and more wins than draws
        max_wins = max(wins.values())
        leaders = [i for i, w in wins.items() if w == max_wins]
        if len(leaders) == 1 and max_wins > draws:
            final_winner = leaders[0]
        else:
            final_winner = None

        return BattleResult(
            winner_id=final_winner,
            warrior_ids=[d.id for d in definitions],
            warrior_names={d.id: d.display_name for d in definitions},
            cycles=total_cycles // self.num_rounds,
            wins=wins,
            draws=draws,
        )

    def run_tournament(
        self,
        definitions: Sequence[WarriorDefinition],
        rounds_per_match: int = 10,
    ) -> Dict[int, Dict[str, float]]:
        """
        Run a round-robin tournament between all warriors.

        Returns:
            Dict mapping warrior id to tournament statistics
        """
        stats = {
            d.id: {"wins": 0, "losses": 0, "draws": 0, "points": 0.0}
            for d in definitions
        }

        original_rounds = self.num_rounds
        self.num_rounds = rounds_per_match
        try:
            for i, first in enumerate(definitions):
                for second in definitions[i + 1:]:
                    result = self.run([first, second])

                    if result.winner_id == first.id:
                        winner, loser = first.id, second.id
                    elif result.winner_id == second.id:
                        winner, loser = second.id, first.id
                    else:
                        stats[first.id]["draws"] += 1
                        stats[second.id]["draws"] += 1
                        stats[first.id]["points"] += 1.0
                        stats[second.id]["points"] += 1.0
                        continue

                    stats[winner]["wins"] += 1
                    stats[loser]["losses"] += 1
                    stats[winner]["points"] += 3.0
        finally:
            self.num_rounds = original_rounds

        return stats
