#!/usr/bin/env python3
"""
Core War MARS - Command Line Battles

Run the bundled warriors, your own .red files, or a whole directory
of them as a tournament.

Usage:
    python run_battle.py --demo
    python run_battle.py imp.red dwarf.red --rounds 10 --seed 7
    python run_battle.py --tournament ./warriors
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from corewar.battle import Battle
from corewar.config import SimulatorConfig
from corewar.loader import LoadError, WarriorDefinition, MAX_WARRIORS
from corewar.redcode import WARRIORS, read_metadata


def definitions_from_sources(sources: List[str], names: Optional[List[str]] = None) -> List[WarriorDefinition]:
    """Number warriors 1..N, naming them from ``;name`` when present."""
    definitions = []
    for i, source in enumerate(sources):
        name = names[i] if names else ""
        definitions.append(WarriorDefinition(
            id=i + 1,
            source=source,
            name=read_metadata(source).get("name", name),
        ))
    return definitions


def read_warrior_files(paths: List[str]) -> List[WarriorDefinition]:
    sources = []
    names = []
    for path in paths:
        file_path = Path(path)
        sources.append(file_path.read_text())
        names.append(file_path.stem)
    return definitions_from_sources(sources, names)


def print_result(result):
    print(f"Winner: {result.get_winner_name()}")
    print(f"Cycles: {result.cycles}")
    for warrior_id in result.warrior_ids:
        print(f"  {result.warrior_names[warrior_id]}: {result.wins.get(warrior_id, 0)} wins")
    print(f"  Draws: {result.draws}")


def run_demo(config: SimulatorConfig, rounds: int = 5):
    """Run a quick battle between bundled warriors."""
    print("\n" + "="*60)
    print("CORE WAR DEMO - Imp vs Dwarf")
    print("="*60 + "\n")

    definitions = definitions_from_sources([WARRIORS["imp"], WARRIORS["dwarf"]])
    battle = Battle(
        core_size=config.core_size,
        max_cycles=config.max_cycles,
        max_processes=config.max_processes,
        num_rounds=rounds,
        seed=config.seed,
    )
    result = battle.run(definitions)
    print_result(result)
    print("\n" + "="*60 + "\n")
    return result


def run_tournament(directory: str, config: SimulatorConfig, rounds: int = 5):
    """
    Run a tournament between warriors in a directory.

    Args:
        directory: Directory containing .red files
        config: Simulator configuration
        rounds: Rounds per matchup
    """
    paths = sorted(str(p) for p in Path(directory).glob("*.red"))
    definitions = read_warrior_files(paths)
    for definition in definitions:
        print(f"Loaded: {definition.display_name}")

    if len(definitions) < 2:
        print("Need at least 2 warriors for a tournament")
        return None

    print(f"\nRunning tournament with {len(definitions)} warriors...")

    battle = Battle(
        core_size=config.core_size,
        max_cycles=config.max_cycles,
        max_processes=config.max_processes,
        seed=config.seed,
    )
    stats = battle.run_tournament(definitions, rounds_per_match=rounds)

    print("\n" + "="*60)
    print("TOURNAMENT RESULTS")
    print("="*60)

    names = {d.id: d.display_name for d in definitions}
    ranked = sorted(stats.items(), key=lambda item: item[1]["points"], reverse=True)
    for rank, (warrior_id, s) in enumerate(ranked, 1):
        print(f"{rank}. {names[warrior_id]}: {s['points']:.0f} pts (W:{s['wins']} D:{s['draws']} L:{s['losses']})")

    print("="*60 + "\n")
    return stats


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Core War MARS - run Redcode battles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_battle.py --demo
  python run_battle.py imp.red dwarf.red --rounds 10 --seed 7
  python run_battle.py --builtin imp --builtin dwarf --plot core.png
  python run_battle.py --tournament ./warriors
        """
    )

    parser.add_argument("files", nargs="*", help="Warrior .red files (up to 4)")
    parser.add_argument("--demo", action="store_true", help="Run a quick demo battle")
    parser.add_argument(
        "--builtin",
        action="append",
        choices=sorted(WARRIORS),
        help="Add a bundled warrior (repeatable)",
    )
    parser.add_argument("--tournament", type=str, help="Run tournament with warriors from directory")
    parser.add_argument("--rounds", type=int, default=1, help="Rounds per battle (default: 1)")
    parser.add_argument("--seed", type=int, help="Placement seed")
    parser.add_argument("--max-cycles", type=int, help="Cycle cap per round")
    parser.add_argument("--plot", type=str, help="Save the final core ownership plot to this PNG")
    parser.add_argument("--heatmap", type=str, help="Save the write heat map to this PNG")

    args = parser.parse_args(argv)

    config = SimulatorConfig.from_env()
    if args.seed is not None:
        config.seed = args.seed
    if args.max_cycles is not None:
        config.max_cycles = args.max_cycles

    if args.demo:
        run_demo(config, rounds=max(args.rounds, 1))
        return 0

    if args.tournament:
        run_tournament(args.tournament, config, rounds=max(args.rounds, 1))
        return 0

    definitions = read_warrior_files(args.files)
    for key in args.builtin or []:
        definitions.append(WarriorDefinition(
            id=len(definitions) + 1,
            source=WARRIORS[key],
            name=read_metadata(WARRIORS[key]).get("name", key),
        ))

    if not definitions:
        parser.print_help()
        print("\nQuick start: python run_battle.py --demo")
        return 0
    if len(definitions) > MAX_WARRIORS:
        print(f"At most {MAX_WARRIORS} warriors per battle")
        return 2

    try:
        if args.plot or args.heatmap:
            from visualize import BattleVisualizer, plot_core_state, plot_write_heatmap

            visualizer = BattleVisualizer(core_size=config.core_size)
            mars, heatmap = visualizer.run(definitions, max_cycles=config.max_cycles, seed=config.seed)
            if args.plot:
                plot_core_state(mars, save_path=args.plot)
            if args.heatmap:
                plot_write_heatmap(heatmap, save_path=args.heatmap)
            print(f"Cycles: {mars.cycle}, status: {mars.status.value}")
            return 0

        battle = Battle(
            core_size=config.core_size,
            max_cycles=config.max_cycles,
            max_processes=config.max_processes,
            num_rounds=max(args.rounds, 1),
            seed=config.seed,
        )
        print_result(battle.run(definitions))
    except LoadError as e:
        print(f"Load failed: {e}")
        if e.line:
            print(f"  > {e.line}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
