"""
Visualization Tools for Core War

Read-only views of a MARS for presentation:
- Ownership grid of the core
- Write heat map accumulated over a battle
- PNG rendering of both
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from matplotlib.colors import ListedColormap

from corewar.loader import WarriorDefinition, WARRIOR_COLORS
from corewar.mars import MARS, CORE_SIZE

UNOWNED_COLOR = "#1f2937"
HIGHLIGHT_COLOR = "#ffffff"


def ownership_grid(ownership: Sequence[int], cols: int = 100) -> np.ndarray:
    """
    Lay the per-cell owner ids out as a 2D grid.

    Cells past the end of the core are padded with -1.
    """
    rows = int(np.ceil(len(ownership) / cols))
    padded = np.full(rows * cols, -1, dtype=int)
    padded[:len(ownership)] = ownership
    return padded.reshape(rows, cols)


class WriteHeatmap:
    """Counts how often each core address has been written."""

    def __init__(self, core_size: int = CORE_SIZE):
        self.core_size = core_size
        self.counts = np.zeros(core_size, dtype=np.int64)

    def record(self, addresses: Iterable[int]):
        for addr in addresses:
            self.counts[addr % self.core_size] += 1

    def grid(self, cols: int = 100) -> np.ndarray:
        rows = int(np.ceil(self.core_size / cols))
        padded = np.zeros(rows * cols, dtype=np.int64)
        padded[:self.core_size] = self.counts
        return padded.reshape(rows, cols)

    def hottest(self, n: int = 10) -> List[int]:
        """Addresses with the most writes, busiest first."""
        order = np.argsort(self.counts, kind="stable")[::-1]
        return [int(a) for a in order[:n] if self.counts[a] > 0]


def _finish(fig, save_path: Optional[str]):
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150)
        print(f"Saved to {save_path}")
    else:
        plt.show()

    plt.close(fig)


def plot_core_state(
    mars: MARS,
    cols: int = 100,
    highlight_touched: bool = True,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
):
    """
    Plot who owns every core cell.

    Args:
        mars: The simulator to draw (not modified)
        cols: Cells per row
        highlight_touched: Paint the cells written last cycle white
        title: Plot title
        save_path: Optional path to save the figure
    """
    grid = ownership_grid(mars.ownership(), cols)
    names = {w.warrior_id: (w.name, w.color) for w in mars.warriors}
    max_owner = max([int(grid.max()), 0] + list(names))

    # Index 0 = padding, 1 = unowned, 2.. = warriors by id
    colors = ["#000000", UNOWNED_COLOR]
    for owner in range(1, max_owner + 1):
        _, color = names.get(owner, ("", ""))
        colors.append(color or WARRIOR_COLORS[(owner - 1) % len(WARRIOR_COLORS)])
    colors.append(HIGHLIGHT_COLOR)
    highlight_index = len(colors) - 1

    image = grid + 1
    if highlight_touched:
        for addr in mars.last_touched:
            image[addr // cols, addr % cols] = highlight_index

    fig, ax = plt.subplots(figsize=(10, 10))
    ax.imshow(image, cmap=ListedColormap(colors), vmin=0, vmax=highlight_index, interpolation="nearest")

    patches = [mpatches.Patch(color=UNOWNED_COLOR, label="Unowned")]
    for warrior_id, (name, color) in sorted(names.items()):
        patches.append(mpatches.Patch(color=colors[warrior_id + 1], label=name[:20]))
    ax.legend(handles=patches, loc="upper right")

    ax.set_title(title or f"Core State after {mars.cycle} cycles", fontsize=14)
    ax.axis("off")

    _finish(fig, save_path)


def plot_write_heatmap(
    heatmap: WriteHeatmap,
    cols: int = 100,
    title: str = "Core Write Heat Map",
    save_path: Optional[str] = None,
):
    """
    Plot write counts per address.

    Args:
        heatmap: Accumulated write counts
        cols: Cells per row
        title: Plot title
        save_path: Optional path to save the figure
    """
    grid = heatmap.grid(cols)

    fig, ax = plt.subplots(figsize=(10, 10))
    im = ax.imshow(np.log1p(grid), cmap="inferno", interpolation="nearest")

    cbar = plt.colorbar(im, ax=ax)
    cbar.set_label("log(1 + writes)", fontsize=12)

    ax.set_title(title, fontsize=14)
    ax.axis("off")

    _finish(fig, save_path)


class BattleVisualizer:
    """
    Runs a battle while recording every write, then draws it.
    """

    def __init__(self, core_size: int = CORE_SIZE, cols: int = 100):
        """
        Initialize the visualizer.

        Args:
            core_size: Size of the core
            cols: Cells per row in the plots
        """
        self.core_size = core_size
        self.cols = cols

    def run(
        self,
        definitions: Sequence[WarriorDefinition],
        max_cycles: int = 80000,
        seed: Optional[int] = None,
    ):
        """
        Run a battle to completion.

        Returns:
            Tuple of (finished MARS, WriteHeatmap)
        """
        mars = MARS(core_size=self.core_size, max_cycles=max_cycles)
        mars.load(definitions, seed=seed)
        heatmap = WriteHeatmap(self.core_size)

        mars.start()
        while not mars.is_finished and mars.cycle < max_cycles:
            report = mars.step()
            if report is None:
                break
            heatmap.record(report.touched)
        mars.pause()

        return mars, heatmap

    def visualize_final_state(
        self,
        definitions: Sequence[WarriorDefinition],
        max_cycles: int = 80000,
        seed: Optional[int] = None,
        save_path: Optional[str] = None,
        heatmap_path: Optional[str] = None,
    ):
        """
        Visualize the final state of a battle.

        Args:
            definitions: Warriors to battle
            max_cycles: Maximum cycles
            seed: Placement seed
            save_path: Optional path for the ownership plot
            heatmap_path: Optional path for the heat map plot
        """
        mars, heatmap = self.run(definitions, max_cycles=max_cycles, seed=seed)
        plot_core_state(mars, cols=self.cols, save_path=save_path)
        if heatmap_path:
            plot_write_heatmap(heatmap, cols=self.cols, save_path=heatmap_path)
        return mars, heatmap
