"""
MARS - Memory Array Redcode Simulator

The virtual machine that executes Core War battles: address resolution,
the single-instruction step function and the round-robin scheduler.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set
from collections import deque
from enum import Enum
import logging
import random
import time

from .redcode import Instruction, OpCode, AddressMode

logger = logging.getLogger(__name__)

CORE_SIZE = 8000
MAX_PROCESSES = 8000
DEFAULT_MAX_CYCLES = 80000
DEFAULT_LOG_SIZE = 50


@dataclass
class Process:
    """A single execution thread in the MARS."""
    pc: int = 0
    process_id: int = 0


@dataclass
class Warrior:
    """Runtime state for a warrior in battle."""
    warrior_id: int
    name: str
    start_address: int
    processes: List[Process] = field(default_factory=list)
    color: str = ""
    length: int = 0
    process_index: int = 0  # next process to run, taken modulo len(processes)

    @property
    def is_alive(self) -> bool:
        return len(self.processes) > 0


@dataclass
class StepResult:
    """What one executed instruction did. The core is already updated."""
    processes: List[Process]
    killed: bool
    next_pc: int
    touched: Set[int] = field(default_factory=set)
    spawned: Optional[Process] = None


class MatchStatus(Enum):
    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    STEPPING = "stepping"
    SINGLE_WINNER = "single_winner"
    DRAW = "draw"


@dataclass
class CycleReport:
    """Summary of one scheduler cycle, for presentation."""
    cycle: int
    warrior_id: int
    pc: Optional[int] = None
    touched: Set[int] = field(default_factory=set)
    killed: bool = False
    spawned_pc: Optional[int] = None
    eliminated: Optional[int] = None


def new_core(core_size: int = CORE_SIZE) -> List[Instruction]:
    """A core filled with neutral ``DAT #0, #0`` cells."""
    return [Instruction() for _ in range(core_size)]


def effective_address(
    pc: int,
    mode: AddressMode,
    value: int,
    core: Sequence[Instruction],
) -> int:
    """
    Resolve an operand to a core index in ``[0, len(core))``.

    IMMEDIATE, DIRECT and PREDECREMENT are all relative to ``pc``.
    INDIRECT_B reads the B-field of the cell at ``pc + value`` and adds
    it to ``pc`` (not to the pointer cell).
    """
    size = len(core)
    if mode == AddressMode.INDIRECT_B:
        pointer = (pc + value) % size
        return (pc + core[pointer].b_value) % size
    return (pc + value) % size


def operand_value(
    pc: int,
    mode: AddressMode,
    value: int,
    field_name: str,
    core: Sequence[Instruction],
) -> int:
    """
    Read an operand as a number.

    Immediate operands are their own value; anything else reads the
    A- or B-field (``field_name``) of the cell the operand resolves to.
    """
    if mode == AddressMode.IMMEDIATE:
        return value
    target = core[effective_address(pc, mode, value, core)]
    return target.a_value if field_name == "A" else target.b_value


def execute_instruction(
    core: List[Instruction],
    warrior: Warrior,
    process: Process,
    processes: List[Process],
    max_processes: int = MAX_PROCESSES,
    next_process_id: int = 0,
) -> StepResult:
    """
    Execute the instruction under ``process.pc``.

    Writes land in ``core`` directly; the process list is returned as a
    new list and ``processes`` is left untouched. Never raises: an
    unrecognised opcode behaves like NOP.

    Args:
        core: The memory array, mutated in place
        warrior: Owner of the executing process
        process: The process being executed
        processes: The warrior's live processes
        max_processes: Per-warrior process cap for SPL
        next_process_id: Id given to a process spawned by SPL

    Returns:
        StepResult with the new process list, kill flag, next pc and
        the addresses written
    """
    size = len(core)
    pc = process.pc
    instr = core[pc]
    opcode = instr.opcode

    new_processes = list(processes)
    next_pc = (pc + 1) % size
    touched: Set[int] = set()
    killed = False
    spawned = None

    if opcode == OpCode.DAT:
        killed = True

    elif opcode == OpCode.MOV:
        a_addr = effective_address(pc, instr.a_mode, instr.a_value, core)
        b_addr = effective_address(pc, instr.b_mode, instr.b_value, core)
        if instr.a_mode == AddressMode.IMMEDIATE:
            new_dst = core[b_addr].copy()
            new_dst.b_value = instr.a_value
        else:
            new_dst = core[a_addr].copy()
        new_dst.owner = warrior.warrior_id
        core[b_addr] = new_dst
        touched.add(b_addr)

    elif opcode in (OpCode.ADD, OpCode.SUB):
        a_val = operand_value(pc, instr.a_mode, instr.a_value, "A", core)
        b_addr = effective_address(pc, instr.b_mode, instr.b_value, core)
        new_dst = core[b_addr].copy()
        if opcode == OpCode.ADD:
            new_dst.b_value = (new_dst.b_value + a_val) % size
        else:
            new_dst.b_value = (new_dst.b_value - a_val) % size
        new_dst.owner = warrior.warrior_id
        core[b_addr] = new_dst
        touched.add(b_addr)

    elif opcode == OpCode.JMP:
        next_pc = (pc + instr.a_value) % size

    elif opcode == OpCode.SPL:
        target = (pc + instr.a_value) % size
        if len(processes) < max_processes:
            spawned = Process(pc=target, process_id=next_process_id)
            new_processes.append(spawned)

    # NOP and unknown opcodes just advance

    return StepResult(
        processes=new_processes,
        killed=killed,
        next_pc=next_pc,
        touched=touched,
        spawned=spawned,
    )


class EventLog:
    """Rolling, newest-first log of notable match events."""

    def __init__(self, maxlen: int = DEFAULT_LOG_SIZE):
        self._entries: deque = deque(maxlen=maxlen)

    def append(self, message: str, level: int = logging.INFO):
        stamp = time.strftime("%H:%M:%S")
        self._entries.appendleft(f"{stamp} {message}")
        logger.log(level, message)

    def entries(self) -> List[str]:
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class MARS:
    """
    Memory Array Redcode Simulator - the Core War virtual machine.

    Owns the core, the warrior roster and the turn order. Each call to
    :meth:`step` runs one scheduling cycle; whoever calls it (a timer,
    a button, a loop) keeps no simulation state of its own.
    """

    def __init__(
        self,
        core_size: int = CORE_SIZE,
        max_processes: int = MAX_PROCESSES,
        max_cycles: int = DEFAULT_MAX_CYCLES,
        log_size: int = DEFAULT_LOG_SIZE,
    ):
        """
        Initialize the MARS.

        Args:
            core_size: Number of memory addresses (default 8000)
            max_processes: Max processes per warrior (default 8000)
            max_cycles: Cycle cap used by run() (default 80000)
            log_size: Number of event log lines kept (default 50)
        """
        self.core_size = core_size
        self.max_processes = max_processes
        self.max_cycles = max_cycles
        self.log = EventLog(log_size)
        self.reset()

    def reset(self):
        """Reset the MARS to an empty, all-neutral core."""
        self.core: List[Instruction] = new_core(self.core_size)
        self.warriors: List[Warrior] = []
        self.active_warrior_index: int = 0
        self.cycle: int = 0
        self.status = MatchStatus.IDLE
        self.winner_id: Optional[int] = None
        self.last_touched: Set[int] = set()
        self.last_writer: Optional[int] = None
        self._next_process_id: int = 1
        self.log.append("Core reset.", logging.DEBUG)

    def load(self, definitions, seed: Optional[int] = None) -> List[Warrior]:
        """
        Parse and place warriors, replacing whatever was loaded before.

        Nothing changes if any program fails to parse.

        Args:
            definitions: Sequence of WarriorDefinition
            seed: Seed for start-address placement

        Returns:
            The new roster

        Raises:
            LoadError: naming the warrior and line that failed
        """
        from .loader import LoadError, load_warriors

        try:
            core, warriors = load_warriors(
                definitions,
                core_size=self.core_size,
                rng=random.Random(seed),
            )
        except LoadError as e:
            self.log.append(f"Load Error: {e}", logging.WARNING)
            raise

        self.reset()
        self.core = core
        self.warriors = warriors
        self._next_process_id = len(warriors) + 1
        self.status = MatchStatus.LOADED
        for warrior in warriors:
            self.log.append(
                f"Warrior {warrior.warrior_id} ({warrior.name}) loaded: "
                f"{warrior.length} instructions at {warrior.start_address}."
            )
        return warriors

    @property
    def is_finished(self) -> bool:
        return self.status in (MatchStatus.SINGLE_WINNER, MatchStatus.DRAW)

    def start(self):
        """Mark the match as free-running (paced by an external driver)."""
        if self.warriors and not self.is_finished:
            self.status = MatchStatus.RUNNING

    def pause(self):
        if self.status == MatchStatus.RUNNING:
            self.status = MatchStatus.STEPPING

    def _eliminate(self, index: int):
        """Remove the warrior at ``index`` and check for the end of the match."""
        warrior = self.warriors.pop(index)
        self.log.append(f"Warrior {warrior.warrior_id} ({warrior.name}) has no processes left. Removed.")

        if not self.warriors:
            self.active_warrior_index = 0
            self.status = MatchStatus.DRAW
            self.log.append("Game over! All warriors killed.")
        elif len(self.warriors) == 1:
            self.active_warrior_index = 0
            self.status = MatchStatus.SINGLE_WINNER
            self.winner_id = self.warriors[0].warrior_id
            self.log.append(f"Warrior {self.winner_id} ({self.warriors[0].name}) wins!")
        else:
            self.active_warrior_index = index % len(self.warriors)

    def step(self) -> Optional[CycleReport]:
        """
        Run one scheduling cycle.

        Returns:
            A CycleReport, or None if there is nothing to run
        """
        if self.is_finished or not self.warriors:
            return None
        if self.status != MatchStatus.RUNNING:
            self.status = MatchStatus.STEPPING

        self.last_touched = set()
        self.last_writer = None

        self.active_warrior_index %= len(self.warriors)
        warrior_index = self.active_warrior_index
        warrior = self.warriors[warrior_index]

        if not warrior.processes:
            # Removal uses up this cycle
            self._eliminate(warrior_index)
            return CycleReport(
                cycle=self.cycle,
                warrior_id=warrior.warrior_id,
                eliminated=warrior.warrior_id,
            )

        process_index = warrior.process_index % len(warrior.processes)
        process = warrior.processes[process_index]
        pc = process.pc

        result = execute_instruction(
            self.core,
            warrior,
            process,
            warrior.processes,
            max_processes=self.max_processes,
            next_process_id=self._next_process_id,
        )

        if result.spawned is not None:
            self._next_process_id += 1
            self.log.append(
                f"[W{warrior.warrior_id}] SPL created new process at {result.spawned.pc}",
                logging.DEBUG,
            )

        if result.killed:
            # The next process slides into this slot, so the index stays
            del warrior.processes[process_index]
            warrior.process_index = process_index
            self.log.append(
                f"[W{warrior.warrior_id}] Process {process.process_id} executed DAT at {pc}. Killed."
            )
        else:
            process.pc = result.next_pc
            warrior.processes = result.processes
            warrior.process_index = (process_index + 1) % len(warrior.processes)

        if result.touched:
            self.last_touched = set(result.touched)
            self.last_writer = warrior.warrior_id

        eliminated = None
        if not warrior.processes:
            eliminated = warrior.warrior_id
            self._eliminate(warrior_index)
        else:
            self.active_warrior_index = (warrior_index + 1) % len(self.warriors)

        self.cycle += 1

        return CycleReport(
            cycle=self.cycle,
            warrior_id=warrior.warrior_id,
            pc=pc,
            touched=set(result.touched),
            killed=result.killed,
            spawned_pc=result.spawned.pc if result.spawned is not None else None,
            eliminated=eliminated,
        )

    def run(self, max_cycles: Optional[int] = None) -> Optional[int]:
        """
        Run the simulation until one warrior is left or the cycle cap.

        Returns:
            The winner's warrior_id, or None for a draw
        """
        limit = self.max_cycles if max_cycles is None else max_cycles
        was_running = self.status == MatchStatus.RUNNING
        self.start()

        while not self.is_finished and self.cycle < limit:
            if self.step() is None:
                break

        if not was_running:
            self.pause()

        if self.is_finished:
            return self.winner_id
        if len(self.warriors) == 1:
            return self.warriors[0].warrior_id
        return None

    # Inspection

    def get_warrior(self, warrior_id: int) -> Optional[Warrior]:
        for warrior in self.warriors:
            if warrior.warrior_id == warrior_id:
                return warrior
        return None

    def ownership(self) -> List[int]:
        """Owner id of every cell (0 = neutral)."""
        return [cell.owner for cell in self.core]

    def core_view(self) -> List[Dict[str, Any]]:
        return [{"owner": cell.owner, "instruction": str(cell)} for cell in self.core]

    def process_locations(self) -> Dict[int, List[int]]:
        return {w.warrior_id: [p.pc for p in w.processes] for w in self.warriors}

    def _active_pc(self) -> int:
        if not self.warriors:
            return 0
        warrior = self.warriors[self.active_warrior_index % len(self.warriors)]
        if not warrior.processes:
            return 0
        return warrior.processes[warrior.process_index % len(warrior.processes)].pc

    def memory_snippet(
        self,
        owner: Optional[int] = None,
        center: Optional[int] = None,
        window: int = 25,
    ) -> List[Dict[str, Any]]:
        """
        A window of cells around a program counter.

        With ``owner`` set, the window centres on that warrior's first
        process and hides cells owned by other warriors unless the owner
        just wrote them. Neutral cells are always shown.
        """
        sources = self.warriors
        if owner is not None:
            warrior = self.get_warrior(owner)
            if warrior is None or not warrior.processes:
                return []
            sources = [warrior]
            if center is None:
                center = warrior.processes[0].pc
        if center is None:
            center = self._active_pc()

        pcs = {p.pc for w in sources for p in w.processes}
        start = (center - window // 2) % self.core_size
        rows = []
        for i in range(window):
            addr = (start + i) % self.core_size
            cell = self.core[addr]
            updated = addr in self.last_touched and (owner is None or self.last_writer == owner)
            if owner is not None and cell.owner not in (0, owner) and not updated:
                continue
            rows.append({
                "address": addr,
                "instruction": str(cell),
                "owner": cell.owner,
                "is_pc": addr in pcs,
                "is_updated": updated,
            })
        return rows

    def snapshot(self) -> Dict[str, Any]:
        """Read-only summary of the match for presentation layers."""
        return {
            "cycle": self.cycle,
            "status": self.status.value,
            "winner_id": self.winner_id,
            "core_size": self.core_size,
            "warriors": [
                {
                    "id": w.warrior_id,
                    "name": w.name,
                    "color": w.color,
                    "start_address": w.start_address,
                    "process_count": len(w.processes),
                    "pcs": [p.pc for p in w.processes],
                }
                for w in self.warriors
            ],
            "process_count": sum(len(w.processes) for w in self.warriors),
            "touched": sorted(self.last_touched),
            "touched_by": self.last_writer,
            "log": self.log.entries(),
        }
