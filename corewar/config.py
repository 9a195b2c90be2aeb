"""
Simulator configuration, read from the environment or ``config.env``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os

from dotenv import load_dotenv

from .mars import CORE_SIZE, DEFAULT_LOG_SIZE, DEFAULT_MAX_CYCLES, MAX_PROCESSES

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE = PROJECT_ROOT / "config.env"


@dataclass
class SimulatorConfig:
    """Configuration for the MARS and its drivers."""

    # Core
    core_size: int = CORE_SIZE
    max_processes: int = MAX_PROCESSES
    max_cycles: int = DEFAULT_MAX_CYCLES

    # Live running
    tick_ms: int = 50                       # Delay between cycles when running
    seed: Optional[int] = None              # Placement seed, None = random

    # Presentation
    log_size: int = DEFAULT_LOG_SIZE
    port: int = 8080

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = ENV_FILE,
    ) -> "SimulatorConfig":
        """
        Build a config from ``MARS_*`` variables.

        ``config.env`` is loaded first when present; variables already
        set in the process environment win.
        """
        if environ is None:
            if env_file is not None and Path(env_file).exists():
                load_dotenv(env_file)
            environ = os.environ

        def get_int(name: str, default: Optional[int]) -> Optional[int]:
            value = environ.get(name, "").strip()
            if not value:
                return default
            try:
                return int(value)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got {value!r}") from None

        return cls(
            core_size=get_int("MARS_CORE_SIZE", CORE_SIZE),
            max_processes=get_int("MARS_MAX_PROCESSES", MAX_PROCESSES),
            max_cycles=get_int("MARS_MAX_CYCLES", DEFAULT_MAX_CYCLES),
            tick_ms=get_int("MARS_TICK_MS", 50),
            seed=get_int("MARS_SEED", None),
            log_size=get_int("MARS_LOG_SIZE", DEFAULT_LOG_SIZE),
            port=get_int("MARS_PORT", 8080),
        )
