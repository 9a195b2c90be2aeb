import pytest

from corewar.config import SimulatorConfig
from corewar.mars import CORE_SIZE


def test_defaults():
    config = SimulatorConfig.from_env(environ={})
    assert config.core_size == CORE_SIZE
    assert config.tick_ms == 50
    assert config.seed is None
    assert config.port == 8080


def test_reads_mars_variables():
    config = SimulatorConfig.from_env(environ={
        "MARS_CORE_SIZE": "800",
        "MARS_SEED": "12",
        "MARS_TICK_MS": " 10 ",
        "MARS_PORT": "",
    })
    assert config.core_size == 800
    assert config.seed == 12
    assert config.tick_ms == 10
    assert config.port == 8080


def test_loads_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / "config.env"
    env_file.write_text("MARS_MAX_CYCLES=1234\n")
    monkeypatch.delenv("MARS_MAX_CYCLES", raising=False)

    config = SimulatorConfig.from_env(env_file=env_file)
    assert config.max_cycles == 1234
    monkeypatch.delenv("MARS_MAX_CYCLES", raising=False)


def test_rejects_non_integer():
    with pytest.raises(ValueError, match="MARS_SEED"):
        SimulatorConfig.from_env(environ={"MARS_SEED": "abc"})
