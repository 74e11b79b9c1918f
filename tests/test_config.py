import pytest

from procrate.common.errors import ConfigurationError
from procrate.config import ProcFiles, SamplerConfig, build_config, config_from_env, read_config


def test_defaults():
    config = build_config()
    assert config == SamplerConfig()
    assert config.files.path == "/proc"
    assert config.pids is None
    assert config.pages_to_bytes == 0
    assert config.clock_ticks == 100


def test_pids_are_validated():
    assert build_config(pids=[1, "2", 3]).pids == (1, 2, 3)
    with pytest.raises(ConfigurationError, match="PID 'abc' is not a number"):
        build_config(pids=[1, "abc"])
    with pytest.raises(ConfigurationError):
        build_config(pids=[-1])
    with pytest.raises(ConfigurationError):
        build_config(pids="1,2")


def test_file_overrides():
    config = build_config(files={"path": "/tmp/proc", "stat": "stat.txt"})
    assert config.files == ProcFiles(path="/tmp/proc", stat="stat.txt")
    with pytest.raises(ConfigurationError):
        build_config(files={"bogus": "x"})


def test_memory_unit():
    assert build_config(memory_unit="kilobytes").pages_to_bytes == 4
    assert build_config(memory_unit="bytes").pages_to_bytes == 4096
    assert build_config(memory_unit="bytes", page_size=16384).pages_to_bytes == 16384
    assert build_config(memory_unit="pages").pages_to_bytes == 0
    with pytest.raises(ConfigurationError):
        build_config(memory_unit="bytes", pages_to_bytes=4096)
    with pytest.raises(ConfigurationError):
        build_config(memory_unit="megabytes")


@pytest.mark.parametrize("options", [
    {"pages_to_bytes": -1},
    {"clock_ticks": 0},
    {"page_size": 0},
    {"clock_ticks": "fast"},
])
def test_invalid_numbers(options):
    with pytest.raises(ConfigurationError):
        build_config(**options)


@pytest.mark.parametrize("options", [
    {"pids": ("abc",)},
    {"pids": ("²",)},
    {"pids": "12"},
    {"clock_ticks": 0},
    {"clock_ticks": 1.5},
    {"page_size": -4096},
    {"pages_to_bytes": -1},
    {"pages_to_bytes": float("nan")},
])
def test_direct_construction_is_validated(options):
    with pytest.raises(ConfigurationError):
        SamplerConfig(**options)


def test_direct_construction_normalizes_pids():
    assert SamplerConfig(pids=[3, "4"]).pids == (3, 4)


def test_config_is_immutable():
    config = build_config()
    with pytest.raises(AttributeError):
        config.pids = (1,)


def test_read_config(tmp_path):
    config_file = tmp_path / "procrate.yaml"
    config_file.write_text(
        "pids: [1, 2]\n"
        "memory_unit: kilobytes\n"
        "files:\n"
        "  path: /srv/proc\n")
    config = read_config(str(config_file))
    assert config.pids == (1, 2)
    assert config.pages_to_bytes == 4
    assert config.files.path == "/srv/proc"


def test_read_config_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        read_config(str(tmp_path / "missing.yaml"))

    bad_yaml = tmp_path / "bad.yaml"
    bad_yaml.write_text("pids: [1, 2\n")
    with pytest.raises(ConfigurationError):
        read_config(str(bad_yaml))

    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("interval: 5\n")
    with pytest.raises(ConfigurationError):
        read_config(str(unknown))


def test_empty_config_file(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")
    assert read_config(str(config_file)) == SamplerConfig()


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PROCRATE_PROC_PATH", "/host/proc")
    monkeypatch.setenv("PROCRATE_PIDS", "1, 22,333")
    monkeypatch.setenv("PROCRATE_PAGES_TO_BYTES", "4096")
    monkeypatch.delenv("PROCRATE_MEMORY_UNIT", raising=False)
    monkeypatch.delenv("PROCRATE_CLOCK_TICKS", raising=False)

    config = config_from_env()
    assert config.files.path == "/host/proc"
    assert config.pids == (1, 22, 333)
    assert config.pages_to_bytes == 4096
    assert config.clock_ticks == 100


def test_config_from_empty_env(monkeypatch):
    for name in ("PROCRATE_PROC_PATH", "PROCRATE_PIDS", "PROCRATE_PAGES_TO_BYTES",
                 "PROCRATE_MEMORY_UNIT", "PROCRATE_CLOCK_TICKS"):
        monkeypatch.delenv(name, raising=False)
    assert config_from_env() == SamplerConfig()
