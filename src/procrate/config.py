"""Sampler configuration.

A SamplerConfig is immutable: it is built once, validated, and handed to a SamplingEngine. It can
be built from keyword arguments (build_config), a YAML file (read_config) or PROCRATE_* environment
variables (config_from_env).

"""

import math
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import yaml

from procrate.common.errors import ConfigurationError
from procrate.common.logger import log
from procrate.common.utils import get_procrate_env_var
from procrate.sampling.units import DEFAULT_PAGE_SIZE, factor_for

PID = re.compile(r"^\d+\Z", re.ASCII)

@dataclass(frozen=True)
class ProcFiles:
    """Location of the proc filesystem and the names of the files read under it."""
    path: str = "/proc"
    uptime: str = "uptime"
    stat: str = "stat"
    statm: str = "statm"
    status: str = "status"
    cmdline: str = "cmdline"
    wchan: str = "wchan"
    fd: str = "fd"
    io: str = "io"

@dataclass(frozen=True)
class SamplerConfig:
    files: ProcFiles = field(default_factory=ProcFiles)
    # None means scan the proc root on every capture
    pids: Optional[Tuple[int, ...]] = None
    pages_to_bytes: float = 0
    page_size: int = DEFAULT_PAGE_SIZE
    clock_ticks: int = 100

    def __post_init__(self):
        if not isinstance(self.files, ProcFiles):
            raise ConfigurationError("files must be a ProcFiles instance")
        if self.pids is not None:
            object.__setattr__(self, "pids", _validate_pids(self.pids))

        if not _is_number(self.page_size, int) or self.page_size <= 0:
            raise ConfigurationError(f"page_size must be a positive integer, got {self.page_size!r}")
        if not _is_number(self.clock_ticks, int) or self.clock_ticks <= 0:
            raise ConfigurationError(f"clock_ticks must be a positive integer, got {self.clock_ticks!r}")
        if not _is_number(self.pages_to_bytes, (int, float)) or not 0 <= self.pages_to_bytes < math.inf:
            raise ConfigurationError(f"pages_to_bytes must be a finite, non-negative number, got {self.pages_to_bytes!r}")

def _is_number(value, types) -> bool:
    return isinstance(value, types) and not isinstance(value, bool)

def _validate_pids(pids) -> Tuple[int, ...]:
    if isinstance(pids, (str, bytes)) or not isinstance(pids, Sequence):
        raise ConfigurationError("the PIDs must be passed as a list")

    for pid in pids:
        if isinstance(pid, bool) or not PID.match(str(pid)):
            raise ConfigurationError(f"PID '{pid}' is not a number")

    return tuple(int(pid) for pid in pids)

def _build_files(files: Optional[Mapping[str, str]]) -> ProcFiles:
    if not files:
        return ProcFiles()
    if not isinstance(files, Mapping):
        raise ConfigurationError("files must be a mapping of file key to file name")

    valid_keys = {f.name for f in fields(ProcFiles)}
    unknown = set(files) - valid_keys
    if unknown:
        raise ConfigurationError(f"Unknown file keys {sorted(unknown)}. Valid keys: {sorted(valid_keys)}")

    return replace(ProcFiles(), **{k: str(v) for k, v in files.items()})

def build_config(pids: Optional[Sequence] = None,
                 files: Optional[Mapping[str, str]] = None,
                 pages_to_bytes: Any = 0,
                 memory_unit: Optional[str] = None,
                 page_size: Any = DEFAULT_PAGE_SIZE,
                 clock_ticks: Any = 100) -> SamplerConfig:
    try:
        page_size = int(page_size)
        clock_ticks = int(clock_ticks)
        pages_to_bytes = float(pages_to_bytes or 0)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric option: {e}") from e

    if memory_unit is not None:
        if pages_to_bytes:
            raise ConfigurationError("Set either pages_to_bytes or memory_unit, not both")
        pages_to_bytes = factor_for(memory_unit, page_size)

    if math.isfinite(pages_to_bytes) and pages_to_bytes == int(pages_to_bytes):
        pages_to_bytes = int(pages_to_bytes)

    return SamplerConfig(
        files=_build_files(files),
        pids=pids,
        pages_to_bytes=pages_to_bytes,
        page_size=page_size,
        clock_ticks=clock_ticks,
    )

def read_config(config_file: str) -> SamplerConfig:
    log.info(f"Reading procrate configuration file from '{config_file}'")
    try:
        with open(config_file, "r", encoding="utf-8") as stream:
            config_dict = yaml.safe_load(stream) or {}
    except OSError as os_err:
        raise ConfigurationError(f"Could not read config file: {os_err}") from os_err
    except yaml.YAMLError as yaml_err:
        raise ConfigurationError(f"Error parsing configuration file: {yaml_err}") from yaml_err

    if not isinstance(config_dict, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    valid_keys = {"pids", "files", "pages_to_bytes", "memory_unit", "page_size", "clock_ticks"}
    unknown = set(config_dict) - valid_keys
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys {sorted(unknown)}")

    return build_config(**config_dict)

def config_from_env() -> SamplerConfig:
    options: Dict[str, Any] = {}

    proc_path = get_procrate_env_var("PROCRATE_PROC_PATH")
    if proc_path:
        options["files"] = {"path": proc_path}

    pids = get_procrate_env_var("PROCRATE_PIDS")
    if pids:
        options["pids"] = [pid.strip() for pid in pids.split(",") if pid.strip()]

    options["pages_to_bytes"] = get_procrate_env_var("PROCRATE_PAGES_TO_BYTES", "0")
    options["memory_unit"] = get_procrate_env_var("PROCRATE_MEMORY_UNIT")
    options["clock_ticks"] = get_procrate_env_var("PROCRATE_CLOCK_TICKS", "100")

    return build_config(**options)
