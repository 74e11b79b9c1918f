"""Sampling type definitions."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, NamedTuple

# Cumulative scheduling counters from /proc/<pid>/stat. Mandatory for diffing.
COUNTER_FIELDS = ("minflt", "cminflt", "mayflt", "cmayflt", "utime", "stime", "cutime", "cstime")

# Cumulative I/O counters from /proc/<pid>/io. Best effort, absent keys count as zero.
IO_FIELDS = ("rchar", "wchar", "syscr", "syscw", "read_bytes", "write_bytes", "cancelled_write_bytes")

# /proc/<pid>/statm, in file order (pages)
MEMORY_FIELDS = ("size", "resident", "share", "trs", "lrs", "drs", "dtp")


class ProcessIdentity(NamedTuple):
    """ A pid is only the same process while its start time (clock ticks since boot) is unchanged. """
    pid: int
    sttime: int


@dataclass(frozen=True)
class RawProcessRecord:
    """One process observed at one instant."""

    pid: int
    sttime: Any
    counters: Mapping[str, Any]
    io: Mapping[str, Any] = field(default_factory=dict)
    memory: Mapping[str, Any] = field(default_factory=dict)
    # Descriptive fields (state, ppid, owner, cmdline, ...), never diffed
    info: Mapping[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> ProcessIdentity:
        return ProcessIdentity(self.pid, self.sttime)

    def counters_only(self) -> "RawProcessRecord":
        return RawProcessRecord(self.pid, self.sttime, dict(self.counters), dict(self.io))


@dataclass(frozen=True)
class Snapshot:
    """Every sampled process at one capture time."""

    time: Any
    uptime: Any
    processes: Mapping[int, RawProcessRecord] = field(default_factory=dict)

    def counters_only(self) -> "Snapshot":
        """ The part of this snapshot needed as the baseline of the next sample """
        return Snapshot(
            self.time,
            self.uptime,
            {pid: record.counters_only() for pid, record in self.processes.items()})

    def __len__(self) -> int:
        return len(self.processes)


@dataclass
class DeltaRecord:
    """
        Per-second rates of one process over one sampling interval.

        For a process already present in the baseline each counter is the
        increase since the baseline divided by the elapsed seconds. For a
        process seen for the first time (new, or its pid was reused) each
        counter is instead the average rate since the process started.
        Both cases share this shape, so the record alone does not tell
        which of the two a figure is.
    """

    pid: int
    minflt: float
    cminflt: float
    mayflt: float
    cmayflt: float
    utime: float
    stime: float
    cutime: float
    cstime: float
    ttime: float
    io: Dict[str, float] = field(default_factory=dict)
    memory: Dict[str, Any] = field(default_factory=dict)
    info: Dict[str, Any] = field(default_factory=dict)

    def rates(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)
                if f.name in COUNTER_FIELDS or f.name == "ttime"}

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary, I/O rates prefixed with io_"""
        row = {"pid": self.pid}
        row.update(self.rates())
        row.update({f"io_{k}": v for k, v in self.io.items()})
        row.update(self.memory)
        row.update({k: v for k, v in self.info.items() if k != "fd"})
        return row
