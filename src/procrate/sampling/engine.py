"""Sample per-process rates from the proc filesystem

The SamplingEngine keeps one rolling baseline: the absolute counters of every process seen by the
last initialize() or sample() call. Each sample() diffs a fresh capture against it and then makes
that capture (counters only) the new baseline. The caller decides how often to sample.

    engine = SamplingEngine(build_config(pids=[1, 2, 3]))
    engine.initialize()
    time.sleep(1)
    rates = engine.sample()  # pid => DeltaRecord

An engine instance is not thread-safe; use one per thread.

"""

import time
from typing import Callable, Dict, Iterable, Optional

from procrate.common.errors import TransientProcessLoss, UninitializedUse
from procrate.common.logger import log
from procrate.config import SamplerConfig
from .delta import DeltaComputer, as_number, elapsed_seconds
from .providers.procfs_provider import ProcfsProvider, format_active_time
from .providers.provider_base import FULL_SCAN_ORDER, FieldKind, ProviderBase
from .typing import DeltaRecord, RawProcessRecord, Snapshot
from .units import UnitConverter

class SamplingEngine:
    def __init__(self,
                 config: Optional[SamplerConfig] = None,
                 provider: Optional[ProviderBase] = None,
                 clock: Callable[[], float] = time.time) -> None:
        self.config = config or SamplerConfig()
        self.provider = provider or ProcfsProvider(self.config.files)
        self.converter = UnitConverter(self.config.pages_to_bytes, self.config.page_size)
        self.delta_computer = DeltaComputer(self.config.clock_ticks)
        self._clock = clock
        self._baseline: Optional[Snapshot] = None

    @property
    def initialized(self) -> bool:
        return self._baseline is not None

    @property
    def baseline(self) -> Optional[Snapshot]:
        return self._baseline

    def initialize(self) -> None:
        """ Capture the counters every later sample() is diffed against """
        if self._baseline is not None:
            log.warning("Engine already initialized. Replacing the baseline.")
        self._baseline = self._capture_counters()
        log.debug(f"Initialized baseline with {len(self._baseline)} processes")

    def sample(self) -> Dict[int, DeltaRecord]:
        """
            Rates for every process in the current scan.
            Processes that only exist in the baseline are left out. The
            baseline only advances if every process could be diffed.
        """
        if self._baseline is None:
            raise UninitializedUse()

        baseline = self._baseline
        current = self._capture_full()
        elapsed = elapsed_seconds(baseline, current)

        deltas = {}
        for pid, record in current.processes.items():
            deltas[pid] = self.delta_computer.diff(
                record.identity, baseline.processes.get(pid), record, elapsed, current.uptime)

        self._baseline = current.counters_only()
        log.debug(f"Sampled {len(deltas)} processes over {elapsed:.3f}s")
        return deltas

    def raw(self) -> Snapshot:
        """ A full snapshot of absolute values. Does not touch the baseline. """
        return self._capture_full()

    def _pids(self) -> Iterable[int]:
        if self.config.pids is not None:
            return self.config.pids
        return self.provider.list_processes()

    def _capture_counters(self) -> Snapshot:
        uptime = self.provider.read_uptime()
        pids = self._pids()
        timestamp = self._clock()

        processes = {}
        for pid in pids:
            record = self.provider.read_process_counters(pid)
            if record is None:
                log.debug(f"Skipping pid {pid}: process vanished")
                continue
            processes[pid] = RawProcessRecord(
                pid, record.sttime, dict(record.counters), self.provider.read_process_io(pid))

        return Snapshot(timestamp, uptime, processes)

    def _capture_full(self) -> Snapshot:
        uptime = self.provider.read_uptime()
        pids = self._pids()
        timestamp = self._clock()

        processes = {}
        for pid in pids:
            try:
                processes[pid] = self._read_process(pid, uptime)
            except TransientProcessLoss as e:
                log.debug(f"Skipping pid {pid}: {e}")

        return Snapshot(timestamp, uptime, processes)

    def _read_process(self, pid: int, uptime: float) -> RawProcessRecord:
        data = {kind: self.provider.read_field(kind, pid) for kind in FULL_SCAN_ORDER}

        stat: RawProcessRecord = data[FieldKind.STAT]
        info = dict(stat.info)
        info["actime"] = format_active_time(
            as_number(uptime, "uptime") - as_number(stat.sttime, "sttime") / self.config.clock_ticks)
        info["owner"] = data[FieldKind.OWNER]
        info["cmdline"] = data[FieldKind.CMDLINE]
        info["wchan"] = data[FieldKind.WCHAN]
        info["fd"] = data[FieldKind.FD]

        return RawProcessRecord(
            pid,
            stat.sttime,
            dict(stat.counters),
            io=dict(data[FieldKind.IO]),
            memory=self.converter.convert_all(data[FieldKind.STATM]),
            info=info)
