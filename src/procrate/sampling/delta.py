"""Turn two observations of a process into per-second rates

A process seen in both the baseline and the current snapshot (same pid and same start time) gets
interval rates: counter increase divided by the seconds between the two snapshots. A process with
no matching baseline, because it is new or its pid was reused, gets the average rate since it was
started, computed from the system uptime and its start time.

"""

import re
from typing import Any, Mapping, Optional

from procrate.common.errors import ConfigurationError, IntegrityError, InvalidValue, MissingField
from procrate.common.logger import log
from .typing import COUNTER_FIELDS, IO_FIELDS, DeltaRecord, ProcessIdentity, RawProcessRecord, Snapshot

DEFAULT_CLOCK_TICKS = 100

NUMBER = re.compile(r"^-?\d+(?:\.\d+)?\Z")

def as_number(value: Any, key: str):
    """ Validate a stored counter or timestamp. Numeric strings are accepted. """
    if value is None:
        raise MissingField(key)
    if isinstance(value, bool):
        raise InvalidValue(key, value)
    if isinstance(value, (int, float)):
        if value != value:  # NaN
            raise InvalidValue(key, value)
        return value
    if isinstance(value, str) and NUMBER.match(value):
        return float(value) if "." in value else int(value)
    raise InvalidValue(key, value)

def to_rate(value, seconds) -> float:
    """ value per second with two decimals. Without a positive span the value itself is reported. """
    if seconds > 0:
        return round(value / seconds, 2)
    return round(float(value), 2)

def elapsed_seconds(baseline: Snapshot, current: Snapshot) -> float:
    start = as_number(baseline.time, "time")
    end = as_number(current.time, "time")
    elapsed = end - start
    if elapsed <= 0:
        log.warning(f"Sampling interval is {elapsed:.6f}s, reporting raw deltas instead of rates")
    return elapsed

class DeltaComputer:
    def __init__(self, clock_ticks: int = DEFAULT_CLOCK_TICKS) -> None:
        if isinstance(clock_ticks, bool) or not isinstance(clock_ticks, int) or clock_ticks <= 0:
            raise ConfigurationError(f"clock_ticks must be a positive integer, got {clock_ticks!r}")
        self.clock_ticks = clock_ticks

    def diff(self,
             identity: ProcessIdentity,
             baseline: Optional[RawProcessRecord],
             current: RawProcessRecord,
             elapsed: float,
             uptime: float) -> DeltaRecord:
        sttime = as_number(identity.sttime, "sttime")

        if baseline is not None and as_number(baseline.sttime, "sttime") == sttime:
            rates = self._interval_rates(baseline.counters, current.counters, elapsed, identity)
            io_rates = self._interval_io_rates(baseline.io, current.io, elapsed, identity)
        else:
            if baseline is not None:
                log.debug(f"pid {identity.pid} was reused (start time {baseline.sttime} -> {sttime})")
            age = as_number(uptime, "uptime") - sttime / self.clock_ticks
            rates = {k: to_rate(as_number(current.counters.get(k), k), age) for k in COUNTER_FIELDS}
            io_rates = {k: to_rate(self._io_value(current.io, k), age) for k in IO_FIELDS}

        return DeltaRecord(
            pid=identity.pid,
            ttime=round(rates["utime"] + rates["stime"], 2),
            io=io_rates,
            memory=dict(current.memory),
            info=dict(current.info),
            **rates)

    def _interval_rates(self, before: Mapping, after: Mapping, elapsed, identity) -> dict:
        rates = {}
        for k in COUNTER_FIELDS:
            raw = as_number(after.get(k), k) - as_number(before.get(k), k)
            if raw < 0:
                raise IntegrityError(
                    f"counter '{k}' of pid {identity.pid} decreased from {before.get(k)} to {after.get(k)}")
            rates[k] = to_rate(raw, elapsed)
        return rates

    def _interval_io_rates(self, before: Mapping, after: Mapping, elapsed, identity) -> dict:
        rates = {}
        for k in IO_FIELDS:
            # I/O accounting may be unreadable (permissions, kernel config), so a missing side is 0
            if before.get(k) is None or after.get(k) is None:
                rates[k] = 0.0
                continue
            raw = as_number(after[k], f"io.{k}") - as_number(before[k], f"io.{k}")
            if raw < 0:
                raise IntegrityError(
                    f"io counter '{k}' of pid {identity.pid} decreased from {before[k]} to {after[k]}")
            rates[k] = to_rate(raw, elapsed)
        return rates

    @staticmethod
    def _io_value(io: Mapping, key: str):
        value = io.get(key)
        if value is None:
            return 0
        return as_number(value, f"io.{key}")
