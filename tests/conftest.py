import os

import pytest

from procrate.common.errors import EnumerationFailure
from procrate.sampling.providers.provider_base import ProviderBase
from procrate.sampling.typing import COUNTER_FIELDS, MEMORY_FIELDS, RawProcessRecord


class FakeProvider(ProviderBase):
    """ In-memory provider. Tests edit .processes between captures. """

    def __init__(self, uptime=1000.0):
        super().__init__()
        self.uptime = uptime
        self.processes = {}
        # pid => name of the reader that reports the process as gone
        self.vanish_on = {}
        self.list_calls = 0
        self.fail_listing = False

    def set_process(self, pid, sttime=500, io=None, memory=None, **counters):
        values = dict.fromkeys(COUNTER_FIELDS, 0)
        values.update(counters)
        self.processes[pid] = {
            "sttime": sttime,
            "counters": values,
            "io": dict(io or {}),
            "memory": dict(memory or dict.fromkeys(MEMORY_FIELDS, 0)),
        }

    def _gone(self, pid, reader):
        return pid not in self.processes or self.vanish_on.get(pid) == reader

    def read_uptime(self):
        if self.uptime is None:
            raise EnumerationFailure("unable to open uptime")
        return self.uptime

    def list_processes(self):
        self.list_calls += 1
        if self.fail_listing:
            raise EnumerationFailure("unable to open directory")
        return sorted(set(self.processes) | set(self.vanish_on))

    def read_process_counters(self, pid):
        if self._gone(pid, "stat"):
            return None
        proc = self.processes[pid]
        return RawProcessRecord(pid, proc["sttime"], dict(proc["counters"]),
                                info={"cmd": f"proc{pid}", "state": "S"})

    def read_process_io(self, pid):
        if self._gone(pid, "io"):
            return {}
        return dict(self.processes[pid]["io"])

    def read_process_memory(self, pid):
        if self._gone(pid, "statm"):
            return None
        return dict(self.processes[pid]["memory"])

    def read_process_owner(self, pid):
        return None if self._gone(pid, "owner") else "root"

    def read_process_cmdline(self, pid):
        return None if self._gone(pid, "cmdline") else f"/bin/proc{pid}"

    def read_process_wait_channel(self, pid):
        return None if self._gone(pid, "wchan") else "do_wait"

    def read_process_open_file_descriptors(self, pid):
        return {}


class Clock(object):
    def __init__(self, *times):
        self.times = list(times)

    def __call__(self):
        return self.times.pop(0)


def stat_line(pid, comm="bash", state="S", sttime=500, **fields):
    """ A /proc/<pid>/stat line with 52 fields """
    positions = {
        "ppid": 3, "pgrp": 4, "session": 5, "ttynr": 6,
        "minflt": 9, "cminflt": 10, "mayflt": 11, "cmayflt": 12,
        "utime": 13, "stime": 14, "cutime": 15, "cstime": 16,
        "prior": 17, "nice": 18, "nlwp": 19, "vsize": 22,
        "nswap": 35, "cnswap": 36, "cpu": 38,
    }
    line = ["0"] * 52
    line[0] = str(pid)
    line[1] = f"({comm})"
    line[2] = state
    line[21] = str(sttime)
    for name, value in fields.items():
        line[positions[name]] = str(value)
    return " ".join(line) + "\n"


class ProcTree(object):
    """ Writes a directory laid out like /proc """

    def __init__(self, root):
        self.root = root
        self.write_uptime(1000.0)

    def write_uptime(self, uptime):
        (self.root / "uptime").write_text(f"{uptime:.2f} 4000.00\n")

    def add_process(self, pid, comm="bash", sttime=500, statm="10 5 2 1 0 3 0", io=None,
                    cmdline="/bin/bash\0-l\0", uid=None, wchan="do_wait", **fields):
        proc = self.root / str(pid)
        proc.mkdir(exist_ok=True)
        (proc / "stat").write_text(stat_line(pid, comm=comm, sttime=sttime, **fields))
        (proc / "statm").write_text(statm + "\n")
        (proc / "cmdline").write_text(cmdline)
        (proc / "wchan").write_text(wchan)
        uid = os.getuid() if uid is None else uid
        (proc / "status").write_text(f"Name:\t{comm}\nState:\tS (sleeping)\nUid:\t{uid}\t{uid}\t{uid}\t{uid}\n")
        if io is not None:
            (proc / "io").write_text("".join(f"{k}: {v}\n" for k, v in io.items()))
        (proc / "fd").mkdir(exist_ok=True)
        return proc


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def proc_tree(tmp_path):
    return ProcTree(tmp_path)
