""" Read raw process statistics from the proc filesystem """

import os
import pwd
import re
from typing import Dict, List, Optional

from procrate.common.errors import EnumerationFailure
from procrate.common.logger import log
from procrate.config import ProcFiles
from procrate.sampling.typing import COUNTER_FIELDS, IO_FIELDS, MEMORY_FIELDS, RawProcessRecord
from .provider_base import ProviderBase

IO_LINE = re.compile(r"^([a-z_]+):\s+(\d+)")
UID_LINE = re.compile(r"^Uid:\s+(\d+)")

# /proc/<pid>/stat fields after the "(comm)" field, keyed by their position in the full line
STAT_FIELDS = {
    2: "state", 3: "ppid", 4: "pgrp", 5: "session", 6: "ttynr",
    9: "minflt", 10: "cminflt", 11: "mayflt", 12: "cmayflt",
    13: "utime", 14: "stime", 15: "cutime", 16: "cstime",
    17: "prior", 18: "nice", 19: "nlwp",
    21: "sttime", 22: "vsize",
    35: "nswap", 36: "cnswap", 38: "cpu",
}
STAT_MIN_FIELDS = max(STAT_FIELDS) + 1

def parse_stat(content: str) -> Optional[Dict[str, object]]:
    # comm may contain spaces and parentheses, so split after the last ')'
    start = content.find("(")
    end = content.rfind(")")
    if start == -1 or end == -1:
        return None

    line = content[:start].split() + [content[start + 1:end]] + content[end + 1:].split()
    if len(line) < STAT_MIN_FIELDS:
        return None

    stat = {"cmd": line[1]}
    for index, name in STAT_FIELDS.items():
        value = line[index]
        stat[name] = value if name == "state" else int(value)
    return stat

def parse_statm(content: str) -> Optional[Dict[str, int]]:
    line = content.split()
    if len(line) < len(MEMORY_FIELDS):
        return None
    return {name: int(value) for name, value in zip(MEMORY_FIELDS, line)}

def parse_io(content: str) -> Dict[str, int]:
    stat = {}
    for line in content.splitlines():
        match = IO_LINE.match(line)
        if match:
            stat[match.group(1)] = int(match.group(2))
    return stat

def parse_uid(content: str) -> Optional[int]:
    for line in content.splitlines():
        match = UID_LINE.match(line)
        if match:
            return int(match.group(1))
    return None

def parse_cmdline(content: str) -> str:
    cmdline = content.replace("\0", " ").strip()
    return cmdline if cmdline else "N/a"

def owner_name(uid: Optional[int]) -> str:
    if uid is None:
        return "N/a"
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return "N/a"

def format_active_time(seconds: float) -> str:
    """ D:HH:MM:SS """
    seconds = max(int(seconds), 0)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{days}:{hours:02d}:{minutes:02d}:{seconds:02d}"

class ProcfsProvider(ProviderBase):
    """
        Reads /proc (or a directory laid out like it).
        Every read is a blocking open/read/close.
    """
    def __init__(self, files: Optional[ProcFiles] = None) -> None:
        super().__init__()
        self.files = files or ProcFiles()

    def _pid_path(self, pid: int, name: str) -> str:
        return os.path.join(self.files.path, str(pid), name)

    def _read(self, pid: int, name: str) -> Optional[str]:
        try:
            with open(self._pid_path(pid, name), "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            log.debug(f"Could not read {name} of pid {pid}: {e}")
            return None

    def read_uptime(self) -> float:
        filename = os.path.join(self.files.path, self.files.uptime) if self.files.path else self.files.uptime
        try:
            with open(filename, "r", encoding="utf-8") as f:
                return float(f.read().split()[0])
        except OSError as e:
            raise EnumerationFailure(f"unable to open {filename} ({e})") from e
        except (IndexError, ValueError) as e:
            raise EnumerationFailure(f"unable to parse uptime from {filename} ({e})") from e

    def list_processes(self) -> List[int]:
        try:
            entries = os.listdir(self.files.path)
        except OSError as e:
            raise EnumerationFailure(f"unable to open directory {self.files.path} ({e})") from e
        return sorted(int(entry) for entry in entries if entry.isascii() and entry.isdigit())

    def read_process_counters(self, pid: int) -> Optional[RawProcessRecord]:
        content = self._read(pid, self.files.stat)
        if content is None:
            return None
        try:
            stat = parse_stat(content)
        except ValueError as e:
            log.debug(f"Malformed stat file of pid {pid}: {e}")
            return None
        if stat is None:
            return None

        counters = {k: stat.pop(k) for k in COUNTER_FIELDS}
        sttime = stat.pop("sttime")
        return RawProcessRecord(pid, sttime, counters, info=stat)

    def read_process_io(self, pid: int) -> Dict[str, int]:
        content = self._read(pid, self.files.io)
        if content is None:
            return {}
        io = parse_io(content)
        return {k: v for k, v in io.items() if k in IO_FIELDS}

    def read_process_memory(self, pid: int) -> Optional[Dict[str, int]]:
        content = self._read(pid, self.files.statm)
        if content is None:
            return None
        try:
            return parse_statm(content)
        except ValueError as e:
            log.debug(f"Malformed statm file of pid {pid}: {e}")
            return None

    def read_process_owner(self, pid: int) -> Optional[str]:
        content = self._read(pid, self.files.status)
        if content is None:
            return None
        return owner_name(parse_uid(content))

    def read_process_cmdline(self, pid: int) -> Optional[str]:
        content = self._read(pid, self.files.cmdline)
        if content is None:
            return None
        return parse_cmdline(content)

    def read_process_wait_channel(self, pid: int) -> Optional[str]:
        content = self._read(pid, self.files.wchan)
        if content is None:
            return None
        return content.strip()

    def read_process_open_file_descriptors(self, pid: int) -> Dict[str, str]:
        fd_dir = self._pid_path(pid, self.files.fd)
        try:
            links = os.listdir(fd_dir)
        except OSError:
            # Only the owner or root may list another process's fds
            return {}

        fds = {}
        for link in links:
            try:
                fds[link] = os.readlink(os.path.join(fd_dir, link))
            except OSError:
                continue
        return fds
