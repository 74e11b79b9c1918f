from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from procrate.common.errors import TransientProcessLoss
from procrate.sampling.typing import RawProcessRecord

class FieldKind(Enum):
    STATM = "statm"
    STAT = "stat"
    IO = "io"
    OWNER = "owner"
    CMDLINE = "cmdline"
    WCHAN = "wchan"
    FD = "fd"

# Order in which a full capture reads each process
FULL_SCAN_ORDER = (
    FieldKind.STATM,
    FieldKind.STAT,
    FieldKind.IO,
    FieldKind.OWNER,
    FieldKind.CMDLINE,
    FieldKind.WCHAN,
    FieldKind.FD,
)

class ProviderBase(ABC):
    """
        Source of raw process observations.
        Per-process readers return None when the process is gone, except
        read_process_io and read_process_open_file_descriptors, which
        return an empty mapping when their file cannot be read.
    """
    def __init__(self) -> None:
        self._readers = {
            FieldKind.STATM: self.read_process_memory,
            FieldKind.STAT: self.read_process_counters,
            FieldKind.IO: self.read_process_io,
            FieldKind.OWNER: self.read_process_owner,
            FieldKind.CMDLINE: self.read_process_cmdline,
            FieldKind.WCHAN: self.read_process_wait_channel,
            FieldKind.FD: self.read_process_open_file_descriptors,
        }

    @abstractmethod
    def read_uptime(self) -> float:
        """ Seconds since boot. Raises EnumerationFailure. """

    @abstractmethod
    def list_processes(self) -> List[int]:
        """ Live pids. Raises EnumerationFailure. """

    @abstractmethod
    def read_process_counters(self, pid: int) -> Optional[RawProcessRecord]:
        pass

    @abstractmethod
    def read_process_io(self, pid: int) -> Dict[str, int]:
        pass

    @abstractmethod
    def read_process_memory(self, pid: int) -> Optional[Dict[str, int]]:
        pass

    @abstractmethod
    def read_process_owner(self, pid: int) -> Optional[str]:
        pass

    @abstractmethod
    def read_process_cmdline(self, pid: int) -> Optional[str]:
        pass

    @abstractmethod
    def read_process_wait_channel(self, pid: int) -> Optional[str]:
        pass

    @abstractmethod
    def read_process_open_file_descriptors(self, pid: int) -> Dict[str, str]:
        pass

    def reader_for(self, kind: FieldKind):
        return self._readers[kind]

    def read_field(self, kind: FieldKind, pid: int) -> Any:
        data = self._readers[kind](pid)
        if data is None:
            raise TransientProcessLoss(pid, kind.value)
        return data
