import os
from datetime import datetime, timezone
from typing import Mapping, Optional

import pandas as pd
from pandas import DataFrame

from procrate.common.logger import log
from procrate.sampling.typing import DeltaRecord, Snapshot

def deltas_to_frame(deltas: Mapping[int, DeltaRecord], timestamp: Optional[float] = None) -> DataFrame:
    """ One row per process, sorted by pid. `timestamp` (epoch seconds) fills the time column. """
    rows = [deltas[pid].to_dict() for pid in sorted(deltas)]
    frame = pd.DataFrame(rows)
    if frame.empty:
        frame = pd.DataFrame(columns=["pid"])

    when = datetime.now(timezone.utc) if timestamp is None else datetime.fromtimestamp(timestamp, timezone.utc)
    frame.insert(0, "time", when)
    return frame

def snapshot_to_frame(snapshot: Snapshot) -> DataFrame:
    """ Absolute values of a raw snapshot, one row per process """
    rows = []
    for pid in sorted(snapshot.processes):
        record = snapshot.processes[pid]
        row = {"pid": pid, "sttime": record.sttime}
        row.update(record.counters)
        row.update({f"io_{k}": v for k, v in record.io.items()})
        row.update(record.memory)
        row.update({k: v for k, v in record.info.items() if k != "fd"})
        rows.append(row)

    frame = pd.DataFrame(rows) if rows else pd.DataFrame(columns=["pid"])
    frame.insert(0, "time", datetime.fromtimestamp(snapshot.time, timezone.utc))
    return frame

def write_csv(frame: DataFrame, output_file: str) -> None:
    """ Append to output_file, writing the header only when the file is new. Empty frames are skipped. """
    if frame.empty:
        log.debug(f"No rows to write to {output_file}")
        return
    new_file = not os.path.isfile(output_file) or os.path.getsize(output_file) == 0
    log.debug(f"Writing {len(frame)} rows to {output_file}")
    frame.to_csv(output_file, mode="a", header=new_file, index=False)
