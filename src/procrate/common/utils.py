import os
from typing import List, Optional

import psutil

from procrate.common.errors import ConfigurationError
from procrate.common.logger import log

def get_procrate_env_var(env_var_name: str, default: Optional[str] = None) -> Optional[str]:
    procrate_env_var = os.getenv(env_var_name)
    if procrate_env_var is None:
        log.debug(f"Env variable '{env_var_name}' not defined. Using default {default!r}.")
        return default
    return procrate_env_var

def get_process_tree_pids(root_pid: int) -> List[int]:
    """
        Resolve a process and all of its descendants into a sorted pid list.
        The list is taken once; children spawned later are not picked up.
    """
    try:
        root = psutil.Process(root_pid)
        children = root.children(recursive=True)
    except psutil.NoSuchProcess as e:
        raise ConfigurationError(f"Process {root_pid} does not exist: {e}") from e
    except psutil.AccessDenied as e:
        raise ConfigurationError(f"Not allowed to inspect process {root_pid}: {e}") from e

    pids = {root_pid}
    pids.update(child.pid for child in children)
    log.debug(f"Resolved process tree of {root_pid} into {len(pids)} pids")
    return sorted(pids)
