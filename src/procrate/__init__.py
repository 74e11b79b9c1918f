from .config import SamplerConfig, build_config, config_from_env, read_config
from .sampling.engine import SamplingEngine
from .sampling.typing import DeltaRecord, Snapshot

__all__ = [
    "DeltaRecord",
    "SamplerConfig",
    "SamplingEngine",
    "Snapshot",
    "build_config",
    "config_from_env",
    "read_config",
]
