from .provider_base import FULL_SCAN_ORDER, FieldKind, ProviderBase
from .procfs_provider import ProcfsProvider

__all__ = [
    "FULL_SCAN_ORDER",
    "FieldKind",
    "ProcfsProvider",
    "ProviderBase",
]
