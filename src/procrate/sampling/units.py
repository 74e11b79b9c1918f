from enum import Enum
from typing import Optional, Union

from procrate.common.errors import ConfigurationError

DEFAULT_PAGE_SIZE = 4096

Number = Union[int, float]

class MemoryUnit(Enum):
    PAGES = "pages"
    KILOBYTES = "kilobytes"
    BYTES = "bytes"

    @classmethod
    def parse(cls, value: Union[str, "MemoryUnit"]) -> "MemoryUnit":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = [unit.value for unit in cls]
            raise ConfigurationError(f"Unknown memory unit '{value}'. Valid units: {valid}") from None

def factor_for(mode: Union[str, MemoryUnit], page_size: int = DEFAULT_PAGE_SIZE) -> Number:
    """ Multiplier that turns a page count into `mode`. 0 means leave as pages. """
    mode = MemoryUnit.parse(mode)
    if mode is MemoryUnit.PAGES:
        return 0
    if mode is MemoryUnit.KILOBYTES:
        # 4 for 4 KiB pages
        return page_size // 1024 if page_size % 1024 == 0 else page_size / 1024
    return page_size

class UnitConverter:
    """
        Converts memory sizes read from /proc/<pid>/statm, which are counted in pages.
        Only memory sizes go through here, never rates.
    """
    def __init__(self, factor: Number = 0, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if factor < 0:
            raise ConfigurationError(f"Conversion factor must not be negative, got {factor}")
        if page_size <= 0:
            raise ConfigurationError(f"Page size must be positive, got {page_size}")
        self.factor = factor
        self.page_size = page_size

    def convert(self, value: Number, mode: Optional[Union[str, MemoryUnit]] = None) -> Number:
        factor = self.factor if mode is None else factor_for(mode, self.page_size)
        if not factor:
            return value
        return value * factor

    def convert_all(self, memory: dict) -> dict:
        return {key: self.convert(value) for key, value in memory.items()}
