"""Errors raised while configuring and sampling processes."""


class ProcrateError(Exception):
    """Base class for every procrate error."""


class ConfigurationError(ProcrateError, ValueError):
    """Invalid engine arguments or configuration file content."""


class UninitializedUse(ProcrateError, RuntimeError):
    """sample() was called before initialize() captured a baseline."""

    def __init__(self, message: str = "there are no initial statistics defined") -> None:
        super().__init__(message)


class IntegrityError(ProcrateError):
    """
        Stored counters or timestamps cannot be diffed.
        Raised for a counter that went backwards for the same process, and
        (through the subclasses) for missing or non-numeric values.
    """


class MissingField(IntegrityError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"not defined key found '{key}'")


class InvalidValue(IntegrityError):
    def __init__(self, key: str, value=None) -> None:
        self.key = key
        self.value = value
        super().__init__(f"invalid value for key '{key}': {value!r}")


class TransientProcessLoss(ProcrateError):
    """A process exited between discovery and reading its files."""

    def __init__(self, pid: int, source: str) -> None:
        self.pid = pid
        self.source = source
        super().__init__(f"process {pid} vanished while reading '{source}'")


class EnumerationFailure(ProcrateError):
    """The process list or the system uptime could not be read."""
