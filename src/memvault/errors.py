"""Exception hierarchy shared by the ledger, engine and service layers."""

from __future__ import annotations


class VaultError(Exception):
    """Base class for memvault errors."""


class ConfigurationError(VaultError):
    """Raised at startup when a required setting is missing or invalid."""

    def __init__(self, message: str, *, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = list(missing or [])


class ReadError(VaultError):
    """Raised when a ledger query fails (transport, timeout, bad payload)."""


class RangeError(VaultError, IndexError):
    """Raised when reading an index outside ``0 .. count - 1``."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"memory index {index} out of range (count={count})")
        self.index = index
        self.count = count


class WriteError(VaultError):
    """Raised when an append transaction cannot be submitted or finalized."""


class DecisionParseError(VaultError):
    """Raised internally when model output is not a valid decision."""
