"""
errors.py

Error kinds raised by the ledger tail reader and its adapters.
"""


class LedgerError(Exception):
    """Base class for every error raised by ledgertail."""


class LedgerNotFoundError(LedgerError, FileNotFoundError):
    """The ledger file does not exist, or disappeared while being tailed."""


class TruncationError(LedgerError):
    """
    The ledger shrank below a length the reader had already observed.

    The file is assumed to be append-only, so this is fatal for the reader
    that detected it.
    """

    def __init__(self, path, observed_length: int, read_cursor: int, known_safe_length: int):
        self.path = path
        self.observed_length = observed_length
        self.read_cursor = read_cursor
        self.known_safe_length = known_safe_length
        super().__init__(
            f"{path}: ledger truncated to {observed_length} bytes "
            f"(cursor {read_cursor}, previously seen {known_safe_length})"
        )


class LedgerIOError(LedgerError):
    """Reading the ledger or querying its length failed."""


class ReaderClosedError(LedgerError):
    """The reader was used after close()."""


class ConfigError(LedgerError, ValueError):
    """Invalid construction parameters or configuration values."""


class ForwardError(LedgerError):
    """A sink could not deliver a record."""
