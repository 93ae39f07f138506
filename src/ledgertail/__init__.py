# ledgertail - tail an append-only ledger of fixed-size records
# Package initialization file

# Package metadata
__version__ = "0.1.0"
__author__ = "ledgertail developers"
__license__ = "MIT"

# Import main public API from internal modules
from .errors import (
    ConfigError,
    ForwardError,
    LedgerError,
    LedgerIOError,
    LedgerNotFoundError,
    ReaderClosedError,
    TruncationError,
)
from .reader import TailReader
from .forwarder import ConsoleSink, RecordForwarder, WebhookSink
from .config import load_config, reader_from_config

# Define what is exposed when `from ledgertail import *` is used
__all__ = [
    "TailReader",
    "RecordForwarder",
    "ConsoleSink",
    "WebhookSink",
    "load_config",
    "reader_from_config",
    "LedgerError",
    "LedgerNotFoundError",
    "TruncationError",
    "LedgerIOError",
    "ReaderClosedError",
    "ConfigError",
    "ForwardError",
]
