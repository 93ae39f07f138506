"""
reader.py

Blocking, poll-based reader for append-only ledgers made of fixed-size
records written by another process.
"""

import logging
import os
import time
from typing import IO, Callable, Iterator, Optional

from .counters import Counter
from .errors import (
    ConfigError,
    LedgerIOError,
    LedgerNotFoundError,
    ReaderClosedError,
    TruncationError,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.2  # seconds


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class TailReader:
    """
    Follow a ledger file one record at a time.

    The reader remembers the largest file length it has confirmed with a
    filesystem query (``known_safe_length``). Records that end inside that
    length are read straight from the open handle. Only when the cache is
    exhausted does ``next_record()`` query the file again, and never more
    often than once per ``poll_interval`` seconds, however eagerly it is
    called.

    A reader is owned by a single consumer; it does no locking.
    """

    def __init__(
        self,
        path,
        record_length: int,
        start_offset: int = 0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        wait_for_file: bool = False,
        open_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        log_rate: int = 0,
    ):
        if not _is_int(record_length) or record_length <= 0:
            raise ConfigError(f"record_length must be a positive integer, got {record_length!r}")
        if not _is_int(start_offset) or start_offset < 0:
            raise ConfigError(f"start_offset must be a non-negative integer, got {start_offset!r}")
        if not _is_number(poll_interval):
            raise ConfigError(f"poll_interval must be a number of seconds, got {poll_interval!r}")
        if open_timeout is not None and (not _is_number(open_timeout) or open_timeout < 0):
            raise ConfigError(f"open_timeout must be a non-negative number, got {open_timeout!r}")
        if not _is_int(log_rate):
            raise ConfigError(f"log_rate must be an integer, got {log_rate!r}")

        self.path = os.fspath(path)
        self._record_length = record_length
        self._start_offset = start_offset
        # zero means "no minimum spacing"; the wait loop still yields with sleep(0)
        self._poll_interval = max(0.0, float(poll_interval))
        self._clock = clock
        self._sleep = sleep

        self._fh: Optional[IO[bytes]] = None
        self._ino = None
        self._closed = False
        self._failure: Optional[TruncationError] = None

        self._cursor = start_offset
        self._known_safe_length = 0
        self._last_check_time = 0.0
        # log_rate <= 0 picks up LEDGERTAIL_LOG_RATE on first use
        self._queries = Counter("ledgertail-length-queries", log_rate)
        self._records = Counter("ledgertail-records", log_rate)

        try:
            self._open(wait_for_file, open_timeout)
            length = self._stat_length()
            if length < start_offset:
                raise ConfigError(
                    f"{self.path}: start_offset {start_offset} is beyond the end of the ledger ({length} bytes)"
                )
            self._known_safe_length = length
        except BaseException:
            self.close()
            raise

    # ---------------------------------------------------------------------
    # STATE
    # ---------------------------------------------------------------------
    @property
    def record_length(self) -> int:
        return self._record_length

    @property
    def start_offset(self) -> int:
        return self._start_offset

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def read_cursor(self) -> int:
        """Offset of the next byte that will be returned."""
        return self._cursor

    @property
    def known_safe_length(self) -> int:
        """Largest file length confirmed by a filesystem query."""
        return self._known_safe_length

    @property
    def last_check_time(self) -> float:
        """Clock reading taken at the most recent length query."""
        return self._last_check_time

    @property
    def length_queries(self) -> int:
        return self._queries.counts

    @property
    def records_read(self) -> int:
        return self._records.counts

    @property
    def failed(self) -> bool:
        return self._failure is not None

    @property
    def closed(self) -> bool:
        return self._closed

    # ---------------------------------------------------------------------
    # PUBLIC API
    # ---------------------------------------------------------------------
    def next_record(self) -> bytes:
        """
        Return the next ``record_length`` bytes of the ledger.

        Blocks until a complete record is present. Raises TruncationError if
        the ledger shrank (after which the reader stays failed), and
        LedgerIOError / LedgerNotFoundError if the file can no longer be
        read or found.
        """
        self._check_usable()
        end = self._cursor + self._record_length
        if end > self._known_safe_length:
            self._wait_until(end)
        record = self._read_at(self._cursor)
        self._cursor = end
        self._records.inc()
        return record

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            logger.info("Closed ledger %s at offset %d (%d records read)",
                        self.path, self._cursor, self._records.counts)
        self._closed = True

    def __iter__(self) -> Iterator[bytes]:
        while True:
            yield self.next_record()

    def __enter__(self) -> "TailReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (f"TailReader({self.path!r}, record_length={self._record_length}, "
                f"read_cursor={self._cursor}, known_safe_length={self._known_safe_length})")

    # ---------------------------------------------------------------------
    # INTERNALS
    # ---------------------------------------------------------------------
    def _open(self, wait_for_file: bool, open_timeout: Optional[float]) -> None:
        deadline = None if open_timeout is None else self._clock() + open_timeout
        while True:
            try:
                # unbuffered, so a shrinking file shows up as a short read
                self._fh = open(self.path, "rb", buffering=0)
                break
            except FileNotFoundError as exc:
                if not wait_for_file:
                    raise LedgerNotFoundError(f"{self.path}: ledger file not found") from exc
                if deadline is not None and self._clock() >= deadline:
                    raise LedgerNotFoundError(
                        f"{self.path}: ledger file did not appear within {open_timeout}s"
                    ) from exc
                logger.debug("Waiting for ledger %s to appear", self.path)
                self._sleep(self._poll_interval)
            except OSError as exc:
                raise LedgerIOError(f"{self.path}: cannot open ledger: {exc}") from exc

        try:
            st = os.fstat(self._fh.fileno())
        except OSError as exc:
            raise LedgerIOError(f"{self.path}: cannot stat ledger: {exc}") from exc
        # st_ino may be 0 on some platforms; then replacement goes undetected
        self._ino = getattr(st, "st_ino", None) or None
        logger.info("Opened ledger %s (record_length=%d, start_offset=%d, poll_interval=%.3fs)",
                    self.path, self._record_length, self._start_offset, self._poll_interval)

    def _check_usable(self) -> None:
        if self._closed:
            raise ReaderClosedError(f"{self.path}: reader is closed")
        if self._failure is not None:
            # drop the traceback of the earlier raise so it does not keep growing
            raise self._failure.with_traceback(None)

    def _stat_length(self) -> int:
        try:
            st = os.stat(self.path)
        except FileNotFoundError as exc:
            raise LedgerNotFoundError(f"{self.path}: ledger file disappeared") from exc
        except OSError as exc:
            raise LedgerIOError(f"{self.path}: length query failed: {exc}") from exc
        finally:
            self._last_check_time = self._clock()
            self._queries.inc()
        ino = getattr(st, "st_ino", None)
        if ino and self._ino and ino != self._ino:
            raise LedgerNotFoundError(f"{self.path}: ledger file was replaced")
        return st.st_size

    def _query_length(self) -> int:
        length = self._stat_length()
        if length < self._known_safe_length or length < self._cursor:
            self._fail(length)
        self._known_safe_length = length
        return length

    def _wait_until(self, end: int) -> None:
        # the rate limit is measured from the previous query, not from this call
        elapsed = self._clock() - self._last_check_time
        if elapsed < self._poll_interval:
            self._sleep(self._poll_interval - elapsed)
        while True:
            length = self._query_length()
            if length >= end:
                return
            logger.debug("%s: %d bytes available, waiting for %d", self.path, length, end)
            self._sleep(self._poll_interval)

    def _read_at(self, offset: int) -> bytes:
        try:
            self._fh.seek(offset)
            data = self._fh.read(self._record_length)
        except OSError as exc:
            raise LedgerIOError(f"{self.path}: read at offset {offset} failed: {exc}") from exc
        if len(data) < self._record_length:
            # the file shrank below the cached length
            self._fail(offset + len(data))
        return data

    def _fail(self, observed_length: int) -> None:
        self._failure = TruncationError(self.path, observed_length, self._cursor, self._known_safe_length)
        logger.error("%s", self._failure)
        raise self._failure
