"""
forwarder.py

Pull-to-push adapter: drains a TailReader and hands each record to a sink
(stdout or an HTTP webhook). The reader itself knows nothing about where its
records go.
"""

import base64
import binascii
import logging
import sys
from typing import Optional, TextIO

import requests

from . import __version__
from .errors import ConfigError, ForwardError
from .reader import TailReader

logger = logging.getLogger(__name__)

USER_AGENT = f"ledgertail/{__version__}"
ENCODINGS = ("hex", "base64")


def encode_record(record: bytes, encoding: str = "hex") -> str:
    if encoding == "hex":
        return binascii.hexlify(record).decode("ascii")
    if encoding == "base64":
        return base64.b64encode(record).decode("ascii")
    raise ConfigError(f"unknown record encoding {encoding!r} (expected one of {', '.join(ENCODINGS)})")


class ConsoleSink:
    """Write one ``<offset> <encoded record>`` line per record."""

    def __init__(self, stream: Optional[TextIO] = None, encoding: str = "hex"):
        encode_record(b"", encoding)
        self.stream = stream or sys.stdout
        self.encoding = encoding

    def send(self, offset: int, record: bytes) -> None:
        self.stream.write(f"{offset} {encode_record(record, self.encoding)}\n")
        self.stream.flush()

    def close(self) -> None:
        pass


class WebhookSink:
    """POST every record as a small JSON document."""

    def __init__(self, url: str, ledger: str = "", timeout: float = 5,
                 encoding: str = "hex", session: Optional[requests.Session] = None):
        if not url:
            raise ConfigError("webhook url is required")
        encode_record(b"", encoding)
        self.url = url
        self.ledger = ledger
        self.timeout = timeout
        self.encoding = encoding
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def send(self, offset: int, record: bytes) -> None:
        payload = {
            "ledger": self.ledger,
            "offset": offset,
            "length": len(record),
            "encoding": self.encoding,
            "record": encode_record(record, self.encoding),
        }
        try:
            r = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise ForwardError(f"webhook {self.url} failed for offset {offset}: {e}") from e
        if r.status_code not in (200, 201, 202, 204):
            raise ForwardError(f"webhook {self.url} answered {r.status_code} for offset {offset}")

    def close(self) -> None:
        self.session.close()


class RecordForwarder:
    """
    Repeatedly pull records from ``reader`` and push them to ``sink``.

    ``run()`` blocks like the reader does. It returns once ``max_records``
    records were forwarded; without a limit it only ends when the reader or
    the sink raises, or the caller interrupts it.
    """

    def __init__(self, reader: TailReader, sink, max_records: Optional[int] = None):
        if max_records is not None and max_records < 0:
            raise ConfigError(f"max_records must not be negative, got {max_records!r}")
        self.reader = reader
        self.sink = sink
        self.max_records = max_records
        self.forwarded = 0

    def run(self) -> int:
        logger.info("Forwarding %s from offset %d", self.reader.path, self.reader.read_cursor)
        while self.max_records is None or self.forwarded < self.max_records:
            offset = self.reader.read_cursor
            record = self.reader.next_record()
            self.sink.send(offset, record)
            self.forwarded += 1
        return self.forwarded
