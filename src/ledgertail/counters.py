"""
counters.py

Named running totals that report themselves through logging every
``lograte`` samples, so a long tailing session leaves a trace of how many
records and length queries it performed without logging each one.
"""

import json
import logging
import os
import time

logger = logging.getLogger(__name__)

DEFAULT_LOG_RATE = 1000
LOG_RATE_ENV = "LEDGERTAIL_LOG_RATE"


def default_log_rate() -> int:
    """Rate from LEDGERTAIL_LOG_RATE; unset, unparsable or 0 gives DEFAULT_LOG_RATE."""
    try:
        value = int(os.environ.get(LOG_RATE_ENV, DEFAULT_LOG_RATE))
    except ValueError:
        return DEFAULT_LOG_RATE
    return value if value > 0 else DEFAULT_LOG_RATE


class Counter:
    def __init__(self, name: str, lograte: int = 0):
        self.name = name
        self.counts = 0  # total accumulated value
        self.times = 0  # number of inc() calls
        self.lastlog = 0  # counts at the last report
        self.lograte = lograte

    def inc(self, events: int = 1) -> None:
        if self.lograte <= 0:
            self.lograte = default_log_rate()
        self.counts += events
        self.times += 1
        if self.times % self.lograte == 0:
            self.report(events)

    def report(self, events: int = 0) -> None:
        line = {
            "name": self.name,
            "counts": self.counts,
            "samples": self.times,
            "now": int(time.time() * 1000),
            "events": events,
        }
        logger.info("COUNTER:%s", json.dumps(line))
        self.lastlog = self.counts
