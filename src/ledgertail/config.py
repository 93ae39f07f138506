import copy
import json
import os

import yaml

from .errors import ConfigError
from .forwarder import ConsoleSink, RecordForwarder, WebhookSink
from .reader import DEFAULT_POLL_INTERVAL, TailReader

# -------------------- Default Config --------------------
DEFAULT_CONFIG = {
    "ledger": {
        "path": None,
        "record_length": None,
        "start_offset": 0,
        "poll_interval_ms": 200,
        "wait_for_file": False,
        "open_timeout": None,
        "log_rate": 0,
    },
    "forward": {
        "webhook_url": None,
        "timeout": 5,
        "encoding": "hex",
        "max_records": None,
    },
    "logging": {
        "level": "INFO",
    },
}


def load_config(path=None) -> dict:
    """Load a JSON or YAML config file on top of DEFAULT_CONFIG."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not path:
        return config
    if not os.path.exists(path):
        raise ConfigError(f"config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.lower().endswith((".yml", ".yaml")):
                user = yaml.safe_load(f) or {}
            else:
                user = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config {path}: {e}") from e
    if not isinstance(user, dict):
        raise ConfigError(f"config {path} must contain a mapping at the top level")
    for k, v in user.items():
        if k in config and isinstance(config[k], dict):
            if not isinstance(v, dict):
                raise ConfigError(f"config section {k!r} must be a mapping")
            config[k].update(v)
        else:
            config[k] = v
    return config


def _int_option(section: dict, key: str, minimum: int, required: bool = False):
    value = section.get(key)
    if value is None:
        if required:
            raise ConfigError(f"missing required setting {key!r}")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key!r} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{key!r} must be >= {minimum}, got {value!r}")
    return value


def _number_option(section: dict, key: str):
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key!r} must be a number, got {value!r}")
    return value


def reader_from_config(config: dict) -> TailReader:
    ledger = config["ledger"]
    path = ledger.get("path")
    if not path:
        raise ConfigError("missing required setting 'path'")
    record_length = _int_option(ledger, "record_length", 1, required=True)
    start_offset = _int_option(ledger, "start_offset", 0) or 0
    poll_ms = _number_option(ledger, "poll_interval_ms")
    poll_interval = DEFAULT_POLL_INTERVAL if poll_ms is None else poll_ms / 1000.0
    return TailReader(
        path,
        record_length,
        start_offset=start_offset,
        poll_interval=poll_interval,
        wait_for_file=bool(ledger.get("wait_for_file")),
        open_timeout=_number_option(ledger, "open_timeout"),
        log_rate=_int_option(ledger, "log_rate", 0) or 0,
    )


def forwarder_from_config(config: dict, reader: TailReader, stream=None) -> RecordForwarder:
    fwd = config["forward"]
    encoding = fwd.get("encoding") or "hex"
    if fwd.get("webhook_url"):
        timeout = _number_option(fwd, "timeout")
        sink = WebhookSink(fwd["webhook_url"], ledger=reader.path,
                           timeout=5 if timeout is None else timeout, encoding=encoding)
    else:
        sink = ConsoleSink(stream, encoding=encoding)
    return RecordForwarder(reader, sink, max_records=_int_option(fwd, "max_records", 0))
