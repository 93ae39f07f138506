import argparse
import logging
import sys

from .config import forwarder_from_config, load_config, reader_from_config
from .errors import (
    ConfigError,
    ForwardError,
    LedgerIOError,
    LedgerNotFoundError,
    TruncationError,
)
from .forwarder import ENCODINGS

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_TRUNCATED = 2
EXIT_IO = 3


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ledgertail",
        description="ledgertail - follow an append-only ledger of fixed-size records",
    )
    parser.add_argument("--file", "-f", help="Ledger file to follow")
    parser.add_argument("--record-length", "-n", type=int, help="Size of one record in bytes")
    parser.add_argument("--offset", type=int, help="Byte offset to start reading from (default 0)")
    parser.add_argument("--poll-interval-ms", type=float,
                        help="Minimum spacing between file length checks (default 200)")
    parser.add_argument("--config", "-c", help="Path to JSON/YAML config")
    parser.add_argument("--wait", action="store_true", help="Wait for the ledger file to appear")
    parser.add_argument("--open-timeout", type=float, help="With --wait, give up after this many seconds")
    parser.add_argument("--webhook", help="POST each record to this URL instead of printing it")
    parser.add_argument("--encoding", choices=ENCODINGS, help="Text encoding of records (default hex)")
    parser.add_argument("--max-records", type=int, help="Stop after forwarding this many records")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Command line values win over the config file."""
    ledger = config["ledger"]
    forward = config["forward"]
    if args.file is not None:
        ledger["path"] = args.file
    if args.record_length is not None:
        ledger["record_length"] = args.record_length
    if args.offset is not None:
        ledger["start_offset"] = args.offset
    if args.poll_interval_ms is not None:
        ledger["poll_interval_ms"] = args.poll_interval_ms
    if args.wait:
        ledger["wait_for_file"] = True
    if args.open_timeout is not None:
        ledger["open_timeout"] = args.open_timeout
    if args.webhook is not None:
        forward["webhook_url"] = args.webhook
    if args.encoding is not None:
        forward["encoding"] = args.encoding
    if args.max_records is not None:
        forward["max_records"] = args.max_records
    if args.verbose:
        config["logging"]["level"] = "DEBUG"
    return config


def setup_logging(config: dict) -> None:
    level = str(config["logging"].get("level") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [ledgertail] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _error(msg) -> None:
    print(f"[ledgertail] {msg}", file=sys.stderr)


def run(config: dict) -> int:
    try:
        reader = reader_from_config(config)
    except (ConfigError, LedgerNotFoundError) as e:
        _error(e)
        return EXIT_CONFIG
    except LedgerIOError as e:
        _error(e)
        return EXIT_IO
    except KeyboardInterrupt:
        _error("stopped by user before the ledger was opened")
        return EXIT_OK

    with reader:
        try:
            forwarder = forwarder_from_config(config, reader)
        except ConfigError as e:
            _error(e)
            return EXIT_CONFIG
        try:
            count = forwarder.run()
        except KeyboardInterrupt:
            _error(f"stopped by user at offset {reader.read_cursor}")
            return EXIT_OK
        except TruncationError as e:
            _error(e)
            return EXIT_TRUNCATED
        except LedgerNotFoundError as e:
            _error(e)
            return EXIT_CONFIG
        except (LedgerIOError, ForwardError) as e:
            _error(e)
            return EXIT_IO
        finally:
            forwarder.sink.close()
    logging.getLogger(__name__).info("Forwarded %d records", count)
    return EXIT_OK


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        _error(e)
        return EXIT_CONFIG
    apply_overrides(config, args)
    setup_logging(config)
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
