import json
from pathlib import Path

import pytest

from conftest import append
from ledgertail import ConfigError, ConsoleSink, WebhookSink, load_config, reader_from_config
from ledgertail.config import DEFAULT_CONFIG, forwarder_from_config


def test_defaults_without_file() -> None:
    config = load_config()
    assert config == DEFAULT_CONFIG
    config["ledger"]["record_length"] = 99
    assert DEFAULT_CONFIG["ledger"]["record_length"] is None


def test_json_config_is_merged(tmp_path: Path) -> None:
    path = tmp_path / "ledgertail.json"
    path.write_text(json.dumps({"ledger": {"record_length": 32}, "extra": 1}), encoding="utf-8")
    config = load_config(str(path))
    assert config["ledger"]["record_length"] == 32
    assert config["ledger"]["poll_interval_ms"] == 200
    assert config["forward"]["encoding"] == "hex"
    assert config["extra"] == 1


def test_yaml_config_is_merged(tmp_path: Path) -> None:
    path = tmp_path / "ledgertail.yaml"
    path.write_text(
        "ledger:\n"
        "  path: /data/ledger.bin\n"
        "  record_length: 16\n"
        "  poll_interval_ms: 50\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )
    config = load_config(str(path))
    assert config["ledger"]["path"] == "/data/ledger.bin"
    assert config["ledger"]["poll_interval_ms"] == 50
    assert config["ledger"]["start_offset"] == 0
    assert config["logging"]["level"] == "DEBUG"


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == DEFAULT_CONFIG


@pytest.mark.parametrize("name, text", [
    ("broken.json", "{not json"),
    ("list.json", "[1, 2]"),
    ("section.json", '{"ledger": 5}'),
    ("broken.yaml", "ledger: [unclosed"),
])
def test_bad_config_files(tmp_path: Path, name: str, text: str) -> None:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.json"))


def test_reader_from_config(ledger: Path) -> None:
    append(ledger, b"a" * 64)
    config = load_config()
    config["ledger"].update({"path": str(ledger), "record_length": 16, "start_offset": 32,
                             "poll_interval_ms": 50})
    reader = reader_from_config(config)
    try:
        assert reader.record_length == 16
        assert reader.read_cursor == 32
        assert reader.poll_interval == pytest.approx(0.05)
    finally:
        reader.close()


@pytest.mark.parametrize("ledger_settings", [
    {"path": None, "record_length": 8},
    {"record_length": None},
    {"record_length": 0},
    {"record_length": "8"},
    {"record_length": 8, "start_offset": -1},
    {"record_length": 8, "poll_interval_ms": "fast"},
])
def test_reader_from_config_validation(ledger: Path, ledger_settings: dict) -> None:
    config = load_config()
    config["ledger"]["path"] = str(ledger)
    config["ledger"].update(ledger_settings)
    with pytest.raises(ConfigError):
        reader_from_config(config)


def test_forwarder_from_config_picks_sink(ledger: Path) -> None:
    config = load_config()
    config["ledger"].update({"path": str(ledger), "record_length": 4})
    reader = reader_from_config(config)
    try:
        assert isinstance(forwarder_from_config(config, reader).sink, ConsoleSink)

        config["forward"].update({"webhook_url": "http://collector.local/in", "max_records": 3})
        forwarder = forwarder_from_config(config, reader)
        assert isinstance(forwarder.sink, WebhookSink)
        assert forwarder.sink.ledger == str(ledger)
        assert forwarder.max_records == 3
        forwarder.sink.close()
    finally:
        reader.close()


def test_config_path_that_cannot_be_read(tmp_path: Path) -> None:
    directory = tmp_path / "conf.json"
    directory.mkdir()
    with pytest.raises(ConfigError, match="cannot read"):
        load_config(str(directory))


def test_log_rate_reaches_reader(ledger: Path) -> None:
    config = load_config()
    config["ledger"].update({"path": str(ledger), "record_length": 4, "log_rate": 7})
    reader = reader_from_config(config)
    try:
        assert reader._records.lograte == 7
    finally:
        reader.close()
