"""Tests for the btmeta command line interface."""

from __future__ import annotations

import hashlib
import io
import json
import logging

import pytest
from click.testing import CliRunner
from rich.console import Console

from btmeta.cli import main as cli_main
from btmeta.cli.main import cli, to_jsonable
from btmeta.config.config import ConfigManager
from btmeta.core.bencode import encode
from btmeta.discovery.tracker import AsyncTrackerClient
from btmeta.models import LogLevel
from btmeta.utils.exceptions import TrackerError

pytestmark = [pytest.mark.unit, pytest.mark.cli]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def torrent_file(tmp_path, single_file_torrent):
    path = tmp_path / "sample.torrent"
    path.write_bytes(encode(single_file_torrent))
    return path


class FakeHttpClient:
    def __init__(self, status=200, body=b"", error=None):
        self.status = status
        self.body = body
        self.error = error
        self.urls = []

    async def get(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.status, self.body


@pytest.fixture
def fake_tracker(monkeypatch):
    """Route the peers command through an in-memory transport."""
    http = FakeHttpClient()

    def factory():
        return AsyncTrackerClient(http_client=http, peer_id=b"-BM0100-" + b"0" * 12)

    monkeypatch.setattr(cli_main, "AsyncTrackerClient", factory)
    return http


class TestToJsonable:
    def test_text_and_hex(self):
        assert to_jsonable(b"hello") == "hello"
        assert to_jsonable(b"\xff\x00") == "ff00"

    def test_nested(self):
        value = {b"k": [b"v", 1, {b"x": b"\x80"}]}
        assert to_jsonable(value) == {"k": ["v", 1, {"x": "80"}]}


class TestDecodeCommand:
    @pytest.mark.parametrize(
        ("encoded", "expected"),
        [
            ("5:hello", '"hello"'),
            ("i52e", "52"),
            ("i-52e", "-52"),
            ("l5:helloi52ee", '["hello", 52]'),
            ("d3:foo3:bar5:helloi52ee", '{"foo": "bar", "hello": 52}'),
            ("le", "[]"),
        ],
    )
    def test_decode(self, runner, encoded, expected):
        result = runner.invoke(cli, ["decode", encoded])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == expected

    @pytest.mark.parametrize(
        "encoded",
        ["i03e", "5:hi", "x", "i1ei2e", "i" + "1" * 5000 + "e", "1" * 5000 + ":x"],
    )
    def test_decode_invalid(self, runner, encoded):
        result = runner.invoke(cli, ["decode", encoded])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestInfoCommand:
    def test_json(self, runner, torrent_file, single_file_torrent):
        result = runner.invoke(cli, ["info", str(torrent_file), "--json"])
        assert result.exit_code == 0, result.output

        summary = json.loads(result.output)
        expected_hash = hashlib.sha1(encode(single_file_torrent[b"info"])).hexdigest()
        assert summary == {
            "tracker": "http://tracker.example.com:6969/announce",
            "name": "test_file.txt",
            "length": 12345,
            "info_hash": expected_hash,
            "piece_length": 16384,
            "piece_hashes": [("61" * 20), ("62" * 20)],
        }

    def test_table(self, runner, torrent_file):
        result = runner.invoke(cli, ["info", str(torrent_file)])
        assert result.exit_code == 0, result.output
        assert "Info Hash" in result.output
        assert "12345" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["info", str(tmp_path / "nope.torrent")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_torrent(self, runner, tmp_path):
        path = tmp_path / "bad.torrent"
        path.write_bytes(encode({b"info": {b"name": b"x"}}))
        result = runner.invoke(cli, ["info", str(path)])
        assert result.exit_code == 1
        assert "Missing required key" in result.output


class TestPeersCommand:
    def test_prints_peers_in_order(self, runner, torrent_file, fake_tracker):
        fake_tracker.body = encode(
            {b"interval": 1800, b"peers": b"\x0a\x00\x00\x01\x1a\xe1\xc0\xa8\x01\x02\x00\x50"}
        )

        result = runner.invoke(cli, ["peers", str(torrent_file), "--port", "51413"])

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["10.0.0.1:6881", "192.168.1.2:80"]
        assert "port=51413" in fake_tracker.urls[0]
        assert "compact=1" in fake_tracker.urls[0]

    def test_default_port_from_config(self, runner, torrent_file, fake_tracker, monkeypatch):
        monkeypatch.setenv("BTMETA_LISTEN_PORT", "7000")
        fake_tracker.body = encode({b"peers": b""})
        result = runner.invoke(cli, ["peers", str(torrent_file)])
        assert result.exit_code == 0, result.output
        assert "port=7000" in fake_tracker.urls[0]

    def test_tracker_unreachable(self, runner, torrent_file, fake_tracker):
        fake_tracker.error = TrackerError("Network error: connection refused")
        result = runner.invoke(cli, ["peers", str(torrent_file)])
        assert result.exit_code == 1
        assert "connection refused" in result.output

    def test_bad_compact_list(self, runner, torrent_file, fake_tracker):
        fake_tracker.body = encode({b"peers": b"\x01" * 7})
        result = runner.invoke(cli, ["peers", str(torrent_file)])
        assert result.exit_code == 1
        assert "multiple of 6" in result.output

    def test_port_out_of_range(self, runner, torrent_file, fake_tracker):
        result = runner.invoke(cli, ["peers", str(torrent_file), "--port", "70000"])
        assert result.exit_code == 2
        assert fake_tracker.urls == []


class TestGlobalOptions:
    def test_config_file(self, runner, tmp_path):
        config_path = tmp_path / "custom.toml"
        config_path.write_text('[network]\nlisten_port = 7001\n', encoding="utf-8")
        result = runner.invoke(cli, ["-c", str(config_path), "decode", "i1e"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "1"

    def test_invalid_config_file(self, runner, tmp_path):
        config_path = tmp_path / "broken.toml"
        config_path.write_text("[network\n", encoding="utf-8")
        result = runner.invoke(cli, ["-c", str(config_path), "decode", "i1e"])
        assert result.exit_code == 1
        assert "Failed to load config file" in result.output

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "absent.toml"), "decode", "i1e"])
        assert result.exit_code == 2

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("decode", "info", "peers"):
            assert command in result.output

    def test_verbosity_applied_through_config_manager(self, runner, monkeypatch):
        levels = []

        def record_setup(manager):
            levels.append(manager.config.observability.log_level)

        monkeypatch.setattr(ConfigManager, "setup_logging", record_setup)
        result = runner.invoke(cli, ["-vv", "decode", "i1e"])
        assert result.exit_code == 0, result.output
        assert levels == [LogLevel.DEBUG]

    def test_quiet_by_default(self, runner):
        result = runner.invoke(cli, ["decode", "i1e"])
        assert result.exit_code == 0
        assert logging.getLogger("btmeta").level == logging.WARNING


class TestErrorOutput:
    """Errors are reported on the error console, never on stdout."""

    @pytest.fixture
    def error_buffer(self, monkeypatch):
        buffer = io.StringIO()
        monkeypatch.setattr(cli_main, "err_console", Console(file=buffer, width=200))
        return buffer

    def test_decode_error(self, runner, error_buffer):
        result = runner.invoke(cli, ["decode", "i03e"])
        assert result.exit_code == 1
        assert "Error: Invalid integer" in error_buffer.getvalue()
        assert "Error:" not in result.output

    def test_peers_error(self, runner, torrent_file, fake_tracker, error_buffer):
        fake_tracker.error = TrackerError("Network error: connection refused")
        result = runner.invoke(cli, ["peers", str(torrent_file)])
        assert result.exit_code == 1
        assert "connection refused" in error_buffer.getvalue()
        assert "Error:" not in result.output

    def test_default_console_is_stderr(self):
        assert cli_main.err_console.stderr
        assert not cli_main.console.stderr
