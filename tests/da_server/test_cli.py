"""Tests for the command-line entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import pytest

from da_server import __main__ as cli
from da_server.keys import encode_key
from da_server.relay import RelayClient, RelayConfig
from tests.da_server.helpers import FakeCommitter, FakeRelay, key_for, make_blob, relay_transport


def _patch_client(monkeypatch: pytest.MonkeyPatch, relay: FakeRelay) -> None:
    """Point the CLI's relay client at a fake peer with a fake committer."""

    def factory(config: RelayConfig) -> RelayClient:
        return RelayClient(
            config,
            committer=FakeCommitter(),
            transport=relay_transport({"relay-a": relay}),
        )

    monkeypatch.setattr(cli, "RelayClient", factory)


class TestSplitHashes:
    """Tests for parsing --blob-hash."""

    def test_comma_separated(self) -> None:
        """Hashes are split on commas and trimmed."""
        assert cli._split_hashes("0xaa, 0xbb,0xcc") == ["0xaa", "0xbb", "0xcc"]

    def test_blanks_ignored(self) -> None:
        """Empty items are dropped."""
        assert cli._split_hashes("0xaa,,") == ["0xaa"]


class TestColoredFormatter:
    """Tests for the colored log formatter."""

    def test_includes_level_name_and_message(self) -> None:
        """Formatted lines carry the level, logger name and message."""
        record = logging.LogRecord("da_server.test", logging.WARNING, "", 0, "hi %s", ("x",), None)
        line = cli.ColoredFormatter().format(record)

        assert "WARNING" in line
        assert "da_server.test" in line
        assert line.endswith("hi x")
        assert cli.ColoredFormatter.YELLOW in line


class TestDownload:
    """Tests for the download command."""

    def test_prints_verified_blobs(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Each fetched blob is printed as 0x-prefixed hex."""
        blob = make_blob(4)
        relay = FakeRelay()
        relay.blobs[encode_key(key_for(blob))] = blob
        _patch_client(monkeypatch, relay)

        asyncio.run(cli.download_blobs("http://relay-a", [encode_key(key_for(blob))], None))

        assert capsys.readouterr().out.strip() == "0x" + blob.hex()

    def test_missing_blob_exits_nonzero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A failed download ends the process with status 1."""
        _patch_client(monkeypatch, FakeRelay())
        monkeypatch.setattr(
            sys,
            "argv",
            [
                "da-server",
                "--no-color",
                "download",
                "--rpc",
                "http://relay-a",
                "--blob-hash",
                encode_key(key_for(make_blob(1))),
            ],
        )

        with pytest.raises(SystemExit) as excinfo:
            cli.main()

        assert excinfo.value.code == 1


class TestArguments:
    """Tests for argument validation."""

    def test_command_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Running without a command is a usage error."""
        monkeypatch.setattr(sys, "argv", ["da-server"])
        with pytest.raises(SystemExit) as excinfo:
            cli.main()
        assert excinfo.value.code == 2

    def test_start_requires_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """start needs --config."""
        monkeypatch.setattr(sys, "argv", ["da-server", "start"])
        with pytest.raises(SystemExit) as excinfo:
            cli.main()
        assert excinfo.value.code == 2

    def test_start_with_missing_config_file(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """A config path that does not exist exits with status 1."""
        monkeypatch.setattr(
            sys, "argv", ["da-server", "--no-color", "start", "--config", f"{tmp_path}/none.json"]
        )
        with pytest.raises(SystemExit) as excinfo:
            cli.main()
        assert excinfo.value.code == 1
