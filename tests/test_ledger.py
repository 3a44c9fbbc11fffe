"""
Tests for the phase ledger (state.json).
"""

import json
from pathlib import Path

from avbbs.core.persistence.state_file import (
    append_ledger,
    clear_ledger,
    ledger_path,
    read_ledger,
)


class TestReadLedger:
    def test_missing_file(self, tmp_path: Path):
        assert read_ledger(tmp_path / "zlib") == []

    def test_reads_phases_in_order(self, tmp_path: Path):
        (tmp_path / "state.json").write_text('["fetch", "configure"]')
        assert read_ledger(tmp_path) == ["fetch", "configure"]

    def test_corrupt_file_reads_empty(self, tmp_path: Path, caplog):
        (tmp_path / "state.json").write_text("[not json")
        with caplog.at_level("WARNING"):
            assert read_ledger(tmp_path) == []
        assert "Corrupt ledger" in caplog.text

    def test_non_list_reads_empty(self, tmp_path: Path):
        (tmp_path / "state.json").write_text('{"phases": ["build"]}')
        assert read_ledger(tmp_path) == []

    def test_non_string_items_read_empty(self, tmp_path: Path):
        (tmp_path / "state.json").write_text('["build", 3]')
        assert read_ledger(tmp_path) == []


class TestAppendLedger:
    def test_creates_directories(self, tmp_path: Path):
        context = tmp_path / "dest" / "zlib"
        assert append_ledger(context, "configure") == ["configure"]
        assert ledger_path(context).is_file()

    def test_appends_in_completion_order(self, tmp_path: Path):
        append_ledger(tmp_path, "configure")
        append_ledger(tmp_path, "build")
        phases = append_ledger(tmp_path, "install")
        assert phases == ["configure", "build", "install"]
        assert json.loads(ledger_path(tmp_path).read_text()) == phases

    def test_no_temp_files_left(self, tmp_path: Path):
        append_ledger(tmp_path, "build")
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_corrupt_ledger_overwritten(self, tmp_path: Path):
        (tmp_path / "state.json").write_text("garbage")
        assert append_ledger(tmp_path, "build") == ["build"]


class TestClearLedger:
    def test_clear_removes_file(self, tmp_path: Path):
        append_ledger(tmp_path, "build")
        assert clear_ledger(tmp_path) == []
        assert not ledger_path(tmp_path).exists()
        assert read_ledger(tmp_path) == []

    def test_clear_without_ledger(self, tmp_path: Path):
        assert clear_ledger(tmp_path / "nothing") == []
