"""
Tests for sbvc_cli.main
"""

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from sbvc import VersionHistory
from sbvc_cli.config import ENV_GRANULARITY, ENV_LOG_LEVEL, ENV_POLL_INTERVAL, ENV_STORE
from sbvc_cli.main import cli

SEED = "alpha\nbeta\ngamma\n"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (ENV_STORE, ENV_GRANULARITY, ENV_POLL_INTERVAL, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)

    # setup_logging() replaces the root handlers; put them back afterwards.
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def initialized(runner, tmp_path: Path, tracked_file: Path) -> Path:
    """Run ``sbvc init`` on the tracked file and return the store path."""
    result = runner.invoke(cli, ["--config-dir", str(tmp_path / "cfg"), "init", str(tracked_file)])
    assert result.exit_code == 0, result.output
    return tracked_file.with_suffix(".sbvc")


@pytest.fixture
def sbvc(runner, tmp_path: Path, initialized: Path):
    """Invoke a subcommand against the initialized store."""

    def _invoke(*args: str, input=None):
        return runner.invoke(
            cli,
            ["--config-dir", str(tmp_path / "cfg"), "--store", str(initialized), *args],
            input=input,
        )

    return _invoke


class TestInit:
    """Tests for the init command."""

    def test_init(self, initialized, tracked_file):
        """Test the store is created next to the file."""
        assert initialized.exists()
        with VersionHistory.open(initialized) as history:
            assert history.tracked_file == tracked_file.resolve()
            assert len(history.versions()) == 1

    def test_init_output(self, runner, tmp_path, tracked_file):
        """Test init reports both paths."""
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "init", str(tracked_file)])
        assert result.exit_code == 0
        assert "Tracking" in result.output
        assert "notes.sbvc" in result.output

    def test_init_twice(self, runner, tmp_path, initialized, tracked_file):
        """Test an existing store is not overwritten."""
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "init", str(tracked_file)])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_init_explicit_store(self, runner, tmp_path, tracked_file):
        """Test --store picks the store path."""
        store = tmp_path / "elsewhere.sbvc"
        result = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "--store", str(store), "init", str(tracked_file)]
        )
        assert result.exit_code == 0
        assert store.exists()


class TestStoreSelection:
    """Tests for --store / SBVC_STORE handling."""

    def test_no_store(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "status"])
        assert result.exit_code == 2
        assert "No store selected" in result.output

    def test_missing_store(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "--store", str(tmp_path / "x.sbvc"), "status"]
        )
        assert result.exit_code == 1
        assert "Cannot open" in result.output

    def test_store_from_env(self, runner, tmp_path, initialized):
        result = runner.invoke(
            cli,
            ["--config-dir", str(tmp_path), "status"],
            env={ENV_STORE: str(initialized)},
        )
        assert result.exit_code == 0
        assert "clean" in result.output

    def test_invalid_env_config(self, runner, tmp_path, initialized):
        result = runner.invoke(
            cli,
            ["--config-dir", str(tmp_path), "--store", str(initialized), "status"],
            env={ENV_GRANULARITY: "paragraph"},
        )
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output


class TestCommands:
    """Tests for the history subcommands."""

    def test_status(self, sbvc, tracked_file):
        result = sbvc("status")
        assert result.exit_code == 0
        assert "1: Initial version" in result.output
        assert "clean" in result.output

        tracked_file.write_text("edited\n")
        assert "modified" in sbvc("status").output

    def test_commit(self, sbvc, tracked_file):
        tracked_file.write_text(SEED + "delta\n")
        result = sbvc("commit")
        assert result.exit_code == 0
        assert "Committed 2: Version 2 on version 1" in result.output

    def test_nothing_to_commit(self, sbvc):
        result = sbvc("commit")
        assert result.exit_code == 0
        assert "Nothing to commit" in result.output

    def test_log(self, sbvc, tracked_file):
        tracked_file.write_text(SEED + "delta\n")
        sbvc("commit")
        result = sbvc("log")
        assert result.exit_code == 0
        assert "1: Initial version" in result.output
        assert "2: Version 2" in result.output
        assert "(current)" in result.output

    def test_show(self, sbvc):
        result = sbvc("show")
        assert result.exit_code == 0
        assert "Version ID" in result.output
        assert "Initial version" in result.output

    def test_show_content(self, sbvc, tracked_file):
        tracked_file.write_text(SEED + "delta\n")
        sbvc("commit")
        result = sbvc("show", "1", "--content")
        assert result.exit_code == 0
        assert result.output == SEED

    def test_show_unknown(self, sbvc):
        result = sbvc("show", "42")
        assert result.exit_code == 1
        assert "Unknown version: 42" in result.output

    def test_checkout(self, sbvc, tracked_file):
        tracked_file.write_text(SEED + "delta\n")
        sbvc("commit")
        result = sbvc("checkout", "1")
        assert result.exit_code == 0
        assert "Checked out 1: Initial version" in result.output
        assert tracked_file.read_text() == SEED

    def test_checkout_dirty_cancelled(self, sbvc, tracked_file):
        tracked_file.write_text("edited\n")
        result = sbvc("checkout", "1", input="n\n")
        assert result.exit_code == 0
        assert "Checkout cancelled." in result.output
        assert tracked_file.read_text() == "edited\n"

    def test_checkout_dirty_confirmed(self, sbvc, tracked_file):
        tracked_file.write_text("edited\n")
        result = sbvc("checkout", "1", input="y\n")
        assert result.exit_code == 0
        assert "Checked out" in result.output
        assert tracked_file.read_text() == SEED

    def test_checkout_discard_flag(self, sbvc, tracked_file):
        tracked_file.write_text("edited\n")
        result = sbvc("checkout", "1", "--discard")
        assert result.exit_code == 0
        assert tracked_file.read_text() == SEED

    def test_rename(self, sbvc):
        result = sbvc("rename", "first draft")
        assert result.exit_code == 0
        assert "Renamed version 1 to 'first draft'" in result.output
        assert "first draft" in sbvc("show").output

    def test_rename_blank(self, sbvc):
        result = sbvc("rename", "   ")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_delete(self, sbvc, tracked_file):
        tracked_file.write_text(SEED + "delta\n")
        sbvc("commit")
        result = sbvc("delete", "--yes")
        assert result.exit_code == 0
        assert "Deleted 2: Version 2; current version is 1" in result.output
        assert tracked_file.read_text() == SEED

    def test_delete_declined(self, sbvc, tracked_file):
        tracked_file.write_text(SEED + "delta\n")
        sbvc("commit")
        result = sbvc("delete", input="n\n")
        assert result.exit_code == 1
        assert "2: Version 2" in sbvc("status").output

    def test_delete_root(self, sbvc):
        result = sbvc("delete", "--yes")
        assert result.exit_code == 1
        assert "root" in result.output

    def test_rollback(self, sbvc, tracked_file):
        tracked_file.write_text("scratch\n")
        result = sbvc("rollback")
        assert result.exit_code == 0
        assert "Restored" in result.output
        assert tracked_file.read_text() == SEED

    def test_track(self, sbvc, tmp_path):
        other = tmp_path / "other.txt"
        other.write_text(SEED)
        result = sbvc("track", str(other))
        assert result.exit_code == 0
        assert str(other.resolve()) in result.output
        assert "clean" in sbvc("status").output


class TestInfoCommands:
    """Tests for config and version."""

    def test_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "config"])
        assert result.exit_code == 0
        assert "Granularity:    line" in result.output

    def test_version(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "version"])
        assert result.exit_code == 0
        assert "SBVC v0.1.0" in result.output
