"""Tests for the ccstream command line interface."""

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from ccstream import __version__
from ccstream.__main__ import app

runner = CliRunner()

RECORDS = [
    {"type": "system", "subtype": "init", "session_id": "sess-1"},
    {"type": "assistant", "message": {"model": "claude-test", "content": [{"type": "text", "text": "Hello"}]}},
    {"type": "result", "subtype": "success", "total_cost": 0.02, "duration_ms": 1200, "num_turns": 1},
]


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    Path("run.log").write_text("\n".join(json.dumps(r) for r in RECORDS) + "\n", encoding="utf-8")
    return tmp_path


class TestVersion:
    """Tests for the --version flag."""

    def test_version(self) -> None:
        """Should print the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestShow:
    """Tests for the show command."""

    def test_show(self, workdir: Path) -> None:
        """Should print the summary panel and messages."""
        result = runner.invoke(app, ["show", "run.log"])
        assert result.exit_code == 0
        assert "sess-1" in result.output
        assert "claude-test" in result.output
        assert "Hello" in result.output

    def test_show_without_messages(self, workdir: Path) -> None:
        """Should omit message bodies when asked."""
        result = runner.invoke(app, ["show", "run.log", "--no-messages"])
        assert result.exit_code == 0
        assert "ASSISTANT" not in result.output

    def test_show_missing_file(self, workdir: Path) -> None:
        """Should exit non-zero for unreadable files."""
        result = runner.invoke(app, ["show", "missing.log"])
        assert result.exit_code == 1


class TestSummary:
    """Tests for the summary command."""

    def test_summary(self, workdir: Path) -> None:
        """Should print a row per file."""
        result = runner.invoke(app, ["summary", "run.log"])
        assert result.exit_code == 0
        assert "run.log" in result.output
        assert "$0.02" in result.output

    def test_summary_missing_file(self, workdir: Path) -> None:
        """Should still summarize readable files and exit non-zero."""
        result = runner.invoke(app, ["summary", "run.log", "missing.log"])
        assert result.exit_code == 1
        assert "run.log" in result.output


class TestValidate:
    """Tests for the validate command."""

    def test_valid(self, workdir: Path) -> None:
        """Should succeed for stream-json logs."""
        result = runner.invoke(app, ["validate", "run.log"])
        assert result.exit_code == 0
        assert "✓ run.log" in result.output

    def test_invalid(self, workdir: Path) -> None:
        """Should fail when any file is not a log."""
        Path("notes.txt").write_text("just some notes\n", encoding="utf-8")
        result = runner.invoke(app, ["validate", "run.log", "notes.txt"])
        assert result.exit_code == 1
        assert "✗ notes.txt" in result.output


class TestWatch:
    """Tests for the watch command's error paths."""

    def test_missing_file(self, workdir: Path) -> None:
        """Should exit non-zero when a log does not exist."""
        result = runner.invoke(app, ["watch", "missing.log"])
        assert result.exit_code == 1

    def test_invalid_poll_interval(self, workdir: Path) -> None:
        """Should reject a non-positive interval."""
        result = runner.invoke(app, ["watch", "run.log", "--poll-interval", "0"])
        assert result.exit_code == 1


class TestConfigCommands:
    """Tests for config show and config init."""

    def test_config_show_defaults(self, workdir: Path) -> None:
        """Should print the effective configuration."""
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "poll_interval" in result.output
        assert "max_content_chars" in result.output

    def test_config_show_uses_project_file(self, workdir: Path) -> None:
        """Should merge the project config from the working directory."""
        Path(".ccstream.yaml").write_text(yaml.dump({"display": {"max_content_chars": 42}}), encoding="utf-8")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "max_content_chars: 42" in result.output

    def test_config_init(self, workdir: Path) -> None:
        """Should write defaults once and refuse to overwrite."""
        config_path = workdir / "out" / "config.yaml"

        result = runner.invoke(app, ["config", "init", "--config", str(config_path)])
        assert result.exit_code == 0
        assert config_path.exists()

        result = runner.invoke(app, ["config", "init", "--config", str(config_path)])
        assert result.exit_code == 1

        result = runner.invoke(app, ["config", "init", "--config", str(config_path), "--force"])
        assert result.exit_code == 0
