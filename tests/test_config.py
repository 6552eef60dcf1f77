"""Tests for ccstream.config module."""

import tempfile
from io import StringIO
from pathlib import Path

import pytest
import yaml
from rich.console import Console

from ccstream.config import (
    PROJECT_CONFIG_NAME,
    Config,
    ConfigWarning,
    DisplayConfig,
    MonitorConfig,
    _deep_merge,
    _load_yaml_file,
    display_config_warnings,
    get_config_file_path,
    load_config,
    save_config,
)
from ccstream.monitor import DEFAULT_POLL_INTERVAL


class TestConfig:
    """Tests for Config models."""

    def test_default_values(self) -> None:
        """Should have correct default values."""
        config = Config()
        assert config.monitor.poll_interval == DEFAULT_POLL_INTERVAL
        assert config.monitor.read_backlog is True
        assert config.display.show_system is False
        assert config.display.show_tool_results is True
        assert config.display.max_content_chars == 200

    def test_custom_values(self) -> None:
        """Should accept custom values."""
        config = Config(
            monitor=MonitorConfig(poll_interval=1.5, read_backlog=False),
            display=DisplayConfig(max_content_chars=0),
        )
        assert config.monitor.poll_interval == 1.5
        assert config.monitor.read_backlog is False
        assert config.display.max_content_chars == 0

    def test_rejects_non_positive_poll_interval(self) -> None:
        """Should reject a zero poll interval."""
        with pytest.raises(ValueError):
            MonitorConfig(poll_interval=0)


class TestConfigPaths:
    """Tests for config path helpers."""

    def test_uses_xdg_config_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Should place config.yaml under XDG_CONFIG_HOME."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_config_file_path() == tmp_path / "ccstream" / "config.yaml"


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_flat_merge(self) -> None:
        """Should merge flat dicts with override winning."""
        base: dict[str, object] = {"a": 1, "b": 2}
        override: dict[str, object] = {"b": 3, "c": 4}
        assert _deep_merge(base, override) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Should recursively merge nested dicts."""
        base: dict[str, object] = {"monitor": {"poll_interval": 1.0, "read_backlog": True}}
        override: dict[str, object] = {"monitor": {"poll_interval": 2.0}}
        assert _deep_merge(base, override) == {"monitor": {"poll_interval": 2.0, "read_backlog": True}}

    def test_does_not_mutate_inputs(self) -> None:
        """Should leave both inputs unchanged."""
        base: dict[str, object] = {"display": {"show_system": False}}
        override: dict[str, object] = {"display": {"show_system": True}}
        _deep_merge(base, override)
        assert base == {"display": {"show_system": False}}
        assert override == {"display": {"show_system": True}}


class TestLoadYamlFile:
    """Tests for _load_yaml_file function."""

    def test_missing_file(self) -> None:
        """Should return empty dict for missing file."""
        data, warnings = _load_yaml_file(Path("/nonexistent/path/config.yaml"))
        assert data == {}
        assert warnings == []

    def test_invalid_yaml(self) -> None:
        """Should return empty dict with warning for invalid YAML."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "test.yaml"
            path.write_text("invalid: yaml: content:", encoding="utf-8")
            data, warnings = _load_yaml_file(path)
            assert data == {}
            assert len(warnings) == 1
            assert "YAML parse error" in warnings[0].message

    def test_non_dict_yaml(self) -> None:
        """Should return empty dict when YAML is not a dict."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "test.yaml"
            path.write_text("- item1\n- item2\n", encoding="utf-8")
            data, warnings = _load_yaml_file(path)
            assert data == {}
            assert warnings == []


class TestLoadConfig:
    """Tests for load_config function."""

    def test_missing_file_returns_defaults(self) -> None:
        """Should return defaults when file doesn't exist."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config, warnings = load_config(Path(tmpdir) / "nonexistent.yaml")
            assert config == Config()
            assert warnings == []

    def test_loads_valid_config(self) -> None:
        """Should load valid config from file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"
            config_path.write_text(
                yaml.dump({"monitor": {"poll_interval": 0.5}, "display": {"show_system": True}}),
                encoding="utf-8",
            )
            config, warnings = load_config(config_path)
            assert config.monitor.poll_interval == 0.5
            assert config.display.show_system is True
            assert warnings == []

    def test_invalid_value_dropped_with_warning(self) -> None:
        """Should drop only the invalid key and keep the rest."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"
            config_path.write_text(
                yaml.dump({"monitor": {"poll_interval": -1, "read_backlog": False}}),
                encoding="utf-8",
            )
            config, warnings = load_config(config_path)
            assert len(warnings) == 1
            assert warnings[0].field_name == "monitor.poll_interval"
            assert warnings[0].value == -1
            assert config.monitor.poll_interval == DEFAULT_POLL_INTERVAL
            assert config.monitor.read_backlog is False

    def test_invalid_section_dropped(self) -> None:
        """Should fall back to defaults for a malformed section."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"
            config_path.write_text(yaml.dump({"display": "loud"}), encoding="utf-8")
            config, warnings = load_config(config_path)
            assert len(warnings) == 1
            assert warnings[0].field_name == "display"
            assert config.display == DisplayConfig()

    def test_project_config_overrides_user(self) -> None:
        """Project config should override user config key by key."""
        with tempfile.TemporaryDirectory() as tmpdir:
            user_path = Path(tmpdir) / "config.yaml"
            user_path.write_text(
                yaml.dump({"display": {"show_system": True, "max_content_chars": 50}}),
                encoding="utf-8",
            )
            project_dir = Path(tmpdir) / "project"
            project_dir.mkdir()
            (project_dir / PROJECT_CONFIG_NAME).write_text(
                yaml.dump({"display": {"max_content_chars": 80}}),
                encoding="utf-8",
            )

            config, warnings = load_config(user_path, project_dir=project_dir)
            assert config.display.show_system is True
            assert config.display.max_content_chars == 80
            assert warnings == []

    def test_no_project_config(self) -> None:
        """Should work when the project dir has no config."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config, warnings = load_config(Path(tmpdir) / "config.yaml", project_dir=Path(tmpdir))
            assert config == Config()
            assert warnings == []


class TestSaveConfig:
    """Tests for save_config function."""

    def test_saves_config(self) -> None:
        """Should save config to file and load it back."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "nested" / "config.yaml"
            config = Config(monitor=MonitorConfig(poll_interval=2.0))

            written = save_config(config, config_path)

            assert written == config_path
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
            assert data["monitor"]["poll_interval"] == 2.0
            assert load_config(config_path) == (config, [])


class TestDisplayConfigWarnings:
    """Tests for display_config_warnings function."""

    def test_no_warnings_no_output(self) -> None:
        """Should not print anything when no warnings."""
        output = StringIO()
        display_config_warnings([], Console(file=output, no_color=True))
        assert output.getvalue() == ""

    def test_displays_warnings(self) -> None:
        """Should display warnings in a panel."""
        output = StringIO()
        warnings = [
            ConfigWarning(file="config.yaml", field_name="monitor.poll_interval", message="too small", value=-1),
        ]
        display_config_warnings(warnings, Console(file=output, no_color=True, width=120))
        result = output.getvalue()
        assert "Config Warnings" in result
        assert "monitor.poll_interval" in result
        assert "too small" in result
