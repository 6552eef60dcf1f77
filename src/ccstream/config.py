"""Configuration management for the ccstream CLI."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from xdg_base_dirs import xdg_config_home

from ccstream.monitor import DEFAULT_POLL_INTERVAL

APP_NAME = "ccstream"
PROJECT_CONFIG_NAME = ".ccstream.yaml"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return xdg_config_home() / APP_NAME


def get_config_file_path() -> Path:
    """Get the config.yaml file path."""
    return get_config_dir() / "config.yaml"


class MonitorConfig(BaseModel):
    """Settings for `ccstream watch`."""

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    read_backlog: bool = True


class DisplayConfig(BaseModel):
    """What the CLI prints for each event."""

    show_system: bool = False
    show_tool_results: bool = True
    max_content_chars: int = Field(default=200, ge=0)  # 0 disables truncation


class Config(BaseModel):
    """Configuration settings for ccstream."""

    monitor: MonitorConfig = MonitorConfig()
    display: DisplayConfig = DisplayConfig()


@dataclass
class ConfigWarning:
    """A config validation warning."""

    file: str
    field_name: str
    message: str
    value: object = field(default=None, repr=False)


def _deep_merge(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    """Recursively merge override dict into base dict.

    Args:
        base: The base dictionary.
        override: The dictionary with overriding values.

    Returns:
        A new merged dictionary.
    """
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)  # type: ignore[arg-type]
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path) -> tuple[dict[str, object], list[ConfigWarning]]:
    """Load a YAML mapping, reporting read and parse errors as warnings.

    Returns:
        Tuple of (parsed dict, warnings). The dict is empty when the file is
        missing, unreadable or not a mapping.
    """
    if not path.exists():
        return {}, []
    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return {}, [ConfigWarning(file=str(path), field_name="(file)", message=f"YAML parse error: {e}")]
    except OSError as e:
        return {}, [ConfigWarning(file=str(path), field_name="(file)", message=f"File read error: {e}")]
    if not isinstance(raw, dict):
        return {}, []
    return cast(dict[str, object], raw), []


def _drop_invalid(data: dict[str, object], error: ValidationError) -> list[ConfigWarning]:
    """Remove the keys named by validation errors from ``data`` in place."""
    warnings: list[ConfigWarning] = []
    for err in error.errors():
        loc = [str(part) for part in err["loc"]]
        warnings.append(
            ConfigWarning(
                file="merged config",
                field_name=".".join(loc),
                message=err["msg"],
                value=err.get("input"),
            )
        )
        # Walk to the parent of the offending key and drop it
        node: object = data
        for part in loc[:-1]:
            node = node.get(part) if isinstance(node, dict) else None
        if isinstance(node, dict) and loc:
            node.pop(loc[-1], None)
    return warnings


def load_config(
    config_path: Path | None = None,
    project_dir: Path | None = None,
) -> tuple[Config, list[ConfigWarning]]:
    """Load configuration with layered merging.

    The user config (``$XDG_CONFIG_HOME/ccstream/config.yaml``) is the base;
    ``.ccstream.yaml`` in ``project_dir`` overrides it. Invalid values are
    reported as warnings and fall back to their defaults.

    Args:
        config_path: Optional path to user config file. Uses default if None.
        project_dir: Optional directory containing a project config.

    Returns:
        Tuple of (loaded Config, list of ConfigWarnings).
    """
    warnings: list[ConfigWarning] = []

    merged, user_warnings = _load_yaml_file(config_path or get_config_file_path())
    warnings.extend(user_warnings)

    if project_dir:
        project_config, project_warnings = _load_yaml_file(project_dir / PROJECT_CONFIG_NAME)
        warnings.extend(project_warnings)
        merged = _deep_merge(merged, project_config)

    try:
        return Config.model_validate(merged), warnings
    except ValidationError as e:
        warnings.extend(_drop_invalid(merged, e))

    try:
        return Config.model_validate(merged), warnings
    except ValidationError:
        return Config(), warnings


def display_config_warnings(warnings: list[ConfigWarning], console: Console) -> None:
    """Display config warnings using Rich formatting."""
    if not warnings:
        return

    text = Text()
    for i, warning in enumerate(warnings):
        if i > 0:
            text.append("\n")
        text.append(f"  {warning.file}", style="dim")
        text.append(": ", style="dim")
        text.append(warning.field_name, style="bold")
        text.append(f": {warning.message}", style="yellow")
        if warning.value is not None:
            text.append(f" (got: {warning.value!r})", style="dim")

    console.print(Panel(text, title="[yellow]Config Warnings[/]", border_style="yellow"))


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write configuration to YAML.

    Returns:
        The path written.
    """
    path = config_path or get_config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
    return path
