"""Configuration Management for CLI Settings"""

import os
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

console = Console()


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    CLI settings stored as YAML in ``$JOBQUEUE_CONFIG_DIR/config.yaml``
    (``~/.jobqueue`` by default), layered over built-in defaults.
    """

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or Path(
            os.getenv("JOBQUEUE_CONFIG_DIR", Path.home() / ".jobqueue")
        )
        self.config_file = self.config_dir / "config.yaml"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "api": {
                "base_url": os.getenv("JOBQUEUE_API_URL", "http://localhost:8000"),
                "timeout": 30,
            },
            "jobs": {
                # Whether `jobs enqueue` starts the runner unless told otherwise
                "run_after_enqueue": True,
            },
        }

    def load_config(self) -> dict[str, Any]:
        """Stored settings merged over the defaults, section by section"""
        defaults = self.get_default_config()
        if not self.config_file.exists():
            return defaults

        try:
            stored = yaml.safe_load(self.config_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            return defaults

        if not isinstance(stored, dict):
            console.print(f"[red]Ignoring malformed config file {self.config_file}[/red]")
            return defaults
        return _merge(defaults, stored)

    def save_config(self, config: dict[str, Any]) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(yaml.safe_dump(config, default_flow_style=False))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key, e.g. ``api.base_url``"""
        node: Any = self.load_config()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> Any:
        """
        Set a value by dotted key and persist it.

        String values are read as YAML scalars, so ``30`` is stored as an
        integer and ``false`` as a boolean. Returns the stored value.
        """
        if isinstance(value, str):
            try:
                value = yaml.safe_load(value) if value.strip() else value
            except yaml.YAMLError:
                pass

        config = self.load_config()
        *parents, leaf = key.split(".")
        node = config
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

        self.save_config(config)
        return value

    def reset(self) -> None:
        self.save_config(self.get_default_config())

    def dump(self) -> str:
        return yaml.safe_dump(self.load_config(), default_flow_style=False)


config = ConfigManager()
