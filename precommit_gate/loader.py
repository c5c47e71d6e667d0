"""
Configuration loader for pre-commit hooks.

Discovers and loads hook declarations from JSON or YAML files.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from precommit_gate.registry import ConfigError, HookDefinition, HookRegistry, InvalidDefinition

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("hooks.json", "hooks.yaml", "hooks.yml")

SETTING_KEYS = {"concurrency", "timeout", "max_output_bytes", "grace_period"}


class ConfigFileError(ConfigError):
    """A declarations file could not be read or parsed."""

    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


class HookConfigLoader:
    """Load and merge pre-commit hook declarations."""

    def __init__(self, path: Path):
        """
        Initialize loader.

        Args:
            path: A declarations file, or a directory holding hooks.json /
                hooks.yaml at its root and in its subdirectories
        """
        self.path = Path(path)
        self._configs: list[dict[str, Any]] | None = None

    def discover(self) -> list[Path]:
        """
        Find declaration files in load order.

        Returns:
            Root file(s) first, then those of subdirectories sorted by name
        """
        if self.path.is_file():
            return [self.path]
        if not self.path.is_dir():
            raise ConfigFileError(f"Hook configuration not found: {self.path}", self.path)

        found = [self.path / name for name in CONFIG_FILENAMES if (self.path / name).is_file()]

        for subdir in sorted(p for p in self.path.iterdir() if p.is_dir()):
            for name in CONFIG_FILENAMES:
                config_file = subdir / name
                if config_file.is_file():
                    found.append(config_file)

        return found

    def load_all_configs(self) -> list[dict[str, Any]]:
        """Load every discovered declarations file."""
        if self._configs is None:
            self._configs = [self._load_file(path) for path in self.discover()]
            logger.info(f"Loaded {len(self._configs)} hook config file(s) from {self.path}")
        return self._configs

    def load_definitions(self) -> list[HookDefinition]:
        """
        Parse all declarations into hook definitions.

        Returns:
            Definitions in file order, then declaration order
        """
        definitions = []
        for config in self.load_all_configs():
            definitions.extend(parse_hooks(config.get("hooks", {})))
        return definitions

    def load_settings(self) -> dict[str, Any]:
        """Merge the "settings" blocks; later files override earlier ones."""
        settings: dict[str, Any] = {}
        for config in self.load_all_configs():
            block = config.get("settings", {})
            if not isinstance(block, dict):
                raise ConfigError(f"'settings' must be a mapping, got {type(block).__name__}")
            unknown = sorted(set(block) - SETTING_KEYS)
            if unknown:
                logger.warning(f"Ignoring unknown settings: {unknown}")
            settings.update({k: v for k, v in block.items() if k in SETTING_KEYS})
        return settings

    def load_registry(self) -> HookRegistry:
        """Build a registry from all declarations."""
        return HookRegistry.from_definitions(self.load_definitions())

    def _load_file(self, path: Path) -> dict[str, Any]:
        """Load a single JSON or YAML declarations file."""
        try:
            with open(path) as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigFileError(f"Failed to load {path}: {e}", path) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigFileError(f"{path} must contain a mapping at the top level", path)
        return data


def parse_hooks(hooks: Any) -> list[HookDefinition]:
    """
    Parse a "hooks" declaration block.

    Accepts a mapping of name to fields or a list of entries that each
    carry a "name" field.

    Raises:
        ConfigError: If the block or any entry is malformed
    """
    if isinstance(hooks, dict):
        return [HookDefinition.from_dict(name, fields) for name, fields in hooks.items()]

    if isinstance(hooks, list):
        definitions = []
        for entry in hooks:
            if not isinstance(entry, dict) or "name" not in entry:
                raise InvalidDefinition(f"Hook list entries need a 'name' field: {entry!r}")
            definitions.append(HookDefinition.from_dict(entry["name"], entry))
        return definitions

    raise InvalidDefinition(f"'hooks' must be a mapping or a list, got {type(hooks).__name__}")
