"""
Hook registry for pre-commit checks.

Holds the declarative hook definitions and validates them at registration.
"""

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Declaration keys understood by HookDefinition.from_dict
KNOWN_KEYS = {
    "name",
    "entry",
    "files",
    "enable",
    "enabled",
    "pass_filenames",
    "description",
    "exclude",
    "excludes",
    "timeout",
}


class ConfigError(Exception):
    """Raised when hook configuration is invalid. Fatal before any check runs."""

    def __init__(self, message: str, hook_name: str | None = None):
        super().__init__(message)
        self.hook_name = hook_name


class DuplicateName(ConfigError):
    """A hook with the same name is already registered."""


class InvalidPattern(ConfigError):
    """A hook's files or exclude pattern is not a valid regular expression."""


class InvalidDefinition(ConfigError):
    """A hook declaration is missing required fields or has wrongly typed values."""


@dataclass(frozen=True)
class HookDefinition:
    """A named check: the command to run and the files it applies to."""

    name: str
    entry: str
    files: str | None = None
    enabled: bool = True
    pass_filenames: bool = True
    description: str | None = None
    exclude: str | None = None
    timeout: float | None = None

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "HookDefinition":
        """
        Build a definition from a parsed declaration.

        Args:
            name: Hook name (the attribute key in the declarations)
            data: Declaration fields

        Returns:
            Validated HookDefinition

        Raises:
            InvalidDefinition: If a field is missing or has the wrong type
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidDefinition(f"Hook name must be a non-empty string, got {name!r}")
        if not isinstance(data, Mapping):
            raise InvalidDefinition(f"Hook '{name}' must be a mapping", name)

        unknown = sorted(set(data) - KNOWN_KEYS)
        if unknown:
            logger.warning(f"Ignoring unknown keys for hook '{name}': {unknown}")

        entry = data.get("entry")
        if not isinstance(entry, str) or not entry.strip():
            raise InvalidDefinition(f"Hook '{name}' needs a non-empty 'entry'", name)

        # Accept both spellings, the attribute-set style uses "enable"
        enabled = data.get("enabled", data.get("enable", True))
        pass_filenames = data.get("pass_filenames", True)
        for key, value in (("enabled", enabled), ("pass_filenames", pass_filenames)):
            if not isinstance(value, bool):
                raise InvalidDefinition(f"Hook '{name}': '{key}' must be a boolean", name)

        files = _optional_str(name, "files", data.get("files"))
        exclude = _optional_str(name, "exclude", data.get("exclude", data.get("excludes")))
        description = _optional_str(name, "description", data.get("description"))

        timeout = data.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise InvalidDefinition(f"Hook '{name}': 'timeout' must be a positive number", name)
            timeout = float(timeout)

        return cls(
            name=name,
            entry=entry,
            files=files,
            enabled=enabled,
            pass_filenames=pass_filenames,
            description=description,
            exclude=exclude,
            timeout=timeout,
        )


def _optional_str(name: str, key: str, value: Any) -> str | None:
    if value is None:
        return None
    # A list of alternatives is joined into one pattern
    if key == "exclude" and isinstance(value, list) and all(isinstance(v, str) for v in value):
        return "|".join(f"(?:{v})" for v in value) if value else None
    if not isinstance(value, str):
        raise InvalidDefinition(f"Hook '{name}': '{key}' must be a string", name)
    return value


class HookRegistry:
    """Ordered, name-unique collection of hook definitions."""

    def __init__(self):
        self._hooks: dict[str, HookDefinition] = {}
        self._patterns: dict[str, re.Pattern[str] | None] = {}
        self._excludes: dict[str, re.Pattern[str] | None] = {}
        self._sealed = False

    @classmethod
    def from_definitions(cls, definitions: Iterable[HookDefinition]) -> "HookRegistry":
        """
        Build a fresh registry from definitions, in order.

        The returned registry is sealed; a changed declaration set means
        building a new one.

        Raises:
            ConfigError: On the first invalid definition
        """
        registry = cls()
        for definition in definitions:
            registry.register(definition)
        registry.seal()
        return registry

    def register(self, definition: HookDefinition) -> None:
        """
        Register a hook definition.

        Args:
            definition: Hook to add

        Raises:
            DuplicateName: If a hook with this name exists
            InvalidPattern: If files or exclude does not compile
            RuntimeError: If the registry is sealed
        """
        if self._sealed:
            raise RuntimeError(
                f"Cannot register '{definition.name}': registry is sealed, build a new one instead"
            )
        if definition.name in self._hooks:
            raise DuplicateName(f"Duplicate hook name '{definition.name}'", definition.name)

        pattern = self._compile(definition, "files", definition.files)
        exclude = self._compile(definition, "exclude", definition.exclude)

        self._hooks[definition.name] = definition
        self._patterns[definition.name] = pattern
        self._excludes[definition.name] = exclude
        logger.debug(f"Registered hook '{definition.name}' (enabled={definition.enabled})")

    def seal(self) -> None:
        """Reject further registrations."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _compile(
        self, definition: HookDefinition, key: str, source: str | None
    ) -> re.Pattern[str] | None:
        if source is None:
            return None
        try:
            return re.compile(source)
        except re.error as e:
            raise InvalidPattern(
                f"Hook '{definition.name}': invalid {key} pattern {source!r}: {e}",
                definition.name,
            ) from e

    def list_hooks(self) -> list[HookDefinition]:
        """Return all definitions in registration order."""
        return list(self._hooks.values())

    def get(self, name: str) -> HookDefinition | None:
        return self._hooks.get(name)

    def pattern_for(self, name: str) -> re.Pattern[str] | None:
        """Compiled files pattern for a hook, None when it has none."""
        return self._patterns[name]

    def exclude_for(self, name: str) -> re.Pattern[str] | None:
        return self._excludes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._hooks

    def __iter__(self) -> Iterator[HookDefinition]:
        return iter(self.list_hooks())

    def __len__(self) -> int:
        return len(self._hooks)
