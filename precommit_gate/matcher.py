"""
Matcher for selecting hooks by changed file paths.

Decides which registered hooks are triggered by a changeset and which
files each of them receives.
"""

import logging
import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass

from precommit_gate.registry import HookDefinition, HookRegistry

logger = logging.getLogger(__name__)


class ChangesetError(ValueError):
    """Raised for paths that cannot be part of a changeset."""


def normalize_path(path: str) -> str:
    """
    Normalize a relative path for matching.

    Args:
        path: Relative file path, either separator style

    Returns:
        POSIX path without "." or ".." segments

    Raises:
        ChangesetError: If the path is empty, absolute or escapes the tree
    """
    if not isinstance(path, str) or not path.strip():
        raise ChangesetError(f"Invalid changeset path: {path!r}")

    candidate = path.replace("\\", "/")
    if candidate.startswith("/") or re.match(r"^[A-Za-z]:/", candidate):
        raise ChangesetError(f"Changeset paths must be relative: {path!r}")

    normalized = posixpath.normpath(candidate)
    if normalized == ".." or normalized.startswith("../"):
        raise ChangesetError(f"Changeset path escapes the working tree: {path!r}")
    if normalized == ".":
        raise ChangesetError(f"Changeset path names no file: {path!r}")
    return normalized


def normalize_changeset(paths: Iterable[str]) -> list[str]:
    """Normalize paths and drop duplicates, keeping first-seen order."""
    seen: set[str] = set()
    changeset: list[str] = []
    for path in paths:
        normalized = normalize_path(path)
        if normalized in seen:
            logger.debug(f"Dropping duplicate changeset path {path!r}")
            continue
        seen.add(normalized)
        changeset.append(normalized)
    return changeset


@dataclass(frozen=True)
class Trigger:
    """A hook selected to run, with the files it will be given."""

    hook: HookDefinition
    files: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.hook.name


class HookMatcher:
    """Match file paths against one hook's files and exclude patterns."""

    def __init__(self, pattern: re.Pattern[str] | None, exclude: re.Pattern[str] | None = None):
        """
        Initialize matcher.

        Args:
            pattern: Compiled files pattern, None to match unconditionally
            exclude: Compiled exclude pattern, None to exclude nothing
        """
        self.pattern = pattern
        self.exclude = exclude

    @property
    def unconditional(self) -> bool:
        return self.pattern is None

    def matches(self, path: str) -> bool:
        """
        Check if a normalized path selects this hook.

        Uses search semantics, so "\\.rs$" matches "src/lib.rs".
        """
        if self.exclude is not None and self.exclude.search(path):
            return False
        if self.pattern is None:
            return True
        return bool(self.pattern.search(path))

    def select(self, changeset: list[str]) -> list[str]:
        """Return the matching paths in changeset order."""
        return [path for path in changeset if self.matches(path)]


def match(registry: HookRegistry, changeset: Iterable[str]) -> list[Trigger]:
    """
    Compute the triggered hooks for a changeset.

    Args:
        registry: Registered hooks, iterated in registration order
        changeset: Changed file paths

    Returns:
        Triggers in registration order. Disabled hooks and hooks whose
        pattern matches nothing are left out.
    """
    paths = normalize_changeset(changeset)
    triggers: list[Trigger] = []

    for hook in registry.list_hooks():
        if not hook.enabled:
            logger.debug(f"Skipping disabled hook '{hook.name}'")
            continue

        matcher = HookMatcher(registry.pattern_for(hook.name), registry.exclude_for(hook.name))

        # No pattern: runs on every changeset, empty ones included
        if matcher.unconditional:
            triggers.append(Trigger(hook))
            continue

        matched = matcher.select(paths)
        if not matched:
            logger.debug(f"No files matched hook '{hook.name}'")
            continue

        files = tuple(matched) if hook.pass_filenames else ()
        triggers.append(Trigger(hook, files))

    logger.debug(f"Matched {len(triggers)} of {len(registry)} hooks against {len(paths)} files")
    return triggers
