"""
Import-root resolution for the target project module.

The editor hands over dependency roots as location descriptors such as
``jar:///home/me/.venv/lib/site-packages/markup.whl!/markup/__init__.py`` or
``/C:/Users/me/project/src``. The compiler process and the import
boundaries need plain, platform-native paths instead.
"""

from __future__ import annotations

import ntpath
import os
import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..core.exceptions import PathResolutionError
from ..core.logging import get_logger

logger = get_logger(__name__)

ARCHIVE_ENTRY_SEPARATOR = "!"

# Two or more scheme characters, so that a drive letter ("C://") is not taken for one.
_PROTOCOL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+://")
_SLASHED_DRIVE_RE = re.compile(r"^/+([A-Za-z]:)")


@dataclass(frozen=True, slots=True)
class ResolvedClasspath:
    """Ordered, de-duplicated import roots and their joined form."""

    entries: tuple[str, ...]
    classpath: str
    missing: tuple[str, ...] = field(default=())

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class ClasspathResolver:
    """Turns dependency-root descriptors into platform-native paths."""

    def __init__(self, windows: bool | None = None):
        if windows is None:
            windows = os.name == "nt"
        self.windows = windows
        self._pathmod = ntpath if windows else posixpath
        self.pathsep = ";" if windows else ":"

    def normalize(self, descriptor: str) -> str:
        """
        Normalize one descriptor into an absolute native path.

        Args:
            descriptor: Location as reported by the editor

        Returns:
            Absolute path without protocol prefix or archive-entry suffix

        Raises:
            PathResolutionError: when nothing path-like is left
        """
        text = str(descriptor).strip()
        text = _PROTOCOL_RE.sub("", text, count=1)

        separator_index = text.find(ARCHIVE_ENTRY_SEPARATOR)
        if separator_index != -1:
            text = text[:separator_index]

        if not text:
            raise PathResolutionError(f"Cannot resolve dependency root '{descriptor}'")

        if self.windows:
            # "/C:/x" is how editors spell a drive path; Windows wants "C:\x".
            text = _SLASHED_DRIVE_RE.sub(r"\1", text)
            text = text.replace("/", "\\")
        return self._pathmod.abspath(text)

    def resolve(self, descriptors: Iterable[str]) -> ResolvedClasspath:
        """Normalize every descriptor, keeping first-seen order."""
        entries: list[str] = []
        seen: set[str] = set()
        for descriptor in descriptors:
            entry = self.normalize(descriptor)
            if entry in seen:
                continue
            seen.add(entry)
            entries.append(entry)

        missing = tuple(entry for entry in entries if not os.path.exists(entry))
        for entry in missing:
            logger.debug(f"Import root does not exist on disk: {entry}")

        return ResolvedClasspath(
            entries=tuple(entries),
            classpath=self.pathsep.join(entries),
            missing=missing,
        )


def resolve_classpath(descriptors: Iterable[str], windows: bool | None = None) -> ResolvedClasspath:
    """Convenience wrapper around ``ClasspathResolver.resolve``."""
    return ClasspathResolver(windows=windows).resolve(descriptors)
