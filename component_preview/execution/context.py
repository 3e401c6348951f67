"""
Collaborator interfaces consumed from the surrounding editor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ..core.toolchain import Toolchain
from .synthesizer import FileContext


@dataclass(frozen=True, slots=True)
class ProjectModule:
    """A module of the user's project, as identified by the editor."""

    name: str
    roots: tuple[str, ...] = field(default=())
    toolchain: Toolchain | None = None


@dataclass(frozen=True, slots=True)
class PreviewContext:
    """Where a preview expression was written."""

    module: ProjectModule
    file_context: FileContext = field(default_factory=FileContext)


@dataclass(frozen=True, slots=True)
class BuildStatus:
    """Outcome of the host project's own build."""

    aborted: bool = False
    errors: int = 0
    warnings: int = 0


class ModuleRootsProvider(Protocol):
    """Provides the dependency-root descriptors of a project module."""

    def roots(self, module: ProjectModule) -> list[str]:
        """Return the module's roots, output directories and libraries first-to-last."""


class ProjectBuilder(Protocol):
    """Triggers the host's project-wide build."""

    def build(self, module: ProjectModule) -> BuildStatus:
        """Build the module and report how it went."""


class StaticRootsProvider:
    """Returns the roots recorded on the module itself."""

    def roots(self, module: ProjectModule) -> list[str]:
        return list(module.roots)


class NoopProjectBuilder:
    """Python projects usually need no build step before running."""

    def build(self, module: ProjectModule) -> BuildStatus:
        return BuildStatus()
