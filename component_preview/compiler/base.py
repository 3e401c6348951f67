"""
Base types for compiling synthetic units.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from ..core.exceptions import (
    CompilationError,
    Diagnostic,
    ProcessExecutionError,
    ProcessLaunchError,
)
from ..execution.classpath import ResolvedClasspath
from ..execution.synthesizer import SourceUnit


class CompilationState(str, Enum):
    """Lifecycle of one compilation."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"


class CompilerService(Protocol):
    """In-process compiler contract."""

    name: str

    def compile(
        self,
        source_path: Path,
        target_path: Path,
        display_name: str,
        optimize: int = -1,
    ) -> list[Diagnostic]:
        """Compile ``source_path`` into ``target_path``; return diagnostics on failure."""


@dataclass(slots=True)
class CompilationRequest:
    """One synthetic unit together with where it is compiled from and to."""

    unit: SourceUnit
    classpath: ResolvedClasspath
    source_root: Path
    output_dir: Path

    @property
    def source_text(self) -> str:
        return self.unit.render()

    @property
    def source_path(self) -> Path:
        return self.source_root.joinpath(*self.unit.package_parts, f"{self.unit.unit_name}.py")

    @property
    def artifact_path(self) -> Path:
        return self.output_dir.joinpath(*self.unit.package_parts, f"{self.unit.unit_name}.pyc")

    def write_source(self) -> Path:
        """Write the unit's text to ``source_path``, creating package directories."""
        path = self.source_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.source_text, encoding="utf-8")
        self.artifact_path.parent.mkdir(parents=True, exist_ok=True)
        return path


@dataclass(slots=True)
class CompilationResult:
    """Normalized compilation outcome."""

    state: CompilationState
    request: CompilationRequest
    strategy: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    output: str = ""
    exit_code: int | None = None
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state == CompilationState.SUCCEEDED

    @property
    def artifact_path(self) -> Path:
        return self.request.artifact_path

    def raise_for_state(self) -> Path:
        """
        Return the artifact path, or raise the error matching the state.

        Raises:
            CompilationError: the embedded compiler rejected the unit
            ProcessExecutionError: the compiler process exited non-zero
            ProcessLaunchError: the compiler could not be run to completion
        """
        if self.state == CompilationState.SUCCEEDED:
            return self.artifact_path
        if self.state == CompilationState.ABORTED:
            raise ProcessLaunchError(self.error or "Compilation was aborted.")
        if self.state == CompilationState.FAILED:
            if self.exit_code is not None:
                raise ProcessExecutionError(self.exit_code, self.output, self.diagnostics)
            raise CompilationError("Compilation failed:", self.diagnostics)
        raise RuntimeError(f"Compilation has not finished (state={self.state.value})")
