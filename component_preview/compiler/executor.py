"""
Compilation executor.

Drives whichever strategy the provider selected and normalizes the outcome
into a ``CompilationResult``.
"""

from __future__ import annotations

import subprocess
from importlib.util import MAGIC_NUMBER

from ..core.exceptions import Diagnostic, ProcessLaunchError
from ..core.logging import get_logger
from ..core.toolchain import Toolchain
from .base import CompilationRequest, CompilationResult, CompilationState, CompilerService
from .process import build_command, locate_compiler, parse_diagnostics, run_compiler
from .services import HostCompilerService

logger = get_logger(__name__)

_TRANSITIONS = {
    CompilationState.NOT_STARTED: {CompilationState.RUNNING, CompilationState.ABORTED},
    CompilationState.RUNNING: {
        CompilationState.SUCCEEDED,
        CompilationState.FAILED,
        CompilationState.ABORTED,
    },
}


class CompilationExecutor:
    """Compiles one request; instances are single-use."""

    def __init__(
        self,
        toolchain: Toolchain,
        service: CompilerService | None,
        *,
        optimize: int = -1,
        timeout_seconds: int = 60,
    ):
        self.toolchain = toolchain
        self.service = service
        self.optimize = optimize
        self.timeout_seconds = timeout_seconds
        self._state = CompilationState.NOT_STARTED

    @property
    def state(self) -> CompilationState:
        return self._state

    @property
    def strategy(self) -> str:
        return self.service.name if self.service is not None else "process"

    def _transition(self, new_state: CompilationState) -> None:
        allowed = _TRANSITIONS.get(self._state, set())
        if new_state not in allowed:
            raise RuntimeError(
                f"Invalid compilation state transition {self._state.value} -> {new_state.value}"
            )
        self._state = new_state

    def compile(self, request: CompilationRequest) -> CompilationResult:
        """
        Compile the request's unit into its artifact path.

        Args:
            request: Unit, classpath and directories for this compilation

        Returns:
            CompilationResult in state SUCCEEDED, FAILED or ABORTED
        """
        if self.service is None:
            try:
                python = locate_compiler(self.toolchain)
            except ProcessLaunchError as exc:
                self._transition(CompilationState.ABORTED)
                return self._result(request, error=str(exc))

        self._transition(CompilationState.RUNNING)
        source_path = request.write_source()
        display_name = str(source_path)

        if self.service is not None:
            diagnostics = self.service.compile(
                source_path, request.artifact_path, display_name, self.optimize
            )
            if diagnostics or not request.artifact_path.exists():
                self._transition(CompilationState.FAILED)
                return self._result(request, diagnostics=diagnostics)
            self._transition(CompilationState.SUCCEEDED)
            return self._result(request)

        command = build_command(
            python, source_path, request.artifact_path, display_name, self.optimize
        )
        try:
            process = run_compiler(command, request.classpath.classpath, self.timeout_seconds)
        except subprocess.TimeoutExpired:
            self._transition(CompilationState.ABORTED)
            return self._result(
                request, error=f"Compilation interrupted after {self.timeout_seconds}s timeout"
            )
        except OSError as exc:
            self._transition(CompilationState.ABORTED)
            return self._result(request, error=f"Failed to start compiler process: {exc}")

        if process.return_code != 0:
            self._transition(CompilationState.FAILED)
            return self._result(
                request,
                diagnostics=parse_diagnostics(process.output),
                output=process.output,
                exit_code=process.return_code,
            )

        if not request.artifact_path.exists():
            self._transition(CompilationState.FAILED)
            return self._result(request, output=process.output, exit_code=process.return_code)

        diagnostics = self._rebuild_for_host(request, display_name)
        if diagnostics:
            self._transition(CompilationState.FAILED)
            return self._result(request, diagnostics=diagnostics, output=process.output)

        self._transition(CompilationState.SUCCEEDED)
        return self._result(request, output=process.output, exit_code=process.return_code)

    def _rebuild_for_host(
        self, request: CompilationRequest, display_name: str
    ) -> list[Diagnostic]:
        """
        Recompile with the host when the toolchain wrote another bytecode version.

        The toolchain run decides whether the unit compiles; the host loads
        the artifact, so it must carry the host's magic number.
        """
        with open(request.artifact_path, "rb") as f:
            magic = f.read(len(MAGIC_NUMBER))
        if magic == MAGIC_NUMBER:
            return []

        logger.info(
            f"Toolchain bytecode {magic!r} differs from host {MAGIC_NUMBER!r}; "
            f"recompiling {request.unit.qualified_name} for the host"
        )
        request.artifact_path.unlink()
        return HostCompilerService().compile(
            request.source_path, request.artifact_path, display_name, self.optimize
        )

    def _result(self, request: CompilationRequest, **kwargs) -> CompilationResult:
        result = CompilationResult(
            state=self._state, request=request, strategy=self.strategy, **kwargs
        )
        logger.debug(
            f"Compilation of {request.unit.qualified_name} via {self.strategy}: {self._state.value}"
        )
        return result
