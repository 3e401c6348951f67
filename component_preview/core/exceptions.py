"""
Custom exceptions for Component Preview.

Every stage of the compile-and-run pipeline raises one of these; the
execution coordinator is the only place that turns them into outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A compiler-reported problem inside the synthetic unit."""

    line: int
    message: str

    def __str__(self) -> str:
        return f"Line {self.line}: {self.message}"


class PreviewError(Exception):
    """Base exception for Component Preview errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.user_message = message
        self.recovery_hint = ""


class ConfigurationError(PreviewError):
    """Error in configuration (missing toolchain, unreadable config file)."""

    kind = "configuration"

    def __init__(self, message: str):
        super().__init__(message)
        self.recovery_hint = "Configure a Python interpreter for the project."


class PathResolutionError(PreviewError):
    """A dependency-root descriptor could not be turned into a path."""

    kind = "path_resolution"


class EmptyExpressionError(PreviewError):
    """The preview expression is blank."""

    kind = "empty_expression"

    def __init__(self):
        super().__init__("Expression is empty")
        self.recovery_hint = "Type a call expression such as page(title='Home')."


class InvalidMethodError(PreviewError):
    """A method preview names no callable function of a known module."""

    kind = "invalid_method"

    def __init__(self, message: str):
        super().__init__(message)
        self.recovery_hint = "Select a zero-parameter function defined at module level."


class ProjectBuildError(PreviewError):
    """The host project build was aborted or reported errors."""

    kind = "project_build"

    def __init__(self, message: str, errors: int = 0):
        super().__init__(message)
        self.errors = errors
        self.recovery_hint = "Fix the reported problems and try again."


# Compilation Errors


class CompilationError(PreviewError):
    """The synthetic unit did not compile."""

    kind = "compilation"

    def __init__(self, message: str, diagnostics: list[Diagnostic] | None = None):
        self.diagnostics = list(diagnostics or [])
        if self.diagnostics:
            details = "\n".join(str(diagnostic) for diagnostic in self.diagnostics)
            message = f"{message}\n{details}"
        super().__init__(message)
        self.user_message = "The expression has compilation errors."


class ProcessExecutionError(CompilationError):
    """The external compiler process exited with a non-zero status."""

    kind = "process_execution"

    def __init__(
        self,
        exit_code: int,
        output: str,
        diagnostics: list[Diagnostic] | None = None,
    ):
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"Compilation failed (exit code {exit_code}):\n{output.rstrip()}")
        # Parsed diagnostics are best effort; the raw output is the message.
        self.diagnostics = list(diagnostics or [])


class ProcessLaunchError(PreviewError):
    """The external compiler could not be found, started or waited for."""

    kind = "process_launch"

    def __init__(self, message: str):
        super().__init__(message)
        self.recovery_hint = "Check that the project interpreter exists and is executable."


# Execution Errors


class ClassLoadError(PreviewError):
    """The compiled unit could not be loaded from its output location."""

    kind = "class_load"


class InvocationError(PreviewError):
    """The entry function raised while the expression was evaluated."""

    kind = "invocation"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class NullResultError(PreviewError):
    """The expression evaluated to None."""

    kind = "null_result"

    def __init__(self):
        super().__init__("Expression returned None")


class NotRenderableError(PreviewError):
    """The result does not expose a zero-argument render() method."""

    kind = "not_renderable"

    def __init__(self, type_name: str, detail: str = "has no render() method"):
        super().__init__(f"Result of type '{type_name}' {detail}")
        self.type_name = type_name
        self.recovery_hint = "Return a component object that implements render()."


class RenderFailedError(PreviewError):
    """render() raised or did not return a string."""

    kind = "render_failed"
