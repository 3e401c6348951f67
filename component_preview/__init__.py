"""
Component Preview - compile and run ad hoc preview expressions.

Renders the output of component-producing functions from a user's project
by compiling a call expression against the project's own import roots and
toolchain.
"""

__version__ = "0.1.0"

from .core.config import CompilerConfig, PreviewConfig
from .core.exceptions import (
    ClassLoadError,
    CompilationError,
    ConfigurationError,
    Diagnostic,
    EmptyExpressionError,
    InvalidMethodError,
    InvocationError,
    NotRenderableError,
    NullResultError,
    PathResolutionError,
    PreviewError,
    ProcessExecutionError,
    ProcessLaunchError,
    ProjectBuildError,
    RenderFailedError,
)
from .core.toolchain import Toolchain, find_project_toolchain, toolchain_from_home
from .execution.context import BuildStatus, PreviewContext, ProjectModule
from .execution.coordinator import ExecutionCoordinator, PreviewOutcome
from .execution.synthesizer import FileContext, context_from_source

__all__ = [
    "BuildStatus",
    "ClassLoadError",
    "CompilationError",
    "CompilerConfig",
    "ConfigurationError",
    "Diagnostic",
    "EmptyExpressionError",
    "ExecutionCoordinator",
    "FileContext",
    "InvalidMethodError",
    "InvocationError",
    "NotRenderableError",
    "NullResultError",
    "PathResolutionError",
    "PreviewConfig",
    "PreviewContext",
    "PreviewError",
    "PreviewOutcome",
    "ProcessExecutionError",
    "ProcessLaunchError",
    "ProjectBuildError",
    "ProjectModule",
    "RenderFailedError",
    "Toolchain",
    "context_from_source",
    "find_project_toolchain",
    "toolchain_from_home",
    "__version__",
]
