"""
Compilation strategies for synthetic preview units.
"""

from .base import (
    CompilationRequest,
    CompilationResult,
    CompilationState,
    CompilerService,
)
from .executor import CompilationExecutor
from .provider import CompilerHealth, CompilerProvider
from .services import ArchiveCompilerService, HostCompilerService

__all__ = [
    "ArchiveCompilerService",
    "CompilationExecutor",
    "CompilationRequest",
    "CompilationResult",
    "CompilationState",
    "CompilerHealth",
    "CompilerProvider",
    "CompilerService",
    "HostCompilerService",
]
