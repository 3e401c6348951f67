"""
In-process compiler services.

Both services drive a ``py_compile`` module; they differ in where that
module comes from.
"""

from __future__ import annotations

import importlib
import importlib.util
import zipimport
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from ..core.exceptions import Diagnostic
from ..core.logging import get_logger

logger = get_logger(__name__)


def diagnostics_from_exception(exc: BaseException) -> list[Diagnostic]:
    """Turn a compile failure into diagnostics."""
    # py_compile wraps the real error; the wrapper class differs per loaded copy.
    inner = getattr(exc, "exc_value", None) or exc
    if isinstance(inner, SyntaxError):
        return [Diagnostic(line=max(inner.lineno or 0, 0), message=inner.msg or str(inner))]
    return [Diagnostic(line=0, message=f"{type(inner).__name__}: {inner}")]


class _PyCompileService:
    """Compiles through the ``compile`` function of a ``py_compile`` module."""

    name = "embedded"

    def __init__(self, compile_fn: Callable[..., Any]):
        self._compile_fn = compile_fn

    def compile(
        self,
        source_path: Path,
        target_path: Path,
        display_name: str,
        optimize: int = -1,
    ) -> list[Diagnostic]:
        try:
            self._compile_fn(
                str(source_path),
                cfile=str(target_path),
                dfile=display_name,
                doraise=True,
                optimize=optimize,
            )
        except Exception as exc:
            logger.debug(f"{self.name} compiler rejected {source_path.name}: {exc}")
            return diagnostics_from_exception(exc)
        return []


class HostCompilerService(_PyCompileService):
    """Compiler provided by the interpreter this engine runs in."""

    name = "host"

    def __init__(self) -> None:
        module = importlib.import_module("py_compile")
        super().__init__(module.compile)


class ArchiveCompilerService(_PyCompileService):
    """Compiler loaded from a toolchain's zipped standard library."""

    name = "archive"

    def __init__(self, archive: Path, compile_fn: Callable[..., Any]):
        super().__init__(compile_fn)
        self.archive = archive

    @classmethod
    def load(cls, archive: Path) -> "ArchiveCompilerService | None":
        """
        Load ``py_compile`` from ``archive`` without registering it globally.

        Returns:
            The service, or None when the archive holds no usable compiler
        """
        try:
            importer = zipimport.zipimporter(str(archive))
            spec = importer.find_spec("py_compile")
        except (zipimport.ZipImportError, OSError) as exc:
            logger.warning(f"Cannot open compiler-support archive {archive}: {exc}")
            return None
        if spec is None or spec.loader is None:
            return None

        module: ModuleType = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            logger.warning(f"Cannot load py_compile from {archive}: {exc}")
            return None

        compile_fn = getattr(module, "compile", None)
        if not callable(compile_fn):
            return None
        return cls(archive, compile_fn)


def host_compiler_importable() -> bool:
    """Whether the host interpreter ships ``py_compile`` (frozen apps may not)."""
    return importlib.util.find_spec("py_compile") is not None
