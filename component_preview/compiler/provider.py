"""
Compiler strategy selection.

Decides, on every request, which way the synthetic unit gets compiled:

  1. a compiler loaded from the toolchain's zipped standard library
  2. the host interpreter's own compiler
  3. no embedded compiler: the caller runs the toolchain interpreter as a process
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

from ..core.exceptions import ConfigurationError
from ..core.logging import get_logger
from ..core.toolchain import Toolchain, find_compiler_support_archive, get_toolchain_python
from .base import CompilerService
from .services import ArchiveCompilerService, HostCompilerService, host_compiler_importable

logger = get_logger(__name__)


@dataclass(slots=True)
class CompilerHealth:
    """Availability information for one compilation strategy."""

    strategy: str
    available: bool
    detail: str


def host_version() -> tuple[int, int]:
    return sys.version_info[0], sys.version_info[1]


class CompilerProvider:
    """Selects a compiler service for the project's toolchain."""

    def __init__(self, strategy: str = "auto"):
        self.strategy = (strategy or "auto").strip().lower()

    def provide(self, toolchain: Toolchain | None) -> CompilerService | None:
        """
        Return an embedded compiler service, or None for the process strategy.

        Raises:
            ConfigurationError: when no toolchain is configured, or when the
                embedded strategy is forced but unavailable.
        """
        if toolchain is None:
            raise ConfigurationError(
                "No Python interpreter configured for this project. "
                "Create a .venv or select an interpreter in the project settings."
            )

        if self.strategy == "process":
            logger.info("Using process-based compilation (forced by configuration)")
            return None

        service = self._archive_service(toolchain) or self._host_service(toolchain)
        if service is not None:
            logger.info(f"Using {service.name} compiler for toolchain {toolchain.home}")
            return service

        if self.strategy == "embedded":
            raise ConfigurationError(
                f"No embedded compiler available for Python {toolchain.version_text} "
                f"(host is {sys.version_info[0]}.{sys.version_info[1]})"
            )
        logger.info("Using process-based compilation")
        return None

    def describe(self, toolchain: Toolchain | None) -> list[CompilerHealth]:
        """Probe every strategy for diagnostics without selecting one."""
        if toolchain is None:
            return [CompilerHealth(strategy="toolchain", available=False, detail="not configured")]

        results: list[CompilerHealth] = []
        archive = find_compiler_support_archive(toolchain.home)
        if archive is None:
            results.append(CompilerHealth("archive", False, "no zipped standard library"))
        elif toolchain.version != host_version():
            results.append(CompilerHealth("archive", False, f"{archive.name} is for another version"))
        else:
            results.append(CompilerHealth("archive", True, str(archive)))

        host_ok, host_detail = self._host_health(toolchain)
        results.append(CompilerHealth("host", host_ok, host_detail))

        python = get_toolchain_python(toolchain.home)
        results.append(
            CompilerHealth(
                "process",
                python is not None,
                str(python) if python is not None else f"no interpreter under {toolchain.home}",
            )
        )
        return results

    def _archive_service(self, toolchain: Toolchain) -> CompilerService | None:
        archive = find_compiler_support_archive(toolchain.home)
        if archive is None:
            return None
        # Artifacts are loaded by the host, so the archive must match it.
        if toolchain.version != host_version():
            logger.debug(f"Skipping {archive}: host is {host_version()}, toolchain {toolchain.version}")
            return None
        return ArchiveCompilerService.load(archive)

    def _host_service(self, toolchain: Toolchain) -> CompilerService | None:
        available, detail = self._host_health(toolchain)
        if not available:
            logger.debug(f"Host compiler unavailable: {detail}")
            return None
        return HostCompilerService()

    @staticmethod
    def _host_health(toolchain: Toolchain) -> tuple[bool, str]:
        if getattr(sys, "frozen", False):
            return False, "host interpreter is frozen"
        if not host_compiler_importable():
            return False, "py_compile is not importable in the host"
        if toolchain.version is None:
            return False, "toolchain version unknown"
        if toolchain.version != host_version():
            return False, f"toolchain is Python {toolchain.version_text}"
        return True, f"Python {toolchain.version_text}"
