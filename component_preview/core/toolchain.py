"""
Utilities for detecting and working with the project's Python toolchain.
Supports standard venv and uv-created venvs as well as plain installations.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Python installation configured for the target project."""

    home: Path
    python: Optional[Path] = None
    version: Optional[Tuple[int, int]] = None

    @property
    def version_text(self) -> str:
        if self.version is None:
            return "unknown"
        return f"{self.version[0]}.{self.version[1]}"


def find_project_venv(project_dir: Path) -> Optional[Path]:
    """
    Find virtual environment in project directory.

    Checks for:
    - .venv/ (standard location)
    - venv/ (alternative location)

    Args:
        project_dir: Project directory to search

    Returns:
        Path to venv directory if found, None otherwise
    """
    for venv_name in [".venv", "venv"]:
        venv_path = project_dir / venv_name
        if venv_path.exists() and get_toolchain_python(venv_path) is not None:
            return venv_path
    return None


def interpreter_candidates(home: Path, windows: Optional[bool] = None) -> list[Path]:
    """Conventional interpreter locations relative to a toolchain home."""
    if windows is None:
        windows = os.name == "nt"
    if windows:
        return [home / "Scripts" / "python.exe", home / "python.exe"]
    return [home / "bin" / "python3", home / "bin" / "python"]


def get_toolchain_python(home: Path, windows: Optional[bool] = None) -> Optional[Path]:
    """
    Get the Python executable of a toolchain home.

    Args:
        home: Path to a virtual environment or Python installation
        windows: Probe Windows locations; defaults to the current OS

    Returns:
        Path to Python executable, or None if not found
    """
    for candidate in interpreter_candidates(home, windows=windows):
        if candidate.exists():
            return candidate
    return None


_VERSION_RE = re.compile(r"^\s*(?:version|version_info)\s*=\s*(\d+)\.(\d+)", re.MULTILINE)
_ARCHIVE_RE = re.compile(r"^python(\d)(\d+)\.zip$")


def read_toolchain_version(home: Path) -> Optional[Tuple[int, int]]:
    """
    Read the interpreter version recorded by a toolchain.

    Virtual environments record it in ``pyvenv.cfg``; embeddable
    installations only reveal it through the name of their zipped stdlib.
    """
    pyvenv_cfg = home / "pyvenv.cfg"
    if pyvenv_cfg.exists():
        try:
            match = _VERSION_RE.search(pyvenv_cfg.read_text(encoding="utf-8"))
        except OSError:
            match = None
        if match:
            return int(match.group(1)), int(match.group(2))

    archive = find_compiler_support_archive(home)
    if archive is not None:
        match = _ARCHIVE_RE.match(archive.name)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None


def find_compiler_support_archive(home: Path) -> Optional[Path]:
    """
    Find the zipped standard library shipped by some toolchain layouts.

    Embeddable distributions keep ``pythonXY.zip`` at the installation root;
    older layouts keep it under ``lib/`` or ``DLLs/``.
    """
    for directory in (home, home / "lib", home / "DLLs"):
        if not directory.is_dir():
            continue
        for candidate in sorted(directory.glob("python*.zip")):
            if _ARCHIVE_RE.match(candidate.name):
                return candidate
    return None


def toolchain_from_home(home: Path) -> Toolchain:
    """Describe the toolchain installed at ``home``."""
    home = Path(home)
    return Toolchain(
        home=home,
        python=get_toolchain_python(home),
        version=read_toolchain_version(home),
    )


def find_project_toolchain(project_dir: Optional[Path] = None) -> Optional[Toolchain]:
    """
    Get the toolchain of the project's venv.

    Only a project-local venv counts; when none is found the caller decides
    what to do (the engine reports a configuration error).

    Args:
        project_dir: Project directory (defaults to current working directory)

    Returns:
        Toolchain of the project venv, or None if not found
    """
    if project_dir is None:
        project_dir = Path.cwd()

    venv_path = find_project_venv(project_dir)
    if venv_path is None:
        return None
    return toolchain_from_home(venv_path)
