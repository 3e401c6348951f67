"""
External-process compilation with the toolchain's own interpreter.
"""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

from ..core.exceptions import Diagnostic, ProcessLaunchError
from ..core.logging import get_logger
from ..core.toolchain import Toolchain, get_toolchain_python, interpreter_candidates

logger = get_logger(__name__)

COMPILE_SCRIPT = (
    "import py_compile, sys\n"
    "try:\n"
    "    py_compile.compile(sys.argv[1], cfile=sys.argv[2], dfile=sys.argv[3],\n"
    "                       doraise=True, optimize=int(sys.argv[4]))\n"
    "except py_compile.PyCompileError as exc:\n"
    "    sys.stdout.write(exc.msg)\n"
    "    sys.exit(1)\n"
)

_LINE_RE = re.compile(r'File "[^"]*", line (\d+)')
_ERROR_RE = re.compile(r"^(\w+(?:Error|Exception|Warning)): (.*)$")


@dataclass(slots=True)
class ProcessResult:
    """Normalized compiler process response."""

    return_code: int
    output: str


def locate_compiler(toolchain: Toolchain) -> Path:
    """
    Find the toolchain interpreter used as command-line compiler.

    Raises:
        ProcessLaunchError: when no interpreter exists at the conventional locations
    """
    python = toolchain.python if toolchain.python and toolchain.python.exists() else None
    python = python or get_toolchain_python(toolchain.home)
    if python is None:
        probed = ", ".join(str(path) for path in interpreter_candidates(toolchain.home))
        raise ProcessLaunchError(f"Python interpreter not found at: {probed}")
    return python


def build_command(
    python: Path,
    source_path: Path,
    target_path: Path,
    display_name: str,
    optimize: int = -1,
) -> list[str]:
    """Argument list matching the embedded compiler's options."""
    return [
        str(python),
        "-B",
        "-s",
        "-c",
        COMPILE_SCRIPT,
        str(source_path),
        str(target_path),
        display_name,
        str(optimize),
    ]


def run_compiler(command: list[str], classpath: str, timeout_seconds: int) -> ProcessResult:
    """
    Run the compiler with stderr merged into stdout and wait for it.

    Raises:
        OSError: the process could not be started
        subprocess.TimeoutExpired: the process did not finish in time
    """
    env = dict(os.environ)
    env["PYTHONPATH"] = classpath
    env["PYTHONUNBUFFERED"] = "1"
    logger.debug(f"Running compiler: {command[0]} ... {command[-4]}")
    result = subprocess.run(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        timeout=timeout_seconds,
        env=env,
        check=False,
    )
    return ProcessResult(return_code=result.returncode, output=result.stdout or "")


def parse_diagnostics(output: str) -> list[Diagnostic]:
    """Best-effort extraction of line/message pairs from compiler output."""
    line_match = _LINE_RE.search(output)
    message = ""
    for text in reversed(output.strip().splitlines()):
        error_match = _ERROR_RE.match(text.strip())
        if error_match:
            message = error_match.group(2)
            break
    if line_match is None and not message:
        return []
    line = int(line_match.group(1)) if line_match else 0
    return [Diagnostic(line=line, message=message or output.strip().splitlines()[-1])]
