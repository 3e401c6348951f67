"""
Pytest configuration and fixtures for Component Preview tests.
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import Verbosity, settings

from component_preview.core.toolchain import Toolchain, toolchain_from_home

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,  # Disable deadline for slow operations
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

# Load profile from environment or use default
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))

HOST_VERSION = f"{sys.version_info[0]}.{sys.version_info[1]}.{sys.version_info[2]}"

HTMLSTUB_SOURCE = '''\
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Tag:
    name: str
    children: list = field(default_factory=list)

    def render(self) -> str:
        inner = "".join(
            child.render() if isinstance(child, Tag) else str(child) for child in self.children
        )
        return f"<{self.name}>{inner}</{self.name}>"


def div(*children):
    return Tag("div", list(children))


def span(*children):
    return Tag("span", list(children))


class Plain:
    """Has no render method."""


class Broken:
    def render(self):
        raise RuntimeError("cannot render")


class Numeric:
    def render(self):
        return 42
'''


@pytest.fixture
def stub_library(tmp_path) -> Path:
    """Import root containing a minimal ``htmlstub`` component library."""
    root = tmp_path / "site-packages"
    package = root / "htmlstub"
    package.mkdir(parents=True)
    (package / "__init__.py").write_text(HTMLSTUB_SOURCE, encoding="utf-8")
    return root


@pytest.fixture
def project_root(tmp_path, stub_library) -> Path:
    """A project source root with an ``app`` package using the stub library."""
    root = tmp_path / "project"
    app = root / "app"
    app.mkdir(parents=True)
    (app / "__init__.py").write_text("", encoding="utf-8")
    (app / "components.py").write_text(
        "from htmlstub import div, span\n"
        "\n"
        "\n"
        "def card(title, body='...'):\n"
        "    return div(span(title), body)\n"
        "\n"
        "\n"
        "def home():\n"
        "    return card('Home')\n"
        "\n"
        "\n"
        "def failing(reason):\n"
        "    raise ValueError(reason)\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def embedded_toolchain(tmp_path) -> Toolchain:
    """Toolchain matching the host interpreter; compiles in-process."""
    home = tmp_path / "embedded-venv"
    home.mkdir()
    (home / "pyvenv.cfg").write_text(
        f"home = {Path(sys.executable).parent}\nversion = {HOST_VERSION}\n", encoding="utf-8"
    )
    return toolchain_from_home(home)


@pytest.fixture
def process_toolchain(tmp_path) -> Toolchain:
    """Toolchain of unknown version with a real interpreter; compiles out of process."""
    if os.name == "nt":
        pytest.skip("interpreter symlinks need extra privileges on Windows")
    home = tmp_path / "process-python"
    (home / "bin").mkdir(parents=True)
    (home / "bin" / "python").symlink_to(os.path.realpath(sys.executable))
    return toolchain_from_home(home)


@pytest.fixture
def htmlstub_source() -> str:
    return HTMLSTUB_SOURCE


# Runs the real compiler, then stamps the 2.7 magic number into the artifact
# ($6 is the target path in the compiler command line).
FOREIGN_PYTHON_SCRIPT = r"""#!/bin/sh
"@REAL@" "$@" || exit $?
exec "@REAL@" -c 'import sys; p = sys.argv[1]; d = open(p, "rb").read(); open(p, "wb").write(b"\x03\xf3\r\n" + d[4:])' "$6"
"""


@pytest.fixture
def foreign_toolchain(tmp_path) -> Toolchain:
    """Toolchain of another Python version whose bytecode the host cannot load."""
    if os.name == "nt":
        pytest.skip("shell-script interpreters are POSIX only")
    home = tmp_path / "foreign-venv"
    (home / "bin").mkdir(parents=True)
    python = home / "bin" / "python"
    python.write_text(
        FOREIGN_PYTHON_SCRIPT.replace("@REAL@", os.path.realpath(sys.executable)), encoding="utf-8"
    )
    python.chmod(0o755)
    (home / "pyvenv.cfg").write_text("home = /opt/python2.7/bin\nversion = 2.7.18\n", encoding="utf-8")
    return toolchain_from_home(home)
