"""Tests for compiler strategy selection and the in-process services."""

import inspect
import py_compile
import sys
import zipfile

import pytest

from component_preview.compiler.provider import CompilerProvider
from component_preview.compiler.services import (
    ArchiveCompilerService,
    HostCompilerService,
    diagnostics_from_exception,
)
from component_preview.core.exceptions import ConfigurationError
from component_preview.core.toolchain import Toolchain


@pytest.fixture
def archive_toolchain(tmp_path):
    """Embeddable-style home whose zipped stdlib carries py_compile."""
    home = tmp_path / "embeddable"
    home.mkdir()
    archive = home / f"python{sys.version_info[0]}{sys.version_info[1]}.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.write(inspect.getsourcefile(py_compile), "py_compile.py")
    return Toolchain(home=home, version=sys.version_info[:2])


class TestCompilerProvider:
    def test_missing_toolchain_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="No Python interpreter configured"):
            CompilerProvider().provide(None)

    def test_matching_toolchain_gets_host_compiler(self, embedded_toolchain):
        service = CompilerProvider().provide(embedded_toolchain)
        assert isinstance(service, HostCompilerService)

    def test_archive_compiler_is_preferred(self, archive_toolchain):
        service = CompilerProvider().provide(archive_toolchain)

        assert isinstance(service, ArchiveCompilerService)
        assert service.archive.parent == archive_toolchain.home

    def test_archive_module_is_not_registered_globally(self, archive_toolchain):
        before = sys.modules.get("py_compile")
        CompilerProvider().provide(archive_toolchain)
        assert sys.modules.get("py_compile") is before

    def test_unknown_version_falls_back_to_process(self, tmp_path):
        assert CompilerProvider().provide(Toolchain(home=tmp_path)) is None

    def test_other_version_falls_back_to_process(self, tmp_path):
        other = Toolchain(home=tmp_path, version=(2, 7))
        assert CompilerProvider().provide(other) is None

    def test_forced_process_strategy(self, embedded_toolchain):
        assert CompilerProvider("process").provide(embedded_toolchain) is None

    def test_forced_embedded_strategy_without_compiler(self, tmp_path):
        with pytest.raises(ConfigurationError, match="No embedded compiler"):
            CompilerProvider("embedded").provide(Toolchain(home=tmp_path, version=(2, 7)))

    def test_frozen_host_has_no_embedded_compiler(self, embedded_toolchain, monkeypatch):
        monkeypatch.setattr(sys, "frozen", True, raising=False)
        assert CompilerProvider().provide(embedded_toolchain) is None

    def test_describe_reports_every_strategy(self, embedded_toolchain):
        health = {entry.strategy: entry for entry in CompilerProvider().describe(embedded_toolchain)}

        assert set(health) == {"archive", "host", "process"}
        assert health["host"].available
        assert not health["archive"].available
        assert not health["process"].available

    def test_describe_without_toolchain(self):
        (entry,) = CompilerProvider().describe(None)
        assert entry.strategy == "toolchain"
        assert not entry.available


class TestServices:
    def test_host_service_compiles(self, tmp_path):
        source = tmp_path / "ok.py"
        source.write_text("def f():\n    return 1\n", encoding="utf-8")
        target = tmp_path / "ok.pyc"

        diagnostics = HostCompilerService().compile(source, target, "ok.py")

        assert diagnostics == []
        assert target.is_file()

    def test_host_service_reports_syntax_error_line(self, tmp_path):
        source = tmp_path / "bad.py"
        source.write_text("x = 1\ndef f(:\n    pass\n", encoding="utf-8")
        target = tmp_path / "bad.pyc"

        diagnostics = HostCompilerService().compile(source, target, "bad.py")

        assert len(diagnostics) == 1
        assert diagnostics[0].line == 2
        assert diagnostics[0].message
        assert not target.exists()

    def test_archive_service_compiles(self, archive_toolchain, tmp_path):
        service = ArchiveCompilerService.load(
            next(archive_toolchain.home.glob("python*.zip"))
        )
        source = tmp_path / "ok.py"
        source.write_text("VALUE = 1\n", encoding="utf-8")

        assert service.compile(source, tmp_path / "ok.pyc", "ok.py") == []
        assert (tmp_path / "ok.pyc").is_file()

    def test_archive_without_compiler_is_unusable(self, tmp_path):
        archive = tmp_path / "python39.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("other.py", "")
        assert ArchiveCompilerService.load(archive) is None

    def test_corrupt_archive_is_unusable(self, tmp_path):
        archive = tmp_path / "python39.zip"
        archive.write_bytes(b"not a zip")
        assert ArchiveCompilerService.load(archive) is None

    def test_diagnostics_from_plain_exception(self):
        (diagnostic,) = diagnostics_from_exception(ValueError("source code string cannot contain null bytes"))
        assert diagnostic.line == 0
        assert diagnostic.message.startswith("ValueError:")
