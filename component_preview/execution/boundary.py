"""
Isolated import scopes for compiled preview units.

A boundary owns a module table and resolves imports for the code it
executes through a private ``__import__``; the interpreter-wide import
machinery only sees standard-library imports. Boundaries form a chain and
delegate parent-first:

    ArtifactBoundary   the compiled unit only (short-lived, one per request)
      DependencyBoundary   the project's own code and its libraries
        HostBoundary   standard library and built-in modules of the host
"""

from __future__ import annotations

import builtins
import importlib
import importlib.util
import sys
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from importlib.machinery import ModuleSpec, PathFinder, SourcelessFileLoader
from pathlib import Path
from types import ModuleType
from typing import Any

from ..core.exceptions import ClassLoadError
from ..core.logging import get_logger
from .synthesizer import SourceUnit

logger = get_logger(__name__)


@contextmanager
def _temporarily_registered(name: str, module: ModuleType) -> Iterator[None]:
    """Expose ``module`` in ``sys.modules`` while its body runs.

    Class decorators such as ``dataclasses.dataclass`` look the defining
    module up there. An existing host entry is never replaced.
    """
    if name in sys.modules:
        yield
        return
    sys.modules[name] = module
    try:
        yield
    finally:
        if sys.modules.get(name) is module:
            del sys.modules[name]


class ExecutionBoundary:
    """Base import scope with parent-first delegation."""

    def __init__(self, name: str, parent: ExecutionBoundary | None = None):
        self.name = name
        self.parent = parent
        self.modules: dict[str, ModuleType] = {}
        self._lock = threading.RLock()
        self._closed = False
        self.builtins: dict[str, Any] = dict(vars(builtins))
        self.builtins["__import__"] = self.import_hook

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} modules={len(self.modules)}>"

    # lookup

    def find_spec(self, fullname: str, parent_module: ModuleType | None) -> ModuleSpec | None:
        """Locate ``fullname`` among this boundary's own roots."""
        return None

    def resolve(self, fullname: str) -> ModuleType | None:
        """Return the module visible from this boundary, loading it if needed."""
        with self._lock:
            if self._closed:
                raise ImportError(f"Boundary '{self.name}' is closed")
            module = self.modules.get(fullname)
            if module is not None:
                return module
            if self.parent is not None:
                module = self.parent.resolve(fullname)
                if module is not None:
                    return module
            return self._load_own(fullname)

    def import_module(self, fullname: str) -> ModuleType:
        module = self.resolve(fullname)
        if module is None:
            raise ModuleNotFoundError(f"No module named {fullname!r}", name=fullname)
        return module

    def _load_own(self, fullname: str) -> ModuleType | None:
        parent_name, _, child_name = fullname.rpartition(".")
        parent_module = None
        if parent_name:
            parent_module = self.resolve(parent_name)
            if parent_module is None:
                return None
            # Importing the parent may already have imported the child.
            if fullname in self.modules:
                return self.modules[fullname]
            if not hasattr(parent_module, "__path__"):
                raise ModuleNotFoundError(
                    f"No module named {fullname!r}; {parent_name!r} is not a package",
                    name=fullname,
                )

        spec = self.find_spec(fullname, parent_module)
        if spec is None:
            return None

        module = self._execute(spec)
        if parent_module is not None:
            setattr(parent_module, child_name, module)
        return module

    def _execute(self, spec: ModuleSpec) -> ModuleType:
        module = importlib.util.module_from_spec(spec)
        module.__builtins__ = self.builtins
        if spec.submodule_search_locations is not None:
            # A plain list, so namespace paths are never recomputed from sys.path.
            module.__path__ = list(spec.submodule_search_locations)

        self.modules[spec.name] = module
        try:
            with _temporarily_registered(spec.name, module):
                if spec.loader is not None:
                    spec.loader.exec_module(module)
        except BaseException:
            self.modules.pop(spec.name, None)
            raise
        logger.debug(f"[{self.name}] loaded {spec.name}")
        return module

    # __import__ replacement

    def import_hook(
        self,
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> ModuleType:
        """Drop-in replacement for ``builtins.__import__`` scoped to this boundary."""
        if level > 0:
            package = _calc_package(globals or {})
            fullname = importlib.util.resolve_name("." * level + name, package)
        else:
            fullname = name

        module = self.import_module(fullname)

        if fromlist:
            if hasattr(module, "__path__"):
                self._handle_fromlist(module, fromlist)
            return module
        if level == 0:
            return self.import_module(name.partition(".")[0])
        if not name:
            return module
        cut_off = len(name) - len(name.partition(".")[0])
        return self.import_module(module.__name__[: len(module.__name__) - cut_off])

    def _handle_fromlist(self, module: ModuleType, fromlist: Sequence[str]) -> None:
        for item in fromlist:
            if not isinstance(item, str):
                raise TypeError(f"Item in {module.__name__}.__all__ must be str, not {type(item).__name__}")
            if item == "*":
                names = getattr(module, "__all__", None)
                if names:
                    self._handle_fromlist(module, [n for n in names if n != "*"])
                continue
            if hasattr(module, item):
                continue
            submodule = f"{module.__name__}.{item}"
            try:
                self.import_module(submodule)
            except ModuleNotFoundError as exc:
                # A missing name surfaces as "cannot import name" at the import site.
                if exc.name != submodule:
                    raise

    def close(self) -> None:
        """Drop every module this boundary loaded."""
        with self._lock:
            self.modules.clear()
            self._closed = True


def _calc_package(globals: dict[str, Any]) -> str:
    package = globals.get("__package__")
    if package is not None:
        return package
    spec = globals.get("__spec__")
    if spec is not None:
        return spec.parent
    name = globals.get("__name__", "")
    if "__path__" not in globals:
        name = name.rpartition(".")[0]
    return name


class HostBoundary(ExecutionBoundary):
    """Serves the host interpreter's standard library and nothing else."""

    def __init__(self, shared: Sequence[str] = ()):
        super().__init__("host")
        self.shared = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)
        self.shared |= frozenset(shared)

    def resolve(self, fullname: str) -> ModuleType | None:
        if fullname.partition(".")[0] not in self.shared:
            return None
        try:
            return importlib.import_module(fullname)
        except ModuleNotFoundError as exc:
            if exc.name == fullname:
                return None
            raise

    def close(self) -> None:
        pass


class DependencyBoundary(ExecutionBoundary):
    """Resolves the project's modules and libraries from its import roots."""

    def __init__(self, entries: Sequence[str], parent: ExecutionBoundary | None = None):
        super().__init__("dependencies", parent)
        self.entries = list(entries)
        self.searched: set[str] = set()

    def find_spec(self, fullname: str, parent_module: ModuleType | None) -> ModuleSpec | None:
        if parent_module is not None:
            search_path = list(getattr(parent_module, "__path__", []) or [])
        else:
            search_path = self.entries
        self.searched.update(search_path)
        return PathFinder.find_spec(fullname, search_path)

    def close(self) -> None:
        super().close()
        # PathFinder caches a finder per searched directory, subpackages included.
        for entry in self.searched | set(self.entries):
            sys.path_importer_cache.pop(entry, None)
        self.searched.clear()


class ArtifactBoundary(ExecutionBoundary):
    """Serves the compiled unit from its output directory."""

    def __init__(self, output_dir: Path, parent: ExecutionBoundary | None = None):
        super().__init__("artifact", parent)
        self.output_dir = Path(output_dir)

    def find_spec(self, fullname: str, parent_module: ModuleType | None) -> ModuleSpec | None:
        base = self.output_dir.joinpath(*fullname.split("."))
        compiled = base.parent / f"{base.name}.pyc"
        if compiled.is_file():
            loader = SourcelessFileLoader(fullname, str(compiled))
            return importlib.util.spec_from_file_location(fullname, str(compiled), loader=loader)
        if base.is_dir():
            # Package of the originating file that no import root provides.
            spec = ModuleSpec(fullname, None, is_package=True)
            spec.submodule_search_locations = [str(base)]
            return spec
        return None


@dataclass(slots=True)
class LoadedArtifact:
    """A compiled unit loaded inside its boundaries."""

    unit: SourceUnit
    module: ModuleType
    boundary: ArtifactBoundary
    dependencies: DependencyBoundary
    closed: bool = field(default=False)

    def close(self) -> None:
        if self.closed:
            return
        self.boundary.close()
        self.dependencies.close()
        self.closed = True


class ArtifactLoader:
    """Builds the boundary chain for one compiled unit and loads it."""

    def __init__(self, host: HostBoundary | None = None):
        self.host = host or HostBoundary()

    def load(self, unit: SourceUnit, entries: Sequence[str], output_dir: Path) -> LoadedArtifact:
        """
        Load ``unit`` from ``output_dir`` with ``entries`` visible to it.

        Raises:
            ClassLoadError: the compiled unit is missing, unreadable, or its
                module body failed while loading
        """
        output_dir = Path(output_dir)
        expected = output_dir.joinpath(*unit.package_parts, f"{unit.unit_name}.pyc")
        if not expected.is_file():
            raise ClassLoadError(
                f"Compiled unit '{unit.qualified_name}' not found at {expected}"
            )

        # Rebuilt per request: edits to project code are always picked up.
        dependencies = DependencyBoundary(entries, parent=self.host)
        boundary = ArtifactBoundary(output_dir, parent=dependencies)
        try:
            module = boundary.import_module(unit.qualified_name)
        except BaseException as exc:
            boundary.close()
            dependencies.close()
            if isinstance(exc, KeyboardInterrupt):
                raise
            raise ClassLoadError(
                f"Failed to load '{unit.qualified_name}': {type(exc).__name__}: {exc}"
            ) from exc

        if getattr(module, "__file__", None) != str(expected):
            boundary.close()
            dependencies.close()
            raise ClassLoadError(
                f"'{unit.qualified_name}' resolved to {getattr(module, '__file__', None)}, "
                f"expected {expected}"
            )
        return LoadedArtifact(unit=unit, module=module, boundary=boundary, dependencies=dependencies)
