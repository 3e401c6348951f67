"""
Synthetic source units wrapping a preview expression.

The expression is embedded in a generated module that repeats the imports
of the file it was written in, so names resolve exactly as they would in
that file, and exposes a single zero-argument entry function.
"""

from __future__ import annotations

import ast
import itertools
import threading
from dataclasses import dataclass, field

from ..core.exceptions import CompilationError, Diagnostic

ENTRY_FUNCTION = "_evaluate"
DEFAULT_UNIT_PREFIX = "_preview_unit_"


@dataclass(frozen=True, slots=True)
class FileContext:
    """Package and import statements of the originating source file."""

    package: str = ""
    imports: tuple[str, ...] = field(default=())
    module: str = ""


@dataclass(frozen=True, slots=True)
class SourceUnit:
    """Generated module embedding one preview expression."""

    package: str
    imports: tuple[str, ...]
    unit_name: str
    expression: str

    @property
    def qualified_name(self) -> str:
        if self.package:
            return f"{self.package}.{self.unit_name}"
        return self.unit_name

    @property
    def package_parts(self) -> tuple[str, ...]:
        return tuple(self.package.split(".")) if self.package else ()

    @property
    def expression_line(self) -> int:
        """1-based line of the rendered text where the expression starts."""
        return self._header_lines().count("\n") + 3

    def _header_lines(self) -> str:
        lines: list[str] = []
        if self.package:
            lines.append(f"# package {self.package}")
            lines.append("")
        lines.extend(self.imports)
        if not lines:
            return ""
        return "\n".join(lines).rstrip("\n") + "\n\n\n"

    def render(self) -> str:
        """Return the complete module source."""
        # Expression text is emitted verbatim inside the parentheses.
        return (
            self._header_lines()
            + f"def {ENTRY_FUNCTION}():\n"
            + "    return (\n"
            + f"{self.expression}\n"
            + "    )\n"
        )


def clean_expression(expression: str) -> str:
    """Strip surrounding whitespace and trailing statement terminators."""
    text = expression.strip()
    while text.endswith(";"):
        text = text[:-1].rstrip()
    return text


def check_expression(unit: SourceUnit) -> None:
    """
    Ensure the unit's text parses as exactly one expression.

    Raises:
        CompilationError: with the diagnostic line counted in the rendered unit
    """
    # The wrapper's closing parenthesis must never complete the expression.
    try:
        ast.parse(unit.expression, mode="eval")
    except (SyntaxError, ValueError) as exc:
        lineno = getattr(exc, "lineno", None) or 1
        message = getattr(exc, "msg", None) or str(exc)
        line = unit.expression_line + max(lineno - 1, 0)
        raise CompilationError(
            "Compilation failed:", [Diagnostic(line=line, message=message)]
        ) from exc


def synthesize(expression: str, context: FileContext, unit_name: str) -> SourceUnit:
    """
    Build the source unit for ``expression`` evaluated inside ``context``.

    Raises:
        CompilationError: the expression text is not a single expression
    """
    unit = SourceUnit(
        package=context.package,
        imports=tuple(context.imports),
        unit_name=unit_name,
        expression=clean_expression(expression),
    )
    check_expression(unit)
    return unit


def context_from_source(source: str, module_name: str = "", is_package: bool = False) -> FileContext:
    """
    Extract the package and top-level imports of a Python source file.

    Args:
        source: Text of the originating file
        module_name: Dotted module name of that file (e.g. ``app.views.home``)
        is_package: The file is a package ``__init__``; its package is itself

    Returns:
        FileContext with the import statements in file order, verbatim

    Raises:
        SyntaxError: when the file itself does not parse
    """
    if is_package:
        package = module_name
    else:
        package = module_name.rpartition(".")[0]

    tree = ast.parse(source)
    imports: list[str] = []
    for node in tree.body:
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            segment = ast.get_source_segment(source, node)
            if segment:
                imports.append(segment)
    return FileContext(package=package, imports=tuple(imports), module=module_name)


class UnitNameGenerator:
    """Process-wide unique names for synthetic units."""

    def __init__(self, prefix: str = DEFAULT_UNIT_PREFIX, start: int = 1):
        if not prefix.isidentifier():
            raise ValueError(f"Unit prefix '{prefix}' is not an identifier")
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_name(self) -> str:
        with self._lock:
            return f"{self.prefix}{next(self._counter)}"
