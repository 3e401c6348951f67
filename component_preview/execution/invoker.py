"""
Calls the entry function of a loaded preview unit.
"""

from __future__ import annotations

from types import ModuleType
from typing import Any

from ..core.exceptions import ClassLoadError, InvocationError
from ..core.logging import get_logger
from .synthesizer import ENTRY_FUNCTION

logger = get_logger(__name__)

_MAX_CAUSE_DEPTH = 32


def unwrap_cause(exc: BaseException) -> BaseException:
    """Follow explicit ``raise ... from`` chains down to the originating error."""
    current = exc
    for _ in range(_MAX_CAUSE_DEPTH):
        cause = current.__cause__
        if cause is None:
            break
        current = cause
    return current


def describe_exception(exc: BaseException) -> str:
    message = str(exc)
    if message:
        return f"{type(exc).__name__}: {message}"
    return type(exc).__name__


class Invoker:
    """Locates and calls the zero-argument entry function."""

    def __init__(self, entry_name: str = ENTRY_FUNCTION):
        self.entry_name = entry_name

    def invoke(self, module: ModuleType) -> Any:
        """
        Call the entry function of ``module`` and return its value.

        Raises:
            ClassLoadError: the module has no callable entry function
            InvocationError: the expression raised while being evaluated
        """
        # Private by name, called regardless.
        entry = module.__dict__.get(self.entry_name)
        if not callable(entry):
            raise ClassLoadError(
                f"Entry function '{self.entry_name}' not found in '{module.__name__}'"
            )

        try:
            return entry()
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            # SystemExit from exit() or sys.exit() is an evaluation failure too.
            cause = unwrap_cause(exc)
            logger.debug(f"Expression in {module.__name__} raised {type(cause).__name__}")
            raise InvocationError(
                f"Error evaluating expression: {describe_exception(cause)}", cause=cause
            ) from exc
