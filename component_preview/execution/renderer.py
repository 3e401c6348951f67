"""
Render contract for preview results.

Any value whose type provides a zero-argument ``render()`` returning ``str``
can be previewed; no base class or registration is required.
"""

from __future__ import annotations

import inspect
from typing import Any, Protocol, runtime_checkable

from ..core.exceptions import NotRenderableError, NullResultError, RenderFailedError
from .invoker import describe_exception

RENDER_METHOD = "render"


@runtime_checkable
class Renderable(Protocol):
    """A component that can produce its own text form."""

    def render(self) -> str: ...


def _requires_arguments(method: Any) -> bool:
    try:
        signature = inspect.signature(method)
    except (TypeError, ValueError):
        # Uninspectable builtins are assumed to take no arguments.
        return False
    for parameter in signature.parameters.values():
        if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
            continue
        if parameter.default is parameter.empty:
            return True
    return False


def render(result: Any) -> str:
    """
    Produce the text of a preview result.

    Raises:
        NullResultError: result is None
        NotRenderableError: result has no zero-argument render()
        RenderFailedError: render() raised or returned something other than str
    """
    if result is None:
        raise NullResultError()

    type_name = type(result).__qualname__
    if not isinstance(result, Renderable):
        raise NotRenderableError(type_name)

    method = getattr(result, RENDER_METHOD)
    if not callable(method):
        raise NotRenderableError(type_name, "has a render attribute that is not callable")
    if _requires_arguments(method):
        raise NotRenderableError(type_name, "has a render() method that requires arguments")

    try:
        text = method()
    except KeyboardInterrupt:
        raise
    except BaseException as exc:
        raise RenderFailedError(f"render() raised {describe_exception(exc)}") from exc

    if not isinstance(text, str):
        raise RenderFailedError(f"render() did not return a str (got {type(text).__name__})")
    return text
