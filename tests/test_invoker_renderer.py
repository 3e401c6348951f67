"""Tests for entry-function invocation and the render contract."""

import types

import pytest

from component_preview.core.exceptions import (
    ClassLoadError,
    InvocationError,
    NotRenderableError,
    NullResultError,
    RenderFailedError,
)
from component_preview.execution.invoker import Invoker, describe_exception, unwrap_cause
from component_preview.execution.renderer import Renderable, render


def make_module(**attrs):
    module = types.ModuleType("_preview_unit_1")
    module.__dict__.update(attrs)
    return module


class _Component:
    def __init__(self, text):
        self.text = text

    def render(self):
        return self.text


class _NeedsArgument:
    def render(self, indent):
        return ""


class _OptionalArgument:
    def render(self, indent=0):
        return " " * indent + "ok"


class _AttributeRender:
    render = "not callable"


class _BrokenRender:
    def render(self):
        raise KeyError("missing")


class _ExitingRender:
    def render(self):
        raise SystemExit("render quit")


class _BytesRender:
    def render(self):
        return b"<div></div>"


class TestInvoker:
    def test_returns_entry_value(self):
        module = make_module(_evaluate=lambda: 42)
        assert Invoker().invoke(module) == 42

    def test_missing_entry(self):
        with pytest.raises(ClassLoadError, match="_evaluate"):
            Invoker().invoke(make_module())

    def test_non_callable_entry(self):
        with pytest.raises(ClassLoadError):
            Invoker().invoke(make_module(_evaluate=42))

    def test_failure_reports_originating_cause(self):
        def _evaluate():
            try:
                raise ValueError("bad title")
            except ValueError as exc:
                raise RuntimeError("wrapped") from exc

        with pytest.raises(InvocationError) as exc_info:
            Invoker().invoke(make_module(_evaluate=_evaluate))

        error = exc_info.value
        assert error.message == "Error evaluating expression: ValueError: bad title"
        assert isinstance(error.cause, ValueError)
        assert isinstance(error.__cause__, RuntimeError)

    def test_exit_is_an_evaluation_failure(self):
        def _evaluate():
            raise SystemExit(3)

        with pytest.raises(InvocationError) as exc_info:
            Invoker().invoke(make_module(_evaluate=_evaluate))

        assert exc_info.value.message == "Error evaluating expression: SystemExit: 3"
        assert isinstance(exc_info.value.cause, SystemExit)

    def test_keyboard_interrupt_propagates(self):
        def _evaluate():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            Invoker().invoke(make_module(_evaluate=_evaluate))

    def test_custom_entry_name(self):
        assert Invoker("main").invoke(make_module(main=lambda: "x")) == "x"


def test_unwrap_cause_stops_on_cycles():
    first = ValueError("a")
    second = ValueError("b")
    first.__cause__ = second
    second.__cause__ = first

    assert unwrap_cause(first) in (first, second)


def test_describe_exception_without_message():
    assert describe_exception(KeyboardInterrupt()) == "KeyboardInterrupt"


class TestRender:
    def test_renders_component(self):
        assert render(_Component("<p>hi</p>")) == "<p>hi</p>"

    def test_empty_string_is_valid(self):
        assert render(_Component("")) == ""

    def test_structural_protocol(self):
        assert isinstance(_Component("x"), Renderable)
        assert not isinstance(object(), Renderable)

    def test_none_result(self):
        with pytest.raises(NullResultError, match="Expression returned None"):
            render(None)

    @pytest.mark.parametrize("value", [42, "text", object(), [1, 2]])
    def test_value_without_render(self, value):
        with pytest.raises(NotRenderableError) as exc_info:
            render(value)
        assert exc_info.value.type_name == type(value).__qualname__

    def test_render_requiring_arguments(self):
        with pytest.raises(NotRenderableError, match="requires arguments"):
            render(_NeedsArgument())

    def test_render_with_defaults_is_accepted(self):
        assert render(_OptionalArgument()) == "ok"

    def test_render_attribute_not_callable(self):
        with pytest.raises(NotRenderableError, match="not callable"):
            render(_AttributeRender())

    def test_render_raising(self):
        with pytest.raises(RenderFailedError, match="KeyError"):
            render(_BrokenRender())

    def test_render_returning_non_string(self):
        with pytest.raises(RenderFailedError, match="bytes"):
            render(_BytesRender())

    def test_render_exiting(self):
        with pytest.raises(RenderFailedError, match="SystemExit: render quit"):
            render(_ExitingRender())
