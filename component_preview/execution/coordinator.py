"""
Execution coordinator.

Sequences the compile-and-run pipeline for preview requests coming from the
editor. Environment-bound calls (module roots, the project build) run on a
single coordination thread; compilation, process execution and file I/O run
on a worker pool. Callbacks are always invoked on the coordination thread.
"""

from __future__ import annotations

import keyword
import tempfile
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path

from ..compiler.base import CompilationRequest
from ..compiler.executor import CompilationExecutor
from ..compiler.provider import CompilerProvider
from ..core.config import PreviewConfig
from ..core.exceptions import (
    CompilationError,
    Diagnostic,
    EmptyExpressionError,
    InvalidMethodError,
    PreviewError,
    ProjectBuildError,
)
from ..core.logging import configure_logging, get_logger
from ..core.toolchain import Toolchain
from .boundary import ArtifactLoader
from .classpath import ClasspathResolver
from .context import (
    ModuleRootsProvider,
    NoopProjectBuilder,
    PreviewContext,
    ProjectBuilder,
    StaticRootsProvider,
)
from .invoker import Invoker, describe_exception
from .renderer import render
from .synthesizer import SourceUnit, UnitNameGenerator, clean_expression, synthesize

logger = get_logger(__name__)

COORDINATION_THREAD_PREFIX = "preview-coordination"
WORKER_THREAD_PREFIX = "preview-worker"

THROTTLED_MESSAGE = (
    "Please wait... compilation is still in progress or too soon since last compilation."
)


@dataclass(slots=True)
class PreviewOutcome:
    """What the editor displays for one request."""

    success: bool
    rendered: str | None = None
    kind: str | None = None
    message: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)
    rejected: bool = False
    elapsed: float = 0.0

    def __bool__(self) -> bool:
        """Allow using as boolean."""
        return self.success

    @classmethod
    def succeeded(cls, rendered: str, elapsed: float = 0.0) -> "PreviewOutcome":
        return cls(
            success=True,
            rendered=rendered,
            message="Successfully rendered HTML",
            elapsed=elapsed,
        )

    @classmethod
    def from_error(cls, error: PreviewError, elapsed: float = 0.0) -> "PreviewOutcome":
        diagnostics = list(error.diagnostics) if isinstance(error, CompilationError) else []
        return cls(
            success=False,
            kind=error.kind,
            message=error.message,
            diagnostics=diagnostics,
            elapsed=elapsed,
        )

    @classmethod
    def throttled(cls) -> "PreviewOutcome":
        return cls(success=False, kind="throttled", message=THROTTLED_MESSAGE, rejected=True)


PreviewCallback = Callable[[PreviewOutcome], None]


class ThrottleGate:
    """Rejects requests arriving too soon after the last accepted one."""

    def __init__(self, interval_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_accepted: float | None = None
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            if self._last_accepted is not None and now - self._last_accepted < self.interval_seconds:
                return False
            self._last_accepted = now
            return True


class ExecutionCoordinator:
    """Accepts preview requests and drives them through the pipeline."""

    def __init__(
        self,
        config: PreviewConfig | None = None,
        *,
        roots_provider: ModuleRootsProvider | None = None,
        project_builder: ProjectBuilder | None = None,
        classpath_resolver: ClasspathResolver | None = None,
        compiler_provider: CompilerProvider | None = None,
        artifact_loader: ArtifactLoader | None = None,
        invoker: Invoker | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or PreviewConfig()
        self.roots_provider = roots_provider or StaticRootsProvider()
        self.project_builder = project_builder or NoopProjectBuilder()
        self.classpath_resolver = classpath_resolver or ClasspathResolver()
        self.compiler_provider = compiler_provider or CompilerProvider(self.config.compiler.strategy)
        self.artifact_loader = artifact_loader or ArtifactLoader()
        self.invoker = invoker or Invoker()
        self.throttle = ThrottleGate(self.config.throttle_seconds, clock=clock)
        self.unit_names = UnitNameGenerator(self.config.unit_prefix)

        self._coordination = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=COORDINATION_THREAD_PREFIX
        )
        self._workers = ThreadPoolExecutor(
            max_workers=self.config.worker_threads, thread_name_prefix=WORKER_THREAD_PREFIX
        )

    @classmethod
    def from_project(cls, project_dir: Path | None = None, **kwargs) -> "ExecutionCoordinator":
        """Build a coordinator from the project's ``preview_config.yaml``."""
        config = PreviewConfig.discover(project_dir)
        configure_logging(config.log_level)
        logger.debug(f"Loaded preview configuration for {project_dir or Path.cwd()}")
        return cls(config, **kwargs)

    def __enter__(self) -> "ExecutionCoordinator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    # public API

    def compile_and_run(
        self,
        context: PreviewContext,
        expression: str,
        callback: PreviewCallback | None = None,
    ) -> Future[PreviewOutcome]:
        """
        Compile, run and render ``expression`` in the given context.

        Args:
            context: Project module and originating-file context
            expression: Call expression typed by the user
            callback: Invoked with the outcome on the coordination thread

        Returns:
            Future resolved with the outcome once the callback has run
        """
        if not clean_expression(expression or ""):
            return self._reject(EmptyExpressionError(), callback)

        done: Future[PreviewOutcome] = Future()
        if not self.throttle.try_acquire():
            logger.info("Preview request rejected by throttle")
            self._marshal(PreviewOutcome.throttled(), callback, done)
            return done

        started = time.monotonic()
        self._coordination.submit(self._prepare, context, expression, callback, done, started)
        return done

    def run_method(
        self,
        context: PreviewContext,
        function_name: str,
        callback: PreviewCallback | None = None,
    ) -> Future[PreviewOutcome]:
        """Preview a zero-parameter function defined in the originating module."""
        module_name = context.file_context.module
        if not function_name.isidentifier() or keyword.iskeyword(function_name):
            return self._reject(
                InvalidMethodError(f"'{function_name}' is not a function name"), callback
            )
        if not module_name:
            return self._reject(
                InvalidMethodError("The originating module name is required to run a method"),
                callback,
            )

        file_context = replace(
            context.file_context,
            imports=context.file_context.imports + (f"import {module_name} as _preview_target",),
        )
        return self.compile_and_run(
            replace(context, file_context=file_context),
            f"_preview_target.{function_name}()",
            callback,
        )

    def run_pipeline(
        self,
        toolchain: Toolchain | None,
        unit: SourceUnit,
        descriptors: Sequence[str],
    ) -> str:
        """
        Run the blocking part of a request and return the rendered text.

        Must not run on the coordination thread.

        Raises:
            PreviewError: the first failing stage's error
        """
        classpath = self.classpath_resolver.resolve(descriptors)
        service = self.compiler_provider.provide(toolchain)
        executor = CompilationExecutor(
            toolchain,
            service,
            optimize=self.config.compiler.optimize,
            timeout_seconds=self.config.compiler.process_timeout_seconds,
        )

        with tempfile.TemporaryDirectory(prefix="preview_", dir=self.config.temp_root) as work_dir:
            work = Path(work_dir)
            request = CompilationRequest(
                unit=unit,
                classpath=classpath,
                source_root=work / "src",
                output_dir=work / "out",
            )
            executor.compile(request).raise_for_state()

            artifact = self.artifact_loader.load(unit, classpath.entries, request.output_dir)
            try:
                value = self.invoker.invoke(artifact.module)
                return render(value)
            finally:
                artifact.close()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; running pipelines finish first when ``wait``."""
        self._workers.shutdown(wait=wait)
        self._coordination.shutdown(wait=wait)

    # coordination thread

    def _prepare(
        self,
        context: PreviewContext,
        expression: str,
        callback: PreviewCallback | None,
        done: Future[PreviewOutcome],
        started: float,
    ) -> None:
        try:
            descriptors = list(self.roots_provider.roots(context.module))
            status = self.project_builder.build(context.module)
            if status.aborted:
                raise ProjectBuildError("Compilation was aborted.")
            if status.errors > 0:
                raise ProjectBuildError(
                    f"Compilation failed with {status.errors} error(s). Check the Problems panel.",
                    errors=status.errors,
                )
            unit = synthesize(expression, context.file_context, self.unit_names.next_name())
        except PreviewError as exc:
            self._complete(PreviewOutcome.from_error(exc, time.monotonic() - started), callback, done)
            return
        except BaseException as exc:
            logger.exception("Unexpected error preparing preview")
            self._complete(self._internal_failure(exc, started), callback, done)
            return

        logger.debug(f"Dispatching {unit.qualified_name} for module {context.module.name}")
        self._workers.submit(
            self._execute, context.module.toolchain, unit, descriptors, callback, done, started
        )

    def _complete(
        self,
        outcome: PreviewOutcome,
        callback: PreviewCallback | None,
        done: Future[PreviewOutcome],
    ) -> None:
        if callback is not None:
            try:
                callback(outcome)
            except BaseException as exc:
                logger.exception("Preview callback failed")
                done.set_exception(exc)
                return
        done.set_result(outcome)

    def _reject(
        self, error: PreviewError, callback: PreviewCallback | None
    ) -> Future[PreviewOutcome]:
        done: Future[PreviewOutcome] = Future()
        self._marshal(PreviewOutcome.from_error(error), callback, done)
        return done

    def _marshal(
        self,
        outcome: PreviewOutcome,
        callback: PreviewCallback | None,
        done: Future[PreviewOutcome],
    ) -> None:
        self._coordination.submit(self._complete, outcome, callback, done)

    # worker pool

    def _execute(
        self,
        toolchain: Toolchain | None,
        unit: SourceUnit,
        descriptors: list[str],
        callback: PreviewCallback | None,
        done: Future[PreviewOutcome],
        started: float,
    ) -> None:
        try:
            rendered = self.run_pipeline(toolchain, unit, descriptors)
            outcome = PreviewOutcome.succeeded(rendered, time.monotonic() - started)
            logger.info(f"Rendered {unit.qualified_name} in {outcome.elapsed:.2f}s")
        except PreviewError as exc:
            outcome = PreviewOutcome.from_error(exc, time.monotonic() - started)
            logger.warning(f"Preview of {unit.qualified_name} failed ({exc.kind}): {exc.message}")
        except BaseException as exc:
            # Whatever escaped, the caller still receives an outcome.
            logger.exception(f"Unexpected error running {unit.qualified_name}")
            outcome = self._internal_failure(exc, started)
        self._marshal(outcome, callback, done)

    @staticmethod
    def _internal_failure(exc: BaseException, started: float) -> PreviewOutcome:
        return PreviewOutcome(
            success=False,
            kind="internal",
            message=f"Unexpected error: {describe_exception(exc)}",
            elapsed=time.monotonic() - started,
        )
