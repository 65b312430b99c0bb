"""Background execution of decompile and export jobs.

Every task runs on its own daemon thread and reports back through a queue
owned by its :class:`TaskHandle`. The interactive side drains that queue with
:meth:`TaskHandle.poll`, which never blocks, or iterates :meth:`TaskHandle.wait`
when blocking is acceptable (command line, tests). A task always produces its
progress events first and exactly one :class:`TaskSuccess` or
:class:`TaskFailure` last.
"""

from __future__ import annotations

import queue
import threading
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Union

from .config import DEFAULT_EXTENSION
from .engine import DecompilerEngine
from .export import (
    ArchiveExportWriter,
    DirectoryExportWriter,
    ExportSummary,
    ExportWriter,
)
from .logging import get_logger
from .namespace import DEFAULT_DELIMITER, PackageNode, build_namespace_tree
from .store import ResultStore

logger = get_logger("tasks")

DECOMPILE_ARCHIVE = "decompile_archive"
EXPORT_DIRECTORY = "export_directory"
EXPORT_ARCHIVE = "export_archive"
TASK_KINDS = (DECOMPILE_ARCHIVE, EXPORT_DIRECTORY, EXPORT_ARCHIVE)


@dataclass(frozen=True)
class ProgressEvent:
    completed: int
    total: Optional[int]
    message: str

    @property
    def indeterminate(self) -> bool:
        return self.total is None


@dataclass(frozen=True)
class TaskSuccess:
    result: Any = None


@dataclass(frozen=True)
class TaskFailure:
    reason: str
    detail: Optional[str] = None


TaskOutcome = Union[TaskSuccess, TaskFailure]
TaskMessage = Union[ProgressEvent, TaskSuccess, TaskFailure]


@dataclass(frozen=True)
class DecompileResult:
    archive: Path
    tree: PackageNode
    unit_count: int


class TaskPipelineError(RuntimeError):
    """Raised when a task cannot be started."""


class TaskHandle:
    """Receiving end of one background task."""

    def __init__(self, kind: str, target: Any) -> None:
        self.kind = kind
        self.target = target
        self.outcome: Optional[TaskOutcome] = None
        self._queue: queue.Queue[TaskMessage] = queue.Queue()
        self._finished = threading.Event()

    @property
    def done(self) -> bool:
        """True once the outcome has been received by the consumer."""

        return self.outcome is not None

    @property
    def running(self) -> bool:
        return not self._finished.is_set()

    def emit(self, message: TaskMessage) -> None:
        self._queue.put(message)

    def poll(self) -> List[TaskMessage]:
        """Return every message queued so far without blocking."""

        messages: List[TaskMessage] = []
        while True:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                break
            messages.append(self._record(message))
        return messages

    def wait(self, timeout: Optional[float] = None) -> Iterator[TaskMessage]:
        """Yield messages as they arrive, ending after the outcome."""

        while self.outcome is None:
            try:
                message = self._queue.get(timeout=timeout)
            except queue.Empty as exc:
                raise TimeoutError(f"Task {self.kind} did not report in time.") from exc
            yield self._record(message)
        self._finished.wait(timeout)

    def join(self, timeout: Optional[float] = None) -> TaskOutcome:
        for _message in self.wait(timeout):
            pass
        assert self.outcome is not None
        return self.outcome

    def _record(self, message: TaskMessage) -> TaskMessage:
        if isinstance(message, (TaskSuccess, TaskFailure)):
            self.outcome = message
        return message


class TaskPipeline:
    """Run decompile and export tasks against a shared :class:`ResultStore`."""

    def __init__(
        self,
        store: ResultStore,
        *,
        engine_factory: Optional[Callable[[], DecompilerEngine]] = None,
        delimiter: str = DEFAULT_DELIMITER,
        extension: str = DEFAULT_EXTENSION,
    ) -> None:
        self.store = store
        self.engine_factory = engine_factory
        self.delimiter = delimiter
        self.extension = extension
        self.engine: Optional[DecompilerEngine] = None
        self._active: Optional[TaskHandle] = None
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._active is not None and self._active.running

    def run(self, kind: str, target: Any) -> TaskHandle:
        if kind not in TASK_KINDS:
            raise ValueError(f"Unknown task kind: {kind}")

        handle = TaskHandle(kind, target)
        if kind == DECOMPILE_ARCHIVE:
            worker = lambda: self._decompile(Path(target), handle)  # noqa: E731
        elif kind == EXPORT_DIRECTORY:
            writer = DirectoryExportWriter(
                Path(target), delimiter=self.delimiter, extension=self.extension
            )
            worker = lambda: self._export(writer, handle)  # noqa: E731
        else:
            writer = ArchiveExportWriter(
                Path(target), delimiter=self.delimiter, extension=self.extension
            )
            worker = lambda: self._export(writer, handle)  # noqa: E731

        with self._lock:
            if self._active is not None and self._active.running:
                raise TaskPipelineError(
                    "Please wait for the current operation to finish."
                )
            self._active = handle

        thread = threading.Thread(
            target=self._run_background_task,
            args=(handle, worker),
            name=f"decomp-viewer-{kind}",
            daemon=True,
        )
        thread.start()
        return handle

    def _run_background_task(self, handle: TaskHandle, worker: Callable[[], Any]) -> None:
        try:
            try:
                result = worker()
            except Exception as exc:
                detail = traceback.format_exc()
                logger.error("Task %s failed: %s", handle.kind, exc)
                logger.debug("%s", detail)
                outcome: TaskOutcome = TaskFailure(
                    reason=str(exc) or exc.__class__.__name__, detail=detail
                )
            else:
                outcome = TaskSuccess(result)
            handle.emit(outcome)
        finally:
            handle._finished.set()

    def _decompile(self, archive: Path, handle: TaskHandle) -> DecompileResult:
        if self.engine_factory is None:
            raise TaskPipelineError("No decompiler engine is configured.")

        self.store.clear()
        if self.engine is not None:
            self.engine.close()
            self.engine = None

        total: Optional[int] = None
        completed = 0

        def on_total(count: int) -> None:
            nonlocal total
            total = max(count, completed)

        def on_unit(qualified_name: str, text: str) -> None:
            nonlocal completed, total
            self.store.put(qualified_name, text)
            completed += 1
            if total is not None and completed > total:
                total = completed
            handle.emit(ProgressEvent(completed, total, f"Decompiled {qualified_name}"))

        logger.info("Decompiling %s", archive)
        engine = self.engine_factory()
        try:
            engine.add_source(archive)
            engine.decompile_context(on_unit, on_total)
        except Exception:
            engine.close()
            raise
        self.engine = engine

        tree = build_namespace_tree(
            self.store.all_names(), delimiter=self.delimiter, skip_invalid=True
        )
        return DecompileResult(archive=archive, tree=tree, unit_count=len(self.store))

    def _export(self, writer: ExportWriter, handle: TaskHandle) -> ExportSummary:
        units = self.store.units()
        total = len(units)
        summary = ExportSummary(target=writer.target)
        logger.info("Exporting %d classes to %s", total, writer.target)

        with writer:
            for index, unit in enumerate(units, start=1):
                qualified_name, text = unit.qualified_name, unit.text
                if text is None and self.engine is not None:
                    text = self.engine.get_class_content(qualified_name)
                if text is None:
                    logger.debug("No content for %s; skipping", qualified_name)
                    summary.skipped.append(qualified_name)
                else:
                    writer.write(qualified_name, text)
                    summary.written.append(qualified_name)
                handle.emit(
                    ProgressEvent(index, total, f"Saved {index} of {total} classes")
                )

        return summary


__all__ = [
    "DECOMPILE_ARCHIVE",
    "DecompileResult",
    "EXPORT_ARCHIVE",
    "EXPORT_DIRECTORY",
    "ProgressEvent",
    "TASK_KINDS",
    "TaskFailure",
    "TaskHandle",
    "TaskOutcome",
    "TaskPipeline",
    "TaskPipelineError",
    "TaskSuccess",
]
