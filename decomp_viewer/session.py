"""Toolkit independent state for one viewer window."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

from .config import ViewerConfig
from .engine import DecompilerEngine, create_engine
from .highlight import Span, highlight
from .logging import get_logger
from .namespace import PackageNode, build_namespace_tree, find_member
from .store import ResultStore
from .tasks import (
    DECOMPILE_ARCHIVE,
    EXPORT_ARCHIVE,
    EXPORT_DIRECTORY,
    DecompileResult,
    TaskHandle,
    TaskOutcome,
    TaskPipeline,
    TaskSuccess,
)

logger = get_logger("session")

NOT_FOUND_TEMPLATE = "// Class not found: {name}"
RENDER_FAILED_TEMPLATE = "// Error decompiling class: {name}"


class ViewerSession:
    """Owns the store, the task pipeline and the current namespace tree."""

    def __init__(
        self,
        config: Optional[ViewerConfig] = None,
        *,
        engine_factory: Optional[Callable[[], DecompilerEngine]] = None,
    ) -> None:
        self.config = config or ViewerConfig()
        if engine_factory is None:
            engine_factory = lambda: create_engine(self.config)  # noqa: E731
        self.store = ResultStore()
        self.pipeline = TaskPipeline(
            self.store,
            engine_factory=engine_factory,
            delimiter=self.config.delimiter,
            extension=self.config.extension,
        )
        self.archive: Optional[Path] = None
        self.tree = PackageNode(segment="")

    @property
    def busy(self) -> bool:
        return self.pipeline.busy

    @property
    def has_results(self) -> bool:
        return len(self.store) > 0

    def open_archive(self, archive: Path) -> TaskHandle:
        handle = self.pipeline.run(DECOMPILE_ARCHIVE, archive)
        logger.info("Opening %s", archive)
        self.archive = archive
        self.tree = PackageNode(segment="")
        return handle

    def export_to_directory(self, directory: Path) -> TaskHandle:
        return self.pipeline.run(EXPORT_DIRECTORY, directory)

    def export_to_archive(self, destination: Path) -> TaskHandle:
        return self.pipeline.run(EXPORT_ARCHIVE, destination)

    def apply_outcome(self, outcome: TaskOutcome) -> None:
        """Adopt the tree produced by a finished decompile task."""

        if isinstance(outcome, TaskSuccess) and isinstance(outcome.result, DecompileResult):
            self.tree = outcome.result.tree
        elif self.has_results and not self.tree.children:
            # Keep whatever the engine produced before it failed browsable.
            self.tree = build_namespace_tree(
                self.store.all_names(),
                delimiter=self.config.delimiter,
                skip_invalid=True,
            )

    def content_for(self, qualified_name: str) -> str:
        """Return stored text, a re-rendered text, or a placeholder diagnostic."""

        content = self.store.get(qualified_name)
        if content is not None:
            return content

        known = qualified_name in self.store or (
            find_member(self.tree, qualified_name, delimiter=self.config.delimiter)
            is not None
        )
        if not known:
            return NOT_FOUND_TEMPLATE.format(name=qualified_name)

        engine = self.pipeline.engine
        if engine is not None:
            content = engine.get_class_content(qualified_name)
            if content is not None:
                return content
        return RENDER_FAILED_TEMPLATE.format(name=qualified_name)

    def highlighted(self, qualified_name: str) -> tuple[str, List[Span]]:
        text = self.content_for(qualified_name)
        return text, highlight(text)

    def default_export_name(self) -> str:
        if self.archive is None:
            return "decompiled.zip"
        return f"{self.archive.stem}_decompiled.zip"


__all__ = [
    "NOT_FOUND_TEMPLATE",
    "RENDER_FAILED_TEMPLATE",
    "ViewerSession",
]
