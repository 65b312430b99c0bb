from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Optional
from unittest import TestCase

import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from decomp_viewer.engine import DecompilerEngine, DecompilerEngineError  # noqa: E402
from decomp_viewer.highlight import KEYWORD  # noqa: E402
from decomp_viewer.session import (  # noqa: E402
    NOT_FOUND_TEMPLATE,
    RENDER_FAILED_TEMPLATE,
    ViewerSession,
)
from decomp_viewer.tasks import TaskFailure, TaskPipelineError, TaskSuccess  # noqa: E402

TIMEOUT = 10


class StubEngine(DecompilerEngine):
    def __init__(
        self,
        units: Dict[str, Optional[str]],
        *,
        fail_after: Optional[int] = None,
        rendered: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__()
        self.units = units
        self.fail_after = fail_after
        self.rendered = rendered or {}

    def add_source(self, archive: Path) -> None:
        pass

    def decompile_context(self, on_unit, on_total=None) -> None:
        for index, (name, text) in enumerate(self.units.items()):
            if self.fail_after is not None and index == self.fail_after:
                raise DecompilerEngineError("engine crashed")
            on_unit(name, text)

    def get_class_content(self, qualified_name: str) -> Optional[str]:
        return self.rendered.get(qualified_name)


class ViewerSessionTests(TestCase):
    def _open(self, engine: StubEngine) -> ViewerSession:
        session = ViewerSession(engine_factory=lambda: engine)
        outcome = session.open_archive(Path("/tmp/app.jar")).join(timeout=TIMEOUT)
        session.apply_outcome(outcome)
        return session

    def test_successful_decompile_replaces_tree(self) -> None:
        session = self._open(StubEngine({"a/B": "class B {}", "a/b/D": "class D {}"}))

        self.assertTrue(session.has_results)
        self.assertFalse(session.busy)
        self.assertEqual(["a"], [child.segment for child in session.tree.children])
        self.assertEqual("class B {}", session.content_for("a/B"))

    def test_failed_decompile_keeps_partial_tree(self) -> None:
        engine = StubEngine({"a/B": "class B {}", "a/C": "class C {}"}, fail_after=1)
        session = ViewerSession(engine_factory=lambda: engine)

        outcome = session.open_archive(Path("/tmp/app.jar")).join(timeout=TIMEOUT)
        session.apply_outcome(outcome)

        self.assertIsInstance(outcome, TaskFailure)
        package = session.tree.packages["a"]
        self.assertEqual(["B"], list(package.members))

    def test_failed_decompile_with_invalid_names_stays_usable(self) -> None:
        engine = StubEngine(
            {"com/A": "class A {}", "/com/B": "class B {}", "x": ""}, fail_after=2
        )
        session = ViewerSession(engine_factory=lambda: engine)

        outcome = session.open_archive(Path("/tmp/app.jar")).join(timeout=TIMEOUT)
        session.apply_outcome(outcome)

        self.assertIsInstance(outcome, TaskFailure)
        self.assertFalse(session.busy)
        self.assertEqual(["com"], list(session.tree.packages))
        self.assertEqual("class A {}", session.content_for("com/A"))

    def test_rejected_open_leaves_session_unchanged(self) -> None:
        started = threading.Event()
        release = threading.Event()

        class BlockingEngine(StubEngine):
            def decompile_context(self, on_unit, on_total=None) -> None:
                on_unit("a/B", "class B {}")
                started.set()
                release.wait(TIMEOUT)

        session = ViewerSession(engine_factory=lambda: BlockingEngine({}))
        handle = session.open_archive(Path("first.jar"))
        self.assertTrue(started.wait(TIMEOUT))
        tree = session.tree

        try:
            with self.assertRaises(TaskPipelineError):
                session.open_archive(Path("second.jar"))

            self.assertEqual(Path("first.jar"), session.archive)
            self.assertIs(tree, session.tree)
            self.assertEqual("first_decompiled.zip", session.default_export_name())
        finally:
            release.set()
        session.apply_outcome(handle.join(timeout=TIMEOUT))
        self.assertEqual("class B {}", session.content_for("a/B"))

    def test_unknown_name_yields_placeholder(self) -> None:
        session = self._open(StubEngine({"a/B": "class B {}"}))

        self.assertEqual(
            NOT_FOUND_TEMPLATE.format(name="a/Missing"), session.content_for("a/Missing")
        )
        self.assertEqual("// Class not found: x/Y", session.content_for("x/Y"))

    def test_missing_text_is_re_rendered(self) -> None:
        session = self._open(StubEngine({"a/B": None}, rendered={"a/B": "class B {}"}))

        self.assertEqual("class B {}", session.content_for("a/B"))

    def test_unrenderable_text_yields_placeholder(self) -> None:
        session = self._open(StubEngine({"a/B": None}))

        self.assertEqual(
            RENDER_FAILED_TEMPLATE.format(name="a/B"), session.content_for("a/B")
        )

    def test_highlighted_returns_spans(self) -> None:
        session = self._open(StubEngine({"a/B": "public class B {}"}))

        text, spans = session.highlighted("a/B")

        self.assertEqual("public class B {}", text)
        self.assertEqual(
            ["public", "class"], [span.text for span in spans if span.kind == KEYWORD]
        )
        self.assertEqual(text, "".join(span.text for span in spans))

    def test_apply_outcome_ignores_export_results(self) -> None:
        session = self._open(StubEngine({"a/B": "class B {}"}))
        tree = session.tree

        session.apply_outcome(TaskSuccess(result=None))

        self.assertIs(tree, session.tree)

    def test_default_export_name(self) -> None:
        session = ViewerSession(engine_factory=lambda: None)
        self.assertEqual("decompiled.zip", session.default_export_name())

        session.archive = Path("/data/lib/app-1.0.jar")
        self.assertEqual("app-1.0_decompiled.zip", session.default_export_name())
