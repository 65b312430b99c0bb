"""Adapters for the external decompiler engine."""
from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .archive import ArchiveError, read_bytes, validate_archive
from .config import DEFAULT_ENGINE_OPTIONS, ViewerConfig
from .logging import get_logger

logger = get_logger("engine")

DEFAULT_ENGINE_JAR_NAMES = [
    "fernflower.jar",
    "vineflower.jar",
    "java-decompiler.jar",
]
SOURCE_EXTENSION = ".java"

UnitCallback = Callable[[str, str], None]
TotalCallback = Callable[[int], None]


class DecompilerEngineError(RuntimeError):
    """Raised when the decompiler engine cannot complete a request."""

    def __init__(
        self,
        message: str,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class DecompilerEngine:
    """Interface the viewer expects from a decompiler.

    ``decompile_context`` runs to completion and reports every recovered unit
    through ``on_unit(qualified_name, source_text)`` as soon as it is known.
    ``options`` is passed through to the engine without interpretation.
    """

    def __init__(self, options: Optional[Mapping[str, str]] = None) -> None:
        self.options: Dict[str, str] = dict(
            DEFAULT_ENGINE_OPTIONS if options is None else options
        )

    def add_source(self, archive: Path) -> None:
        raise NotImplementedError

    def decompile_context(
        self, on_unit: UnitCallback, on_total: Optional[TotalCallback] = None
    ) -> None:
        raise NotImplementedError

    def get_class_content(self, qualified_name: str) -> Optional[str]:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "DecompilerEngine":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()


def resolve_engine_jar(engine_jar: Path | None = None) -> Path:
    if engine_jar is not None:
        resolved = engine_jar.expanduser().resolve()
        if resolved.is_file():
            return resolved
        raise DecompilerEngineError(f"Decompiler engine jar not found: {resolved}")

    for candidate in DEFAULT_ENGINE_JAR_NAMES:
        candidate_path = Path(candidate)
        if candidate_path.is_file():
            return candidate_path.resolve()

    raise DecompilerEngineError(
        "Decompiler engine jar not found. "
        "Place fernflower.jar in the working directory or set DECOMP_VIEWER_ENGINE_JAR."
    )


def resolve_java(java: Path | None = None) -> Path:
    if java is not None:
        resolved = java.expanduser().resolve()
        if resolved.is_file():
            return resolved
        raise DecompilerEngineError(f"Java executable not found: {resolved}")

    found = shutil.which("java")
    if found:
        return Path(found).resolve()
    raise DecompilerEngineError(
        "Java executable not found. Install a JRE or set JAVA_HOME."
    )


class FernflowerEngine(DecompilerEngine):
    """Run a command-line decompiler jar and stream the sources it produces."""

    def __init__(
        self,
        *,
        engine_jar: Path | None = None,
        java: Path | None = None,
        options: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(options)
        self.engine_jar = engine_jar
        self.java = java
        self.sources: List[Path] = []
        self._output_dir: tempfile.TemporaryDirectory[str] | None = None
        self._locations: Dict[str, Tuple[Path, Optional[str]]] = {}

    def add_source(self, archive: Path) -> None:
        try:
            self.sources.append(validate_archive(archive))
        except ArchiveError as exc:
            raise DecompilerEngineError(str(exc)) from exc

    def build_command(self, output_dir: Path) -> List[str]:
        java_path = resolve_java(self.java)
        jar_path = resolve_engine_jar(self.engine_jar)
        command = [str(java_path), "-jar", str(jar_path)]
        command.extend(f"-{key}={value}" for key, value in self.options.items())
        command.extend(str(source) for source in self.sources)
        command.append(str(output_dir))
        return command

    def decompile_context(
        self, on_unit: UnitCallback, on_total: Optional[TotalCallback] = None
    ) -> None:
        if not self.sources:
            raise DecompilerEngineError("No archive was added to the decompiler.")

        self.close()
        self._output_dir = tempfile.TemporaryDirectory(prefix="decomp_viewer_")
        output_dir = Path(self._output_dir.name)
        command = self.build_command(output_dir)
        logger.info("Running decompiler: %s", " ".join(command))

        completed = _run_engine(command)
        _log_engine_messages(completed.stdout)
        _raise_on_error(completed, self.sources)

        locations = self._collect_outputs(output_dir)
        if not locations:
            raise DecompilerEngineError(
                "Decompiler produced no source files.",
                stdout=completed.stdout,
                stderr=completed.stderr,
            )
        self._locations = locations
        if on_total is not None:
            on_total(len(locations))

        for qualified_name in locations:
            text = self.get_class_content(qualified_name)
            if text is not None:
                on_unit(qualified_name, text)

    def get_class_content(self, qualified_name: str) -> Optional[str]:
        location = self._locations.get(qualified_name)
        if location is None:
            return None
        container, member = location
        try:
            payload = read_bytes(container, member)
        except ArchiveError as exc:
            logger.warning("Unable to re-read %s: %s", qualified_name, exc)
            return None
        return payload.decode("utf-8", errors="replace")

    def close(self) -> None:
        if self._output_dir is not None:
            self._output_dir.cleanup()
            self._output_dir = None
        self._locations = {}

    def _collect_outputs(self, output_dir: Path) -> Dict[str, Tuple[Path, Optional[str]]]:
        locations: Dict[str, Tuple[Path, Optional[str]]] = {}
        for source in self.sources:
            produced = output_dir / source.name
            if produced.is_file() and zipfile.is_zipfile(produced):
                with zipfile.ZipFile(produced) as handle:
                    names = [
                        info.filename
                        for info in handle.infolist()
                        if not info.is_dir() and info.filename.endswith(SOURCE_EXTENSION)
                    ]
                for entry in names:
                    locations[entry[: -len(SOURCE_EXTENSION)]] = (produced, entry)
            else:
                root = produced if produced.is_dir() else output_dir
                for path in sorted(root.rglob(f"*{SOURCE_EXTENSION}")):
                    relative = path.relative_to(root).as_posix()
                    locations[relative[: -len(SOURCE_EXTENSION)]] = (path, None)
        return locations


def create_engine(config: ViewerConfig) -> FernflowerEngine:
    return FernflowerEngine(
        engine_jar=config.engine_jar,
        java=config.java,
        options=config.engine_options,
    )


def _run_engine(command: Sequence[str]) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env.setdefault("JAVA_TOOL_OPTIONS", "-Dfile.encoding=UTF-8")
    try:
        return subprocess.run(  # nosec B603 - executable is controlled by the user
            list(command),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            env=env,
        )
    except OSError as exc:
        raise DecompilerEngineError(f"Unable to start the decompiler: {exc}") from exc


def _log_engine_messages(output: str) -> None:
    for line in output.splitlines():
        cleaned = line.strip()
        lowered = cleaned.lower()
        if lowered.startswith("error:"):
            logger.error("%s", cleaned)
        elif lowered.startswith("warn:"):
            logger.warning("%s", cleaned)
        elif cleaned:
            logger.debug("%s", cleaned)


def _raise_on_error(
    completed: subprocess.CompletedProcess[str], sources: Sequence[Path]
) -> None:
    if completed.returncode == 0:
        return

    failure_lines = _extract_failure_lines(completed.stdout) + _extract_failure_lines(
        completed.stderr
    )
    names = ", ".join(source.name for source in sources)
    if failure_lines:
        message = f"Decompiler failed on {names}: {' '.join(failure_lines)}"
    else:
        message = f"Decompiler failed on {names} (exit code {completed.returncode})."
    raise DecompilerEngineError(
        message, stdout=completed.stdout, stderr=completed.stderr
    )


def _extract_failure_lines(output: str) -> list[str]:
    lines = []
    for line in (output or "").splitlines():
        lowered = line.strip().lower()
        if lowered.startswith("error:") or "exception" in lowered:
            lines.append(line.strip())
    return lines


__all__ = [
    "DEFAULT_ENGINE_JAR_NAMES",
    "DecompilerEngine",
    "DecompilerEngineError",
    "FernflowerEngine",
    "create_engine",
    "resolve_engine_jar",
    "resolve_java",
]
