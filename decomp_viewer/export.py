"""Writers that serialise decompiled sources to a folder or a zip archive."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional, Set

from .config import DEFAULT_EXTENSION
from .namespace import DEFAULT_DELIMITER


class ExportWriterError(RuntimeError):
    """Raised when an entry cannot be written to the export target."""


@dataclass
class ExportSummary:
    """Result of a completed export run."""

    target: Path
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def entry_path_for(
    qualified_name: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    extension: str = DEFAULT_EXTENSION,
) -> PurePosixPath:
    """Map ``a/b/C`` to the relative path ``a/b/C.java``."""

    parts = qualified_name.split(delimiter)
    for part in parts:
        if part in {"", ".", ".."} or "/" in part or "\\" in part:
            raise ExportWriterError(f"Invalid qualified name for export: {qualified_name!r}")
    parts[-1] = f"{parts[-1]}{extension}"
    return PurePosixPath(*parts)


class ExportWriter:
    def __init__(
        self,
        target: Path,
        *,
        delimiter: str = DEFAULT_DELIMITER,
        extension: str = DEFAULT_EXTENSION,
    ) -> None:
        self.target = target
        self.delimiter = delimiter
        self.extension = extension
        self._written: Set[str] = set()

    def _claim(self, qualified_name: str) -> PurePosixPath:
        relative = entry_path_for(
            qualified_name, delimiter=self.delimiter, extension=self.extension
        )
        if qualified_name in self._written:
            raise ExportWriterError(f"Duplicate export entry: {relative}")
        self._written.add(qualified_name)
        return relative

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def write(self, qualified_name: str, text: str) -> str:
        raise NotImplementedError

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()


class DirectoryExportWriter(ExportWriter):
    """Write each qualified name to ``<root>/<segments>.java``."""

    def open(self) -> None:
        try:
            self.target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExportWriterError(f"Unable to create {self.target}: {exc}") from exc

    def write(self, qualified_name: str, text: str) -> str:
        relative = self._claim(qualified_name)
        destination = self.target.joinpath(*relative.parts)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            # Bytes keep line endings exactly as the engine produced them.
            destination.write_bytes(text.encode("utf-8"))
        except OSError as exc:
            raise ExportWriterError(f"Unable to write {destination}: {exc}") from exc
        return str(destination)


class ArchiveExportWriter(ExportWriter):
    """Write each qualified name as a deflated entry of one zip archive."""

    def __init__(self, target: Path, **kwargs) -> None:
        super().__init__(target, **kwargs)
        self._archive: Optional[zipfile.ZipFile] = None

    def open(self) -> None:
        try:
            self.target.parent.mkdir(parents=True, exist_ok=True)
            self._archive = zipfile.ZipFile(
                self.target, "w", compression=zipfile.ZIP_DEFLATED
            )
        except OSError as exc:
            raise ExportWriterError(f"Unable to create {self.target}: {exc}") from exc

    def close(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None

    def write(self, qualified_name: str, text: str) -> str:
        if self._archive is None:
            raise ExportWriterError("Archive writer is not open.")
        entry_name = str(self._claim(qualified_name))
        try:
            with self._archive.open(entry_name, "w") as handle:
                handle.write(text.encode("utf-8"))
        except OSError as exc:
            raise ExportWriterError(f"Unable to write {entry_name}: {exc}") from exc
        return entry_name


__all__ = [
    "ArchiveExportWriter",
    "DirectoryExportWriter",
    "ExportSummary",
    "ExportWriterError",
    "entry_path_for",
]
