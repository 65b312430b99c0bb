"""Helpers for reading class archives."""
from __future__ import annotations

import zipfile
from pathlib import Path
from typing import List, Optional

SUPPORTED_ARCHIVE_EXTENSIONS = {".jar", ".zip", ".war", ".ear"}
CLASS_EXTENSION = ".class"


class ArchiveError(RuntimeError):
    """Raised when an archive cannot be opened or a member cannot be read."""


def validate_archive(archive: Path) -> Path:
    archive = archive.expanduser().resolve()
    if not archive.is_file():
        raise ArchiveError(f"Archive not found: {archive}")
    if archive.suffix.lower() not in SUPPORTED_ARCHIVE_EXTENSIONS:
        raise ArchiveError(
            "Unsupported archive extension. "
            "Expected .jar, .zip, .war, or .ear files."
        )
    if not zipfile.is_zipfile(archive):
        raise ArchiveError(f"Not a valid zip archive: {archive}")
    return archive


def read_bytes(archive: Path, member: Optional[str] = None) -> bytes:
    """Return raw bytes of ``archive`` itself or of one of its members."""

    if member is None:
        try:
            return archive.read_bytes()
        except OSError as exc:
            raise ArchiveError(f"Unable to read {archive}: {exc}") from exc

    try:
        with zipfile.ZipFile(archive) as handle:
            try:
                return handle.read(member)
            except KeyError as exc:
                raise ArchiveError(f"Entry not found: {member}") from exc
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveError(f"Unable to read {archive}: {exc}") from exc


def list_class_members(archive: Path) -> List[str]:
    """List class file entries of ``archive`` in archive order."""

    try:
        with zipfile.ZipFile(archive) as handle:
            return [
                info.filename
                for info in handle.infolist()
                if not info.is_dir() and info.filename.endswith(CLASS_EXTENSION)
            ]
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveError(f"Unable to list {archive}: {exc}") from exc


def class_member_name(member: str) -> str:
    """Strip the ``.class`` suffix, giving the slash separated class name."""

    normalized = member.replace("\\", "/")
    if normalized.endswith(CLASS_EXTENSION):
        normalized = normalized[: -len(CLASS_EXTENSION)]
    return normalized


def is_inner_class(member: str) -> bool:
    return "$" in class_member_name(member).rsplit("/", 1)[-1]


__all__ = [
    "ArchiveError",
    "CLASS_EXTENSION",
    "SUPPORTED_ARCHIVE_EXTENSIONS",
    "class_member_name",
    "is_inner_class",
    "list_class_members",
    "read_bytes",
    "validate_archive",
]
