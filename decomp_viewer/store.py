"""Thread-safe storage for decompiled source text."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class DecompiledUnit:
    """A single decompiled member keyed by its qualified name."""

    qualified_name: str
    text: Optional[str] = None


class ResultStore:
    """Mapping of qualified member names to decompiled text.

    The store is written by the background worker while an archive is being
    decompiled and read from the interactive thread at the same time, so every
    access goes through one lock and readers only ever receive snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Optional[str]] = {}

    def put(self, qualified_name: str, text: Optional[str]) -> None:
        with self._lock:
            self._entries[qualified_name] = text

    def get(self, qualified_name: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(qualified_name)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def all_names(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._entries)

    def units(self) -> List[DecompiledUnit]:
        """Return a snapshot of every stored unit ordered by qualified name."""

        with self._lock:
            items = sorted(self._entries.items())
        return [DecompiledUnit(qualified_name=name, text=text) for name, text in items]

    def __contains__(self, qualified_name: object) -> bool:
        with self._lock:
            return qualified_name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DecompiledUnit", "ResultStore"]
