"""Per-kind error counters."""

from typing import Dict

from .taxonomy import ErrorKind


class ErrorMetrics:
    """Additive counters per error kind, cleared only by ``reset()``."""

    def __init__(self):
        self._counts: Dict[ErrorKind, int] = {}

    def record(self, kind: ErrorKind) -> None:
        kind = ErrorKind(kind)
        self._counts[kind] = self._counts.get(kind, 0) + 1

    def count(self, kind: ErrorKind) -> int:
        return self._counts.get(ErrorKind(kind), 0)

    def total(self) -> int:
        return sum(self._counts.values())

    def summary(self) -> Dict[str, int]:
        """Snapshot of kind -> count for every kind recorded so far."""
        return {kind.value: count for kind, count in self._counts.items()}

    def reset(self) -> None:
        self._counts.clear()
