from __future__ import annotations

from typing import Iterable


class SourceLayoutError(ValueError):
    """An upstream table no longer has the layout the loader was written for."""

    def __init__(self, source: str, expected: Iterable[str], found: Iterable[str], detail: str = "") -> None:
        self.source = source
        self.expected = list(expected)
        self.found = list(found)
        message = f"[{source}] unexpected layout: expected {self.expected}, found {self.found}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PanelIntegrityError(ValueError):
    """Rows that carry GDP but no population while building the decade panel."""


__all__ = ["SourceLayoutError", "PanelIntegrityError"]
