"""Tabular source protocol and range selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SourceSelector:
    """Which part of the source to read.

    ``range_override`` is an A1 range (``Sheet1!A1:D20``) that replaces the
    default whole-sheet column span.
    """

    sheet_name: str
    range_override: str | None = None

    def a1_range(self, column_span: str = "A:Z") -> str:
        if self.range_override:
            return self.range_override
        return f"{self.sheet_name}!{column_span}"


class TabularSource(Protocol):
    def read_range(self, selector: SourceSelector) -> list[list[str]]:
        """Return rows of cell values, header row first."""
        ...
