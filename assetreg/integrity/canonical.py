"""Deterministic byte serialization of a tabular snapshot.

The header row is dropped, short rows are padded with empty strings to the
widest data row, and the remaining cells are written in row-major order
behind a small self-describing frame::

    b"ARC1" | rows:u32 | cols:u32 | (len:u32 | utf-8 cell)*

All integers are big-endian. Because every cell is length-prefixed and the
dimensions are part of the frame, two different cell grids can never produce
the same bytes (``["ab", "c"]`` vs ``["a", "bc"]``, or one row of four cells
vs two rows of two).
"""

from __future__ import annotations

import struct
from typing import Any, Sequence

from assetreg.errors import InsufficientData, ValidationError

CANONICAL_MAGIC = b"ARC1"
_U32 = struct.Struct(">I")


def _cell_text(value: Any, row: int, col: int) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(
            f"Cell ({row}, {col}) is {type(value).__name__}; only text cells can be canonicalized."
        )
    return value


def data_rows(rows: Sequence[Sequence[Any]]) -> list[list[str]]:
    """Return the header-stripped data rows, padded to a uniform width.

    Raises ``InsufficientData`` unless there is a header plus at least one
    data row.
    """
    if rows is None or len(rows) < 2:
        raise InsufficientData(
            "No sufficient data found. A header row plus at least one data row is required."
        )

    body = rows[1:]
    width = max(len(row) for row in body)
    result: list[list[str]] = []
    for r, row in enumerate(body, start=1):
        cells = [_cell_text(value, r, c) for c, value in enumerate(row)]
        cells.extend([""] * (width - len(cells)))
        result.append(cells)
    return result


def canonicalize(rows: Sequence[Sequence[Any]]) -> bytes:
    """Serialize a snapshot (header row first) into canonical bytes."""
    body = data_rows(rows)
    width = len(body[0])

    parts = [CANONICAL_MAGIC, _U32.pack(len(body)), _U32.pack(width)]
    for row in body:
        for cell in row:
            encoded = cell.encode("utf-8")
            parts.append(_U32.pack(len(encoded)))
            parts.append(encoded)
    return b"".join(parts)
