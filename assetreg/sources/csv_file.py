"""Local CSV export reader.

Lets an auditor recompute a digest from a downloaded copy of the sheet.
``SourceSelector.sheet_name`` is the file path; ``range_override`` is not
supported for files.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from assetreg.errors import SourceError, ValidationError
from assetreg.sources.base import SourceSelector

logger = logging.getLogger(__name__)


class CsvFileSource:
    def __init__(self, base_dir: str | Path | None = None, encoding: str = "utf-8-sig") -> None:
        self.base_dir = Path(base_dir) if base_dir else None
        self.encoding = encoding

    def read_range(self, selector: SourceSelector) -> list[list[str]]:
        if selector.range_override:
            raise ValidationError("range_override is not supported for CSV files.")
        path = Path(selector.sheet_name)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        try:
            with open(path, newline="", encoding=self.encoding) as f:
                rows = [row for row in csv.reader(f)]
        except (FileNotFoundError, IsADirectoryError):
            raise SourceError(f"CSV file not found: {path}", reason="not_found") from None
        except PermissionError:
            raise SourceError(f"CSV file not readable: {path}", reason="auth") from None
        except OSError as exc:
            raise SourceError(f"CSV file could not be read: {path}: {exc}", reason="unreachable") from exc
        except UnicodeDecodeError as exc:
            raise ValidationError(
                f"CSV file {path} is not valid {self.encoding} text (byte offset {exc.start}); "
                "re-export it as UTF-8."
            ) from None
        except csv.Error as exc:
            raise ValidationError(f"CSV file {path} is malformed: {exc}") from None
        logger.info("Read %d rows from %s", len(rows), path)
        return rows
