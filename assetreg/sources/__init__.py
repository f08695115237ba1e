"""Tabular data sources (read-only)."""

from assetreg.sources.base import SourceSelector, TabularSource
from assetreg.sources.csv_file import CsvFileSource
from assetreg.sources.sheets import SheetsSource

__all__ = ["SourceSelector", "TabularSource", "CsvFileSource", "SheetsSource"]
