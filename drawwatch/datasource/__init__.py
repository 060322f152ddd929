from .base import ResultDataSource, RowParseError, StructuralMismatch
from .html_table import HtmlTableDataSource, TableLayout, parse_draws

__all__ = [
    "ResultDataSource",
    "RowParseError",
    "StructuralMismatch",
    "HtmlTableDataSource",
    "TableLayout",
    "parse_draws",
]
