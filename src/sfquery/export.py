"""Delimited-text export of query results, and where that text can go."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

from pandas.io.clipboard import PyperclipException, clipboard_set

from .exceptions import ExportIOError
from .table import SubqueryCell, compute_columns, format_value, is_subquery_column, value_at
from .utils import sanitize_filename

_logger = logging.getLogger(__name__)

CSV = ","
TSV = "\t"

# Default file names per delimiter; ".xls" lets spreadsheets open the tab format directly.
DEFAULT_FILENAMES = {CSV: "export.csv", TSV: "export.xls"}


def export_columns(records: Sequence[Mapping[str, Any]]) -> list[str]:
    """Same columns as the table view, minus sub-query summaries."""
    return [c for c in compute_columns(records) if not is_subquery_column(c)]


def quote(value: Any) -> str:
    return '"' + format_value(value).replace('"', '""') + '"'


def format_records(records: Sequence[Mapping[str, Any]], delimiter: str = CSV) -> str:
    """Header line of column names, then one fully quoted line per record."""
    if delimiter not in DEFAULT_FILENAMES:
        raise ValueError(f"Unsupported delimiter {delimiter!r}; use ',' or '\\t'")
    cols = export_columns(records)
    lines = [delimiter.join(cols)]
    for rec in records:
        lines.append(delimiter.join(quote(value_at(rec, c)) for c in cols))
    return "\n".join(lines) + "\n"


def subquery_json(cell: SubqueryCell) -> str:
    return json.dumps(cell.records, indent=2, ensure_ascii=False)


def subquery_filename(cell: SubqueryCell, record: Mapping[str, Any]) -> str:
    return sanitize_filename(f"{cell.relationship}_{record.get('Id') or 'record'}") + ".json"


# ----------------------------------------------------------------------
# Sinks
# ----------------------------------------------------------------------
class ExportSink(Protocol):
    def write(self, text: str) -> str:
        """Deliver text; returns a human-readable description of the target."""
        ...


class FileSink:
    """Writes the whole file or nothing: temp file in the same folder, then rename."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def write(self, text: str) -> str:
        target = self.path.expanduser()
        tmp_name: Optional[str] = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ExportIOError(str(target), str(e)) from e
        _logger.info("Wrote %d bytes to %s", len(text.encode("utf-8")), target)
        return str(target)


class ClipboardSink:
    def write(self, text: str) -> str:
        try:
            clipboard_set(text)
        except PyperclipException as e:
            raise ExportIOError("clipboard", str(e)) from e
        return "clipboard"
