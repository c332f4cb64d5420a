"""
Shared utility functions for QuizGrade export modules.

Provides the quoted-CSV writer and filename cleanup used by the gradebook
exports.
"""

import csv
import io
import re
from typing import Any, Iterable


def rows_to_quoted_csv(rows: Iterable[Iterable[Any]]) -> str:
    """Render rows as CSV with every cell double-quoted.

    Embedded quotes are doubled, rows are joined with ``\\n`` and no
    newline follows the last row.  None becomes an empty quoted cell.
    Cell contents are written verbatim (no formula escaping).

    Args:
        rows: Iterable of row iterables.

    Returns:
        CSV text.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    text = output.getvalue()
    if text.endswith("\n"):
        text = text[:-1]
    return text


def sanitize_filename(title: str, default: str = "export") -> str:
    """Sanitize a title for use as a filename.

    Args:
        title: The raw title string.
        default: Fallback name if the sanitized result is empty.

    Returns:
        A safe filename string (max 80 characters).
    """
    clean = re.sub(r"[^\w\s\-]", "", title or "")
    clean = re.sub(r"\s+", "_", clean.strip())
    return clean[:80] or default
