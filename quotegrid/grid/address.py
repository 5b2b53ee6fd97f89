# quotegrid/grid/address.py
"""Column/row arithmetic and A1-style range strings.

Coordinates are 1-based: column 1 is ``A``, row 1 is the first row.  A row
number of ``0`` means "no row" and produces whole-column ranges such as
``H:J``; a column number of ``0`` produces whole-row ranges such as ``10:12``.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from .errors import AddressError

_CELL_RE = re.compile(r"^\$?([A-Za-z]*)\$?(\d*)$")


class RangeBounds(NamedTuple):
    first_row: int
    last_row: int
    first_col: int
    last_col: int


def col_letter(index: int) -> str:
    """Return the column letters for a 1-based column index (1 -> ``A``)."""
    if index < 1:
        raise AddressError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def col_index(letter: str) -> int:
    """Return the 1-based index of a column given by its letters."""
    letter = (letter or "").strip().upper()
    if not letter or not letter.isalpha() or not letter.isascii():
        raise AddressError(f"Invalid column letters {letter!r}")
    index = 0
    for ch in letter:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index


def cell(col: int | str, row: int) -> str:
    """``cell(5, 3)`` and ``cell("E", 3)`` both give ``E3``."""
    if row < 1:
        raise AddressError(f"Row must be >= 1, got {row}")
    letters = col if isinstance(col, str) else col_letter(col)
    return f"{letters.upper()}{row}"


def absolute_cell(col: int | str, row: int) -> str:
    letters = col if isinstance(col, str) else col_letter(col)
    return f"${letters.upper()}${row}"


def sheet_cell(sheet: str, col: int | str, row: int) -> str:
    """Cross-sheet reference, always quoted: ``'BOM 1'!E12``."""
    quoted = sheet.replace("'", "''")
    return f"'{quoted}'!{cell(col, row)}"


def range_string(first_col: int | str, first_row: int, width: int, height: int) -> str:
    """Build a range string from an origin and a size.

    ``height == 0`` omits the row numbers and yields a column span, which is
    how whole-column directives (hidden/grouped columns) are addressed.  A
    single cell comes back without a colon.
    """
    start = col_index(first_col) if isinstance(first_col, str) else first_col
    if start < 1 or width < 1:
        raise AddressError(f"Invalid range origin/width: col={first_col} width={width}")
    if height < 0:
        raise AddressError(f"Invalid range height {height}")
    end = start + width - 1
    if height == 0:
        return f"{col_letter(start)}:{col_letter(end)}"
    if first_row < 1:
        raise AddressError(f"Row must be >= 1, got {first_row}")
    last_row = first_row + height - 1
    if width == 1 and height == 1:
        return cell(start, first_row)
    return f"{cell(start, first_row)}:{cell(end, last_row)}"


def row_span(first_row: int, last_row: int) -> str:
    """Whole-row range such as ``10:12``."""
    if first_row < 1 or last_row < first_row:
        raise AddressError(f"Invalid row span {first_row}:{last_row}")
    return f"{first_row}:{last_row}"


def _split_ref(ref: str) -> tuple[int, int]:
    m = _CELL_RE.match(ref.strip())
    if not m or not (m.group(1) or m.group(2)):
        raise AddressError(f"Invalid cell reference {ref!r}")
    col = col_index(m.group(1)) if m.group(1) else 0
    row = int(m.group(2)) if m.group(2) else 0
    return col, row


def parse_range_bounds(text: str) -> RangeBounds:
    """Inverse of :func:`range_string` (and :func:`row_span`).

    Sheet prefixes (``'BOM 1'!``) are ignored.  Column spans report rows as
    ``0`` and row spans report columns as ``0``.
    """
    if not text:
        raise AddressError("Empty range string")
    if "!" in text:
        text = text.rsplit("!", 1)[1]
    parts = text.split(":")
    if len(parts) > 2:
        raise AddressError(f"Invalid range {text!r}")
    first_col, first_row = _split_ref(parts[0])
    last_col, last_row = _split_ref(parts[-1])
    if bool(first_col) != bool(last_col) or bool(first_row) != bool(last_row):
        raise AddressError(f"Mixed range {text!r}")
    if last_col < first_col or last_row < first_row:
        raise AddressError(f"Reversed range {text!r}")
    return RangeBounds(first_row, last_row, first_col, last_col)


def iter_cells(text: str):
    """Yield ``(row, col)`` for every cell of a bounded range."""
    b = parse_range_bounds(text)
    if not (b.first_row and b.first_col):
        raise AddressError(f"Range {text!r} is not bounded")
    for row in range(b.first_row, b.last_row + 1):
        for col in range(b.first_col, b.last_col + 1):
            yield row, col
