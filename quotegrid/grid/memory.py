# quotegrid/grid/memory.py
"""In-memory grid sink and source.

Stores values, formula text and cell attributes the way a spreadsheet host
would, without evaluating anything.  Used by the CLI to materialize a layout
and by the tests to round-trip a build through the parser.
"""

from __future__ import annotations

import copy
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .address import iter_cells, parse_range_bounds
from .directives import RangeDirective, SheetLayout, WorkbookLayout
from .sentinels import is_quote_sheet

CELL_ATTRS = (
    "number_format",
    "color",
    "bold",
    "horizontal_alignment",
    "data_validation",
)


class MemorySheet:
    def __init__(self, name: str):
        self.name = name
        self.clear()

    def clear(self) -> None:
        self.values: List[List[Any]] = []
        self.formulas: Dict[Tuple[int, int], str] = {}
        self.attrs: Dict[Tuple[int, int], Dict[str, Any]] = {}
        self.hidden_columns: set = set()
        self.grouped_columns: set = set()
        self.column_widths: Dict[int, int] = {}
        self.row_groups: List[Tuple[int, int]] = []
        self.hidden_rows: set = set()
        self.autofit_columns = 0

    # -- sink -------------------------------------------------------------

    def apply(self, layout: SheetLayout) -> None:
        """Replace the whole sheet with a freshly built layout."""
        self.clear()
        self.set_values(1, 1, layout.values)
        self.apply_directives(layout.ranges)
        self.autofit_columns = layout.autofit_columns

    def set_values(self, row: int, col: int, matrix: Sequence[Sequence]) -> None:
        for r, data in enumerate(matrix):
            for c, value in enumerate(data):
                self._set(row + r, col + c, value)
                self.formulas.pop((row + r, col + c), None)

    def apply_directives(self, ranges: Sequence[RangeDirective]) -> None:
        for directive in ranges:
            if isinstance(directive, dict):
                directive = RangeDirective.from_dict(directive)
            for text in directive.range:
                self._apply_one(text, directive)

    def _apply_one(self, text: str, d: RangeDirective) -> None:
        bounds = parse_range_bounds(text)
        if not bounds.first_row:
            cols = range(bounds.first_col, bounds.last_col + 1)
            if d.hide_columns:
                self.hidden_columns.update(cols)
            if d.group_by_columns:
                self.grouped_columns.update(cols)
            if d.column_width is not None:
                for c in cols:
                    self.column_widths[c] = d.column_width
            return
        if not bounds.first_col:
            if d.group_by_rows:
                self.row_groups.append((bounds.first_row, bounds.last_row))
            if d.hide_rows:
                self.hidden_rows.update(range(bounds.first_row, bounds.last_row + 1))
            return

        if d.values is not None:
            self.set_values(bounds.first_row, bounds.first_col, d.values)
        for row, col in iter_cells(text):
            if d.formula is not None:
                self._ensure(row, col)
                self.formulas[(row, col)] = d.formula
            for attr in CELL_ATTRS:
                value = getattr(d, attr)
                if value is not None:
                    self.attrs.setdefault((row, col), {})[attr] = value

    def insert_rows(self, first_row: int, last_row: int) -> None:
        """Open blank rows at ``first_row..last_row``, shifting the rest down.

        Formula text is not rewritten; the insert handler re-emits every
        formula whose rows moved.
        """
        count = last_row - first_row + 1
        if count < 1:
            return
        width = self.width
        index = min(first_row - 1, len(self.values))
        for _ in range(count):
            self.values.insert(index, [""] * width)

        def shift(key):
            row, col = key
            return (row + count, col) if row >= first_row else key

        self.formulas = {shift(k): v for k, v in self.formulas.items()}
        self.attrs = {shift(k): v for k, v in self.attrs.items()}
        self.row_groups = [
            (a + count if a >= first_row else a, b + count if b >= first_row else b)
            for a, b in self.row_groups
        ]

    # -- source -----------------------------------------------------------

    @property
    def width(self) -> int:
        return max((len(r) for r in self.values), default=0)

    def read_used_range(self) -> Tuple[List[List[Any]], List[List[Any]]]:
        width = self.width
        values = [list(r) + [""] * (width - len(r)) for r in self.values]
        formulas = copy.deepcopy(values)
        for (row, col), text in self.formulas.items():
            formulas[row - 1][col - 1] = text
        return values, formulas

    def value(self, ref: str):
        row, col = self._ref(ref)
        if row > len(self.values) or col > len(self.values[row - 1]):
            return ""
        return self.values[row - 1][col - 1]

    def formula(self, ref: str) -> Optional[str]:
        return self.formulas.get(self._ref(ref))

    def attr(self, ref: str, name: str):
        return self.attrs.get(self._ref(ref), {}).get(name)

    @staticmethod
    def _ref(ref: str) -> Tuple[int, int]:
        bounds = parse_range_bounds(ref)
        return bounds.first_row, bounds.first_col

    def _ensure(self, row: int, col: int) -> None:
        while len(self.values) < row:
            self.values.append([])
        data = self.values[row - 1]
        if len(data) < col:
            data.extend([""] * (col - len(data)))

    def _set(self, row: int, col: int, value) -> None:
        self._ensure(row, col)
        self.values[row - 1][col - 1] = value


class MemoryWorkbook:
    def __init__(self):
        self.sheets: "OrderedDict[str, MemorySheet]" = OrderedDict()

    def sheet(self, name: str) -> MemorySheet:
        if name not in self.sheets:
            self.sheets[name] = MemorySheet(name)
        return self.sheets[name]

    def apply(self, workbook: WorkbookLayout) -> None:
        for name, layout in workbook.sheets.items():
            self.sheet(name).apply(layout)

    def load(self, sheets: Mapping[str, Tuple[Sequence[Sequence], Optional[Sequence[Sequence]]]]) -> None:
        """Fill sheets from a ``{name: (values, formulas)}`` snapshot."""
        for name, (values, formulas) in sheets.items():
            sheet = self.sheet(name)
            sheet.clear()
            sheet.set_values(1, 1, values)
            for r, row in enumerate(formulas or [], 1):
                for c, text in enumerate(row, 1):
                    if isinstance(text, str) and text.startswith("="):
                        sheet.formulas[(r, c)] = text

    def reset(self) -> List[str]:
        """Drop every sheet the engine generated; other sheets stay."""
        removed = [n for n, s in self.sheets.items() if is_quote_sheet(s.values)]
        for name in removed:
            del self.sheets[name]
        logging.info("Removed %s quote sheet(s)", len(removed))
        return removed

    def snapshot(self) -> Dict[str, Tuple[list, list]]:
        return OrderedDict((name, s.read_used_range()) for name, s in self.sheets.items())
