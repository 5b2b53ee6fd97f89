# quotegrid/grid/directives.py
"""Wire types handed from the layout engine to a grid sink."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

Row = List[Any]

# Cell colors / formats shared by every sheet.
COLOR_INPUT = "#C6E0B4"
FORMAT_MONEY = "$#,###.00"
FORMAT_PERCENT = "#,###.00%"
FORMAT_TEXT = "@"

SHEET_SUMMARY = "summary"
SHEET_BOM = "bom"


@dataclass
class RangeDirective:
    """One declarative instruction for a set of ranges.

    Only the attributes that are set are applied; ``None`` means "leave the
    cell alone".  ``color=""`` clears a fill.
    """
    range: List[str]
    values: Optional[List[Row]] = None
    formula: Optional[str] = None
    number_format: Optional[str] = None
    color: Optional[str] = None
    bold: Optional[bool] = None
    horizontal_alignment: Optional[str] = None
    data_validation: Optional[Dict[str, Any]] = None
    group_by_rows: Optional[bool] = None
    group_by_columns: Optional[bool] = None
    hide_rows: Optional[bool] = None
    hide_columns: Optional[bool] = None
    column_width: Optional[int] = None

    _WIRE_NAMES = {
        "number_format": "numberFormat",
        "horizontal_alignment": "horizontalAlignment",
        "data_validation": "dataValidation",
        "group_by_rows": "groupByRows",
        "group_by_columns": "groupByColumns",
        "hide_rows": "hideRows",
        "hide_columns": "hideColumns",
        "column_width": "columnWidth",
    }

    def to_dict(self) -> dict:
        out: dict = {"range": list(self.range)}
        for name in (
            "values", "formula", "number_format", "color", "bold",
            "horizontal_alignment", "data_validation", "group_by_rows",
            "group_by_columns", "hide_rows", "hide_columns", "column_width",
        ):
            value = getattr(self, name)
            if value is not None:
                out[self._WIRE_NAMES.get(name, name)] = value
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "RangeDirective":
        reverse = {v: k for k, v in cls._WIRE_NAMES.items()}
        kwargs = {}
        for key, value in data.items():
            name = reverse.get(key, key)
            if name == "range" and isinstance(value, str):
                value = [value]
            kwargs[name] = value
        return cls(**kwargs)


def list_validation(source: str) -> dict:
    """In-cell drop-down fed by a comma separated list."""
    return {"list": {"inCellDropDown": True, "source": source}}


@dataclass
class SectionSpan:
    """Rows owned by one section of a sheet.

    ``label_row`` holds the sentinel ("Items", "Labor", ...); the data rows
    are ``label_row + 1 .. last_row``.  An empty section has
    ``last_row == label_row``.
    """
    label_row: int
    last_row: int

    @property
    def present(self) -> bool:
        return self.label_row > 0 and self.last_row > self.label_row

    @property
    def first_row(self) -> int:
        return self.label_row + 1

    def contains(self, row: int) -> bool:
        return self.label_row < row <= self.last_row

    def bounds(self) -> tuple[int, int]:
        """``(first, last)`` boundary markers; ``(0, 0)`` for an absent section."""
        return (self.label_row, self.last_row) if self.present else (0, 0)


@dataclass
class SheetLayout:
    name: str
    kind: str
    values: List[Row]
    ranges: List[RangeDirective]
    autofit_columns: int
    sections: Dict[str, SectionSpan] = field(default_factory=dict)
    total_row: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind,
            "values": self.values,
            "ranges": [r.to_dict() for r in self.ranges],
            "autofitColumnCount": self.autofit_columns,
            "sections": {k: list(v.bounds()) for k, v in self.sections.items()},
            "totalRow": self.total_row,
        }


@dataclass
class WorkbookLayout:
    sheets: Dict[str, SheetLayout]

    def to_dict(self) -> dict:
        return {"sheets": [s.to_dict() for s in self.sheets.values()]}
