# quotegrid/grid/sentinels.py
"""Recover sheet structure from the labels in column A.

The grid carries no schema: a sheet is a Summary when A1 reads ``Quote`` and
a BOM sheet when A1 reads ``Quantity``; sections start at the rows whose
column A holds ``Items``, ``Labor`` or ``Expenses`` and end at the next label
or at ``Total``.  Both the parser and the insert handler go through
:func:`scan_sections` so they always agree on where a section is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .directives import SHEET_BOM, SHEET_SUMMARY, SectionSpan
from .formulas import EXPENSES, ITEMS, LABOR, TOTAL

SUMMARY_TITLE = "Quote"
BOM_TITLE = "Quantity"
# Rows 1-8 of a Summary hold the quote totals block and the column header;
# A5/A6 repeat the words "Items"/"Labor" and must not be read as sentinels.
SUMMARY_HEADER_ROWS = 8
BOM_HEADER_ROWS = 1

SUMMARY_ORDER = (LABOR, ITEMS)
BOM_ORDER = (ITEMS, LABOR, EXPENSES)


class SectionKind(Enum):
    ITEMS = ITEMS
    LABOR = LABOR
    EXPENSES = EXPENSES
    TOTAL = TOTAL
    DATA = ""


def _first_cell(row: Sequence) -> str:
    if not row:
        return ""
    value = row[0]
    return value.strip() if isinstance(value, str) else ""


def classify(row: Sequence) -> SectionKind:
    """Tag a grid row by its column-A sentinel."""
    label = _first_cell(row)
    for kind in (SectionKind.ITEMS, SectionKind.LABOR, SectionKind.EXPENSES, SectionKind.TOTAL):
        if label == kind.value:
            return kind
    return SectionKind.DATA


def sheet_kind(values: Sequence[Sequence]) -> Optional[str]:
    if not values:
        return None
    title = _first_cell(values[0])
    if title == SUMMARY_TITLE:
        return SHEET_SUMMARY
    if title == BOM_TITLE:
        return SHEET_BOM
    return None


def is_quote_sheet(values: Sequence[Sequence]) -> bool:
    """True for sheets this engine generated (and may replace or delete)."""
    return sheet_kind(values) is not None


@dataclass
class SheetSections:
    kind: Optional[str]
    sections: Dict[str, SectionSpan] = field(default_factory=dict)
    total_row: int = 0

    def section_of(self, row: int) -> Optional[str]:
        """Section owning a data row; ``None`` for labels and stray rows."""
        for name, span in self.sections.items():
            if span.contains(row):
                return name
        return None

    def ordered(self) -> List[tuple]:
        order = SUMMARY_ORDER if self.kind == SHEET_SUMMARY else BOM_ORDER
        return [(name, self.sections[name]) for name in order if name in self.sections]

    def span(self, name: str) -> Optional[SectionSpan]:
        return self.sections.get(name)


def scan_sections(values: Sequence[Sequence]) -> SheetSections:
    """Rebuild the section map of a sheet from its current values.

    A section that is never closed by a following label or by ``Total`` is
    dropped: without an end row its membership can't be decided.
    """
    kind = sheet_kind(values)
    result = SheetSections(kind=kind)
    if kind is None:
        return result

    skip = SUMMARY_HEADER_ROWS if kind == SHEET_SUMMARY else BOM_HEADER_ROWS
    current: Optional[str] = None
    label_row = 0

    for row in range(skip + 1, len(values) + 1):
        tag = classify(values[row - 1])
        if tag is SectionKind.DATA:
            continue
        if tag is SectionKind.TOTAL:
            if current:
                result.sections[current] = SectionSpan(label_row, row - 1)
            result.total_row = row
            current = None
            break
        if tag.value in result.sections or tag.value == current:
            logging.warning("Repeated %r label at row %s ignored", tag.value, row)
            continue
        if current:
            result.sections[current] = SectionSpan(label_row, row - 1)
        current, label_row = tag.value, row

    if current:
        logging.warning("Section %r starting at row %s has no end; skipped", current, label_row)
    if not result.total_row:
        logging.warning("No %r row found on %s sheet", TOTAL, kind)
    return result
