# quotegrid/grid/relayout.py
"""Directives for rows the user inserted into an existing sheet.

The sheet as it is now is the only source of truth: section bounds are
rescanned from the sentinel labels on every event, nothing from the initial
build is cached.  Rows that cannot be placed are skipped with a warning so a
damaged sheet is never made worse.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .address import col_letter
from .directives import SHEET_SUMMARY, RangeDirective, SectionSpan
from .entities import QuoteLists
from .formulas import EXPENSES, ITEMS, LABOR
from .layout import summary_formula_ranges, total_ranges
from .sections import RowContext, group_ranges, row_ranges
from .sentinels import SheetSections, classify, scan_sections, SectionKind

BOM_ITEM_SEED = [1, "", "", 0, 0, 0, 0, "", "No", "Ea"]
SUMMARY_ITEM_SEED = [1, "", "", 0, 0, 0, 0]
EXPENSE_SEED = [1, "", "", 0, 0, 0, 0, "", "No"]
BOM_LABOR_SEED = [1, "", "", 0, 0, 0, 0, "", "No"]


class RelayoutState(Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    EMITTING = "emitting"


def seed_for(section: str, is_summary: bool) -> Optional[list]:
    if section == ITEMS:
        return list(SUMMARY_ITEM_SEED if is_summary else BOM_ITEM_SEED)
    if section == EXPENSES:
        return list(EXPENSE_SEED)
    if section == LABOR and not is_summary:
        return list(BOM_LABOR_SEED)
    return None


def seed_directive(row: int, seed: list) -> RangeDirective:
    return RangeDirective(range=[f"A{row}:{col_letter(len(seed))}{row}"], values=[seed])


class RowInsertHandler:
    """Handles "rows inserted" events, one sheet at a time.

    Events for the same sheet are serialized by a per-sheet lock held for the
    whole classify/emit pass; different sheets proceed independently.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._states: Dict[str, RelayoutState] = {}

    def _lock_for(self, sheet_name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(sheet_name, threading.Lock())

    def state_of(self, sheet_name: str) -> RelayoutState:
        return self._states.get(sheet_name, RelayoutState.IDLE)

    @property
    def state(self) -> RelayoutState:
        for state in list(self._states.values()):
            if state is not RelayoutState.IDLE:
                return state
        return RelayoutState.IDLE

    def rows_inserted(
        self,
        sheet_name: str,
        values: Sequence[Sequence],
        first_row: int,
        last_row: int,
        lists: Optional[QuoteLists] = None,
    ) -> List[RangeDirective]:
        """Directives for rows ``first_row..last_row`` just inserted.

        ``values`` is the sheet's used range read after the insert, so the
        new rows are already in place (blank) and the sections below them
        have already moved down.
        """
        with self._lock_for(sheet_name):
            try:
                self._states[sheet_name] = RelayoutState.CLASSIFYING
                layout = scan_sections(values)
                if layout.kind is None:
                    logging.warning("Sheet %r has no quote header; insert ignored", sheet_name)
                    return []
                placed = self._classify(sheet_name, values, layout, first_row, last_row)

                self._states[sheet_name] = RelayoutState.EMITTING
                return self._emit(values, layout, placed, lists or QuoteLists())
            finally:
                self._states[sheet_name] = RelayoutState.IDLE

    def _classify(self, sheet_name, values, layout: SheetSections, first_row, last_row):
        is_summary = layout.kind == SHEET_SUMMARY
        placed = []
        for row in range(max(first_row, 1), last_row + 1):
            if row > len(values):
                logging.warning("Inserted row %s is past the end of %r", row, sheet_name)
                continue
            if classify(values[row - 1]) is not SectionKind.DATA:
                logging.warning("Inserted row %s on %r holds a section label; skipped", row, sheet_name)
                continue
            section = layout.section_of(row)
            if section is None:
                logging.warning("Inserted row %s on %r is outside every section; skipped", row, sheet_name)
                continue
            if is_summary and section == LABOR:
                logging.warning("Summary labor rows are derived from the BOM sheets; row %s skipped", row)
                continue
            placed.append((row, section))
        return placed

    def _emit(self, values, layout: SheetSections, placed, lists: QuoteLists) -> List[RangeDirective]:
        is_summary = layout.kind == SHEET_SUMMARY
        ranges: List[RangeDirective] = []

        for row, section in placed:
            span = layout.span(section)
            ranges.append(seed_directive(row, seed_for(section, is_summary)))
            ctx = RowContext(
                section=section,
                is_summary=is_summary,
                row=row,
                bounds=(span.first_row, span.last_row),
                is_insert=True,
            )
            if section == ITEMS and not is_summary:
                ctx.unit_names = lists.item_unit_names()
            elif section == EXPENSES:
                ctx.expense_accounts = lists.expense_account_names()
            ranges += row_ranges(ctx)

        if not placed:
            return ranges

        if not is_summary:
            labor_rows = [row for row, section in placed if section == LABOR]
            if labor_rows:
                ranges += self._labor_groups(values, layout.span(LABOR), labor_rows)

        if layout.total_row:
            if is_summary:
                items = layout.span(ITEMS) or SectionSpan(0, 0)
                labor = layout.span(LABOR) or SectionSpan(0, 0)
                ranges += total_ranges(layout.total_row, [(ITEMS, items)])
                ranges += summary_formula_ranges(layout.total_row, labor)
            else:
                ranges += total_ranges(layout.total_row, layout.ordered())
        return ranges

    @staticmethod
    def _labor_groups(values, span: SectionSpan, inserted: List[int]) -> List[RangeDirective]:
        """Subtotals for every labor group whose member range now holds an
        inserted row."""
        fresh = set(inserted)
        headers = [
            row for row in range(span.first_row, span.last_row + 1)
            if row not in fresh and _text(values[row - 1], 1)
        ]
        ranges: List[RangeDirective] = []
        for i, header in enumerate(headers):
            end = headers[i + 1] if i + 1 < len(headers) else span.last_row + 1
            if any(header < row < end for row in fresh):
                ranges += group_ranges(header, end)
        if headers and any(row < headers[0] for row in fresh):
            logging.warning("Labor rows inserted above the first service group are not grouped")
        return ranges


def _text(row: Sequence, index: int) -> str:
    if index >= len(row):
        return ""
    value = row[index]
    return value.strip() if isinstance(value, str) else ""
