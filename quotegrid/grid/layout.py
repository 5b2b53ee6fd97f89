# quotegrid/grid/layout.py
"""Assemble complete sheets from section blocks.

``build_bom`` returns the sheet together with the cross-sheet addresses it
contributes; ``build_workbook`` builds every BOM in a thread pool, folds
those contributions in BOM order and only then builds the Summary, so every
Summary reference points at a row that already exists.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from .address import absolute_cell, cell, range_string
from .directives import (
    COLOR_INPUT,
    FORMAT_MONEY,
    FORMAT_PERCENT,
    SHEET_BOM,
    SHEET_SUMMARY,
    RangeDirective,
    SectionSpan,
    SheetLayout,
    WorkbookLayout,
)
from .entities import Bom, Item, LaborEntry, QuoteLists, QuoteSummary
from .errors import LayoutError
from .formulas import (
    EXPENSES,
    ITEMS,
    LABOR,
    SUMMARY_SHEET,
    TOTAL,
    SummaryFormulas,
    sumifs_expr,
    total_formulas,
)
from .sections import (
    BOM_SPACER_COL,
    LABEL_HEADER,
    LABEL_HEADER_EX,
    build_expenses,
    build_items,
    build_labor,
    hidden_columns,
    pad_row,
)

SUMMARY_AUTOFIT = 7
BOM_AUTOFIT = 13
SPACER_WIDTH = 15


def total_row(is_summary: bool) -> list:
    return pad_row([TOTAL, "", "", "", 0, "", 0], is_summary)


def total_ranges(row: int, spans) -> List[RangeDirective]:
    cost, quote = total_formulas(spans)
    return [
        RangeDirective(range=[cell("E", row)], formula=cost),
        RangeDirective(range=[cell("G", row)], formula=quote),
    ]


def _check_name(name: str) -> None:
    if not name or not name.strip():
        raise LayoutError("BOM sheet name must not be blank")
    if name == SUMMARY_SHEET:
        raise LayoutError(f"{SUMMARY_SHEET!r} is reserved for the quote summary")


def build_bom(bom: Bom, lists: Optional[QuoteLists] = None) -> Tuple[SheetLayout, SummaryFormulas]:
    """Lay out one BOM sheet.

    Rows: the column header, Items, Labor, Expenses, Total.  The returned
    ``SummaryFormulas`` holds only this BOM's total cells and labor rows.
    """
    _check_name(bom.name)
    formulas = SummaryFormulas()

    header = LABEL_HEADER + LABEL_HEADER_EX + [""]
    values = [header + ["", bom.id, ""]]
    ranges: List[RangeDirective] = []
    sections = {}

    items = build_items(bom.items, len(values) + 1, False, lists)
    values += items.values
    ranges += items.ranges
    sections[ITEMS] = items.span

    labor = build_labor([bom], len(values) + 1, False, formulas)
    values += labor.values
    ranges += labor.ranges
    sections[LABOR] = labor.span

    expenses = build_expenses(bom.expenses, len(values) + 1, lists)
    values += expenses.values
    ranges += expenses.ranges
    sections[EXPENSES] = expenses.span

    values.append(total_row(False))
    last = len(values)
    formulas.record_total(bom.name, last)

    ranges += total_ranges(last, [(ITEMS, items.span), (LABOR, labor.span), (EXPENSES, expenses.span)])
    ranges += bom_sheet_ranges(last)

    logging.debug("Built BOM %r: %s rows, %s directives", bom.name, len(values), len(ranges))
    layout = SheetLayout(
        name=bom.name,
        kind=SHEET_BOM,
        values=values,
        ranges=ranges,
        autofit_columns=BOM_AUTOFIT,
        sections=sections,
        total_row=last,
    )
    return layout, formulas


def hidden_range(is_summary: bool) -> str:
    key_col, _, parent_col = hidden_columns(is_summary)
    return range_string(key_col, 0, parent_col - key_col + 1, 0)


def bom_sheet_ranges(total: int) -> List[RangeDirective]:
    return [
        RangeDirective(range=["A1:M1", f"A{total}:M{total}"], bold=True),
        RangeDirective(range=["H:M"], group_by_columns=True),
        RangeDirective(range=[hidden_range(False)], hide_columns=True),
        RangeDirective(range=[range_string(BOM_SPACER_COL, 0, 1, 0)], column_width=SPACER_WIDTH),
    ]


def summary_header(default_markup: float) -> list:
    rows = [
        ["Quote", "", "", "", "", "", 0],
        ["MU (Default)", "", "", "", "", "", default_markup],
        ["GM", "", "", "", "", "", 0],
        ["MU", "", "", "", "Cost", "Quote", 0],
        [ITEMS, "", "", "", 0, 0, 0],
        [LABOR, "", "", "", 0, 0, 0],
        [],
        list(LABEL_HEADER),
    ]
    return [pad_row(r, True) for r in rows]


def summary_formula_ranges(total: int, labor: SectionSpan) -> List[RangeDirective]:
    """Quote total, margin/markup ratios and the items/labor cost split.

    Shared with the insert handler, which re-emits these after the Total row
    or the Labor section moved.
    """
    e_total = absolute_cell("E", total)
    if labor.present:
        labor_cost = "=" + sumifs_expr("E", "D", labor.first_row, labor.last_row)
        labor_quote = "=" + sumifs_expr("G", "F", labor.first_row, labor.last_row)
    else:
        labor_cost = labor_quote = "=0"
    return [
        RangeDirective(range=["G1"], formula=f"=$G${total}", number_format=FORMAT_MONEY),
        RangeDirective(range=["G3"], formula=f"=($G$1-{e_total})/IF($G$1>0,$G$1,1)"),
        RangeDirective(range=["G4"], formula=f"=($G$1-{e_total})/IF({e_total}>0,{e_total},1)"),
        RangeDirective(range=["E5"], formula=f"=E{total}-E6"),
        RangeDirective(range=["F5"], formula=f"=G{total}-F6"),
        RangeDirective(range=["G5"], formula=f"=IF({e_total}=0,0,$E$5/{e_total})"),
        RangeDirective(range=["E6"], formula=labor_cost),
        RangeDirective(range=["F6"], formula=labor_quote),
        RangeDirective(range=["G6"], formula=f"=IF({e_total}=0,0,$E$6/{e_total})"),
    ]


def rollup_items(summary: QuoteSummary) -> List[Item]:
    """One Summary line per BOM, priced by that BOM's Total row.

    A Summary item already linked to the BOM keeps its quantity and key.
    An unsaved BOM (id 0) is linked with parent id ``-1`` so the row still
    reads as a roll-up.
    """
    linked = {i.bom_id: i for i in summary.items if i.bom_id > 0}
    rows = []
    for bom in summary.boms:
        line = linked.get(bom.id) if bom.id > 0 else None
        rows.append(
            Item(
                id=line.id if line else 0,
                quantity=line.quantity if line else 1,
                name=bom.name,
                description=bom.name,
                key=line.key if line else None,
                bom_id=bom.id or -1,
            )
        )
    return rows


def build_summary(summary: QuoteSummary, formulas: SummaryFormulas) -> SheetLayout:
    """Lay out the Summary sheet: header block, Labor roll-up, Items, Total.

    ``formulas`` must already hold every BOM's contribution.  The Total row
    sums the Items section only: Summary labor rows restate hours already
    priced inside the BOM totals and feed the E6/F6 split instead.
    """
    values = summary_header(summary.default_markup)
    ranges: List[RangeDirective] = []

    labor = build_labor(summary.boms, len(values) + 1, True, formulas)
    values += labor.values
    ranges += labor.ranges

    misc = [i for i in summary.items if i.bom_id == 0]
    items = build_items(rollup_items(summary) + misc, len(values) + 1, True, summary.lists, formulas)
    values += items.values
    ranges += items.ranges

    values.append(total_row(True))
    last = len(values)

    ranges += [
        RangeDirective(range=["G2"], color=COLOR_INPUT),
        RangeDirective(range=["E5:F6", f"E{last}", f"G{last}"], number_format=FORMAT_MONEY),
        RangeDirective(range=["A1:G8", f"A{last}:G{last}"], bold=True),
        RangeDirective(range=["G2:G6"], number_format=FORMAT_PERCENT),
    ]
    ranges += summary_formula_ranges(last, labor.span)
    ranges.append(RangeDirective(range=[hidden_range(True)], hide_columns=True))
    ranges += total_ranges(last, [(ITEMS, items.span)])

    return SheetLayout(
        name=SUMMARY_SHEET,
        kind=SHEET_SUMMARY,
        values=values,
        ranges=ranges,
        autofit_columns=SUMMARY_AUTOFIT,
        sections={LABOR: labor.span, ITEMS: items.span},
        total_row=last,
    )


def build_workbook(summary: QuoteSummary, max_workers: Optional[int] = None) -> WorkbookLayout:
    names = [bom.name for bom in summary.boms]
    for name in names:
        _check_name(name)
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise LayoutError(f"Duplicate BOM sheet names: {', '.join(dupes)}")

    lists = summary.lists
    built = []
    if summary.boms:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(build_bom, bom, lists) for bom in summary.boms]
            built = [f.result() for f in futures]

    formulas = SummaryFormulas()
    for _, contribution in built:
        formulas.merge(contribution)

    sheets = {SUMMARY_SHEET: build_summary(summary, formulas)}
    for layout, _ in built:
        sheets[layout.name] = layout
    logging.info("Built workbook for quote %s with %s BOM sheet(s)", summary.id, len(built))
    return WorkbookLayout(sheets=sheets)


def new_bom(lists: Optional[QuoteLists] = None, name: str = "NEW BOM") -> Bom:
    """An unsaved BOM seeded with the quote's default labor roles."""
    labor = []
    for entry in (lists.default_labor if lists else []):
        labor.append(
            LaborEntry(
                id=entry.id,
                service_group_name=entry.service_group_name,
                service_group_id=entry.service_group_id,
                name=entry.name,
                unit_price=entry.unit_price,
                quantity=entry.quantity,
                markup_percent=entry.markup_percent,
                discount=entry.discount,
            )
        )
    return Bom(id=0, name=name, labor=labor)
