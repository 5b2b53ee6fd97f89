# quotegrid/grid/sections.py
"""Row blocks for the Items, Labor and Expenses sections.

Every block starts with its sentinel label row followed by one row per
entity.  Cost/quote cells are written as ``0`` and then overwritten by
formula directives, so all arithmetic stays in the spreadsheet.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .address import cell
from .directives import (
    COLOR_INPUT,
    FORMAT_MONEY,
    FORMAT_PERCENT,
    FORMAT_TEXT,
    RangeDirective,
    Row,
    SectionSpan,
    list_validation,
)
from .entities import Bom, Expense, Item, LaborEntry, QuoteLists, discount_label
from .formulas import (
    EXPENSES,
    EXTENDED_QUOTE,
    EXTENSION,
    ITEMS,
    LABOR,
    QUOTE_PRICE,
    LaborRefs,
    SummaryFormulas,
    markup_cell_value,
    sum_expr,
    template,
)

LABEL_HEADER = ["Quantity", "Item", "Description", "Cost", "Ext. Cost", "Quote", "Ext. Quote"]
LABEL_HEADER_EX = ["MU%", "Discount", "Units", "Vendor", "Manufacturer", "MPN"]

VISIBLE_COLUMNS = len(LABEL_HEADER)
BOM_VISIBLE_COLUMNS = VISIBLE_COLUMNS + len(LABEL_HEADER_EX)

# Trailing hidden columns (1-based): BOM sheets keep a spacer column N for
# the column-group control, then key / entity id / parent id.
BOM_SPACER_COL = BOM_VISIBLE_COLUMNS + 1
BOM_HIDDEN = (15, 16, 17)
SUMMARY_HIDDEN = (8, 9, 10)
BOM_WIDTH = BOM_HIDDEN[-1]
SUMMARY_WIDTH = SUMMARY_HIDDEN[-1]

YES_NO = "Yes,No"


def sheet_width(is_summary: bool) -> int:
    return SUMMARY_WIDTH if is_summary else BOM_WIDTH


def hidden_columns(is_summary: bool) -> Tuple[int, int, int]:
    """(key, entity id, parent id) column numbers."""
    return SUMMARY_HIDDEN if is_summary else BOM_HIDDEN


def pad_row(values: Sequence, is_summary: bool) -> Row:
    row = list(values)
    return row + [""] * (sheet_width(is_summary) - len(row))


def label_row(label: str, is_summary: bool) -> Row:
    return pad_row([label], is_summary)


def with_hidden(visible: Sequence, is_summary: bool, key, entity_id, parent_id) -> Row:
    """Pad the visible cells and append the hidden identity columns."""
    width = SUMMARY_HIDDEN[0] - 1 if is_summary else BOM_SPACER_COL
    row = list(visible) + [""] * (width - len(visible))
    return row + ["" if key is None else key, entity_id, parent_id]


@dataclass
class SectionBlock:
    values: List[Row]
    ranges: List[RangeDirective]
    span: SectionSpan
    group_rows: List[int] = field(default_factory=list)


@dataclass
class RowContext:
    """Everything :func:`row_ranges` needs to format a single data row."""
    section: str
    is_summary: bool
    row: int = 0
    bounds: Optional[Tuple[int, int]] = None
    is_insert: bool = False
    bom_name: Optional[str] = None
    formulas: Optional[SummaryFormulas] = None
    labor_refs: Optional[LaborRefs] = None
    unit_names: Optional[str] = None
    expense_accounts: Optional[str] = None


def row_ranges(ctx: RowContext) -> List[RangeDirective]:
    """Formats and formulas for one data row of a section."""
    r = ctx.row
    bounds = ctx.bounds
    summary_labor = ctx.is_summary and ctx.section == LABOR

    ranges = [
        RangeDirective(
            range=[cell("A", r)],
            color="" if summary_labor else COLOR_INPUT,
            horizontal_alignment="center",
            bold=False,
        ),
        RangeDirective(range=[f"D{r}:G{r}"], number_format=FORMAT_MONEY),
        RangeDirective(range=[cell("E", r)], formula=template(EXTENSION, r, bounds)),
    ]
    if not ctx.is_summary:
        ranges.append(RangeDirective(range=[cell("F", r)], formula=template(QUOTE_PRICE, r, bounds)))
    ranges.append(RangeDirective(range=[cell("G", r)], formula=template(EXTENDED_QUOTE, r, bounds)))

    if not ctx.is_summary:
        ranges += [
            RangeDirective(range=[cell("D", r)], color=COLOR_INPUT),
            RangeDirective(range=[f"H{r}:I{r}"], color=COLOR_INPUT, horizontal_alignment="center"),
            RangeDirective(range=[cell("H", r)], number_format=FORMAT_PERCENT),
            RangeDirective(range=[cell("I", r)], data_validation=list_validation(YES_NO)),
        ]

    if ctx.section == ITEMS:
        # Text format keeps leading zeros in part numbers typed as item names.
        ranges.append(RangeDirective(range=[cell("B", r)], number_format=FORMAT_TEXT))
        if ctx.is_summary:
            ranges += _summary_item_ranges(ctx)
        else:
            if ctx.is_insert:
                ranges.append(RangeDirective(range=[f"B{r}:C{r}"], color=COLOR_INPUT))
            ranges.append(RangeDirective(range=[f"K{r}:M{r}"], color=COLOR_INPUT))
            units = RangeDirective(range=[cell("J", r)], color=COLOR_INPUT)
            if ctx.unit_names:
                units.data_validation = list_validation(ctx.unit_names)
            ranges.append(units)
    elif ctx.section == LABOR:
        if ctx.is_summary and ctx.labor_refs is not None:
            ranges += [
                RangeDirective(range=[cell("A", r)], formula="=" + ctx.labor_refs.qty),
                RangeDirective(range=[cell("D", r)], formula="=" + ctx.labor_refs.cost),
                RangeDirective(range=[cell("F", r)], formula="=" + ctx.labor_refs.quote),
            ]
    elif ctx.section == EXPENSES:
        if ctx.is_insert:
            accounts = RangeDirective(range=[cell("C", r)], color=COLOR_INPUT)
            if ctx.expense_accounts:
                accounts.data_validation = list_validation(ctx.expense_accounts)
            ranges.append(accounts)
    return ranges


def _summary_item_ranges(ctx: RowContext) -> List[RangeDirective]:
    r = ctx.row
    cost_ref = quote_ref = None
    if ctx.bom_name and ctx.formulas is not None:
        cost_ref = ctx.formulas.bom_cost_ref(ctx.bom_name)
        quote_ref = ctx.formulas.bom_quote_ref(ctx.bom_name)
    if cost_ref and quote_ref:
        quoted = ctx.bom_name.replace("'", "''")
        return [
            RangeDirective(
                range=[cell("C", r)],
                formula=f"=TEXTAFTER(CELL(\"filename\",'{quoted}'!A1),\"]\")",
            ),
            RangeDirective(range=[cell("D", r)], formula="=" + cost_ref),
            RangeDirective(range=[cell("F", r)], formula="=" + quote_ref),
        ]
    if ctx.bom_name:
        logging.warning("No recorded total for BOM %r; row %s kept as free text", ctx.bom_name, r)
    return [RangeDirective(range=[f"B{r}:D{r}"], color=COLOR_INPUT)]


def group_ranges(header_row: int, end_row: int) -> List[RangeDirective]:
    """Subtotals on a labor group header over rows strictly between
    ``header_row`` and ``end_row``, and the collapsible row group."""
    first, last = header_row + 1, end_row - 1
    if last < first:
        return []
    return [
        RangeDirective(
            range=[cell("A", header_row)],
            formula="=" + sum_expr("A", first, last),
            bold=True,
            horizontal_alignment="center",
        ),
        RangeDirective(range=[cell("B", header_row)], bold=True),
        RangeDirective(
            range=[cell("E", header_row)],
            formula="=" + sum_expr("E", first, last),
            bold=True,
            number_format=FORMAT_MONEY,
        ),
        RangeDirective(
            range=[cell("G", header_row)],
            formula="=" + sum_expr("G", first, last),
            bold=True,
            number_format=FORMAT_MONEY,
        ),
        RangeDirective(range=[f"{first}:{last}"], group_by_rows=True),
    ]


def _label_block(label: str, first_row: int, is_summary: bool) -> SectionBlock:
    return SectionBlock(
        values=[label_row(label, is_summary)],
        ranges=[RangeDirective(range=[cell("A", first_row)], bold=True)],
        span=SectionSpan(first_row, first_row),
    )


def build_items(
    items: Sequence[Item],
    first_row: int,
    is_summary: bool,
    lists: Optional[QuoteLists] = None,
    formulas: Optional[SummaryFormulas] = None,
) -> SectionBlock:
    block = _label_block(ITEMS, first_row, is_summary)
    last = first_row + len(items)
    bounds = (first_row + 1, last)
    lists = lists or QuoteLists()

    for i, item in enumerate(items):
        row = first_row + 1 + i
        visible = [
            item.quantity,
            item.display_name,
            item.display_description,
            item.unit_price,
            0,
            0,
            0,
        ]
        ctx = RowContext(section=ITEMS, is_summary=is_summary, row=row, bounds=bounds)
        if is_summary:
            if item.bom_id:
                ctx.bom_name = item.display_description
                ctx.formulas = formulas
            block.values.append(with_hidden(visible, True, item.key, item.id, item.bom_id))
        else:
            visible += [
                markup_cell_value(item.markup_percent),
                discount_label(item.discount),
                item.units,
                item.display_vendor,
                item.manufacturer,
                item.part_number,
            ]
            ctx.unit_names = lists.unit_names_for(item.units_type) or lists.item_unit_names()
            block.values.append(with_hidden(visible, False, item.key, item.id, 0))
        block.ranges += row_ranges(ctx)

    block.span = SectionSpan(first_row, last)
    return block


def group_labor(boms: Sequence[Bom]) -> "OrderedDict[str, List[LaborEntry]]":
    """Labor roles by service group in first-seen order, one row per
    ``(id, unit_price)`` within a group."""
    groups: "OrderedDict[str, List[LaborEntry]]" = OrderedDict()
    for bom in boms:
        for labor in bom.labor:
            members = groups.setdefault(labor.service_group_name, [])
            if not any(m.identity == labor.identity for m in members):
                members.append(labor)
    return groups


def build_labor(
    boms: Sequence[Bom],
    first_row: int,
    is_summary: bool,
    formulas: SummaryFormulas,
) -> SectionBlock:
    """Labor section for one BOM sheet or, with ``is_summary``, the roll-up
    of every BOM.

    On a BOM sheet each role row is recorded in ``formulas`` so the Summary
    can add up the same role across sheets.  On the Summary the role rows
    read those accumulated references back.
    """
    block = _label_block(LABOR, first_row, is_summary)
    groups = group_labor(boms)
    sheet_name = boms[0].name if boms and not is_summary else ""

    rows_total = sum(1 + len(members) for members in groups.values())
    last = first_row + rows_total
    bounds = (first_row + 1, last)

    for group, members in groups.items():
        header_row = first_row + len(block.values)
        block.group_rows.append(header_row)
        header = [0, group, "", "", 0, "", 0]
        block.values.append(pad_row(header, is_summary))

        for labor in members:
            row = first_row + len(block.values)
            visible = [labor.quantity, "", labor.name, labor.unit_price, 0, 0, 0]
            ctx = RowContext(section=LABOR, is_summary=is_summary, row=row, bounds=bounds)
            if is_summary:
                ctx.labor_refs = formulas.labor_refs(group, labor.id)
                if ctx.labor_refs is None:
                    logging.warning("Labor role %s/%s has no BOM rows to sum", group, labor.id)
                block.values.append(
                    with_hidden(visible, True, None, labor.id, labor.service_group_id)
                )
            else:
                visible += [
                    markup_cell_value(labor.markup_percent),
                    discount_label(labor.discount),
                    "", "", "", "",
                ]
                block.values.append(
                    with_hidden(visible, False, labor.key, labor.id, labor.service_group_id)
                )
                formulas.add_labor(group, labor.id, sheet_name, row)
            block.ranges += row_ranges(ctx)

    block.span = SectionSpan(first_row, last)
    block.ranges += labor_group_ranges(block.group_rows, last)
    return block


def labor_group_ranges(header_rows: Sequence[int], section_last: int) -> List[RangeDirective]:
    ranges: List[RangeDirective] = []
    for i, header_row in enumerate(header_rows):
        end_row = header_rows[i + 1] if i + 1 < len(header_rows) else section_last + 1
        ranges += group_ranges(header_row, end_row)
    return ranges


def build_expenses(
    expenses: Sequence[Expense],
    first_row: int,
    lists: Optional[QuoteLists] = None,
) -> SectionBlock:
    block = _label_block(EXPENSES, first_row, False)
    last = first_row + len(expenses)
    bounds = (first_row + 1, last)

    for i, expense in enumerate(expenses):
        row = first_row + 1 + i
        visible = [
            expense.quantity,
            "",
            expense.account_name,
            expense.unit_price,
            0,
            0,
            0,
            markup_cell_value(expense.markup_percent),
            discount_label(expense.discount),
            "", "", "", "",
        ]
        block.values.append(with_hidden(visible, False, expense.key, expense.account_id, ""))
        block.ranges += row_ranges(
            RowContext(section=EXPENSES, is_summary=False, row=row, bounds=bounds)
        )

    block.span = SectionSpan(first_row, last)
    return block

