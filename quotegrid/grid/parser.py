# quotegrid/grid/parser.py
"""Read a grid snapshot back into a :class:`QuoteSummary`.

Section membership comes from :func:`scan_sections`, the same scan the insert
handler uses.  Identity comes from the hidden trailing columns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

from .directives import SHEET_BOM, SHEET_SUMMARY
from .entities import (
    NEW_ITEM,
    Bom,
    Expense,
    Item,
    LaborEntry,
    QuoteSummary,
    parse_discount,
    to_float,
    to_int,
    to_number,
)
from .formulas import EXPENSES, ITEMS, LABOR, SUMMARY_SHEET
from .sections import hidden_columns
from .sentinels import scan_sections

# Grid columns, 0-based.
QTY, NAME, DESC, PRICE = 0, 1, 2, 3
MARKUP, DISCOUNT, UNITS, VENDOR, MANUFACTURER, MPN = 7, 8, 9, 10, 11, 12


@dataclass
class ParsedSheet:
    name: str
    kind: str
    bom: Optional[Bom] = None
    default_markup: float = 0.0
    items: List[Item] = field(default_factory=list)
    # Summary roll-up rows; the description is the BOM sheet name.
    rollups: List[Item] = field(default_factory=list)


def _get(row: Sequence, index: int):
    return row[index] if index < len(row) else ""


def _text(row: Sequence, index: int) -> str:
    value = _get(row, index)
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


def _key(value):
    """Grid hosts hand numbers back as floats; keep integral keys as ints."""
    if value is None or value == "":
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _markup_percent(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return round(value * 100, 6)


def _identity(row: Sequence, is_summary: bool):
    key_col, id_col, parent_col = hidden_columns(is_summary)
    return _key(_get(row, key_col - 1)), to_int(_get(row, id_col - 1)), to_int(_get(row, parent_col - 1))


def _is_formula(formulas: Optional[Sequence[Sequence]], row: int, col: int) -> bool:
    if not formulas or row - 1 >= len(formulas):
        return False
    text = _get(formulas[row - 1], col)
    return isinstance(text, str) and text.startswith("=")


def parse_sheet(
    name: str,
    values: Sequence[Sequence],
    formulas: Optional[Sequence[Sequence]] = None,
) -> Optional[ParsedSheet]:
    """Parse one sheet; ``None`` for sheets the engine did not generate."""
    layout = scan_sections(values)
    if layout.kind is None:
        logging.debug("Skipping sheet %r: not a quote sheet", name)
        return None
    if layout.kind == SHEET_SUMMARY:
        return _parse_summary(name, values, formulas, layout)
    return _parse_bom(name, values, layout)


def _rows(values, span):
    if span is None or not span.present:
        return
    for row in range(span.first_row, min(span.last_row, len(values)) + 1):
        yield row, values[row - 1]


def _parse_summary(name, values, formulas, layout) -> ParsedSheet:
    parsed = ParsedSheet(name=name, kind=SHEET_SUMMARY)
    parsed.default_markup = to_float(_get(values[1], 6)) if len(values) > 1 else 0.0

    for row, data in _rows(values, layout.span(ITEMS)):
        key, item_id, bom_id = _identity(data, True)
        quantity = to_int(_get(data, QTY))
        if _is_formula(formulas, row, PRICE):
            parsed.rollups.append(
                Item(
                    id=item_id,
                    name=_text(data, NAME),
                    description=_text(data, DESC),
                    quantity=max(quantity, 0),
                    key=key,
                    bom_id=bom_id,
                )
            )
            continue
        if quantity <= 0:
            continue
        parsed.items.append(
            Item(
                id=item_id,
                name=_text(data, NAME),
                description=_text(data, DESC),
                quantity=quantity,
                unit_price=to_float(_get(data, PRICE)),
                key=key,
            )
        )
    return parsed


def _parse_bom(name, values, layout) -> ParsedSheet:
    _, bom_id, _ = _identity(values[0], False)
    bom = Bom(id=bom_id, name=name)

    for _, data in _rows(values, layout.span(ITEMS)):
        quantity = to_int(_get(data, QTY))
        if quantity <= 0:
            continue
        key, item_id, _ = _identity(data, False)
        item = Item(
            id=item_id,
            name=_text(data, NAME),
            description=_text(data, DESC),
            quantity=quantity,
            unit_price=to_float(_get(data, PRICE)),
            markup_percent=_markup_percent(_get(data, MARKUP)),
            discount=parse_discount(_get(data, DISCOUNT)),
            units=_text(data, UNITS),
            vendor=_text(data, VENDOR),
            manufacturer=_text(data, MANUFACTURER),
            part_number=_text(data, MPN),
            key=key,
        )
        if item.id == NEW_ITEM:
            item.new_name, item.new_description = item.name, item.description
        bom.items.append(item)

    group = ""
    for row, data in _rows(values, layout.span(LABOR)):
        if _text(data, NAME):
            group = _text(data, NAME)
            continue
        quantity = to_number(_get(data, QTY))
        if quantity <= 0:
            continue
        if not group:
            logging.warning("Labor row %s on %r has no service group", row, name)
        key, labor_id, group_id = _identity(data, False)
        bom.labor.append(
            LaborEntry(
                id=labor_id,
                service_group_name=group,
                service_group_id=group_id,
                name=_text(data, DESC),
                unit_price=to_float(_get(data, PRICE)),
                quantity=quantity,
                markup_percent=_markup_percent(_get(data, MARKUP)),
                discount=parse_discount(_get(data, DISCOUNT)),
                key=key,
            )
        )

    for _, data in _rows(values, layout.span(EXPENSES)):
        quantity = to_number(_get(data, QTY))
        account = _text(data, DESC)
        if quantity <= 0 or not account:
            continue
        key, account_id, _ = _identity(data, False)
        bom.expenses.append(
            Expense(
                quantity=quantity,
                unit_price=to_float(_get(data, PRICE)),
                markup_percent=_markup_percent(_get(data, MARKUP)),
                discount=parse_discount(_get(data, DISCOUNT)),
                account_id=account_id,
                account_name=account,
                key=key,
            )
        )

    return ParsedSheet(name=name, kind=SHEET_BOM, bom=bom)


SheetSnapshot = Tuple[Sequence[Sequence], Optional[Sequence[Sequence]]]


def parse_workbook(
    sheets: Mapping[str, SheetSnapshot],
    bom_ids: Optional[Mapping[str, int]] = None,
    quote_id: int = 0,
) -> QuoteSummary:
    """Rebuild a quote from ``{sheet name: (values, formulas)}``.

    A BOM's id is taken from ``bom_ids`` first, then from the hidden id cell
    of its header row, then from the Summary roll-up row that names it.
    Roll-up rows come back as Summary items linked to their BOM, ahead of
    the misc items.
    """
    bom_ids = dict(bom_ids or {})
    summary = QuoteSummary(id=quote_id)
    rollups: List[Item] = []
    boms: List[Bom] = []

    for name, (values, formulas) in sheets.items():
        parsed = parse_sheet(name, values, formulas)
        if parsed is None:
            continue
        if parsed.kind == SHEET_SUMMARY:
            summary.default_markup = parsed.default_markup
            summary.items = parsed.items
            rollups = parsed.rollups
        else:
            boms.append(parsed.bom)

    linked = {r.description: r.bom_id for r in rollups if r.description and r.bom_id > 0}
    for bom in boms:
        if bom_ids.get(bom.name):
            bom.id = int(bom_ids[bom.name])
        elif not bom.id:
            bom.id = linked.get(bom.name, 0)
    summary.boms = boms

    by_name = {bom.name: bom for bom in boms}
    kept = []
    for line in rollups:
        bom = by_name.get(line.description)
        if bom is None:
            logging.warning("Summary line %r names no BOM sheet; dropped", line.description)
            continue
        line.bom_id = bom.id or -1
        kept.append(line)
    summary.items = kept + summary.items
    logging.debug("Parsed %s BOM(s) and %s summary item(s)", len(boms), len(summary.items))
    return summary


def parse(values, formulas=None, name: str = SUMMARY_SHEET) -> QuoteSummary:
    return parse_workbook({name: (values, formulas)})
