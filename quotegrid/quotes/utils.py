# quotegrid/quotes/utils.py

"""Convert between stored quotes and the grid engine's entities."""

import logging

from quotegrid import db
from quotegrid.grid.entities import (
    NEW_ITEM,
    Bom,
    Expense,
    Item,
    LaborEntry,
    QuoteLists,
    QuoteSummary,
    to_int,
)
from quotegrid.grid.reconcile import LineChanges, QuoteChanges
from quotegrid.models import (
    LINE_EXPENSE,
    LINE_ITEM,
    LINE_LABOR,
    Quote,
    QuoteBom,
    QuoteLine,
)


def line_to_item(line: QuoteLine, bom_id: int = 0) -> Item:
    return Item(
        id=line.object_id or 0,
        name=line.name or '',
        new_name=line.new_name,
        description=line.description or '',
        new_description=line.new_description,
        quantity=int(line.quantity or 0),
        unit_price=line.unit_price or 0.0,
        markup_percent=line.markup_percent or 0.0,
        discount=line.discount,
        units=line.units or '',
        units_type=line.units_type,
        vendor_id=line.vendor_id or 0,
        vendor=line.vendor or '',
        new_vendor=line.new_vendor,
        manufacturer=line.manufacturer or '',
        part_number=line.part_number or '',
        key=line.key,
        bom_id=bom_id,
    )


def line_to_labor(line: QuoteLine) -> LaborEntry:
    return LaborEntry(
        id=line.object_id or 0,
        service_group_name=line.service_group_name or '',
        service_group_id=line.service_group_id or 0,
        name=line.name or '',
        unit_price=line.unit_price or 0.0,
        quantity=line.quantity or 0,
        markup_percent=line.markup_percent or 0.0,
        discount=line.discount,
        key=line.key,
    )


def line_to_expense(line: QuoteLine) -> Expense:
    return Expense(
        quantity=line.quantity or 0,
        unit_price=line.unit_price or 0.0,
        markup_percent=line.markup_percent or 0.0,
        discount=line.discount,
        account_id=line.object_id or 0,
        account_name=line.name or '',
        key=line.key,
    )


def quote_lists(quote: Quote) -> QuoteLists:
    return QuoteLists.from_dict(quote.lists or {})


def bom_to_entity(bom: QuoteBom) -> Bom:
    return Bom(
        id=bom.id,
        name=bom.name,
        items=[line_to_item(l) for l in bom.lines_of(LINE_ITEM)],
        labor=[line_to_labor(l) for l in bom.lines_of(LINE_LABOR)],
        expenses=[line_to_expense(l) for l in bom.lines_of(LINE_EXPENSE)],
    )


def rollup_line(bom: QuoteBom) -> Item:
    """The BOM's line on the Summary sheet."""
    quantity = 1 if bom.quantity is None else bom.quantity
    return Item(quantity=quantity, name=bom.name, description=bom.name, bom_id=bom.id)


def quote_to_summary(quote: Quote) -> QuoteSummary:
    """The provider view of a stored quote, ready for ``build_workbook``."""
    misc = [line_to_item(l) for l in quote.summary_lines if l.kind == LINE_ITEM]
    return QuoteSummary(
        id=quote.id,
        default_markup=quote.default_markup or 0.0,
        items=[rollup_line(b) for b in quote.boms] + misc,
        boms=[bom_to_entity(b) for b in quote.boms],
        lists=quote_lists(quote),
    )


def _fill(line: QuoteLine, entity, position: int) -> QuoteLine:
    """Copy every field of an entity onto a new line row."""
    line.position = position
    line.quantity = entity.quantity
    line.unit_price = entity.unit_price
    line.markup_percent = entity.markup_percent
    line.discount = entity.discount
    if isinstance(entity, Item):
        line.object_id = entity.id
        line.name = entity.name
        line.new_name = entity.new_name
        line.description = entity.description
        line.new_description = entity.new_description
        line.units = entity.units
        line.units_type = to_int(entity.units_type) if entity.units_type not in (None, '') else None
        line.vendor_id = entity.vendor_id
        line.vendor = entity.vendor
        line.new_vendor = entity.new_vendor
        line.manufacturer = entity.manufacturer
        line.part_number = entity.part_number
    elif isinstance(entity, LaborEntry):
        line.object_id = entity.id
        line.name = entity.name
        line.service_group_id = entity.service_group_id
        line.service_group_name = entity.service_group_name
    else:
        line.object_id = entity.account_id
        line.name = entity.account_name
    return line


def _merge(line: QuoteLine, entity, position: int) -> QuoteLine:
    """Copy onto a stored line only what the grid shows.

    Unit type, vendor id and the catalog names of a stored item never reach
    the grid, so they are left as they are.
    """
    line.position = position
    line.quantity = entity.quantity
    line.unit_price = entity.unit_price
    if line.bom_id is None:
        # Summary rows stop at Ext. Quote.
        _merge_text(line, entity)
        return line
    line.markup_percent = entity.markup_percent
    line.discount = entity.discount
    if isinstance(entity, Item):
        _merge_text(line, entity)
        if not line.vendor_id and line.new_vendor:
            line.new_vendor = entity.vendor
        else:
            line.vendor = entity.vendor
        line.units = entity.units
        line.manufacturer = entity.manufacturer
        line.part_number = entity.part_number
    elif isinstance(entity, LaborEntry):
        line.name = entity.name
        line.service_group_id = entity.service_group_id
        line.service_group_name = entity.service_group_name
    else:
        line.object_id = entity.account_id or line.object_id
        line.name = entity.account_name
    return line


def _merge_text(line: QuoteLine, item: Item) -> None:
    if line.object_id == NEW_ITEM:
        line.new_name = item.name
        line.new_description = item.description
    else:
        line.name = item.name
        line.description = item.description


def _new_line(quote: Quote, bom, kind: str, entity, position: int) -> QuoteLine:
    line = _fill(QuoteLine(kind=kind), entity, position)
    line.quote = quote
    if bom is not None:
        line.bom = bom
    db.session.add(line)
    return line


def _assign_keys(lines) -> None:
    db.session.flush()
    for line in lines:
        line.key = line.id


def summary_to_quote(summary: QuoteSummary, name: str = '') -> Quote:
    """Store a provider payload as a new quote.  Every line gets a fresh key."""
    lists = summary.lists
    quote = Quote(
        name=name,
        default_markup=summary.default_markup,
        lists={
            'units': lists.units,
            'expAccounts': lists.expense_accounts,
            'defaultLabor': [l.to_dict() for l in lists.default_labor],
        },
    )
    db.session.add(quote)
    created = []
    for pos, item in enumerate(i for i in summary.items if i.bom_id == 0):
        created.append(_new_line(quote, None, LINE_ITEM, item, pos))
    linked = {i.bom_id: i.quantity for i in summary.items if i.bom_id > 0}
    for bom_pos, entity in enumerate(summary.boms):
        bom = QuoteBom(
            quote=quote,
            name=entity.name,
            position=bom_pos,
            quantity=linked.get(entity.id, 1) if entity.id > 0 else 1,
        )
        db.session.add(bom)
        created += _add_bom_lines(quote, bom, entity)
    _assign_keys(created)
    db.session.commit()
    logging.info("Stored quote %s with %s BOM(s)", quote.id, len(summary.boms))
    return quote


def _add_bom_lines(quote, bom, entity: Bom):
    created = []
    for kind, lines in ((LINE_ITEM, entity.items), (LINE_LABOR, entity.labor), (LINE_EXPENSE, entity.expenses)):
        for pos, line in enumerate(lines):
            created.append(_new_line(quote, bom, kind, line, pos))
    return created


def _apply_lines(quote, bom, kind, existing, changes: LineChanges):
    by_key = {l.key: l for l in existing}
    for pos, entity in changes.updated:
        _merge(by_key[entity.key], entity, pos)
    for key in changes.deleted:
        line = by_key.get(key)
        if line is not None:
            db.session.delete(line)
    return [_new_line(quote, bom, kind, entity, pos) for pos, entity in changes.created]


def apply_changes(quote: Quote, changes: QuoteChanges) -> dict:
    """Write reconciled grid edits to the store.

    Returns ``{bom name: bom id}`` so the caller can stamp ids onto sheets
    created since the last load.
    """
    quote.default_markup = changes.default_markup
    created = _apply_lines(
        quote, None, LINE_ITEM,
        [l for l in quote.summary_lines if l.kind == LINE_ITEM],
        changes.items,
    )

    boms_by_id = {b.id: b for b in quote.boms}
    records = {}
    for bom_id in changes.deleted_boms:
        bom = boms_by_id.get(bom_id)
        if bom is not None:
            logging.info("Deleting BOM %s (%s) from quote %s", bom.id, bom.name, quote.id)
            db.session.delete(bom)

    for position, bc in enumerate(changes.boms):
        if bc.is_new:
            bom = QuoteBom(quote=quote, name=bc.bom.name, position=position)
            db.session.add(bom)
        else:
            bom = boms_by_id[bc.bom.id]
            bom.name = bc.bom.name
            bom.position = position
        if bc.quantity is not None:
            bom.quantity = bc.quantity
        for kind, line_changes in (
            (LINE_ITEM, bc.items),
            (LINE_LABOR, bc.labor),
            (LINE_EXPENSE, bc.expenses),
        ):
            created += _apply_lines(quote, bom, kind, bom.lines_of(kind), line_changes)
        records[bc.bom.name] = bom

    _assign_keys(created)
    db.session.commit()
    ids = {name: bom.id for name, bom in records.items()}
    logging.info("Saved quote %s: %s new line(s)", quote.id, len(created))
    return ids
