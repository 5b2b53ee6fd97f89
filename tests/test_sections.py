import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quotegrid.grid.directives import COLOR_INPUT
from quotegrid.grid.entities import Bom, Expense, Item, LaborEntry, QuoteLists
from quotegrid.grid.formulas import SummaryFormulas
from quotegrid.grid.sections import (
    BOM_WIDTH,
    SUMMARY_WIDTH,
    build_expenses,
    build_items,
    build_labor,
    group_labor,
)


def _find(ranges, ref, attr):
    for r in ranges:
        if ref in r.range and getattr(r, attr) is not None:
            return getattr(r, attr)
    return None


def test_new_item_uses_typed_text():
    item = Item(id=3757, name='Catalog placeholder', new_name='Cable', description='10m',
                quantity=2, unit_price=5)
    block = build_items([item], 2, False)
    row = block.values[1]
    assert len(row) == BOM_WIDTH
    assert row[:10] == [2, 'Cable', '10m', 5, 0, 0, 0, '', 'No', '']
    assert row[-3:] == ['', 3757, 0]
    assert block.span.label_row == 2 and block.span.last_row == 3


def test_item_row_directives():
    units = QuoteLists(units=[{'type': 1, 'names': 'Ea,Box'}, {'type': 3, 'names': 'Hr'}])
    item = Item(id=5, name='Bolt', quantity=1, unit_price=2, markup_percent=12, discount=True,
                units_type=None)
    block = build_items([item], 2, False, units)
    assert block.values[1][7] == 0.12
    assert block.values[1][8] == 'Yes'
    assert _find(block.ranges, 'E3', 'formula') == '=A3*D3'
    assert _find(block.ranges, 'G3', 'formula') == '=A3*F3'
    assert _find(block.ranges, 'J3', 'data_validation') == {
        'list': {'inCellDropDown': True, 'source': 'Ea,Box'}
    }
    assert _find(block.ranges, 'D3', 'color') == COLOR_INPUT


def test_summary_rollup_item_links_bom_total():
    formulas = SummaryFormulas()
    formulas.record_total('BOM1', 6)
    rollup = Item(quantity=1, name='BOM1', description='BOM1', bom_id=21)
    block = build_items([rollup], 10, True, formulas=formulas)
    assert len(block.values[1]) == SUMMARY_WIDTH
    assert block.values[1][-3:] == ['', 0, 21]
    assert _find(block.ranges, 'D11', 'formula') == "='BOM1'!E6"
    assert _find(block.ranges, 'F11', 'formula') == "='BOM1'!G6"
    assert _find(block.ranges, 'D11:G11', 'number_format') == '$#,###.00'


def test_labor_dedup_keeps_price_variants():
    bom = Bom(name='BOM1', labor=[
        LaborEntry(id=7, service_group_name='Install', unit_price=50, quantity=1),
        LaborEntry(id=7, service_group_name='Install', unit_price=50, quantity=2),
        LaborEntry(id=7, service_group_name='Install', unit_price=65, quantity=1),
        LaborEntry(id=9, service_group_name='Wire', unit_price=40, quantity=1),
    ])
    groups = group_labor([bom])
    assert list(groups) == ['Install', 'Wire']
    assert [(l.id, l.unit_price) for l in groups['Install']] == [(7, 50), (7, 65)]


def test_labor_block_groups_and_records_refs():
    bom = Bom(name='BOM1', labor=[
        LaborEntry(id=7, service_group_name='Install', service_group_id=2, name='Tech',
                   unit_price=50, quantity=3),
        LaborEntry(id=8, service_group_name='Install', service_group_id=2, name='Lead',
                   unit_price=80, quantity=1),
    ])
    formulas = SummaryFormulas()
    block = build_labor([bom], 3, False, formulas)
    assert [r[1] for r in block.values] == ['', 'Install', '', '']
    assert block.values[2][:4] == [3, '', 'Tech', 50]
    assert block.values[2][-3:] == ['', 7, 2]
    assert block.group_rows == [4]
    assert _find(block.ranges, 'A4', 'formula') == '=SUM(A5:A6)'
    assert _find(block.ranges, '5:6', 'group_by_rows') is True
    assert formulas.labor_refs('Install', 8).qty == "'BOM1'!A6"


def test_expense_rows():
    exp = Expense(quantity=1, unit_price=20, account_id=5, account_name='Freight', key=3)
    block = build_expenses([exp], 6)
    assert block.values[1][:4] == [1, '', 'Freight', 20]
    assert block.values[1][-3:] == [3, 5, '']
    assert _find(block.ranges, 'F7', 'formula').startswith('=D7*(1+IF(I7="Yes"')
