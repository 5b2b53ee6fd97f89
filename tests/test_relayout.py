import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quotegrid.grid.entities import Bom, QuoteSummary
from quotegrid.grid.layout import build_bom, build_workbook
from quotegrid.grid.memory import MemorySheet, MemoryWorkbook
from quotegrid.grid.relayout import RelayoutState, RowInsertHandler

ITEM = {'id': 1, 'name': 'A', 'quantity': 1, 'price': 1}


def sheet_for(bom_data):
    layout, _ = build_bom(Bom.from_dict(bom_data))
    sheet = MemorySheet(layout.name)
    sheet.apply(layout)
    return sheet


def insert(sheet, first, last, handler=None):
    handler = handler or RowInsertHandler()
    sheet.insert_rows(first, last)
    values, _ = sheet.read_used_range()
    ranges = handler.rows_inserted(sheet.name, values, first, last)
    sheet.apply_directives(ranges)
    return ranges


def test_insert_inside_items_seeds_and_widens_total():
    sheet = sheet_for({'name': 'B', 'items': [ITEM, dict(ITEM, id=2, name='B')]})
    assert sheet.formula('E7') == '=SUM(E3:E4)'

    insert(sheet, 4, 4)
    values, _ = sheet.read_used_range()
    assert values[3][:10] == [1, '', '', 0, 0, 0, 0, '', 'No', 'Ea']
    assert sheet.formula('E4') == '=A4*D4'
    assert sheet.formula('F4').startswith('=D4*(1+IF(I4="Yes"')
    assert sheet.formula('E8') == '=SUM(E3:E5)'
    assert sheet.attr('B4', 'color') == '#C6E0B4'


def test_insert_into_labor_group_extends_subtotal():
    labor = [
        {'id': 7, 'sgName': 'Install', 'name': 'Tech', 'price': 50, 'quantity': 1},
        {'id': 8, 'sgName': 'Install', 'name': 'Lead', 'price': 80, 'quantity': 1},
        {'id': 9, 'sgName': 'Wire', 'name': 'Puller', 'price': 40, 'quantity': 1},
    ]
    sheet = sheet_for({'name': 'B', 'labor': labor})
    assert sheet.value('B4') == 'Install' and sheet.value('B7') == 'Wire'

    ranges = insert(sheet, 6, 6)
    values, _ = sheet.read_used_range()
    assert values[5][:9] == [1, '', '', 0, 0, 0, 0, '', 'No']
    assert sheet.formula('A4') == '=SUM(A5:A7)'
    assert any(r.range == ['5:7'] and r.group_by_rows for r in ranges)
    # the Wire group did not change
    assert not any(r.range == ['A8'] and r.formula for r in ranges)
    assert sheet.formula('E11') == '=SUMIFS(E4:E9,D4:D9,"<>")'


def test_insert_on_summary_item_and_labor_rows():
    data = {'boms': [{'id': 1, 'name': 'BOM1', 'items': [ITEM],
                      'labor': [{'id': 7, 'sgName': 'Install', 'price': 50, 'quantity': 1}]}]}
    book = MemoryWorkbook()
    book.apply(build_workbook(QuoteSummary.from_dict(data)))
    summary = book.sheet('Summary')
    # Labor label 9, group 10, role 11, Items label 12, roll-up 13, Total 14
    assert summary.value('A12') == 'Items' and summary.value('A14') == 'Total'

    handler = RowInsertHandler()
    ranges = insert(summary, 14, 14, handler)
    values, _ = summary.read_used_range()
    assert values[13][:7] == [1, '', '', 0, 0, 0, 0]
    assert summary.formula('E15') == '=SUM(E13:E14)'
    assert summary.formula('G1') == '=$G$15'
    assert summary.formula('E6') == '=SUMIFS(E10:E11,D10:D11,"<>")'

    ranges = insert(summary, 11, 11, handler)
    assert not any(r.values for r in ranges)
    assert handler.state is RelayoutState.IDLE


def test_rows_outside_sections_are_skipped():
    sheet = sheet_for({'name': 'B', 'items': [ITEM]})
    handler = RowInsertHandler()
    values, _ = sheet.read_used_range()
    # row 1 is the column header, row 99 does not exist
    assert handler.rows_inserted('B', values, 1, 1) == []
    assert handler.rows_inserted('B', values, 99, 99) == []
    assert handler.rows_inserted('Notes', [['hello']], 1, 1) == []
    assert handler.state_of('B') is RelayoutState.IDLE


def test_insert_below_total_is_ignored():
    sheet = sheet_for({'name': 'B', 'items': [ITEM]})
    sheet.insert_rows(7, 7)
    values, _ = sheet.read_used_range()
    assert RowInsertHandler().rows_inserted('B', values, 7, 7) == []
