# quotegrid/layout/routes.py

"""Stateless engine endpoints: the host posts data or a grid snapshot and
gets directives or structured data back."""

from collections import OrderedDict

from flask import Blueprint, current_app, jsonify, request

from quotegrid.grid.entities import Bom, QuoteLists, QuoteSummary
from quotegrid.grid.errors import LayoutError
from quotegrid.grid.layout import build_bom, build_workbook
from quotegrid.grid.parser import parse_workbook
from quotegrid.grid.relayout import RowInsertHandler

bp = Blueprint('layout', __name__, url_prefix='/layout')

# Shared across requests so inserts on one sheet are handled one at a time.
insert_handler = RowInsertHandler()


def read_snapshot(data: dict) -> 'OrderedDict':
    """``{sheets: [{name, values, formulas?}, …]}`` -> ``{name: (values, formulas)}``."""
    sheets = OrderedDict()
    for sheet in data.get('sheets') or []:
        name = sheet.get('name')
        if not name:
            raise LayoutError('Every sheet in a snapshot needs a name')
        sheets[name] = (sheet.get('values') or [], sheet.get('formulas'))
    return sheets


@bp.route('/workbook', methods=['POST'])
def workbook():
    summary = QuoteSummary.from_dict(request.get_json() or {})
    layout = build_workbook(summary, max_workers=current_app.config.get('QUOTEGRID_BUILD_WORKERS'))
    return jsonify(layout.to_dict())


@bp.route('/bom', methods=['POST'])
def bom():
    """
    Body: { bom: {...}, units?, expAccounts? }.
    Returns the sheet layout plus the cells the Summary should link to.
    """
    data = request.get_json() or {}
    layout, formulas = build_bom(Bom.from_dict(data.get('bom') or {}), QuoteLists.from_dict(data))
    return jsonify(sheet=layout.to_dict(), summaryFormulas=formulas.to_dict())


@bp.route('/rows-inserted', methods=['POST'])
def rows_inserted():
    """
    Body: { sheet, values, firstRow, lastRow, units?, expAccounts? }.
    ``values`` is the sheet's used range read after the insert.
    """
    data = request.get_json() or {}
    ranges = insert_handler.rows_inserted(
        data.get('sheet') or '',
        data.get('values') or [],
        int(data.get('firstRow') or 0),
        int(data.get('lastRow') or 0),
        QuoteLists.from_dict(data),
    )
    return jsonify(ranges=[r.to_dict() for r in ranges])


@bp.route('/parse', methods=['POST'])
def parse():
    data = request.get_json() or {}
    summary = parse_workbook(read_snapshot(data), bom_ids=data.get('bomIds'), quote_id=int(data.get('id') or 0))
    return jsonify(summary.to_dict())


@bp.route('/rows-inserted/state')
def insert_state():
    """State of the insert handler, for one sheet with ``?sheet=`` or overall."""
    sheet = request.args.get('sheet')
    state = insert_handler.state_of(sheet) if sheet else insert_handler.state
    return jsonify(sheet=sheet, state=state.value)
