# quotegrid/quotes/routes.py

from flask import Blueprint, current_app, jsonify, request, url_for

from quotegrid import db
from quotegrid.grid.entities import QuoteSummary
from quotegrid.grid.layout import build_bom, build_workbook, new_bom
from quotegrid.grid.parser import parse_workbook
from quotegrid.grid.reconcile import reconcile_quote
from quotegrid.layout.routes import read_snapshot
from quotegrid.models import Quote
from quotegrid.quotes.utils import (
    apply_changes,
    quote_lists,
    quote_to_summary,
    summary_to_quote,
)

bp = Blueprint('quotes', __name__, url_prefix='/quotes')


@bp.route('/')
def list_quotes():
    quotes = Quote.query.order_by(Quote.id.desc()).all()
    return jsonify(quotes=[
        {'id': q.id, 'name': q.name, 'boms': len(q.boms),
         'url': url_for('quotes.get_quote', quote_id=q.id)}
        for q in quotes
    ])


@bp.route('/', methods=['POST'])
def create_quote():
    """Store a provider payload ``{name?, defaultMU, items, boms, ...}``."""
    data = request.get_json() or {}
    quote = summary_to_quote(QuoteSummary.from_dict(data), name=data.get('name', ''))
    return jsonify(id=quote.id, url=url_for('quotes.get_quote', quote_id=quote.id)), 201


@bp.route('/<int:quote_id>')
def get_quote(quote_id):
    """Quote JSON in the data provider's shape, pick lists included."""
    quote = Quote.query.get_or_404(quote_id)
    payload = quote_to_summary(quote).to_dict()
    payload.update(quote.lists or {})
    payload['name'] = quote.name
    return jsonify(payload)


@bp.route('/<int:quote_id>/layout')
def quote_layout(quote_id):
    quote = Quote.query.get_or_404(quote_id)
    workbook = build_workbook(
        quote_to_summary(quote),
        max_workers=current_app.config.get('QUOTEGRID_BUILD_WORKERS'),
    )
    return jsonify(workbook.to_dict())


@bp.route('/<int:quote_id>/save', methods=['POST'])
def save_quote(quote_id):
    """
    Save a grid snapshot.
    Body: { sheets: [ {name, values, formulas}, … ], bomIds: {name: id}? }.
    Returns the applied changes and the id of every BOM sheet.
    """
    quote = Quote.query.get_or_404(quote_id)
    data = request.get_json() or {}
    parsed = parse_workbook(read_snapshot(data), bom_ids=data.get('bomIds'), quote_id=quote.id)
    changes = reconcile_quote(quote_to_summary(quote), parsed)
    bom_ids = apply_changes(quote, changes)
    return jsonify(changes=changes.to_dict(), bomIds=bom_ids)


@bp.route('/<int:quote_id>/boms', methods=['POST'])
def add_bom(quote_id):
    """Lay out a new, unsaved BOM seeded with the quote's default labor.
    The BOM is stored on the next save."""
    quote = Quote.query.get_or_404(quote_id)
    data = request.get_json(silent=True) or {}
    lists = quote_lists(quote)
    bom = new_bom(lists, name=data.get('name') or 'NEW BOM')
    layout, formulas = build_bom(bom, lists)
    return jsonify(sheet=layout.to_dict(), summaryFormulas=formulas.to_dict()), 201


@bp.route('/<int:quote_id>', methods=['DELETE'])
def delete_quote(quote_id):
    quote = Quote.query.get_or_404(quote_id)
    db.session.delete(quote)
    db.session.commit()
    return jsonify(success=True)
