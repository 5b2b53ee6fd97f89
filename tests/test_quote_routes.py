import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quotegrid import create_app, db
from quotegrid.grid.memory import MemoryWorkbook
from quotegrid.models import LINE_ITEM, LINE_LABOR, Quote, QuoteLine

PAYLOAD = {
    'name': 'Lobby refit',
    'defaultMU': 0.15,
    'units': [{'type': 1, 'names': 'Ea,Box'}],
    'expAccounts': ['Freight', 'Travel'],
    'defaultLabor': [{'id': 7, 'sgName': 'Install', 'sgId': 2, 'name': 'Tech', 'price': 50}],
    'items': [{'id': 0, 'name': 'Visit', 'description': 'Site', 'quantity': 1, 'price': 100}],
    'boms': [{
        'id': 0,
        'name': 'BOM1',
        'items': [{'id': 12, 'name': 'Bracket', 'quantity': 4, 'price': 2.5}],
        'labor': [{'id': 7, 'sgName': 'Install', 'sgId': 2, 'name': 'Tech', 'price': 50, 'quantity': 3}],
        'expenses': [],
    }],
}


def setup_app():
    app = create_app('testing')
    with app.app_context():
        db.drop_all()
        db.create_all()
    return app


def load_grid(layout):
    book = MemoryWorkbook()
    for sheet in layout['sheets']:
        s = book.sheet(sheet['name'])
        s.set_values(1, 1, sheet['values'])
        s.apply_directives(sheet['ranges'])
    return book


def snapshot_body(book):
    return {'sheets': [
        {'name': name, 'values': values, 'formulas': formulas}
        for name, (values, formulas) in book.snapshot().items()
    ]}


def test_create_and_fetch_quote():
    app = setup_app()
    client = app.test_client()
    resp = client.post('/quotes/', json=PAYLOAD)
    assert resp.status_code == 201
    quote_id = resp.get_json()['id']

    data = client.get(f'/quotes/{quote_id}').get_json()
    assert data['name'] == 'Lobby refit'
    assert data['expAccounts'] == ['Freight', 'Travel']
    assert [b['name'] for b in data['boms']] == ['BOM1']
    bracket = data['boms'][0]['items'][0]
    assert bracket['quantity'] == 4 and bracket['key'] is not None

    with app.app_context():
        lines = QuoteLine.query.filter_by(quote_id=quote_id).all()
        assert all(l.key == l.id for l in lines)


def test_layout_endpoint_returns_sheets():
    app = setup_app()
    client = app.test_client()
    quote_id = client.post('/quotes/', json=PAYLOAD).get_json()['id']
    layout = client.get(f'/quotes/{quote_id}/layout').get_json()
    assert [s['name'] for s in layout['sheets']] == ['Summary', 'BOM1']
    bom_sheet = layout['sheets'][1]
    assert bom_sheet['values'][2][:2] == [4, 'Bracket']
    assert bom_sheet['totalRow'] == 8


def test_save_applies_grid_edits():
    app = setup_app()
    client = app.test_client()
    quote_id = client.post('/quotes/', json=PAYLOAD).get_json()['id']
    book = load_grid(client.get(f'/quotes/{quote_id}/layout').get_json())

    sheet = book.sheet('BOM1')
    sheet.set_values(3, 1, [[6]])
    sheet.insert_rows(4, 4)
    values, _ = sheet.read_used_range()
    ranges = client.post('/layout/rows-inserted', json={
        'sheet': 'BOM1', 'values': values, 'firstRow': 4, 'lastRow': 4,
    }).get_json()['ranges']
    sheet.apply_directives(ranges)
    sheet.set_values(4, 2, [['Anchor', 'Wall plug', 0.2]])

    resp = client.post(f'/quotes/{quote_id}/save', json=snapshot_body(book))
    assert resp.status_code == 200
    body = resp.get_json()
    assert len(body['changes']['boms'][0]['items']['created']) == 1

    with app.app_context():
        quote = db.session.get(Quote, quote_id)
        bom = quote.boms[0]
        items = bom.lines_of(LINE_ITEM)
        assert [(i.name, i.quantity) for i in items] == [('Bracket', 6), ('Anchor', 1)]
        assert items[1].key == items[1].id
        assert len(bom.lines_of(LINE_LABOR)) == 1
        assert body['bomIds'] == {'BOM1': bom.id}


def test_add_bom_seeds_default_labor():
    app = setup_app()
    client = app.test_client()
    quote_id = client.post('/quotes/', json=PAYLOAD).get_json()['id']
    resp = client.post(f'/quotes/{quote_id}/boms', json={'name': 'Annex'})
    assert resp.status_code == 201
    sheet = resp.get_json()['sheet']
    assert sheet['name'] == 'Annex'
    assert any(row[1] == 'Install' for row in sheet['values'])


def test_grid_errors_are_bad_requests():
    app = setup_app()
    client = app.test_client()
    resp = client.post('/layout/workbook', json={'boms': [{'name': 'A'}, {'name': 'A'}]})
    assert resp.status_code == 400
    assert 'Duplicate' in resp.get_json()['error']
    assert client.get('/quotes/999').status_code == 404
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_unchanged_save_keeps_fields_the_grid_does_not_show():
    app = setup_app()
    client = app.test_client()
    payload = dict(PAYLOAD, boms=[dict(PAYLOAD['boms'][0], items=[
        {'id': 12, 'name': 'Bracket', 'quantity': 4, 'price': 2.5, 'units': 'Box',
         'unitsType': 2, 'vendorId': 4, 'vendor': 'Acme'},
        {'id': 3757, 'name': 'Misc', 'newItem': 'Glue', 'newDescription': 'Tube',
         'quantity': 1, 'price': 3, 'newVendor': 'Corner shop'},
    ])])
    quote_id = client.post('/quotes/', json=payload).get_json()['id']
    book = load_grid(client.get(f'/quotes/{quote_id}/layout').get_json())

    assert client.post(f'/quotes/{quote_id}/save', json=snapshot_body(book)).status_code == 200

    with app.app_context():
        bracket, glue = db.session.get(Quote, quote_id).boms[0].lines_of(LINE_ITEM)
        assert (bracket.units_type, bracket.vendor_id, bracket.vendor) == (2, 4, 'Acme')
        assert (glue.name, glue.new_name, glue.new_description) == ('Misc', 'Glue', 'Tube')
        assert (glue.new_vendor, glue.vendor) == ('Corner shop', '')


def test_bom_summary_quantity_survives_save():
    app = setup_app()
    client = app.test_client()
    payload = dict(PAYLOAD, boms=[dict(PAYLOAD['boms'][0], id=21)])
    payload['items'] = PAYLOAD['items'] + [{'bomId': 21, 'description': 'BOM1', 'quantity': 3}]
    quote_id = client.post('/quotes/', json=payload).get_json()['id']

    layout = client.get(f'/quotes/{quote_id}/layout').get_json()
    summary = layout['sheets'][0]
    row = next(i for i, r in enumerate(summary['values'], 1) if r[2] == 'BOM1')
    assert summary['values'][row - 1][0] == 3

    book = load_grid(layout)
    book.sheet('Summary').set_values(row, 1, [[5]])
    body = client.post(f'/quotes/{quote_id}/save', json=snapshot_body(book)).get_json()
    assert body['changes']['boms'][0]['quantity'] == 5
    assert body['changes']['items']['created'] == []

    with app.app_context():
        quote = db.session.get(Quote, quote_id)
        bom_id = quote.boms[0].id
        assert quote.boms[0].quantity == 5
        assert [l.name for l in quote.summary_lines] == ['Visit']
    data = client.get(f'/quotes/{quote_id}').get_json()
    assert [(i['bomId'], i['quantity']) for i in data['items'] if i['bomId']] == [(bom_id, 5)]


def test_insert_state_is_idle_between_events():
    app = setup_app()
    client = app.test_client()
    assert client.get('/layout/rows-inserted/state').get_json() == {'sheet': None, 'state': 'idle'}
    assert client.get('/layout/rows-inserted/state?sheet=BOM1').get_json()['state'] == 'idle'
