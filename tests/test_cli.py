import json
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quotegrid import create_app, db
from quotegrid.models import Quote

QUOTE = {
    'defaultMU': 0.15,
    'boms': [{'id': 3, 'name': 'BOM1',
              'items': [{'id': 3757, 'newItem': 'Cable', 'description': '10m', 'quantity': 2, 'price': 5}]}],
}


def setup_app():
    app = create_app('testing')
    with app.app_context():
        db.drop_all()
        db.create_all()
    return app


def test_render_writes_layout(tmp_path):
    app = setup_app()
    src = tmp_path / 'quote.json'
    src.write_text(json.dumps(QUOTE))
    out = tmp_path / 'layout.json'
    result = app.test_cli_runner().invoke(args=['quotegrid', 'render', str(src), '--out', str(out)])
    assert result.exit_code == 0, result.output
    layout = json.loads(out.read_text())
    assert [s['name'] for s in layout['sheets']] == ['Summary', 'BOM1']


def test_render_snapshot_then_parse(tmp_path):
    app = setup_app()
    runner = app.test_cli_runner()
    src = tmp_path / 'quote.json'
    src.write_text(json.dumps(QUOTE))
    grid = tmp_path / 'grid.json'
    result = runner.invoke(args=['quotegrid', 'render', str(src), '--snapshot', '--out', str(grid)])
    assert result.exit_code == 0, result.output

    parsed_file = tmp_path / 'parsed.json'
    result = runner.invoke(args=['quotegrid', 'parse', str(grid), '--out', str(parsed_file)])
    assert result.exit_code == 0, result.output
    parsed = json.loads(parsed_file.read_text())
    assert parsed['defaultMU'] == 0.15
    bom = parsed['boms'][0]
    assert bom['id'] == 3
    assert bom['items'][0]['newItem'] == 'Cable'


def test_pull_stores_remote_quote(monkeypatch):
    app = setup_app()
    calls = []

    def fake_quote(self, quote_id):
        calls.append(quote_id)
        return dict(QUOTE, name='Remote')

    monkeypatch.setattr('quotegrid.api.provider.ProviderClient.quote', fake_quote)
    result = app.test_cli_runner().invoke(args=['quotegrid', 'pull', '77', '--store'])
    assert result.exit_code == 0, result.output
    assert calls == [77]
    with app.app_context():
        quote = Quote.query.one()
        assert quote.name == 'Remote'
        assert quote.boms[0].name == 'BOM1'


def test_pull_fails_on_empty_answer(monkeypatch):
    app = setup_app()
    monkeypatch.setattr('quotegrid.api.provider.ProviderClient.quote', lambda self, qid: {})
    result = app.test_cli_runner().invoke(args=['quotegrid', 'pull', '1'])
    assert result.exit_code != 0


def test_push_posts_stored_quote(monkeypatch):
    app = setup_app()
    sent = []
    monkeypatch.setattr('quotegrid.api.provider.ProviderClient.quote', lambda self, qid: dict(QUOTE, name='Remote'))
    monkeypatch.setattr(
        'quotegrid.api.provider.ProviderClient.save_quote',
        lambda self, summary: sent.append(summary) or {'saved': True},
    )
    runner = app.test_cli_runner()
    assert runner.invoke(args=['quotegrid', 'pull', '5', '--store']).exit_code == 0
    with app.app_context():
        quote_id = Quote.query.one().id
    result = runner.invoke(args=['quotegrid', 'push', str(quote_id)])
    assert result.exit_code == 0, result.output
    assert '"saved": true' in result.output
    assert sent[0].boms[0].name == 'BOM1'


def test_push_unknown_quote_fails():
    app = setup_app()
    result = app.test_cli_runner().invoke(args=['quotegrid', 'push', '42'])
    assert result.exit_code != 0


def test_render_into_keeps_foreign_sheets(tmp_path):
    app = setup_app()
    runner = app.test_cli_runner()
    src = tmp_path / 'quote.json'
    src.write_text(json.dumps(QUOTE))
    grid = tmp_path / 'grid.json'
    assert runner.invoke(args=['quotegrid', 'render', str(src), '--snapshot', '--out', str(grid)]).exit_code == 0

    book = json.loads(grid.read_text())
    book['sheets'].append({'name': 'Notes', 'values': [['call back Friday']], 'formulas': None})
    book['sheets'].append({'name': 'Old BOM', 'values': [['Quantity', 'Item']], 'formulas': None})
    grid.write_text(json.dumps(book))

    out = tmp_path / 'again.json'
    result = runner.invoke(args=['quotegrid', 'render', str(src), '--into', str(grid), '--out', str(out)])
    assert result.exit_code == 0, result.output
    sheets = {s['name']: s for s in json.loads(out.read_text())['sheets']}
    assert set(sheets) == {'Notes', 'Summary', 'BOM1'}
    assert sheets['Notes']['values'] == [['call back Friday']]
    assert any(str(f).startswith('=') for row in sheets['BOM1']['formulas'] for f in row)


def test_revision_and_browse_use_provider(monkeypatch):
    app = setup_app()
    seen = []
    monkeypatch.setattr(
        'quotegrid.api.provider.ProviderClient.new_revision',
        lambda self, qid: seen.append(('revision', qid)) or {'id': 78},
    )
    monkeypatch.setattr(
        'quotegrid.api.provider.ProviderClient.quotes',
        lambda self, customer_id=None, project_id=None: seen.append(('quotes', customer_id, project_id)) or [],
    )
    monkeypatch.setattr(
        'quotegrid.api.provider.ProviderClient.customers',
        lambda self: seen.append(('customers',)) or [{'id': 1, 'name': 'Acme'}],
    )
    runner = app.test_cli_runner()

    result = runner.invoke(args=['quotegrid', 'revision', '77'])
    assert result.exit_code == 0, result.output
    assert '"id": 78' in result.output

    result = runner.invoke(args=['quotegrid', 'browse', 'quotes', '--customer-id', '4', '--project-id', '9'])
    assert result.exit_code == 0, result.output
    result = runner.invoke(args=['quotegrid', 'browse', 'customers'])
    assert 'Acme' in result.output
    assert seen == [('revision', 77), ('quotes', 4, 9), ('customers',)]


def test_revision_fails_on_empty_answer(monkeypatch):
    app = setup_app()
    monkeypatch.setattr('quotegrid.api.provider.ProviderClient.new_revision', lambda self, qid: {})
    assert app.test_cli_runner().invoke(args=['quotegrid', 'revision', '3']).exit_code != 0
