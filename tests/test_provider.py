import os
import sys

import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quotegrid.api import provider
from quotegrid.api.provider import ProviderClient
from quotegrid.grid.entities import QuoteSummary


class DummyResponse:
    def __init__(self, status_code=200, data=None, content_type='application/json; charset=utf-8'):
        self.status_code = status_code
        self._data = data if data is not None else {'ok': True}
        self.headers = {'content-type': content_type} if content_type else {}

    def json(self):
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(str(self.status_code))


def test_get_sends_options_as_query(monkeypatch):
    client = ProviderClient(base_url='http://provider/api/')
    seen = {}

    def fake_request(method, url, timeout=None, **kwargs):
        seen.update(method=method, url=url, **kwargs)
        return DummyResponse(data={'id': 5, 'boms': []})

    monkeypatch.setattr(client.session, 'request', fake_request)
    assert client.quote(5) == {'id': 5, 'boms': []}
    assert seen['method'] == 'GET'
    assert seen['url'] == 'http://provider/api/quote'
    assert seen['params'] == {'id': 5}


def test_post_sends_json_body(monkeypatch):
    client = ProviderClient(base_url='http://provider/api')
    seen = {}

    def fake_request(method, url, timeout=None, **kwargs):
        seen.update(method=method, url=url, **kwargs)
        return DummyResponse()

    monkeypatch.setattr(client.session, 'request', fake_request)
    client.save_quote(QuoteSummary(id=3, default_markup=0.1))
    assert seen['url'] == 'http://provider/api/quote'
    assert seen['json']['data']['id'] == 3
    assert seen['json']['data']['defaultMU'] == 0.1


def test_non_json_answer_gives_empty_dict(monkeypatch):
    client = ProviderClient(base_url='http://provider/api/')
    monkeypatch.setattr(
        client.session, 'request',
        lambda method, url, timeout=None, **kw: DummyResponse(content_type='text/html'),
    )
    assert client.get('quotes') == {}


def test_retries_server_errors_then_gives_up(monkeypatch):
    client = ProviderClient(base_url='http://provider/api/')
    statuses = []

    def fake_request(method, url, timeout=None, **kwargs):
        statuses.append(500)
        return DummyResponse(status_code=500)

    monkeypatch.setattr(client.session, 'request', fake_request)
    monkeypatch.setattr(provider.time, 'sleep', lambda s: None)
    assert client.get('customers') == {}
    assert len(statuses) == provider.MAX_TRIES


def test_quotes_filters(monkeypatch):
    client = ProviderClient()
    seen = []
    monkeypatch.setattr(client, 'get', lambda path, options=None: seen.append((path, options)) or [])
    client.quotes(customer_id=4, project_id=9)
    client.projects()
    assert seen == [('quotes', {'projectId': 9, 'customerId': 4}), ('projects', None)]


def test_new_revision_posts_quote_id(monkeypatch):
    client = ProviderClient(base_url='http://provider/api/')
    seen = {}

    def fake_request(method, url, timeout=None, **kwargs):
        seen.update(method=method, url=url, **kwargs)
        return DummyResponse(data={'id': 12})

    monkeypatch.setattr(client.session, 'request', fake_request)
    assert client.new_revision(11) == {'id': 12}
    assert (seen['method'], seen['url']) == ('POST', 'http://provider/api/quote-revision')
    assert seen['json'] == {'data': {'quoteId': 11}}
