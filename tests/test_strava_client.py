import pytest

from app.clients.strava_client import StravaApiError, StravaClient


class FakeResponse:
    def __init__(self, status_code, body=None, text=''):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError('no json')
        return self._body


def _client(monkeypatch, response, seen):
    client = StravaClient('secret', timeout=3, base_url='https://example.test/api')

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params, timeout=timeout)
        return response

    monkeypatch.setattr(client.session, 'get', fake_get)
    return client


def test_streams_request(monkeypatch):
    seen = {}
    body = [{'type': 'heartrate', 'data': [120], 'series_type': 'distance', 'original_size': 1, 'resolution': 'high'}]
    client = _client(monkeypatch, FakeResponse(200, body), seen)
    assert client.get_activity_streams(42, ['time', 'heartrate'], resolution='low', series_type='time') == body
    assert seen['url'] == 'https://example.test/api/activities/42/streams/time,heartrate'
    assert seen['params'] == {'resolution': 'low', 'series_type': 'time'}
    assert seen['timeout'] == 3
    assert client.session.headers['Authorization'] == 'Bearer secret'


def test_keyed_response_flattened(monkeypatch):
    body = {'watts': {'data': [200], 'series_type': 'time'}}
    client = _client(monkeypatch, FakeResponse(200, body), {})
    assert client.get_activity_streams(1, ['watts']) == [{'type': 'watts', 'data': [200], 'series_type': 'time'}]


def test_error_status(monkeypatch):
    client = _client(monkeypatch, FakeResponse(404, {'message': 'Record Not Found'}), {})
    with pytest.raises(StravaApiError) as exc:
        client.get_activity_streams(1, ['watts'])
    assert exc.value.status_code == 404
    assert exc.value.message == 'Record Not Found'


def test_error_plain_text(monkeypatch):
    client = _client(monkeypatch, FakeResponse(500, None, text='oops'), {})
    with pytest.raises(StravaApiError) as exc:
        client.get_activity_streams(1, ['watts'])
    assert exc.value.message == 'oops'


def test_context_manager_closes_session(monkeypatch):
    closed = []
    with StravaClient('secret') as client:
        monkeypatch.setattr(client.session, 'close', lambda: closed.append(True))
    assert closed == [True]
