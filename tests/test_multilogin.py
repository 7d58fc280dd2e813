import hashlib

import pytest
import requests

from harvester.errors import ProviderError
from harvester.multilogin import CLOUD_API, DOCKER_API, Multilogin


class _Response:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class _Http:
    """Records calls and replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):  # noqa: ANN001
        return self._next('POST', url, **kwargs)

    def get(self, url, **kwargs):  # noqa: ANN001
        return self._next('GET', url, **kwargs)


def _start_response(message):
    return _Response({'status': {'message': message}})


def test_sign_in_hashes_password():
    http = _Http(_Response({'data': {'token': 'TOK'}}))
    client = Multilogin('folder', 'profile', http=http)

    assert client.sign_in('me@example.com', 'secret') == 'TOK'

    method, url, kwargs = http.calls[0]
    assert method == 'POST'
    assert url == f"{CLOUD_API}/user/signin"
    assert kwargs['json']['password'] == hashlib.md5(b'secret').hexdigest()
    assert kwargs['verify'] is True


def test_sign_in_failure_raises_provider_error():
    http = _Http(_Response({'status': {'message': 'bad credentials'}}, status_code=401))
    client = Multilogin('folder', 'profile', http=http)

    with pytest.raises(ProviderError):
        client.sign_in('me@example.com', 'wrong')


def test_local_docker_endpoints_skip_tls_verification():
    http = _Http(_Response({'data': {'token': 'TOK'}}))
    client = Multilogin('folder', 'profile', use_local_docker=True, http=http)

    client.sign_in('me@example.com', 'secret')

    _, url, kwargs = http.calls[0]
    assert url.startswith(DOCKER_API)
    assert kwargs['verify'] is False


def test_start_profile_returns_port():
    http = _Http(_start_response('51234'))
    client = Multilogin('folder', 'profile', http=http)
    client.token = 'TOK'

    assert client.start_profile(headless=True) == 51234

    _, url, kwargs = http.calls[0]
    assert url.endswith('/profile/f/folder/p/profile/start')
    assert kwargs['params'] == {'automation_type': 'selenium', 'headless_mode': 'true'}
    assert kwargs['headers']['Authorization'] == 'Bearer TOK'


def test_start_profile_stops_locked_profile_and_retries(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('harvester.multilogin.time.sleep', lambda s: None)
    http = _Http(
        _start_response("can't lock profile"),
        _Response({}),
        _start_response('40000'),
    )
    client = Multilogin('folder', 'profile', http=http)
    client.token = 'TOK'

    assert client.start_profile() == 40000
    assert '/profile/stop/p/profile' in http.calls[1][1]


def test_start_profile_still_locked_raises(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('harvester.multilogin.time.sleep', lambda s: None)
    http = _Http(
        _start_response("browser process is running"),
        _Response({}),
        _start_response("browser process is running"),
    )
    client = Multilogin('folder', 'profile', http=http)
    client.token = 'TOK'

    with pytest.raises(ProviderError, match="still locked"):
        client.start_profile()


def test_start_profile_requires_sign_in():
    client = Multilogin('folder', 'profile', http=_Http())

    with pytest.raises(ProviderError):
        client.start_profile()


def test_unreachable_launcher():
    http = _Http(requests.ConnectionError("refused"))
    client = Multilogin('folder', 'profile', http=http)
    client.token = 'TOK'

    with pytest.raises(ProviderError, match="Cannot connect"):
        client.start_profile()


def test_stop_profile_tolerates_unreachable_launcher():
    http = _Http(requests.ConnectionError("refused"))
    client = Multilogin('folder', 'profile', http=http)
    client.token = 'TOK'

    client.stop_profile()


def test_check_launcher():
    assert Multilogin('f', 'p', http=_Http(_Response({}))).check_launcher() is True
    assert Multilogin('f', 'p', http=_Http(requests.ConnectionError())).check_launcher() is False
