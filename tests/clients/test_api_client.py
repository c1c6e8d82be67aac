# -*- coding: utf-8 -*-
"""客户端凭证刷新：只对 token 过期/吊销重试，次数与退避有上限。"""

import pytest

from clients.api_client import (
    ApiError,
    AuthenticationError,
    CredentialRefreshError,
    TcmApiClient,
)


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body
        self.text = str(body)

    def json(self):
        return self._body


class FakeSession:
    """按顺序回放预设响应，并记录每次请求。"""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append((method, url, headers.get("Authorization")))
        return self._responses.pop(0)


def _login_ok(token):
    return FakeResponse(200, {"code": 200, "message": "success", "data": {"token": token, "user": {}}})


def _unauthorized(reason):
    return FakeResponse(401, {"code": 401, "message": "denied", "data": {"reason": reason}})


def _ok(data):
    return FakeResponse(200, {"code": 200, "message": "success", "data": data})


def _client(responses):
    sleeps = []
    session = FakeSession(responses)
    client = TcmApiClient("http://tcm.local/", "alice", "Passw0rd!", session=session, sleep=sleeps.append)
    return client, session, sleeps


def test_expired_token_is_refreshed_once():
    client, session, sleeps = _client([
        _login_ok("t1"),
        _unauthorized("TOKEN_EXPIRED"),
        _login_ok("t2"),
        _ok([1, 2]),
    ])

    body = client.request("GET", "/api/executions")

    assert body["data"] == [1, 2]
    assert sleeps == [0.2]
    assert session.calls[-1] == ("GET", "http://tcm.local/api/executions", "Bearer t2")


def test_refresh_is_bounded_with_backoff():
    client, session, sleeps = _client([
        _login_ok("t1"),
        _unauthorized("TOKEN_REVOKED"),
        _login_ok("t2"),
        _unauthorized("TOKEN_EXPIRED"),
        _login_ok("t3"),
        _unauthorized("TOKEN_EXPIRED"),
    ])

    with pytest.raises(CredentialRefreshError):
        client.request("GET", "/api/executions")

    assert sleeps == pytest.approx([0.2, 0.4])
    api_calls = [c for c in session.calls if c[1].endswith("/api/executions")]
    assert len(api_calls) == 3


@pytest.mark.parametrize("reason", ["USER_NOT_FOUND", "TOKEN_INVALID", "TOKEN_PWD_VERSION_MISMATCH", None])
def test_other_auth_failures_surface_immediately(reason):
    client, session, sleeps = _client([_login_ok("t1"), _unauthorized(reason)])

    with pytest.raises(AuthenticationError) as exc_info:
        client.request("GET", "/api/projects")

    assert not isinstance(exc_info.value, CredentialRefreshError)
    assert sleeps == []
    assert len(session.calls) == 2


def test_bad_credentials_on_login_are_not_retried():
    client, session, sleeps = _client([_unauthorized("BAD_CREDENTIALS")])

    with pytest.raises(AuthenticationError):
        client.request("GET", "/api/projects")

    assert len(session.calls) == 1
    assert sleeps == []


def test_non_auth_errors_raise_api_error():
    client, _, sleeps = _client([
        _login_ok("t1"),
        FakeResponse(403, {"code": 403, "message": "资源不可访问", "data": None}),
    ])

    with pytest.raises(ApiError) as exc_info:
        client.request("GET", "/api/modules/3")

    assert exc_info.value.status == 403
    assert not isinstance(exc_info.value, AuthenticationError)
    assert sleeps == []
