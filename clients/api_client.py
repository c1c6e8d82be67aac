# -*- coding: utf-8 -*-
"""
api_client.py
--------------------------------------------------------------------
服务端 HTTP 客户端（requests）。

凭证刷新：
- 服务端返回 401 且 data.reason 为 TOKEN_EXPIRED / TOKEN_REVOKED 时，
  用保存的账号重新登录后重试；
- 总尝试次数最多 3 次，退避 0.2s、0.4s ... 指数增长；
- 其他 401（密码错误、账号禁用、token 伪造等）立即抛出 AuthenticationError，
  不重试、不吞掉。
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)

REFRESHABLE_REASONS = frozenset({"TOKEN_EXPIRED", "TOKEN_REVOKED"})
MAX_ATTEMPTS = 3
INITIAL_BACKOFF_SECONDS = 0.2


class ApiError(Exception):
    def __init__(self, status: int, message: str, data: Any = None):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.data = data


class AuthenticationError(ApiError):
    """真实的认证失败，不可通过刷新凭证恢复。"""


class CredentialRefreshError(AuthenticationError):
    """重试次数用尽仍未拿到有效凭证。"""


def _reason_of(body: Dict[str, Any]) -> Optional[str]:
    data = body.get("data")
    if isinstance(data, dict):
        return data.get("reason")
    return None


class TcmApiClient:
    """统一的 API 客户端"""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session or requests.Session()
        self.token: Optional[str] = None
        self._sleep = sleep

    def set_token(self, token: str):
        self.token = token

    def _send(self, method: str, path: str, params=None, json_data=None, attach_token=True):
        headers = {"Content-Type": "application/json"}
        if attach_token and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = self.session.request(
            method=method.upper(),
            url=f"{self.base_url}{path}",
            headers=headers,
            params=params,
            json=json_data,
            timeout=self.timeout,
        )
        try:
            body = resp.json()
        except ValueError:
            body = {"message": resp.text, "data": None}
        if not isinstance(body, dict):
            body = {"message": "", "data": body}
        return resp.status_code, body

    def login(self) -> str:
        if not self.username or not self.password:
            raise AuthenticationError(401, "缺少登录凭证")
        status, body = self._send(
            "POST", "/api/auth/login",
            json_data={"username": self.username, "password": self.password},
            attach_token=False,
        )
        if status != 200:
            raise AuthenticationError(status, body.get("message", "登录失败"), body.get("data"))
        self.token = body["data"]["token"]
        return self.token

    def request(self, method: str, path: str, params: Optional[Dict] = None,
                json_data: Optional[Dict] = None) -> Dict[str, Any]:
        if self.token is None and self.username:
            self.login()

        backoff = INITIAL_BACKOFF_SECONDS
        for attempt in range(1, MAX_ATTEMPTS + 1):
            status, body = self._send(method, path, params=params, json_data=json_data)
            if status != 401:
                if status >= 400:
                    raise ApiError(status, body.get("message", ""), body.get("data"))
                return body

            reason = _reason_of(body)
            if reason not in REFRESHABLE_REASONS:
                raise AuthenticationError(status, body.get("message", "认证失败"), body.get("data"))
            if attempt == MAX_ATTEMPTS:
                break
            logger.info("credential refresh attempt=%s reason=%s backoff=%.1fs", attempt, reason, backoff)
            self._sleep(backoff)
            backoff *= 2
            self.login()

        raise CredentialRefreshError(401, f"凭证刷新 {MAX_ATTEMPTS} 次后仍失败")
