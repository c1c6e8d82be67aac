from __future__ import annotations

from functools import wraps

from flask import g, request

from extensions.jwt import TokenError, decode_token
from repositories.user_repository import UserRepository
from utils.permissions import PermissionScope, build_permission_scope
from utils.response import json_response

# 非 token 类的认证失败，客户端不应重试
USER_NOT_FOUND = "USER_NOT_FOUND"
TOKEN_PAYLOAD_INVALID = "TOKEN_PAYLOAD_INVALID"
TOKEN_PWD_VERSION_MISMATCH = "TOKEN_PWD_VERSION_MISMATCH"
MISSING_TOKEN = "MISSING_TOKEN"


class AuthFailure(Exception):
    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


def extract_bearer(auth_header: str | None) -> str | None:
    if not auth_header:
        return None
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None


def _resolve_user_from_token(token: str):
    """
    解析 token 并返回 user 对象；失败抛出 AuthFailure(reason, message)。
    """
    try:
        payload = decode_token(token)
    except TokenError as te:
        raise AuthFailure(te.reason, te.message) from te

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthFailure(TOKEN_PAYLOAD_INVALID, "Token 载荷无效")
    user = UserRepository.find_by_id(user_id)
    if not user or not getattr(user, "active", False):
        raise AuthFailure(USER_NOT_FOUND, "用户不存在或被禁用")

    # 用户被迁到其他组织后，旧令牌一律作废
    if payload.get("org") != user.organization_id:
        raise AuthFailure(TOKEN_PAYLOAD_INVALID, "Token 载荷无效")

    token_pwdv = payload.get("pwdv")
    if token_pwdv is None or token_pwdv != user.password_version:
        raise AuthFailure(TOKEN_PWD_VERSION_MISMATCH, "登录状态已失效，请重新登录")

    return user


def _attach_scope(user) -> PermissionScope:
    scope = build_permission_scope(user)
    g.permission_scope = scope
    return scope


def auth_required():
    """
    鉴权装饰器：
      - 验证 Authorization: Bearer <token>
      - 解析 token -> user
      - 构建 PermissionScope，注入 g.permission_scope
    认证失败统一返回 401，data.reason 给出原因码。
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.current_user = None
            g.permission_scope = None
            token = extract_bearer(request.headers.get("Authorization"))
            if not token:
                return json_response(code=401, message="缺少或无效 Authorization", data={"reason": MISSING_TOKEN})
            try:
                user = _resolve_user_from_token(token)
            except AuthFailure as af:
                return json_response(code=401, message=af.message, data={"reason": af.reason})

            g.current_user = user
            _attach_scope(user)

            return fn(*args, **kwargs)

        return wrapper

    return decorator
