# extensions/jwt.py
"""
HS256 令牌的签发、校验与吊销。

载荷：sub(用户 id) / org(组织 id) / roles / pwdv(密码版本) / exp / iat / jti。
校验失败抛 TokenError，reason 给出原因码，客户端据此决定是否刷新凭证：
只有 TOKEN_EXPIRED / TOKEN_REVOKED 值得重新登录后重试。
吊销：jti 写入 Redis，TTL 与令牌剩余有效期一致。
"""
import base64
import hashlib
import hmac
import json
import time
import uuid

from flask import current_app

from extensions.redis_client import get_redis

TOKEN_EXPIRED = "TOKEN_EXPIRED"
TOKEN_REVOKED = "TOKEN_REVOKED"
TOKEN_INVALID = "TOKEN_INVALID"

REVOKED_KEY_PREFIX = "tcm:revoked:"
_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(ValueError):
    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _sign(signing_input: str) -> str:
    secret = current_app.config["JWT_SECRET_KEY"].encode()
    return _b64encode(hmac.new(secret, signing_input.encode(), hashlib.sha256).digest())


def create_token(user_id: int, organization_id: int, roles, pwdv: int, expires_seconds: int = None) -> str:
    if expires_seconds is None:
        expires_seconds = current_app.config.get("JWT_EXPIRES_SECONDS", 8 * 3600)
    now = int(time.time())
    payload = {
        "sub": user_id,
        "org": organization_id,
        "roles": sorted(roles),
        "pwdv": pwdv,
        "exp": now + expires_seconds,
        "iat": now,
        "jti": uuid.uuid4().hex,
    }
    signing_input = ".".join(
        _b64encode(json.dumps(part, separators=(",", ":")).encode()) for part in (_HEADER, payload)
    )
    return f"{signing_input}.{_sign(signing_input)}"


def decode_token(token: str, check_revoked: bool = True) -> dict:
    try:
        header_seg, payload_seg, signature = token.split(".")
        if not hmac.compare_digest(_sign(f"{header_seg}.{payload_seg}"), signature):
            raise TokenError(TOKEN_INVALID, "签名不匹配")
        payload = json.loads(_b64decode(payload_seg).decode())
    except TokenError:
        raise
    except (ValueError, TypeError, UnicodeDecodeError) as exc:
        raise TokenError(TOKEN_INVALID, "token不合法") from exc

    if not isinstance(payload, dict):
        raise TokenError(TOKEN_INVALID, "token不合法")
    exp = payload.get("exp")
    if exp and time.time() > exp:
        raise TokenError(TOKEN_EXPIRED, "token已过期")
    if check_revoked and payload.get("jti") and is_token_revoked(payload["jti"]):
        raise TokenError(TOKEN_REVOKED, "token已失效")
    return payload


def revoke_token(token: str):
    """登出时调用；令牌无法解析或缺少 jti/exp 时什么都不做。"""
    try:
        payload = decode_token(token, check_revoked=False)
    except TokenError:
        return
    jti, exp = payload.get("jti"), payload.get("exp")
    if not jti or not exp:
        return
    ttl = max(int(exp - time.time()), 1)
    get_redis().setex(f"{REVOKED_KEY_PREFIX}{jti}", ttl, "1")


def is_token_revoked(jti: str) -> bool:
    return bool(get_redis().get(f"{REVOKED_KEY_PREFIX}{jti}"))
