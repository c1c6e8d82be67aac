# utils/password.py
"""密码哈希（werkzeug）与创建用户时的密码策略校验。"""
import re

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

# (规则, 不满足时的提示)
_CHARACTER_RULES = (
    (re.compile(r"[A-Z]"), "需包含大写字母"),
    (re.compile(r"[a-z]"), "需包含小写字母"),
    (re.compile(r"\d"), "需包含数字"),
)


def hash_password(plain: str) -> str:
    return generate_password_hash(plain)


def verify_password(hashed: str, plain: str) -> bool:
    if not hashed or plain is None:
        return False
    return check_password_hash(hashed, plain)


def validate_password_policy(username: str, pwd) -> list[str]:
    """返回全部未满足的规则；空列表表示通过。"""
    if not isinstance(pwd, str):
        return ["密码必须是字符串"]
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 8)
    errs = [] if len(pwd) >= min_length else [f"长度至少 {min_length}"]
    errs.extend(message for pattern, message in _CHARACTER_RULES if not pattern.search(pwd))
    if username and username.lower() in pwd.lower():
        errs.append("不能包含用户名")
    return errs
