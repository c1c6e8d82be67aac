import re
from typing import Optional

from utils.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def require_text(value, field: str, max_length: int = 128) -> str:
    """必填文本：去首尾空白后不能为空，且不超过 max_length。"""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field}不能为空")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field}长度不能超过 {max_length}")
    return value


def optional_text(value, field: str, max_length: Optional[int] = None) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field}必须是字符串")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field}长度不能超过 {max_length}")
    return value


def require_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field}必须是整数")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field}必须是整数")
