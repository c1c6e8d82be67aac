# -*- coding: utf-8 -*-
"""Datetime helpers for API serialisation.

数据库中的 ``datetime`` 一律按 UTC（无时区信息）存储。接口层统一
输出带时区偏移的 ISO 字符串，展示时区由 ``DISPLAY_TZ_OFFSET_HOURS``
配置决定，未在应用上下文中调用时按 UTC 输出。
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app, has_app_context


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def display_timezone(offset_hours: Optional[int] = None) -> timezone:
    if offset_hours is None:
        offset_hours = 0
        if has_app_context():
            offset_hours = current_app.config.get("DISPLAY_TZ_OFFSET_HOURS", 0)
    return timezone(timedelta(hours=int(offset_hours)))


def utcnow() -> datetime:
    """naive UTC 当前时间，与库中存储格式一致。"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def datetime_to_iso(dt: Optional[datetime], offset_hours: Optional[int] = None) -> Optional[str]:
    """将 ``datetime`` 格式化为展示时区的 ISO 8601 字符串；``None`` 原样返回。"""

    if dt is None:
        return None
    return _ensure_utc(dt).astimezone(display_timezone(offset_hours)).isoformat()
