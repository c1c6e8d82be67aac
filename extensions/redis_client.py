# extensions/redis_client.py
import redis
from flask import current_app, has_app_context

from config.settings import BaseConfig

_redis_client = None


def get_redis():
    """进程级单例；URL 优先取应用配置 REDIS_URL。"""
    global _redis_client
    if _redis_client is not None:
        return _redis_client
    url = current_app.config.get("REDIS_URL") if has_app_context() else None
    _redis_client = redis.from_url(url or BaseConfig.REDIS_URL)
    return _redis_client
