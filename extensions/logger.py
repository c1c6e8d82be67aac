# extensions/logger.py
"""
日志初始化：
- 根 logger 每个进程只装一次 handler：stdout + 可选的滚动文件（app.log / error.log）。
- 每条记录带 request_id / user_id / org_id，便于按请求和租户追踪。
- 访问日志走独立的 tcm.access logger，超过 LOG_SLOW_REQUEST_MS 记为 WARNING。
- 兜底异常处理：未预期的异常记录堆栈，返回统一的 500 响应包。
"""
import json
import logging
import os
import sys
import time
import uuid
from logging.handlers import RotatingFileHandler

from flask import g, has_request_context, request
from werkzeug.exceptions import HTTPException

_REQUEST_ID_KEY = "request_id"
_CONTEXT_FIELDS = ("request_id", "user_id", "org_id")

access_logger = logging.getLogger("tcm.access")


class JsonFormatter(logging.Formatter):
    def format(self, record):
        data = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value not in (None, "-"):
                data[key] = value
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


class RequestContextFilter(logging.Filter):
    """把当前请求的 request_id 与登录用户写进日志记录。"""

    def filter(self, record):
        record.request_id = "-"
        record.user_id = "-"
        record.org_id = "-"
        if has_request_context():
            record.request_id = getattr(g, _REQUEST_ID_KEY, "-")
            scope = getattr(g, "permission_scope", None)
            if scope is not None:
                record.user_id = scope.user_id
                record.org_id = scope.organization_id
        return True


def _ensure_request_id():
    if not hasattr(g, _REQUEST_ID_KEY):
        setattr(g, _REQUEST_ID_KEY, request.headers.get("X-Request-ID") or uuid.uuid4().hex)
    return getattr(g, _REQUEST_ID_KEY)


def _build_formatter(cfg):
    if cfg["LOG_JSON"]:
        return JsonFormatter()
    return logging.Formatter(
        "%(asctime)s | %(levelname)s | %(request_id)s | u=%(user_id)s o=%(org_id)s | %(name)s | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )


def _rotating_handler(cfg, filename, level):
    handler = RotatingFileHandler(
        os.path.join(cfg["LOG_DIR"], filename),
        maxBytes=cfg["LOG_MAX_BYTES"],
        backupCount=cfg["LOG_BACKUP_COUNT"],
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _configure_handlers(cfg, level):
    root = logging.getLogger()
    # 同一进程只装一次（测试里会反复 create_app）
    if getattr(root, "_tcm_configured", False):
        return
    root._tcm_configured = True
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    handlers = [console]
    if cfg.get("LOG_TO_FILE", True):
        os.makedirs(cfg["LOG_DIR"], exist_ok=True)
        handlers.append(_rotating_handler(cfg, "app.log", level))
        handlers.append(_rotating_handler(cfg, "error.log", logging.ERROR))

    formatter = _build_formatter(cfg)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RequestContextFilter())
        root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.INFO)


def init_logger(app):
    cfg = app.config
    level = getattr(logging, cfg["LOG_LEVEL"].upper(), logging.INFO)
    _configure_handlers(cfg, level)
    slow_ms = cfg.get("LOG_SLOW_REQUEST_MS", 1000)
    app.logger.info("Logger initialized app=%s", cfg.get("APP_NAME"))

    @app.before_request
    def _before():
        g._req_start = time.time()
        _ensure_request_id()
        access_logger.info("REQ %s %s from %s", request.method, request.path, request.remote_addr)

    @app.after_request
    def _after(resp):
        duration = (time.time() - getattr(g, "_req_start", time.time())) * 1000
        resp.headers["X-Request-ID"] = getattr(g, _REQUEST_ID_KEY, "-")
        log = access_logger.warning if duration >= slow_ms else access_logger.info
        log("RESP %s %s %s %.1fms", request.method, request.path, resp.status_code, duration)
        return resp

    @app.errorhandler(Exception)
    def _unhandled(e):
        from utils.response import json_response

        if isinstance(e, HTTPException):
            return json_response(code=e.code, message=e.description)
        app.logger.exception("UNHANDLED EXCEPTION %s %s", request.method, request.path)
        return json_response(code=500, message="服务器内部错误")
