# -*- coding: utf-8 -*-
"""统一响应包：{"code", "message", "data"}，HTTP 状态码与 code 一致。"""

from flask import jsonify


def json_response(message="success", data=None, code=200):
    resp = jsonify({"code": code, "message": message, "data": data})
    resp.status_code = code
    return resp


def biz_error_response(e):
    """BizError -> 响应包；各蓝图与全局错误处理共用。"""
    return json_response(code=e.code, message=e.message, data=e.data)
