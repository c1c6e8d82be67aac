from flask import Blueprint, request, g
from controllers.auth_helpers import auth_required, extract_bearer
from extensions.jwt import create_token, revoke_token
from services.user_service import UserService
from utils.response import json_response


auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    if not username or not password:
        return json_response(code=400, message="用户名密码必填")
    user = UserService.authenticate(username, password)
    if not user:
        return json_response(code=401, message="用户名或密码错误", data={"reason": "BAD_CREDENTIALS"})
    token = create_token(user.id, user.organization_id, user.role_names, user.password_version)
    return json_response(data={"token": token, "user": user.to_dict()})


@auth_bp.post("/logout")
def logout():
    token = extract_bearer(request.headers.get("Authorization"))
    if token:
        revoke_token(token)
    return json_response(message="已退出登录")


@auth_bp.get("/me")
@auth_required()
def me():
    return json_response(data=g.current_user.to_dict())
