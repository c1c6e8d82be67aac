from flask import Blueprint, request
from controllers.auth_helpers import auth_required
from services.user_service import UserService
from utils.exceptions import BizError
from utils.permissions import get_permission_scope
from utils.response import biz_error_response, json_response


user_bp = Blueprint("user", __name__)


@user_bp.errorhandler(BizError)
def _biz_error(e: BizError):
    return biz_error_response(e)


@user_bp.post("")
@auth_required()
def create_user():
    data = request.get_json(silent=True) or {}
    user = UserService.create_user(
        get_permission_scope(),
        username=data.get("username"),
        password=data.get("password"),
        roles=data.get("roles") or data.get("role"),
        email=data.get("email"),
        full_name=data.get("full_name"),
    )
    return json_response(message="创建成功", data=user.to_dict(), code=201)


@user_bp.get("")
@auth_required()
def list_users():
    users = UserService.list_users(get_permission_scope(), role=request.args.get("role"))
    return json_response(data=[u.to_dict() for u in users])


@user_bp.get("/by-role/<string:role>")
@auth_required()
def users_by_role(role: str):
    users = UserService.list_users(get_permission_scope(), role=role)
    return json_response(data=[u.to_dict() for u in users])


@user_bp.delete("/<int:user_id>")
@auth_required()
def delete_user(user_id: int):
    UserService.delete_user(get_permission_scope(), user_id)
    return json_response(message="删除成功")
