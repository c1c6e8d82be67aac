from flask import Blueprint, request
from controllers.auth_helpers import auth_required
from services.assignment_service import AssignmentService
from services.module_service import ModuleService
from utils.exceptions import BizError
from utils.permissions import get_permission_scope
from utils.response import biz_error_response, json_response
from utils.validators import require_int


module_bp = Blueprint("module", __name__, url_prefix="/api")


@module_bp.errorhandler(BizError)
def _biz_error(e: BizError):
    return biz_error_response(e)


@module_bp.post("/projects/<int:project_id>/modules")
@auth_required()
def create_module(project_id: int):
    data = request.get_json(silent=True) or {}
    module = ModuleService.create(
        get_permission_scope(), project_id, name=data.get("name"), description=data.get("description")
    )
    return json_response(message="创建成功", data=module.to_dict(), code=201)


@module_bp.get("/modules")
@auth_required()
def list_modules():
    project_id = request.args.get("project_id", type=int)
    modules = ModuleService.list(get_permission_scope(), project_id)
    return json_response(data=[m.to_dict() for m in modules])


@module_bp.get("/modules/assigned-to-me")
@auth_required()
def modules_assigned_to_me():
    modules = AssignmentService.modules_assigned_to_me(get_permission_scope())
    return json_response(data=[m.to_dict() for m in modules])


@module_bp.get("/modules/<int:module_id>")
@auth_required()
def get_module(module_id: int):
    return json_response(data=ModuleService.get(get_permission_scope(), module_id).to_dict())


@module_bp.put("/modules/<int:module_id>")
@auth_required()
def update_module(module_id: int):
    data = request.get_json(silent=True) or {}
    module = ModuleService.update(
        get_permission_scope(), module_id, name=data.get("name"), description=data.get("description")
    )
    return json_response(message="更新成功", data=module.to_dict())


@module_bp.delete("/modules/<int:module_id>")
@auth_required()
def delete_module(module_id: int):
    ModuleService.delete(get_permission_scope(), module_id)
    return json_response(message="删除成功")


# ---------- 模块分配 ----------
def _assignment_args():
    data = request.get_json(silent=True) or {}
    return require_int(data.get("user_id"), "user_id"), require_int(data.get("module_id"), "module_id")


@module_bp.post("/modules/assign")
@auth_required()
def assign_module():
    user_id, module_id = _assignment_args()
    outcome = AssignmentService.assign_module(get_permission_scope(), user_id, module_id)
    return json_response(message="分配成功", data=outcome.to_dict())


@module_bp.delete("/modules/assign")
@auth_required()
def unassign_module():
    user_id, module_id = _assignment_args()
    outcome = AssignmentService.unassign_module(get_permission_scope(), user_id, module_id)
    return json_response(message="已取消分配", data=outcome.to_dict())


@module_bp.get("/modules/<int:module_id>/assigned-users")
@auth_required()
def module_assigned_users(module_id: int):
    users = AssignmentService.module_users(get_permission_scope(), module_id)
    return json_response(data=[u.to_dict() for u in users])


@module_bp.post("/modules/<int:module_id>/regenerate-executions")
@auth_required()
def regenerate_executions(module_id: int):
    outcome = AssignmentService.regenerate_executions(get_permission_scope(), module_id)
    return json_response(message="执行记录已同步", data=outcome.to_dict())


# ---------- 子模块 ----------
@module_bp.post("/modules/<int:module_id>/submodules")
@auth_required()
def create_submodule(module_id: int):
    data = request.get_json(silent=True) or {}
    sub = ModuleService.create_submodule(
        get_permission_scope(), module_id, name=data.get("name"), description=data.get("description")
    )
    return json_response(message="创建成功", data=sub.to_dict(), code=201)


@module_bp.get("/modules/<int:module_id>/submodules")
@auth_required()
def list_submodules(module_id: int):
    subs = ModuleService.list_submodules(get_permission_scope(), module_id)
    return json_response(data=[s.to_dict() for s in subs])


@module_bp.get("/submodules/<int:submodule_id>")
@auth_required()
def get_submodule(submodule_id: int):
    return json_response(data=ModuleService.get_submodule(get_permission_scope(), submodule_id).to_dict())


@module_bp.put("/submodules/<int:submodule_id>")
@auth_required()
def update_submodule(submodule_id: int):
    data = request.get_json(silent=True) or {}
    sub = ModuleService.update_submodule(
        get_permission_scope(), submodule_id, name=data.get("name"), description=data.get("description")
    )
    return json_response(message="更新成功", data=sub.to_dict())


@module_bp.delete("/submodules/<int:submodule_id>")
@auth_required()
def delete_submodule(submodule_id: int):
    ModuleService.delete_submodule(get_permission_scope(), submodule_id)
    return json_response(message="删除成功")
