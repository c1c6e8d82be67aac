from flask import Blueprint, request
from controllers.auth_helpers import auth_required
from services.assignment_service import AssignmentService
from services.project_service import ProjectService
from utils.exceptions import BizError
from utils.permissions import get_permission_scope
from utils.response import biz_error_response, json_response
from utils.validators import require_int


project_bp = Blueprint("project", __name__, url_prefix="/api/projects")


@project_bp.errorhandler(BizError)
def _biz_error(e: BizError):
    return biz_error_response(e)


@project_bp.post("")
@auth_required()
def create_project():
    data = request.get_json(silent=True) or {}
    project = ProjectService.create(
        get_permission_scope(),
        name=data.get("name"),
        description=data.get("description"),
    )
    return json_response(message="创建成功", data=project.to_dict(), code=201)


@project_bp.get("")
@auth_required()
def list_projects():
    items = ProjectService.list(get_permission_scope())
    return json_response(data=[p.to_dict() for p in items])


@project_bp.get("/assigned-to-me")
@auth_required()
def projects_assigned_to_me():
    items = ProjectService.list_assigned_to_me(get_permission_scope())
    return json_response(data=[p.to_dict() for p in items])


@project_bp.get("/<int:project_id>")
@auth_required()
def get_project(project_id: int):
    project = ProjectService.get(get_permission_scope(), project_id)
    return json_response(data=project.to_dict())


@project_bp.put("/<int:project_id>")
@auth_required()
def update_project(project_id: int):
    data = request.get_json(silent=True) or {}
    project = ProjectService.update(
        get_permission_scope(),
        project_id,
        name=data.get("name"),
        description=data.get("description"),
    )
    return json_response(message="更新成功", data=project.to_dict())


@project_bp.delete("/<int:project_id>")
@auth_required()
def delete_project(project_id: int):
    ProjectService.delete(get_permission_scope(), project_id)
    return json_response(message="删除成功")


# ---------- 项目分配 ----------
def _assignment_args():
    data = request.get_json(silent=True) or {}
    return require_int(data.get("user_id"), "user_id"), require_int(data.get("project_id"), "project_id")


@project_bp.post("/assign")
@auth_required()
def assign_project():
    user_id, project_id = _assignment_args()
    created = AssignmentService.assign_project(get_permission_scope(), user_id, project_id)
    return json_response(message="分配成功" if created else "已分配", data={"created": created})


@project_bp.delete("/assign")
@auth_required()
def unassign_project():
    user_id, project_id = _assignment_args()
    removed = AssignmentService.unassign_project(get_permission_scope(), user_id, project_id)
    return json_response(message="已取消分配", data={"removed": removed})


@project_bp.get("/<int:project_id>/assigned-users")
@auth_required()
def project_assigned_users(project_id: int):
    users = AssignmentService.project_users(get_permission_scope(), project_id)
    return json_response(data=[u.to_dict() for u in users])
