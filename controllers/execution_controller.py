from flask import Blueprint, request
from controllers.auth_helpers import auth_required
from services.analytics_service import AnalyticsService
from services.execution_service import ExecutionService
from services.workbench_navigator import WorkbenchNavigator
from utils.exceptions import BizError
from utils.permissions import get_permission_scope
from utils.response import biz_error_response, json_response


execution_bp = Blueprint("execution", __name__, url_prefix="/api")


@execution_bp.errorhandler(BizError)
def _biz_error(e: BizError):
    return biz_error_response(e)


@execution_bp.get("/executions")
@auth_required()
def list_executions():
    items = ExecutionService.list_visible(get_permission_scope())
    return json_response(data=[e.to_dict(include_steps=False) for e in items])


@execution_bp.get("/executions/summary")
@auth_required()
def execution_summary():
    return json_response(data=WorkbenchNavigator.completion_summary(get_permission_scope()))


@execution_bp.get("/admin/executions")
@auth_required()
def list_org_executions():
    user_id = request.args.get("user_id", type=int)
    items = ExecutionService.list_for_org(get_permission_scope(), user_id)
    return json_response(data=[e.to_dict(include_steps=False) for e in items])


@execution_bp.get("/analytics/executions")
@auth_required()
def execution_analytics():
    user_id = request.args.get("user_id", type=int)
    return json_response(data=AnalyticsService.execution_analytics(get_permission_scope(), user_id))


@execution_bp.get("/executions/<int:execution_id>")
@auth_required()
def get_execution(execution_id: int):
    return json_response(data=ExecutionService.get(get_permission_scope(), execution_id).to_dict())


@execution_bp.put("/executions/<int:execution_id>/steps/<int:step_id>")
@auth_required()
def update_step_result(execution_id: int, step_id: int):
    data = request.get_json(silent=True) or {}
    execution = ExecutionService.update_step(
        get_permission_scope(),
        execution_id,
        step_id,
        status=data.get("status"),
        actual_result=data.get("actual_result"),
    )
    return json_response(message="更新成功", data=execution.to_dict())


@execution_bp.put("/executions/<int:execution_id>/complete")
@auth_required()
def complete_execution(execution_id: int):
    data = request.get_json(silent=True) or {}
    execution = ExecutionService.complete(
        get_permission_scope(),
        execution_id,
        overall_result=data.get("overall_result"),
        notes=data.get("notes"),
        bug_report=data.get("bug_report"),
    )
    return json_response(message="执行已完成", data=execution.to_dict())


@execution_bp.put("/executions/<int:execution_id>/save")
@auth_required()
def save_execution_work(execution_id: int):
    data = request.get_json(silent=True) or {}
    execution = ExecutionService.save_work(get_permission_scope(), execution_id, data.get("notes"))
    return json_response(message="已保存", data=execution.to_dict())


# ---------- 工作台导航 ----------
@execution_bp.get("/workbench/next")
@auth_required()
def workbench_next():
    current_id = request.args.get("current_execution_id", type=int)
    return json_response(data=WorkbenchNavigator.next_execution(current_id, get_permission_scope()))


@execution_bp.get("/workbench/previous")
@auth_required()
def workbench_previous():
    current_id = request.args.get("current_execution_id", type=int)
    return json_response(data=WorkbenchNavigator.previous_execution(current_id, get_permission_scope()))
