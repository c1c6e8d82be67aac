# -*- coding: utf-8 -*-
"""
execution_service.py
--------------------------------------------------------------------
执行记录的读取与状态变更（不负责创建，创建只走 ExecutionReconciler）：
- update_step: 更新单个步骤结果。
- complete: 提交总体结果，必须通过终态校验闸门；失败时可附带缺陷信息。
- save_work: 仅保存备注，不改变结果。
退役记录只读，任何变更都会被拒绝。
"""

import logging
from typing import List, Optional

from constants.execution import (
    ExecutionResult,
    validate_final_execution_result,
    validate_step_status,
)
from extensions.database import atomic
from models.execution import TestExecution
from services.access_resolver import AccessResolver
from services.user_service import UserService
from utils.datetime_helpers import utcnow
from utils.exceptions import NotFoundError, ValidationError
from utils.permissions import PermissionScope, assert_org_admin
from utils.validators import optional_text

logger = logging.getLogger(__name__)


class ExecutionService:

    @staticmethod
    def _require_writable(scope: PermissionScope, execution_id: int) -> TestExecution:
        execution = AccessResolver.require_execution(scope, execution_id)
        if execution.retired:
            raise ValidationError("执行记录已退役，不能修改")
        return execution

    @staticmethod
    def get(scope: PermissionScope, execution_id: int) -> TestExecution:
        return AccessResolver.require_execution(scope, execution_id)

    @staticmethod
    def list_visible(scope: PermissionScope) -> List[TestExecution]:
        return AccessResolver.visible_executions(scope)

    @staticmethod
    def list_for_org(scope: PermissionScope, user_id: Optional[int] = None) -> List[TestExecution]:
        assert_org_admin(scope)
        if user_id is not None:
            UserService.get_in_org(scope, user_id)
        return AccessResolver.visible_executions(scope, user_id=user_id)

    @staticmethod
    def update_step(scope: PermissionScope, execution_id: int, test_step_id: int,
                    status: str, actual_result: Optional[str] = None) -> TestExecution:
        execution = ExecutionService._require_writable(scope, execution_id)
        status = validate_step_status(status)
        actual_result = optional_text(actual_result, "实际结果")
        row = next((r for r in execution.step_results if r.test_step_id == test_step_id), None)
        if row is None:
            raise NotFoundError("步骤结果不存在")
        with atomic("execution.update_step"):
            row.status = status
            if actual_result is not None:
                row.actual_result = actual_result
        logger.info("step result updated execution=%s step=%s status=%s", execution.id, test_step_id, status)
        return execution

    @staticmethod
    def complete(scope: PermissionScope, execution_id: int, overall_result, notes: Optional[str] = None,
                 bug_report: Optional[dict] = None) -> TestExecution:
        execution = ExecutionService._require_writable(scope, execution_id)
        # 校验闸门：任何失败都发生在写库之前
        result = validate_final_execution_result(overall_result)
        notes = optional_text(notes, "备注")
        bug_report = bug_report or {}
        if not isinstance(bug_report, dict):
            raise ValidationError("bug_report 格式不正确")
        with atomic("execution.complete"):
            execution.overall_result = result
            if notes is not None:
                execution.notes = notes
            execution.completed_at = utcnow()
            execution.completed_by = scope.user_id
            if result == ExecutionResult.FAILED.value:
                execution.bug_report_subject = optional_text(bug_report.get("subject"), "缺陷标题", 255)
                execution.bug_report_description = optional_text(bug_report.get("description"), "缺陷描述")
                execution.issue_url = optional_text(bug_report.get("issue_url"), "缺陷链接", 512)
        logger.info("execution completed id=%s result=%s by=%s", execution.id, result, scope.user_id)
        return execution

    @staticmethod
    def save_work(scope: PermissionScope, execution_id: int, notes: Optional[str]) -> TestExecution:
        execution = ExecutionService._require_writable(scope, execution_id)
        notes = optional_text(notes, "备注")
        with atomic("execution.save_work"):
            execution.notes = notes
        return execution
