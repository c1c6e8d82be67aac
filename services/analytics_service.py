# -*- coding: utf-8 -*-
"""
analytics_service.py
--------------------------------------------------------------------
执行统计。

范围：
- 组织管理员：不带 user_id 时统计全组织（用例总数取组织内全部用例）；
  带 user_id 时只统计该成员的执行记录及其涉及的用例。
- 其他角色：只统计自己的可见执行记录，指定别人的 user_id 直接拒绝。

用例维度：用例只要有一条终态执行即算“已执行”，通过 / 失败按最近
完成的那条执行计；执行维度：按成员汇总每种结果的条数。
"""

from datetime import datetime
from typing import Dict, List, Optional

from constants.execution import ExecutionResult
from models.execution import TestExecution
from models.test_case import TestCase
from services.access_resolver import AccessResolver
from services.user_service import UserService
from services.workbench_navigator import summarize_executions
from utils.exceptions import AccessDeniedError
from utils.permissions import PermissionScope


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 2) if whole else 0.0


def _latest_results(executions: List[TestExecution]) -> Dict[int, str]:
    """test_case_id -> 最近一次终态结果。"""
    latest: Dict[int, TestExecution] = {}
    for execution in executions:
        if not execution.is_completed:
            continue
        key = (execution.completed_at or datetime.min, execution.id)
        current = latest.get(execution.test_case_id)
        if current is None or key > (current.completed_at or datetime.min, current.id):
            latest[execution.test_case_id] = execution
    return {case_id: e.result for case_id, e in latest.items()}


def _case_counts(cases: List[TestCase], latest: Dict[int, str]) -> Dict[str, int]:
    executed = [latest[c.id] for c in cases if c.id in latest]
    return {
        "total_test_cases": len(cases),
        "executed_count": len(executed),
        "passed_count": executed.count(ExecutionResult.PASSED.value),
        "failed_count": executed.count(ExecutionResult.FAILED.value),
        "not_executed_count": len(cases) - len(executed),
    }


class AnalyticsService:

    @staticmethod
    def _target_user(scope: PermissionScope, user_id: Optional[int]) -> Optional[int]:
        if not scope.sees_all_in_org:
            if user_id is not None and user_id != scope.user_id:
                raise AccessDeniedError()
            return scope.user_id
        if user_id is None:
            return None
        return UserService.get_in_org(scope, user_id).id

    @staticmethod
    def execution_analytics(scope: PermissionScope, user_id: Optional[int] = None) -> dict:
        target = AnalyticsService._target_user(scope, user_id)
        executions = AccessResolver.visible_executions(scope, target)
        latest = _latest_results(executions)

        if target is None:
            cases = AccessResolver.visible_test_cases(scope)
        else:
            seen = {}
            for execution in executions:
                seen.setdefault(execution.test_case_id, execution.test_case)
            cases = list(seen.values())

        overall = _case_counts(cases, latest)
        overall["pass_rate"] = _rate(overall["passed_count"], overall["executed_count"])
        overall["fail_rate"] = _rate(overall["failed_count"], overall["executed_count"])

        by_project: Dict[int, dict] = {}
        by_module: Dict[int, dict] = {}
        cases_by_project: Dict[int, List[TestCase]] = {}
        cases_by_module: Dict[int, List[TestCase]] = {}
        for case in cases:
            module = case.submodule.module
            project = module.project
            by_project.setdefault(project.id, {"project_id": project.id, "project_name": project.name})
            by_module.setdefault(module.id, {
                "module_id": module.id,
                "module_name": module.name,
                "project_id": project.id,
                "project_name": project.name,
            })
            cases_by_project.setdefault(project.id, []).append(case)
            cases_by_module.setdefault(module.id, []).append(case)
        for project_id, row in by_project.items():
            row.update(_case_counts(cases_by_project[project_id], latest))
        for module_id, row in by_module.items():
            row.update(_case_counts(cases_by_module[module_id], latest))

        executions_by_user: Dict[int, List[TestExecution]] = {}
        for execution in executions:
            executions_by_user.setdefault(execution.user_id, []).append(execution)
        by_user = []
        for uid, items in executions_by_user.items():
            row = {"user_id": uid, "username": items[0].user.username}
            row.update(summarize_executions(items))
            by_user.append(row)

        return {
            "user_id": target,
            **overall,
            "executions": summarize_executions(executions),
            "by_project": sorted(by_project.values(), key=lambda r: (r["project_name"], r["project_id"])),
            "by_module": sorted(
                by_module.values(), key=lambda r: (r["project_name"], r["module_name"], r["module_id"])
            ),
            "by_user": sorted(by_user, key=lambda r: (r["username"], r["user_id"])),
        }
