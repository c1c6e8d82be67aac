# -*- coding: utf-8 -*-
"""
workbench_navigator.py
--------------------------------------------------------------------
执行工作台的上一条 / 下一条导航。

排序：(模块名, 子模块名, 用例创建时间, 用例 id)，只在调用者可见的
执行记录范围内移动。跨模块时附带 module_transition 标记；走到最后
一条时返回完成汇总，汇总每次都重新计算，不做缓存。
"""

from typing import Dict, List, Optional

from constants.execution import ExecutionResult
from models.execution import TestExecution
from services.access_resolver import AccessResolver
from utils.exceptions import ValidationError
from utils.permissions import PermissionScope


def _module_of(execution: TestExecution):
    return execution.test_case.submodule.module


def summarize_executions(executions: List[TestExecution]) -> Dict[str, int]:
    counts = {r: 0 for r in ExecutionResult.values()}
    for execution in executions:
        counts[execution.result] += 1
    return {
        "total": len(executions),
        "passed": counts[ExecutionResult.PASSED.value],
        "failed": counts[ExecutionResult.FAILED.value],
        "blocked": counts[ExecutionResult.BLOCKED.value],
        "partially_passed": counts[ExecutionResult.PARTIALLY_PASSED.value],
        "pending": counts[ExecutionResult.PENDING.value],
    }


class WorkbenchNavigator:

    @staticmethod
    def completion_summary(scope: PermissionScope) -> Dict[str, int]:
        return summarize_executions(AccessResolver.visible_executions(scope))

    @staticmethod
    def _transition(current: TestExecution, neighbour: TestExecution) -> Optional[dict]:
        src, dst = _module_of(current), _module_of(neighbour)
        if src.id == dst.id:
            return None
        return {
            "from_module_id": src.id,
            "from_module_name": src.name,
            "to_module_id": dst.id,
            "to_module_name": dst.name,
        }

    @staticmethod
    def _step(current_execution_id: Optional[int], scope: PermissionScope, direction: int) -> dict:
        ordered = AccessResolver.visible_executions(scope)
        result = {"execution": None, "module_transition": None, "completed": False, "summary": None}

        if current_execution_id is None:
            if direction > 0 and ordered:
                result["execution"] = ordered[0].to_dict()
            elif direction > 0:
                result["completed"] = True
                result["summary"] = summarize_executions(ordered)
            return result

        current = AccessResolver.require_execution(scope, current_execution_id)
        ids = [e.id for e in ordered]
        if current.id not in ids:
            raise ValidationError("当前执行记录不在工作台列表中")

        index = ids.index(current.id) + direction
        if 0 <= index < len(ordered):
            neighbour = ordered[index]
            result["execution"] = neighbour.to_dict()
            result["module_transition"] = WorkbenchNavigator._transition(current, neighbour)
        elif direction > 0:
            result["completed"] = True
            result["summary"] = summarize_executions(ordered)
        return result

    @staticmethod
    def next_execution(current_execution_id: Optional[int], scope: PermissionScope) -> dict:
        return WorkbenchNavigator._step(current_execution_id, scope, 1)

    @staticmethod
    def previous_execution(current_execution_id: Optional[int], scope: PermissionScope) -> dict:
        return WorkbenchNavigator._step(current_execution_id, scope, -1)
