# -*- coding: utf-8 -*-
"""constants/execution.py
--------------------------------------------------------------------
执行记录与步骤结果相关的枚举常量。

业务约束：
- 执行记录总体结果：PENDING / PASSED / FAILED / BLOCKED / PARTIALLY_PASSED。
- 步骤结果：PENDING / PASSED / FAILED / BLOCKED。
- PENDING 永远不代表“已完成”，完成动作只能提交四种终态之一。
- 历史数据里残留的 NOT_EXECUTED / Pass / 空串等取值，只在读取时
  统一归一化，写入路径一律严格校验。
"""

from enum import Enum
from typing import Optional

from utils.exceptions import ValidationError


class ExecutionResult(Enum):
    """执行记录总体结果。"""

    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    BLOCKED = "BLOCKED"
    PARTIALLY_PASSED = "PARTIALLY_PASSED"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


TERMINAL_RESULTS = (
    ExecutionResult.PASSED.value,
    ExecutionResult.FAILED.value,
    ExecutionResult.BLOCKED.value,
    ExecutionResult.PARTIALLY_PASSED.value,
)


class StepStatus(Enum):
    """单个步骤的执行结果。"""

    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    BLOCKED = "BLOCKED"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


def validate_final_execution_result(result) -> str:
    """完成执行时的校验闸门：只接受与终态完全一致的取值，大小写或空白不同也拒绝。"""

    if not isinstance(result, str) or result not in TERMINAL_RESULTS:
        raise ValidationError(f"执行结果必须是 {list(TERMINAL_RESULTS)} 之一")
    return result


def validate_step_status(status) -> str:
    if not isinstance(status, str) or status not in StepStatus.values():
        raise ValidationError(f"步骤结果必须是 {StepStatus.values()} 之一")
    return status


def _coerce(value: Optional[str], allowed: list[str]) -> str:
    if isinstance(value, str):
        upper = value.strip().upper()
        if upper in allowed:
            return upper
    return ExecutionResult.PENDING.value


def coerce_stored_result(value: Optional[str]) -> str:
    """读取时归一化库中的历史取值。"""
    return _coerce(value, ExecutionResult.values())


def coerce_stored_step_status(value: Optional[str]) -> str:
    return _coerce(value, StepStatus.values())
