# -*- coding: utf-8 -*-
"""
execution_reconciler.py
--------------------------------------------------------------------
执行记录同步器。执行记录是“模块分配 × 用例”的派生数据，只在这里创建。

入口（全部无状态，必须在调用方打开的 atomic() 事务内调用）：
- on_test_case_created(case): 给模块下所有非管理员的已分配用户补齐记录。
- on_module_assigned(user, module): 先恢复退役记录，再补齐缺失记录。
- on_module_unassigned(user, module): 退役该用户在模块下的全部记录。
- on_test_case_steps_changed(case): 步骤增删后让每条记录的步骤结果重新对齐。
- regenerate_for_module(module): 对模块当前全部分配用户重跑一次 on_module_assigned。

幂等性以 (user_id, test_case_id) 为键：先查存在再插入。并发下两个请求
可能同时通过存在性检查，插入放在 SAVEPOINT 里执行，撞唯一约束时转为
ReconciliationRace，重新查询后按“已存在”处理，不向调用方暴露。
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

from extensions.database import db
from models.execution import TestExecution
from models.module import TestModule
from models.test_case import TestCase
from models.user import User
from repositories.assignment_repository import AssignmentRepository
from repositories.execution_repository import ExecutionRepository
from repositories.test_case_repository import TestCaseRepository
from utils.exceptions import ReconciliationRace

logger = logging.getLogger(__name__)


@dataclass
class ReconcileOutcome:
    created: int = 0
    restored: int = 0
    retired: int = 0
    races_absorbed: int = 0

    def to_dict(self):
        return {
            "created": self.created,
            "restored": self.restored,
            "retired": self.retired,
            "races_absorbed": self.races_absorbed,
        }

    def merge(self, other: "ReconcileOutcome") -> "ReconcileOutcome":
        """把另一次同步的计数累加进来，返回自身。"""
        self.created += other.created
        self.restored += other.restored
        self.retired += other.retired
        self.races_absorbed += other.races_absorbed
        return self


class ExecutionReconciler:

    @staticmethod
    def _insert(user_id: int, test_case: TestCase) -> TestExecution:
        try:
            with db.session.begin_nested():
                return ExecutionRepository.insert(user_id, test_case)
        except IntegrityError as exc:
            raise ReconciliationRace(user_id, test_case.id, exc) from exc

    @staticmethod
    def _provision(user_id: int, test_case: TestCase, outcome: ReconcileOutcome) -> Optional[TestExecution]:
        """存在则跳过；不存在则插入；插入撞约束时再确认一次。"""
        if ExecutionRepository.find_by_user_and_case(user_id, test_case.id):
            return None
        try:
            execution = ExecutionReconciler._insert(user_id, test_case)
        except ReconciliationRace as race:
            if ExecutionRepository.find_by_user_and_case(user_id, test_case.id) is None:
                # 不是重复插入，而是真正的数据库错误
                raise race.original
            outcome.races_absorbed += 1
            logger.info("execution race absorbed user=%s case=%s", user_id, test_case.id)
            return None
        outcome.created += 1
        return execution

    @staticmethod
    def _eligible(users: Iterable[User]):
        return [u for u in users if not u.is_admin]

    @staticmethod
    def on_test_case_created(test_case: TestCase) -> ReconcileOutcome:
        outcome = ReconcileOutcome()
        module_id = test_case.submodule.module_id
        users = ExecutionReconciler._eligible(AssignmentRepository.list_module_users(module_id))
        existing = ExecutionRepository.map_by_user_for_case(test_case.id)
        for user in users:
            if user.id in existing:
                continue
            ExecutionReconciler._provision(user.id, test_case, outcome)
        logger.info(
            "reconcile case_created case=%s module=%s users=%s %s",
            test_case.id, module_id, len(users), outcome.to_dict(),
        )
        return outcome

    @staticmethod
    def on_module_assigned(user: User, module: TestModule) -> ReconcileOutcome:
        outcome = ReconcileOutcome()
        if user.is_admin:
            logger.info("reconcile module_assigned skipped for admin user=%s module=%s", user.id, module.id)
            return outcome
        existing = ExecutionRepository.map_by_case_for_user_in_module(user.id, module.id)
        for execution in existing.values():
            if execution.retired:
                execution.restore()
                outcome.restored += 1
        for test_case in TestCaseRepository.list_in_module(module.id):
            if test_case.id in existing:
                continue
            ExecutionReconciler._provision(user.id, test_case, outcome)
        ExecutionRepository.flush()
        logger.info("reconcile module_assigned user=%s module=%s %s", user.id, module.id, outcome.to_dict())
        return outcome

    @staticmethod
    def on_module_unassigned(user: User, module: TestModule) -> ReconcileOutcome:
        outcome = ReconcileOutcome()
        existing = ExecutionRepository.map_by_case_for_user_in_module(user.id, module.id)
        for execution in existing.values():
            if not execution.retired:
                execution.retire()
                outcome.retired += 1
        ExecutionRepository.flush()
        logger.info("reconcile module_unassigned user=%s module=%s %s", user.id, module.id, outcome.to_dict())
        return outcome

    @staticmethod
    def on_test_case_steps_changed(test_case: TestCase) -> int:
        """
        让每条执行记录（含退役记录）的步骤结果与用例当前步骤一一对应：
        已删除步骤的结果移除，新步骤补 PENDING，保留步骤同步 step_number。
        返回被调整的执行记录数。
        """
        steps_by_id = {s.id: s for s in test_case.steps}
        touched = 0
        for execution in ExecutionRepository.list_for_case(test_case.id):
            results = ExecutionRepository.list_step_results(execution.id)
            changed = False
            seen = set()
            for row in results:
                step = steps_by_id.get(row.test_step_id)
                if step is None:
                    ExecutionRepository.delete_step_result(row)
                    changed = True
                    continue
                seen.add(step.id)
                if row.step_number != step.step_number:
                    row.step_number = step.step_number
                    changed = True
            for step_id, step in steps_by_id.items():
                if step_id not in seen:
                    ExecutionRepository.add_step_result(execution, step)
                    changed = True
            if changed:
                touched += 1
            db.session.expire(execution, ["step_results"])
        ExecutionRepository.flush()
        logger.info("reconcile steps_changed case=%s executions_touched=%s", test_case.id, touched)
        return touched

    @staticmethod
    def regenerate_for_module(module: TestModule) -> ReconcileOutcome:
        total = ReconcileOutcome()
        for user in AssignmentRepository.list_module_users(module.id):
            total.merge(ExecutionReconciler.on_module_assigned(user, module))
        return total
