# -*- coding: utf-8 -*-
"""
execution.py
--------------------------------------------------------------------
执行体系：
1. TestExecution: 某个用户对某条用例的执行记录。
   - (user_id, test_case_id) 唯一，是同步器幂等性的最终保证。
   - overall_result: PENDING / PASSED / FAILED / BLOCKED / PARTIALLY_PASSED。
   - retired: 取消模块分配后退役隐藏，重新分配时恢复，历史结果不丢。
   - 只由 ExecutionReconciler 创建，不提供手工创建入口。
2. TestStepResult: 执行记录下每个步骤的结果。
   - (execution_id, test_step_id) 唯一，数量与顺序和用例步骤一一对应。
读取约定：
- 历史库中的非法取值在 to_dict 时统一归一化为 PENDING。
"""

from extensions.database import db
from .mixins import TimestampMixin, RetireMixin, COMMON_TABLE_ARGS
from constants.execution import (
    ExecutionResult,
    StepStatus,
    coerce_stored_result,
    coerce_stored_step_status,
)
from utils.datetime_helpers import datetime_to_iso


class TestExecution(TimestampMixin, RetireMixin, db.Model):
    __tablename__ = "test_execution"
    __table_args__ = (
        db.UniqueConstraint("user_id", "test_case_id", name="uq_test_execution_user_case"),
        db.Index("ix_test_execution_user_retired", "user_id", "retired"),
        COMMON_TABLE_ARGS,
    )
    __test__ = False

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_case_id = db.Column(
        db.Integer, db.ForeignKey("test_case.id", ondelete="CASCADE"), nullable=False, index=True
    )
    overall_result = db.Column(
        db.String(32),
        nullable=False,
        default=ExecutionResult.PENDING.value,
        server_default=ExecutionResult.PENDING.value,
    )
    notes = db.Column(db.Text)
    completed_at = db.Column(db.DateTime)
    completed_by = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))

    # 失败时可附带缺陷信息
    bug_report_subject = db.Column(db.String(255))
    bug_report_description = db.Column(db.Text)
    issue_url = db.Column(db.String(512))

    user = db.relationship(
        "User",
        foreign_keys=[user_id],
        backref=db.backref("executions", cascade="all, delete-orphan", passive_deletes=True),
    )
    test_case = db.relationship("TestCase", back_populates="executions")
    step_results = db.relationship(
        "TestStepResult",
        back_populates="execution",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TestStepResult.step_number",
    )

    @property
    def result(self) -> str:
        return coerce_stored_result(self.overall_result)

    @property
    def is_completed(self) -> bool:
        return self.result != ExecutionResult.PENDING.value

    def to_dict(self, include_steps: bool = True):
        case = self.test_case
        submodule = case.submodule if case else None
        module = submodule.module if submodule else None
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "test_case_id": self.test_case_id,
            "case_code": case.case_code if case else None,
            "title": case.title if case else None,
            "submodule_id": submodule.id if submodule else None,
            "submodule_name": submodule.name if submodule else None,
            "module_id": module.id if module else None,
            "module_name": module.name if module else None,
            "project_id": module.project_id if module else None,
            "overall_result": self.result,
            "completed": self.is_completed,
            "notes": self.notes,
            "completed_at": datetime_to_iso(self.completed_at),
            "completed_by": self.completed_by,
            "bug_report_subject": self.bug_report_subject,
            "bug_report_description": self.bug_report_description,
            "issue_url": self.issue_url,
            "retired": bool(self.retired),
            "created_at": datetime_to_iso(self.created_at),
            "updated_at": datetime_to_iso(self.updated_at),
        }
        if include_steps:
            data["step_results"] = [r.to_dict() for r in self.step_results]
        return data


class TestStepResult(TimestampMixin, db.Model):
    __tablename__ = "test_step_result"
    __table_args__ = (
        db.UniqueConstraint("execution_id", "test_step_id", name="uq_test_step_result_execution_step"),
        COMMON_TABLE_ARGS,
    )
    __test__ = False

    id = db.Column(db.Integer, primary_key=True)
    execution_id = db.Column(
        db.Integer, db.ForeignKey("test_execution.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_step_id = db.Column(
        db.Integer, db.ForeignKey("test_step.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_number = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.String(32),
        nullable=False,
        default=StepStatus.PENDING.value,
        server_default=StepStatus.PENDING.value,
    )
    actual_result = db.Column(db.Text)

    execution = db.relationship("TestExecution", back_populates="step_results")
    test_step = db.relationship("TestStep")

    def to_dict(self):
        step = self.test_step
        return {
            "id": self.id,
            "test_step_id": self.test_step_id,
            "step_number": self.step_number,
            "action": step.action if step else None,
            "expected_result": step.expected_result if step else None,
            "status": coerce_stored_step_status(self.status),
            "actual_result": self.actual_result,
        }
