from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from extensions.database import db
from models.project import Project
from models.module import TestModule, TestSubmodule, ModuleAssignment
from models.test_case import TestCase
from models.execution import TestExecution, TestStepResult


def _navigation_order(stmt):
    return stmt.order_by(
        TestModule.name.asc(),
        TestSubmodule.name.asc(),
        TestCase.created_at.asc(),
        TestCase.id.asc(),
    )


def _joined_to_org(stmt, organization_id: int):
    return (
        stmt.join(TestCase, TestCase.id == TestExecution.test_case_id)
        .join(TestSubmodule, TestSubmodule.id == TestCase.submodule_id)
        .join(TestModule, TestModule.id == TestSubmodule.module_id)
        .join(Project, Project.id == TestModule.project_id)
        .where(Project.organization_id == organization_id)
    )


class ExecutionRepository:
    """
    执行记录与步骤结果的读写。
    唯一键 (user_id, test_case_id) 由数据库保证；这里只负责查询与插入，
    幂等判断和冲突处理交给 ExecutionReconciler。
    """

    @staticmethod
    def get_by_id(execution_id: int) -> Optional[TestExecution]:
        stmt = (
            select(TestExecution)
            .options(selectinload(TestExecution.step_results))
            .where(TestExecution.id == execution_id)
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def find_by_user_and_case(user_id: int, test_case_id: int) -> Optional[TestExecution]:
        stmt = select(TestExecution).where(
            TestExecution.user_id == user_id,
            TestExecution.test_case_id == test_case_id,
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def map_by_user_for_case(test_case_id: int) -> Dict[int, TestExecution]:
        stmt = select(TestExecution).where(TestExecution.test_case_id == test_case_id)
        return {e.user_id: e for e in db.session.execute(stmt).scalars()}

    @staticmethod
    def map_by_case_for_user_in_module(user_id: int, module_id: int) -> Dict[int, TestExecution]:
        stmt = (
            select(TestExecution)
            .join(TestCase, TestCase.id == TestExecution.test_case_id)
            .join(TestSubmodule, TestSubmodule.id == TestCase.submodule_id)
            .where(TestExecution.user_id == user_id, TestSubmodule.module_id == module_id)
        )
        return {e.test_case_id: e for e in db.session.execute(stmt).scalars()}

    @staticmethod
    def list_for_case(test_case_id: int) -> List[TestExecution]:
        stmt = (
            select(TestExecution)
            .where(TestExecution.test_case_id == test_case_id)
            .order_by(TestExecution.id.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def list_step_results(execution_id: int) -> List[TestStepResult]:
        stmt = (
            select(TestStepResult)
            .where(TestStepResult.execution_id == execution_id)
            .order_by(TestStepResult.step_number.asc())
            .execution_options(populate_existing=True)
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def list_visible_for_user(organization_id: int, user_id: int) -> List[TestExecution]:
        """非管理员：自己的、未退役、且模块分配仍然存在的执行记录。"""
        stmt = _joined_to_org(select(TestExecution), organization_id).where(
            TestExecution.user_id == user_id,
            TestExecution.retired.is_(False),
            TestModule.id.in_(
                select(ModuleAssignment.module_id).where(ModuleAssignment.user_id == user_id)
            ),
        )
        return db.session.execute(_navigation_order(stmt)).scalars().all()

    @staticmethod
    def list_in_organization(organization_id: int, user_id: Optional[int] = None) -> List[TestExecution]:
        stmt = _joined_to_org(select(TestExecution), organization_id).where(
            TestExecution.retired.is_(False)
        )
        if user_id is not None:
            stmt = stmt.where(TestExecution.user_id == user_id)
        return db.session.execute(_navigation_order(stmt)).scalars().all()

    @staticmethod
    def insert(user_id: int, test_case: TestCase) -> TestExecution:
        """插入一条 PENDING 执行记录以及与当前步骤一一对应的 PENDING 步骤结果。"""
        execution = TestExecution(user_id=user_id, test_case_id=test_case.id)
        for step in test_case.steps:
            execution.step_results.append(
                TestStepResult(test_step_id=step.id, step_number=step.step_number)
            )
        db.session.add(execution)
        db.session.flush()
        return execution

    @staticmethod
    def add_step_result(execution: TestExecution, step) -> TestStepResult:
        row = TestStepResult(execution_id=execution.id, test_step_id=step.id, step_number=step.step_number)
        db.session.add(row)
        return row

    @staticmethod
    def delete_step_result(row: TestStepResult):
        db.session.delete(row)

    @staticmethod
    def flush():
        db.session.flush()
