from typing import Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from extensions.database import db
from models.project import Project
from models.module import TestModule, TestSubmodule
from models.test_case import TestCase, TestStep


class TestCaseRepository:
    __test__ = False

    @staticmethod
    def create(
        submodule_id: int,
        case_code: str,
        title: str,
        description: Optional[str],
        preconditions: Optional[str],
        expected_result: Optional[str],
        priority: str,
        tags: list,
        created_by: Optional[int],
        steps: Iterable[dict],
    ) -> TestCase:
        case = TestCase(
            submodule_id=submodule_id,
            case_code=case_code,
            title=title,
            description=description,
            preconditions=preconditions,
            expected_result=expected_result,
            priority=priority,
            tags=tags,
            created_by=created_by,
        )
        for number, step in enumerate(steps, start=1):
            case.steps.append(
                TestStep(step_number=number, action=step["action"], expected_result=step.get("expected_result"))
            )
        db.session.add(case)
        db.session.flush()
        return case

    @staticmethod
    def get_by_id(case_id: int) -> Optional[TestCase]:
        stmt = (
            select(TestCase)
            .options(selectinload(TestCase.steps))
            .where(TestCase.id == case_id)
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def get_by_code(submodule_id: int, case_code: str) -> Optional[TestCase]:
        stmt = select(TestCase).where(
            TestCase.submodule_id == submodule_id,
            TestCase.case_code == case_code,
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def list_by_modules(
        organization_id: int,
        module_ids: Optional[List[int]] = None,
        submodule_id: Optional[int] = None,
    ) -> List[TestCase]:
        """module_ids 为 None 表示组织内全部模块。"""
        stmt = (
            select(TestCase)
            .join(TestSubmodule, TestSubmodule.id == TestCase.submodule_id)
            .join(TestModule, TestModule.id == TestSubmodule.module_id)
            .join(Project, Project.id == TestModule.project_id)
            .where(Project.organization_id == organization_id)
        )
        if module_ids is not None:
            if not module_ids:
                return []
            stmt = stmt.where(TestModule.id.in_(module_ids))
        if submodule_id is not None:
            stmt = stmt.where(TestCase.submodule_id == submodule_id)
        stmt = stmt.order_by(TestModule.name, TestSubmodule.name, TestCase.created_at, TestCase.id)
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def list_in_module(module_id: int) -> List[TestCase]:
        stmt = (
            select(TestCase)
            .options(selectinload(TestCase.steps))
            .join(TestSubmodule, TestSubmodule.id == TestCase.submodule_id)
            .where(TestSubmodule.module_id == module_id)
            .order_by(TestCase.id.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def update(case: TestCase, **fields) -> TestCase:
        for key in ("case_code", "title", "description", "preconditions", "expected_result", "priority", "tags"):
            value = fields.get(key)
            if value is not None:
                setattr(case, key, value)
        db.session.flush()
        return case

    @staticmethod
    def replace_steps(case: TestCase, steps: List[dict]) -> TestCase:
        """
        按 step_number 原位更新：前 n 个步骤改内容，多余的删除，不足的追加。
        已有步骤的 id 保持不变，其步骤结果得以保留。
        """
        existing = sorted(case.steps, key=lambda s: s.step_number)
        for number, payload in enumerate(steps, start=1):
            if number <= len(existing):
                step = existing[number - 1]
                step.action = payload["action"]
                step.expected_result = payload.get("expected_result")
            else:
                case.steps.append(
                    TestStep(step_number=number, action=payload["action"], expected_result=payload.get("expected_result"))
                )
        for step in existing[len(steps):]:
            case.steps.remove(step)
        db.session.flush()
        return case

    @staticmethod
    def delete(case: TestCase):
        db.session.delete(case)
        db.session.flush()
