# -*- coding: utf-8 -*-
"""
test_case_service.py
--------------------------------------------------------------------
用例维护：
- create: 写入用例与步骤（编号 1..n），同一事务内触发执行记录同步。
- import_cases: 已解析好的多行数据逐条走 create 的同一条路径，
  任意一行非法则整个导入回滚。
- update: 步骤变化时让已有执行记录的步骤结果重新对齐。
- delete: 级联删除该用例的所有执行记录。
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from constants.test_case import (
    CASE_CODE_MAX_LENGTH,
    DEFAULT_PRIORITY,
    TITLE_MAX_LENGTH,
    validate_priority,
)
from extensions.database import atomic
from models.test_case import TestCase
from repositories.test_case_repository import TestCaseRepository
from services.access_resolver import AccessResolver
from services.execution_reconciler import ExecutionReconciler
from utils.exceptions import ConflictError, ValidationError
from utils.permissions import PermissionScope, assert_catalog_manager
from utils.validators import optional_text, require_text

logger = logging.getLogger(__name__)


def _normalize_steps(raw_steps) -> List[dict]:
    if raw_steps is None:
        return []
    if not isinstance(raw_steps, list):
        raise ValidationError("steps 必须是数组")
    steps = []
    for index, raw in enumerate(raw_steps, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"第 {index} 个步骤格式不正确")
        steps.append({
            "action": require_text(raw.get("action"), f"第 {index} 个步骤的操作", max_length=4000),
            "expected_result": optional_text(raw.get("expected_result"), f"第 {index} 个步骤的预期结果"),
        })
    return steps


def _normalize_tags(raw_tags) -> list:
    if raw_tags is None:
        return []
    if isinstance(raw_tags, str):
        raw_tags = raw_tags.split(",")
    if not isinstance(raw_tags, list):
        raise ValidationError("tags 必须是数组")
    return [str(t).strip() for t in raw_tags if str(t).strip()]


class TestCaseService:
    __test__ = False

    @staticmethod
    def _create_in_transaction(scope: PermissionScope, submodule_id: int, data: dict) -> TestCase:
        case_code = require_text(data.get("case_code"), "用例编号", max_length=CASE_CODE_MAX_LENGTH)
        title = require_text(data.get("title"), "用例标题", max_length=TITLE_MAX_LENGTH)
        priority = data.get("priority") or DEFAULT_PRIORITY
        validate_priority(priority)
        if TestCaseRepository.get_by_code(submodule_id, case_code):
            raise ConflictError(f"用例编号已存在: {case_code}")
        case = TestCaseRepository.create(
            submodule_id=submodule_id,
            case_code=case_code,
            title=title,
            description=optional_text(data.get("description"), "用例描述"),
            preconditions=optional_text(data.get("preconditions"), "前置条件"),
            expected_result=optional_text(data.get("expected_result"), "预期结果"),
            priority=priority,
            tags=_normalize_tags(data.get("tags")),
            created_by=scope.user_id,
            steps=_normalize_steps(data.get("steps")),
        )
        ExecutionReconciler.on_test_case_created(case)
        return case

    @staticmethod
    def create(scope: PermissionScope, submodule_id: int, data: dict) -> TestCase:
        sub = AccessResolver.require_submodule(scope, submodule_id)
        assert_catalog_manager(scope)
        try:
            with atomic("test_case.create"):
                case = TestCaseService._create_in_transaction(scope, sub.id, data)
        except IntegrityError as exc:
            raise ConflictError("创建用例失败：唯一约束冲突") from exc
        logger.info("test case created id=%s submodule=%s", case.id, sub.id)
        return case

    @staticmethod
    def import_cases(scope: PermissionScope, submodule_id: int, rows) -> List[TestCase]:
        sub = AccessResolver.require_submodule(scope, submodule_id)
        assert_catalog_manager(scope)
        if not isinstance(rows, list) or not rows:
            raise ValidationError("导入数据不能为空")
        created = []
        try:
            with atomic("test_case.import"):
                for index, row in enumerate(rows, start=1):
                    if not isinstance(row, dict):
                        raise ValidationError(f"第 {index} 行格式不正确")
                    try:
                        created.append(TestCaseService._create_in_transaction(scope, sub.id, row))
                    except (ValidationError, ConflictError) as exc:
                        raise type(exc)(f"第 {index} 行: {exc.message}") from exc
        except IntegrityError as exc:
            raise ConflictError("导入失败：唯一约束冲突") from exc
        logger.info("test cases imported submodule=%s count=%s", sub.id, len(created))
        return created

    @staticmethod
    def get(scope: PermissionScope, case_id: int) -> TestCase:
        return AccessResolver.require_test_case(scope, case_id)

    @staticmethod
    def list(scope: PermissionScope, submodule_id: Optional[int] = None) -> List[TestCase]:
        if submodule_id is not None:
            AccessResolver.require_submodule(scope, submodule_id)
        return AccessResolver.visible_test_cases(scope, submodule_id)

    @staticmethod
    def update(scope: PermissionScope, case_id: int, data: dict) -> TestCase:
        case = AccessResolver.require_test_case(scope, case_id)
        assert_catalog_manager(scope)
        fields = {}
        if data.get("case_code") is not None:
            fields["case_code"] = require_text(data["case_code"], "用例编号", max_length=CASE_CODE_MAX_LENGTH)
            existing = TestCaseRepository.get_by_code(case.submodule_id, fields["case_code"])
            if existing and existing.id != case.id:
                raise ConflictError("用例编号已存在")
        if data.get("title") is not None:
            fields["title"] = require_text(data["title"], "用例标题", max_length=TITLE_MAX_LENGTH)
        if data.get("priority") is not None:
            validate_priority(data["priority"])
            fields["priority"] = data["priority"]
        for key, label in (("description", "用例描述"), ("preconditions", "前置条件"), ("expected_result", "预期结果")):
            if data.get(key) is not None:
                fields[key] = optional_text(data[key], label)
        if data.get("tags") is not None:
            fields["tags"] = _normalize_tags(data["tags"])
        steps = _normalize_steps(data["steps"]) if "steps" in data else None

        try:
            with atomic("test_case.update"):
                TestCaseRepository.update(case, **fields)
                if steps is not None:
                    TestCaseRepository.replace_steps(case, steps)
                    ExecutionReconciler.on_test_case_steps_changed(case)
        except IntegrityError as exc:
            raise ConflictError("更新失败：唯一约束冲突") from exc
        return case

    @staticmethod
    def delete(scope: PermissionScope, case_id: int):
        case = AccessResolver.require_test_case(scope, case_id)
        assert_catalog_manager(scope)
        with atomic("test_case.delete"):
            TestCaseRepository.delete(case)
        logger.info("test case deleted id=%s by=%s", case_id, scope.user_id)
