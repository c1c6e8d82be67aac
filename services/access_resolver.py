# -*- coding: utf-8 -*-
"""
access_resolver.py
--------------------------------------------------------------------
可见性判定。所有读取路径都先经过这里：
- ADMIN：组织内一切可见，不查分配表。
- 其他角色：
    项目可见 = 直接分配 或 其下任一模块被分配；
    模块可见 = 直接分配（且所属项目可见、同组织）；
    用例可见 = 所属模块可见；
    执行记录可见 = 记录属于本人。
- 不跨调用缓存，每次都重新读取分配关系。
- require_*：不存在或跨组织 -> NotFoundError；同组织但不可见 -> AccessDeniedError。
"""

from typing import List, Optional

from models.execution import TestExecution
from models.module import TestModule, TestSubmodule
from models.project import Project
from models.test_case import TestCase
from repositories.assignment_repository import AssignmentRepository
from repositories.execution_repository import ExecutionRepository
from repositories.module_repository import ModuleRepository
from repositories.project_repository import ProjectRepository
from repositories.test_case_repository import TestCaseRepository
from utils.exceptions import AccessDeniedError, NotFoundError
from utils.permissions import PermissionScope


class AccessResolver:

    # ---------- 列表 ----------
    @staticmethod
    def visible_projects(scope: PermissionScope) -> List[Project]:
        if scope.sees_all_in_org:
            return ProjectRepository.list_in_organization(scope.organization_id)
        return ProjectRepository.list_visible_to_user(scope.organization_id, scope.user_id)

    @staticmethod
    def visible_modules(scope: PermissionScope, project_id: Optional[int] = None) -> List[TestModule]:
        if scope.sees_all_in_org:
            return ModuleRepository.list_in_organization(scope.organization_id, project_id)
        # 直接分配的模块，其所属项目必然可见（模块分配本身就让项目可见）
        return ModuleRepository.list_assigned_to_user(scope.organization_id, scope.user_id, project_id)

    @staticmethod
    def visible_module_ids(scope: PermissionScope) -> Optional[List[int]]:
        """None 表示组织内全部模块。"""
        if scope.sees_all_in_org:
            return None
        return [m.id for m in AccessResolver.visible_modules(scope)]

    @staticmethod
    def visible_test_cases(scope: PermissionScope, submodule_id: Optional[int] = None) -> List[TestCase]:
        return TestCaseRepository.list_by_modules(
            scope.organization_id,
            module_ids=AccessResolver.visible_module_ids(scope),
            submodule_id=submodule_id,
        )

    @staticmethod
    def visible_executions(scope: PermissionScope, user_id: Optional[int] = None) -> List[TestExecution]:
        if scope.sees_all_in_org:
            return ExecutionRepository.list_in_organization(scope.organization_id, user_id)
        return ExecutionRepository.list_visible_for_user(scope.organization_id, scope.user_id)

    # ---------- 单体判定 ----------
    @staticmethod
    def can_access_project(scope: PermissionScope, project: Project) -> bool:
        if project is None or not scope.same_org(project.organization_id):
            return False
        if scope.sees_all_in_org:
            return True
        if AssignmentRepository.find_project_assignment(project.id, scope.user_id):
            return True
        return any(
            AssignmentRepository.find_module_assignment(m.id, scope.user_id) for m in project.modules
        )

    @staticmethod
    def can_access_module(scope: PermissionScope, module: TestModule) -> bool:
        if module is None or not scope.same_org(module.organization_id):
            return False
        if scope.sees_all_in_org:
            return True
        return AssignmentRepository.find_module_assignment(module.id, scope.user_id) is not None

    @staticmethod
    def can_access_test_case(scope: PermissionScope, test_case: TestCase) -> bool:
        if test_case is None:
            return False
        return AccessResolver.can_access_module(scope, test_case.module)

    @staticmethod
    def can_access_execution(scope: PermissionScope, execution: TestExecution) -> bool:
        if execution is None or execution.test_case is None:
            return False
        if not scope.same_org(execution.test_case.organization_id):
            return False
        if scope.sees_all_in_org:
            return True
        return execution.user_id == scope.user_id

    # ---------- 加载 + 判定 ----------
    @staticmethod
    def _require(entity, scope: PermissionScope, check, not_found_msg: str):
        if entity is None or not scope.same_org(entity.organization_id):
            raise NotFoundError(not_found_msg)
        if not check(scope, entity):
            raise AccessDeniedError()
        return entity

    @staticmethod
    def require_project(scope: PermissionScope, project_id: int) -> Project:
        return AccessResolver._require(
            ProjectRepository.get_by_id(project_id), scope, AccessResolver.can_access_project, "项目不存在"
        )

    @staticmethod
    def require_module(scope: PermissionScope, module_id: int) -> TestModule:
        return AccessResolver._require(
            ModuleRepository.get_by_id(module_id), scope, AccessResolver.can_access_module, "模块不存在"
        )

    @staticmethod
    def require_submodule(scope: PermissionScope, submodule_id: int) -> TestSubmodule:
        return AccessResolver._require(
            ModuleRepository.get_submodule(submodule_id),
            scope,
            lambda s, sub: AccessResolver.can_access_module(s, sub.module),
            "子模块不存在",
        )

    @staticmethod
    def require_test_case(scope: PermissionScope, case_id: int) -> TestCase:
        return AccessResolver._require(
            TestCaseRepository.get_by_id(case_id), scope, AccessResolver.can_access_test_case, "用例不存在"
        )

    @staticmethod
    def require_execution(scope: PermissionScope, execution_id: int) -> TestExecution:
        execution = ExecutionRepository.get_by_id(execution_id)
        if execution is None or not scope.same_org(execution.test_case.organization_id):
            raise NotFoundError("执行记录不存在")
        if not AccessResolver.can_access_execution(scope, execution):
            raise AccessDeniedError()
        return execution
