# -*- coding: utf-8 -*-
"""
assignment_service.py
--------------------------------------------------------------------
项目分配与模块分配。
- 只有组织管理员可以分配 / 取消分配。
- 项目分配只分给 QA / BA，不产生执行记录。
- 模块分配与执行记录同步放在同一个具名事务里：
    assign   -> ExecutionReconciler.on_module_assigned
    unassign -> ExecutionReconciler.on_module_unassigned
- 重复分配、取消不存在的分配都是幂等空操作。
- 分配行的插入放在 SAVEPOINT 里；并发请求先插入时撞唯一约束，
  重新查询确认后按“已存在”处理，与执行记录的插入一致。
"""

import logging
from typing import List

from sqlalchemy.exc import IntegrityError

from constants.roles import PROJECT_ASSIGNABLE_ROLES
from extensions.database import atomic, db
from models.user import User
from repositories.assignment_repository import AssignmentRepository
from repositories.module_repository import ModuleRepository
from repositories.project_repository import ProjectRepository
from services.access_resolver import AccessResolver
from services.execution_reconciler import ExecutionReconciler, ReconcileOutcome
from services.user_service import UserService
from utils.exceptions import NotFoundError, ValidationError
from utils.permissions import PermissionScope, assert_catalog_manager, assert_org_admin

logger = logging.getLogger(__name__)


def _load_in_org(scope: PermissionScope, entity, message: str):
    if entity is None or not scope.same_org(entity.organization_id):
        raise NotFoundError(message)
    return entity


def _add_once(kind: str, find, add, target_id: int, user_id: int) -> bool:
    """不存在才插入；返回 True 表示本次新建了分配。"""
    if find(target_id, user_id) is not None:
        return False
    try:
        with db.session.begin_nested():
            add(target_id, user_id)
    except IntegrityError:
        if find(target_id, user_id) is None:
            raise
        logger.info("%s assignment race absorbed user=%s target=%s", kind, user_id, target_id)
        return False
    return True


class AssignmentService:

    # ---------- 项目 ----------
    @staticmethod
    def assign_project(scope: PermissionScope, user_id: int, project_id: int) -> bool:
        """返回 True 表示新建了分配，False 表示已存在。"""
        assert_org_admin(scope)
        project = _load_in_org(scope, ProjectRepository.get_by_id(project_id), "项目不存在")
        user = UserService.get_in_org(scope, user_id)
        if not user.has_role(*PROJECT_ASSIGNABLE_ROLES):
            raise ValidationError("项目只能分配给 QA 或 BA")
        with atomic("project.assign"):
            created = _add_once(
                "project",
                AssignmentRepository.find_project_assignment,
                AssignmentRepository.add_project_assignment,
                project.id,
                user.id,
            )
        if created:
            logger.info("project assigned user=%s project=%s", user.id, project.id)
        return created

    @staticmethod
    def unassign_project(scope: PermissionScope, user_id: int, project_id: int) -> bool:
        assert_org_admin(scope)
        project = _load_in_org(scope, ProjectRepository.get_by_id(project_id), "项目不存在")
        user = UserService.get_in_org(scope, user_id)
        row = AssignmentRepository.find_project_assignment(project.id, user.id)
        if row is None:
            return False
        with atomic("project.unassign"):
            AssignmentRepository.delete(row)
        logger.info("project unassigned user=%s project=%s", user.id, project.id)
        return True

    @staticmethod
    def project_users(scope: PermissionScope, project_id: int) -> List[User]:
        project = AccessResolver.require_project(scope, project_id)
        return AssignmentRepository.list_project_users(project.id)

    # ---------- 模块 ----------
    @staticmethod
    def assign_module(scope: PermissionScope, user_id: int, module_id: int) -> ReconcileOutcome:
        assert_org_admin(scope)
        module = _load_in_org(scope, ModuleRepository.get_by_id(module_id), "模块不存在")
        user = UserService.get_in_org(scope, user_id)
        with atomic("module.assign"):
            _add_once(
                "module",
                AssignmentRepository.find_module_assignment,
                AssignmentRepository.add_module_assignment,
                module.id,
                user.id,
            )
            # 已分配时仍然同步一次，补齐可能缺失的记录
            outcome = ExecutionReconciler.on_module_assigned(user, module)
        logger.info("module assigned user=%s module=%s %s", user.id, module.id, outcome.to_dict())
        return outcome

    @staticmethod
    def unassign_module(scope: PermissionScope, user_id: int, module_id: int) -> ReconcileOutcome:
        assert_org_admin(scope)
        module = _load_in_org(scope, ModuleRepository.get_by_id(module_id), "模块不存在")
        user = UserService.get_in_org(scope, user_id)
        with atomic("module.unassign"):
            row = AssignmentRepository.find_module_assignment(module.id, user.id)
            if row is not None:
                AssignmentRepository.delete(row)
            outcome = ExecutionReconciler.on_module_unassigned(user, module)
        logger.info("module unassigned user=%s module=%s %s", user.id, module.id, outcome.to_dict())
        return outcome

    @staticmethod
    def module_users(scope: PermissionScope, module_id: int) -> List[User]:
        module = AccessResolver.require_module(scope, module_id)
        return AssignmentRepository.list_module_users(module.id)

    @staticmethod
    def modules_assigned_to_me(scope: PermissionScope):
        return ModuleRepository.list_assigned_to_user(scope.organization_id, scope.user_id)

    @staticmethod
    def regenerate_executions(scope: PermissionScope, module_id: int) -> ReconcileOutcome:
        module = AccessResolver.require_module(scope, module_id)
        assert_catalog_manager(scope)
        with atomic("module.regenerate_executions"):
            outcome = ExecutionReconciler.regenerate_for_module(module)
        logger.info("executions regenerated module=%s %s", module.id, outcome.to_dict())
        return outcome
